"""Configuration management for user settings and provider credentials."""

import os
import logging
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List, Tuple

from .storage import Storage

logger = logging.getLogger(__name__)


# Default user config location
USER_CONFIG_DIR = Path(os.environ.get("PROMPT_BUILDER_HOME", Path.home() / ".prompt-builder"))
USER_CONFIG_FILE = USER_CONFIG_DIR / "config.yaml"

DEFAULT_TIMEOUT = 60.0

# Environment fallbacks, keyed by provider
ENV_API_KEYS = {
    "openai": "OPENAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}
ENV_BASE_URL = "OPENAI_BASE_URL"


def get_user_config_path() -> Path:
    """Get path to user config file."""
    return USER_CONFIG_FILE


def load_user_config() -> Dict[str, Any]:
    """Load user-level configuration."""
    if not USER_CONFIG_FILE.exists():
        return get_default_user_config()

    try:
        with open(USER_CONFIG_FILE, 'r') as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Error loading user config %s: %s", USER_CONFIG_FILE, e)
        return get_default_user_config()

    if not isinstance(loaded, dict):
        return get_default_user_config()

    config = get_default_user_config()
    config.update(loaded)
    return config


def save_user_config(config: Dict[str, Any]) -> str:
    """Save user-level configuration."""
    try:
        USER_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        with open(USER_CONFIG_FILE, 'w') as f:
            yaml.dump(config, f, default_flow_style=False, sort_keys=False)
        return f"✅ User config saved to {USER_CONFIG_FILE}"
    except (OSError, yaml.YAMLError) as e:
        return f"❌ Error saving user config: {e}"


def get_default_user_config() -> Dict[str, Any]:
    """Get default user configuration."""
    return {
        "provider": "openai",
        "model": "gpt-4o-mini",
        "storage_dir": "",
        "generation": {
            "timeout": DEFAULT_TIMEOUT,
        },
        "presets": {
            "openai": {
                "base_url": "",
                "api_key_required": True,
                "default_model": "gpt-4o-mini",
            },
            "ollama": {
                "base_url": "http://localhost:11434/v1",
                "api_key_required": False,
                "default_model": "llama3.2",
            },
            "lm-studio": {
                "base_url": "http://localhost:1234/v1",
                "api_key_required": False,
                "default_model": "",
            },
            "openrouter": {
                "base_url": "https://openrouter.ai/api/v1",
                "api_key_required": True,
                "default_model": "openai/gpt-4o-mini",
            },
        },
    }


def get_storage_dir(config: Dict[str, Any]) -> Path:
    """Directory holding the library and credential entries."""
    storage_dir = config.get("storage_dir")
    if storage_dir:
        return Path(storage_dir).expanduser()
    return USER_CONFIG_DIR / "storage"


def get_generation_timeout(config: Dict[str, Any]) -> float:
    """Timeout in seconds for a single generation request."""
    generation = config.get("generation") or {}
    timeout = generation.get("timeout", DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        return DEFAULT_TIMEOUT
    return float(timeout)


def get_provider_preset(config: Dict[str, Any], provider: str) -> Dict[str, Any]:
    """Preset for a provider, or an empty preset if it is unknown."""
    return (config.get("presets") or {}).get(provider, {})


def get_model(config: Dict[str, Any]) -> str:
    """Configured model, falling back to the provider preset's default."""
    model = config.get("model")
    if model:
        return model
    return get_provider_preset(config, config.get("provider", "")).get("default_model", "")


def validate_user_config(config: Dict[str, Any]) -> List[str]:
    """Validate user config and return list of errors."""
    errors = []

    provider = config.get("provider")
    if not provider:
        errors.append("Missing provider")
    elif provider not in (config.get("presets") or {}):
        errors.append(f"Unknown provider: {provider}")

    if not get_model(config):
        errors.append("No model configured")

    timeout = (config.get("generation") or {}).get("timeout", DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        errors.append("Generation timeout must be a positive number")

    return errors


class CredentialStore:
    """
    Per-provider API key and base URL overrides.

    Each value is its own storage entry (``<provider>.api_key`` and
    ``<provider>.base_url``), stored as plain text. Environment variables are
    used when nothing is stored.
    """

    def __init__(self, storage: Storage, config: Optional[Dict[str, Any]] = None):
        self.storage = storage
        self.config = config if config is not None else get_default_user_config()

    @staticmethod
    def _key(provider: str, name: str) -> str:
        return f"{provider}.{name}"

    def get_api_key(self, provider: str) -> str:
        stored = self.storage.get_item(self._key(provider, "api_key"))
        if stored:
            return stored
        env_name = ENV_API_KEYS.get(provider)
        return os.environ.get(env_name, "") if env_name else ""

    def set_api_key(self, provider: str, api_key: str):
        if api_key:
            self.storage.set_item(self._key(provider, "api_key"), api_key)
        else:
            self.storage.remove_item(self._key(provider, "api_key"))

    def get_base_url(self, provider: str) -> str:
        stored = self.storage.get_item(self._key(provider, "base_url"))
        if stored:
            return stored
        if provider == "openai" and os.environ.get(ENV_BASE_URL):
            return os.environ[ENV_BASE_URL]
        return get_provider_preset(self.config, provider).get("base_url", "")

    def set_base_url(self, provider: str, base_url: str):
        if base_url:
            self.storage.set_item(self._key(provider, "base_url"), base_url)
        else:
            self.storage.remove_item(self._key(provider, "base_url"))

    def resolve(self, provider: str) -> Tuple[str, Optional[str]]:
        """Return ``(api_key, base_url)`` for a provider; base_url None means the default endpoint."""
        return self.get_api_key(provider), self.get_base_url(provider) or None

    def is_configured(self, provider: str) -> bool:
        """Whether enough is known to attempt a request against the provider."""
        api_key, base_url = self.resolve(provider)
        if api_key:
            return True
        preset = get_provider_preset(self.config, provider)
        return not preset.get("api_key_required", True) and bool(base_url)
