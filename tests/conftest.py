"""Pytest configuration and shared fixtures."""

import pytest
import tempfile
import shutil
from pathlib import Path

from prompt_builder.document import PromptDocument
from prompt_builder.storage import MemoryStorage


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def temp_user_config_dir(monkeypatch):
    """Create a temporary user config directory for testing."""
    temp_dir = tempfile.mkdtemp()
    config_dir = Path(temp_dir) / ".prompt-builder"
    config_dir.mkdir(parents=True, exist_ok=True)

    # Monkeypatch the USER_CONFIG_DIR and USER_CONFIG_FILE
    from prompt_builder import config
    monkeypatch.setattr(config, 'USER_CONFIG_DIR', config_dir)
    monkeypatch.setattr(config, 'USER_CONFIG_FILE', config_dir / "config.yaml")

    yield config_dir
    shutil.rmtree(temp_dir)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove provider credentials from the environment."""
    for name in ("OPENAI_API_KEY", "OPENAI_BASE_URL", "OPENROUTER_API_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def memory_storage():
    """Empty in-memory storage."""
    return MemoryStorage()


@pytest.fixture
def sample_document():
    """A document with every section filled in, plus some blank entries."""
    return PromptDocument(
        title="Ticket triage",
        role="Helpful AI assistant",
        task="Classify support tickets",
        audience="Support engineers",
        style="Concise",
        tone="Neutral",
        constraints=["No brand names", "   ", "Answer in English"],
        steps=["Read input", "", "Classify"],
        inputs=["topic: AI", "ticket"],
        examples=["Printer on fire -> hardware"],
    )
