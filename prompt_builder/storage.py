"""
Key/value string storage.

The library blob and the per-provider credential entries each live under
their own key. ``FileStorage`` keeps one file per key inside a directory;
``MemoryStorage`` is used for tests and throwaway sessions.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)


class Storage(ABC):
    """Minimal string storage interface."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is not set."""
        pass

    @abstractmethod
    def set_item(self, key: str, value: str):
        """Store a value, replacing any previous one."""
        pass

    @abstractmethod
    def remove_item(self, key: str):
        """Remove a key; missing keys are ignored."""
        pass


class MemoryStorage(Storage):
    """Storage kept in a dictionary for the lifetime of the object."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str):
        self._items[key] = value

    def remove_item(self, key: str):
        self._items.pop(key, None)


class FileStorage(Storage):
    """Storage with one UTF-8 text file per key."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _path_for(self, key: str) -> Path:
        return self.root / quote(key, safe="-_.")

    def get_item(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read storage key %s: %s", key, e)
            return None

    def set_item(self, key: str, value: str):
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path_for(key)
        tmp_path = path.with_name(path.name + ".tmp")

        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(value)
        tmp_path.replace(path)

    def remove_item(self, key: str):
        path = self._path_for(key)
        if path.exists():
            path.unlink()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(root={self.root})"
