"""
Local library of saved prompt documents.

The whole collection is stored as one JSON array under a single storage key
and rewritten in full after every change. Newest entries come first.
"""

import copy
import json
import logging
import math
import random
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .errors import LibraryDeserializeError
from .storage import Storage

logger = logging.getLogger(__name__)

LIBRARY_KEY = "prompt-library"
COPY_SUFFIX = " (copy)"


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_entry_id() -> str:
    """Generate a unique entry id, falling back to time plus randomness."""
    try:
        return str(uuid.uuid4())
    except NotImplementedError:
        return f"id_{now_ms():x}_{random.getrandbits(48):012x}"


@dataclass
class LibraryEntry:
    """A named, timestamped snapshot of a prompt document."""
    id: str
    title: str
    data: Dict[str, Any]
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted record format."""
        record = {"id": self.id, "title": self.title, "data": self.data}
        if self.created_at is not None:
            record["createdAt"] = self.created_at
        if self.updated_at is not None:
            record["updatedAt"] = self.updated_at
        return record

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> Optional["LibraryEntry"]:
        """Build an entry from a persisted record, or None if it is unusable."""
        if not isinstance(record, dict):
            return None

        entry_id = record.get("id")
        if not isinstance(entry_id, str) or not entry_id:
            return None

        title = record.get("title")
        data = record.get("data")

        # Older records carry a single "ts" timestamp
        legacy_ts = _as_timestamp(record.get("ts"))
        created_at = _as_timestamp(record.get("createdAt"))
        updated_at = _as_timestamp(record.get("updatedAt"))

        return cls(
            id=entry_id,
            title=title if isinstance(title, str) else "",
            data=data if isinstance(data, dict) else {},
            created_at=created_at if created_at is not None else legacy_ts,
            updated_at=updated_at if updated_at is not None else legacy_ts,
        )


def _as_timestamp(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return int(value)


def deserialize_entries(blob: str) -> List[LibraryEntry]:
    """
    Decode the persisted library blob.

    Raises:
        LibraryDeserializeError: If the blob is not a JSON array
    """
    try:
        records = json.loads(blob)
    except (ValueError, TypeError, RecursionError) as e:
        raise LibraryDeserializeError(f"Library blob is not valid JSON: {e}") from e

    if not isinstance(records, list):
        raise LibraryDeserializeError(
            f"Library blob must be a JSON array, got {type(records).__name__}"
        )

    entries = []
    for record in records:
        entry = LibraryEntry.from_dict(record)
        if entry is None:
            logger.warning("Skipping malformed library record: %r", record)
            continue
        entries.append(entry)
    return entries


class LibraryStore:
    """
    Versioned CRUD over persisted prompt snapshots.

    Assumes a single active editor: there is no locking and the last write
    wins.
    """

    def __init__(self, storage: Storage, key: str = LIBRARY_KEY, clock: Callable[[], int] = now_ms):
        """
        Initialize the store.

        Args:
            storage: Backing key/value storage
            key: Storage key holding the serialized collection
            clock: Returns the current time in epoch milliseconds
        """
        self.storage = storage
        self.key = key
        self.clock = clock

    def _read(self) -> List[LibraryEntry]:
        blob = self.storage.get_item(self.key)
        if not blob:
            return []

        try:
            return deserialize_entries(blob)
        except LibraryDeserializeError as e:
            logger.warning("Treating library as empty: %s", e)
            return []

    def _write(self, entries: List[LibraryEntry]):
        blob = json.dumps([entry.to_dict() for entry in entries], ensure_ascii=False)
        self.storage.set_item(self.key, blob)

    def list_entries(self) -> List[LibraryEntry]:
        """Return all entries, newest first."""
        return self._read()

    def get(self, entry_id: str) -> Optional[LibraryEntry]:
        for entry in self._read():
            if entry.id == entry_id:
                return entry
        return None

    def create(self, snapshot: Dict[str, Any], title: str) -> str:
        """Store a new snapshot at the front of the collection and return its id."""
        entries = self._read()
        timestamp = self.clock()
        entry = LibraryEntry(
            id=new_entry_id(),
            title=title,
            data=copy.deepcopy(snapshot),
            created_at=timestamp,
            updated_at=timestamp,
        )
        entries.insert(0, entry)
        self._write(entries)

        logger.info("Created library entry %s (%s)", entry.id, title)
        return entry.id

    def update(self, entry_id: str, snapshot: Dict[str, Any], title: str) -> bool:
        """Replace an entry's data and title in place. Unknown ids are ignored."""
        entries = self._read()
        for entry in entries:
            if entry.id == entry_id:
                entry.data = copy.deepcopy(snapshot)
                entry.title = title
                entry.updated_at = self.clock()
                self._write(entries)
                logger.info("Updated library entry %s", entry_id)
                return True
        return False

    def duplicate(self, entry_id: str) -> Optional[str]:
        """Clone an entry under a new id at the front of the collection."""
        entries = self._read()
        source = next((entry for entry in entries if entry.id == entry_id), None)
        if source is None:
            return None

        timestamp = self.clock()
        clone = LibraryEntry(
            id=new_entry_id(),
            title=f"{source.title}{COPY_SUFFIX}",
            data=copy.deepcopy(source.data),
            created_at=timestamp,
            updated_at=timestamp,
        )
        entries.insert(0, clone)
        self._write(entries)

        logger.info("Duplicated library entry %s as %s", entry_id, clone.id)
        return clone.id

    def delete(self, entry_id: str) -> bool:
        """
        Remove an entry.

        Callers tracking the id of the entry being edited must drop that
        reference when it matches the deleted id.
        """
        entries = self._read()
        remaining = [entry for entry in entries if entry.id != entry_id]
        if len(remaining) == len(entries):
            return False

        self._write(remaining)
        logger.info("Deleted library entry %s", entry_id)
        return True

    def rename(self, entry_id: str, title: str) -> bool:
        """Change an entry's title. Unknown ids are ignored."""
        entries = self._read()
        for entry in entries:
            if entry.id == entry_id:
                entry.title = title
                entry.updated_at = self.clock()
                self._write(entries)
                return True
        return False
