"""
Content stores: named, indexed collections of canonical entries.

A store is either the single writable custom store, where synthesized
entries are cached, or a read-only reference store (SRD packs, bulk game
data). Every operation is async so file- or network-backed stores fit the
same interface.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from shortuuid import random as shortuuid_random

from ..models import ContentEntry, IndexEntry

logger = logging.getLogger("ddb-importer")


class ContentStoreError(Exception):
    """Error reading from or writing to a content store."""
    pass


def new_document_id() -> str:
    return shortuuid_random(length=16)


class ContentStore(ABC):
    """Interface shared by all content stores."""

    def __init__(self, store_id: str, label: str | None = None, writable: bool = False):
        self.store_id = store_id
        self.label = label or store_id
        self.writable = writable

    @abstractmethod
    async def get_index(self) -> list[IndexEntry]:
        """Lightweight ``{id, name, type}`` rows for every entry."""

    @abstractmethod
    async def get_document(self, document_id: str) -> ContentEntry | None:
        """Full entry for ``document_id``, or None if absent."""

    @abstractmethod
    async def _insert(self, entry: ContentEntry) -> ContentEntry:
        """Store ``entry`` (already carrying a fresh id)."""

    async def create_document(self, data: dict[str, Any]) -> ContentEntry:
        """Create an entry from raw document data.

        Raises:
            ContentStoreError: If the store is read-only or the data is invalid.
        """
        try:
            entry = ContentEntry.model_validate(data)
        except ValidationError as e:
            raise ContentStoreError(f"Invalid document for {self.store_id}: {e}") from e
        return await self.import_document(entry)

    async def import_document(self, entry: ContentEntry) -> ContentEntry:
        """Copy an existing entry into this store under a new id.

        Raises:
            ContentStoreError: If the store is read-only.
        """
        if not self.writable:
            raise ContentStoreError(f"Content store {self.store_id} is read-only")
        stored = entry.model_copy(deep=True, update={"id": new_document_id(), "source": self.store_id})
        return await self._insert(stored)

    def __repr__(self) -> str:
        mode = "rw" if self.writable else "ro"
        return f"{type(self).__name__}({self.store_id!r}, {mode})"


class InMemoryContentStore(ContentStore):
    """Content store held in a dict; used for bulk game data and tests."""

    def __init__(
        self,
        store_id: str,
        entries: list[ContentEntry] | None = None,
        label: str | None = None,
        writable: bool = False,
    ):
        super().__init__(store_id, label=label, writable=writable)
        self._entries: dict[str, ContentEntry] = {}
        for entry in entries or []:
            document_id = entry.id or new_document_id()
            self._entries[document_id] = entry.model_copy(
                update={"id": document_id, "source": store_id}
            )

    def __len__(self) -> int:
        return len(self._entries)

    async def get_index(self) -> list[IndexEntry]:
        return [
            IndexEntry(id=document_id, name=entry.name, type=entry.type)
            for document_id, entry in self._entries.items()
        ]

    async def get_document(self, document_id: str) -> ContentEntry | None:
        entry = self._entries.get(document_id)
        return entry.model_copy(deep=True) if entry else None

    async def _insert(self, entry: ContentEntry) -> ContentEntry:
        self._entries[entry.id] = entry
        return entry.model_copy(deep=True)


class JsonContentStore(ContentStore):
    """
    Content store backed by a single pack file.

    JSON and YAML files are readable; writes go back to the same file in its
    own format. Expected file structure:
    ```json
    {
      "id": "dnd5e.spells",
      "label": "Spells (SRD)",
      "entries": [{"name": "Fire Bolt", "type": "spell", "system": {...}}]
    }
    ```
    A bare list of entries is also accepted.
    """

    SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}

    def __init__(
        self,
        path: Path | str,
        store_id: str | None = None,
        label: str | None = None,
        writable: bool = False,
    ):
        self.path = Path(path)
        if self.path.suffix.lower() not in self.SUPPORTED_EXTENSIONS:
            raise ContentStoreError(
                f"Unsupported pack format: {self.path.suffix}. "
                f"Supported: {', '.join(sorted(self.SUPPORTED_EXTENSIONS))}"
            )
        super().__init__(store_id or store_id_from_path(self.path), label=label, writable=writable)
        self._entries: dict[str, ContentEntry] | None = None

    @classmethod
    def from_file(cls, path: Path | str) -> "JsonContentStore":
        """Open an existing read-only pack, taking its id from the file when present."""
        store = cls(path)
        data = store._read_file()
        declared_id = data.get("id")
        if isinstance(declared_id, str) and declared_id:
            store.store_id = declared_id
        store.label = data.get("label") or store.store_id
        return store

    @property
    def is_yaml(self) -> bool:
        return self.path.suffix.lower() in {".yaml", ".yml"}

    def _read_file(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise ContentStoreError(f"Failed to read pack {self.path}: {e}") from e
        try:
            data = yaml.safe_load(raw) if self.is_yaml else json.loads(raw)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ContentStoreError(f"Failed to parse pack {self.path}: {e}") from e
        if data is None:
            return {}
        if isinstance(data, list):
            return {"entries": data}
        if not isinstance(data, dict):
            raise ContentStoreError(f"Pack {self.path} must be an object or a list of entries")
        return data

    def _load(self) -> dict[str, ContentEntry]:
        if self._entries is not None:
            return self._entries

        data = self._read_file()
        if data.get("label") and self.label == self.store_id:
            self.label = data["label"]

        entries: dict[str, ContentEntry] = {}
        for raw in data.get("entries", []):
            try:
                entry = ContentEntry.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping invalid entry in {self.path}: {e}")
                continue
            document_id = entry.id or new_document_id()
            entries[document_id] = entry.model_copy(update={"id": document_id, "source": self.store_id})

        self._entries = entries
        logger.debug(f"Loaded {len(entries)} entries from pack {self.store_id}")
        return entries

    def _save(self) -> None:
        entries = self._load()
        payload = {
            "id": self.store_id,
            "label": self.label,
            "entries": [entry.model_dump(exclude={"source"}) for entry in entries.values()],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                if self.is_yaml:
                    yaml.safe_dump(payload, f, sort_keys=False, allow_unicode=True)
                else:
                    json.dump(payload, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise ContentStoreError(f"Failed to write pack {self.path}: {e}") from e

    def initialize(self) -> None:
        """Write an empty pack file if none exists yet."""
        if not self.path.exists():
            self._entries = {}
            self._save()

    async def get_index(self) -> list[IndexEntry]:
        return [
            IndexEntry(id=document_id, name=entry.name, type=entry.type)
            for document_id, entry in self._load().items()
        ]

    async def get_document(self, document_id: str) -> ContentEntry | None:
        entry = self._load().get(document_id)
        return entry.model_copy(deep=True) if entry else None

    async def _insert(self, entry: ContentEntry) -> ContentEntry:
        entries = self._load()
        entries[entry.id] = entry
        try:
            self._save()
        except ContentStoreError:
            del entries[entry.id]
            raise
        return entry.model_copy(deep=True)


def store_id_from_path(path: Path) -> str:
    """Derive a store id from a pack filename: ``dnd5e_spells.json`` -> ``dnd5e.spells``."""
    return path.stem.replace("_", ".", 1).lower()
