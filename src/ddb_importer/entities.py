"""
Entity store: the host's character records and their attached entries.

The importer only needs find/create/update plus batch delete and attach of
embedded entries; ``InMemoryEntityStore`` and ``JsonEntityStore`` provide
those for tests and for the standalone server.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError
from shortuuid import random as shortuuid_random

from .models import ContentEntry

logger = logging.getLogger("ddb-importer")

CHARACTER_TYPE = "character"


class EntityStoreError(Exception):
    """Raised when the entity store cannot complete an operation."""
    pass


class EmbeddedEntry(BaseModel):
    """An entry attached to an entity."""
    id: str = Field(default_factory=lambda: shortuuid_random(length=16))
    name: str
    type: str
    img: str = ""
    system: dict[str, Any] = Field(default_factory=dict)
    flags: dict[str, Any] = Field(default_factory=dict)


class Entity(BaseModel):
    """A character record in the host application."""
    id: str = Field(default_factory=lambda: shortuuid_random(length=16))
    name: str
    type: str = CHARACTER_TYPE
    system: dict[str, Any] = Field(default_factory=dict)
    flags: dict[str, Any] = Field(default_factory=dict)
    items: list[EmbeddedEntry] = Field(default_factory=list)

    def get_flag(self, scope: str, key: str) -> Any:
        return self.flags.get(scope, {}).get(key)


def deep_merge(base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``update`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class EntityStore(ABC):
    """Host entity CRUD used by the import orchestrator."""

    @abstractmethod
    async def get(self, entity_id: str) -> Entity | None:
        ...

    @abstractmethod
    async def find_by_name_and_type(self, name: str, entity_type: str = CHARACTER_TYPE) -> Entity | None:
        """Exact (case-sensitive) name match among entities of ``entity_type``."""

    @abstractmethod
    async def _save(self, entity: Entity) -> None:
        ...

    async def _require(self, entity_id: str) -> Entity:
        entity = await self.get(entity_id)
        if entity is None:
            raise EntityStoreError(f"Entity not found: {entity_id}")
        return entity

    async def create(self, name: str, entity_type: str = CHARACTER_TYPE, flags: dict[str, Any] | None = None) -> Entity:
        entity = Entity(name=name, type=entity_type, flags=flags or {})
        await self._save(entity)
        logger.info(f"Created {entity_type} entity {name!r} ({entity.id})")
        return entity

    async def update(
        self,
        entity_id: str,
        system: dict[str, Any] | None = None,
        flags: dict[str, Any] | None = None,
        name: str | None = None,
    ) -> Entity:
        """Deep-merge ``system`` and ``flags`` into the entity."""
        entity = await self._require(entity_id)
        if system:
            entity.system = deep_merge(entity.system, system)
        if flags:
            entity.flags = deep_merge(entity.flags, flags)
        if name:
            entity.name = name
        await self._save(entity)
        return entity

    async def delete_embedded(self, entity_id: str, embedded_ids: list[str]) -> int:
        """Remove attached entries by id. Returns the number removed."""
        entity = await self._require(entity_id)
        doomed = set(embedded_ids)
        before = len(entity.items)
        entity.items = [item for item in entity.items if item.id not in doomed]
        await self._save(entity)
        return before - len(entity.items)

    async def create_embedded(self, entity_id: str, entries: list[ContentEntry]) -> list[EmbeddedEntry]:
        """Attach ``entries`` as one batch, in order."""
        entity = await self._require(entity_id)
        created = [EmbeddedEntry(**entry.to_document()) for entry in entries]
        entity.items.extend(created)
        await self._save(entity)
        return created


class InMemoryEntityStore(EntityStore):

    def __init__(self, entities: list[Entity] | None = None):
        self._entities: dict[str, Entity] = {e.id: e for e in entities or []}

    async def get(self, entity_id: str) -> Entity | None:
        entity = self._entities.get(entity_id)
        return entity.model_copy(deep=True) if entity else None

    async def find_by_name_and_type(self, name: str, entity_type: str = CHARACTER_TYPE) -> Entity | None:
        for entity in self._entities.values():
            if entity.name == name and entity.type == entity_type:
                return entity.model_copy(deep=True)
        return None

    async def _save(self, entity: Entity) -> None:
        self._entities[entity.id] = entity.model_copy(deep=True)

    def all(self) -> list[Entity]:
        return [e.model_copy(deep=True) for e in self._entities.values()]


class JsonEntityStore(EntityStore):
    """One ``<id>.json`` file per entity under ``directory``."""

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def _path(self, entity_id: str) -> Path:
        return self.directory / f"{entity_id}.json"

    def _read(self, path: Path) -> Entity | None:
        try:
            with path.open("r", encoding="utf-8") as f:
                return Entity.model_validate(json.load(f))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise EntityStoreError(f"Failed to read entity file {path}: {e}") from e

    async def get(self, entity_id: str) -> Entity | None:
        return self._read(self._path(entity_id))

    async def find_by_name_and_type(self, name: str, entity_type: str = CHARACTER_TYPE) -> Entity | None:
        if not self.directory.is_dir():
            return None
        for path in sorted(self.directory.glob("*.json")):
            entity = self._read(path)
            if entity and entity.name == name and entity.type == entity_type:
                return entity
        return None

    async def _save(self, entity: Entity) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with self._path(entity.id).open("w", encoding="utf-8") as f:
                json.dump(entity.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise EntityStoreError(f"Failed to write entity {entity.id}: {e}") from e

    def list_entities(self) -> list[Entity]:
        if not self.directory.is_dir():
            return []
        return [e for e in (self._read(p) for p in sorted(self.directory.glob("*.json"))) if e]
