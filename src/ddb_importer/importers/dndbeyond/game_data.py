"""
Reference store built from DDB bulk game data (items and classes).

The browser extension can copy ``compendiumData`` next to the character.
Those definitions become a read-only store searched after the declared
reference stores for the item and class categories.
"""

from __future__ import annotations

import logging

from ...compendium import InMemoryContentStore, StoreRegistry, names_match
from ...models import ContentCategory, ContentEntry
from .payload import DDBGameData
from .synthesis import synthesize_class_reference, synthesize_item_definition

logger = logging.getLogger("ddb-importer")

GAME_DATA_STORE_ID = "ddb.game-data"


def build_game_data_entries(game_data: DDBGameData) -> list[ContentEntry]:
    """Entries for every named item and class definition, first name wins."""
    entries: list[ContentEntry] = []
    for definition in game_data.items:
        if definition.name:
            entries.append(synthesize_item_definition(definition))
    for definition in game_data.classes:
        if definition.name:
            entries.append(synthesize_class_reference(definition))

    unique: list[ContentEntry] = []
    for entry in entries:
        if not any(names_match(entry.name, kept.name) and entry.type == kept.type for kept in unique):
            unique.append(entry)
    return unique


def register_game_data(
    registry: StoreRegistry,
    game_data: DDBGameData,
    store_id: str = GAME_DATA_STORE_ID,
) -> InMemoryContentStore:
    """Register (or replace) the game-data store and append it to item/class search order."""
    store = InMemoryContentStore(
        store_id,
        build_game_data_entries(game_data),
        label="D&D Beyond Game Data",
    )
    registry.register(store)
    registry.add_reference(ContentCategory.ITEM, store_id)
    registry.add_reference(ContentCategory.CLASS, store_id)
    logger.info(f"Registered {len(store)} game data entries as {store_id}")
    return store
