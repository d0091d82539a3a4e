"""Tests for name resolution across content stores."""

from unittest.mock import AsyncMock

import pytest

from ddb_importer.compendium import (
    ContentResolver,
    ContentStoreError,
    InMemoryContentStore,
    StoreRegistry,
    find_in_index,
)
from ddb_importer.config import ImporterConfig
from ddb_importer.models import ContentCategory, ContentEntry, IndexEntry


@pytest.fixture
def config() -> ImporterConfig:
    return ImporterConfig(custom_store_id="world.custom")


@pytest.fixture
def registry(config) -> StoreRegistry:
    registry = StoreRegistry(config)
    registry.register(InMemoryContentStore(
        "dnd5e.items",
        [ContentEntry(name="Longsword", type="weapon", system={"source": "srd"})],
    ))
    registry.register(InMemoryContentStore(
        "dnd5e.tradegoods",
        [
            ContentEntry(name="Longsword", type="loot", system={"source": "tradegoods"}),
            ContentEntry(name="Silk", type="loot"),
        ],
    ))
    registry.register(InMemoryContentStore(
        "dnd5e.spells",
        [ContentEntry(name="Fire Bolt", type="spell")],
    ))
    return registry


class TestFindInIndex:
    """Test index matching."""

    def test_case_insensitive_exact_match(self):
        """Names match ignoring case but not partially."""
        index = [IndexEntry(id="1", name="Fire Bolt", type="spell")]

        assert find_in_index(index, "FIRE BOLT").id == "1"
        assert find_in_index(index, "Fire") is None

    def test_category_filters_type(self):
        """A category only accepts matching document types."""
        index = [
            IndexEntry(id="1", name="Shield", type="spell"),
            IndexEntry(id="2", name="Shield", type="equipment"),
        ]

        assert find_in_index(index, "shield", ContentCategory.ITEM).id == "2"
        assert find_in_index(index, "shield", ContentCategory.SPELL).id == "1"

    def test_feat_accepts_any_type(self):
        """Feats tolerate loosely typed entries."""
        index = [IndexEntry(id="1", name="Darkvision", type="race")]
        assert find_in_index(index, "darkvision", ContentCategory.FEAT).id == "1"


class TestContentResolver:
    """Test resolution order and miss handling."""

    @pytest.mark.asyncio
    async def test_reference_order_first_match_wins(self, registry):
        """The first declared reference store with the name wins."""
        entry = await ContentResolver(registry).resolve("longsword", ContentCategory.ITEM)

        assert entry.source == "dnd5e.items"
        assert entry.system["source"] == "srd"

    @pytest.mark.asyncio
    async def test_custom_store_searched_first(self, registry):
        """A custom-store entry shadows reference stores."""
        registry.register(InMemoryContentStore(
            "world.custom",
            [ContentEntry(name="Longsword", type="weapon", system={"source": "custom"})],
            writable=True,
        ))
        entry = await ContentResolver(registry).resolve("Longsword", "item")

        assert entry.source == "world.custom"
        assert entry.system["source"] == "custom"

    @pytest.mark.asyncio
    async def test_custom_store_type_filter(self, registry):
        """A custom entry of the wrong type does not satisfy the category."""
        registry.register(InMemoryContentStore(
            "world.custom",
            [ContentEntry(name="Fire Bolt", type="loot")],
            writable=True,
        ))
        entry = await ContentResolver(registry).resolve("Fire Bolt", ContentCategory.SPELL)

        assert entry.source == "dnd5e.spells"

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, registry):
        """No match anywhere is a normal None result."""
        assert await ContentResolver(registry).resolve("Vorpal Sword", ContentCategory.ITEM) is None

    @pytest.mark.asyncio
    async def test_empty_name_returns_none(self, registry):
        """An empty name never resolves."""
        assert await ContentResolver(registry).resolve("", ContentCategory.ITEM) is None

    @pytest.mark.asyncio
    async def test_resolve_is_idempotent(self, registry):
        """Two resolves without writes in between return equal entries."""
        resolver = ContentResolver(registry)
        first = await resolver.resolve("Silk", ContentCategory.ITEM)
        second = await resolver.resolve("Silk", ContentCategory.ITEM)

        assert first == second
        assert first is not second

    @pytest.mark.asyncio
    async def test_returned_entry_is_a_copy(self, registry):
        """Mutating a resolved entry does not change the store."""
        resolver = ContentResolver(registry)
        first = await resolver.resolve("Longsword", ContentCategory.ITEM)
        first.system["source"] = "mutated"

        second = await resolver.resolve("Longsword", ContentCategory.ITEM)
        assert second.system["source"] == "srd"

    @pytest.mark.asyncio
    async def test_unregistered_reference_store_skipped(self, config):
        """Declared but missing stores are skipped."""
        registry = StoreRegistry(config)
        registry.register(InMemoryContentStore("dnd5e.tradegoods", [ContentEntry(name="Silk", type="loot")]))

        entry = await ContentResolver(registry).resolve("Silk", ContentCategory.ITEM)
        assert entry.source == "dnd5e.tradegoods"

    @pytest.mark.asyncio
    async def test_failing_custom_store_falls_through(self, registry):
        """A custom store read error is logged and reference stores are used."""
        custom = InMemoryContentStore("world.custom", writable=True)
        custom.get_index = AsyncMock(side_effect=ContentStoreError("disk gone"))
        registry.register(custom)

        entry = await ContentResolver(registry).resolve("Fire Bolt", ContentCategory.SPELL)
        assert entry.source == "dnd5e.spells"

    @pytest.mark.asyncio
    async def test_runtime_reference_store(self, registry):
        """Stores appended to a category at runtime are searched last."""
        registry.register(InMemoryContentStore("ddb.game-data", [ContentEntry(name="Bag of Holding", type="loot")]))
        registry.add_reference(ContentCategory.ITEM, "ddb.game-data")

        entry = await ContentResolver(registry).resolve("bag of holding", ContentCategory.ITEM)
        assert entry.source == "ddb.game-data"
