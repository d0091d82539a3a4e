"""Tests for the end-to-end character import pipeline."""

from unittest.mock import AsyncMock

import pytest

from ddb_importer.compendium import ContentResolver, InMemoryContentStore, StoreRegistry
from ddb_importer.config import ImporterConfig
from ddb_importer.entities import EmbeddedEntry, Entity, InMemoryEntityStore
from ddb_importer.importers.base import ImportError, ImportStep
from ddb_importer.models import ContentCategory, ContentEntry
from ddb_importer.notifications import CollectingNotifier, NoticeLevel
from ddb_importer.orchestrator import ImportOrchestrator


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def config(tmp_path) -> ImporterConfig:
    return ImporterConfig(data_dir=tmp_path)


@pytest.fixture
def registry(config) -> StoreRegistry:
    return StoreRegistry(config)


@pytest.fixture
def entities() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture
def orchestrator(entities, registry, notifier) -> ImportOrchestrator:
    return ImportOrchestrator(entities, registry, notifier=notifier)


def _names(entity: Entity, entry_type: str | None = None) -> list[str]:
    return [item.name for item in entity.items if entry_type is None or item.type == entry_type]


# ============================================================================
# Rejection
# ============================================================================

class TestRejectedPayloads:
    """Invalid input stops before anything is written."""

    @pytest.mark.asyncio
    async def test_missing_character_data(self, orchestrator, entities, notifier):
        """A payload without characterData fails at PARSE."""
        with pytest.raises(ImportError) as exc_info:
            await orchestrator.import_payload({})

        assert exc_info.value.step is ImportStep.PARSE
        assert exc_info.value.character_name is None
        assert entities.all() == []
        assert notifier.notices[-1].level is NoticeLevel.ERROR
        assert notifier.messages[-1].startswith("Import failed: ")

    @pytest.mark.asyncio
    async def test_empty_text(self, orchestrator, entities):
        """Blank clipboard text fails at PARSE."""
        with pytest.raises(ImportError) as exc_info:
            await orchestrator.import_payload("   ")

        assert exc_info.value.step is ImportStep.PARSE
        assert entities.all() == []

    @pytest.mark.asyncio
    async def test_missing_target(self, orchestrator, sample_payload, entities):
        """An explicit target that does not exist fails at TARGET."""
        with pytest.raises(ImportError) as exc_info:
            await orchestrator.import_payload(sample_payload, target_id="missing")

        assert exc_info.value.step is ImportStep.TARGET
        assert "Target character not found" in str(exc_info.value)
        assert entities.all() == []


# ============================================================================
# Full Import
# ============================================================================

class TestFullImport:
    """Import of the fixture character into empty stores."""

    @pytest.mark.asyncio
    async def test_counts_and_attachments(self, orchestrator, sample_payload, entities):
        """Every category is synthesized and attached in one pass."""
        result = await orchestrator.import_payload(sample_payload)

        assert result.created is True
        assert result.entity_name == "Brenna Ironfoot"
        assert result.counts.classes == 1
        assert result.counts.race == 1
        assert result.counts.items == 4
        assert result.counts.spells == 5
        assert result.counts.features == 5
        assert result.resolved == []
        assert len(result.synthesized) == 16

        entity = await entities.get(result.entity_id)
        assert len(entity.items) == 16
        assert _names(entity, "class") == ["Wizard"]
        assert _names(entity, "race") == ["Hill Dwarf"]
        assert _names(entity, "spell") == ["Fire Bolt", "Magic Missile", "Shield", "Fireball", "Detect Magic"]

    @pytest.mark.asyncio
    async def test_system_data_and_flags(self, orchestrator, sample_payload, entities):
        """The computed document and sync flags land on the entity."""
        result = await orchestrator.import_payload(sample_payload)
        entity = await entities.get(result.entity_id)

        assert entity.system["details"]["level"] == 5
        assert entity.system["details"]["race"] == "Hill Dwarf"
        assert entity.system["attributes"]["ac"] == {"value": 12}
        assert entity.system["attributes"]["movement"]["walk"] == 25
        assert entity.system["traits"]["languages"]["value"] == ["Common", "Dwarvish"]

        flags = entity.flags["ddb-importer"]
        assert flags["characterId"] == "12345678"
        assert flags["characterUrl"] == sample_payload["characterUrl"]
        assert flags["lastSync"]
        assert result.source_id == "12345678"

    @pytest.mark.asyncio
    async def test_synthesized_entries_are_cached(self, orchestrator, sample_payload, registry):
        """Every synthesized entry is written to the custom store once."""
        result = await orchestrator.import_payload(sample_payload)

        index = await registry.custom_store.get_index()
        assert len(index) == 16
        assert sorted(result.cached) == sorted(row.name for row in index)
        assert {"Wizard", "Hill Dwarf", "Dagger", "Fireball", "War Caster"} <= {row.name for row in index}

    @pytest.mark.asyncio
    async def test_notifications(self, orchestrator, sample_payload, notifier):
        """Each stage boundary reports progress."""
        await orchestrator.import_payload(sample_payload)

        assert notifier.messages == [
            "Importing character...",
            "Imported 1 class(es)",
            "Imported race: Hill Dwarf",
            "Imported 4 items",
            "Imported 5 spells",
            "Imported 5 features and traits",
            "Created character: Brenna Ironfoot",
            'Character "Brenna Ironfoot" imported successfully!',
        ]
        assert notifier.notices[-1].level is NoticeLevel.SUCCESS


# ============================================================================
# Re-import
# ============================================================================

class TestReimport:
    """Importing onto an existing character."""

    @pytest.mark.asyncio
    async def test_existing_entries_replaced(self, registry, notifier, sample_payload):
        """Old attachments are removed so exactly the new set remains."""
        existing = Entity(
            name="Brenna Ironfoot",
            items=[EmbeddedEntry(name=f"Old Item {i}", type="loot") for i in range(10)],
        )
        entities = InMemoryEntityStore([existing])
        orchestrator = ImportOrchestrator(entities, registry, notifier=notifier)

        result = await orchestrator.import_payload(sample_payload)

        assert result.created is False
        assert result.entity_id == existing.id
        entity = await entities.get(existing.id)
        assert len(entity.items) == 16
        assert not any(name.startswith("Old Item") for name in _names(entity))
        assert "Cleared 10 previously imported entries" in notifier.messages
        assert "Updated character: Brenna Ironfoot" in notifier.messages

    @pytest.mark.asyncio
    async def test_second_import_resolves_from_cache(self, orchestrator, sample_payload, entities, registry):
        """A repeated import reuses cached entries and does not grow the cache."""
        first = await orchestrator.import_payload(sample_payload)
        second = await orchestrator.import_payload(sample_payload)

        assert second.entity_id == first.entity_id
        assert second.created is False
        assert "Dagger" in second.resolved
        assert "Fireball" in second.resolved
        assert second.cached == []
        assert len(await registry.custom_store.get_index()) == 16
        assert len(entities.all()) == 1
        assert len((await entities.get(second.entity_id)).items) == 16

    @pytest.mark.asyncio
    async def test_explicit_target(self, entities, registry, sample_payload):
        """target_id imports onto that entity even when names differ."""
        sheet = await entities.create("Unnamed Sheet")
        orchestrator = ImportOrchestrator(entities, registry)

        result = await orchestrator.import_payload(sample_payload, target_id=sheet.id)

        assert result.entity_id == sheet.id
        assert result.created is False


# ============================================================================
# Compendium Hits
# ============================================================================

class TestCompendiumResolution:
    """Reference store entries are preferred and adjusted per character."""

    @pytest.mark.asyncio
    async def test_reference_entries_with_overrides(self, orchestrator, sample_payload, registry, entities):
        """Quantity, attunement, preparation and class level come from the character."""
        registry.register(InMemoryContentStore("dnd5e.items", [
            ContentEntry(name="Potion of Healing", type="consumable", system={"quantity": 1, "source": "srd"}),
        ]))
        registry.register(InMemoryContentStore("dnd5e.spells", [
            ContentEntry(name="Fire Bolt", type="spell", system={"source": "srd"}),
        ]))
        registry.register(InMemoryContentStore("dnd5e.classes", [
            ContentEntry(name="Wizard", type="class", system={"levels": 1, "subclass": "Necromancy"}),
        ]))

        result = await orchestrator.import_payload(sample_payload)

        assert {"Potion of Healing", "Fire Bolt", "Wizard"} <= set(result.resolved)
        assert "Potion of Healing" not in result.cached
        entity = await entities.get(result.entity_id)
        by_name = {item.name: item for item in entity.items}

        assert by_name["Potion of Healing"].system["quantity"] == 3
        assert by_name["Potion of Healing"].system["source"] == "srd"
        assert by_name["Fire Bolt"].system["preparation"]["mode"] == "always"
        assert by_name["Wizard"].system["levels"] == 5
        assert by_name["Wizard"].system["subclass"] == "School of Evocation"

        srd_class = await registry.get("dnd5e.classes").get_document(
            (await registry.get("dnd5e.classes").get_index())[0].id
        )
        assert srd_class.system["levels"] == 1


# ============================================================================
# Failures
# ============================================================================

class TestFailures:
    """Stage failures and non-fatal cache problems."""

    @pytest.mark.asyncio
    async def test_apply_failure_names_step(self, entities, registry, notifier, sample_payload):
        """An entity store error during apply fails the APPLY step."""
        entities.create_embedded = AsyncMock(side_effect=RuntimeError("store offline"))
        orchestrator = ImportOrchestrator(entities, registry, notifier=notifier)

        with pytest.raises(ImportError) as exc_info:
            await orchestrator.import_payload(sample_payload)

        assert exc_info.value.step is ImportStep.APPLY
        assert "store offline" in str(exc_info.value)
        assert notifier.messages[-1] == "Import failed: store offline"
        assert "Imported 5 features and traits" in notifier.messages
        assert exc_info.value.character_name == "Brenna Ironfoot"

    @pytest.mark.asyncio
    async def test_cache_failure_is_a_warning(self, entities, registry, sample_payload):
        """A failing custom store still completes the import."""
        store = registry.ensure_custom_store()
        store.import_document = AsyncMock(side_effect=OSError("disk full"))
        orchestrator = ImportOrchestrator(entities, registry)

        result = await orchestrator.import_payload(sample_payload)

        assert result.counts.total == 16
        assert result.cached == []
        assert any("Failed to save Dagger to custom compendium: disk full" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_unexpected_cache_error_is_a_warning(self, entities, registry, sample_payload):
        """A store raising something other than a storage error still completes the import."""
        store = registry.ensure_custom_store()
        store.import_document = AsyncMock(side_effect=RuntimeError("backend down"))
        orchestrator = ImportOrchestrator(entities, registry)

        result = await orchestrator.import_payload(sample_payload)

        assert result.counts.total == 16
        assert result.cached == []
        assert any("Failed to save Dagger to custom compendium: backend down" in w for w in result.warnings)

    @pytest.mark.asyncio
    async def test_unavailable_cache_warns_once(self, entities, sample_payload, tmp_path, monkeypatch):
        """Without a custom store the warning is recorded once."""
        registry = StoreRegistry(ImporterConfig(data_dir=tmp_path))
        monkeypatch.setattr(registry, "ensure_custom_store", lambda: None)
        orchestrator = ImportOrchestrator(entities, registry)

        result = await orchestrator.import_payload(sample_payload)

        assert result.counts.total == 16
        unavailable = [w for w in result.warnings if "not available" in w]
        assert len(unavailable) == 1


# ============================================================================
# Game Data
# ============================================================================

class TestCompendiumData:
    """Bulk game data shipped in the payload."""

    @pytest.mark.asyncio
    async def test_game_data_used_for_lookups(self, orchestrator, sample_payload, registry):
        """Items in compendiumData resolve from the game-data store."""
        sample_payload["compendiumData"] = {
            "items": [{"name": "Dagger", "filterType": "Weapon", "description": "From game data"}],
            "classes": [],
        }

        result = await orchestrator.import_payload(sample_payload)

        assert "Dagger" in result.resolved
        assert "Dagger" not in result.cached
        assert registry.get("ddb.game-data") is None

    @pytest.mark.asyncio
    async def test_game_data_scoped_to_one_import(self, orchestrator, sample_payload, registry):
        """A later import without compendiumData does not see earlier game data."""
        with_game_data = {**sample_payload, "compendiumData": {"items": [{"name": "Moonblade", "filterType": "Weapon"}]}}
        await orchestrator.import_payload(with_game_data)

        assert "ddb.game-data" not in registry.reference_order(ContentCategory.ITEM)
        assert await ContentResolver(registry).resolve("Moonblade", ContentCategory.ITEM) is None


# ============================================================================
# Loose Payload Shapes
# ============================================================================

class TestLoosePayloadShapes:
    """Optional sections DDB sends in an unexpected shape."""

    @pytest.mark.asyncio
    async def test_empty_limited_use_list(self, orchestrator, sample_payload, entities):
        """``limitedUse: []`` imports the feature without usage limits."""
        feature = sample_payload["characterData"]["data"]["classes"][0]["classFeatures"][0]
        feature["definition"]["limitedUse"] = []

        result = await orchestrator.import_payload(sample_payload)
        entity = await entities.get(result.entity_id)

        recovery = next(item for item in entity.items if item.name == "Arcane Recovery")
        assert recovery.system["uses"] == {"value": None, "max": None, "per": None}
        assert result.counts.total == 16
