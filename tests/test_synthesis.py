"""Tests for building content entries from DDB definitions."""

import pytest

from ddb_importer.importers.dndbeyond.payload import (
    DDBCharacterData,
    DDBClass,
    DDBFeatureDefinition,
    DDBInventoryItem,
    DDBItemDefinition,
    DDBRace,
    DDBSpell,
    DDBSpellDefinition,
)
from ddb_importer.importers.dndbeyond.synthesis import (
    ATTUNEMENT_ATTUNED,
    CLASS_FEATURE_IMG,
    FEAT_IMG,
    ITEM_IMG,
    RACE_IMG,
    apply_class_state,
    apply_item_state,
    apply_spell_state,
    synthesize,
    synthesize_class,
    synthesize_class_feature,
    synthesize_feat,
    synthesize_item,
    synthesize_race,
    synthesize_racial_trait,
    synthesize_spell,
)
from ddb_importer.models import ContentCategory, ContentEntry


@pytest.fixture
def data(sample_character_data) -> DDBCharacterData:
    return DDBCharacterData.model_validate(sample_character_data)


class TestSynthesizeItem:
    """Test item synthesis."""

    def test_weapon(self, data):
        """A weapon carries damage, action type and properties."""
        entry = synthesize_item(data.inventory[0])

        assert entry.name == "Dagger"
        assert entry.type == "weapon"
        assert entry.img == ITEM_IMG
        assert entry.system["quantity"] == 2
        assert entry.system["equipped"] is True
        assert entry.system["damage"]["parts"] == [["1d4", "piercing"]]
        assert entry.system["actionType"] == "mwak"
        assert entry.system["properties"] == {"fin": True, "lgt": True, "thr": True}
        assert entry.system["price"] == {"value": 2, "denomination": "gp"}

    def test_armor(self, data):
        """Armor gets an armor block typed from the definition."""
        entry = synthesize_item(data.inventory[1])

        assert entry.type == "equipment"
        assert entry.system["armor"] == {"value": 11, "type": "light"}
        assert "actionType" not in entry.system

    def test_avatar_url_used_as_image(self, data):
        """A definition avatar replaces the default image."""
        entry = synthesize_item(data.inventory[3])
        assert entry.img == "https://www.dndbeyond.com/avatars/wand.png"
        assert entry.system["rarity"] == "uncommon"

    def test_minimal_definition(self):
        """An item with only a name still synthesizes with defaults."""
        entry = synthesize_item(DDBInventoryItem(definition=DDBItemDefinition(name="Pebble")))

        assert entry.type == "loot"
        assert entry.system["damage"]["parts"] == []
        assert entry.system["rarity"] == "common"
        assert entry.system["attunement"] == 0
        assert "armor" not in entry.system


class TestSynthesizeSpell:
    """Test spell synthesis."""

    def test_attack_cantrip(self, data):
        """A ranged attack cantrip."""
        spell = data.class_spells[0].spells[0]
        entry = synthesize_spell(spell)

        assert entry.type == "spell"
        assert entry.system["level"] == 0
        assert entry.system["school"] == "evocation"
        assert entry.system["actionType"] == "rsak"
        assert entry.system["range"] == {"value": 120, "units": "ft"}
        assert entry.system["duration"] == {"value": None, "units": "inst"}
        assert entry.system["preparation"] == {"mode": "always", "prepared": False}

    def test_save_spell_with_area(self, data):
        """A save spell with materials and an area of effect."""
        entry = synthesize_spell(data.class_spells[0].spells[3])

        assert entry.system["actionType"] == "save"
        assert entry.system["save"]["ability"] == "dexterity"
        assert entry.system["target"] == {"value": 20, "type": "sphere"}
        assert entry.system["components"]["material"] is True
        assert entry.system["materials"]["value"] == "a tiny ball of bat guano and sulfur"

    def test_ritual_concentration(self, data):
        """Ritual and concentration flags are carried in components."""
        entry = synthesize_spell(data.class_spells[0].spells[4])

        assert entry.system["components"]["ritual"] is True
        assert entry.system["components"]["concentration"] is True
        assert entry.system["duration"] == {"value": 10, "units": "minute"}
        assert entry.system["range"]["units"] == "self"

    def test_minimal_definition(self):
        """A spell without optional blocks degrades to defaults."""
        entry = synthesize_spell(DDBSpell(definition=DDBSpellDefinition(name="Mystery")))

        assert entry.system["school"] == "evocation"
        assert entry.system["damage"]["parts"] == []
        assert entry.system["save"] == {"ability": "", "dc": None}
        assert entry.system["target"] == {"value": None, "type": ""}

    def test_missing_definition_raises(self):
        """A spell without a definition cannot be synthesized."""
        with pytest.raises(ValueError):
            synthesize_spell(DDBSpell())


class TestSynthesizeFeatures:
    """Test class feature, racial trait and feat synthesis."""

    def test_class_feature(self, data):
        """Class features carry activation, uses and the class requirement."""
        entry = synthesize_class_feature(data.classes[0].class_features[0].definition, "Wizard")

        assert entry.type == "feat"
        assert entry.img == CLASS_FEATURE_IMG
        assert entry.system["requirements"] == "Wizard"
        assert entry.system["type"] == {"value": "class"}
        assert entry.system["uses"] == {"value": 1, "max": 1, "per": "lr"}
        assert entry.system["activation"] == {"type": "", "cost": 1}

    def test_racial_trait(self, data):
        """Racial traits name the race as their requirement."""
        entry = synthesize_racial_trait(data.race.racial_traits[0].definition, "Hill Dwarf")

        assert entry.system["requirements"] == "Hill Dwarf"
        assert entry.system["type"] == {"value": "race"}

    def test_feat_without_limited_use(self):
        """Missing limitedUse degrades to null uses."""
        entry = synthesize_feat(DDBFeatureDefinition(name="Alert"))

        assert entry.img == FEAT_IMG
        assert entry.system["uses"] == {"value": None, "max": None, "per": None}


class TestSynthesizeClassAndRace:
    """Test class and race synthesis."""

    def test_class(self, data):
        """Class entries carry levels, hit dice and subclass."""
        entry = synthesize_class(data.classes[0])

        assert entry.name == "Wizard"
        assert entry.type == "class"
        assert entry.system["levels"] == 5
        assert entry.system["hitDice"] == "d6"
        assert entry.system["subclass"] == "School of Evocation"

    def test_race_default_image(self, data):
        """Races without a portrait get the default image."""
        entry = synthesize_race(data.race)

        assert entry.name == "Hill Dwarf"
        assert entry.img == RACE_IMG

    def test_dispatch(self, data):
        """synthesize() picks the builder from category and model."""
        assert synthesize(ContentCategory.RACE, data.race).type == "race"
        assert synthesize("item", data.inventory[0].definition).system["quantity"] == 1
        assert synthesize("feat", DDBFeatureDefinition(name="Rage"), owner="Barbarian").system["requirements"] == "Barbarian"

    def test_dispatch_rejects_mismatch(self):
        """A model that does not fit the category is rejected."""
        with pytest.raises(ValueError):
            synthesize(ContentCategory.SPELL, DDBRace(full_name="Elf"))


class TestApplyState:
    """Test per-character overrides on store entries."""

    def test_class_state(self):
        """Level and subclass are overridden; the original is untouched."""
        stored = ContentEntry(name="Wizard", type="class", system={"levels": 1, "subclass": "School of Illusion"})
        cls = DDBClass.model_validate({"level": 7, "definition": {"name": "Wizard"}})
        adjusted = apply_class_state(stored, cls)

        assert adjusted.system["levels"] == 7
        assert adjusted.system["subclass"] == ""
        assert stored.system["levels"] == 1

    def test_item_state(self):
        """Quantity, equipped and attunement reflect the character."""
        stored = ContentEntry(name="Ring of Protection", type="equipment", system={"quantity": 1})
        item = DDBInventoryItem(quantity=1, equipped=True, is_attuned=True)
        adjusted = apply_item_state(stored, item)

        assert adjusted.system["equipped"] is True
        assert adjusted.system["attunement"] == ATTUNEMENT_ATTUNED

    def test_spell_state(self):
        """Preparation comes from the character's spell list."""
        stored = ContentEntry(name="Shield", type="spell", system={"preparation": {"mode": "always", "prepared": True}})
        adjusted = apply_spell_state(stored, DDBSpell(prepared=False))

        assert adjusted.system["preparation"] == {"mode": "prepared", "prepared": False}
