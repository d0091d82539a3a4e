"""
D&D Beyond JSON schema constants and lookup tables.

These map DDB's internal IDs and display names to the codes used by the
target document schema. Every table is total: an unknown key resolves to the
table's documented default instead of raising.
Based on community reverse-engineering of the v5 character-service endpoint.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, Generic, Hashable, TypeVar

# ---------------------------------------------------------------------------
# API endpoints
# ---------------------------------------------------------------------------

DDB_API_BASE_URL = "https://character-service.dndbeyond.com/character/v5/character"
DDB_GAME_DATA_BASE_URL = "https://character-service.dndbeyond.com/character/v5/game-data"
DDB_SITE_URL = "https://www.dndbeyond.com"
DDB_COOKIE_NAME = "CobaltSession"

# ---------------------------------------------------------------------------
# URL parsing
# ---------------------------------------------------------------------------

# Matches: https://www.dndbeyond.com/characters/12345678[/anything]
DDB_CHARACTER_URL_PATTERN = re.compile(
    r"(?:https?://)?(?:www\.)?dndbeyond\.com/characters/(\d+)"
)

# ---------------------------------------------------------------------------
# Code enums
# ---------------------------------------------------------------------------


class Ability(str, Enum):
    STRENGTH = "strength"
    DEXTERITY = "dexterity"
    CONSTITUTION = "constitution"
    INTELLIGENCE = "intelligence"
    WISDOM = "wisdom"
    CHARISMA = "charisma"


class Alignment(str, Enum):
    LAWFUL_GOOD = "lg"
    NEUTRAL_GOOD = "ng"
    CHAOTIC_GOOD = "cg"
    LAWFUL_NEUTRAL = "ln"
    TRUE_NEUTRAL = "tn"
    CHAOTIC_NEUTRAL = "cn"
    LAWFUL_EVIL = "le"
    NEUTRAL_EVIL = "ne"
    CHAOTIC_EVIL = "ce"
    NONE = ""


class Size(str, Enum):
    TINY = "tiny"
    SMALL = "sm"
    MEDIUM = "med"
    LARGE = "lg"
    HUGE = "huge"
    GARGANTUAN = "grg"


class Rarity(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    VERY_RARE = "veryRare"
    LEGENDARY = "legendary"
    ARTIFACT = "artifact"


class SpellSchool(str, Enum):
    ABJURATION = "abjuration"
    CONJURATION = "conjuration"
    DIVINATION = "divination"
    ENCHANTMENT = "enchantment"
    EVOCATION = "evocation"
    ILLUSION = "illusion"
    NECROMANCY = "necromancy"
    TRANSMUTATION = "transmutation"


class DurationUnit(str, Enum):
    INSTANTANEOUS = "inst"
    TURN = "turn"
    ROUND = "round"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"


class RangeUnit(str, Enum):
    SELF = "self"
    TOUCH = "touch"
    FEET = "ft"


class AreaShape(str, Enum):
    SPHERE = "sphere"
    CUBE = "cube"
    CONE = "cone"
    LINE = "line"
    CYLINDER = "cylinder"
    NONE = ""


class ActivationType(str, Enum):
    ACTION = "action"
    BONUS = "bonus"
    REACTION = "reaction"
    MINUTE = "minute"
    HOUR = "hour"
    NONE = ""


class ResetPeriod(str, Enum):
    SHORT_REST = "sr"
    LONG_REST = "lr"
    DAY = "day"


class ArmorType(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"
    SHIELD = "shield"


class ItemType(str, Enum):
    WEAPON = "weapon"
    EQUIPMENT = "equipment"
    CONSUMABLE = "consumable"
    LOOT = "loot"


class WeaponProperty(str, Enum):
    FINESSE = "fin"
    VERSATILE = "ver"
    LIGHT = "lgt"
    HEAVY = "hvy"
    REACH = "rch"
    THROWN = "thr"
    TWO_HANDED = "two"
    AMMUNITION = "amm"
    LOADING = "lod"


class Skill(str, Enum):
    ACROBATICS = "acr"
    ANIMAL_HANDLING = "ani"
    ARCANA = "arc"
    ATHLETICS = "ath"
    DECEPTION = "dec"
    HISTORY = "his"
    INSIGHT = "ins"
    INTIMIDATION = "itm"
    INVESTIGATION = "inv"
    MEDICINE = "med"
    NATURE = "nat"
    PERCEPTION = "prc"
    PERFORMANCE = "prf"
    PERSUASION = "per"
    RELIGION = "rel"
    SLEIGHT_OF_HAND = "slt"
    STEALTH = "ste"
    SURVIVAL = "sur"


class DamageType(str, Enum):
    ACID = "acid"
    BLUDGEONING = "bludgeoning"
    COLD = "cold"
    FIRE = "fire"
    FORCE = "force"
    LIGHTNING = "lightning"
    NECROTIC = "necrotic"
    PIERCING = "piercing"
    POISON = "poison"
    PSYCHIC = "psychic"
    RADIANT = "radiant"
    SLASHING = "slashing"
    THUNDER = "thunder"
    NONE = ""


class SpellActionType(str, Enum):
    MELEE_SPELL_ATTACK = "msak"
    RANGED_SPELL_ATTACK = "rsak"
    MELEE_WEAPON_ATTACK = "mwak"
    SAVE = "save"
    UTILITY = "util"


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

T = TypeVar("T")


def normalize_key(key: Any) -> Hashable | None:
    """Normalize a raw DDB id or display name into a table key.

    Integers (and digit strings) stay numeric; names are compared without
    case, spaces, hyphens or underscores so "Very Rare", "very-rare" and
    "veryRare" all collapse to the same key.
    """
    if key is None or isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    if isinstance(key, float) and key.is_integer():
        return int(key)
    if isinstance(key, str):
        text = key.strip()
        if text.isdigit():
            return int(text)
        return re.sub(r"[\s_\-]+", "", text).casefold()
    return None


class LookupTable(Generic[T]):
    """A total mapping from DDB ids/names to target codes.

    Args:
        name: Table name used by :func:`code_for`.
        mapping: Raw keys (ids or names) to codes. Keys are normalized.
        default: Value returned for unknown or missing keys.
    """

    def __init__(self, name: str, mapping: dict[Any, T], default: T):
        self.name = name
        self.default = default
        self._mapping: dict[Hashable, T] = {}
        for raw_key, code in mapping.items():
            self._mapping[normalize_key(raw_key)] = code

    def __call__(self, key: Any) -> T:
        return self._mapping.get(normalize_key(key), self.default)

    def __contains__(self, key: Any) -> bool:
        return normalize_key(key) in self._mapping

    def __repr__(self) -> str:
        return f"LookupTable({self.name!r}, {len(self._mapping)} keys, default={self.default!r})"


ABILITY_TABLE = LookupTable[Ability | None](
    "ability",
    {
        1: Ability.STRENGTH,
        2: Ability.DEXTERITY,
        3: Ability.CONSTITUTION,
        4: Ability.INTELLIGENCE,
        5: Ability.WISDOM,
        6: Ability.CHARISMA,
    },
    default=None,
)

ALIGNMENT_TABLE = LookupTable[Alignment](
    "alignment",
    {
        1: Alignment.LAWFUL_GOOD,
        2: Alignment.NEUTRAL_GOOD,
        3: Alignment.CHAOTIC_GOOD,
        4: Alignment.LAWFUL_NEUTRAL,
        5: Alignment.TRUE_NEUTRAL,
        6: Alignment.CHAOTIC_NEUTRAL,
        7: Alignment.LAWFUL_EVIL,
        8: Alignment.NEUTRAL_EVIL,
        9: Alignment.CHAOTIC_EVIL,
    },
    default=Alignment.NONE,
)

SIZE_TABLE = LookupTable[Size](
    "size",
    {
        2: Size.TINY,
        3: Size.SMALL,
        4: Size.MEDIUM,
        5: Size.LARGE,
        6: Size.HUGE,
        7: Size.GARGANTUAN,
        "Tiny": Size.TINY,
        "Small": Size.SMALL,
        "Medium": Size.MEDIUM,
        "Large": Size.LARGE,
        "Huge": Size.HUGE,
        "Gargantuan": Size.GARGANTUAN,
    },
    default=Size.MEDIUM,
)

RARITY_TABLE = LookupTable[Rarity](
    "rarity",
    {
        1: Rarity.COMMON,
        2: Rarity.UNCOMMON,
        3: Rarity.RARE,
        4: Rarity.VERY_RARE,
        5: Rarity.LEGENDARY,
        6: Rarity.ARTIFACT,
        "Common": Rarity.COMMON,
        "Uncommon": Rarity.UNCOMMON,
        "Rare": Rarity.RARE,
        "Very Rare": Rarity.VERY_RARE,
        "Legendary": Rarity.LEGENDARY,
        "Artifact": Rarity.ARTIFACT,
    },
    default=Rarity.COMMON,
)

SPELL_SCHOOL_TABLE = LookupTable[SpellSchool](
    "spell_school",
    {
        "Abjuration": SpellSchool.ABJURATION,
        "Conjuration": SpellSchool.CONJURATION,
        "Divination": SpellSchool.DIVINATION,
        "Enchantment": SpellSchool.ENCHANTMENT,
        "Evocation": SpellSchool.EVOCATION,
        "Illusion": SpellSchool.ILLUSION,
        "Necromancy": SpellSchool.NECROMANCY,
        "Transmutation": SpellSchool.TRANSMUTATION,
    },
    default=SpellSchool.EVOCATION,
)

DURATION_UNIT_TABLE = LookupTable[DurationUnit](
    "duration_unit",
    {
        "Minute": DurationUnit.MINUTE,
        "Hour": DurationUnit.HOUR,
        "Day": DurationUnit.DAY,
        "Round": DurationUnit.ROUND,
        "Turn": DurationUnit.TURN,
    },
    default=DurationUnit.INSTANTANEOUS,
)

RANGE_UNIT_TABLE = LookupTable[RangeUnit](
    "range_unit",
    {
        "Self": RangeUnit.SELF,
        "Touch": RangeUnit.TOUCH,
    },
    default=RangeUnit.FEET,
)

AREA_SHAPE_TABLE = LookupTable[AreaShape](
    "area_shape",
    {
        1: AreaShape.SPHERE,
        2: AreaShape.CUBE,
        3: AreaShape.CONE,
        4: AreaShape.LINE,
        5: AreaShape.CYLINDER,
        "Sphere": AreaShape.SPHERE,
        "Cube": AreaShape.CUBE,
        "Cone": AreaShape.CONE,
        "Line": AreaShape.LINE,
        "Cylinder": AreaShape.CYLINDER,
    },
    default=AreaShape.NONE,
)

ACTIVATION_TYPE_TABLE = LookupTable[ActivationType](
    "activation_type",
    {
        1: ActivationType.ACTION,
        2: ActivationType.BONUS,
        3: ActivationType.REACTION,
        4: ActivationType.MINUTE,
        6: ActivationType.HOUR,
    },
    default=ActivationType.NONE,
)

RESET_PERIOD_TABLE = LookupTable[ResetPeriod | None](
    "reset_period",
    {
        1: ResetPeriod.SHORT_REST,
        2: ResetPeriod.LONG_REST,
        3: ResetPeriod.DAY,
    },
    default=None,
)

ARMOR_TYPE_TABLE = LookupTable[ArmorType](
    "armor_type",
    {
        "Light Armor": ArmorType.LIGHT,
        "Medium Armor": ArmorType.MEDIUM,
        "Heavy Armor": ArmorType.HEAVY,
        "Shield": ArmorType.SHIELD,
    },
    default=ArmorType.LIGHT,
)

WEAPON_PROPERTY_TABLE = LookupTable[WeaponProperty | None](
    "weapon_property",
    {
        "Finesse": WeaponProperty.FINESSE,
        "Versatile": WeaponProperty.VERSATILE,
        "Light": WeaponProperty.LIGHT,
        "Heavy": WeaponProperty.HEAVY,
        "Reach": WeaponProperty.REACH,
        "Thrown": WeaponProperty.THROWN,
        "Two-Handed": WeaponProperty.TWO_HANDED,
        "Ammunition": WeaponProperty.AMMUNITION,
        "Loading": WeaponProperty.LOADING,
    },
    default=None,
)

# DDB skill ids and modifier subType slugs both resolve to a skill code
SKILL_TABLE = LookupTable[Skill | None](
    "skill",
    {
        3: Skill.ACROBATICS,
        4: Skill.ANIMAL_HANDLING,
        12: Skill.ARCANA,
        2: Skill.ATHLETICS,
        16: Skill.DECEPTION,
        6: Skill.HISTORY,
        13: Skill.INSIGHT,
        17: Skill.INTIMIDATION,
        5: Skill.INVESTIGATION,
        14: Skill.MEDICINE,
        8: Skill.NATURE,
        9: Skill.PERCEPTION,
        18: Skill.PERFORMANCE,
        15: Skill.PERSUASION,
        7: Skill.RELIGION,
        11: Skill.SLEIGHT_OF_HAND,
        10: Skill.STEALTH,
        1: Skill.SURVIVAL,
        "acrobatics": Skill.ACROBATICS,
        "animal-handling": Skill.ANIMAL_HANDLING,
        "arcana": Skill.ARCANA,
        "athletics": Skill.ATHLETICS,
        "deception": Skill.DECEPTION,
        "history": Skill.HISTORY,
        "insight": Skill.INSIGHT,
        "intimidation": Skill.INTIMIDATION,
        "investigation": Skill.INVESTIGATION,
        "medicine": Skill.MEDICINE,
        "nature": Skill.NATURE,
        "perception": Skill.PERCEPTION,
        "performance": Skill.PERFORMANCE,
        "persuasion": Skill.PERSUASION,
        "religion": Skill.RELIGION,
        "sleight-of-hand": Skill.SLEIGHT_OF_HAND,
        "stealth": Skill.STEALTH,
        "survival": Skill.SURVIVAL,
    },
    default=None,
)

DAMAGE_TYPE_TABLE = LookupTable[DamageType](
    "damage_type",
    {member.value: member for member in DamageType if member.value},
    default=DamageType.NONE,
)

# Ordered substring rules over an item definition's ``filterType``
ITEM_TYPE_RULES: tuple[tuple[str, ItemType], ...] = (
    ("weapon", ItemType.WEAPON),
    ("armor", ItemType.EQUIPMENT),
    ("potion", ItemType.CONSUMABLE),
    ("scroll", ItemType.CONSUMABLE),
    ("wondrous", ItemType.LOOT),
)
ITEM_TYPE_DEFAULT = ItemType.LOOT

TABLES: dict[str, LookupTable] = {
    table.name: table
    for table in (
        ABILITY_TABLE,
        ALIGNMENT_TABLE,
        SIZE_TABLE,
        RARITY_TABLE,
        SPELL_SCHOOL_TABLE,
        DURATION_UNIT_TABLE,
        RANGE_UNIT_TABLE,
        AREA_SHAPE_TABLE,
        ACTIVATION_TYPE_TABLE,
        RESET_PERIOD_TABLE,
        ARMOR_TYPE_TABLE,
        WEAPON_PROPERTY_TABLE,
        SKILL_TABLE,
        DAMAGE_TYPE_TABLE,
    )
}


def code_for(table_name: str, key: Any) -> Any:
    """Look up ``key`` in the named table, falling back to its default.

    Args:
        table_name: One of the names in :data:`TABLES`.
        key: Raw DDB id or display name (may be ``None``).

    Returns:
        The mapped code, or the table's default for unknown keys.

    Raises:
        KeyError: If ``table_name`` is not a known table.
    """
    return TABLES[table_name](key)


# ---------------------------------------------------------------------------
# Modifier types used in DDB's modifiers sections
# ---------------------------------------------------------------------------

MODIFIER_TYPE_PROFICIENCY = "proficiency"
MODIFIER_TYPE_LANGUAGE = "language"
MODIFIER_TYPE_IMMUNITY = "immunity"
MODIFIER_TYPE_RESISTANCE = "resistance"
MODIFIER_TYPE_VULNERABILITY = "vulnerability"

# Modifier source sections in DDB JSON
MODIFIER_SECTIONS = ("race", "class", "background", "item", "feat", "condition")

# DDB spell component ids
COMPONENT_VERBAL = 1
COMPONENT_SOMATIC = 2
COMPONENT_MATERIAL = 3

# DDB spell attack types
ATTACK_TYPE_MELEE = 1
ATTACK_TYPE_RANGED = 2
