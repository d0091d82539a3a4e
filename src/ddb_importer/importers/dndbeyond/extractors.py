"""
Field extractors: pure functions deriving one normalized value from DDB data.

Each extractor reads the typed payload models and degrades to a stated
default (zero, empty, or a table fallback) when fields are absent.
"""

from __future__ import annotations

import math
from typing import Any, Iterable

from ...models import AbilityValue, Currency, HitPoints, Movement, SpellSlot, empty_slot_table
from .payload import (
    DDBActivation,
    DDBCharacterData,
    DDBClass,
    DDBCurrencies,
    DDBItemDefinition,
    DDBLimitedUse,
    DDBModifier,
    DDBRace,
    DDBSpeed,
    DDBSpellDefinition,
)
from .schema import (
    ABILITY_TABLE,
    ACTIVATION_TYPE_TABLE,
    ALIGNMENT_TABLE,
    AREA_SHAPE_TABLE,
    ARMOR_TYPE_TABLE,
    ATTACK_TYPE_MELEE,
    ATTACK_TYPE_RANGED,
    COMPONENT_MATERIAL,
    COMPONENT_SOMATIC,
    COMPONENT_VERBAL,
    DAMAGE_TYPE_TABLE,
    DURATION_UNIT_TABLE,
    ITEM_TYPE_DEFAULT,
    ITEM_TYPE_RULES,
    MODIFIER_TYPE_LANGUAGE,
    MODIFIER_TYPE_PROFICIENCY,
    RANGE_UNIT_TABLE,
    RARITY_TABLE,
    RESET_PERIOD_TABLE,
    SIZE_TABLE,
    SKILL_TABLE,
    SPELL_SCHOOL_TABLE,
    WEAPON_PROPERTY_TABLE,
    Ability,
    ItemType,
    SpellActionType,
)

DEFAULT_ABILITY_SCORE = 10
DEFAULT_WALK_SPEED = 30
DEFAULT_SPELLCASTING_ABILITY = Ability.INTELLIGENCE
DEFAULT_SAVE_ABILITY = Ability.DEXTERITY

# Full-caster spell slots by class level, keyed by spell level
FULL_CASTER_SLOTS: dict[int, dict[int, int]] = {
    1: {1: 2},
    2: {1: 3},
    3: {1: 4, 2: 2},
    4: {1: 4, 2: 3},
    5: {1: 4, 2: 3, 3: 2},
    6: {1: 4, 2: 3, 3: 3},
    7: {1: 4, 2: 3, 3: 3, 4: 1},
    8: {1: 4, 2: 3, 3: 3, 4: 2},
    9: {1: 4, 2: 3, 3: 3, 4: 3, 5: 1},
    10: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2},
    11: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1},
    12: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1},
    13: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1},
    14: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1},
    15: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1},
    16: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1},
    17: {1: 4, 2: 3, 3: 3, 4: 3, 5: 2, 6: 1, 7: 1, 8: 1, 9: 1},
    18: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 1, 7: 1, 8: 1, 9: 1},
    19: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 2, 7: 1, 8: 1, 9: 1},
    20: {1: 4, 2: 3, 3: 3, 4: 3, 5: 3, 6: 2, 7: 2, 8: 1, 9: 1},
}


# ---------------------------------------------------------------------------
# Abilities, level, proficiency
# ---------------------------------------------------------------------------


def extract_abilities(data: DDBCharacterData) -> dict[str, AbilityValue]:
    """Map stat entries (ids 1-6) to ability codes; unmapped ids are dropped."""
    abilities: dict[str, AbilityValue] = {}
    for stat in data.stats:
        ability = ABILITY_TABLE(stat.id)
        if ability is None:
            continue
        value = stat.value if stat.value else DEFAULT_ABILITY_SCORE
        abilities[ability.value] = AbilityValue(value=value)
    return abilities


def extract_hit_points(data: DDBCharacterData) -> HitPoints:
    """Current = base + bonus - removed (removed only when present); max = base + bonus."""
    maximum = data.base_hit_points + data.bonus_hit_points
    if data.removed_hit_points:
        current = maximum - data.removed_hit_points
    else:
        current = maximum
    return HitPoints(value=current, max=maximum, temp=data.temporary_hit_points)


def total_level(classes: Iterable[DDBClass]) -> int:
    return sum(cls.level or 0 for cls in classes)


def proficiency_bonus(level: int) -> int:
    return math.ceil(level / 4) + 1


def primary_spellcasting_ability(classes: Iterable[DDBClass]) -> str:
    """Ability of the first class definition carrying a spellcasting ability id."""
    for cls in classes:
        if cls.definition and cls.definition.spell_casting_ability_id:
            ability = ABILITY_TABLE(cls.definition.spell_casting_ability_id)
            return (ability or DEFAULT_SPELLCASTING_ABILITY).value
    return DEFAULT_SPELLCASTING_ABILITY.value


# ---------------------------------------------------------------------------
# Spell slots
# ---------------------------------------------------------------------------


def full_caster_slots(level: int) -> dict[int, SpellSlot]:
    """Slot table (spell levels 1-9) for a full caster of ``level``.

    Levels outside 1-20 yield an all-zero table.
    """
    table = empty_slot_table()
    for spell_level, count in FULL_CASTER_SLOTS.get(level, {}).items():
        table[spell_level] = SpellSlot(value=count, max=count)
    return table


def find_caster_class(classes: Iterable[DDBClass]) -> DDBClass | None:
    for cls in classes:
        if cls.definition and cls.definition.can_cast_spells:
            return cls
    return None


def extract_spell_slots(classes: list[DDBClass]) -> dict[int, SpellSlot]:
    """Slots from the first caster class found.

    Multiclass slot aggregation is not computed: only the first class with
    ``canCastSpells`` contributes, using its own level.
    """
    caster = find_caster_class(classes)
    if caster is None:
        return empty_slot_table()
    return full_caster_slots(caster.level)


# ---------------------------------------------------------------------------
# Traits
# ---------------------------------------------------------------------------


def extract_damage_traits(data: DDBCharacterData, modifier_type: str) -> list[str]:
    """Lower-cased display names of race modifiers whose ``type`` matches exactly."""
    return [
        mod.friendly_subtype_name.lower()
        for mod in data.modifiers.race
        if mod.type == modifier_type and mod.friendly_subtype_name
    ]


def extract_languages(modifiers: Iterable[DDBModifier]) -> list[str]:
    """Language names; DDB marks them either by ``type`` or by ``subType``."""
    languages: list[str] = []
    for mod in modifiers:
        is_language = MODIFIER_TYPE_LANGUAGE in (mod.type, mod.sub_type)
        if is_language and mod.friendly_subtype_name and mod.friendly_subtype_name not in languages:
            languages.append(mod.friendly_subtype_name)
    return languages


def extract_proficiency_names(modifiers: Iterable[DDBModifier]) -> list[str]:
    return [
        mod.friendly_subtype_name
        for mod in modifiers
        if mod.type == MODIFIER_TYPE_PROFICIENCY
        and mod.sub_type != MODIFIER_TYPE_LANGUAGE
        and mod.friendly_subtype_name
    ]


def extract_skill_proficiencies(data: DDBCharacterData) -> dict[str, int]:
    """Skill codes with proficiency granted by any modifier section."""
    skills: dict[str, int] = {}
    sections = data.modifiers
    for modifiers in (
        sections.race, sections.class_, sections.background,
        sections.item, sections.feat, sections.condition,
    ):
        for mod in modifiers:
            if mod.type != MODIFIER_TYPE_PROFICIENCY:
                continue
            skill = SKILL_TABLE(mod.sub_type)
            if skill is not None:
                skills[skill.value] = 1
    return skills


def size_code(race: DDBRace | None) -> str:
    if race is None:
        return SIZE_TABLE(None).value
    if race.size_id is not None:
        return SIZE_TABLE(race.size_id).value
    return SIZE_TABLE(race.size).value


def alignment_code(alignment_id: int | None) -> str:
    return ALIGNMENT_TABLE(alignment_id).value


# ---------------------------------------------------------------------------
# Movement and currency
# ---------------------------------------------------------------------------


def extract_movement(data: DDBCharacterData) -> Movement:
    speed = data.speed or DDBSpeed()
    race_walk = data.race.weight_speeds.normal.walk if data.race else 0
    return Movement(
        walk=speed.walk or race_walk or DEFAULT_WALK_SPEED,
        fly=speed.fly,
        swim=speed.swim,
        climb=speed.climb,
        burrow=speed.burrow,
        special=special_speeds(data.speed),
    )


def special_speeds(speed: DDBSpeed | None) -> str:
    """Human-readable non-walking speeds, e.g. ``"fly 30 ft., swim 20 ft."``."""
    if speed is None:
        return ""
    parts = []
    for mode in ("fly", "swim", "climb", "burrow"):
        value = getattr(speed, mode)
        if value:
            parts.append(f"{mode} {value} ft.")
    return ", ".join(parts)


def extract_currency(currencies: DDBCurrencies) -> Currency:
    return Currency(**currencies.model_dump())


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


def item_type(definition: DDBItemDefinition) -> ItemType:
    filter_type = definition.filter_type.lower()
    for needle, code in ITEM_TYPE_RULES:
        if needle in filter_type:
            return code
    return ITEM_TYPE_DEFAULT


def rarity_code(rarity: Any) -> str:
    return RARITY_TABLE(rarity).value


def weapon_properties(definition: DDBItemDefinition) -> dict[str, bool]:
    """Flags for recognised weapon properties; unknown names are ignored."""
    flags: dict[str, bool] = {}
    for prop in definition.properties:
        code = WEAPON_PROPERTY_TABLE(prop.name)
        if code is not None:
            flags[code.value] = True
    return flags


def armor_type(type_name: str | None) -> str:
    return ARMOR_TYPE_TABLE(type_name).value


def damage_type(name: str | None) -> str:
    return DAMAGE_TYPE_TABLE(name).value


def damage_parts(definition: DDBItemDefinition | DDBSpellDefinition) -> list[list[str]]:
    """``[[dice, damage type]]`` or an empty list when there is no damage."""
    if definition.damage is None:
        return []
    return [[definition.damage.dice_string, damage_type(definition.damage_type)]]


# ---------------------------------------------------------------------------
# Spells
# ---------------------------------------------------------------------------


def spell_school(school: str | None) -> str:
    return SPELL_SCHOOL_TABLE(school).value


def spell_components(definition: DDBSpellDefinition) -> dict[str, bool]:
    components = set(definition.components)
    return {
        "vocal": COMPONENT_VERBAL in components,
        "somatic": COMPONENT_SOMATIC in components,
        "material": COMPONENT_MATERIAL in components,
        "ritual": definition.ritual,
        "concentration": definition.concentration,
    }


def spell_action_type(definition: DDBSpellDefinition) -> str:
    if definition.attack_type == ATTACK_TYPE_MELEE:
        return SpellActionType.MELEE_SPELL_ATTACK.value
    if definition.attack_type == ATTACK_TYPE_RANGED:
        return SpellActionType.RANGED_SPELL_ATTACK.value
    if definition.save_dc_ability_id:
        return SpellActionType.SAVE.value
    return SpellActionType.UTILITY.value


def spell_save(definition: DDBSpellDefinition) -> dict[str, Any]:
    if not definition.save_dc_ability_id:
        return {"ability": "", "dc": None}
    ability = ABILITY_TABLE(definition.save_dc_ability_id) or DEFAULT_SAVE_ABILITY
    return {"ability": ability.value, "dc": None, "scaling": "spell"}


def spell_duration(definition: DDBSpellDefinition) -> dict[str, Any]:
    duration = definition.duration
    return {
        "value": duration.duration_interval if duration and duration.duration_interval else None,
        "units": DURATION_UNIT_TABLE(duration.duration_unit if duration else None).value,
    }


def spell_range(definition: DDBSpellDefinition) -> dict[str, Any]:
    rng = definition.range
    origin = rng.origin if rng else ""
    return {
        "value": rng.range_value if rng and rng.range_value else None,
        "units": RANGE_UNIT_TABLE(origin).value,
    }


def spell_target(definition: DDBSpellDefinition) -> dict[str, Any]:
    rng = definition.range
    return {
        "value": rng.aoe_value if rng and rng.aoe_value else None,
        "type": AREA_SHAPE_TABLE(rng.aoe_type if rng else None).value,
    }


# ---------------------------------------------------------------------------
# Features
# ---------------------------------------------------------------------------


def activation_type(activation: DDBActivation | None) -> str:
    if activation is None:
        return ACTIVATION_TYPE_TABLE(None).value
    return ACTIVATION_TYPE_TABLE(activation.activation_type).value


def feature_uses(limited_use: DDBLimitedUse | None) -> dict[str, Any]:
    """Uses block; ``{"value": None, "max": None, "per": None}`` without limits."""
    if limited_use is None:
        return {"value": None, "max": None, "per": None}
    per = RESET_PERIOD_TABLE(limited_use.reset_type)
    return {
        "value": limited_use.max_uses or None,
        "max": limited_use.max_uses or None,
        "per": per.value if per else None,
    }
