"""
Core mapper functions for translating D&D Beyond JSON to the normalized character.

This module contains the mapping logic that converts DDB's nested JSON structure
into the target document's abilities, attributes, details, traits, currency and
spell slots. Each mapper function returns a (result, warnings) tuple to enable
graceful degradation.
"""

from __future__ import annotations

import logging

from ...models import (
    Attributes,
    Currency,
    Details,
    NormalizedCharacter,
    Traits,
    empty_slot_table,
)
from .extractors import (
    alignment_code,
    extract_abilities,
    extract_currency,
    extract_damage_traits,
    extract_hit_points,
    extract_languages,
    extract_movement,
    extract_proficiency_names,
    extract_skill_proficiencies,
    extract_spell_slots,
    find_caster_class,
    primary_spellcasting_ability,
    proficiency_bonus,
    size_code,
    total_level,
)
from .payload import DDBCharacter, DDBCharacterData
from .schema import (
    MODIFIER_TYPE_IMMUNITY,
    MODIFIER_TYPE_RESISTANCE,
    MODIFIER_TYPE_VULNERABILITY,
)

logger = logging.getLogger("ddb-importer")

DEFAULT_CHARACTER_NAME = "Imported Character"


def character_name(data: DDBCharacterData) -> str:
    return data.name or DEFAULT_CHARACTER_NAME


def map_details(data: DDBCharacterData) -> tuple[Details, list[str]]:
    """Map race name, background, alignment, level and experience.

    Args:
        data: The ``data`` object of the DDB character.

    Returns:
        Tuple of (details, warnings).
    """
    warnings: list[str] = []

    race = data.race
    race_name = (race.full_name or race.base_race_name) if race else ""
    background = ""
    if data.background and data.background.definition:
        background = data.background.definition.name

    level = total_level(data.classes)
    if not data.classes:
        warnings.append("No classes found, character level is 0")

    details = Details(
        race=race_name,
        background=background,
        alignment=alignment_code(data.alignment_id),
        level=level,
        xp=data.current_xp,
    )
    return details, warnings


def map_attributes(data: DDBCharacterData) -> tuple[Attributes, list[str]]:
    """Map hit points, armor class, movement, proficiency bonus and casting ability.

    Args:
        data: The ``data`` object of the DDB character.

    Returns:
        Tuple of (attributes, warnings).
    """
    warnings: list[str] = []

    hp = extract_hit_points(data)
    if hp.max <= 0:
        warnings.append("No base hit points found, hit points set to 0")

    attributes = Attributes(
        hp=hp,
        ac=data.armor_class or 10,
        movement=extract_movement(data),
        prof=proficiency_bonus(total_level(data.classes)),
        spellcasting=primary_spellcasting_ability(data.classes),
    )
    return attributes, warnings


def map_traits(data: DDBCharacterData) -> tuple[Traits, list[str]]:
    """Map size, damage immunities/resistances/vulnerabilities and languages.

    Only race modifiers contribute languages and damage traits.
    """
    warnings: list[str] = []
    race_modifiers = data.modifiers.race

    traits = Traits(
        size=size_code(data.race),
        di=extract_damage_traits(data, MODIFIER_TYPE_IMMUNITY),
        dr=extract_damage_traits(data, MODIFIER_TYPE_RESISTANCE),
        dv=extract_damage_traits(data, MODIFIER_TYPE_VULNERABILITY),
        languages=extract_languages(race_modifiers),
        proficiencies=extract_proficiency_names(race_modifiers),
    )
    return traits, warnings


def map_spell_slots(data: DDBCharacterData) -> tuple[dict, list[str]]:
    """Map the spell slot table from the first caster class."""
    warnings: list[str] = []
    casters = [cls for cls in data.classes if cls.definition and cls.definition.can_cast_spells]
    if len(casters) > 1:
        first = find_caster_class(data.classes)
        warnings.append(
            f"Multiple spellcasting classes found; spell slots use {first.definition.name} only"
        )
    return extract_spell_slots(data.classes), warnings


def map_ddb_to_character(character: DDBCharacter) -> tuple[NormalizedCharacter, list[str]]:
    """Orchestrate full DDB -> normalized character mapping.

    Calls all mapper functions and collects warnings. Always returns a valid
    NormalizedCharacter even if some sections fail; a failed section keeps its
    defaults and adds a warning.

    Args:
        character: Validated DDB character envelope.

    Returns:
        Tuple of (normalized character, warnings).
    """
    data = character.data
    all_warnings: list[str] = []
    result = NormalizedCharacter(name=character_name(data))

    try:
        result.abilities = extract_abilities(data)
    except Exception as e:
        all_warnings.append(f"Failed to map abilities: {e}")

    try:
        result.attributes, warnings = map_attributes(data)
        all_warnings.extend(warnings)
    except Exception as e:
        all_warnings.append(f"Failed to map attributes: {e}")

    try:
        result.details, warnings = map_details(data)
        all_warnings.extend(warnings)
    except Exception as e:
        all_warnings.append(f"Failed to map details: {e}")

    try:
        result.traits, warnings = map_traits(data)
        all_warnings.extend(warnings)
    except Exception as e:
        all_warnings.append(f"Failed to map traits: {e}")

    try:
        result.skills = extract_skill_proficiencies(data)
    except Exception as e:
        all_warnings.append(f"Failed to map skills: {e}")

    try:
        result.currency = extract_currency(data.currencies)
    except Exception as e:
        result.currency = Currency()
        all_warnings.append(f"Failed to map currency: {e}")

    try:
        result.spells, warnings = map_spell_slots(data)
        all_warnings.extend(warnings)
    except Exception as e:
        result.spells = empty_slot_table()
        all_warnings.append(f"Failed to map spell slots: {e}")

    for warning in all_warnings:
        logger.debug(f"Mapping warning for {result.name}: {warning}")

    return result, all_warnings
