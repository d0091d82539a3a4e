"""
Build canonical-shaped content entries from raw DDB definitions.

Used when no store holds a matching entry. Builders only read the typed
payload models through the field extractors, so a definition missing any
optional block (damage, armor, components, limited use) still yields a
complete entry with documented defaults.

The ``apply_*`` helpers adjust a copy of a store entry with per-character
state (class levels, item quantity, spell preparation).
"""

from __future__ import annotations

from ...models import ContentCategory, ContentEntry
from .extractors import (
    activation_type,
    armor_type,
    damage_parts,
    feature_uses,
    item_type,
    rarity_code,
    spell_action_type,
    spell_components,
    spell_duration,
    spell_range,
    spell_save,
    spell_school,
    spell_target,
    weapon_properties,
)
from .payload import (
    DDBClass,
    DDBClassDefinition,
    DDBFeatureDefinition,
    DDBInventoryItem,
    DDBItemDefinition,
    DDBRace,
    DDBSpell,
)
from .schema import SpellActionType

CLASS_IMG = "icons/svg/book.svg"
RACE_IMG = "icons/svg/mystery-man.svg"
ITEM_IMG = "icons/svg/item-bag.svg"
SPELL_IMG = "icons/svg/book.svg"
CLASS_FEATURE_IMG = "icons/svg/aura.svg"
RACIAL_TRAIT_IMG = "icons/svg/pawprint.svg"
FEAT_IMG = "icons/svg/upgrade.svg"

ATTUNEMENT_REQUIRED = 1
ATTUNEMENT_ATTUNED = 2


def _description(text: str) -> dict[str, str]:
    return {"value": text or ""}


# ---------------------------------------------------------------------------
# Classes and race
# ---------------------------------------------------------------------------


def synthesize_class(cls: DDBClass) -> ContentEntry:
    definition = cls.definition or DDBClassDefinition()
    return ContentEntry(
        name=definition.name,
        type=ContentCategory.CLASS.document_type,
        img=definition.portrait_avatar_url or CLASS_IMG,
        system={
            "description": _description(definition.description),
            "levels": cls.level or 1,
            "hitDice": f"d{definition.hit_dice or 8}",
            "hitDiceUsed": 0,
            "subclass": cls.subclass_definition.name if cls.subclass_definition else "",
        },
    )


def synthesize_class_reference(definition: DDBClassDefinition) -> ContentEntry:
    """Class entry from bulk game data (no character level attached)."""
    return synthesize_class(DDBClass(level=1, definition=definition))


def synthesize_race(race: DDBRace) -> ContentEntry:
    return ContentEntry(
        name=race.full_name,
        type=ContentCategory.RACE.document_type,
        img=race.portrait_avatar_url or RACE_IMG,
        system={"description": _description(race.description)},
    )


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


def synthesize_item_definition(definition: DDBItemDefinition) -> ContentEntry:
    """Item entry from a definition alone (quantity 1, unequipped)."""
    return synthesize_item(DDBInventoryItem(definition=definition))


def synthesize_item(item: DDBInventoryItem) -> ContentEntry:
    definition = item.definition or DDBItemDefinition()
    system: dict = {
        "description": _description(definition.description),
        "quantity": item.quantity or 1,
        "weight": definition.weight or 0,
        "price": {"value": definition.cost or 0, "denomination": "gp"},
        "equipped": item.equipped,
        "identified": True,
        "rarity": rarity_code(definition.rarity),
        "attunement": ATTUNEMENT_REQUIRED if definition.requires_attunement else 0,
        "damage": {"parts": damage_parts(definition), "versatile": ""},
    }

    if definition.damage is not None:
        system["actionType"] = SpellActionType.MELEE_WEAPON_ATTACK.value
        system["properties"] = weapon_properties(definition)

    if definition.armor_class is not None:
        system["armor"] = {
            "value": definition.armor_class,
            "type": armor_type(definition.type),
        }

    return ContentEntry(
        name=definition.name,
        type=item_type(definition).value,
        img=definition.avatar_url or ITEM_IMG,
        system=system,
    )


# ---------------------------------------------------------------------------
# Spells
# ---------------------------------------------------------------------------


def spell_preparation(spell: DDBSpell) -> dict:
    return {
        "mode": "always" if spell.always_prepared else "prepared",
        "prepared": spell.prepared,
    }


def synthesize_spell(spell: DDBSpell) -> ContentEntry:
    definition = spell.definition
    if definition is None:
        raise ValueError("Spell has no definition")
    return ContentEntry(
        name=definition.name,
        type=ContentCategory.SPELL.document_type,
        img=SPELL_IMG,
        system={
            "description": _description(definition.description),
            "level": definition.level,
            "school": spell_school(definition.school),
            "components": spell_components(definition),
            "materials": {"value": definition.components_description},
            "preparation": spell_preparation(spell),
            "actionType": spell_action_type(definition),
            "damage": {"parts": damage_parts(definition)},
            "save": spell_save(definition),
            "duration": spell_duration(definition),
            "range": spell_range(definition),
            "target": spell_target(definition),
        },
    )


# ---------------------------------------------------------------------------
# Features
# ---------------------------------------------------------------------------


def synthesize_class_feature(definition: DDBFeatureDefinition, class_name: str) -> ContentEntry:
    activation = definition.activation
    return ContentEntry(
        name=definition.name,
        type=ContentCategory.FEAT.document_type,
        img=CLASS_FEATURE_IMG,
        system={
            "description": _description(definition.description),
            "activation": {
                "type": activation_type(activation),
                "cost": activation.activation_time if activation else None,
            },
            "uses": feature_uses(definition.limited_use),
            "requirements": class_name,
            "type": {"value": "class"},
        },
    )


def synthesize_racial_trait(definition: DDBFeatureDefinition, race_name: str) -> ContentEntry:
    return ContentEntry(
        name=definition.name,
        type=ContentCategory.FEAT.document_type,
        img=RACIAL_TRAIT_IMG,
        system={
            "description": _description(definition.description),
            "uses": feature_uses(definition.limited_use),
            "requirements": race_name,
            "type": {"value": "race"},
        },
    )


def synthesize_feat(definition: DDBFeatureDefinition) -> ContentEntry:
    return ContentEntry(
        name=definition.name,
        type=ContentCategory.FEAT.document_type,
        img=FEAT_IMG,
        system={
            "description": _description(definition.description),
            "uses": feature_uses(definition.limited_use),
            "type": {"value": "feat"},
        },
    )


# ---------------------------------------------------------------------------
# Per-character adjustments of store entries
# ---------------------------------------------------------------------------


def apply_class_state(entry: ContentEntry, cls: DDBClass) -> ContentEntry:
    adjusted = entry.copy_for_attachment()
    adjusted.system["levels"] = cls.level or 1
    # Cached classes may carry another character's subclass
    adjusted.system["subclass"] = cls.subclass_definition.name if cls.subclass_definition else ""
    return adjusted


def apply_item_state(entry: ContentEntry, item: DDBInventoryItem) -> ContentEntry:
    adjusted = entry.copy_for_attachment()
    adjusted.system["quantity"] = item.quantity or 1
    adjusted.system["equipped"] = item.equipped
    if item.is_attuned:
        adjusted.system["attunement"] = ATTUNEMENT_ATTUNED
    return adjusted


def apply_spell_state(entry: ContentEntry, spell: DDBSpell) -> ContentEntry:
    adjusted = entry.copy_for_attachment()
    adjusted.system["preparation"] = spell_preparation(spell)
    return adjusted


def synthesize(category: ContentCategory | str, definition, owner: str = "") -> ContentEntry:
    """Build an entry of ``category`` from the matching DDB model.

    Args:
        category: Target category.
        definition: ``DDBClass``/``DDBClassDefinition`` for classes, ``DDBRace``
            for races, ``DDBInventoryItem``/``DDBItemDefinition`` for items,
            ``DDBSpell`` for spells, ``DDBFeatureDefinition`` for feats.
        owner: For feats, the class or race granting the feature. When empty
            the feature is built as a standalone feat.

    Raises:
        ValueError: If ``definition`` does not fit ``category``.
    """
    category = ContentCategory(category)
    if category is ContentCategory.CLASS:
        if isinstance(definition, DDBClassDefinition):
            return synthesize_class_reference(definition)
        if isinstance(definition, DDBClass):
            return synthesize_class(definition)
    elif category is ContentCategory.RACE and isinstance(definition, DDBRace):
        return synthesize_race(definition)
    elif category is ContentCategory.ITEM:
        if isinstance(definition, DDBItemDefinition):
            return synthesize_item_definition(definition)
        if isinstance(definition, DDBInventoryItem):
            return synthesize_item(definition)
    elif category is ContentCategory.SPELL and isinstance(definition, DDBSpell):
        return synthesize_spell(definition)
    elif category is ContentCategory.FEAT and isinstance(definition, DDBFeatureDefinition):
        if owner:
            return synthesize_class_feature(definition, owner)
        return synthesize_feat(definition)
    raise ValueError(f"Cannot synthesize {category.value} from {type(definition).__name__}")
