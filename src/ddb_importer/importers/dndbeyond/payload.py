"""
Typed view over the D&D Beyond character JSON and the clipboard envelope.

DDB payloads are partially populated and freely use ``null``. Every model here
drops ``null`` values before validation so the field defaults apply, which
gives each accessor a stated default instead of ad-hoc ``.get()`` chains.
Unknown keys are ignored.
"""

from __future__ import annotations

import json
from typing import Any, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..base import ImportError


def _nested_model(annotation: Any) -> type[BaseModel] | None:
    """The model class of a ``Model`` or ``Model | None`` annotation."""
    for candidate in (annotation, *get_args(annotation)):
        if get_origin(candidate) is None and isinstance(candidate, type) and issubclass(candidate, BaseModel):
            return candidate
    return None


def _coerce_shape(annotation: Any, value: Any) -> Any:
    """Return ``value`` if its shape fits ``annotation``, else None (field dropped).

    A list where one object is expected contributes its first object, as DDB
    sends ``limitedUse`` both ways.
    """
    if get_origin(annotation) is list:
        return value if isinstance(value, list) else None
    if _nested_model(annotation) is None:
        return value
    if isinstance(value, list):
        value = next((item for item in value if isinstance(item, dict)), None)
    return value if isinstance(value, (dict, BaseModel)) else None


class DDBModel(BaseModel):
    """Base for all DDB payload models: camelCase aliases, nulls become defaults.

    Nested objects and lists of the wrong shape are treated as absent, so one
    malformed optional section does not reject the whole character.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        annotations = {}
        for name, info in cls.model_fields.items():
            annotations[name] = info.annotation
            if info.alias:
                annotations[info.alias] = info.annotation
        cleaned = {}
        for key, value in data.items():
            if key in annotations and value is not None:
                value = _coerce_shape(annotations[key], value)
            if value is not None:
                cleaned[key] = value
        return cleaned


# ---------------------------------------------------------------------------
# Shared pieces
# ---------------------------------------------------------------------------


class DDBStat(DDBModel):
    id: int = 0
    value: int | None = None


class DDBModifier(DDBModel):
    type: str = ""
    sub_type: str = Field(default="", alias="subType")
    friendly_subtype_name: str = Field(default="", alias="friendlySubtypeName")
    friendly_type_name: str = Field(default="", alias="friendlyTypeName")
    value: int | None = None


class DDBModifiers(DDBModel):
    race: list[DDBModifier] = Field(default_factory=list)
    class_: list[DDBModifier] = Field(default_factory=list, alias="class")
    background: list[DDBModifier] = Field(default_factory=list)
    item: list[DDBModifier] = Field(default_factory=list)
    feat: list[DDBModifier] = Field(default_factory=list)
    condition: list[DDBModifier] = Field(default_factory=list)


class DDBSpeed(DDBModel):
    walk: int = 0
    fly: int = 0
    swim: int = 0
    climb: int = 0
    burrow: int = 0


class DDBActivation(DDBModel):
    activation_time: int | None = Field(default=None, alias="activationTime")
    activation_type: int | None = Field(default=None, alias="activationType")


class DDBLimitedUse(DDBModel):
    max_uses: int | None = Field(default=None, alias="maxUses")
    reset_type: int | None = Field(default=None, alias="resetType")


class DDBDamage(DDBModel):
    dice_string: str = Field(default="", alias="diceString")


class DDBNamedProperty(DDBModel):
    name: str = ""


class DDBCurrencies(DDBModel):
    cp: int = 0
    sp: int = 0
    ep: int = 0
    gp: int = 0
    pp: int = 0


# ---------------------------------------------------------------------------
# Classes and features
# ---------------------------------------------------------------------------


class DDBFeatureDefinition(DDBModel):
    name: str = ""
    description: str = ""
    activation: DDBActivation | None = None
    limited_use: DDBLimitedUse | None = Field(default=None, alias="limitedUse")


class DDBClassFeature(DDBModel):
    definition: DDBFeatureDefinition | None = None


class DDBSubclassDefinition(DDBModel):
    name: str = ""


class DDBClassDefinition(DDBModel):
    name: str = ""
    description: str = ""
    hit_dice: int = Field(default=8, alias="hitDice")
    portrait_avatar_url: str = Field(default="", alias="portraitAvatarUrl")
    spell_casting_ability_id: int | None = Field(default=None, alias="spellCastingAbilityId")
    can_cast_spells: bool = Field(default=False, alias="canCastSpells")


class DDBClass(DDBModel):
    level: int = 0
    definition: DDBClassDefinition | None = None
    subclass_definition: DDBSubclassDefinition | None = Field(
        default=None, alias="subclassDefinition"
    )
    class_features: list[DDBClassFeature] = Field(default_factory=list, alias="classFeatures")


# ---------------------------------------------------------------------------
# Race
# ---------------------------------------------------------------------------


class DDBWeightSpeeds(DDBModel):
    normal: DDBSpeed = Field(default_factory=DDBSpeed)


class DDBRacialTrait(DDBModel):
    name: str = ""
    definition: DDBFeatureDefinition | None = None


class DDBRace(DDBModel):
    full_name: str = Field(default="", alias="fullName")
    base_race_name: str = Field(default="", alias="baseRaceName")
    description: str = ""
    portrait_avatar_url: str = Field(default="", alias="portraitAvatarUrl")
    size: str = ""
    size_id: int | None = Field(default=None, alias="sizeId")
    racial_traits: list[DDBRacialTrait] = Field(default_factory=list, alias="racialTraits")
    weight_speeds: DDBWeightSpeeds = Field(default_factory=DDBWeightSpeeds, alias="weightSpeeds")


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


class DDBItemDefinition(DDBModel):
    name: str = ""
    description: str = ""
    type: str = ""
    filter_type: str = Field(default="", alias="filterType")
    avatar_url: str = Field(default="", alias="avatarUrl")
    weight: float = 0
    cost: float = 0
    rarity: int | str | None = None
    requires_attunement: bool = Field(default=False, alias="requiresAttunement")
    damage: DDBDamage | None = None
    damage_type: str = Field(default="", alias="damageType")
    armor_class: int | None = Field(default=None, alias="armorClass")
    properties: list[DDBNamedProperty] = Field(default_factory=list)


class DDBInventoryItem(DDBModel):
    quantity: int = 1
    equipped: bool = False
    is_attuned: bool = Field(default=False, alias="isAttuned")
    definition: DDBItemDefinition | None = None


# ---------------------------------------------------------------------------
# Spells
# ---------------------------------------------------------------------------


class DDBSpellDuration(DDBModel):
    duration_interval: int | None = Field(default=None, alias="durationInterval")
    duration_unit: str | None = Field(default=None, alias="durationUnit")


class DDBSpellRange(DDBModel):
    origin: str = ""
    range_value: int | None = Field(default=None, alias="rangeValue")
    aoe_type: int | str | None = Field(default=None, alias="aoeType")
    aoe_value: int | None = Field(default=None, alias="aoeValue")


class DDBSpellDefinition(DDBModel):
    name: str = ""
    description: str = ""
    level: int = 0
    school: str = ""
    components: list[int] = Field(default_factory=list)
    components_description: str = Field(default="", alias="componentsDescription")
    ritual: bool = False
    concentration: bool = False
    attack_type: int | None = Field(default=None, alias="attackType")
    save_dc_ability_id: int | None = Field(default=None, alias="saveDcAbilityId")
    damage: DDBDamage | None = None
    damage_type: str = Field(default="", alias="damageType")
    duration: DDBSpellDuration | None = None
    range: DDBSpellRange | None = None


class DDBSpell(DDBModel):
    prepared: bool = False
    always_prepared: bool = Field(default=False, alias="alwaysPrepared")
    definition: DDBSpellDefinition | None = None


class DDBClassSpells(DDBModel):
    character_class_id: int | None = Field(default=None, alias="characterClassId")
    spells: list[DDBSpell] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Feats, background, character
# ---------------------------------------------------------------------------


class DDBFeat(DDBModel):
    definition: DDBFeatureDefinition | None = None


class DDBBackgroundDefinition(DDBModel):
    name: str = ""


class DDBBackground(DDBModel):
    definition: DDBBackgroundDefinition | None = None


class DDBCharacterData(DDBModel):
    """The ``data`` object of a v5 character-service response."""

    id: int | None = None
    name: str = ""
    stats: list[DDBStat] = Field(default_factory=list)
    base_hit_points: int = Field(default=0, alias="baseHitPoints")
    bonus_hit_points: int = Field(default=0, alias="bonusHitPoints")
    removed_hit_points: int | None = Field(default=None, alias="removedHitPoints")
    temporary_hit_points: int = Field(default=0, alias="temporaryHitPoints")
    armor_class: int | None = Field(default=None, alias="armorClass")
    speed: DDBSpeed | None = None
    current_xp: int = Field(default=0, alias="currentXp")
    alignment_id: int | None = Field(default=None, alias="alignmentId")
    background: DDBBackground | None = None
    currencies: DDBCurrencies = Field(default_factory=DDBCurrencies)
    modifiers: DDBModifiers = Field(default_factory=DDBModifiers)
    race: DDBRace | None = None
    classes: list[DDBClass] = Field(default_factory=list)
    inventory: list[DDBInventoryItem] = Field(default_factory=list)
    class_spells: list[DDBClassSpells] = Field(default_factory=list, alias="classSpells")
    feats: list[DDBFeat] = Field(default_factory=list)


class DDBCharacter(DDBModel):
    """A character-service response envelope, ``{"id", "success", "data"}``."""

    id: int | None = None
    success: bool = True
    message: str = ""
    data: DDBCharacterData = Field(default_factory=DDBCharacterData)

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_data(cls, data: Any) -> Any:
        # Exported files are sometimes the bare ``data`` object
        if isinstance(data, dict) and "data" not in data and ("stats" in data or "classes" in data):
            return {"data": data}
        return data


class DDBGameData(DDBModel):
    """Bulk reference data copied alongside a character."""

    items: list[DDBItemDefinition] = Field(default_factory=list)
    classes: list[DDBClassDefinition] = Field(default_factory=list)


class ClipboardPayload(DDBModel):
    """The JSON blob the browser extension copies to the clipboard."""

    character_data: DDBCharacter = Field(alias="characterData")
    character_url: str | None = Field(default=None, alias="characterUrl")
    character_id: str | None = Field(default=None, alias="characterId")
    cobalt_cookie: str | None = Field(default=None, alias="cobaltCookie")
    timestamp: str | None = None
    compendium_data: DDBGameData | None = Field(default=None, alias="compendiumData")

    @model_validator(mode="before")
    @classmethod
    def _stringify_character_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("characterId"), int):
            data = {**data, "characterId": str(data["characterId"])}
        return data


INVALID_FORMAT_MESSAGE = (
    "Invalid data format. Please use 'Copy Character Data' from the extension."
)


def parse_clipboard_payload(raw: str | bytes | dict) -> ClipboardPayload:
    """Parse pasted clipboard text (or an already-decoded dict) into a payload.

    Args:
        raw: JSON text, bytes, or a decoded mapping.

    Returns:
        The validated ClipboardPayload.

    Raises:
        ImportError: If the input is empty, not JSON, not an object, lacks
            ``characterData``, or fails validation.
    """
    if isinstance(raw, (str, bytes)):
        if not raw or not raw.strip():
            raise ImportError("Please paste character data from the D&D Beyond extension.")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ImportError(f"{INVALID_FORMAT_MESSAGE} ({e})") from None
    else:
        data = raw

    if not isinstance(data, dict) or not data.get("characterData"):
        raise ImportError(INVALID_FORMAT_MESSAGE)

    try:
        return ClipboardPayload.model_validate(data)
    except ValidationError as e:
        raise ImportError(f"{INVALID_FORMAT_MESSAGE} ({e.error_count()} invalid fields: {e})") from None


def parse_character(raw: dict) -> DDBCharacter:
    """Validate a character-service response (enveloped or bare).

    Raises:
        ImportError: If the data cannot be validated.
    """
    try:
        return DDBCharacter.model_validate(raw)
    except ValidationError as e:
        raise ImportError(f"Invalid character data from D&D Beyond: {e}") from None
