"""
Data models for the importer: content entries and the normalized character.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ContentCategory(str, Enum):
    """Lookup categories understood by the content resolver."""
    ITEM = "item"
    SPELL = "spell"
    FEAT = "feat"
    CLASS = "class"
    RACE = "race"

    @property
    def document_type(self) -> str:
        """Document ``type`` that entries of this category carry in a store."""
        return _CATEGORY_DOCUMENT_TYPES[self]

    def accepts(self, document_type: str) -> bool:
        """Whether a custom-store entry of ``document_type`` can satisfy this category.

        Feats accept any type, since racial traits and class features are
        stored loosely.
        """
        if self is ContentCategory.FEAT:
            return True
        if self is ContentCategory.ITEM:
            return document_type in ITEM_DOCUMENT_TYPES
        return document_type == self.document_type


_CATEGORY_DOCUMENT_TYPES = {
    ContentCategory.ITEM: "equipment",
    ContentCategory.SPELL: "spell",
    ContentCategory.FEAT: "feat",
    ContentCategory.CLASS: "class",
    ContentCategory.RACE: "race",
}

ITEM_DOCUMENT_TYPES = frozenset(
    {"weapon", "equipment", "consumable", "loot", "tool", "container", "backpack"}
)


class IndexEntry(BaseModel):
    """One row of a content store index."""
    id: str
    name: str
    type: str = ""


class ContentEntry(BaseModel):
    """A named, typed canonical document (class, race, spell, item, feat)."""
    id: str | None = Field(default=None, description="Document id inside its store")
    name: str
    type: str
    img: str = ""
    system: dict[str, Any] = Field(default_factory=dict)
    flags: dict[str, Any] = Field(default_factory=dict)
    source: str | None = Field(
        default=None,
        description="Store id the entry was loaded from, or None when freshly synthesized",
    )

    def to_document(self) -> dict[str, Any]:
        """Host-shaped data for attaching to an entity (no store bookkeeping)."""
        return self.model_dump(exclude={"id", "source"})

    def copy_for_attachment(self) -> "ContentEntry":
        """Deep copy that can be adjusted per character without touching the cached entry."""
        return self.model_copy(deep=True)


class AbilityValue(BaseModel):
    value: int = 10


class HitPoints(BaseModel):
    value: int = 0
    max: int = 0
    temp: int = 0


class Movement(BaseModel):
    walk: int = 30
    fly: int = 0
    swim: int = 0
    climb: int = 0
    burrow: int = 0
    units: str = "ft"
    hover: bool = False
    special: str = Field(default="", description="Non-walking speeds as text, e.g. \"fly 30 ft.\"")


class Attributes(BaseModel):
    hp: HitPoints = Field(default_factory=HitPoints)
    ac: int = 10
    movement: Movement = Field(default_factory=Movement)
    prof: int = 2
    spellcasting: str = "intelligence"


class Details(BaseModel):
    race: str = ""
    background: str = ""
    alignment: str = ""
    level: int = 0
    xp: int = 0


class Traits(BaseModel):
    size: str = "med"
    di: list[str] = Field(default_factory=list, description="Damage immunities")
    dr: list[str] = Field(default_factory=list, description="Damage resistances")
    dv: list[str] = Field(default_factory=list, description="Damage vulnerabilities")
    ci: list[str] = Field(default_factory=list, description="Condition immunities")
    languages: list[str] = Field(default_factory=list)
    proficiencies: list[str] = Field(default_factory=list)


class Currency(BaseModel):
    cp: int = 0
    sp: int = 0
    ep: int = 0
    gp: int = 0
    pp: int = 0


class SpellSlot(BaseModel):
    value: int = 0
    max: int = 0


def empty_slot_table() -> dict[int, SpellSlot]:
    return {level: SpellSlot() for level in range(1, 10)}


class NormalizedCharacter(BaseModel):
    """The target-schema character document produced by one import."""
    name: str = "Imported Character"
    abilities: dict[str, AbilityValue] = Field(default_factory=dict)
    attributes: Attributes = Field(default_factory=Attributes)
    details: Details = Field(default_factory=Details)
    traits: Traits = Field(default_factory=Traits)
    skills: dict[str, int] = Field(
        default_factory=dict,
        description="Skill code -> proficiency multiplier (1 = proficient)",
    )
    currency: Currency = Field(default_factory=Currency)
    spells: dict[int, SpellSlot] = Field(default_factory=empty_slot_table)

    def to_system_data(self) -> dict[str, Any]:
        """Render the ``system`` block in the host's document shape.

        Scalars the host wraps in ``{"value": ...}`` objects (ac, xp, trait
        lists) are wrapped here and spell slots are keyed ``spell1``..``spell9``.
        """
        attributes = self.attributes.model_dump()
        attributes["ac"] = {"value": self.attributes.ac}
        details = self.details.model_dump()
        details["xp"] = {"value": self.details.xp}
        traits = {
            "size": self.traits.size,
            "di": {"value": list(self.traits.di)},
            "dr": {"value": list(self.traits.dr)},
            "dv": {"value": list(self.traits.dv)},
            "ci": {"value": list(self.traits.ci)},
            "languages": {"value": list(self.traits.languages)},
            "proficiencies": {"value": list(self.traits.proficiencies)},
        }
        return {
            "abilities": {code: ability.model_dump() for code, ability in self.abilities.items()},
            "attributes": attributes,
            "details": details,
            "traits": traits,
            "skills": {code: {"value": value} for code, value in self.skills.items()},
            "currency": self.currency.model_dump(),
            "spells": {f"spell{level}": slot.model_dump() for level, slot in sorted(self.spells.items())},
            "bonuses": {},
        }
