"""
Base models and exceptions for the character import system.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ImportStep(str, Enum):
    """Stages of one import, in execution order."""
    PARSE = "parse"
    TARGET = "target"
    CLEAR = "clear"
    CLASSES = "classes"
    RACE = "race"
    COMPUTE = "compute"
    ITEMS = "items"
    SPELLS = "spells"
    FEATURES = "features"
    APPLY = "apply"


class ImportError(Exception):
    """Raised when a character import fails.

    Provides a user-facing message explaining what went wrong
    and, where possible, how to fix it. ``step`` names the import
    stage that failed when the error comes from the orchestrator, and
    ``character_name`` the character being imported once it is known.
    """

    def __init__(self, message: str, step: ImportStep | None = None, character_name: str | None = None):
        super().__init__(message)
        self.step = step
        self.character_name = character_name

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""


class ImportedField(BaseModel):
    """A field that was successfully imported."""

    name: str = Field(description="Field name")
    summary: str = Field(default="", description="Brief summary of the imported value")


class ImportWarning(BaseModel):
    """A warning generated during import."""

    field: str = Field(description="Field that triggered the warning")
    message: str = Field(description="Human-readable warning message")
    suggestion: str = Field(default="", description="Actionable suggestion to resolve the warning")


class CategoryCounts(BaseModel):
    """Number of attached entries per category."""

    classes: int = 0
    race: int = 0
    items: int = 0
    spells: int = 0
    features: int = 0

    @property
    def total(self) -> int:
        return self.classes + self.race + self.items + self.spells + self.features


class ImportReport(BaseModel):
    """Structured import report with status, imported fields, warnings, and progress messages."""

    status: str = Field(description='Import status: "success", "success_with_warnings", or "failed"')
    character_name: str = Field(description="Name of the imported character")
    imported_fields: list[ImportedField] = Field(
        default_factory=list,
        description="Fields successfully imported with value summaries",
    )
    warnings: list[ImportWarning] = Field(
        default_factory=list,
        description="Non-fatal issues encountered during import",
    )
    messages: list[str] = Field(
        default_factory=list,
        description="Status messages emitted at each step boundary",
    )

    def format(self) -> str:
        """Format the report as a readable text block.

        Returns:
            Multi-line formatted string suitable for an MCP tool response.
        """
        lines: list[str] = []

        lines.append(f"D&D Beyond Import Report - {self.character_name}")
        status_display = self.status.upper().replace("_", " ")
        lines.append(f"Status: {status_display}")
        lines.append("")

        if self.imported_fields:
            lines.append(f"Imported ({len(self.imported_fields)} groups):")
            for field in self.imported_fields:
                lines.append(f"  {field.name}: {field.summary or '-'}")
            lines.append("")

        if self.warnings:
            lines.append(f"Warnings ({len(self.warnings)}):")
            for w in self.warnings:
                line = f"  - {w.message}"
                if w.suggestion:
                    line += f" ({w.suggestion})"
                lines.append(line)
            lines.append("")

        if self.messages:
            lines.append("Progress:")
            for message in self.messages:
                lines.append(f"  - {message}")
            lines.append("")

        return "\n".join(lines).rstrip()


class ImportResult(BaseModel):
    """Result of a character import operation."""

    entity_id: str = Field(description="Id of the created or updated entity")
    entity_name: str = Field(description="Final entity name")
    created: bool = Field(description="True if a new entity was created, False if an existing one was updated")
    counts: CategoryCounts = Field(default_factory=CategoryCounts)
    resolved: list[str] = Field(
        default_factory=list,
        description="Names of entries taken from a content store",
    )
    synthesized: list[str] = Field(
        default_factory=list,
        description="Names of entries built from the DDB definition",
    )
    cached: list[str] = Field(
        default_factory=list,
        description="Synthesized entries newly written to the custom store",
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-fatal issues encountered during import (mapping fallbacks, cache failures)",
    )
    messages: list[str] = Field(default_factory=list)
    source_id: str | None = Field(
        default=None,
        description="Original character ID from D&D Beyond",
    )

    def build_report(self) -> ImportReport:
        """Build a structured ImportReport from this ImportResult.

        Returns:
            ImportReport with status, per-category summaries, warnings, and messages.
        """
        imported = [
            ImportedField(name="Classes", summary=str(self.counts.classes)),
            ImportedField(name="Race", summary=str(self.counts.race)),
            ImportedField(name="Items", summary=str(self.counts.items)),
            ImportedField(name="Spells", summary=str(self.counts.spells)),
            ImportedField(name="Features", summary=str(self.counts.features)),
            ImportedField(
                name="Content",
                summary=(
                    f"{len(self.resolved)} from compendium, {len(self.synthesized)} synthesized, "
                    f"{len(self.cached)} newly cached"
                ),
            ),
        ]
        structured_warnings = [_parse_warning(w) for w in self.warnings]
        status = "success_with_warnings" if self.warnings else "success"
        return ImportReport(
            status=status,
            character_name=self.entity_name,
            imported_fields=imported,
            warnings=structured_warnings,
            messages=list(self.messages),
        )


def failed_report(character_name: str, error: Exception, messages: list[str] | None = None) -> ImportReport:
    """Report for an import that stopped at ``error``."""
    step = getattr(error, "step", None)
    field = step.value if step else "general"
    return ImportReport(
        status="failed",
        character_name=character_name,
        warnings=[ImportWarning(field=field, message=f"Import failed: {error}")],
        messages=list(messages or []),
    )


def _parse_warning(warning_text: str) -> ImportWarning:
    """Parse a raw warning string into a structured ImportWarning.

    Args:
        warning_text: The raw warning message string.

    Returns:
        ImportWarning with field, message, and optional suggestion.
    """
    field = "general"
    suggestion = ""

    lower = warning_text.lower()

    if "custom compendium" in lower or "cache" in lower:
        field = "cache"
        suggestion = "Entry used for this import only; check the custom store is writable"
    elif "class" in lower:
        field = "classes"
        suggestion = "Verify character class on D&D Beyond"
    elif "spell" in lower:
        field = "spells"
        suggestion = "Verify spell list on D&D Beyond"
    elif "item" in lower or "inventory" in lower:
        field = "items"
        suggestion = "Re-export character or manually add missing items"
    elif "feature" in lower or "trait" in lower or "feat" in lower:
        field = "features"

    return ImportWarning(field=field, message=warning_text, suggestion=suggestion)
