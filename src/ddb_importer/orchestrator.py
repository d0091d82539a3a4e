"""
ImportOrchestrator - one D&D Beyond character import, start to finish.

Pipeline (each stage awaited in sequence, no fan-out):

  parse -> target -> clear -> classes -> race -> compute
        -> items -> spells -> features -> apply

Classes and race are resolved before the character document is computed
because level and race feed the derived fields. Failures stop the pipeline
at the failing stage; side effects of earlier stages are kept (there is no
rollback).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from .compendium import ContentResolver, CustomStoreCache, PersistStatus, StoreRegistry
from .config import ImporterConfig
from .entities import CHARACTER_TYPE, Entity, EntityStore
from .importers.base import CategoryCounts, ImportError, ImportResult, ImportStep
from .importers.dndbeyond.game_data import register_game_data
from .importers.dndbeyond.mapper import character_name, map_ddb_to_character
from .importers.dndbeyond.payload import ClipboardPayload, DDBCharacterData, parse_clipboard_payload
from .importers.dndbeyond.synthesis import (
    apply_class_state,
    apply_item_state,
    apply_spell_state,
    synthesize_class,
    synthesize_class_feature,
    synthesize_feat,
    synthesize_item,
    synthesize_race,
    synthesize_racial_trait,
    synthesize_spell,
)
from .models import ContentCategory, ContentEntry, NormalizedCharacter
from .notifications import LoggingNotifier, Notifier

logger = logging.getLogger("ddb-importer")


@dataclass
class ImportContext:
    """Mutable state of one import run."""
    payload: ClipboardPayload
    target: Entity | None = None
    character: NormalizedCharacter | None = None
    classes: list[ContentEntry] = field(default_factory=list)
    race: list[ContentEntry] = field(default_factory=list)
    items: list[ContentEntry] = field(default_factory=list)
    spells: list[ContentEntry] = field(default_factory=list)
    features: list[ContentEntry] = field(default_factory=list)
    resolved: list[str] = field(default_factory=list)
    synthesized: list[str] = field(default_factory=list)
    cached: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def data(self) -> DDBCharacterData:
        return self.payload.character_data.data

    @property
    def name(self) -> str:
        return character_name(self.data)

    def attachments(self) -> list[ContentEntry]:
        """All entries to attach, in pipeline order."""
        return [*self.classes, *self.race, *self.items, *self.spells, *self.features]

    def warn(self, message: str) -> None:
        if message not in self.warnings:
            self.warnings.append(message)


class ImportOrchestrator:
    """
    Sequences resolve-or-synthesize for every entry kind and applies the result.

    Args:
        entities: Host entity store receiving the character.
        registry: Content stores; its custom store receives synthesized entries.
        notifier: Status sink; defaults to logging.
        config: Importer settings (flag scope); defaults to the registry's config.
    """

    def __init__(
        self,
        entities: EntityStore,
        registry: StoreRegistry,
        notifier: Notifier | None = None,
        config: ImporterConfig | None = None,
    ):
        self.entities = entities
        self.registry = registry
        self.notifier = notifier or LoggingNotifier()
        self.config = config or registry.config
        self.resolver = ContentResolver(registry)
        self.cache = CustomStoreCache(registry)

    # =========================================================================
    # Public API
    # =========================================================================

    async def import_payload(self, raw: str | bytes | dict, target_id: str | None = None) -> ImportResult:
        """
        Import a pasted clipboard payload.

        Args:
            raw: Clipboard JSON text or decoded dict containing ``characterData``.
            target_id: Entity to import onto (e.g. the sheet the sync was
                started from). When omitted, an existing character with the
                same name is updated, otherwise a new one is created.

        Returns:
            ImportResult describing the applied import.

        Raises:
            ImportError: With ``step`` set to the stage that failed.
        """
        try:
            payload = await self._step(ImportStep.PARSE, self._parse, raw)
            return await self.import_character(payload, target_id=target_id)
        except ImportError as e:
            self.notifier.error(f"Import failed: {e}")
            raise

    async def import_character(self, payload: ClipboardPayload, target_id: str | None = None) -> ImportResult:
        """Run every stage after parsing for an already-validated payload."""
        ctx = ImportContext(payload=payload)
        self.notifier.info("Importing character...")

        # Game data belongs to this payload only
        game_data_store = None
        if payload.compendium_data is not None:
            game_data_store = register_game_data(self.registry, payload.compendium_data)
        self.registry.ensure_custom_store()

        try:
            return await self._run_stages(ctx, target_id)
        except ImportError as e:
            if e.character_name is None:
                e.character_name = ctx.name
            raise
        finally:
            if game_data_store is not None:
                self.registry.unregister(game_data_store.store_id)

    async def _run_stages(self, ctx: ImportContext, target_id: str | None) -> ImportResult:
        await self._step(ImportStep.TARGET, self._find_target, ctx, target_id)
        await self._step(ImportStep.CLEAR, self._clear_target, ctx)
        await self._step(ImportStep.CLASSES, self._import_classes, ctx)
        await self._step(ImportStep.RACE, self._import_race, ctx)
        await self._step(ImportStep.COMPUTE, self._compute, ctx)
        await self._step(ImportStep.ITEMS, self._import_items, ctx)
        await self._step(ImportStep.SPELLS, self._import_spells, ctx)
        await self._step(ImportStep.FEATURES, self._import_features, ctx)
        return await self._step(ImportStep.APPLY, self._apply, ctx)

    # =========================================================================
    # Stages
    # =========================================================================

    async def _step(self, step: ImportStep, stage: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        try:
            return await stage(*args)
        except ImportError as e:
            if e.step is None:
                e.step = step
            raise
        except Exception as e:
            logger.exception(f"Import stage {step.value} failed")
            raise ImportError(str(e) or type(e).__name__, step=step) from e

    async def _parse(self, raw: str | bytes | dict) -> ClipboardPayload:
        return parse_clipboard_payload(raw)

    async def _find_target(self, ctx: ImportContext, target_id: str | None) -> None:
        if target_id:
            target = await self.entities.get(target_id)
            if target is None:
                raise ImportError(f"Target character not found: {target_id}")
        else:
            target = await self.entities.find_by_name_and_type(ctx.name, CHARACTER_TYPE)
        ctx.target = target
        if target is not None:
            logger.debug(f"Importing onto existing entity {target.name!r} ({target.id})")

    async def _clear_target(self, ctx: ImportContext) -> None:
        # Previously attached entries are removed so bonuses do not stack on re-sync
        if ctx.target is None or not ctx.target.items:
            return
        removed = await self.entities.delete_embedded(
            ctx.target.id, [item.id for item in ctx.target.items]
        )
        self.notifier.info(f"Cleared {removed} previously imported entries")

    async def _import_classes(self, ctx: ImportContext) -> None:
        for cls in ctx.data.classes:
            if cls.definition is None or not cls.definition.name:
                continue
            entry = await self._resolve_or_synthesize(
                ctx,
                cls.definition.name,
                ContentCategory.CLASS,
                lambda: synthesize_class(cls),
                lambda found: apply_class_state(found, cls),
            )
            ctx.classes.append(entry)
        if ctx.classes:
            self.notifier.info(f"Imported {len(ctx.classes)} class(es)")

    async def _import_race(self, ctx: ImportContext) -> None:
        race = ctx.data.race
        if race is None or not race.full_name:
            return
        entry = await self._resolve_or_synthesize(
            ctx,
            race.base_race_name or race.full_name,
            ContentCategory.RACE,
            lambda: synthesize_race(race),
        )
        ctx.race.append(entry)
        self.notifier.info(f"Imported race: {race.full_name}")

    async def _compute(self, ctx: ImportContext) -> None:
        ctx.character, warnings = map_ddb_to_character(ctx.payload.character_data)
        for warning in warnings:
            ctx.warn(warning)

    async def _import_items(self, ctx: ImportContext) -> None:
        for item in ctx.data.inventory:
            if item.definition is None or not item.definition.name:
                continue
            entry = await self._resolve_or_synthesize(
                ctx,
                item.definition.name,
                ContentCategory.ITEM,
                lambda: synthesize_item(item),
                lambda found: apply_item_state(found, item),
            )
            ctx.items.append(entry)
        if ctx.items:
            self.notifier.info(f"Imported {len(ctx.items)} items")

    async def _import_spells(self, ctx: ImportContext) -> None:
        for spell_list in ctx.data.class_spells:
            for spell in spell_list.spells:
                if spell.definition is None or not spell.definition.name:
                    continue
                entry = await self._resolve_or_synthesize(
                    ctx,
                    spell.definition.name,
                    ContentCategory.SPELL,
                    lambda: synthesize_spell(spell),
                    lambda found: apply_spell_state(found, spell),
                )
                ctx.spells.append(entry)
        if ctx.spells:
            self.notifier.info(f"Imported {len(ctx.spells)} spells")

    async def _import_features(self, ctx: ImportContext) -> None:
        data = ctx.data

        for cls in data.classes:
            class_name = cls.definition.name if cls.definition else ""
            for feature in cls.class_features:
                definition = feature.definition
                if definition is None or not definition.name:
                    continue
                ctx.features.append(await self._resolve_or_synthesize(
                    ctx,
                    definition.name,
                    ContentCategory.FEAT,
                    lambda: synthesize_class_feature(definition, class_name),
                ))

        race = data.race
        if race is not None:
            for trait in race.racial_traits:
                definition = trait.definition
                if definition is None or not definition.name:
                    continue
                ctx.features.append(await self._resolve_or_synthesize(
                    ctx,
                    definition.name,
                    ContentCategory.FEAT,
                    lambda: synthesize_racial_trait(definition, race.full_name),
                ))

        for feat in data.feats:
            definition = feat.definition
            if definition is None or not definition.name:
                continue
            ctx.features.append(await self._resolve_or_synthesize(
                ctx,
                definition.name,
                ContentCategory.FEAT,
                lambda: synthesize_feat(definition),
            ))

        if ctx.features:
            self.notifier.info(f"Imported {len(ctx.features)} features and traits")

    async def _apply(self, ctx: ImportContext) -> ImportResult:
        character = ctx.character or NormalizedCharacter(name=ctx.name)
        flags = self._sync_flags(ctx.payload)

        created = ctx.target is None
        if created:
            entity = await self.entities.create(ctx.name, CHARACTER_TYPE, flags=flags)
        else:
            entity = ctx.target

        entity = await self.entities.update(entity.id, system=character.to_system_data(), flags=flags)

        attachments = ctx.attachments()
        if attachments:
            await self.entities.create_embedded(entity.id, attachments)

        verb = "Created" if created else "Updated"
        self.notifier.info(f"{verb} character: {entity.name}")
        self.notifier.success(f'Character "{entity.name}" imported successfully!')

        return ImportResult(
            entity_id=entity.id,
            entity_name=entity.name,
            created=created,
            counts=CategoryCounts(
                classes=len(ctx.classes),
                race=len(ctx.race),
                items=len(ctx.items),
                spells=len(ctx.spells),
                features=len(ctx.features),
            ),
            resolved=ctx.resolved,
            synthesized=ctx.synthesized,
            cached=ctx.cached,
            warnings=ctx.warnings,
            source_id=self._character_id(ctx.payload),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _resolve_or_synthesize(
        self,
        ctx: ImportContext,
        name: str,
        category: ContentCategory,
        build: Callable[[], ContentEntry],
        adjust: Callable[[ContentEntry], ContentEntry] | None = None,
    ) -> ContentEntry:
        """Stored entry for ``name`` if any store has one, else a freshly built (and cached) one."""
        found = await self.resolver.resolve(name, category)
        if found is not None:
            ctx.resolved.append(found.name)
            return adjust(found) if adjust else found.copy_for_attachment()

        entry = build()
        ctx.synthesized.append(entry.name)
        logger.debug(f"Synthesized {category.value} entry {entry.name!r}")

        outcome = await self.cache.persist(entry)
        if outcome.status is PersistStatus.CREATED:
            ctx.cached.append(entry.name)
        elif outcome.status is PersistStatus.UNAVAILABLE:
            ctx.warn("Custom compendium not available; synthesized entries were not cached")
        elif outcome.status is PersistStatus.FAILED:
            ctx.warn(f"Failed to save {entry.name} to custom compendium: {outcome.error}")
        return entry

    def _character_id(self, payload: ClipboardPayload) -> str | None:
        if payload.character_id:
            return payload.character_id
        data_id = payload.character_data.data.id or payload.character_data.id
        return str(data_id) if data_id is not None else None

    def _sync_flags(self, payload: ClipboardPayload) -> dict[str, Any]:
        return {
            self.config.flag_scope: {
                "characterUrl": payload.character_url,
                "characterId": self._character_id(payload),
                "lastSync": datetime.now(timezone.utc).isoformat(),
            }
        }
