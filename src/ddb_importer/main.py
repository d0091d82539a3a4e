"""
D&D Beyond Importer MCP Server
Imports D&D Beyond characters into a local compendium-backed character store.
"""

import logging
from functools import lru_cache
from typing import Annotated, Literal

from fastmcp import FastMCP
from pydantic import Field

from .compendium import ContentResolver, StoreRegistry
from .config import ImporterConfig, load_config
from .entities import JsonEntityStore
from .importers.base import ImportError, failed_report
from .importers.dndbeyond.fetcher import (
    build_clipboard_payload,
    extract_character_id,
    fetch_character,
    fetch_game_data,
    read_payload_file,
)
from .models import ContentCategory
from .notifications import CollectingNotifier
from .orchestrator import ImportOrchestrator

logger = logging.getLogger("ddb-importer")

mcp = FastMCP(
    name="ddb-importer"
)


class ImporterRuntime:
    """Config, stores and orchestrator shared by every tool call."""

    def __init__(self, config: ImporterConfig):
        self.config = config
        self.registry = StoreRegistry(config)
        loaded = self.registry.load_pack_directory(config.packs_dir)
        logger.debug(f"📚 Loaded {loaded} reference packs from {config.packs_dir}")
        self.registry.ensure_custom_store()
        self.entities = JsonEntityStore(config.actors_dir)
        self.resolver = ContentResolver(self.registry)

    def orchestrator(self, notifier: CollectingNotifier) -> ImportOrchestrator:
        return ImportOrchestrator(self.entities, self.registry, notifier=notifier, config=self.config)


@lru_cache(maxsize=1)
def get_runtime() -> ImporterRuntime:
    config = load_config()
    logging.basicConfig(level=config.log_level)
    logger.debug(f"📂 Data path: {config.data_dir}")
    return ImporterRuntime(config)


async def _run_import(payload: str | dict, target_id: str | None) -> str:
    runtime = get_runtime()
    notifier = CollectingNotifier()
    try:
        result = await runtime.orchestrator(notifier).import_payload(payload, target_id=target_id)
    except ImportError as e:
        return failed_report(e.character_name or "Unknown character", e, notifier.messages).format()
    result.messages = notifier.messages
    return result.build_report().format()


async def _import_file(file_path: str, target_id: str | None) -> str:
    try:
        payload = read_payload_file(file_path)
    except ImportError as e:
        return failed_report(file_path, e).format()
    return await _run_import(payload, target_id)


@mcp.tool
async def import_character(
    payload: Annotated[str, Field(description="JSON copied with 'Copy Character Data' in the D&D Beyond extension")],
    target_id: Annotated[str | None, Field(description="Id of an existing character to import onto")] = None,
) -> str:
    """Import a character from the D&D Beyond browser extension's clipboard data.

    Existing attached entries on the target are replaced. Classes, race, items,
    spells and features are taken from the compendium where possible and
    synthesized (and cached) otherwise.
    """
    return await _run_import(payload, target_id)


@mcp.tool
async def sync_character(
    character_url_or_id: Annotated[str, Field(description="D&D Beyond character URL or numeric ID")],
    cobalt_cookie: Annotated[str | None, Field(description="CobaltSession cookie value, needed for private characters")] = None,
    target_id: Annotated[str | None, Field(description="Id of an existing character to import onto")] = None,
    include_game_data: Annotated[bool, Field(description="Also fetch item and class definitions for lookups")] = False,
) -> str:
    """Fetch a character from D&D Beyond and import it."""
    runtime = get_runtime()
    try:
        character_id = extract_character_id(character_url_or_id)
        data = await fetch_character(
            str(character_id),
            cobalt_cookie=cobalt_cookie,
            base_url=runtime.config.api_base_url,
            timeout=runtime.config.request_timeout,
        )
        game_data = None
        if include_game_data:
            game_data = await fetch_game_data(
                cobalt_cookie,
                base_url=runtime.config.game_data_base_url,
                timeout=runtime.config.request_timeout,
            )
    except ImportError as e:
        return failed_report(character_url_or_id, e).format()

    payload = build_clipboard_payload(data, character_id, cobalt_cookie, compendium_data=game_data)
    return await _run_import(payload, target_id)


@mcp.tool
async def import_character_file(
    file_path: Annotated[str, Field(description="Path to a saved clipboard payload or a D&D Beyond character JSON export")],
    target_id: Annotated[str | None, Field(description="Id of an existing character to import onto")] = None,
) -> str:
    """Import a character from a local JSON file."""
    return await _import_file(file_path, target_id)


@mcp.tool
async def lookup_content(
    name: Annotated[str, Field(description="Entry name (case-insensitive)")],
    category: Annotated[Literal["item", "spell", "feat", "class", "race"], Field(description="Content category")],
) -> str:
    """Show which store an entry would be taken from during import."""
    runtime = get_runtime()
    entry = await runtime.resolver.resolve(name, ContentCategory(category))
    if entry is None:
        return f"❌ No {category} named '{name}' in any compendium; it would be synthesized on import."
    return f"✅ {entry.name} ({entry.type}) found in {entry.source}"


@mcp.tool
async def list_custom_content() -> str:
    """List entries cached in the custom compendium by previous imports."""
    store = get_runtime().registry.custom_store
    if store is None:
        return "❌ Custom compendium not available."
    index = await store.get_index()
    if not index:
        return f"{store.label} is empty."
    lines = [f"• {row.name} ({row.type})" for row in sorted(index, key=lambda row: (row.type, row.name))]
    return f"**{store.label}** ({len(index)} entries):\n" + "\n".join(lines)


def main() -> None:
    """Main entry point for the importer MCP server."""
    get_runtime()
    mcp.run()


if __name__ == "__main__":
    main()
