"""
ContentResolver - find the canonical entry for a name and category.

Search order is fixed: the custom store first (filtered by document type),
then the category's reference stores in their declared order. The first
case-insensitive exact name match wins. A miss returns None, which is the
normal trigger for synthesis rather than an error.
"""

from __future__ import annotations

import logging

from ..models import ContentCategory, ContentEntry, IndexEntry
from .registry import StoreRegistry
from .stores import ContentStore, ContentStoreError

logger = logging.getLogger("ddb-importer")


def names_match(left: str, right: str) -> bool:
    return left.casefold() == right.casefold()


def find_in_index(
    index: list[IndexEntry],
    name: str,
    category: ContentCategory | None = None,
) -> IndexEntry | None:
    """First index row whose name matches ``name`` (and whose type fits ``category``)."""
    for row in index:
        if not names_match(row.name, name):
            continue
        if category is not None and not category.accepts(row.type):
            continue
        return row
    return None


class ContentResolver:
    """Resolves names against the registry's stores."""

    def __init__(self, registry: StoreRegistry):
        self.registry = registry

    async def resolve(self, name: str, category: ContentCategory | str) -> ContentEntry | None:
        """
        Find the first stored entry named ``name`` for ``category``.

        Args:
            name: Entry name, compared case-insensitively.
            category: item, spell, feat, class or race.

        Returns:
            A copy of the matched entry (``source`` set to its store id),
            or None when no store has it.
        """
        category = ContentCategory(category)
        if not name:
            return None

        custom = self.registry.custom_store
        if custom is not None:
            try:
                entry = await self._lookup(custom, name, category)
            except ContentStoreError as e:
                logger.warning(f"Custom compendium lookup failed for {name!r}: {e}")
                entry = None
            if entry is not None:
                logger.debug(f"Found {name} in custom compendium")
                return entry

        for store_id in self.registry.reference_order(category):
            store = self.registry.get(store_id)
            if store is None:
                continue
            try:
                entry = await self._lookup(store, name, None)
            except ContentStoreError as e:
                logger.warning(f"Lookup of {name!r} in {store_id} failed: {e}")
                continue
            if entry is not None:
                logger.debug(f"Found {name} in {store_id}")
                return entry

        return None

    async def _lookup(
        self,
        store: ContentStore,
        name: str,
        category: ContentCategory | None,
    ) -> ContentEntry | None:
        row = find_in_index(await store.get_index(), name, category)
        if row is None:
            return None
        entry = await store.get_document(row.id)
        if entry is None:
            return None
        entry.source = store.store_id
        return entry
