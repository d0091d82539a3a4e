"""
Cache write-back of synthesized entries into the custom store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from ..models import ContentEntry
from .registry import StoreRegistry
from .resolver import find_in_index
from .stores import ContentStoreError

logger = logging.getLogger("ddb-importer")


class PersistStatus(str, Enum):
    CREATED = "created"
    EXISTING = "existing"
    UNAVAILABLE = "unavailable"
    FAILED = "failed"


@dataclass
class PersistResult:
    """Outcome of one write-back.

    Attributes:
        entry: The stored entry (created or pre-existing), or the input entry
            when caching was not possible.
        status: What happened.
        error: Error text for ``FAILED``/``UNAVAILABLE``.
    """
    entry: ContentEntry
    status: PersistStatus
    error: str = ""

    @property
    def cached(self) -> bool:
        return self.status is PersistStatus.CREATED


class CustomStoreCache:
    """Writes synthesized entries into the custom store, skipping names it already holds.

    The existence check and the create are separate store calls, so two
    imports racing on the same name can still both create it.
    """

    def __init__(self, registry: StoreRegistry):
        self.registry = registry

    async def persist(self, entry: ContentEntry) -> PersistResult:
        """Save ``entry`` unless a same-named entry (any case) is already cached.

        Never raises: failures are logged and reported in the result.
        """
        store = self.registry.custom_store
        if store is None:
            logger.warning("Custom compendium not available")
            return PersistResult(entry, PersistStatus.UNAVAILABLE, "Custom compendium not available")

        try:
            existing = find_in_index(await store.get_index(), entry.name)
            if existing is not None:
                logger.debug(f"{entry.name} already in custom compendium")
                stored = await store.get_document(existing.id)
                if stored is not None:
                    stored.source = store.store_id
                    return PersistResult(stored, PersistStatus.EXISTING)

            created = await store.import_document(entry)
        except (ContentStoreError, OSError) as e:
            logger.error(f"Failed to save {entry.name} to custom compendium: {e}")
            return PersistResult(entry, PersistStatus.FAILED, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error saving {entry.name} to custom compendium")
            return PersistResult(entry, PersistStatus.FAILED, str(e) or type(e).__name__)

        logger.info(f"Saved {entry.name} to custom compendium")
        return PersistResult(created, PersistStatus.CREATED)
