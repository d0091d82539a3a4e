"""
StoreRegistry - holds every content store the resolver can search.

The registry owns the per-category reference order and the handle to the
single writable custom store, which is looked up or created once and then
reused for every import in the process.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..config import ImporterConfig
from ..models import ContentCategory
from .stores import ContentStore, ContentStoreError, JsonContentStore

logger = logging.getLogger("ddb-importer")


class StoreRegistry:
    """
    Registry of content stores keyed by store id.

    Reference stores are searched in the order configured per category;
    additional stores (e.g. bulk game data) can be appended to a category's
    order at runtime.
    """

    def __init__(self, config: ImporterConfig | None = None):
        self.config = config or ImporterConfig()
        self._stores: dict[str, ContentStore] = {}
        self._extra_order: dict[ContentCategory, list[str]] = {}
        self._custom_store: ContentStore | None = None

    # =========================================================================
    # Store Management
    # =========================================================================

    def register(self, store: ContentStore) -> None:
        """Add a store, replacing any store with the same id."""
        if store.store_id in self._stores:
            logger.debug(f"Replacing content store: {store.store_id}")
        self._stores[store.store_id] = store
        logger.info(f"Registered content store: {store.store_id}")

    def unregister(self, store_id: str) -> bool:
        """Remove a store. Returns True if it was registered."""
        if store_id not in self._stores:
            return False
        del self._stores[store_id]
        if self._custom_store is not None and self._custom_store.store_id == store_id:
            self._custom_store = None
        for order in self._extra_order.values():
            if store_id in order:
                order.remove(store_id)
        logger.info(f"Unregistered content store: {store_id}")
        return True

    def get(self, store_id: str) -> ContentStore | None:
        return self._stores.get(store_id)

    @property
    def store_ids(self) -> list[str]:
        return list(self._stores.keys())

    def add_reference(self, category: ContentCategory, store_id: str) -> None:
        """Append ``store_id`` to the end of ``category``'s search order."""
        order = self._extra_order.setdefault(ContentCategory(category), [])
        if store_id not in order:
            order.append(store_id)

    def reference_order(self, category: ContentCategory) -> list[str]:
        """Configured reference store ids for ``category`` followed by runtime additions."""
        category = ContentCategory(category)
        order = self.config.reference_order(category)
        for store_id in self._extra_order.get(category, []):
            if store_id not in order:
                order.append(store_id)
        return order

    def load_pack_directory(self, directory: Path | str) -> int:
        """Register every JSON/YAML pack file in ``directory`` as a read-only store.

        The custom store's own file is skipped. Unreadable packs are logged
        and skipped.

        Returns:
            Number of packs registered.
        """
        directory = Path(directory)
        if not directory.is_dir():
            return 0

        loaded = 0
        for path in sorted(directory.iterdir()):
            if path.suffix.lower() not in JsonContentStore.SUPPORTED_EXTENSIONS:
                continue
            try:
                store = JsonContentStore.from_file(path)
            except ContentStoreError as e:
                logger.warning(f"Skipping pack {path.name}: {e}")
                continue
            if store.store_id == self.config.custom_store_id:
                continue
            self.register(store)
            loaded += 1
        return loaded

    # =========================================================================
    # Custom Store
    # =========================================================================

    @property
    def custom_store(self) -> ContentStore | None:
        """The writable custom store, if it has been ensured or registered."""
        if self._custom_store is None:
            store = self._stores.get(self.config.custom_store_id)
            if store is not None and store.writable:
                self._custom_store = store
        return self._custom_store

    def ensure_custom_store(self) -> ContentStore | None:
        """Return the custom store, creating its pack file on first use.

        Returns:
            The writable custom store, or None if it could not be created
            (imports then proceed without caching).
        """
        existing = self.custom_store
        if existing is not None:
            logger.debug("Custom compendium found")
            return existing

        path = self.config.packs_dir / f"{self.config.custom_store_id}.json"
        store = JsonContentStore(
            path,
            store_id=self.config.custom_store_id,
            label=self.config.custom_store_label,
            writable=True,
        )
        created = not path.exists()
        try:
            store.initialize()
        except ContentStoreError as e:
            logger.error(f"Failed to create custom compendium: {e}")
            return None

        self.register(store)
        self._custom_store = store
        if created:
            logger.info(f"Created custom compendium {self.config.custom_store_label!r} at {path}")
        return store
