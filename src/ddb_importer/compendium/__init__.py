"""
Content stores and name resolution for canonical entries.
"""

from .cache import CustomStoreCache, PersistResult, PersistStatus
from .registry import StoreRegistry
from .resolver import ContentResolver, find_in_index, names_match
from .stores import (
    ContentStore,
    ContentStoreError,
    InMemoryContentStore,
    JsonContentStore,
)

__all__ = [
    "ContentResolver",
    "ContentStore",
    "ContentStoreError",
    "CustomStoreCache",
    "InMemoryContentStore",
    "JsonContentStore",
    "PersistResult",
    "PersistStatus",
    "StoreRegistry",
    "find_in_index",
    "names_match",
]
