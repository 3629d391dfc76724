"""Store module: person records, snapshots and the in-memory profile store."""

from .records import PersonRecord, StoreSnapshot, merge_tags
from .profile_store import ProfileStore, StoreConfig

__all__ = [
    "PersonRecord",
    "StoreSnapshot",
    "merge_tags",
    "ProfileStore",
    "StoreConfig",
]
