"""
Bounded, self-indexing key/value storage with expiring entries.
"""

from boundedstore.bounded import BoundedIndexStore, collect_oversize
from boundedstore.config import BoundedStoreConfig, StoreSettings, load_config
from boundedstore.exceptions import (
    BoundedStoreError,
    ConfigError,
    ContractViolationError,
    InvalidValueError,
    MechanismError,
    ReservedKeyError,
)
from boundedstore.index import INDEX_KEY, rebuild_index, remove_subsequence
from boundedstore.mechanism import (
    InMemoryMechanism,
    IterableMechanism,
    JsonFileMechanism,
    PrefixedMechanism,
)
from boundedstore.storage import TOMBSTONE, ExpiringStore
from boundedstore.utils import create_store

__all__ = [
    "BoundedIndexStore",
    "ExpiringStore",
    "TOMBSTONE",
    "INDEX_KEY",
    "IterableMechanism",
    "InMemoryMechanism",
    "JsonFileMechanism",
    "PrefixedMechanism",
    "BoundedStoreConfig",
    "StoreSettings",
    "load_config",
    "create_store",
    "collect_oversize",
    "rebuild_index",
    "remove_subsequence",
    "BoundedStoreError",
    "ConfigError",
    "ContractViolationError",
    "InvalidValueError",
    "MechanismError",
    "ReservedKeyError",
]
