"""
Bounded storage with expiring keys and an insertion-ordered index.

Setting and removing values keeps the max number of items invariant.
Collection can also be caller initiated: when oversize, expired items are
removed first, then the oldest items until the size bound holds.
"""

import logging
from typing import Any, Callable, List, Optional

from boundedstore.exceptions import InvalidValueError, ReservedKeyError
from boundedstore.index import INDEX_KEY, decode_index, rebuild_index, remove_subsequence
from boundedstore.storage import TOMBSTONE, ExpiringStore
from boundedstore.wrapper import ExpirationWrapper

logger = logging.getLogger(__name__)


def collect_oversize(
    keys: List[str],
    max_size: int,
    remove: Callable[[str], None],
) -> List[str]:
    """
    Trim a key list to max_size by evicting its oldest keys.

    Args:
        keys: Keys ordered oldest first
        max_size: Number of keys to keep
        remove: Called once per evicted key to delete it from storage

    Returns:
        Keys left after eviction
    """
    if len(keys) <= max_size:
        return list(keys)

    keys_to_remove = keys[: len(keys) - max_size]
    for key in keys_to_remove:
        remove(key)
    logger.info(f"Evicted {len(keys_to_remove)} oldest entries to keep {max_size}")
    return remove_subsequence(keys, keys_to_remove)


class BoundedIndexStore:
    """
    Storage holding at most max_items entries, evicting the oldest first.

    The order of keys is kept in an index entry stored in the same mechanism
    under INDEX_KEY. The index is rebuilt from entry creation times whenever
    it is missing or unusable.
    """

    def __init__(self, base: ExpiringStore, max_items: int):
        """
        Initialize bounded store.

        Args:
            base: Expiring store providing storage and expiration checks
            max_items: Maximum number of items kept

        Raises:
            ValueError: If max_items is not a positive integer
        """
        if isinstance(max_items, bool) or not isinstance(max_items, int) or max_items < 1:
            raise ValueError(f"max_items must be a positive integer, got {max_items}")
        self.base = base
        self._max_items = max_items

    @property
    def max_items(self) -> int:
        return self._max_items

    @staticmethod
    def _check_key(key: str) -> None:
        if key == INDEX_KEY:
            raise ReservedKeyError(f"Key {INDEX_KEY!r} is reserved for the store index")

    def _get_keys(self, rebuild: bool) -> Optional[List[str]]:
        """
        Load the persisted index.

        Args:
            rebuild: Rebuild the index from a scan if no usable one exists

        Returns:
            Keys oldest first, or None when missing and rebuild is False
        """
        try:
            keys = decode_index(self.base.get(INDEX_KEY))
        except InvalidValueError:
            logger.warning("Persisted index is corrupted, ignoring it")
            keys = None

        if keys is None and rebuild:
            keys = rebuild_index(self.base)
        return keys

    def _set_keys(self, keys: List[str]) -> None:
        self.base.set(INDEX_KEY, keys)
        logger.debug(f"Saved index with {len(keys)} keys")

    def _collect_expired(self, keys: List[str], strict: bool = False) -> List[str]:
        """Remove expired entries from storage and return the surviving keys."""
        keys_to_remove = self.base.find_expired_or_invalid(keys, strict)
        for key in keys_to_remove:
            self.base.remove(key)
        if keys_to_remove:
            logger.info(f"Collected {len(keys_to_remove)} expired entries")
        return remove_subsequence(keys, keys_to_remove)

    def get(self, key: str) -> Any:
        """Return the value under key, or None if absent or expired."""
        self._check_key(key)
        return self.base.get(key)

    def get_wrapper(self, key: str) -> Optional[ExpirationWrapper]:
        """Return the ExpirationWrapper under key, or None if absent or expired."""
        self._check_key(key)
        return self.base.get_wrapper(key)

    def keys(self) -> List[str]:
        """Return the indexed keys oldest first, rebuilding them if needed."""
        return self._get_keys(rebuild=True)

    def set(self, key: str, value: Any, expiration: Optional[float] = None) -> None:
        """
        Set an item in the storage.

        Args:
            key: The key to set
            value: JSON-serializable value, or TOMBSTONE to delete the key
            expiration: Epoch milliseconds when the value expires. Without
                it the value persists until evicted.

        Raises:
            ReservedKeyError: If key is the index key
        """
        self._check_key(key)
        self.base.set(key, value, expiration)

        keys = self._get_keys(rebuild=True)
        if key in keys:
            keys.remove(key)

        if value is not TOMBSTONE:
            keys.append(key)
            if len(keys) >= self._max_items:
                keys = self._collect_expired(keys)
                keys = collect_oversize(keys, self._max_items, self.base.remove)
        self._set_keys(keys)

    def remove(self, key: str) -> None:
        """
        Remove an item from the storage.

        A missing index is left missing; the next rebuild will not see key.
        """
        self._check_key(key)
        self.base.remove(key)

        keys = self._get_keys(rebuild=False)
        if keys is not None:
            if key in keys:
                keys.remove(key)
            self._set_keys(keys)

    def collect_expired(self, strict: bool = False) -> List[str]:
        """
        Clean up the storage by removing expired keys.

        Args:
            strict: Also remove entries that fail to decode

        Returns:
            Keys that were removed
        """
        keys = self._get_keys(rebuild=True)
        remaining = self._collect_expired(keys, strict)
        self._set_keys(remaining)
        return remove_subsequence(keys, remaining)

    def collect_oversize(self, skip_expired: bool = False, strict: bool = False) -> List[str]:
        """
        Ensure only max_items items are kept in the storage.

        Args:
            skip_expired: Skip removing expired items first
            strict: Also remove entries that fail to decode

        Returns:
            Keys that were removed, oldest first
        """
        keys = self._get_keys(rebuild=True)
        remaining = keys
        if not skip_expired:
            remaining = self._collect_expired(remaining, strict)
        remaining = collect_oversize(remaining, self._max_items, self.base.remove)
        self._set_keys(remaining)
        return remove_subsequence(keys, remaining)
