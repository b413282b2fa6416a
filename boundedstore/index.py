"""
Ordered key index helpers.

The index is the list of live keys, oldest first, persisted as a regular
entry under INDEX_KEY in the same mechanism as the data it describes.
"""

import logging
from typing import Any, List, Optional, Sequence

from boundedstore.exceptions import ContractViolationError, InvalidValueError
from boundedstore.storage import ExpiringStore

logger = logging.getLogger(__name__)

INDEX_KEY = "bounded-collectable-storage"


def decode_index(value: Any) -> Optional[List[str]]:
    """
    Validate a persisted index value.

    Returns:
        A fresh list of keys, or None if value is not a usable index
    """
    if not isinstance(value, list):
        return None
    if not all(isinstance(key, str) for key in value):
        return None
    if INDEX_KEY in value or len(set(value)) != len(value):
        return None
    return list(value)


def remove_subsequence(keys: Sequence[str], keys_to_remove: Sequence[str]) -> List[str]:
    """
    Remove an ordered subsequence from a key list.

    Runs a single merge-style pass over both sequences.

    Args:
        keys: Key list
        keys_to_remove: Keys to drop, in the same relative order as in keys

    Returns:
        New list with the survivors in their original order

    Raises:
        ContractViolationError: If keys_to_remove is not a subsequence of keys
    """
    if not keys_to_remove:
        return list(keys)

    kept = []
    remove_idx = 0
    for key in keys:
        if remove_idx < len(keys_to_remove) and key == keys_to_remove[remove_idx]:
            remove_idx += 1
        else:
            kept.append(key)

    if remove_idx != len(keys_to_remove):
        raise ContractViolationError(
            f"Key {keys_to_remove[remove_idx]!r} is not part of the index in the "
            f"expected order ({remove_idx} of {len(keys_to_remove)} keys matched)"
        )
    return kept


def rebuild_index(store: ExpiringStore) -> List[str]:
    """
    Reconstruct the key list by scanning the mechanism.

    Entries are ordered by creation time, ties broken by key. Entries that
    fail to decode are skipped; any other error propagates.

    Args:
        store: Expiring store whose mechanism is scanned

    Returns:
        Keys ordered oldest first
    """
    records = []
    skipped = 0
    for key in store.mechanism.keys():
        if key == INDEX_KEY:
            continue
        try:
            wrapper = store.get_wrapper(key, allow_expired=True)
        except InvalidValueError:
            logger.debug(f"Skipping invalid entry during index rebuild: {key}")
            skipped += 1
            continue
        if wrapper is None:
            # Removed while the scan was running
            continue
        records.append((wrapper.creation_time, key))

    records.sort()
    logger.debug(f"Rebuilt index with {len(records)} keys ({skipped} invalid skipped)")
    return [key for _, key in records]
