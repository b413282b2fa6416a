"""
Expiring key/value storage on top of a mechanism.

ExpiringStore is the base capability the bounded store is composed with:
it wraps values with timestamps, hides expired entries on read and can
report or sweep expired and malformed entries.
"""

import logging
from typing import Any, Callable, Iterable, List, Optional

from boundedstore import wrapper as codec
from boundedstore.exceptions import InvalidValueError
from boundedstore.mechanism import IterableMechanism
from boundedstore.utils import now_millis
from boundedstore.wrapper import ExpirationWrapper

logger = logging.getLogger(__name__)


class _Tombstone:
    """Marker value meaning "delete this key" when passed to set()."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "TOMBSTONE"


TOMBSTONE = _Tombstone()


class ExpiringStore:
    """Storage whose values carry creation and expiration timestamps."""

    def __init__(
        self,
        mechanism: IterableMechanism,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize expiring store.

        Args:
            mechanism: Underlying key/value mechanism
            clock: Callable returning the current time in epoch milliseconds
        """
        self.mechanism = mechanism
        self.clock = clock or now_millis

    def wrap(self, value: Any, expiration: Optional[float] = None) -> str:
        """Wrap value stamped with the current time."""
        return codec.wrap(value, self.clock(), expiration)

    def unwrap(self, text: str) -> ExpirationWrapper:
        return codec.unwrap(text)

    def set(self, key: str, value: Any, expiration: Optional[float] = None) -> None:
        """
        Store a value.

        Args:
            key: Key to set
            value: JSON-serializable value, or TOMBSTONE to delete the key
            expiration: Optional epoch milliseconds after which the value expires

        Raises:
            InvalidValueError: If value is not JSON serializable
        """
        if value is TOMBSTONE:
            self.mechanism.remove(key)
            return
        self.mechanism.set(key, self.wrap(value, expiration))

    def get_wrapper(self, key: str, allow_expired: bool = False) -> Optional[ExpirationWrapper]:
        """
        Read the wrapper stored under key.

        Args:
            key: Key to read
            allow_expired: Return expired wrappers instead of removing them

        Returns:
            ExpirationWrapper, or None if absent (or expired and not allowed)

        Raises:
            InvalidValueError: If the stored text is not a valid wrapper
        """
        text = self.mechanism.get(key)
        if text is None:
            return None

        wrapper = self.unwrap(text)
        if not allow_expired and codec.is_expired(wrapper, self.clock()):
            logger.debug(f"Removing expired key on read: {key}")
            self.mechanism.remove(key)
            return None
        return wrapper

    def get(self, key: str) -> Any:
        """Return the value under key, or None if absent or expired."""
        wrapper = self.get_wrapper(key)
        if wrapper is None:
            return None
        return wrapper.value

    def remove(self, key: str) -> None:
        self.mechanism.remove(key)

    def find_expired_or_invalid(self, keys: Iterable[str], strict: bool = False) -> List[str]:
        """
        Select the keys that should be collected.

        A key is selected when its entry is expired or no longer present.
        Malformed entries are selected only in strict mode. The result keeps
        the relative order of keys. Nothing is removed.

        Args:
            keys: Keys to inspect
            strict: Also select entries that fail to decode

        Returns:
            Ordered subsequence of keys
        """
        now = self.clock()
        selected = []
        for key in keys:
            try:
                wrapper = self.get_wrapper(key, allow_expired=True)
            except InvalidValueError:
                if strict:
                    selected.append(key)
                continue
            if wrapper is None or codec.is_expired(wrapper, now):
                selected.append(key)
        return selected

    def collect(self, strict: bool = False) -> List[str]:
        """
        Remove every expired entry in the mechanism.

        Args:
            strict: Also remove entries that fail to decode

        Returns:
            Keys that were removed
        """
        removed = self.find_expired_or_invalid(self.mechanism.keys(), strict)
        for key in removed:
            self.remove(key)
        if removed:
            logger.info(f"Collected {len(removed)} expired entries")
        return removed
