"""
Key/value persistence mechanisms.

A mechanism stores text values under string keys and can enumerate its
keys. It knows nothing about expiration or ordering; those live in the
storage layers built on top of it.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

from boundedstore.exceptions import MechanismError

logger = logging.getLogger(__name__)


class IterableMechanism(ABC):
    """Minimal key/value store with get/set/remove and key iteration."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None when absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Remove key. Removing an absent key is a no-op."""

    @abstractmethod
    def keys(self) -> Iterator[str]:
        """Iterate over a snapshot of the keys present at call time."""

    def items(self) -> Iterator[Tuple[str, str]]:
        """Iterate over (key, value) pairs, skipping keys removed meanwhile."""
        for key in self.keys():
            value = self.get(key)
            if value is not None:
                yield key, value

    def clear(self) -> None:
        """Remove every key."""
        for key in list(self.keys()):
            self.remove(key)

    def __iter__(self) -> Iterator[str]:
        return self.keys()

    def __len__(self) -> int:
        return sum(1 for _ in self.keys())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None


class InMemoryMechanism(IterableMechanism):
    """Dictionary-backed mechanism, mostly useful for tests and caches."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._data))

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class JsonFileMechanism(IterableMechanism):
    """
    Mechanism persisting the whole key space as one JSON object file.

    The file is read on first access and rewritten after every mutation by
    writing a sibling temporary file and renaming it over the original.
    A missing file is an empty store.
    """

    def __init__(self, path: Union[str, Path]):
        """
        Initialize file mechanism.

        Args:
            path: Location of the JSON document (created on first write)
        """
        self.path = Path(path)
        self._data: Optional[Dict[str, str]] = None

    def _load(self) -> Dict[str, str]:
        if self._data is not None:
            return self._data

        if not self.path.exists():
            logger.debug(f"Store file {self.path} does not exist, starting empty")
            self._data = {}
            return self._data

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise MechanismError(f"Invalid JSON in store file {self.path}: {e}") from e
        except OSError as e:
            raise MechanismError(f"Error reading store file {self.path}: {e}") from e

        if not isinstance(data, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in data.items()
        ):
            raise MechanismError(
                f"Store file {self.path} must contain a JSON object of string values"
            )

        self._data = data
        return self._data

    def _save(self) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            # Reload from disk on next access so the cache matches the file
            self._data = None
            tmp_path.unlink(missing_ok=True)
            raise MechanismError(f"Error writing store file {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        self._load()[key] = value
        self._save()

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save()

    def keys(self) -> Iterator[str]:
        return iter(list(self._load()))

    def clear(self) -> None:
        self._load().clear()
        self._save()

    def __len__(self) -> int:
        return len(self._load())


class PrefixedMechanism(IterableMechanism):
    """
    Namespaces keys inside another mechanism.

    Keys are stored as ``<prefix>::<key>``. Iteration and clear() only see
    keys carrying this prefix, so independent stores can share one
    mechanism without scanning each other's entries.
    """

    SEPARATOR = "::"

    def __init__(self, mechanism: IterableMechanism, prefix: str):
        if not prefix:
            raise ValueError("prefix must be a non-empty string")
        self.mechanism = mechanism
        self.prefix = prefix + self.SEPARATOR

    def get(self, key: str) -> Optional[str]:
        return self.mechanism.get(self.prefix + key)

    def set(self, key: str, value: str) -> None:
        self.mechanism.set(self.prefix + key, value)

    def remove(self, key: str) -> None:
        self.mechanism.remove(self.prefix + key)

    def keys(self) -> Iterator[str]:
        start = len(self.prefix)
        return iter(
            [key[start:] for key in self.mechanism.keys() if key.startswith(self.prefix)]
        )
