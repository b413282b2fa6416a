"""
Expiration wrapper codec.

Every stored value is wrapped in a JSON envelope carrying its creation
time and optional expiration time, both in milliseconds since the epoch:

    {"data": <value>, "creation": 1700000000000, "expiration": 1700000060000}
"""

import json
import math
from dataclasses import dataclass
from typing import Any, Optional

from boundedstore.exceptions import InvalidValueError

DATA_KEY = "data"
CREATION_TIME_KEY = "creation"
EXPIRATION_TIME_KEY = "expiration"


@dataclass(frozen=True)
class ExpirationWrapper:
    """Decoded envelope of a stored value."""

    value: Any
    creation_time: float
    expiration: Optional[float] = None


def _is_timestamp(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    # json.loads accepts NaN and Infinity
    return isinstance(value, float) and math.isfinite(value)


def wrap(value: Any, creation_time: float, expiration: Optional[float] = None) -> str:
    """
    Serialize value together with its timestamps.

    Args:
        value: JSON-serializable value
        creation_time: Creation time in epoch milliseconds
        expiration: Optional expiration time in epoch milliseconds

    Returns:
        Serialized wrapper text

    Raises:
        InvalidValueError: If value cannot be serialized to JSON
    """
    envelope = {DATA_KEY: value, CREATION_TIME_KEY: creation_time}
    if expiration is not None:
        envelope[EXPIRATION_TIME_KEY] = expiration
    try:
        return json.dumps(envelope, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise InvalidValueError(f"Value is not JSON serializable: {e}") from e


def unwrap(text: str) -> ExpirationWrapper:
    """
    Parse wrapper text produced by wrap().

    Args:
        text: Serialized wrapper

    Returns:
        ExpirationWrapper instance

    Raises:
        InvalidValueError: If text is not a well-formed wrapper
    """
    try:
        envelope = json.loads(text)
    except (TypeError, ValueError) as e:
        raise InvalidValueError(f"Wrapper is not valid JSON: {e}") from e

    if not isinstance(envelope, dict) or DATA_KEY not in envelope:
        raise InvalidValueError("Wrapper must be an object with a 'data' field")

    creation_time = envelope.get(CREATION_TIME_KEY)
    if not _is_timestamp(creation_time):
        raise InvalidValueError(f"Invalid creation time: {creation_time!r}")

    expiration = envelope.get(EXPIRATION_TIME_KEY)
    if expiration is not None and not _is_timestamp(expiration):
        raise InvalidValueError(f"Invalid expiration time: {expiration!r}")

    return ExpirationWrapper(
        value=envelope[DATA_KEY],
        creation_time=creation_time,
        expiration=expiration,
    )


def is_expired(wrapper: ExpirationWrapper, now: float) -> bool:
    """
    Check whether a wrapper is expired at time now.

    Entries created in the future (the clock moved backwards) count as
    expired too.
    """
    if wrapper.expiration is not None and wrapper.expiration < now:
        return True
    return wrapper.creation_time > now
