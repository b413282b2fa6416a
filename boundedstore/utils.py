"""
Shared utility functions for boundedstore.
"""

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def now_millis() -> int:
    """Return the current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def create_store(settings, clock: Optional[Callable[[], int]] = None):
    """
    Build a bounded store from configuration settings.

    Args:
        settings: StoreSettings instance
        clock: Optional callable returning epoch milliseconds

    Returns:
        BoundedIndexStore bound to the configured mechanism
    """
    # Deferred imports: storage modules import this one for now_millis
    from boundedstore.bounded import BoundedIndexStore
    from boundedstore.mechanism import (
        InMemoryMechanism,
        JsonFileMechanism,
        PrefixedMechanism,
    )
    from boundedstore.storage import ExpiringStore

    if settings.mechanism == "file":
        mechanism = JsonFileMechanism(settings.path)
    else:
        mechanism = InMemoryMechanism()

    if settings.prefix:
        mechanism = PrefixedMechanism(mechanism, settings.prefix)

    logger.debug(
        f"Creating store: mechanism={settings.mechanism}, "
        f"prefix={settings.prefix}, max_items={settings.max_items}"
    )
    return BoundedIndexStore(ExpiringStore(mechanism, clock=clock), settings.max_items)
