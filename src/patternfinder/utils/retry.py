"""Retry helper for transient provider failures."""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence, TypeVar

from patternfinder.errors import ProviderError

LOGGER = logging.getLogger(__name__)

DEFAULT_DELAYS = (0.5, 1.0, 2.0, 4.0)

T = TypeVar("T")


def with_retries(
    fn: Callable[[], T],
    *,
    delays: Sequence[float] = DEFAULT_DELAYS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``fn``, retrying transient ``ProviderError`` with back-off.

    Permanent provider errors and any other exception propagate on the first
    failure. After the last delay the final attempt's error propagates.
    """
    for attempt, delay in enumerate(delays, start=1):
        try:
            return fn()
        except ProviderError as exc:
            if not exc.transient:
                raise
            LOGGER.warning("Transient provider error (attempt %d): %s", attempt, exc)
            sleep(delay)
    return fn()
