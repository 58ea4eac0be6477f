"""
Progress and scheduling arithmetic.

Everything here is a pure function of its arguments so it can be tested
without timers or a clock.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

from src.config import (
    BATCH_PROGRESS_START, BATCH_PROGRESS_END,
    DIRECT_PROGRESS_START, DIRECT_PROGRESS_END
)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def scale_batch_progress(backend_progress: int,
                         start: int = BATCH_PROGRESS_START,
                         end: int = BATCH_PROGRESS_END) -> int:
    """
    Map backend progress (0-100) into the batch window.

    >>> scale_batch_progress(33)
    49
    """
    backend_progress = clamp(backend_progress, 0, 100)
    return start + math.floor(backend_progress * (end - start) / 100)


def estimate_elapsed_progress(elapsed_seconds: float,
                              start: int = BATCH_PROGRESS_START,
                              end: int = BATCH_PROGRESS_END) -> int:
    """One point per elapsed minute, for backends that report no request counts."""
    minutes = max(0, math.floor(elapsed_seconds / 60))
    return start + min(end - start, minutes)


def next_batch_progress(previous: int,
                        backend_progress: Optional[int],
                        elapsed_seconds: Optional[float] = None,
                        start: int = BATCH_PROGRESS_START,
                        end: int = BATCH_PROGRESS_END) -> int:
    """
    Progress to record after an in-progress poll.

    Never lower than ``previous`` and always inside ``[start, end]``.
    """
    if backend_progress is not None:
        candidate = scale_batch_progress(backend_progress, start, end)
    elif elapsed_seconds is not None:
        candidate = estimate_elapsed_progress(elapsed_seconds, start, end)
    else:
        candidate = previous
    return clamp(max(previous, candidate), start, end)


def direct_progress(completed_units: int, total_units: int,
                    start: int = DIRECT_PROGRESS_START,
                    end: int = DIRECT_PROGRESS_END) -> int:
    """
    Progress after ``completed_units`` of ``total_units`` were translated.

    >>> direct_progress(1, 3)
    46
    """
    if total_units <= 0:
        return end
    return math.floor(start + completed_units / total_units * (end - start))


def seconds_until_due(last_checked_at: Optional[datetime], now: datetime, interval: float) -> float:
    """Seconds left before the next poll is due (0 when it is already due)."""
    if last_checked_at is None:
        return 0.0
    elapsed = (now - last_checked_at).total_seconds()
    return max(0.0, interval - elapsed)


def is_poll_due(last_checked_at: Optional[datetime], now: datetime, interval: float) -> bool:
    """A poll is due once ``interval`` seconds have passed since the last one."""
    return seconds_until_due(last_checked_at, now, interval) <= 0


def estimate_completion(created_at: Optional[datetime], now: datetime, progress: int) -> Optional[datetime]:
    """
    Linear ETA: ``now + elapsed * (100 - progress) / progress``.

    Only defined for ``0 < progress < 100``.
    """
    if created_at is None or not 0 < progress < 100:
        return None
    elapsed = (now - created_at).total_seconds()
    return now + timedelta(seconds=elapsed * (100 - progress) / progress)
