"""Countdown arithmetic shared by the server and every participant client.

A running timer is stored as a single start timestamp plus a duration, so
all observers derive the same countdown without any write per tick.
"""
import time
from typing import Any, Mapping, Optional

DEFAULT_DURATION_SEC = 90


def now_ms() -> int:
    return int(time.time() * 1000)


def _field(state: Any, camel: str, snake: str):
    if isinstance(state, Mapping):
        return state.get(camel, state.get(snake))
    return getattr(state, snake, None)


def is_running(state: Any) -> bool:
    """Active with a start time. An active flag without a start is treated as stopped."""
    return bool(_field(state, 'timerActive', 'timer_active')) and _field(state, 'timerStartTime', 'timer_start_time') is not None


def remaining_seconds(state: Any, at_ms: Optional[int] = None) -> int:
    """Whole seconds left on the countdown, clamped to [0, duration].

    Accepts a GameState row or its camelCase dict. When the timer is not
    running the last persisted ``timeRemaining`` is returned instead.
    """
    duration = _field(state, 'timerDuration', 'timer_duration')
    if duration is None:
        duration = DEFAULT_DURATION_SEC
    duration = int(duration)
    if not is_running(state):
        fallback = _field(state, 'timeRemaining', 'time_remaining')
        if fallback is None:
            return duration
        return max(0, min(duration, int(fallback)))
    start = int(_field(state, 'timerStartTime', 'timer_start_time'))
    at_ms = now_ms() if at_ms is None else at_ms
    elapsed = (at_ms - start) // 1000
    return max(0, min(duration, duration - elapsed))
