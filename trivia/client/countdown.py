import logging
import threading
import time
from typing import Any, Callable, Mapping, Optional

from trivia.services.game.timer import is_running, now_ms, remaining_seconds

logger = logging.getLogger(__name__)


def _spawn_thread(target: Callable[[], None]) -> None:
    threading.Thread(target=target, daemon=True).start()


class Countdown:
    """Local one-second ticker over the shared timer fields.

    Never writes anything: every observer recomputes the same value from
    ``timerStartTime`` and ``timerDuration``.
    """

    def __init__(self, on_tick: Optional[Callable[[int], None]] = None, clock: Callable[[], int] = now_ms,
                 spawn: Callable[[Callable[[], None]], Any] = _spawn_thread,
                 sleep: Callable[[float], None] = time.sleep, interval: float = 1.0):
        self.on_tick = on_tick
        self.clock = clock
        self.spawn = spawn
        self.sleep = sleep
        self.interval = interval
        self.state: Optional[Mapping] = None
        self.remaining: Optional[int] = None
        self._running = False
        self._closed = False
        self._lock = threading.Lock()

    def observe(self, state: Mapping) -> int:
        """Take a new game-state snapshot and start or stop ticking to match it."""
        if self._closed:
            return self.remaining
        self.state = state
        value = self.tick()
        if is_running(state) and value > 0:
            self._start()
        return value

    def tick(self) -> int:
        if self.state is None:
            return self.remaining
        value = remaining_seconds(self.state, self.clock())
        if value != self.remaining:
            self.remaining = value
            if self.on_tick and not self._closed:
                self.on_tick(value)
        return value

    def _start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
        self.spawn(self._loop)

    def _keep_ticking(self) -> bool:
        # Stopping and clearing the flag are one step under the lock
        with self._lock:
            alive = (not self._closed and self.state is not None and is_running(self.state)
                     and remaining_seconds(self.state, self.clock()) > 0)
            if not alive:
                self._running = False
            return alive

    def _loop(self) -> None:
        try:
            while self._keep_ticking():
                self.sleep(self.interval)
                if not self._closed:
                    self.tick()
        except Exception:
            with self._lock:
                self._running = False
            raise
        logger.debug('countdown stopped at %s', self.remaining)

    def close(self) -> None:
        self._closed = True
