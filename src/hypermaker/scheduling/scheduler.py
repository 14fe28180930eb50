"""Keyed timer scheduler driven by a single asyncio loop."""

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable


logger = logging.getLogger(__name__)


@dataclass
class _Timer:
    key: str
    deadline: float
    callback: Callable[[], Any]
    interval: float | None = None


class Scheduler:
    """Runs one-shot and periodic callbacks identified by string keys.

    Scheduling a key that already exists replaces the previous timer, so
    re-arming is just another `call_later`. Callbacks may be plain functions
    or coroutine functions; coroutines are awaited in deadline order.
    Exceptions raised by a callback are logged and never stop the scheduler.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        resolution: float = 0.1,
    ):
        if resolution <= 0:
            raise ValueError("resolution must be positive")
        self._clock = clock
        self._resolution = resolution
        self._timers: dict[str, _Timer] = {}
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def __contains__(self, key: str) -> bool:
        return key in self._timers

    def __len__(self) -> int:
        return len(self._timers)

    def call_later(self, key: str, delay: float, callback: Callable[[], Any]) -> None:
        """Run `callback` once after `delay` seconds."""
        if delay < 0:
            raise ValueError(f"delay must be non-negative, got {delay}")
        self._timers[key] = _Timer(key, self._clock() + delay, callback)

    def call_every(
        self,
        key: str,
        interval: float,
        callback: Callable[[], Any],
        run_immediately: bool = False,
    ) -> None:
        """Run `callback` every `interval` seconds until cancelled."""
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        first = self._clock() if run_immediately else self._clock() + interval
        self._timers[key] = _Timer(key, first, callback, interval)

    def cancel(self, key: str) -> bool:
        """Remove a timer. Returns False if the key was not scheduled."""
        return self._timers.pop(key, None) is not None

    def cancel_prefix(self, prefix: str) -> int:
        """Remove every timer whose key starts with `prefix`."""
        keys = [key for key in self._timers if key.startswith(prefix)]
        for key in keys:
            del self._timers[key]
        return len(keys)

    def next_deadline(self, key: str) -> float | None:
        timer = self._timers.get(key)
        return timer.deadline if timer else None

    async def tick(self) -> int:
        """Fire every timer that is due. Returns the number of callbacks run."""
        now = self._clock()
        due = sorted(
            (t for t in self._timers.values() if t.deadline <= now),
            key=lambda t: t.deadline,
        )
        fired = 0
        for timer in due:
            # An earlier callback in this tick may have cancelled or replaced it
            if self._timers.get(timer.key) is not timer:
                continue
            if timer.interval is None:
                del self._timers[timer.key]
            else:
                timer.deadline = now + timer.interval

            fired += 1
            try:
                result = timer.callback()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Scheduled callback '{timer.key}' failed")
        return fired

    async def run(self) -> None:
        """Tick until `stop()` is called or the task is cancelled."""
        self._running = True
        logger.info("Scheduler started")
        try:
            while self._running:
                await self.tick()
                await asyncio.sleep(self._resolution)
        finally:
            self._running = False
            logger.info("Scheduler stopped")

    def stop(self) -> None:
        self._running = False
