"""Periodic refresh timer plus per-track single-flight guards.

Each track (subscriptions, usage stats) is either idle or fetching. A refresh
requested while its track is fetching is dropped, never queued. The guards
are plain booleans: the check and the set happen in one synchronous step, so
no other coroutine can interleave between them on the event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

RefreshOperation = Callable[[], Awaitable[None]]


class Track(str, Enum):
    SUBSCRIPTIONS = 'subscriptions'
    USAGE_STATS = 'usage_stats'


class SingleFlight:
    def __init__(self, name: str) -> None:
        self.name = name
        self.in_flight = False
        self.rerun = False
        self.rerun_operation: RefreshOperation | None = None

    def try_acquire(self) -> bool:
        if self.in_flight:
            return False
        self.in_flight = True
        return True

    def release(self) -> None:
        self.in_flight = False


@dataclass
class RefreshState:
    subscriptions: SingleFlight = field(default_factory=lambda: SingleFlight(Track.SUBSCRIPTIONS.value))
    usage_stats: SingleFlight = field(default_factory=lambda: SingleFlight(Track.USAGE_STATS.value))
    timer: asyncio.Task[None] | None = None
    interval_seconds: int = 0

    def guard(self, track: Track) -> SingleFlight:
        if track is Track.SUBSCRIPTIONS:
            return self.subscriptions
        return self.usage_stats


class RefreshScheduler:
    """Owns a ``RefreshState`` and runs refresh operations under its guards."""

    def __init__(
        self,
        refresh_subscriptions: RefreshOperation,
        refresh_usage_stats: RefreshOperation,
        state: RefreshState | None = None,
    ) -> None:
        self._operations = {
            Track.SUBSCRIPTIONS: refresh_subscriptions,
            Track.USAGE_STATS: refresh_usage_stats,
        }
        self.state = state or RefreshState()
        self._background: set[asyncio.Task[None]] = set()
        self._closed = False

    def is_fetching(self, track: Track) -> bool:
        return self.state.guard(track).in_flight

    async def run(self, track: Track, operation: RefreshOperation | None = None) -> bool:
        """Run a refresh on ``track`` and wait for it; returns False when dropped."""
        guard = self.state.guard(track)
        if not guard.try_acquire():
            logger.debug('Refresh of %s already in flight; dropping request', track.value)
            return False
        try:
            await (operation or self._operations[track])()
        finally:
            self._settle(track)
        return True

    def trigger(
        self,
        track: Track,
        operation: RefreshOperation | None = None,
        rerun_if_busy: bool = False,
    ) -> bool:
        """Start a refresh on ``track`` in the background; returns False when dropped.

        With ``rerun_if_busy`` a trigger that hits an in-flight refresh is not
        dropped but runs once more after that refresh settles.
        """
        guard = self.state.guard(track)
        if not guard.try_acquire():
            if rerun_if_busy:
                guard.rerun = True
                guard.rerun_operation = operation
                logger.debug('Refresh of %s in flight; rerun queued', track.value)
            else:
                logger.debug('Refresh of %s already in flight; dropping trigger', track.value)
            return False
        task = asyncio.create_task(self._run_acquired(track, operation), name=f'rightcode-refresh-{track.value}')
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        # Also covers a task cancelled before its first step.
        task.add_done_callback(lambda _task: self._settle(track))
        return True

    def _settle(self, track: Track) -> None:
        guard = self.state.guard(track)
        guard.release()
        if not guard.rerun:
            return
        operation = guard.rerun_operation
        guard.rerun = False
        guard.rerun_operation = None
        if not self._closed:
            self.trigger(track, operation)

    def trigger_all(self) -> dict[Track, bool]:
        return {track: self.trigger(track) for track in Track}

    async def drain(self) -> None:
        """Wait until every triggered refresh has settled."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
            await asyncio.sleep(0)

    async def _run_acquired(self, track: Track, operation: RefreshOperation | None) -> None:
        try:
            await (operation or self._operations[track])()
        except Exception:  # pragma: no cover - background failure
            logger.exception('Refresh of %s failed', track.value)

    def arm(self, interval_seconds: int) -> asyncio.Task[None] | None:
        """Replace the periodic timer; a non-positive interval disables it."""
        self.disarm()
        self.state.interval_seconds = interval_seconds
        if interval_seconds <= 0:
            logger.info('Periodic refresh disabled (interval=%ss)', interval_seconds)
            return None
        self.state.timer = asyncio.create_task(self._timer_loop(interval_seconds), name='rightcode-refresh-timer')
        logger.info('Periodic refresh armed (interval=%ss)', interval_seconds)
        return self.state.timer

    def disarm(self) -> None:
        timer = self.state.timer
        self.state.timer = None
        if timer and not timer.done():
            timer.cancel()

    async def shutdown(self) -> None:
        self._closed = True
        timer = self.state.timer
        self.disarm()
        pending = [task for task in (timer, *self._background) if task is not None]
        for task in pending:
            task.cancel()
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _timer_loop(self, interval_seconds: int) -> None:
        try:
            while True:
                await asyncio.sleep(interval_seconds)
                logger.debug('Periodic refresh tick')
                self.trigger_all()
        except asyncio.CancelledError:  # pragma: no cover - cancellation path
            logger.debug('Stopping refresh timer (interval=%ss)', interval_seconds)
            raise
