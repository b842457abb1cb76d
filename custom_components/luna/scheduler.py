"""Periodic refresh driver.

RefreshScheduler owns exactly one timer handle on an asyncio loop and runs
one refresh coroutine at a time:

    STOPPED --start()--> RUNNING   immediate refresh, then every interval
    RUNNING --set_interval()--> RUNNING   old handle cancelled, new one armed
    RUNNING --stop()--> STOPPED   timer cancelled; in-flight refresh left alone

Ticks that arrive while a refresh is still running are dropped, not queued.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from enum import StrEnum
import logging
from typing import Any

from .config import resolve_update_interval

_LOGGER = logging.getLogger(__name__)

type RefreshCallback = Callable[[], Awaitable[Any]]
type TaskFactory = Callable[[Coroutine[Any, Any, None], str], asyncio.Task[None]]


class SchedulerState(StrEnum):
    """Lifecycle states of the scheduler."""

    STOPPED = "stopped"
    RUNNING = "running"


class RefreshScheduler:
    """Run ``refresh`` now and then every ``interval`` seconds."""

    def __init__(
        self,
        refresh: RefreshCallback,
        interval: Any,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        name: str = "luna",
        task_factory: TaskFactory | None = None,
    ) -> None:
        """Initialize a stopped scheduler.

        Args:
            refresh: Coroutine function performing one refresh.
            interval: Configured interval; normalized by resolve_update_interval.
            loop: Event loop to schedule on; the running loop by default.
            name: Label used in log messages.
            task_factory: Creates the refresh task from a coroutine and a task
                name; tasks go straight onto the loop by default.
        """
        self._refresh = refresh
        self._interval: int = resolve_update_interval(interval)
        self._loop = loop
        self._name = name
        self._task_factory = task_factory
        self._state = SchedulerState.STOPPED
        self._handle: asyncio.TimerHandle | None = None
        self._next_due: float | None = None
        self._in_flight: asyncio.Task[Any] | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def interval(self) -> int:
        """Effective interval in seconds."""
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._state is SchedulerState.RUNNING

    @property
    def in_flight(self) -> bool:
        """True while a refresh coroutine has not finished."""
        return self._in_flight is not None and not self._in_flight.done()

    @property
    def next_due(self) -> float | None:
        """Loop time of the next scheduled tick, or None when stopped."""
        return self._next_due

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def start(self) -> None:
        """Start refreshing; a no-op when already running."""
        if self._state is SchedulerState.RUNNING:
            return
        loop = self._get_loop()
        self._state = SchedulerState.RUNNING
        _LOGGER.debug("%s: scheduler started, interval %ss", self._name, self._interval)
        self._launch("start")
        self._arm(loop.time() + self._interval)

    def stop(self) -> None:
        """Cancel the timer; stopping twice is harmless.

        A refresh already in flight is allowed to finish.
        """
        if self._state is SchedulerState.STOPPED:
            return
        self._cancel_timer()
        self._state = SchedulerState.STOPPED
        _LOGGER.debug("%s: scheduler stopped", self._name)

    def set_interval(self, interval: Any) -> int:
        """Change the interval and re-arm the timer.

        The next tick is due one full new interval from now.

        Returns:
            The effective interval in seconds.
        """
        new_interval = resolve_update_interval(interval)
        changed = new_interval != self._interval
        self._interval = new_interval
        if self._state is SchedulerState.RUNNING:
            self._cancel_timer()
            self._arm(self._get_loop().time() + new_interval)
            if changed:
                _LOGGER.info("%s: update interval changed to %ss", self._name, new_interval)
        return new_interval

    def refresh_now(self) -> bool:
        """Run one refresh outside the timer; the timer deadline is untouched.

        Returns:
            True if a refresh was launched, False if one was already in flight.
        """
        return self._launch("manual")

    def _arm(self, when: float) -> None:
        self._next_due = when
        self._handle = self._get_loop().call_at(when, self._on_timer)

    def _cancel_timer(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._next_due = None

    def _on_timer(self) -> None:
        self._handle = None
        if self._state is not SchedulerState.RUNNING or self._next_due is None:
            return
        due = self._next_due
        self._launch("timer")
        # Keep the original cadence even if this callback ran late
        now = self._get_loop().time()
        nxt = due + self._interval
        if nxt <= now:
            nxt = now + self._interval
        self._arm(nxt)

    def _launch(self, reason: str) -> bool:
        if self.in_flight:
            _LOGGER.debug("%s: %s tick dropped, refresh still in flight", self._name, reason)
            return False
        coro = self._run(reason)
        task_name = f"{self._name} refresh ({reason})"
        if self._task_factory is not None:
            task = self._task_factory(coro, task_name)
        else:
            task = self._get_loop().create_task(coro, name=task_name)
        task.add_done_callback(self._on_done)
        # An eagerly started task may already be finished here
        self._in_flight = None if task.done() else task
        return True

    async def _run(self, reason: str) -> None:
        _LOGGER.debug("%s: refreshing (%s)", self._name, reason)
        try:
            await self._refresh()
        finally:
            self._in_flight = None

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            _LOGGER.error("%s: refresh failed", self._name, exc_info=err)
