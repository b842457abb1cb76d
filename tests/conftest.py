# tests/conftest.py
from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

# Reference new moon used by the calculator epoch
NEW_MOON_2000 = datetime(2000, 1, 6, 18, 14, tzinfo=UTC)
FULL_MOON_2000 = datetime(2000, 1, 21, 18, 14, tzinfo=UTC)


# ---------- Fake clock loop for the scheduler ----------


class FakeTimer:
    def __init__(self, when: float, callback, args) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    """Manual clock; timers fire only on advance(). Tasks run on the real loop."""

    def __init__(self, real_loop: asyncio.AbstractEventLoop) -> None:
        self._real = real_loop
        self.now = 0.0
        self.timers: list[FakeTimer] = []

    def time(self) -> float:
        return self.now

    def call_at(self, when, callback, *args):
        timer = FakeTimer(when, callback, args)
        self.timers.append(timer)
        return timer

    def create_task(self, coro, name=None):
        return self._real.create_task(coro, name=name)

    def active_timers(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and t.callback is not None]

    async def settle(self) -> None:
        for _ in range(5):
            await asyncio.sleep(0)

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = sorted(
                (t for t in self.active_timers() if t.when <= target), key=lambda t: t.when
            )
            if not due:
                break
            timer = due[0]
            self.now = timer.when
            callback, timer.callback = timer.callback, None
            callback(*timer.args)
            await self.settle()
        self.now = target
        await self.settle()


# ---------- Fake aiohttp-like session for remote sources ----------


class FakeResponse:
    def __init__(self, status: int = 200, payload=None) -> None:
        self.status = status
        self._payload = payload

    async def json(self, content_type=None):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, response: FakeResponse | None = None, error: Exception | None = None) -> None:
        self.response = response or FakeResponse(payload=[])
        self.error = error
        self.closed = False
        self.requests: list[tuple[str, dict]] = []

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, dict(params or {})))
        if self.error is not None:
            raise self.error
        return self.response

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_session_factory():
    def _make(payload=None, status: int = 200, error: Exception | None = None) -> FakeSession:
        return FakeSession(FakeResponse(status=status, payload=payload), error=error)

    return _make
