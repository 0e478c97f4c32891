from __future__ import annotations

import itertools
from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import fakeredis
import pytest
from fastapi.testclient import TestClient

T0 = datetime(2025, 10, 31, 19, 0, tzinfo=UTC)


@dataclass(eq=False)
class ManualTimer:
    when: datetime
    seq: int
    callback: Callable[[], None]
    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """Virtual clock: timers only fire when a test calls `advance()`.

    Due timers run in (due time, arming order); timers armed while advancing
    fire in the same call if they fall due before the target time.
    """

    def __init__(self, start: datetime = T0) -> None:
        self._now = start
        self._seq = itertools.count()
        self._timers: list[ManualTimer] = []

    def now(self) -> datetime:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(when=self._now + timedelta(seconds=max(0.0, delay)), seq=next(self._seq), callback=callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, seconds: float = 0.0) -> None:
        target = self._now + timedelta(seconds=seconds)
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self._now = max(self._now, timer.when)
            timer.callback()
        self._now = target


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def store(r: fakeredis.FakeRedis):
    from gamenight.participant_store import ParticipantStore

    return ParticipantStore(r=r, prefix="test")


@pytest.fixture()
def scheduler(clock: ManualClock):
    from gamenight.core.scheduler import Scheduler

    return Scheduler(clock=clock)


@pytest.fixture()
def client_and_redis(
    monkeypatch: pytest.MonkeyPatch,
    r: fakeredis.FakeRedis,
    scheduler,
) -> Generator[tuple[TestClient, fakeredis.FakeRedis], None, None]:
    """FastAPI TestClient wired to fakeredis and a virtual-clock scheduler."""

    monkeypatch.delenv("GAMENIGHT_STRICT_EVENTS", raising=False)
    monkeypatch.setenv("GAMENIGHT_EVENTS_PATH", "tests/does-not-exist.json")

    from gamenight.api.deps import get_redis, get_scheduler
    from gamenight.main import app

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()
