"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

import pytest
from httpx import ASGITransport, AsyncClient

from goalalerts.engine.clock import Clock
from goalalerts.engine.dispatcher import DisplayOptions
from goalalerts.engine.models import Goal, GoalProgress, PermissionState
from goalalerts.engine.router import get_service
from goalalerts.engine.service import NotificationService
from goalalerts.engine.store import MemoryStore
from goalalerts.main import app

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fakes (no real clock, platform or database needed)
# ---------------------------------------------------------------------------

class FakeClock(Clock):
    """Clock frozen at `current` until moved."""

    def __init__(self, current: datetime = NOW, tz_name: str = "UTC"):
        self.tz = ZoneInfo(tz_name)
        self.current = current

    def now(self) -> datetime:
        return self.current.astimezone(self.tz)

    def set_time(self, hour: int, minute: int = 0) -> None:
        self.current = self.now().replace(hour=hour, minute=minute, second=0, microsecond=0)

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class FakeHandle:
    def __init__(self, title: str, tag: str):
        self.title = title
        self.tag = tag
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakePlatform:
    """Records shown notifications; permission is settable."""

    def __init__(self, state: PermissionState = PermissionState.granted):
        self.state = state
        self.grant_on_request = PermissionState.granted
        self.shown: list[tuple[FakeHandle, DisplayOptions]] = []
        self.permission_queries = 0

    async def permission(self) -> PermissionState:
        self.permission_queries += 1
        return self.state

    async def request_permission(self) -> PermissionState:
        self.state = self.grant_on_request
        return self.state

    async def show(self, title: str, body: str, tag: str, options: DisplayOptions) -> FakeHandle:
        handle = FakeHandle(title, tag)
        self.shown.append((handle, options))
        return handle


class FakeSession:
    """Minimal stand-in for AsyncSession backing SqlStore tests.

    SELECTs read from `rows`; upserts write to it once committed.
    """

    def __init__(self, rows: dict[str, str]):
        self.rows = rows
        self.statements: list[str] = []
        self._pending: dict[str, str] = {}

    async def execute(self, stmt, params=None):
        sql = str(stmt)
        self.statements.append(sql)
        if sql.startswith("SELECT"):
            value = self.rows.get(params["key"])
            return FakeResult(None if value is None else (value,))
        self._pending[params["key"]] = params["value"]
        return FakeResult(None)

    async def commit(self):
        self.rows.update(self._pending)
        self._pending.clear()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class FakeResult:
    def __init__(self, row: tuple | None):
        self._row = row

    def fetchone(self):
        return self._row


class FailingStore:
    """Store whose every call raises, like an unavailable backend."""

    async def get(self, key: str) -> str | None:
        raise OSError("store unavailable")

    async def set(self, key: str, value: str) -> None:
        raise OSError("store unavailable")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def platform():
    return FakePlatform()


@pytest.fixture()
def service(store, clock, platform):
    return NotificationService(store, clock, platform, auto_close_seconds=60.0)


@pytest.fixture()
def override_service(service):
    """Override the FastAPI dependency so each test gets a fresh engine."""
    app.dependency_overrides[get_service] = lambda: service
    yield service
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_service):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def make_goal(
    goal_id: str = "g1",
    title: str = "Run 100km",
    target: float = 100.0,
    unit: str = "km",
    goal_type: str = "distance",
    start: datetime | None = None,
    end: datetime | None = None,
    **overrides: Any,
) -> Goal:
    """Helper to build a goal running from 30 days ago to 30 days ahead."""
    return Goal(
        id=goal_id,
        title=title,
        type=goal_type,
        target_value=target,
        target_unit=unit,
        start_date=start or NOW - timedelta(days=30),
        end_date=end or NOW + timedelta(days=30),
        **overrides,
    )


def make_progress(
    goal_id: str = "g1",
    current: float = 0.0,
    target: float = 100.0,
    days_remaining: int = 30,
) -> GoalProgress:
    pct = current / target * 100.0 if target else 0.0
    return GoalProgress(
        goal_id=goal_id,
        current_value=current,
        progress_percentage=pct,
        remaining_value=max(target - current, 0.0),
        days_remaining=days_remaining,
    )
