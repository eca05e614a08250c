"""Wall clock pinned to one calendar timezone.

Every "today" comparison in the engine (deadline de-duplication, streak
walks, quiet hours) goes through the same Clock so they agree on where a
day starts.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo


class Clock:
    def __init__(self, tz_name: str = "UTC"):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    def local(self, dt: datetime) -> datetime:
        """Convert `dt` into the clock's timezone (naive input assumed UTC)."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(self.tz)
