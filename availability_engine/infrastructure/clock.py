from __future__ import annotations

from datetime import datetime, tzinfo, timezone

from availability_engine.application.ports.clock import ClockPort


class SystemClock(ClockPort):
    def __init__(self, tz: tzinfo = timezone.utc) -> None:
        self._tz = tz

    def now(self) -> datetime:
        return datetime.now(self._tz)
