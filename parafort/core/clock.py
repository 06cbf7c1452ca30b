# parafort/core/clock.py
from __future__ import annotations

from datetime import datetime, timezone


class SystemClock:
    """UTC wall clock, naive like every DateTime column in the schema."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedClock:
    """Clock pinned to a given instant; `advance` moves it by a timedelta."""

    def __init__(self, at: datetime):
        self._at = at

    def now(self) -> datetime:
        return self._at

    def set(self, at: datetime) -> None:
        self._at = at

    def advance(self, delta) -> datetime:
        self._at = self._at + delta
        return self._at
