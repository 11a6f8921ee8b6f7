"""Clock abstraction for the review scheduler.

時刻依存の処理は `now` を引数で受け取るか、ここで定義する Clock を注入して使う。
テストでは `FixedClock` を渡して結果を決定的にする。
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock backed by :func:`utc_now`."""

    def now(self) -> datetime:
        return utc_now()


class FixedClock:
    """A clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, at: datetime) -> None:
        self._at = ensure_utc(at)

    def now(self) -> datetime:
        return self._at

    def advance(self, **delta: float) -> datetime:
        self._at = self._at + timedelta(**delta)
        return self._at
