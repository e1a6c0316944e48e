"""Zaman kaynağı soyutlaması. TTL ve zaman penceresi kuralları doğrudan duvar saatini okumaz."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Gerçek UTC saati."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Elle ilerletilen saat (testler ve simülasyon için)."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self._now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value

    def advance(self, **kwargs: float) -> datetime:
        self._now = self._now + timedelta(**kwargs)
        return self._now
