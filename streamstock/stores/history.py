"""Olay geçmişi - işlenmiş stok olaylarının yalnızca eklemeli kaydı."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Optional

from streamstock.models.inventory import EventType, StockEvent


class EventHistory:
    """Zaman, ürün ve tip bazında sorgulanabilir olay deposu.

    Aynı kimlikli olayın ikinci kez eklenmesi hata değildir, sessizce yok sayılır
    (mesaj katmanının tekrar teslimi için).
    """

    def __init__(self) -> None:
        self._events: list[StockEvent] = []
        self._ids: set[str] = set()
        # {product_id: [StockEvent]} - ekleme sırası korunur
        self._by_product: dict[str, list[StockEvent]] = {}
        self._lock = threading.RLock()

    def append(self, event: StockEvent) -> bool:
        """Olayı ekler. Kimlik daha önce görüldüyse False döner."""
        with self._lock:
            if event.id in self._ids:
                return False
            self._ids.add(event.id)
            self._events.append(event)
            self._by_product.setdefault(event.product_id, []).append(event)
            return True

    def contains(self, event_id: str) -> bool:
        with self._lock:
            return event_id in self._ids

    def get(self, event_id: str) -> Optional[StockEvent]:
        with self._lock:
            if event_id not in self._ids:
                return None
            return next(e for e in self._events if e.id == event_id)

    def all(self) -> list[StockEvent]:
        with self._lock:
            return list(self._events)

    def by_product(self, product_id: str) -> list[StockEvent]:
        with self._lock:
            return list(self._by_product.get(product_id, []))

    def by_type(self, event_type: EventType) -> list[StockEvent]:
        return [e for e in self.all() if e.type == event_type]

    def in_window(
        self,
        start: datetime,
        end: Optional[datetime] = None,
        product_id: Optional[str] = None,
    ) -> list[StockEvent]:
        """[start, end] aralığındaki olayları döndürür."""
        events = self.by_product(product_id) if product_id else self.all()
        return [
            e for e in events
            if e.timestamp >= start and (end is None or e.timestamp <= end)
        ]

    def recent(self, limit: int = 20) -> list[StockEvent]:
        """En yeni olaylar önce olacak şekilde sıralı liste."""
        events = sorted(self.all(), key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
