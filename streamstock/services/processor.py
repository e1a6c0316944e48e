"""Stok Olay İşleyici - her StockEvent'in sistem durumunu değiştirdiği tek yol.

Bir olay için sırasıyla:
1. Olay kimliği daha önce görüldüyse işlem yok (tekrar teslim)
2. Hedef ürün çözülür; yoksa ProductNotFoundError, hiçbir durum değişmez
3. Olay geçmişe eklenir, işaretli delta deftere uygulanır
4. Uyarı Motoru yeni ürün durumu ve olayla çalıştırılır
5. Abonelere bildirim gönderilir (gönder-unut)

Aynı ürüne ait olaylar ürün bazlı kilitle sıralı işlenir.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from streamstock.clock import Clock, SystemClock
from streamstock.exceptions import ProductNotFoundError
from streamstock.models.inventory import Product, StockEvent
from streamstock.services.alert_engine import AlertEngine, AlertEvaluation
from streamstock.services.locks import KeyedLock
from streamstock.services.notifications import NotificationBus
from streamstock.services.stock_validator import StockValidator
from streamstock.stores import EventHistory, ProductLedger

logger = logging.getLogger(__name__)


@dataclass
class ProcessingResult:
    event_id: str
    product_id: str
    duplicate: bool = False
    product: Optional[Product] = None
    evaluation: Optional[AlertEvaluation] = None


class StockEventProcessor:
    """Olayları deftere ve geçmişe uygulayan, uyarı motorunu tetikleyen orkestratör."""

    def __init__(
        self,
        ledger: ProductLedger,
        history: EventHistory,
        alert_engine: AlertEngine,
        bus: Optional[NotificationBus] = None,
        validator: Optional[StockValidator] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.ledger = ledger
        self.history = history
        self.alert_engine = alert_engine
        self.bus = bus
        self.validator = validator or StockValidator()
        self.clock = clock or SystemClock()
        self._locks = KeyedLock()
        self._stats = {"processed": 0, "duplicates": 0, "rejected": 0}
        self._stats_lock = threading.Lock()

    def process(self, event: StockEvent) -> ProcessingResult:
        with self._locks.hold(event.product_id):
            if self.history.contains(event.id):
                logger.debug("Tekrar teslim edilen olay yok sayıldı: %s", event.id)
                self._count("duplicates")
                return ProcessingResult(event.id, event.product_id, duplicate=True)

            before = self.ledger.get(event.product_id)
            if before is None:
                logger.warning("Olay bilinmeyen ürünü hedefliyor: %s -> %s", event.id, event.product_id)
                self._count("rejected")
                raise ProductNotFoundError(event.product_id)

            self.history.append(event)
            updated = self.ledger.apply(event.product_id, event.signed_quantity, self.clock.now())
            if updated is None:
                raise ProductNotFoundError(event.product_id)

            self.validator.log_stock_change(
                product_id=updated.id,
                warehouse=updated.warehouse,
                quantity_before=before.current_stock,
                quantity_after=updated.current_stock,
                event_id=event.id,
                event_type=event.type.value,
                timestamp=updated.last_updated,
            )

            evaluation = self.alert_engine.evaluate(updated, event)
            self._count("processed")

            if self.bus:
                self.bus.event_processed(event)
                self.bus.product_updated(updated)

        return ProcessingResult(
            event_id=event.id,
            product_id=event.product_id,
            product=updated,
            evaluation=evaluation,
        )

    def _count(self, key: str) -> None:
        with self._stats_lock:
            self._stats[key] += 1

    def stats(self) -> dict:
        with self._stats_lock:
            return dict(self._stats)
