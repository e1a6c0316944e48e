"""Alım sınırı - mesaj katmanından gelen olay kayıtlarının ayrıştırılması ve dağıtımı.

- parse_event: {id, type, productId, quantity, timestamp, metadata} kaydını StockEvent'e çevirir
- EventDispatcher: ürün kimliğine göre bölümlenmiş worker thread'leri.
  Aynı ürünün olayları aynı worker'da geliş sırasıyla işlenir.
"""

from __future__ import annotations

import json
import logging
import queue
import threading
import zlib
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from streamstock.clock import Clock, SystemClock
from streamstock.exceptions import MalformedEventError, StreamStockError
from streamstock.models.inventory import EventMetadata, EventType, StockEvent, as_utc
from streamstock.services.processor import ProcessingResult, StockEventProcessor

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "type", "productId", "quantity")
_KNOWN_METADATA = ("source", "warehouse", "historical", "day")

RawEvent = Union[str, bytes, Mapping]


def _parse_timestamp(value: Any, clock: Clock) -> datetime:
    if value is None:
        return clock.now()
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch milisaniye
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            raise MalformedEventError(f"Geçersiz zaman damgası: {value!r}")
    else:
        raise MalformedEventError(f"Geçersiz zaman damgası: {value!r}")

    return as_utc(parsed)


def parse_metadata(raw: Any, warehouse: Optional[str] = None) -> EventMetadata:
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise MalformedEventError("metadata bir nesne olmalı")

    day = raw.get("day")
    if day is not None and (isinstance(day, bool) or not isinstance(day, int)):
        raise MalformedEventError(f"metadata.day tamsayı olmalı: {day!r}")

    return EventMetadata(
        source=str(raw.get("source", "unknown")),
        warehouse=raw.get("warehouse", warehouse),
        historical=bool(raw.get("historical", False)),
        day=day,
        extra={k: v for k, v in raw.items() if k not in _KNOWN_METADATA},
    )


def parse_event(raw: RawEvent, clock: Optional[Clock] = None) -> StockEvent:
    """Serileştirilmiş olay kaydını doğrular ve StockEvent'e çevirir.

    Eksik veya hatalı alan varsa MalformedEventError.
    """
    clock = clock or SystemClock()

    if isinstance(raw, (str, bytes)):
        try:
            record = json.loads(raw)
        except ValueError as e:
            raise MalformedEventError(f"Olay JSON olarak çözülemedi: {e}")
    else:
        record = raw

    if not isinstance(record, Mapping):
        raise MalformedEventError("Olay kaydı bir nesne olmalı")

    missing = [f for f in REQUIRED_FIELDS if record.get(f) in (None, "")]
    if missing:
        raise MalformedEventError(f"Eksik alanlar: {', '.join(missing)}")

    try:
        event_type = EventType(str(record["type"]).upper())
    except ValueError:
        raise MalformedEventError(f"Desteklenmeyen olay tipi: {record['type']!r}")

    quantity = record["quantity"]
    if isinstance(quantity, float) and quantity.is_integer():
        quantity = int(quantity)
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise MalformedEventError(f"Miktar tamsayı olmalı: {quantity!r}")
    if quantity <= 0:
        raise MalformedEventError(f"Miktar pozitif olmalı: {quantity}")

    return StockEvent(
        id=str(record["id"]),
        type=event_type,
        product_id=str(record["productId"]),
        quantity=quantity,
        timestamp=_parse_timestamp(record.get("timestamp"), clock),
        metadata=parse_metadata(record.get("metadata"), record.get("warehouse")),
    )


AckCallback = Callable[[StockEvent, ProcessingResult], None]
ErrorCallback = Callable[[Any, Exception], None]

_STOP = object()


class EventDispatcher:
    """Ürün bölümlerine ayrılmış worker havuzu.

    bölüm = crc32(product_id) % worker_count. Her worker kendi kuyruğunu sırayla
    işler; başarılı işlemden sonra on_ack çağrılır. Yeniden deneme yapılmaz,
    onaylanmayan mesajları tekrar teslim etmek mesaj katmanının işidir.
    """

    def __init__(
        self,
        processor: StockEventProcessor,
        worker_count: int = 4,
        on_ack: Optional[AckCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        if worker_count <= 0:
            raise ValueError("worker_count pozitif olmalı")
        self.processor = processor
        self.worker_count = worker_count
        self.on_ack = on_ack
        self.on_error = on_error
        self.clock = clock or SystemClock()
        self._queues: list[queue.Queue] = [queue.Queue() for _ in range(worker_count)]
        self._threads: list[threading.Thread] = []
        self._failures: list[tuple[Any, Exception]] = []
        self._failures_lock = threading.Lock()

    def partition_for(self, product_id: str) -> int:
        return zlib.crc32(product_id.encode("utf-8")) % self.worker_count

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def start(self) -> None:
        if self.running:
            logger.warning("Dağıtıcı zaten çalışıyor")
            return
        self._threads = [
            threading.Thread(
                target=self._worker, args=(i,), name=f"streamstock-partition-{i}", daemon=True
            )
            for i in range(self.worker_count)
        ]
        for thread in self._threads:
            thread.start()
        logger.info("Olay dağıtıcı başlatıldı: %d bölüm", self.worker_count)

    def submit(self, raw: RawEvent) -> bool:
        """Mesajı ayrıştırıp ilgili bölüm kuyruğuna koyar. Hatalı mesajda False."""
        try:
            event = parse_event(raw, self.clock)
        except MalformedEventError as e:
            logger.warning("Hatalı olay reddedildi: %s", e)
            self._fail(raw, e)
            return False

        self._queues[self.partition_for(event.product_id)].put(event)
        return True

    def join(self) -> None:
        """Tüm kuyruklar boşalana kadar bekler."""
        for q in self._queues:
            q.join()

    def stop(self, timeout: Optional[float] = None) -> None:
        if not self._threads:
            return
        for q in self._queues:
            q.put(_STOP)
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        logger.info("Olay dağıtıcı durduruldu")

    def failures(self) -> list[tuple[Any, Exception]]:
        with self._failures_lock:
            return list(self._failures)

    def _worker(self, partition: int) -> None:
        q = self._queues[partition]
        while True:
            item = q.get()
            try:
                if item is _STOP:
                    return
                self._handle(item)
            finally:
                q.task_done()

    def _handle(self, event: StockEvent) -> None:
        try:
            result = self.processor.process(event)
        except StreamStockError as e:
            self._fail(event, e)
            return
        except Exception as e:
            # Programlama hatası: loglanır, mesaj onaylanmaz
            logger.exception("Olay işlenirken beklenmeyen hata: %s", event.id)
            self._fail(event, e)
            return

        if self.on_ack:
            try:
                self.on_ack(event, result)
            except Exception as e:
                logger.warning("Onay callback hatası [%s]: %s", event.id, e)

    def _fail(self, item: Any, error: Exception) -> None:
        with self._failures_lock:
            self._failures.append((item, error))
        if self.on_error:
            try:
                self.on_error(item, error)
            except Exception as e:
                logger.warning("Hata callback hatası: %s", e)
