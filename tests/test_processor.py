"""Stock Event Processor unit testleri."""

import random
import threading
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from streamstock.clock import ManualClock
from streamstock.exceptions import ProductNotFoundError
from streamstock.models.inventory import AlertType, EventType, Product, StockEvent
from streamstock.services.alert_engine import AlertEngine
from streamstock.services.notifications import EVENT_NEW, PRODUCT_UPDATE, NotificationBus
from streamstock.services.processor import StockEventProcessor
from streamstock.stores import AlertRegistry, EventHistory, ProductLedger


def _create_processor():
    clock = ManualClock()
    ledger = ProductLedger()
    history = EventHistory()
    registry = AlertRegistry()
    bus = NotificationBus()
    engine = AlertEngine(history, registry, bus=bus, clock=clock)
    processor = StockEventProcessor(ledger, history, engine, bus=bus, clock=clock)
    return processor, ledger, history, registry, bus, clock


def _product(product_id: str = "P1", stock: int = 50, reorder_point: int = 100,
             max_capacity: int = 500) -> Product:
    return Product(
        id=product_id,
        sku=f"SKU-{product_id}",
        name=f"Ürün {product_id}",
        category="Elektronik",
        warehouse="WH-1",
        current_stock=stock,
        reorder_point=reorder_point,
        max_capacity=max_capacity,
        unit_price=25.0,
    )


def _event(event_id: str, event_type: EventType, quantity: int, clock: ManualClock,
           product_id: str = "P1") -> StockEvent:
    return StockEvent(id=event_id, type=event_type, product_id=product_id,
                      quantity=quantity, timestamp=clock.now())


def _active_types(registry: AlertRegistry, product_id: str = "P1") -> set:
    return {a.type for a in registry.by_product(product_id) if not a.resolved}


class TestEventApplication:
    """Olayın deftere ve geçmişe uygulanması."""

    def test_sale_creates_low_stock_warning(self):
        processor, ledger, history, registry, _, clock = _create_processor()
        ledger.provision(_product(stock=50, reorder_point=100, max_capacity=500))

        result = processor.process(_event("E1", EventType.SALE, 5, clock))

        assert result.product.current_stock == 45
        assert ledger.get("P1").current_stock == 45
        assert history.contains("E1")
        active = _active_types(registry)
        assert AlertType.LOW_STOCK in active
        assert AlertType.CRITICAL_LOW_STOCK not in active

    def test_critical_then_restock(self):
        processor, ledger, _, registry, _, clock = _create_processor()
        ledger.provision(_product(stock=12, reorder_point=30, max_capacity=200))

        processor.process(_event("E1", EventType.SALE, 5, clock))
        assert ledger.get("P1").current_stock == 7
        assert AlertType.CRITICAL_LOW_STOCK in _active_types(registry)
        assert AlertType.LOW_STOCK not in _active_types(registry)

        result = processor.process(_event("E2", EventType.RESTOCK, 10, clock))
        assert result.product.current_stock == 17
        assert [a.type for a in result.evaluation.resolved] == [AlertType.CRITICAL_LOW_STOCK]
        active = _active_types(registry)
        assert AlertType.CRITICAL_LOW_STOCK not in active
        assert AlertType.LOW_STOCK in active

    def test_return_increases_stock(self):
        processor, ledger, _, _, _, clock = _create_processor()
        ledger.provision(_product(stock=200))
        processor.process(_event("E1", EventType.RETURN, 3, clock))
        assert ledger.get("P1").current_stock == 203

    def test_last_updated_from_clock(self):
        processor, ledger, _, _, _, clock = _create_processor()
        ledger.provision(_product(stock=200))
        clock.advance(hours=1)
        processor.process(_event("E1", EventType.SALE, 1, clock))
        assert ledger.get("P1").last_updated == clock.now()

    def test_audit_log_written(self):
        processor, ledger, _, _, _, clock = _create_processor()
        ledger.provision(_product(stock=200))
        processor.process(_event("E1", EventType.SALE, 4, clock))
        entries = processor.validator.get_audit_log(product_id="P1")
        assert len(entries) == 1
        assert entries[0].quantity_before == 200
        assert entries[0].quantity_after == 196
        assert entries[0].change_amount == -4


class TestIdempotency:
    """Tekrar teslim edilen olaylar."""

    def test_redelivered_event_is_noop(self):
        processor, ledger, history, registry, bus, clock = _create_processor()
        ledger.provision(_product(stock=12, reorder_point=30, max_capacity=200))
        event = _event("E1", EventType.SALE, 5, clock)

        processor.process(event)
        alerts_before = len(registry)
        messages_before = len(bus.get_message_log())

        result = processor.process(event)

        assert result.duplicate is True
        assert ledger.get("P1").current_stock == 7
        assert len(history) == 1
        assert len(registry) == alerts_before
        assert len(bus.get_message_log()) == messages_before
        assert processor.stats()["duplicates"] == 1


class TestUnknownProduct:
    """Bilinmeyen ürünü hedefleyen olay."""

    def test_raises_without_state_change(self):
        processor, ledger, history, registry, bus, clock = _create_processor()
        ledger.provision(_product(stock=50))

        with pytest.raises(ProductNotFoundError):
            processor.process(_event("E1", EventType.SALE, 5, clock, product_id="NOPE"))

        assert len(history) == 0
        assert len(registry) == 0
        assert bus.get_message_log() == []
        assert ledger.get("P1").current_stock == 50
        assert processor.stats()["rejected"] == 1


class TestNotifications:
    """Gönder-unut bildirimleri."""

    def test_event_and_product_notifications(self):
        processor, ledger, _, _, bus, clock = _create_processor()
        ledger.provision(_product(stock=200))
        processor.process(_event("E1", EventType.SALE, 5, clock))

        assert bus.get_message_log(EVENT_NEW)[0].payload["id"] == "E1"
        assert bus.get_message_log(PRODUCT_UPDATE)[0].payload["currentStock"] == 195

    def test_subscriber_failure_does_not_roll_back(self):
        processor, ledger, history, _, bus, clock = _create_processor()
        ledger.provision(_product(stock=200))

        def broken(notification):
            raise ConnectionError("istemci bağlantısı koptu")

        bus.subscribe(broken)
        result = processor.process(_event("E1", EventType.SALE, 5, clock))

        assert result.product.current_stock == 195
        assert ledger.get("P1").current_stock == 195
        assert history.contains("E1")


class TestInvariants:
    """Rastgele olay dizileri üzerinde değişmezler."""

    def _random_events(self, rng, count, clock, product_ids=("P1",)):
        events = []
        for i in range(count):
            event_type = rng.choice(list(EventType))
            quantity = rng.randint(1, 10) if event_type != EventType.RESTOCK else rng.randint(10, 60)
            events.append(_event(f"E{i}", event_type, quantity, clock, rng.choice(product_ids)))
        return events

    def test_stock_equals_initial_plus_signed_sum(self):
        processor, ledger, history, _, _, clock = _create_processor()
        ledger.provision(_product(stock=1000, reorder_point=100, max_capacity=5000))
        events = self._random_events(random.Random(11), 200, clock)

        for event in events:
            processor.process(event)

        assert ledger.anomalies() == []
        expected = 1000 + sum(e.signed_quantity for e in history.by_product("P1"))
        assert ledger.get("P1").current_stock == expected
        result = processor.validator.verify_stock_conservation(ledger.get("P1"), 1000, history.all())
        assert result.is_valid is True

    def test_single_unresolved_alert_per_type(self):
        processor, ledger, _, registry, _, clock = _create_processor()
        ledger.provision(_product("P1", stock=40, reorder_point=30, max_capacity=150))
        ledger.provision(_product("P2", stock=15, reorder_point=20, max_capacity=100))
        events = self._random_events(random.Random(3), 300, clock, ("P1", "P2"))

        for event in events:
            clock.advance(minutes=7)
            processor.process(event)

        for product_id in ("P1", "P2"):
            for alert_type in AlertType:
                unresolved = [
                    a for a in registry.by_product(product_id)
                    if a.type == alert_type and not a.resolved
                ]
                assert len(unresolved) <= 1
        assert all(p.current_stock >= 0 for p in ledger.all())


class TestConcurrency:
    """Ürün bazlı kilit altında paralel işleme."""

    def test_parallel_events_same_product(self):
        processor, ledger, history, _, _, clock = _create_processor()
        ledger.provision(_product(stock=10000, reorder_point=100, max_capacity=50000))

        def worker(offset):
            for i in range(100):
                processor.process(_event(f"T{offset}-{i}", EventType.SALE, 1, clock))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(history) == 800
        assert ledger.get("P1").current_stock == 9200


class TestTimestampNormalisation:
    """Saat dilimsiz zaman damgalı olaylar."""

    def test_naive_timestamp_evaluates_alerts(self):
        processor, ledger, history, registry, _, _ = _create_processor()
        ledger.provision(_product(stock=50, reorder_point=30, max_capacity=200))
        event = StockEvent(id="E1", type=EventType.SALE, product_id="P1",
                           quantity=45, timestamp=datetime(2024, 1, 1))

        result = processor.process(event)

        assert result.product.current_stock == 5
        assert history.get("E1").timestamp.tzinfo is not None
        active = _active_types(registry)
        assert AlertType.CRITICAL_LOW_STOCK in active
        assert AlertType.RAPID_DEPLETION in active


class TestLedgerMissingAfterCheck:
    """Defter güncellemesi ürünü bulamazsa."""

    def test_apply_returning_none_raises(self):
        clock = ManualClock()
        ledger = MagicMock()
        ledger.get.return_value = _product(stock=50)
        ledger.apply.return_value = None
        history = EventHistory()
        engine = MagicMock()
        processor = StockEventProcessor(ledger, history, engine, clock=clock)

        with pytest.raises(ProductNotFoundError):
            processor.process(_event("E1", EventType.SALE, 5, clock))
        engine.evaluate.assert_not_called()
