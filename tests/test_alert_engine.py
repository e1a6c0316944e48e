"""Alert Engine unit testleri."""

from datetime import timedelta

import pytest

from streamstock.clock import ManualClock
from streamstock.exceptions import AlertAlreadyResolvedError, AlertNotFoundError
from streamstock.models.inventory import (
    AlertSeverity,
    AlertType,
    EventType,
    Priority,
    Product,
    Recommendation,
    StockEvent,
)
from streamstock.services.alert_engine import AlertEngine
from streamstock.services.notifications import ALERT_NEW, ALERT_RESOLVED, NotificationBus
from streamstock.stores import AlertRegistry, EventHistory


def _product(stock: int, reorder_point: int = 30, max_capacity: int = 200) -> Product:
    return Product(
        id="P1",
        sku="SKU-P1",
        name="Test Ürün",
        category="Elektronik",
        warehouse="WH-1",
        current_stock=stock,
        reorder_point=reorder_point,
        max_capacity=max_capacity,
        unit_price=10.0,
    )


def _create_engine(recommender=None):
    clock = ManualClock()
    history = EventHistory()
    registry = AlertRegistry()
    bus = NotificationBus()
    engine = AlertEngine(history, registry, bus=bus, recommender=recommender, clock=clock)
    return engine, history, registry, bus, clock


def _active_types(registry: AlertRegistry) -> set:
    return {a.type for a in registry.active()}


class TestTriggers:
    """Tetikleyici koşulları."""

    def test_low_stock_without_critical(self):
        engine, _, registry, _, _ = _create_engine()
        engine.evaluate(_product(45, reorder_point=100, max_capacity=500))
        active = _active_types(registry)
        assert AlertType.LOW_STOCK in active
        assert AlertType.REORDER_NEEDED in active
        assert AlertType.CRITICAL_LOW_STOCK not in active

    def test_critical_suppresses_low_stock(self):
        engine, _, registry, _, _ = _create_engine()
        engine.evaluate(_product(5))
        active = _active_types(registry)
        assert active == {AlertType.CRITICAL_LOW_STOCK, AlertType.REORDER_NEEDED}
        critical = registry.find_active("P1", AlertType.CRITICAL_LOW_STOCK)
        assert critical.severity == AlertSeverity.CRITICAL

    def test_zero_stock_only_critical(self):
        engine, _, registry, _, _ = _create_engine()
        engine.evaluate(_product(0))
        assert _active_types(registry) == {AlertType.CRITICAL_LOW_STOCK}

    def test_overstock(self):
        engine, _, registry, _, _ = _create_engine()
        engine.evaluate(_product(190, max_capacity=200))
        overstock = registry.find_active("P1", AlertType.OVERSTOCK)
        assert overstock is not None
        assert overstock.severity == AlertSeverity.INFO

    def test_healthy_stock_no_alerts(self):
        engine, _, registry, _, _ = _create_engine()
        result = engine.evaluate(_product(100))
        assert result.created == []
        assert len(registry) == 0

    def test_reorder_created_and_resolved_at_reorder_point(self):
        engine, _, registry, _, _ = _create_engine()
        result = engine.evaluate(_product(30, reorder_point=30))
        created = [a.type for a in result.created]
        resolved = [a.type for a in result.resolved]
        assert AlertType.REORDER_NEEDED in created
        assert AlertType.REORDER_NEEDED in resolved
        assert registry.find_active("P1", AlertType.REORDER_NEEDED) is None


class TestDeduplication:
    """(ürün, tip) başına tek aktif uyarı."""

    def test_repeated_evaluation_does_not_duplicate(self):
        engine, _, registry, _, _ = _create_engine()
        product = _product(5)
        engine.evaluate(product)
        second = engine.evaluate(product)
        assert second.created == []
        for alert_type in (AlertType.CRITICAL_LOW_STOCK, AlertType.REORDER_NEEDED):
            assert len([a for a in registry.active() if a.type == alert_type]) == 1

    def test_new_alert_after_resolution(self):
        engine, _, registry, _, _ = _create_engine()
        engine.evaluate(_product(5))
        first = registry.find_active("P1", AlertType.CRITICAL_LOW_STOCK)
        engine.evaluate(_product(50))
        assert registry.find_active("P1", AlertType.CRITICAL_LOW_STOCK) is None
        engine.evaluate(_product(5))
        second = registry.find_active("P1", AlertType.CRITICAL_LOW_STOCK)
        assert second is not None
        assert second.id != first.id


class TestAutoResolve:
    """Koşulu ortadan kalkan uyarıların otomatik çözümü."""

    def test_critical_resolved_and_low_created(self):
        engine, _, registry, _, _ = _create_engine()
        engine.evaluate(_product(7))
        result = engine.evaluate(_product(17))
        assert [a.type for a in result.resolved] == [AlertType.CRITICAL_LOW_STOCK]
        assert AlertType.LOW_STOCK in [a.type for a in result.created]
        assert registry.find_active("P1", AlertType.REORDER_NEEDED) is not None

    def test_overstock_resolved(self):
        engine, _, registry, _, _ = _create_engine()
        engine.evaluate(_product(190, max_capacity=200))
        engine.evaluate(_product(180, max_capacity=200))
        assert registry.find_active("P1", AlertType.OVERSTOCK) is None

    def test_resolution_notification(self):
        engine, _, _, bus, clock = _create_engine()
        engine.evaluate(_product(5))
        clock.advance(minutes=5)
        engine.evaluate(_product(50))
        resolved = bus.get_message_log(ALERT_RESOLVED)
        assert len(resolved) == 2
        assert resolved[0].payload["timestamp"] == clock.now().isoformat()


class TestRapidDepletion:
    """Son 60 dakikadaki hızlı tükenme."""

    def _sale(self, event_id, quantity, at):
        return StockEvent(id=event_id, type=EventType.SALE, product_id="P1",
                          quantity=quantity, timestamp=at)

    def test_rapid_depletion_on_sale(self):
        engine, history, registry, _, clock = _create_engine()
        event = self._sale("E1", 40, clock.now())
        history.append(event)
        # 100 -> 60: %40 düşüş
        engine.evaluate(_product(60, reorder_point=20, max_capacity=500), event)
        assert registry.find_active("P1", AlertType.RAPID_DEPLETION) is not None

    def test_below_ratio_not_triggered(self):
        engine, history, registry, _, clock = _create_engine()
        event = self._sale("E1", 20, clock.now())
        history.append(event)
        # 100 -> 80: %20 düşüş
        engine.evaluate(_product(80, reorder_point=20, max_capacity=500), event)
        assert registry.find_active("P1", AlertType.RAPID_DEPLETION) is None

    def test_events_outside_window_ignored(self):
        engine, history, registry, _, clock = _create_engine()
        old = self._sale("E0", 40, clock.now() - timedelta(hours=2))
        history.append(old)
        event = self._sale("E1", 1, clock.now())
        history.append(event)
        engine.evaluate(_product(59, reorder_point=20, max_capacity=500), event)
        assert registry.find_active("P1", AlertType.RAPID_DEPLETION) is None

    def test_only_evaluated_for_sales(self):
        engine, history, registry, _, clock = _create_engine()
        history.append(self._sale("E1", 40, clock.now()))
        restock = StockEvent(id="E2", type=EventType.RESTOCK, product_id="P1",
                             quantity=1, timestamp=clock.now())
        history.append(restock)
        engine.evaluate(_product(61, reorder_point=20, max_capacity=500), restock)
        assert registry.find_active("P1", AlertType.RAPID_DEPLETION) is None

    def test_not_auto_resolved(self):
        engine, history, registry, _, clock = _create_engine()
        event = self._sale("E1", 40, clock.now())
        history.append(event)
        engine.evaluate(_product(60, reorder_point=20, max_capacity=500), event)
        engine.evaluate(_product(300, reorder_point=20, max_capacity=500))
        assert registry.find_active("P1", AlertType.RAPID_DEPLETION) is not None


class TestManualResolve:
    """Operatör tarafından elle çözümleme."""

    def test_resolve_emits_notification(self):
        engine, _, registry, bus, _ = _create_engine()
        engine.evaluate(_product(5))
        alert = registry.find_active("P1", AlertType.CRITICAL_LOW_STOCK)
        resolved = engine.resolve(alert.id)
        assert resolved.resolved is True
        payloads = [n.payload for n in bus.get_message_log(ALERT_RESOLVED)]
        assert payloads[-1]["alertId"] == alert.id

    def test_resolve_unknown(self):
        engine, *_ = _create_engine()
        with pytest.raises(AlertNotFoundError):
            engine.resolve("NOPE")

    def test_resolve_already_resolved(self):
        engine, _, registry, _, _ = _create_engine()
        engine.evaluate(_product(5))
        alert = registry.find_active("P1", AlertType.CRITICAL_LOW_STOCK)
        engine.resolve(alert.id)
        with pytest.raises(AlertAlreadyResolvedError):
            engine.resolve(alert.id)


class TestRecommendationSnapshot:
    """Uyarıya eklenen öneri metni."""

    def test_recommendation_attached(self):
        def recommender(product_id):
            return Recommendation(
                product_id=product_id,
                product_name="Test Ürün",
                priority=Priority.CRITICAL,
                recommendation="Hemen sipariş verin",
                reasoning="test",
                suggested_reorder_quantity=100,
                estimated_days_until_stockout=1,
                confidence=0.9,
            )

        engine, _, registry, bus, _ = _create_engine(recommender)
        engine.evaluate(_product(5))
        alert = registry.find_active("P1", AlertType.CRITICAL_LOW_STOCK)
        assert alert.recommendation == "Hemen sipariş verin"
        assert bus.get_message_log(ALERT_NEW)[0].payload["recommendation"] == "Hemen sipariş verin"

    def test_recommender_failure_does_not_block_alert(self):
        def recommender(product_id):
            raise RuntimeError("öneri servisi yok")

        engine, _, registry, _, _ = _create_engine(recommender)
        engine.evaluate(_product(5))
        alert = registry.find_active("P1", AlertType.CRITICAL_LOW_STOCK)
        assert alert is not None
        assert alert.recommendation is None
