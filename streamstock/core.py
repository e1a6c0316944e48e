"""Çekirdeğin bileşim noktası ve salt-okunur sorgu arayüzü.

Depolar bir kez oluşturulur ve tüm bileşenlere açıkça verilir; modül düzeyinde
paylaşılan durum yoktur.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timezone
from typing import Any, Optional

from streamstock.clock import Clock, SystemClock
from streamstock.config import Settings
from streamstock.exceptions import AlertNotFoundError, ProductNotFoundError
from streamstock.ingestion import AckCallback, ErrorCallback, EventDispatcher, RawEvent, parse_event
from streamstock.models.inventory import (
    Alert,
    AlertSeverity,
    EventType,
    Forecast,
    Product,
    Recommendation,
    StockAnomaly,
    StockEvent,
)
from streamstock.services import (
    AlertEngine,
    Forecaster,
    NotificationBus,
    ProcessingResult,
    RecommendationEngine,
    S3NotificationArchive,
    StockEventProcessor,
    StockValidator,
)
from streamstock.services.notifications import Subscriber
from streamstock.stores import AlertRegistry, EventHistory, ProductLedger

logger = logging.getLogger(__name__)


class InventoryService:
    """Ledger, History, Alert Registry ve motorları bir araya getiren servis."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        s3_client: Optional[Any] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.clock = clock or SystemClock()

        self.ledger = ProductLedger(critical_threshold=self.settings.critical_stock_threshold)
        self.history = EventHistory()
        self.alerts = AlertRegistry()
        self.bus = NotificationBus()
        self.validator = StockValidator()

        self.recommendations = RecommendationEngine(
            self.ledger,
            self.history,
            self.alerts,
            clock=self.clock,
            ttl_seconds=self.settings.recommendation_cache_ttl_seconds,
            velocity_window_days=self.settings.velocity_window_days,
        )
        self.alert_engine = AlertEngine(
            self.history,
            self.alerts,
            bus=self.bus,
            recommender=self.recommendations.recommend_for_product,
            clock=self.clock,
            critical_threshold=self.settings.critical_stock_threshold,
            overstock_ratio=self.settings.overstock_ratio,
            depletion_window_minutes=self.settings.rapid_depletion_window_minutes,
            depletion_ratio=self.settings.rapid_depletion_ratio,
        )
        self.processor = StockEventProcessor(
            self.ledger,
            self.history,
            self.alert_engine,
            bus=self.bus,
            validator=self.validator,
            clock=self.clock,
        )
        self.forecaster = Forecaster(
            forecast_days=self.settings.forecast_days,
            history_days=self.settings.forecast_history_days,
        )

        if self.settings.archive_bucket:
            self.bus.subscribe(
                S3NotificationArchive(
                    self.settings.archive_bucket,
                    region_name=self.settings.aws_region,
                    s3_client=s3_client,
                )
            )
            logger.info("Bildirim arşivi etkin: s3://%s", self.settings.archive_bucket)

    # --- Tanımlama ve alım ---

    def provision_product(self, product: Product) -> Product:
        result = self.validator.validate_product(product)
        for warning in result.warnings:
            logger.warning(warning)
        return self.ledger.provision(product)

    def process_event(self, event: StockEvent) -> ProcessingResult:
        return self.processor.process(event)

    def ingest(self, raw: RawEvent) -> ProcessingResult:
        """Serileştirilmiş olayı ayrıştırıp senkron olarak işler."""
        return self.processor.process(parse_event(raw, self.clock))

    def create_dispatcher(
        self,
        on_ack: Optional[AckCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> EventDispatcher:
        return EventDispatcher(
            self.processor,
            worker_count=self.settings.worker_count,
            on_ack=on_ack,
            on_error=on_error,
            clock=self.clock,
        )

    def subscribe(self, handler: Subscriber, events: Optional[set[str]] = None) -> str:
        return self.bus.subscribe(handler, events)

    # --- Ürünler ---

    def get_product(self, product_id: str) -> Product:
        product = self.ledger.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def list_products(
        self,
        warehouse: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Product]:
        """status: "low" (stok < sipariş noktası) veya "critical" (stok < kritik eşik)."""
        if status == "low":
            products = self.ledger.low_stock()
        elif status == "critical":
            products = self.ledger.critical_stock()
        elif status is None:
            products = self.ledger.all()
        else:
            raise ValueError(f"Bilinmeyen durum filtresi: {status}")

        if warehouse:
            products = [p for p in products if p.warehouse == warehouse]
        if category:
            products = [p for p in products if p.category == category]

        products.sort(key=lambda p: p.id)
        end = offset + limit if limit is not None else None
        return products[offset:end]

    # --- Olaylar ---

    def list_events(
        self,
        event_type: Optional[EventType] = None,
        product_id: Optional[str] = None,
        limit: int = 100,
    ) -> list[StockEvent]:
        events = self.history.by_product(product_id) if product_id else self.history.all()
        if event_type:
            events = [e for e in events if e.type == event_type]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    # --- Uyarılar ---

    def get_alert(self, alert_id: str) -> Alert:
        alert = self.alerts.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    def list_alerts(
        self,
        severity: Optional[AlertSeverity] = None,
        product_id: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> list[Alert]:
        alerts = self.alerts.all()
        if severity:
            alerts = [a for a in alerts if a.severity == severity]
        if product_id:
            alerts = [a for a in alerts if a.product_id == product_id]
        if active is not None:
            alerts = [a for a in alerts if a.resolved != active]
        alerts.sort(key=lambda a: a.created_at, reverse=True)
        return alerts

    def resolve_alert(self, alert_id: str) -> Alert:
        return self.alert_engine.resolve(alert_id)

    def cleanup_expired_alerts(self) -> int:
        removed = self.alerts.cleanup_expired(self.clock.now())
        if removed:
            logger.info("%d süresi dolmuş uyarı temizlendi", removed)
        return removed

    # --- Tahmin ve öneriler ---

    def get_forecasts(
        self, product_id: Optional[str] = None, forecast_days: Optional[int] = None
    ) -> list[Forecast]:
        now = self.clock.now()
        if product_id:
            product = self.get_product(product_id)
            return [
                self.forecaster.forecast(
                    product, self.history.by_product(product_id), now, forecast_days
                )
            ]
        return self.forecaster.forecast_all(
            self.ledger.all(), self.history.all(), now, forecast_days
        )

    def get_recommendations(self, product_id: Optional[str] = None) -> list[Recommendation]:
        if product_id and not self.ledger.exists(product_id):
            raise ProductNotFoundError(product_id)
        return self.recommendations.get_recommendations(product_id)

    # --- Gösterge paneli ---

    def get_metrics(self) -> dict:
        products = self.ledger.all()
        now = self.clock.now()
        start_of_day = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo or timezone.utc)
        today_events = self.history.in_window(start_of_day, now)

        return {
            "total_products": len(products),
            "total_stock_value": round(sum(p.stock_value for p in products), 2),
            "active_alerts": len(self.alerts.active()),
            "critical_alerts": len(self.alerts.critical()),
            "today_transactions": len(today_events),
            "low_stock_products": len(self.ledger.low_stock()),
            "critical_stock_products": len(self.ledger.critical_stock()),
            "average_stock_level": (
                sum(p.current_stock for p in products) / len(products) if products else 0.0
            ),
        }

    def anomalies(self, product_id: Optional[str] = None) -> list[StockAnomaly]:
        return self.ledger.anomalies(product_id)
