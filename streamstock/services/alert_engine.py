"""Uyarı Motoru - her stok değişiminden sonra tetikleyicileri değerlendirir.

Beş bağımsız tetikleyici (hepsi her seferinde değerlendirilir):
- CRITICAL_LOW_STOCK: 0 <= stok < 10                       (critical)
- LOW_STOCK:          stok < reorder_point, kritik değilse (warning)
- OVERSTOCK:          stok > 0.9 × max_capacity            (info)
- RAPID_DEPLETION:    son 60 dk net düşüş > %30, yalnızca SALE (warning)
- REORDER_NEEDED:     0 < stok <= reorder_point            (warning)

(product_id, type) başına tek aktif uyarı. Koşulu ortadan kalkan uyarılar
otomatik çözülür; RAPID_DEPLETION yalnızca elle çözülür.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Optional

from streamstock.clock import Clock, SystemClock
from streamstock.models.inventory import (
    Alert,
    AlertSeverity,
    AlertType,
    EventType,
    Product,
    Recommendation,
    StockEvent,
)
from streamstock.services.notifications import NotificationBus
from streamstock.stores import AlertRegistry, EventHistory

logger = logging.getLogger(__name__)

Recommender = Callable[[str], Optional[Recommendation]]


@dataclass
class AlertEvaluation:
    product_id: str
    created: list[Alert] = field(default_factory=list)
    resolved: list[Alert] = field(default_factory=list)


class AlertEngine:
    """Güncel ürün durumu ve yakın geçmiş üzerinden uyarı oluşturan/çözen motor."""

    def __init__(
        self,
        history: EventHistory,
        registry: AlertRegistry,
        bus: Optional[NotificationBus] = None,
        recommender: Optional[Recommender] = None,
        clock: Optional[Clock] = None,
        critical_threshold: int = 10,
        overstock_ratio: float = 0.9,
        depletion_window_minutes: int = 60,
        depletion_ratio: float = 0.30,
    ) -> None:
        self.history = history
        self.registry = registry
        self.bus = bus
        self.recommender = recommender
        self.clock = clock or SystemClock()
        self.critical_threshold = critical_threshold
        self.overstock_ratio = overstock_ratio
        self.depletion_window = timedelta(minutes=depletion_window_minutes)
        self.depletion_ratio = depletion_ratio

    # --- Tetikleyiciler ---

    def is_critical(self, product: Product) -> bool:
        return 0 <= product.current_stock < self.critical_threshold

    def is_low(self, product: Product) -> bool:
        return product.current_stock < product.reorder_point and not self.is_critical(product)

    def is_overstocked(self, product: Product) -> bool:
        return product.current_stock > product.max_capacity * self.overstock_ratio

    def needs_reorder(self, product: Product) -> bool:
        return 0 < product.current_stock <= product.reorder_point

    def is_rapidly_depleting(self, product: Product) -> bool:
        """Son pencere içindeki net değişim negatif ve pencere başı stoğun %30'undan fazla mı."""
        window_start = self.clock.now() - self.depletion_window
        recent = self.history.in_window(window_start, product_id=product.id)
        net_change = sum(e.signed_quantity for e in recent)
        if net_change >= 0:
            return False

        stock_at_start = product.current_stock - net_change
        if stock_at_start <= 0:
            return False
        return abs(net_change) / stock_at_start > self.depletion_ratio

    def should_resolve(self, alert: Alert, product: Product) -> bool:
        stock = product.current_stock
        if alert.type == AlertType.CRITICAL_LOW_STOCK:
            return stock >= self.critical_threshold
        if alert.type in (AlertType.LOW_STOCK, AlertType.REORDER_NEEDED):
            return stock >= product.reorder_point
        if alert.type == AlertType.OVERSTOCK:
            return stock <= product.max_capacity * self.overstock_ratio
        # RAPID_DEPLETION geçici bir pencereye bağlı, yalnızca elle çözülür
        return False

    # --- Değerlendirme ---

    def evaluate(self, product: Product, event: Optional[StockEvent] = None) -> AlertEvaluation:
        """Tüm tetikleyicileri değerlendirir, ardından otomatik çözümlemeyi çalıştırır."""
        result = AlertEvaluation(product_id=product.id)
        stock = product.current_stock

        triggers: list[tuple[AlertType, AlertSeverity, str]] = []
        if self.is_critical(product):
            triggers.append((
                AlertType.CRITICAL_LOW_STOCK,
                AlertSeverity.CRITICAL,
                f"Kritik: {product.name} için yalnızca {stock} birim kaldı!",
            ))
        if self.is_low(product):
            triggers.append((
                AlertType.LOW_STOCK,
                AlertSeverity.WARNING,
                f"Uyarı: {product.name} stoğu ({stock}) sipariş noktasının "
                f"({product.reorder_point}) altında",
            ))
        if self.is_overstocked(product):
            triggers.append((
                AlertType.OVERSTOCK,
                AlertSeverity.INFO,
                f"Bilgi: {product.name} fazla stoklu ({stock}/{product.max_capacity})",
            ))
        if event is not None and event.type == EventType.SALE and self.is_rapidly_depleting(product):
            triggers.append((
                AlertType.RAPID_DEPLETION,
                AlertSeverity.WARNING,
                f"Uyarı: {product.name} hızla tükeniyor - son bir saatte stok "
                f"%{self.depletion_ratio * 100:.0f}'dan fazla azaldı",
            ))
        if self.needs_reorder(product):
            triggers.append((
                AlertType.REORDER_NEEDED,
                AlertSeverity.WARNING,
                f"{product.name} yeniden sipariş edilmeli - mevcut stok: {stock}, "
                f"sipariş noktası: {product.reorder_point}",
            ))

        for alert_type, severity, message in triggers:
            alert = self._create_alert(product, alert_type, severity, message)
            if alert:
                result.created.append(alert)

        result.resolved = self.auto_resolve(product)
        return result

    def _create_alert(
        self, product: Product, alert_type: AlertType, severity: AlertSeverity, message: str
    ) -> Optional[Alert]:
        if self.registry.find_active(product.id, alert_type) is not None:
            return None

        alert = Alert(
            id=str(uuid.uuid4()),
            product_id=product.id,
            severity=severity,
            type=alert_type,
            message=message,
            recommendation=self._recommendation_text(product.id),
            created_at=self.clock.now(),
        )
        created = self.registry.create_if_absent(alert)
        if created is None:
            return None

        logger.info("Uyarı oluşturuldu: %s - %s", alert_type.value, product.id)
        if self.bus:
            self.bus.alert_created(created)
        return created

    def _recommendation_text(self, product_id: str) -> Optional[str]:
        """Uyarıya eklenecek öneri metni. Alınamazsa uyarı yine oluşturulur."""
        if self.recommender is None:
            return None
        try:
            recommendation = self.recommender(product_id)
        except Exception as e:
            logger.warning("Öneri alınamadı [%s]: %s", product_id, e)
            return None
        return recommendation.recommendation if recommendation else None

    # --- Çözümleme ---

    def auto_resolve(self, product: Product) -> list[Alert]:
        """Koşulu artık geçerli olmayan aktif uyarıları çözer."""
        resolved = []
        for alert in self.registry.by_product(product.id):
            if alert.resolved or not self.should_resolve(alert, product):
                continue
            resolved_alert = self.registry.resolve(alert.id, self.clock.now())
            logger.info("Uyarı otomatik çözüldü: %s - %s", alert.type.value, product.id)
            self._notify_resolved(resolved_alert)
            resolved.append(resolved_alert)
        return resolved

    def resolve(self, alert_id: str) -> Alert:
        """Operatör tarafından elle çözümleme. Kayıt yoksa veya zaten çözülmüşse hata."""
        resolved_alert = self.registry.resolve(alert_id, self.clock.now())
        logger.info("Uyarı elle çözüldü: %s", alert_id)
        self._notify_resolved(resolved_alert)
        return resolved_alert

    def _notify_resolved(self, alert: Alert) -> None:
        if self.bus and alert.resolved_at is not None:
            self.bus.alert_resolved(alert.id, alert.resolved_at)
