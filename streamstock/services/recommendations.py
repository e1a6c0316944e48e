"""Öneri Motoru - kural tabanlı, önceliklendirilmiş yeniden sipariş önerileri.

- Son 30 günlük satış hızı ve stoğun tükenmesine kalan gün
- Sıralı öncelik merdiveni (ilk eşleşen kural kazanır)
- Önerilen sipariş miktarı: 30 günlük talep + %20 emniyet payı
- Tüm ürünler için toplu sonuç tek bir önbellek slotunda TTL ile tutulur
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from streamstock.clock import Clock, SystemClock
from streamstock.models.inventory import (
    Alert,
    EventType,
    Priority,
    Product,
    Recommendation,
    StockEvent,
)
from streamstock.stores import AlertRegistry, EventHistory, ProductLedger

logger = logging.getLogger(__name__)

DEFAULT_VELOCITY_WINDOW_DAYS = 30
DEFAULT_CACHE_TTL_SECONDS = 300.0

TARGET_COVERAGE_DAYS = 30
SAFETY_BUFFER = 0.2
ATTENTION_DAYS = 14
LOW_CAPACITY_RATIO = 0.20


def calculate_sales_velocity(
    events: Iterable[StockEvent], now: datetime, window_days: int = DEFAULT_VELOCITY_WINDOW_DAYS
) -> float:
    """Pencere içindeki toplam SALE miktarının gün sayısına oranı (birim/gün)."""
    start = now - timedelta(days=window_days)
    total_sold = sum(
        e.quantity for e in events if e.type == EventType.SALE and e.timestamp >= start
    )
    return total_sold / window_days


def calculate_reorder_quantity(product: Product, velocity: float) -> int:
    """min(hız × 30 × 1.2, boş kapasite), alt sınır reorder_point."""
    with_buffer = velocity * TARGET_COVERAGE_DAYS * (1 + SAFETY_BUFFER)
    available_capacity = product.max_capacity - product.current_stock
    return max(round(min(with_buffer, available_capacity)), product.reorder_point)


def analyze_product(
    product: Product,
    events: Iterable[StockEvent],
    alerts: Iterable[Alert],
    now: datetime,
    velocity_window_days: int = DEFAULT_VELOCITY_WINDOW_DAYS,
) -> Optional[Recommendation]:
    """Tek ürün için öneri üretir; ilgi gerektirmiyorsa None."""
    product_events = [e for e in events if e.product_id == product.id]
    active_alerts = [a for a in alerts if a.product_id == product.id and not a.resolved]

    velocity = calculate_sales_velocity(product_events, now, velocity_window_days)
    stock = product.current_stock
    days_until_stockout = stock / velocity if velocity > 0 else math.inf
    capacity_ratio = stock / product.max_capacity if product.max_capacity > 0 else 0.0

    needs_attention = (
        stock <= product.reorder_point
        or days_until_stockout < ATTENTION_DAYS
        or len(active_alerts) > 0
        or capacity_ratio < LOW_CAPACITY_RATIO
    )
    if not needs_attention:
        return None

    days_text = f"{math.ceil(days_until_stockout)}" if velocity > 0 else "∞"

    if stock == 0:
        priority = Priority.CRITICAL
        recommendation = f"ACİL: {product.name} hemen stoklanmalı"
        reasoning = (
            f"Ürün stokta yok. Geçmiş satış hızı: {velocity:.1f} birim/gün. "
            f"Satış kaybı ve müşteri memnuniyetsizliği riski."
        )
        confidence = 0.95
    elif days_until_stockout < 3:
        priority = Priority.CRITICAL
        recommendation = f"{product.name} için stok yenilemesini hızlandırın - tükenme çok yakın"
        reasoning = (
            f"Mevcut satış hızında ({velocity:.1f} birim/gün) stok {days_text} gün içinde "
            f"tükenecek. Acil aksiyon gerekli."
        )
        confidence = 0.90
    elif days_until_stockout < 7:
        priority = Priority.HIGH
        recommendation = f"{product.name} bu hafta yeniden sipariş edilmeli"
        reasoning = (
            f"Stok mevcut hızda ({velocity:.1f} birim/gün) yaklaşık {days_text} gün içinde "
            f"tükenecek. Tampon stoğu korumak için şimdi sipariş verin."
        )
        confidence = 0.85
    elif stock <= product.reorder_point:
        priority = Priority.HIGH
        recommendation = f"{product.name} yeniden sipariş edilmeli - sipariş noktasının altında"
        reasoning = (
            f"Mevcut stok ({stock}) sipariş noktasında veya altında "
            f"({product.reorder_point}). Standart yeniden sipariş önerilir."
        )
        confidence = 0.80
    elif days_until_stockout < ATTENTION_DAYS:
        priority = Priority.MEDIUM
        recommendation = f"{product.name} için yeniden sipariş planlayın"
        reasoning = (
            f"Stok yaklaşık {days_text} gün yeterli. Optimum stok seviyesini korumak "
            f"için siparişi planlayın."
        )
        confidence = 0.75
    else:
        priority = Priority.LOW
        recommendation = f"{product.name} stok seviyesini izleyin"
        reasoning = "Mevcut stok yeterli ancak dikkat gerektiren sinyaller var. İzlemeye devam edin."
        confidence = 0.70

    return Recommendation(
        product_id=product.id,
        product_name=product.name,
        priority=priority,
        recommendation=recommendation,
        reasoning=reasoning,
        suggested_reorder_quantity=calculate_reorder_quantity(product, velocity),
        estimated_days_until_stockout=(
            math.ceil(days_until_stockout) if velocity > 0 else math.inf
        ),
        confidence=confidence,
        generated_at=now,
    )


def generate_recommendations(
    products: Iterable[Product],
    events: Iterable[StockEvent],
    alerts: Iterable[Alert],
    now: datetime,
    velocity_window_days: int = DEFAULT_VELOCITY_WINDOW_DAYS,
) -> list[Recommendation]:
    """Tüm ürünler için öneri listesi; önceliğe, sonra güvene (azalan) göre sıralı."""
    by_product: dict[str, list[StockEvent]] = {}
    for event in events:
        by_product.setdefault(event.product_id, []).append(event)
    alert_list = list(alerts)

    recommendations = []
    for product in products:
        rec = analyze_product(
            product, by_product.get(product.id, []), alert_list, now, velocity_window_days
        )
        if rec:
            recommendations.append(rec)

    recommendations.sort(key=lambda r: (r.priority.rank, -r.confidence))
    return recommendations


@dataclass(frozen=True)
class RecommendationCache:
    recommendations: tuple[Recommendation, ...]
    computed_at: datetime

    def is_fresh(self, now: datetime, ttl_seconds: float) -> bool:
        return (now - self.computed_at).total_seconds() < ttl_seconds


class RecommendationEngine:
    """Defter, geçmiş ve uyarı kaydı üzerinden öneri üreten, sonucu önbelleğe alan motor."""

    def __init__(
        self,
        ledger: ProductLedger,
        history: EventHistory,
        alerts: AlertRegistry,
        clock: Optional[Clock] = None,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        velocity_window_days: int = DEFAULT_VELOCITY_WINDOW_DAYS,
    ) -> None:
        self.ledger = ledger
        self.history = history
        self.alerts = alerts
        self.clock = clock or SystemClock()
        self.ttl_seconds = ttl_seconds
        self.velocity_window_days = velocity_window_days
        self._cache: Optional[RecommendationCache] = None

    def get_recommendations(self, product_id: Optional[str] = None) -> list[Recommendation]:
        """Önbellek tazeyse onu, değilse tüm ürünler için yeniden hesaplanan listeyi döndürür.

        product_id verilirse toplu sonuç o ürüne filtrelenir.
        """
        now = self.clock.now()
        cache = self._cache
        if cache is None or not cache.is_fresh(now, self.ttl_seconds):
            recommendations = generate_recommendations(
                self.ledger.all(),
                self.history.all(),
                self.alerts.all(),
                now,
                self.velocity_window_days,
            )
            cache = RecommendationCache(tuple(recommendations), now)
            # Son yazan kazanır
            self._cache = cache
            logger.debug("Öneri önbelleği yenilendi: %d öneri", len(recommendations))

        if product_id:
            return [r for r in cache.recommendations if r.product_id == product_id]
        return list(cache.recommendations)

    def recommend_for_product(self, product_id: str) -> Optional[Recommendation]:
        """Önbelleği kullanmadan tek ürün için güncel öneri."""
        product = self.ledger.get(product_id)
        if product is None:
            return None
        return analyze_product(
            product,
            self.history.by_product(product_id),
            self.alerts.by_product(product_id),
            self.clock.now(),
            self.velocity_window_days,
        )

    def clear_cache(self) -> None:
        self._cache = None

    def cache_stats(self) -> dict:
        cache = self._cache
        if cache is None:
            return {"cached": False, "item_count": 0, "age_seconds": None, "ttl_seconds": self.ttl_seconds}
        return {
            "cached": True,
            "item_count": len(cache.recommendations),
            "age_seconds": (self.clock.now() - cache.computed_at).total_seconds(),
            "ttl_seconds": self.ttl_seconds,
        }
