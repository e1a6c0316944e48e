"""Stok tahmini - hareketli ortalama ile kısa vadeli projeksiyon.

Geçmiş olaylar gün kovalarına ayrılır (yalnızca olay içeren günler), her günün
net stok değişimi hesaplanır ve ortalama günlük değişim ileriye taşınır.
Tüm fonksiyonlar yan etkisizdir; aynı geçmiş aynı tahmini üretir.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from streamstock.models.inventory import Forecast, Product, StockEvent, Trend, as_utc

DEFAULT_FORECAST_DAYS = 7
DEFAULT_HISTORY_DAYS = 30

INSUFFICIENT_DATA_CONFIDENCE = 0.5
MIN_CONFIDENCE = 0.1
MAX_CONFIDENCE = 0.95

# Ortalama günlük değişim bu bandın içindeyse trend "stable"
STABLE_TREND_BAND = 0.5


def calculate_daily_changes(
    events: Iterable[StockEvent], now: datetime, history_days: int = DEFAULT_HISTORY_DAYS
) -> dict[date, int]:
    """Son history_days içindeki olayların gün bazında net stok değişimi."""
    start = now - timedelta(days=history_days)
    daily: dict[date, int] = {}
    for event in events:
        if event.timestamp < start:
            continue
        day = as_utc(event.timestamp).date()
        daily[day] = daily.get(day, 0) + event.signed_quantity
    return daily


def calculate_confidence(values: list[float]) -> float:
    """Değişim katsayısından türetilen güven skoru.

    confidence = clamp(1 - |std/mean|, 0.1, 0.95); iki günden az veri varsa 0.5.
    """
    if len(values) < 2:
        return INSUFFICIENT_DATA_CONFIDENCE

    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    std_dev = math.sqrt(variance)

    coefficient = abs(std_dev / mean) if mean != 0 else 1.0
    confidence = max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, 1 - coefficient))
    return round(confidence, 2)


def classify_trend(mean_daily_change: float) -> Trend:
    if mean_daily_change > STABLE_TREND_BAND:
        return Trend.INCREASING
    if mean_daily_change < -STABLE_TREND_BAND:
        return Trend.DECREASING
    return Trend.STABLE


def forecast_product(
    product: Product,
    events: Iterable[StockEvent],
    now: datetime,
    forecast_days: int = DEFAULT_FORECAST_DAYS,
    history_days: int = DEFAULT_HISTORY_DAYS,
) -> Forecast:
    """Tek ürün için N günlük stok tahmini üretir.

    events başka ürünlere ait olaylar da içerebilir; yalnızca product.id eşleşenler kullanılır.
    """
    product_events = [e for e in events if e.product_id == product.id]
    daily = list(calculate_daily_changes(product_events, now, history_days).values())

    mean_change = sum(daily) / len(daily) if daily else 0.0
    predicted_stock = max(0.0, product.current_stock + mean_change * forecast_days)
    predicted_demand = abs(mean_change * forecast_days)

    return Forecast(
        product_id=product.id,
        current_stock=product.current_stock,
        predicted_stock=round(predicted_stock),
        predicted_demand=round(predicted_demand),
        reorder_recommended=predicted_stock < product.reorder_point,
        confidence=calculate_confidence(daily),
        forecast_days=forecast_days,
        trend=classify_trend(mean_change),
        generated_at=now,
    )


def generate_forecasts(
    products: Iterable[Product],
    events: Iterable[StockEvent],
    now: datetime,
    forecast_days: int = DEFAULT_FORECAST_DAYS,
    history_days: int = DEFAULT_HISTORY_DAYS,
) -> list[Forecast]:
    """Birden fazla ürün için tahmin listesi."""
    by_product: dict[str, list[StockEvent]] = {}
    for event in events:
        by_product.setdefault(event.product_id, []).append(event)

    return [
        forecast_product(p, by_product.get(p.id, []), now, forecast_days, history_days)
        for p in products
    ]


class Forecaster:
    """Tahmin fonksiyonlarını ayarlarla birlikte sunan ince sarmalayıcı."""

    def __init__(
        self,
        forecast_days: int = DEFAULT_FORECAST_DAYS,
        history_days: int = DEFAULT_HISTORY_DAYS,
    ) -> None:
        self.forecast_days = self._horizon(forecast_days)
        self.history_days = history_days

    @staticmethod
    def _horizon(forecast_days: int) -> int:
        if forecast_days <= 0:
            raise ValueError(f"Tahmin ufku pozitif olmalı: {forecast_days}")
        return forecast_days

    def _resolve_horizon(self, forecast_days: Optional[int]) -> int:
        if forecast_days is None:
            return self.forecast_days
        return self._horizon(forecast_days)

    def forecast(
        self,
        product: Product,
        events: Iterable[StockEvent],
        now: datetime,
        forecast_days: Optional[int] = None,
    ) -> Forecast:
        return forecast_product(
            product, events, now, self._resolve_horizon(forecast_days), self.history_days
        )

    def forecast_all(
        self,
        products: Iterable[Product],
        events: Iterable[StockEvent],
        now: datetime,
        forecast_days: Optional[int] = None,
    ) -> list[Forecast]:
        return generate_forecasts(
            products, events, now, self._resolve_horizon(forecast_days), self.history_days
        )
