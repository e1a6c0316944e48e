"""Stok takibi veri modelleri - ürün, olay, uyarı, tahmin ve öneri."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


class EventType(str, Enum):
    SALE = "SALE"
    RESTOCK = "RESTOCK"
    RETURN = "RETURN"


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class AlertType(str, Enum):
    CRITICAL_LOW_STOCK = "CRITICAL_LOW_STOCK"
    LOW_STOCK = "LOW_STOCK"
    OVERSTOCK = "OVERSTOCK"
    RAPID_DEPLETION = "RAPID_DEPLETION"
    REORDER_NEEDED = "REORDER_NEEDED"


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class AnomalyKind(str, Enum):
    NEGATIVE_STOCK = "negative_stock"
    INVALID_THRESHOLDS = "invalid_thresholds"


@dataclass
class Product:
    id: str
    sku: str
    name: str
    category: str
    warehouse: str
    current_stock: int
    reorder_point: int
    max_capacity: int
    unit_price: float
    last_updated: datetime = field(default_factory=utc_now)

    @property
    def stock_value(self) -> float:
        return self.current_stock * self.unit_price

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category,
            "warehouse": self.warehouse,
            "currentStock": self.current_stock,
            "reorderPoint": self.reorder_point,
            "maxCapacity": self.max_capacity,
            "unitPrice": self.unit_price,
            "lastUpdated": _iso(self.last_updated),
        }


@dataclass(frozen=True)
class EventMetadata:
    """Olayın kaynağına dair sabit alanlar; bilinmeyen anahtarlar `extra` içinde taşınır."""

    source: str = "unknown"
    warehouse: Optional[str] = None
    historical: bool = False
    day: Optional[int] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data: dict[str, Any] = dict(self.extra)
        data["source"] = self.source
        if self.warehouse is not None:
            data["warehouse"] = self.warehouse
        if self.historical:
            data["historical"] = True
        if self.day is not None:
            data["day"] = self.day
        return data


@dataclass(frozen=True)
class StockEvent:
    id: str
    type: EventType
    product_id: str
    quantity: int
    timestamp: datetime = field(default_factory=utc_now)
    metadata: EventMetadata = field(default_factory=EventMetadata)

    def __post_init__(self) -> None:
        # Zaman damgaları her zaman UTC; saat dilimsiz değer UTC kabul edilir
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))

    @property
    def signed_quantity(self) -> int:
        """SALE stoktan düşer, RESTOCK ve RETURN stoğa ekler."""
        if self.type == EventType.SALE:
            return -self.quantity
        return self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "productId": self.product_id,
            "quantity": self.quantity,
            "timestamp": _iso(self.timestamp),
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class Alert:
    id: str
    product_id: str
    severity: AlertSeverity
    type: AlertType
    message: str
    recommendation: Optional[str] = None
    resolved: bool = False
    created_at: datetime = field(default_factory=utc_now)
    resolved_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "severity": self.severity.value,
            "type": self.type.value,
            "message": self.message,
            "recommendation": self.recommendation,
            "resolved": self.resolved,
            "timestamp": _iso(self.created_at),
            "resolvedAt": _iso(self.resolved_at),
        }


@dataclass
class Forecast:
    product_id: str
    current_stock: int
    predicted_stock: int
    predicted_demand: int
    reorder_recommended: bool
    confidence: float
    forecast_days: int
    trend: Trend
    generated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "productId": self.product_id,
            "currentStock": self.current_stock,
            "predictedStock": self.predicted_stock,
            "predictedDemand": self.predicted_demand,
            "reorderRecommended": self.reorder_recommended,
            "confidence": self.confidence,
            "forecastDays": self.forecast_days,
            "trend": self.trend.value,
            "generatedAt": _iso(self.generated_at),
        }


@dataclass
class Recommendation:
    product_id: str
    product_name: str
    priority: Priority
    recommendation: str
    reasoning: str
    suggested_reorder_quantity: int
    # Satış hızı 0 ise math.inf
    estimated_days_until_stockout: float
    confidence: float
    generated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        days = self.estimated_days_until_stockout
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "priority": self.priority.value,
            "recommendation": self.recommendation,
            "reasoning": self.reasoning,
            "suggestedReorderQuantity": self.suggested_reorder_quantity,
            "estimatedDaysUntilStockout": None if math.isinf(days) else days,
            "confidence": self.confidence,
            "generatedAt": _iso(self.generated_at),
        }


@dataclass
class StockAnomaly:
    product_id: str
    kind: AnomalyKind
    detail: str
    requested_delta: int = 0
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class Notification:
    event: str
    payload: dict
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {"event": self.event, "payload": self.payload}
