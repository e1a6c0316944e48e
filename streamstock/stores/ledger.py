"""Ürün defteri (Ledger) - ürünlerin güncel stok durumunun tek doğru kaynağı.

- Ürünler bir kez tanımlanır, silinmez
- Stok yalnızca delta uygulanarak değişir
- Negatif stoğa düşüren delta 0'a kırpılır ve anomali olarak işaretlenir
- Okuma görünümleri tüm koleksiyon üzerinde saf filtre/sıralamadır
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Optional

from streamstock.models.inventory import AnomalyKind, Product, StockAnomaly, utc_now

logger = logging.getLogger(__name__)


class ProductLedger:
    """Ürün durumunu tutan, thread-safe bellek içi depo."""

    def __init__(self, critical_threshold: int = 10) -> None:
        self.critical_threshold = critical_threshold
        self._products: dict[str, Product] = {}
        self._anomalies: list[StockAnomaly] = []
        self._lock = threading.RLock()

    # --- Tanımlama ---

    def provision(self, product: Product) -> Product:
        """Yeni bir ürünü deftere ekler.

        reorder_point >= max_capacity durumu reddedilmez, anomali olarak kaydedilir.
        """
        if product.current_stock < 0:
            raise ValueError(f"Başlangıç stoğu negatif olamaz: {product.id}")

        with self._lock:
            if product.id in self._products:
                raise ValueError(f"Ürün zaten tanımlı: {product.id}")
            if product.reorder_point >= product.max_capacity:
                self._flag(
                    StockAnomaly(
                        product_id=product.id,
                        kind=AnomalyKind.INVALID_THRESHOLDS,
                        detail=(
                            f"reorder_point ({product.reorder_point}) >= "
                            f"max_capacity ({product.max_capacity})"
                        ),
                    )
                )
            self._products[product.id] = replace(product)
            return replace(product)

    # --- Stok güncelleme ---

    def apply(
        self, product_id: str, delta: int, timestamp: Optional[datetime] = None
    ) -> Optional[Product]:
        """Stok deltasını uygular ve yeni ürün kopyasını döndürür. Ürün yoksa None."""
        with self._lock:
            product = self._products.get(product_id)
            if product is None:
                return None

            new_stock = product.current_stock + delta
            if new_stock < 0:
                self._flag(
                    StockAnomaly(
                        product_id=product_id,
                        kind=AnomalyKind.NEGATIVE_STOCK,
                        detail=(
                            f"stok {product.current_stock}, delta {delta}: "
                            f"{-new_stock} birim açık 0'a kırpıldı"
                        ),
                        requested_delta=delta,
                    )
                )
                new_stock = 0

            updated = replace(
                product,
                current_stock=new_stock,
                last_updated=timestamp or utc_now(),
            )
            self._products[product_id] = updated
            return replace(updated)

    def _flag(self, anomaly: StockAnomaly) -> None:
        self._anomalies.append(anomaly)
        logger.warning(
            "Stok anomalisi [%s] %s: %s", anomaly.kind.value, anomaly.product_id, anomaly.detail
        )

    # --- Okuma görünümleri ---

    def get(self, product_id: str) -> Optional[Product]:
        with self._lock:
            product = self._products.get(product_id)
            return replace(product) if product else None

    def exists(self, product_id: str) -> bool:
        with self._lock:
            return product_id in self._products

    def all(self) -> list[Product]:
        with self._lock:
            return [replace(p) for p in self._products.values()]

    def list(self, limit: Optional[int] = None, offset: int = 0) -> list[Product]:
        products = sorted(self.all(), key=lambda p: p.id)
        end = offset + limit if limit is not None else None
        return products[offset:end]

    def by_category(self, category: str) -> list[Product]:
        return [p for p in self.all() if p.category == category]

    def by_warehouse(self, warehouse: str) -> list[Product]:
        return [p for p in self.all() if p.warehouse == warehouse]

    def low_stock(self) -> list[Product]:
        return [p for p in self.all() if p.current_stock < p.reorder_point]

    def critical_stock(self) -> list[Product]:
        return [p for p in self.all() if p.current_stock < self.critical_threshold]

    def total_value(self) -> float:
        return sum(p.stock_value for p in self.all())

    def anomalies(self, product_id: Optional[str] = None) -> list[StockAnomaly]:
        with self._lock:
            entries = list(self._anomalies)
        if product_id:
            entries = [a for a in entries if a.product_id == product_id]
        return entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._products)
