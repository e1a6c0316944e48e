"""Stok Tutarlılığı ve Validasyon - veri bütünlüğü kontrolleri.

- Ürün tanım kontrolü (negatif stok, reorder_point < max_capacity)
- Negatif stok kontrolü
- Olay geçmişine göre stok korunumu doğrulama
- Audit log mekanizması
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from streamstock.models.inventory import Product, StockEvent, utc_now

logger = logging.getLogger(__name__)


@dataclass
class AuditLogEntry:
    entry_id: str
    product_id: str
    warehouse: str
    quantity_before: int
    quantity_after: int
    change_amount: int
    event_id: str
    event_type: str
    timestamp: datetime = field(default_factory=utc_now)


@dataclass
class ValidationResult:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class StockValidator:
    """Stok tutarlılığı ve audit log yöneticisi."""

    def __init__(self) -> None:
        self._audit_log: list[AuditLogEntry] = []
        self._lock = threading.Lock()

    # --- Ürün tanımı ---

    def validate_product(self, product: Product) -> ValidationResult:
        errors = []
        warnings = []

        if product.current_stock < 0:
            errors.append(f"Negatif stok: {product.id} = {product.current_stock}")
        if product.reorder_point >= product.max_capacity:
            errors.append(
                f"Geçersiz eşikler: {product.id} reorder_point={product.reorder_point}, "
                f"max_capacity={product.max_capacity}"
            )
        if product.unit_price < 0:
            warnings.append(f"Negatif birim fiyat: {product.id} = {product.unit_price}")

        return ValidationResult(is_valid=len(errors) == 0, errors=errors, warnings=warnings)

    # --- Negatif stok kontrolü ---

    def check_no_negative_stock(self, products: Iterable[Product]) -> ValidationResult:
        """Tüm stok seviyelerinin negatif olmadığını doğrular (Invariant)."""
        errors = [
            f"Negatif stok tespit edildi: {p.id} = {p.current_stock}"
            for p in products
            if p.current_stock < 0
        ]
        return ValidationResult(is_valid=len(errors) == 0, errors=errors)

    # --- Stok korunumu ---

    def verify_stock_conservation(
        self, product: Product, initial_stock: int, events: Iterable[StockEvent]
    ) -> ValidationResult:
        """Güncel stok = başlangıç stoğu + olayların işaretli toplamı olmalı."""
        expected = initial_stock + sum(
            e.signed_quantity for e in events if e.product_id == product.id
        )
        errors = []
        if expected != product.current_stock:
            errors.append(
                f"Stok korunumu ihlali: {product.id} "
                f"beklenen={expected}, gerçek={product.current_stock}"
            )
        return ValidationResult(is_valid=len(errors) == 0, errors=errors)

    # --- Audit log ---

    def log_stock_change(
        self,
        product_id: str,
        warehouse: str,
        quantity_before: int,
        quantity_after: int,
        event_id: str,
        event_type: str,
        timestamp: Optional[datetime] = None,
    ) -> AuditLogEntry:
        """Stok değişikliğini audit log'a kaydeder."""
        entry = AuditLogEntry(
            entry_id=str(uuid.uuid4()),
            product_id=product_id,
            warehouse=warehouse,
            quantity_before=quantity_before,
            quantity_after=quantity_after,
            change_amount=quantity_after - quantity_before,
            event_id=event_id,
            event_type=event_type,
            timestamp=timestamp or utc_now(),
        )
        with self._lock:
            self._audit_log.append(entry)
        return entry

    def get_audit_log(
        self,
        product_id: Optional[str] = None,
        warehouse: Optional[str] = None,
    ) -> list[AuditLogEntry]:
        """Audit log'u filtreli olarak döndürür."""
        with self._lock:
            entries = list(self._audit_log)
        if product_id:
            entries = [e for e in entries if e.product_id == product_id]
        if warehouse:
            entries = [e for e in entries if e.warehouse == warehouse]
        return entries
