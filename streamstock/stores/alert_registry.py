"""Uyarı kaydı - aktif/çözülmüş yaşam döngüsüne sahip uyarılar.

(product_id, type) çifti başına en fazla bir çözülmemiş uyarı bulunabilir.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from streamstock.exceptions import AlertAlreadyResolvedError, AlertNotFoundError
from streamstock.models.inventory import Alert, AlertSeverity, AlertType


class AlertRegistry:
    """Thread-safe uyarı deposu."""

    def __init__(self) -> None:
        self._alerts: dict[str, Alert] = {}
        self._lock = threading.RLock()

    def create_if_absent(self, alert: Alert) -> Optional[Alert]:
        """Aynı (ürün, tip) için aktif uyarı yoksa kaydeder; varsa None döner."""
        with self._lock:
            if self._find_active(alert.product_id, alert.type) is not None:
                return None
            self._alerts[alert.id] = replace(alert)
            return replace(alert)

    def resolve(self, alert_id: str, resolved_at: datetime) -> Alert:
        """Uyarıyı çözülmüş duruma geçirir (tek yönlü geçiş)."""
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                raise AlertNotFoundError(alert_id)
            if alert.resolved:
                raise AlertAlreadyResolvedError(alert_id)
            resolved = replace(alert, resolved=True, resolved_at=resolved_at)
            self._alerts[alert_id] = resolved
            return replace(resolved)

    def _find_active(self, product_id: str, alert_type: AlertType) -> Optional[Alert]:
        for alert in self._alerts.values():
            if alert.product_id == product_id and alert.type == alert_type and not alert.resolved:
                return alert
        return None

    def find_active(self, product_id: str, alert_type: AlertType) -> Optional[Alert]:
        with self._lock:
            alert = self._find_active(product_id, alert_type)
            return replace(alert) if alert else None

    def get(self, alert_id: str) -> Optional[Alert]:
        with self._lock:
            alert = self._alerts.get(alert_id)
            return replace(alert) if alert else None

    def all(self) -> list[Alert]:
        with self._lock:
            return [replace(a) for a in self._alerts.values()]

    def active(self) -> list[Alert]:
        return [a for a in self.all() if not a.resolved]

    def by_product(self, product_id: str) -> list[Alert]:
        return [a for a in self.all() if a.product_id == product_id]

    def by_severity(self, severity: AlertSeverity) -> list[Alert]:
        return [a for a in self.all() if a.severity == severity]

    def critical(self) -> list[Alert]:
        return [a for a in self.active() if a.severity == AlertSeverity.CRITICAL]

    def recent(self, limit: int = 100) -> list[Alert]:
        alerts = sorted(self.all(), key=lambda a: a.created_at, reverse=True)
        return alerts[:limit]

    def cleanup_expired(self, now: datetime, max_age: timedelta = timedelta(hours=24)) -> int:
        """max_age'den önce çözülmüş uyarıları siler. Çekirdek bunu kendisi çağırmaz."""
        cutoff = now - max_age
        with self._lock:
            expired = [
                alert_id
                for alert_id, alert in self._alerts.items()
                if alert.resolved and alert.resolved_at is not None and alert.resolved_at < cutoff
            ]
            for alert_id in expired:
                del self._alerts[alert_id]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)
