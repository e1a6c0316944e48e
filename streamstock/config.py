"""Merkezi ayarlar. Proje kökündeki .env dosyası yüklenir, değerler STREAMSTOCK_* değişkenlerinden okunur."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parent.parent / ".env"


def load_env(path: Optional[Path] = None) -> None:
    """.env dosyasını yükler; mevcut ortam değişkenlerini ezmez."""
    load_dotenv(path or _env_path, override=False)


def _int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw not in (None, "") else default


def _float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw not in (None, "") else default


@dataclass(frozen=True)
class Settings:
    # Uyarı eşikleri
    critical_stock_threshold: int = 10
    overstock_ratio: float = 0.9
    rapid_depletion_window_minutes: int = 60
    rapid_depletion_ratio: float = 0.30

    # Tahmin
    forecast_days: int = 7
    forecast_history_days: int = 30

    # Öneri motoru
    velocity_window_days: int = 30
    recommendation_cache_ttl_seconds: float = 300.0

    # Olay dağıtıcı
    worker_count: int = 4

    # AWS bildirim arşivi (opsiyonel)
    aws_region: str = "us-east-1"
    archive_bucket: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        load_env()
        return cls(
            critical_stock_threshold=_int("STREAMSTOCK_CRITICAL_STOCK", cls.critical_stock_threshold),
            overstock_ratio=_float("STREAMSTOCK_OVERSTOCK_RATIO", cls.overstock_ratio),
            rapid_depletion_window_minutes=_int(
                "STREAMSTOCK_DEPLETION_WINDOW_MINUTES", cls.rapid_depletion_window_minutes
            ),
            rapid_depletion_ratio=_float("STREAMSTOCK_DEPLETION_RATIO", cls.rapid_depletion_ratio),
            forecast_days=_int("STREAMSTOCK_FORECAST_DAYS", cls.forecast_days),
            forecast_history_days=_int("STREAMSTOCK_FORECAST_HISTORY_DAYS", cls.forecast_history_days),
            velocity_window_days=_int("STREAMSTOCK_VELOCITY_WINDOW_DAYS", cls.velocity_window_days),
            recommendation_cache_ttl_seconds=_float(
                "STREAMSTOCK_CACHE_TTL_SECONDS", cls.recommendation_cache_ttl_seconds
            ),
            worker_count=_int("STREAMSTOCK_WORKERS", cls.worker_count),
            aws_region=os.environ.get("AWS_DEFAULT_REGION", cls.aws_region),
            archive_bucket=os.environ.get("STREAMSTOCK_ARCHIVE_BUCKET") or None,
        )
