"""Simülasyon verisi - demo ürünleri, 30 günlük geçmiş ve sentetik olay trafiği.

3 depo, 3 kategori, kategori başına 3-4 ürün.
Olay dağılımı: %65 SALE, %25 RESTOCK, %10 RETURN.
Tüm rastgelelik verilen random.Random örneğinden gelir, aynı seed aynı veriyi üretir.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from streamstock.core import InventoryService
from streamstock.models.inventory import EventMetadata, EventType, Product, StockEvent

logger = logging.getLogger(__name__)

# --- SABİTLER ---

WAREHOUSES = {
    "WH-1": "Marmara Depo",
    "WH-2": "Ege Depo",
    "WH-3": "İç Anadolu Depo",
}

PRODUCT_NAMES: dict[str, list[str]] = {
    "Elektronik": [
        "Laptop Pro", "Kablosuz Mouse", "USB-C Hub", "4K Monitör", "Mekanik Klavye",
    ],
    "Giyim": [
        "Pamuklu T-Shirt", "Kot Pantolon", "Koşu Ayakkabısı", "Kışlık Mont", "Beyzbol Şapka",
    ],
    "Ev Ürünleri": [
        "Kahve Makinesi", "Masa Lambası", "Saklama Kutusu", "Mutfak Gereçleri", "Kırlent",
    ],
}

CATEGORY_CODES = {
    "Elektronik": "ELK",
    "Giyim": "GYM",
    "Ev Ürünleri": "EVU",
}


@dataclass
class TrafficConfig:
    events_per_minute: int = 10
    sales_weight: float = 0.65
    restock_weight: float = 0.25
    return_weight: float = 0.10


# --- ÜRETİM FONKSİYONLARI ---

def generate_products(rng: random.Random, now: datetime) -> list[Product]:
    """Kategori başına 3-4 ürün üretir.

    reorder_point = başlangıç stoğunun %30'u, max_capacity = başlangıç stoğunun 2 katı.
    """
    products: list[Product] = []
    warehouse_ids = list(WAREHOUSES)

    for category, names in PRODUCT_NAMES.items():
        count = rng.randint(3, 4)
        for i, name in enumerate(names[:count]):
            base_stock = rng.randint(100, 499)
            products.append(
                Product(
                    id=f"PROD-{len(products) + 1:03d}",
                    sku=f"SKU-{CATEGORY_CODES[category]}-{i + 1:03d}",
                    name=name,
                    category=category,
                    warehouse=rng.choice(warehouse_ids),
                    current_stock=base_stock,
                    reorder_point=int(base_stock * 0.3),
                    max_capacity=base_stock * 2,
                    unit_price=round(rng.uniform(20, 220), 2),
                    last_updated=now,
                )
            )
    return products


def select_event_type(rng: random.Random, config: TrafficConfig) -> EventType:
    roll = rng.random()
    if roll < config.sales_weight:
        return EventType.SALE
    if roll < config.sales_weight + config.restock_weight:
        return EventType.RESTOCK
    return EventType.RETURN


def historical_quantity(rng: random.Random, event_type: EventType) -> int:
    if event_type == EventType.SALE:
        return rng.randint(1, 10)
    if event_type == EventType.RESTOCK:
        return rng.randint(100, 299)
    return rng.randint(1, 5)


def live_quantity(rng: random.Random, event_type: EventType, product: Product) -> int:
    """Canlı trafik miktarı - satış stokla, yenileme kapasitenin %70'iyle sınırlı."""
    if event_type == EventType.SALE:
        return rng.randint(1, max(1, min(10, product.current_stock)))
    if event_type == EventType.RESTOCK:
        target = product.max_capacity * 0.7
        return int(max(100, target - product.current_stock))
    return rng.randint(1, 5)


def generate_history(
    rng: random.Random,
    products: list[Product],
    now: datetime,
    days: int = 30,
    events_per_day: int = 20,
    config: Optional[TrafficConfig] = None,
) -> list[StockEvent]:
    """Son `days` gün için gün içine dağılmış geçmiş olaylar."""
    config = config or TrafficConfig()
    start = now - timedelta(days=days)
    events: list[StockEvent] = []

    for day in range(days):
        day_start = start + timedelta(days=day)
        for _ in range(events_per_day):
            product = rng.choice(products)
            event_type = select_event_type(rng, config)
            events.append(
                StockEvent(
                    id=f"EVT-{len(events) + 1:06d}",
                    type=event_type,
                    product_id=product.id,
                    quantity=historical_quantity(rng, event_type),
                    timestamp=day_start + timedelta(seconds=rng.randrange(24 * 60 * 60)),
                    metadata=EventMetadata(
                        source="seed", warehouse=product.warehouse, historical=True, day=day + 1
                    ),
                )
            )
    return events


def seed_service(
    service: InventoryService,
    rng: Optional[random.Random] = None,
    days: int = 30,
    events_per_day: int = 20,
) -> dict:
    """Servise demo ürünlerini tanımlar ve geçmiş olayları işler."""
    rng = rng or random.Random()
    now = service.clock.now()

    products = [service.provision_product(p) for p in generate_products(rng, now)]
    events = generate_history(rng, products, now, days, events_per_day)
    for event in events:
        service.process_event(event)

    logger.info("%d ürün ve %d geçmiş olay yüklendi", len(products), len(events))
    return {"products": len(products), "events": len(events)}


class EventGenerator:
    """Servisin güncel ürün durumuna göre canlı olay kaydı üretir.

    Üretilen kayıt, mesaj katmanındaki serileştirilmiş biçimdedir.
    """

    def __init__(
        self,
        service: InventoryService,
        rng: Optional[random.Random] = None,
        config: Optional[TrafficConfig] = None,
    ) -> None:
        self.service = service
        self.rng = rng or random.Random()
        self.config = config or TrafficConfig()
        self._counter = 0

    @property
    def interval_seconds(self) -> float:
        return 60.0 / self.config.events_per_minute

    @property
    def generated_count(self) -> int:
        return self._counter

    def next_record(self) -> Optional[dict]:
        products = self.service.ledger.all()
        if not products:
            logger.warning("Olay üretimi için ürün yok")
            return None

        product = self.rng.choice(products)
        event_type = select_event_type(self.rng, self.config)
        self._counter += 1
        return {
            "id": f"GEN-{self._counter:08d}",
            "type": event_type.value,
            "productId": product.id,
            "quantity": live_quantity(self.rng, event_type, product),
            "timestamp": self.service.clock.now().isoformat(),
            "metadata": {
                "source": "generator",
                "warehouse": product.warehouse,
                "productName": product.name,
                "category": product.category,
            },
        }

    def generate(self, count: int) -> list[dict]:
        records = []
        for _ in range(count):
            record = self.next_record()
            if record is None:
                break
            records.append(record)
        return records
