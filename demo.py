"""
StreamStock çekirdeği uçtan uca demo script'i.

Kullanım:
    python demo.py
    STREAMSTOCK_ARCHIVE_BUCKET="..." python demo.py   # bildirimleri S3'e de yazar
"""

import logging
import random
import sys

from streamstock.config import Settings
from streamstock.core import InventoryService
from streamstock.services.notifications import ALERT_NEW, ALERT_RESOLVED
from streamstock.simulation import EventGenerator, seed_service

SEED = 42


def seed(service: InventoryService, rng: random.Random) -> None:
    print("\n--- Veri Yükleme ---")
    summary = seed_service(service, rng)
    print(f"✅ {summary['products']} ürün, {summary['events']} geçmiş olay işlendi")

    metrics = service.get_metrics()
    print(f"   Düşük stoklu ürün: {metrics['low_stock_products']}")
    print(f"   Kritik stoklu ürün: {metrics['critical_stock_products']}")
    print(f"   Toplam stok değeri: {metrics['total_stock_value']:.2f}")
    print(f"   Aktif uyarı: {metrics['active_alerts']}")


def run_live_traffic(service: InventoryService, rng: random.Random, count: int = 200) -> None:
    print("\n--- Canlı Olay Trafiği ---")
    acked = []
    dispatcher = service.create_dispatcher(on_ack=lambda event, result: acked.append(event.id))
    generator = EventGenerator(service, rng)

    dispatcher.start()
    for record in generator.generate(count):
        dispatcher.submit(record)
    dispatcher.join()
    dispatcher.stop()

    print(f"✅ {len(acked)}/{generator.generated_count} olay işlendi ve onaylandı")
    failures = dispatcher.failures()
    if failures:
        print(f"❌ {len(failures)} olay reddedildi")
    anomalies = service.anomalies()
    if anomalies:
        print(f"⚠️  {len(anomalies)} stok anomalisi işaretlendi")


def show_alerts(service: InventoryService) -> None:
    print("\n--- Aktif Uyarılar ---")
    for alert in service.list_alerts(active=True)[:10]:
        print(f"   🚨 [{alert.severity.value}] {alert.type.value} {alert.product_id}: {alert.message}")


def show_forecasts(service: InventoryService) -> None:
    print("\n--- 7 Günlük Tahmin ---")
    for forecast in service.get_forecasts():
        flag = "🔁 sipariş" if forecast.reorder_recommended else ""
        print(
            f"   {forecast.product_id}: {forecast.current_stock} -> {forecast.predicted_stock} "
            f"(güven: {forecast.confidence}, trend: {forecast.trend.value}) {flag}"
        )


def show_recommendations(service: InventoryService) -> None:
    print("\n--- Öneriler ---")
    for rec in service.get_recommendations():
        print(
            f"   [{rec.priority.value}] {rec.recommendation} "
            f"(miktar: {rec.suggested_reorder_quantity}, güven: {rec.confidence})"
        )


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    print("📦 StreamStock - Olay Güdümlü Stok Yönetimi Demo")
    print("=" * 60)

    service = InventoryService(Settings.from_env())
    counts = {ALERT_NEW: 0, ALERT_RESOLVED: 0}
    service.subscribe(lambda n: counts.__setitem__(n.event, counts[n.event] + 1), {ALERT_NEW, ALERT_RESOLVED})

    rng = random.Random(int(sys.argv[1]) if len(sys.argv) > 1 else SEED)
    seed(service, rng)
    run_live_traffic(service, rng)
    show_alerts(service)
    show_forecasts(service)
    show_recommendations(service)

    print(f"\n📊 Bildirimler: {counts[ALERT_NEW]} yeni uyarı, {counts[ALERT_RESOLVED]} çözüm")
    print("\n" + "=" * 60)
    print("🎉 Demo tamamlandı!")
