"""Bildirim portu - çekirdekten dış abonelere değişiklik bildirimleri.

- product:update, event:new, alert:new, alert:resolved olayları
- Gönder-unut: abone hatası loglanır, yapılan değişikliği geri almaz
- Opsiyonel S3 arşiv abonesi
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from collections import deque
from datetime import datetime
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import ClientError

from streamstock.models.inventory import Alert, Notification, Product, StockEvent

logger = logging.getLogger(__name__)

PRODUCT_UPDATE = "product:update"
EVENT_NEW = "event:new"
ALERT_NEW = "alert:new"
ALERT_RESOLVED = "alert:resolved"

Subscriber = Callable[[Notification], None]


class NotificationBus:
    """Abone callback listesine bildirim dağıtan bellek içi port."""

    def __init__(self, log_size: int = 1000) -> None:
        self._subscribers: dict[str, tuple[Subscriber, Optional[frozenset[str]]]] = {}
        self._message_log: deque[Notification] = deque(maxlen=log_size)
        self._lock = threading.Lock()

    def subscribe(self, handler: Subscriber, events: Optional[set[str]] = None) -> str:
        """Bir abone kaydeder. events verilirse yalnızca o olaylar iletilir."""
        subscription_id = str(uuid.uuid4())
        with self._lock:
            self._subscribers[subscription_id] = (
                handler,
                frozenset(events) if events else None,
            )
        return subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        with self._lock:
            return self._subscribers.pop(subscription_id, None) is not None

    def publish(self, notification: Notification) -> int:
        """Bildirimi tüm ilgili abonelere iletir, başarılı teslim sayısını döndürür."""
        with self._lock:
            self._message_log.append(notification)
            subscribers = list(self._subscribers.values())

        delivered = 0
        for handler, events in subscribers:
            if events is not None and notification.event not in events:
                continue
            try:
                handler(notification)
                delivered += 1
            except Exception as e:
                logger.warning("Bildirim teslim hatası [%s]: %s", notification.event, e)
        return delivered

    # --- Çekirdek olayları ---

    def product_updated(self, product: Product) -> int:
        return self.publish(Notification(event=PRODUCT_UPDATE, payload=product.to_dict()))

    def event_processed(self, event: StockEvent) -> int:
        return self.publish(Notification(event=EVENT_NEW, payload=event.to_dict()))

    def alert_created(self, alert: Alert) -> int:
        return self.publish(Notification(event=ALERT_NEW, payload=alert.to_dict()))

    def alert_resolved(self, alert_id: str, timestamp: datetime) -> int:
        return self.publish(
            Notification(
                event=ALERT_RESOLVED,
                payload={"alertId": alert_id, "timestamp": timestamp.isoformat()},
            )
        )

    def get_message_log(self, event: Optional[str] = None) -> list[Notification]:
        with self._lock:
            log = list(self._message_log)
        if event:
            log = [n for n in log if n.event == event]
        return log

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)


class S3NotificationArchive:
    """Bildirimleri JSON olarak S3'e yazan abone.

    Anahtar yapısı: notifications/<event>/<timestamp>-<uuid>.json
    """

    def __init__(
        self,
        bucket_name: str,
        region_name: str = "us-east-1",
        s3_client: Optional[Any] = None,
        prefix: str = "notifications",
    ) -> None:
        self.bucket_name = bucket_name
        self.prefix = prefix
        self.s3 = s3_client or boto3.client("s3", region_name=region_name)

    def __call__(self, notification: Notification) -> None:
        self.archive(notification)

    def archive(self, notification: Notification) -> Optional[str]:
        """Bildirimi S3'e yazar, anahtarı döndürür. Hata durumunda None."""
        event_dir = notification.event.replace(":", "-")
        timestamp = notification.timestamp.strftime("%Y-%m-%dT%H-%M-%S")
        key = f"{self.prefix}/{event_dir}/{timestamp}-{uuid.uuid4().hex[:8]}.json"
        try:
            self.s3.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=json.dumps(notification.to_dict(), default=str),
            )
            return key
        except ClientError as e:
            logger.warning("S3 bildirim arşiv hatası: %s", e)
            return None
