"""Anahtar bazlı kilit - aynı ürüne ait olayların sıralı işlenmesi."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)


class KeyedLock:
    """Her anahtar (ürün kimliği) için ayrı bir kilit tutar.

    Farklı ürünler paralel işlenebilir, aynı ürün için tek yazar vardır.
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._master_lock = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._master_lock:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    def acquire(self, key: str, timeout: float = -1) -> bool:
        acquired = self._lock_for(key).acquire(timeout=timeout)
        if not acquired:
            logger.warning("Kilit alınamadı: %s (timeout)", key)
        return acquired

    def release(self, key: str) -> None:
        self._lock_for(key).release()

    def is_locked(self, key: str) -> bool:
        with self._master_lock:
            lock = self._locks.get(key)
        return lock.locked() if lock else False

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        self.acquire(key)
        try:
            yield
        finally:
            self.release(key)
