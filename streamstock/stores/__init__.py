from streamstock.stores.alert_registry import AlertRegistry
from streamstock.stores.history import EventHistory
from streamstock.stores.ledger import ProductLedger

__all__ = [
    "AlertRegistry",
    "EventHistory",
    "ProductLedger",
]
