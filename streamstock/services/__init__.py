from streamstock.services.alert_engine import AlertEngine, AlertEvaluation
from streamstock.services.forecaster import Forecaster
from streamstock.services.notifications import NotificationBus, S3NotificationArchive
from streamstock.services.processor import ProcessingResult, StockEventProcessor
from streamstock.services.recommendations import RecommendationEngine
from streamstock.services.stock_validator import StockValidator

__all__ = [
    "AlertEngine",
    "AlertEvaluation",
    "Forecaster",
    "NotificationBus",
    "ProcessingResult",
    "RecommendationEngine",
    "S3NotificationArchive",
    "StockEventProcessor",
    "StockValidator",
]
