"""Analytics module - snapshot aggregation and health metrics."""

from src.analytics.aggregator import Aggregator
from src.analytics.health import HealthMonitor

__all__ = [
    "Aggregator",
    "HealthMonitor",
]
