"""
Utility functions and monitoring tools.
"""

from .monitoring import (
    setup_prometheus_metrics,
    track_store_operation,
    track_store_error,
    set_primary_connected,
    get_prometheus_metrics
)
from .timestamps import utcnow, as_utc

__all__ = [
    "setup_prometheus_metrics",
    "track_store_operation",
    "track_store_error",
    "set_primary_connected",
    "get_prometheus_metrics",
    "utcnow",
    "as_utc"
]
