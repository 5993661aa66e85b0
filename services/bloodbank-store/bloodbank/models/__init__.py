"""
Record vocabulary and Pydantic response schemas for the Blood Bank Store.
"""

from .records import (
    BloodType,
    RequestStatus,
    Collections,
    REQUEST_TRANSITIONS,
    TIMESTAMP_FIELDS,
    HealthCheckResponse,
    MetricsResponse
)

__all__ = [
    "BloodType",
    "RequestStatus",
    "Collections",
    "REQUEST_TRANSITIONS",
    "TIMESTAMP_FIELDS",
    "HealthCheckResponse",
    "MetricsResponse"
]
