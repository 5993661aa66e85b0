from pydantic import BaseModel, Field
from typing import Optional, Dict, FrozenSet
from datetime import datetime
from enum import Enum


class BloodType(str, Enum):
    """Blood type enumeration."""
    A_POSITIVE = "A+"
    A_NEGATIVE = "A-"
    B_POSITIVE = "B+"
    B_NEGATIVE = "B-"
    AB_POSITIVE = "AB+"
    AB_NEGATIVE = "AB-"
    O_POSITIVE = "O+"
    O_NEGATIVE = "O-"


class RequestStatus(str, Enum):
    """Blood request status enumeration."""
    PENDING = "pending"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


class Collections:
    """Collection names shared by both backends."""
    DONORS = "donors"
    REQUESTS = "blood_requests"
    VOLUNTEERS = "volunteers"
    INVENTORY = "blood_inventory"
    USERS = "users"

    ALL = (DONORS, REQUESTS, VOLUNTEERS, INVENTORY, USERS)


# Allowed moves out of each status; fulfilled and cancelled are terminal.
REQUEST_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.FULFILLED, RequestStatus.CANCELLED}),
    RequestStatus.FULFILLED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

# Record fields holding datetimes, restored from ISO strings on load
TIMESTAMP_FIELDS = ("createdAt", "updatedAt", "joinedAt", "lastDonation")


class HealthCheckResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(default_factory=datetime.now, description="Check timestamp")
    version: str = Field(..., description="Service version")
    backend: str = Field(..., description="Active persistence backend")
    primary_status: str = Field(..., description="Primary store connection status")
    fallback_file: Optional[str] = Field(None, description="Fallback store file path")
    uptime_seconds: float = Field(..., description="Service uptime in seconds")


class MetricsResponse(BaseModel):
    """Metrics response model."""
    active_requests: int = Field(..., description="Pending blood requests count")
    active_volunteers: int = Field(..., description="Active volunteers count")
    blood_type_distribution: Dict[str, int] = Field(..., description="Inventory units by blood type")
    last_updated: datetime = Field(default_factory=datetime.now, description="Last update timestamp")

