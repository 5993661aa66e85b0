from typing import Any, Dict, List, Mapping
from bson import ObjectId
import structlog

from ..core.exceptions import ValidationError
from ..models.records import Collections, RequestStatus, REQUEST_TRANSITIONS
from ..store.query import ASCENDING, DESCENDING, OneOf
from .base import OperationSet, parse_id, require_blood_type, require_fields

logger = structlog.get_logger()

REQUEST_REQUIRED_FIELDS = ("patientName", "bloodType", "hospital", "unitsRequired")

# Highest urgency first; ties go to the earliest submission
ACTIVE_REQUEST_ORDER = [("urgency", DESCENDING), ("createdAt", ASCENDING)]


def _parse_status(status: Any) -> RequestStatus:
    if not status:
        raise ValidationError("status", "Invalid request status")
    try:
        return RequestStatus(status)
    except ValueError:
        raise ValidationError("status", f"Unknown request status: {status!r}")


def _check_urgency(urgency: Any) -> None:
    # Optional, but must be a whole number so requests stay orderable
    if urgency is None:
        return
    if isinstance(urgency, bool) or not isinstance(urgency, int):
        raise ValidationError("urgency", "Urgency must be an integer")


class BloodRequestOperations(OperationSet):
    """Blood request creation, prioritised listing and status changes."""

    collection = Collections.REQUESTS

    async def create(self, request_data: Mapping[str, Any]) -> str:
        """
        Create a pending blood request.

        Args:
            request_data: Request fields; patientName, bloodType, hospital and
                unitsRequired are required; urgency, when given, is an int

        Returns:
            str: The assigned request identifier
        """
        require_fields(request_data, REQUEST_REQUIRED_FIELDS)
        blood_type = require_blood_type(request_data["bloodType"])
        _check_urgency(request_data.get("urgency"))

        now = self._now()
        record = {
            **request_data,
            "_id": ObjectId(),
            "bloodType": blood_type,
            "status": RequestStatus.PENDING.value,
            "createdAt": now,
            "updatedAt": now,
        }
        request_id = await self._backend("create").insert_one(self.collection, record)
        logger.info(
            "Blood request created",
            request_id=request_id,
            blood_type=blood_type,
            urgency=request_data.get("urgency")
        )
        return request_id

    async def get_active(self) -> List[Dict[str, Any]]:
        """Pending requests in admission order."""
        return await self._backend("get_active").find_many(
            self.collection,
            {"status": RequestStatus.PENDING.value},
            sort=ACTIVE_REQUEST_ORDER,
        )

    async def update_status(self, request_id: Any, status: Any) -> int:
        """
        Move a request to ``status``.

        Only legal transitions apply: a request already fulfilled or
        cancelled is left untouched and 0 is returned.

        Raises:
            InvalidIdentifierError: If ``request_id`` is malformed
            ValidationError: If ``status`` is unknown or can never be reached
        """
        object_id = parse_id(request_id)
        target = _parse_status(status)

        sources = tuple(
            source.value
            for source, targets in REQUEST_TRANSITIONS.items()
            if target in targets
        )
        if not sources:
            raise ValidationError("status", f"Requests cannot move to {target.value}")

        modified = await self._backend("update_status").update_by_id(
            self.collection,
            object_id,
            fields={"status": target.value, "updatedAt": self._now()},
            criteria={"status": OneOf(values=sources)},
        )
        if not modified:
            logger.info("Request status unchanged", request_id=str(object_id), status=target.value)
        return modified
