from typing import Any, Dict, List, Mapping
from bson import ObjectId
import structlog

from ..core.exceptions import ValidationError
from ..models.records import Collections
from .base import OperationSet, parse_id, require_fields

logger = structlog.get_logger()

VOLUNTEER_REQUIRED_FIELDS = ("name", "email", "phone", "skills")


class VolunteerOperations(OperationSet):
    """Volunteer registration and activation."""

    collection = Collections.VOLUNTEERS

    async def register(self, volunteer_data: Mapping[str, Any]) -> str:
        require_fields(volunteer_data, VOLUNTEER_REQUIRED_FIELDS)

        record = {
            **volunteer_data,
            "_id": ObjectId(),
            "active": True,
            "joinedAt": self._now(),
        }
        volunteer_id = await self._backend("register").insert_one(self.collection, record)
        logger.info("Volunteer registered", volunteer_id=volunteer_id)
        return volunteer_id

    async def get_active(self) -> List[Dict[str, Any]]:
        return await self._backend("get_active").find_many(self.collection, {"active": True})

    async def update_status(self, volunteer_id: Any, active: Any) -> int:
        object_id = parse_id(volunteer_id)
        if not isinstance(active, bool):
            raise ValidationError("active", "Active flag must be a boolean")

        return await self._backend("update_status").update_by_id(
            self.collection,
            object_id,
            fields={"active": active, "updatedAt": self._now()},
        )
