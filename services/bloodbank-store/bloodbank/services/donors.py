from typing import Any, Dict, List, Mapping, Optional
from datetime import datetime
from bson import ObjectId
import structlog

from ..core.exceptions import ValidationError
from ..models.records import Collections
from ..store.query import OlderThan
from ..utils.timestamps import as_utc
from .base import OperationSet, parse_id, require_blood_type, require_datetime, require_fields

logger = structlog.get_logger()

DONOR_REQUIRED_FIELDS = ("name", "email", "bloodType", "phone")


class DonorOperations(OperationSet):
    """Donor registration, lookup and eligibility queries."""

    collection = Collections.DONORS

    async def register(self, donor_data: Mapping[str, Any]) -> str:
        """
        Register a new donor.

        Args:
            donor_data: Donor fields; name, email, bloodType and phone are required

        Returns:
            str: The assigned donor identifier

        Raises:
            ValidationError: If a required field is missing or the blood type is unknown
            DuplicateRecordError: If the email is already registered
        """
        require_fields(donor_data, DONOR_REQUIRED_FIELDS)
        blood_type = require_blood_type(donor_data["bloodType"])

        record = {
            **donor_data,
            "_id": ObjectId(),
            "bloodType": blood_type,
            "lastDonation": None,
            "donations": 0,
            "createdAt": self._now(),
        }
        donor_id = await self._backend("register").insert_one(self.collection, record)
        logger.info("Donor registered", donor_id=donor_id, blood_type=blood_type)
        return donor_id

    async def find_eligible(self, blood_type: Any) -> List[Dict[str, Any]]:
        """
        Donors of ``blood_type`` who may donate again.

        A donor qualifies when they have never donated or their last donation
        is older than the minimum donation interval, measured from now.
        """
        if not blood_type or not isinstance(blood_type, str):
            raise ValidationError("bloodType", "Invalid blood type")
        blood_type = require_blood_type(blood_type)

        cutoff = self._now() - self._store.donation_interval
        return await self._backend("find_eligible").find_many(
            self.collection,
            {"bloodType": blood_type, "lastDonation": OlderThan(cutoff=cutoff)},
        )

    async def get_by_email(self, email: Any) -> Optional[Dict[str, Any]]:
        if not email or not isinstance(email, str):
            raise ValidationError("email", "Invalid email")
        return await self._backend("get_by_email").find_one(self.collection, {"email": email})

    async def record_donation(self, donor_id: Any, donated_at: Optional[datetime] = None) -> int:
        """Count one donation and stamp ``lastDonation``; returns the modified count."""
        object_id = parse_id(donor_id)
        if donated_at is None:
            donated_at = self._now()
        donated_at = as_utc(require_datetime(donated_at, "lastDonation"))

        return await self._backend("record_donation").update_by_id(
            self.collection,
            object_id,
            fields={"lastDonation": donated_at},
            increments={"donations": 1},
        )
