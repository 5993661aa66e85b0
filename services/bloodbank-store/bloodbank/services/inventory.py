from typing import Any, Dict, List

from ..core.exceptions import ValidationError
from ..models.records import Collections
from .base import OperationSet, require_blood_type


class InventoryOperations(OperationSet):
    """Per blood type stock levels."""

    collection = Collections.INVENTORY

    async def adjust(self, blood_type: Any, amount: Any) -> int:
        """
        Add ``amount`` units (negative to withdraw) to a blood type.

        The item is created with ``amount`` as its quantity when the blood
        type has no record yet. Returns 1 once applied.
        """
        blood_type = require_blood_type(blood_type)
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError("amount", "Amount must be an integer")

        return await self._backend("adjust").upsert_increment(
            self.collection,
            {"bloodType": blood_type},
            {"quantity": amount},
        )

    async def get_all(self) -> List[Dict[str, Any]]:
        return await self._backend("get_all").find_many(self.collection)

    async def get_quantity(self, blood_type: Any) -> int:
        """Units on hand; 0 when the blood type has no record."""
        blood_type = require_blood_type(blood_type)
        item = await self._backend("get_quantity").find_one(
            self.collection, {"bloodType": blood_type}
        )
        return item.get("quantity", 0) if item else 0

    async def distribution(self) -> Dict[str, int]:
        """Quantity per blood type, as a plain mapping."""
        return {item["bloodType"]: item.get("quantity", 0) for item in await self.get_all()}
