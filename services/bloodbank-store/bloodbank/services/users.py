from typing import Any, Callable, Dict, Mapping, Optional, TYPE_CHECKING
from bson import ObjectId
import structlog

from ..core.exceptions import ValidationError
from ..core.security import get_password_hash, verify_password
from ..models.records import Collections
from .base import OperationSet, require_fields

if TYPE_CHECKING:
    from .facade import BloodBankStore

logger = structlog.get_logger()

USER_REQUIRED_FIELDS = ("email", "password", "name")


class UserOperations(OperationSet):
    """
    User accounts.

    Passwords go through the hashing callables before they reach a backend;
    the plain text is never stored or logged.
    """

    collection = Collections.USERS

    def __init__(
        self,
        store: "BloodBankStore",
        hash_password: Callable[[str], str] = get_password_hash,
        check_password: Callable[[str, str], bool] = verify_password,
    ):
        super().__init__(store)
        self._hash_password = hash_password
        self._check_password = check_password

    async def create(self, user_data: Mapping[str, Any]) -> str:
        """
        Create a user account.

        Returns:
            str: The assigned user identifier

        Raises:
            ValidationError: If email, password or name is missing
            DuplicateRecordError: If the email is already taken
        """
        require_fields(user_data, USER_REQUIRED_FIELDS)
        if not isinstance(user_data["password"], str):
            raise ValidationError("password", "Password must be a string")

        now = self._now()
        record = {
            **user_data,
            "_id": ObjectId(),
            "password": self._hash_password(user_data["password"]),
            "createdAt": now,
            "updatedAt": now,
        }
        user_id = await self._backend("create").insert_one(self.collection, record)
        logger.info("User created", user_id=user_id)
        return user_id

    async def get_by_email(self, email: Any) -> Optional[Dict[str, Any]]:
        if not email or not isinstance(email, str):
            raise ValidationError("email", "Invalid email")
        return await self._backend("get_by_email").find_one(self.collection, {"email": email})

    async def authenticate(self, email: Any, password: Any) -> Optional[Dict[str, Any]]:
        """Return the user without its password hash when the credentials match."""
        if not password or not isinstance(password, str):
            raise ValidationError("password", "Invalid password")

        user = await self.get_by_email(email)
        if user is None or not self._check_password(password, user.get("password") or ""):
            logger.info("Authentication failed", email=email)
            return None

        user.pop("password", None)
        return user
