from typing import Callable, Optional
from datetime import datetime, timedelta
import structlog

from ..core.config import settings
from ..core.exceptions import ConnectivityFailure
from ..core.security import get_password_hash, verify_password
from ..store.base import RecordBackend
from ..store.fallback import JsonFileBackend
from ..store.primary import MongoBackend
from ..utils.monitoring import set_primary_connected
from ..utils.timestamps import utcnow
from .donors import DonorOperations
from .inventory import InventoryOperations
from .requests import BloodRequestOperations
from .users import UserOperations
from .volunteers import VolunteerOperations

logger = structlog.get_logger()


class BloodBankStore:
    """
    Persistence facade for the blood bank.

    Holds the primary (MongoDB) and fallback (JSON file) backends and routes
    every operation to the primary once ``connect()`` has succeeded, to the
    fallback otherwise. The choice is made at connect time, not per call.

    Usage:
        store = BloodBankStore()
        await store.connect()
        donor_id = await store.donors.register({...})
        await store.disconnect()
    """

    def __init__(
        self,
        primary: Optional[MongoBackend] = None,
        fallback: Optional[JsonFileBackend] = None,
        clock: Callable[[], datetime] = utcnow,
        donation_interval_days: Optional[int] = None,
        hash_password: Callable[[str], str] = get_password_hash,
        check_password: Callable[[str, str], bool] = verify_password,
    ):
        self.primary = primary if primary is not None else MongoBackend()
        self.fallback = fallback if fallback is not None else JsonFileBackend()
        self.clock = clock
        if donation_interval_days is None:
            donation_interval_days = settings.DONATION_INTERVAL_DAYS
        self.donation_interval = timedelta(days=donation_interval_days)
        self._connected = False

        self.donors = DonorOperations(self)
        self.requests = BloodRequestOperations(self)
        self.inventory = InventoryOperations(self)
        self.volunteers = VolunteerOperations(self)
        self.users = UserOperations(self, hash_password, check_password)

    @property
    def backend(self) -> RecordBackend:
        """The backend currently serving operations."""
        return self.primary if self._connected else self.fallback

    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        """
        Connect to the primary store.

        Returns:
            bool: True when connected (including when already connected),
                False when the store stays in fallback mode
        """
        if self._connected:
            return True

        try:
            await self.primary.connect()
        except ConnectivityFailure as e:
            logger.error("MongoDB connection error", error=str(e))
            logger.warning("Falling back to file-backed store", path=self.fallback.path)
            set_primary_connected(False)
            return False

        self._connected = True
        set_primary_connected(True)
        return True

    async def disconnect(self) -> None:
        """Release the primary connection; never raises."""
        try:
            await self.primary.close()
        except Exception as e:
            logger.error("Error closing MongoDB connection", error=str(e))
        finally:
            self._connected = False
            set_primary_connected(False)
