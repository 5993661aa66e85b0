import pytest
from unittest.mock import AsyncMock, MagicMock
from datetime import datetime, timedelta, timezone

from bloodbank.core.config import settings
from bloodbank.core.exceptions import ConnectivityFailure
from bloodbank.services.facade import BloodBankStore
from bloodbank.store.fallback import JsonFileBackend
from bloodbank.store.primary import MongoBackend


class FakeClock:
    """Controllable clock for timestamp-sensitive tests."""

    def __init__(self, now=None):
        self.now = now or datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def set(self, now):
        self.now = now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def fake_hash(password):
    return f"hashed:{password}"


def fake_verify(password, hashed):
    return hashed == f"hashed:{password}"


@pytest.fixture
def fallback_path(tmp_path):
    """Path of the fallback store file for one test."""
    return str(tmp_path / "inmemory_db.json")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def unreachable_primary():
    """Primary backend whose connect always fails."""
    primary = MagicMock(spec=MongoBackend)
    primary.name = "primary"
    primary.connect = AsyncMock(side_effect=ConnectivityFailure("No servers found"))
    primary.close = AsyncMock()
    return primary


@pytest.fixture
def store(fallback_path, clock, unreachable_primary):
    """Store running on the fallback backend."""
    return BloodBankStore(
        primary=unreachable_primary,
        fallback=JsonFileBackend(fallback_path),
        clock=clock,
        hash_password=fake_hash,
        check_password=fake_verify,
    )


@pytest.fixture
def sample_donor_data():
    """Sample donor data for testing."""
    return {
        "name": "Amina Njoya",
        "email": "amina@example.com",
        "bloodType": "O+",
        "phone": "+237123456789"
    }


@pytest.fixture
def sample_request_data():
    """Sample blood request data for testing."""
    return {
        "patientName": "Paul Biya Jr",
        "bloodType": "A-",
        "hospital": "Douala General Hospital",
        "unitsRequired": 2,
        "urgency": 3
    }


@pytest.fixture
def sample_volunteer_data():
    """Sample volunteer data for testing."""
    return {
        "name": "Grace Mballa",
        "email": "grace@example.com",
        "phone": "+237987654321",
        "skills": ["driving", "first aid"]
    }


@pytest.fixture
def sample_user_data():
    """Sample user data for testing."""
    return {
        "email": "staff@example.com",
        "password": "s3cret-pass",
        "name": "Clinic Staff"
    }


@pytest.fixture(autouse=True)
def override_settings(fallback_path):
    """Override settings for testing."""
    settings.MONGODB_URI = "mongodb://test-host:27017/bloodbank_test"
    settings.FALLBACK_DB_FILE = fallback_path
    settings.DONATION_INTERVAL_DAYS = 90
    settings.DEBUG = True


def make_collection():
    """Mock of an async MongoDB collection."""
    collection = MagicMock()
    collection.create_index = AsyncMock()
    collection.insert_one = AsyncMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.update_one = AsyncMock()
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.to_list = AsyncMock(return_value=[])
    collection.find.return_value = cursor
    return collection


@pytest.fixture
def mock_mongo_client():
    """Mock AsyncMongoClient with a database, collections and a session."""
    client = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1})
    client.close = AsyncMock()

    collections = {}
    db = MagicMock()
    db.name = "bloodbank_test"
    db.__getitem__.side_effect = lambda name: collections.setdefault(name, make_collection())
    db.collections = collections
    client.get_default_database.return_value = db

    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)

    async def run_transaction(callback):
        return await callback(session)

    session.with_transaction = AsyncMock(side_effect=run_transaction)
    client.start_session.return_value = session
    client.session = session
    return client
