import pytest
import json
from datetime import timedelta
from bson import ObjectId

from bloodbank.core.exceptions import InvalidIdentifierError, ValidationError
from bloodbank.services.facade import BloodBankStore
from bloodbank.store.fallback import JsonFileBackend


@pytest.mark.asyncio
async def test_create_request_defaults(store, clock, sample_request_data):
    request_id = await store.requests.create(sample_request_data)

    request = await store.requests.get_by_id(request_id)

    assert request["status"] == "pending"
    assert request["createdAt"] == clock.now
    assert request["updatedAt"] == clock.now
    assert request["patientName"] == "Paul Biya Jr"


@pytest.mark.asyncio
async def test_create_request_missing_units(store, sample_request_data):
    del sample_request_data["unitsRequired"]

    with pytest.raises(ValidationError) as exc_info:
        await store.requests.create(sample_request_data)

    assert exc_info.value.field == "unitsRequired"
    assert store.fallback.snapshot()["blood_requests"] == []


@pytest.mark.asyncio
async def test_active_requests_order(store, clock, sample_request_data):
    """Highest urgency first, earliest submission breaks ties."""
    start = clock.now

    clock.set(start + timedelta(seconds=1))
    r1 = await store.requests.create({**sample_request_data, "urgency": 2})
    clock.set(start + timedelta(seconds=2))
    r2 = await store.requests.create({**sample_request_data, "urgency": 5})
    clock.set(start)
    r3 = await store.requests.create({**sample_request_data, "urgency": 5})

    active = await store.requests.get_active()

    assert [r["_id"] for r in active] == [r3, r2, r1]


@pytest.mark.asyncio
async def test_active_requests_increasing_urgency(store, clock, sample_request_data):
    created = []
    for urgency in range(1, 6):
        clock.advance(minutes=1)
        created.append(await store.requests.create({**sample_request_data, "urgency": urgency}))

    active = await store.requests.get_active()

    assert [r["_id"] for r in active] == list(reversed(created))


@pytest.mark.asyncio
async def test_active_requests_excludes_closed(store, sample_request_data):
    open_id = await store.requests.create(sample_request_data)
    closed_id = await store.requests.create(sample_request_data)
    await store.requests.update_status(closed_id, "fulfilled")

    active = await store.requests.get_active()

    assert [r["_id"] for r in active] == [open_id]


@pytest.mark.asyncio
async def test_update_status(store, clock, sample_request_data):
    request_id = await store.requests.create(sample_request_data)
    clock.advance(hours=1)

    modified = await store.requests.update_status(request_id, "cancelled")

    request = await store.requests.get_by_id(request_id)
    assert modified == 1
    assert request["status"] == "cancelled"
    assert request["updatedAt"] == clock.now
    assert request["createdAt"] == clock.now - timedelta(hours=1)


@pytest.mark.asyncio
async def test_update_status_missing_request(store):
    assert await store.requests.update_status(str(ObjectId()), "fulfilled") == 0


@pytest.mark.asyncio
async def test_update_status_terminal_request_unchanged(store, sample_request_data):
    request_id = await store.requests.create(sample_request_data)
    await store.requests.update_status(request_id, "fulfilled")

    assert await store.requests.update_status(request_id, "cancelled") == 0
    assert (await store.requests.get_by_id(request_id))["status"] == "fulfilled"


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["", None, "approved", "pending"])
async def test_update_status_rejects_invalid_target(store, sample_request_data, status):
    request_id = await store.requests.create(sample_request_data)

    with pytest.raises(ValidationError) as exc_info:
        await store.requests.update_status(request_id, status)

    assert exc_info.value.field == "status"


@pytest.mark.asyncio
async def test_update_status_invalid_identifier(store):
    with pytest.raises(InvalidIdentifierError):
        await store.requests.update_status("bogus", "fulfilled")


@pytest.mark.asyncio
@pytest.mark.parametrize("urgency", ["5", 2.5, True, [1]])
async def test_create_request_rejects_non_integer_urgency(store, sample_request_data, urgency):
    with pytest.raises(ValidationError) as exc_info:
        await store.requests.create({**sample_request_data, "urgency": urgency})

    assert exc_info.value.field == "urgency"
    assert store.fallback.snapshot()["blood_requests"] == []


@pytest.mark.asyncio
async def test_active_requests_tolerate_mixed_urgency_on_disk(fallback_path, clock, unreachable_primary, sample_request_data):
    """A hand-edited file with a string urgency still lists, ranked as MongoDB would."""
    with open(fallback_path, "w") as f:
        json.dump({"blood_requests": [
            {**sample_request_data, "_id": "a" * 24, "status": "pending", "urgency": 3,
             "createdAt": "2024-01-01T00:00:00+00:00"},
            {**sample_request_data, "_id": "b" * 24, "status": "pending", "urgency": "5",
             "createdAt": "2024-01-01T00:00:00+00:00"},
            {**sample_request_data, "_id": "c" * 24, "status": "pending",
             "createdAt": "2024-01-01T00:00:00+00:00"},
        ]}, f)
    store = BloodBankStore(primary=unreachable_primary, fallback=JsonFileBackend(fallback_path), clock=clock)

    active = await store.requests.get_active()

    assert [r["_id"] for r in active] == ["b" * 24, "a" * 24, "c" * 24]
