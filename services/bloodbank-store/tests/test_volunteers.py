import pytest
from bson import ObjectId

from bloodbank.core.exceptions import InvalidIdentifierError, ValidationError
from bloodbank.store.fallback import JsonFileBackend


@pytest.mark.asyncio
async def test_register_volunteer(store, clock, sample_volunteer_data):
    volunteer_id = await store.volunteers.register(sample_volunteer_data)

    volunteer = await store.volunteers.get_by_id(volunteer_id)

    assert volunteer["active"] is True
    assert volunteer["joinedAt"] == clock.now
    assert volunteer["skills"] == ["driving", "first aid"]


@pytest.mark.asyncio
async def test_register_volunteer_without_skills(store, sample_volunteer_data):
    """Missing skills is named and nothing is written anywhere."""
    del sample_volunteer_data["skills"]

    with pytest.raises(ValidationError) as exc_info:
        await store.volunteers.register(sample_volunteer_data)

    assert exc_info.value.field == "skills"
    assert all(records == [] for records in store.fallback.snapshot().values())


@pytest.mark.asyncio
async def test_active_volunteers(store, sample_volunteer_data):
    active_id = await store.volunteers.register(sample_volunteer_data)
    inactive_id = await store.volunteers.register(
        {**sample_volunteer_data, "email": "retired@example.com"}
    )
    await store.volunteers.update_status(inactive_id, False)

    active = await store.volunteers.get_active()

    assert [v["_id"] for v in active] == [active_id]


@pytest.mark.asyncio
async def test_update_status_sets_updated_at(store, clock, sample_volunteer_data):
    volunteer_id = await store.volunteers.register(sample_volunteer_data)
    clock.advance(days=3)

    assert await store.volunteers.update_status(volunteer_id, False) == 1

    volunteer = await store.volunteers.get_by_id(volunteer_id)
    assert volunteer["active"] is False
    assert volunteer["updatedAt"] == clock.now


@pytest.mark.asyncio
async def test_update_status_missing_volunteer(store):
    assert await store.volunteers.update_status(str(ObjectId()), True) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("active", ["yes", 1, None])
async def test_update_status_requires_boolean(store, sample_volunteer_data, active):
    volunteer_id = await store.volunteers.register(sample_volunteer_data)

    with pytest.raises(ValidationError) as exc_info:
        await store.volunteers.update_status(volunteer_id, active)

    assert exc_info.value.field == "active"


@pytest.mark.asyncio
async def test_update_status_invalid_identifier(store):
    with pytest.raises(InvalidIdentifierError):
        await store.volunteers.update_status("1700000000000", True)


@pytest.mark.asyncio
async def test_registered_record_is_detached_from_input(store, fallback_path, sample_volunteer_data):
    """Changing the caller's dict after register leaves the stored record alone."""
    volunteer_id = await store.volunteers.register(sample_volunteer_data)

    sample_volunteer_data["skills"].append("tampered")

    assert (await store.volunteers.get_by_id(volunteer_id))["skills"] == ["driving", "first aid"]
    assert store.fallback.snapshot() == JsonFileBackend(fallback_path).snapshot()
