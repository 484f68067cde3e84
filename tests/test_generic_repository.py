"""
Generic repository behaviour against an in-memory SQLite database.
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from apps.parking.models import ParkingTicket, Vehicle, VehicleType
from infrastructure.repository import Criterion, GenericRepository, Operator, UnitOfWork


@pytest.mark.asyncio
async def test_add_none_raises_without_touching_session():
    session = AsyncMock()
    repo = GenericRepository(UnitOfWork(session=session), Vehicle)

    with pytest.raises(ValueError, match="Entity can not be null"):
        await repo.add(None)

    session.add.assert_not_called()
    session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_add_assigns_id_and_created_on(vehicle_repo, async_session):
    start = datetime.now(timezone.utc)

    vehicle = await vehicle_repo.add(Vehicle(plate="CCC333"))

    assert vehicle.id is not None
    assert vehicle.created_on >= start
    assert vehicle.updated_on is None

    async_session.expunge_all()
    fetched = await vehicle_repo.get_by_id(vehicle.id)
    assert fetched is not None
    assert fetched.plate == "CCC333"
    assert fetched.created_on is not None


@pytest.mark.asyncio
async def test_update_stamps_updated_on_and_keeps_created_on(vehicle_repo):
    vehicle = await vehicle_repo.add(Vehicle(plate="DDD444", vehicle_type=VehicleType.MOTORCYCLE))
    created_on = vehicle.created_on

    vehicle.cylinder_capacity = 125
    updated = await vehicle_repo.update(vehicle)

    assert updated is vehicle
    assert vehicle.updated_on is not None
    assert vehicle.updated_on >= created_on
    assert vehicle.created_on == created_on


@pytest.mark.asyncio
async def test_update_without_attribute_changes_still_marks_modified(vehicle_repo):
    vehicle = await vehicle_repo.add(Vehicle(plate="EEE555"))

    await vehicle_repo.update(vehicle)

    assert vehicle.updated_on is not None


@pytest.mark.asyncio
async def test_update_reattaches_detached_entity(vehicle_repo, async_session):
    vehicle = await vehicle_repo.add(Vehicle(plate="FFF666"))
    async_session.expunge(vehicle)
    vehicle.cylinder_capacity = 1600

    updated = await vehicle_repo.update(vehicle)

    assert inspect(updated).persistent
    assert updated.updated_on is not None
    async_session.expunge_all()
    fetched = await vehicle_repo.get_by_id(vehicle.id)
    assert fetched.cylinder_capacity == 1600


@pytest.mark.asyncio
async def test_update_merges_detached_copy_of_tracked_row(vehicle_repo, async_session, sample_vehicles):
    async_session.expunge_all()
    detached = (await vehicle_repo.get(filter=col(Vehicle.id) == 1))[0]
    tracked = await vehicle_repo.get_by_id(1)
    assert tracked is not detached

    detached.cylinder_capacity = 99
    result = await vehicle_repo.update(detached)

    assert result is tracked
    assert tracked.cylinder_capacity == 99
    assert tracked.updated_on is not None


@pytest.mark.asyncio
async def test_update_new_instance_with_existing_id_updates_row(vehicle_repo, async_session, sample_vehicles):
    created_on = sample_vehicles[0].created_on
    async_session.expunge_all()

    updated = await vehicle_repo.update(
        Vehicle(id=1, plate="AAA111", vehicle_type=VehicleType.MOTORCYCLE, cylinder_capacity=900)
    )

    assert inspect(updated).persistent
    assert updated.updated_on is not None
    async_session.expunge_all()
    fetched = await vehicle_repo.get_by_id(1)
    assert fetched.vehicle_type == VehicleType.MOTORCYCLE
    assert fetched.cylinder_capacity == 900
    assert fetched.updated_on is not None
    assert fetched.created_on is not None
    assert fetched.created_on.replace(tzinfo=None) == created_on.replace(tzinfo=None)
    assert await vehicle_repo.count() == 2


@pytest.mark.asyncio
async def test_update_new_instance_with_id_of_tracked_row(vehicle_repo, sample_vehicles):
    tracked = sample_vehicles[0]

    result = await vehicle_repo.update(Vehicle(id=1, plate="AAA111", cylinder_capacity=1200))

    assert result is tracked
    assert tracked.cylinder_capacity == 1200
    assert tracked.updated_on is not None
    assert tracked.created_on is not None
    assert await vehicle_repo.count() == 2


@pytest.mark.asyncio
async def test_update_and_delete_ignore_none():
    session = AsyncMock()
    repo = GenericRepository(UnitOfWork(session=session), Vehicle)

    assert await repo.update(None) is None
    await repo.delete(None)

    session.commit.assert_not_called()


@pytest.mark.asyncio
async def test_delete_then_get_by_id_returns_none(vehicle_repo):
    vehicle = await vehicle_repo.add(Vehicle(plate="GGG777"))
    vehicle_id = vehicle.id

    await vehicle_repo.delete(vehicle)

    assert await vehicle_repo.get_by_id(vehicle_id) is None


@pytest.mark.asyncio
async def test_delete_detached_entity(vehicle_repo, async_session):
    vehicle = await vehicle_repo.add(Vehicle(plate="HHH888"))
    async_session.expunge_all()

    await vehicle_repo.delete(vehicle)

    assert await vehicle_repo.count() == 0


@pytest.mark.asyncio
async def test_delete_new_instance_with_existing_id(vehicle_repo, async_session, sample_vehicles):
    async_session.expunge_all()

    await vehicle_repo.delete(Vehicle(id=2, plate="BBB222"))

    assert await vehicle_repo.get_by_id(2) is None
    assert await vehicle_repo.count() == 1


@pytest.mark.asyncio
async def test_delete_new_instance_with_id_of_tracked_row(vehicle_repo, sample_vehicles):
    await vehicle_repo.delete(Vehicle(id=2, plate="BBB222"))

    assert await vehicle_repo.get_by_id(2) is None
    assert [vehicle.id for vehicle in await vehicle_repo.get()] == [1]


@pytest.mark.asyncio
async def test_get_by_id_missing_returns_none(vehicle_repo):
    assert await vehicle_repo.get_by_id(404) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("is_tracking", [False, True])
async def test_get_filter_returns_matching_subset(vehicle_repo, sample_vehicles, is_tracking):
    result = await vehicle_repo.get(filter=col(Vehicle.id) > 1, is_tracking=is_tracking)

    assert [vehicle.plate for vehicle in result] == ["BBB222"]
    assert await vehicle_repo.count(col(Vehicle.id) > 1) == 1


@pytest.mark.asyncio
async def test_get_without_filter_returns_all(vehicle_repo, sample_vehicles):
    result = await vehicle_repo.get()

    assert sorted(vehicle.id for vehicle in result) == [1, 2]
    assert await vehicle_repo.count() == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "filter",
    [
        None,
        col(Vehicle.id) > 1,
        Criterion("vehicle_type", Operator.EQ, VehicleType.CAR),
        [Criterion("id", Operator.GE, 1), Criterion("plate", Operator.LIKE, "B%")],
        Criterion("cylinder_capacity", Operator.IS_NULL, False),
        Criterion("id", Operator.IN, [1, 2, 3]),
        [],
    ],
)
async def test_count_matches_get(vehicle_repo, sample_vehicles, filter):
    assert await vehicle_repo.count(filter) == len(await vehicle_repo.get(filter=filter))


@pytest.mark.asyncio
async def test_no_tracking_read_returns_detached_entities(vehicle_repo, async_session, sample_vehicles):
    async_session.expunge_all()

    result = await vehicle_repo.get()

    assert len(result) == 2
    assert all(inspect(vehicle).detached for vehicle in result)
    assert len(async_session.sync_session.identity_map) == 0

    tracked = await vehicle_repo.get(is_tracking=True)
    assert all(inspect(vehicle).persistent for vehicle in tracked)


@pytest.mark.asyncio
async def test_no_tracking_read_does_not_flush_pending(vehicle_repo, uow, async_session, sample_vehicles):
    pending = Vehicle(plate="ZZZ999")
    uow.add(pending)

    result = await vehicle_repo.get()

    assert "ZZZ999" not in [vehicle.plate for vehicle in result]
    assert pending in async_session.sync_session.new
    await uow.rollback()


@pytest.mark.asyncio
async def test_include_eager_loads_relationship(vehicle_repo, ticket_repo, async_session):
    vehicle = await vehicle_repo.add(Vehicle(plate="III000"))
    await ticket_repo.add(ParkingTicket(vehicle_id=vehicle.id))
    async_session.expunge_all()

    tickets = await ticket_repo.get(ParkingTicket.vehicle)

    assert len(tickets) == 1
    assert inspect(tickets[0]).detached
    assert tickets[0].vehicle.plate == "III000"
    assert inspect(tickets[0].vehicle).detached


@pytest.mark.asyncio
async def test_order_by_controls_materialization(vehicle_repo, async_session, sample_vehicles):
    async_session.expunge_all()

    result = await vehicle_repo.get(
        order_by=lambda statement: statement.order_by(col(Vehicle.plate).desc()),
        is_tracking=False,
    )

    assert [vehicle.plate for vehicle in result] == ["BBB222", "AAA111"]
    assert all(inspect(vehicle).persistent for vehicle in result)


@pytest.mark.asyncio
async def test_page_and_size_are_not_applied(vehicle_repo, sample_vehicles):
    result = await vehicle_repo.get(page=1, size=1)

    assert len(result) == 2


@pytest.mark.asyncio
async def test_unknown_criterion_field_raises(vehicle_repo, sample_vehicles):
    with pytest.raises(ValueError, match="no column 'color'"):
        await vehicle_repo.get(filter=Criterion("color", Operator.EQ, "red"))


@pytest.mark.asyncio
async def test_unsupported_filter_type_raises(vehicle_repo):
    with pytest.raises(TypeError):
        await vehicle_repo.count("id > 1")


@pytest.mark.asyncio
async def test_store_errors_propagate_unwrapped(vehicle_repo, async_session, sample_vehicles):
    with pytest.raises(IntegrityError):
        await vehicle_repo.add(Vehicle(plate="AAA111"))

    await async_session.rollback()


@pytest.mark.asyncio
async def test_find_one_and_find_all(vehicle_repo, sample_vehicles):
    assert (await vehicle_repo.find_one(plate="BBB222")).id == 2
    assert await vehicle_repo.find_one(plate="NOPE") is None
    assert [v.id for v in await vehicle_repo.find_all(vehicle_type=VehicleType.CAR)] == [1]
    assert len(await vehicle_repo.find_all(cylinder_capacity__is_null=True)) == 1


@pytest.mark.asyncio
async def test_dispose_releases_context():
    session = AsyncMock()
    repo = GenericRepository(UnitOfWork(session=session), Vehicle)

    await repo.dispose()

    session.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_async_context_manager_disposes():
    session = AsyncMock()

    async with GenericRepository(UnitOfWork(session=session), Vehicle):
        pass

    session.close.assert_awaited_once()
