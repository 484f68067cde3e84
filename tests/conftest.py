"""Test config and shared fixtures."""
import pytest
from typing import AsyncGenerator
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from main import app
from apps.parking.models import ParkingTicket, Vehicle, VehicleType
from infrastructure.repository import GenericRepository, UnitOfWork


# In-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def async_session() -> AsyncGenerator[AsyncSession, None]:
    """Create async test database session on a fresh schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    async_session_maker = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def uow(async_session: AsyncSession) -> UnitOfWork:
    return UnitOfWork(session=async_session)


@pytest.fixture
def vehicle_repo(uow: UnitOfWork) -> GenericRepository[Vehicle]:
    return GenericRepository(uow, Vehicle)


@pytest.fixture
def ticket_repo(uow: UnitOfWork) -> GenericRepository[ParkingTicket]:
    return GenericRepository(uow, ParkingTicket)


@pytest.fixture
async def sample_vehicles(vehicle_repo: GenericRepository[Vehicle]) -> list:
    """A(id=1) car and B(id=2) motorcycle."""
    first = await vehicle_repo.add(Vehicle(id=1, plate="AAA111", vehicle_type=VehicleType.CAR))
    second = await vehicle_repo.add(
        Vehicle(id=2, plate="BBB222", vehicle_type=VehicleType.MOTORCYCLE, cylinder_capacity=650)
    )
    return [first, second]


@pytest.fixture
async def client(async_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client bound to the test session."""
    from apps.parking.api.router import get_db

    async def _get_db():
        yield async_session

    app.dependency_overrides[get_db] = _get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
