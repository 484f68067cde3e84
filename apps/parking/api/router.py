from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator
from sqlmodel.ext.asyncio.session import AsyncSession
from infrastructure.database.manager import DatabaseManager
from infrastructure.repository.unit_of_work import UnitOfWork
from infrastructure.response import ResponseModel
from ..models import ParkingTicket, VehicleType
from ..service import ParkingService

router = APIRouter()


class VehicleCreate(BaseModel):
    plate: str = Field(min_length=1, max_length=16)
    vehicle_type: VehicleType = VehicleType.CAR
    cylinder_capacity: Optional[int] = Field(default=None, ge=0)


class VehicleUpdate(BaseModel):
    vehicle_type: Optional[VehicleType] = None
    cylinder_capacity: Optional[int] = Field(default=None, ge=0)

    @field_validator("vehicle_type")
    @classmethod
    def vehicle_type_not_null(cls, v):
        if v is None:
            raise ValueError("vehicle_type cannot be null")
        return v


class CheckIn(BaseModel):
    plate: str = Field(min_length=1, max_length=16)


async def get_db():
    """Get database session."""
    manager = DatabaseManager.get_instance()
    async for session in manager.sql.get_session():
        yield session


def get_uow(db: AsyncSession = Depends(get_db)) -> UnitOfWork:
    """Dependency: create UnitOfWork."""
    return UnitOfWork(session=db)


def get_parking_service(uow: UnitOfWork = Depends(get_uow)) -> ParkingService:
    return ParkingService(uow)


def _ticket_payload(ticket: ParkingTicket, with_vehicle: bool = False) -> dict:
    data = ticket.model_dump()
    if with_vehicle and ticket.vehicle is not None:
        data["vehicle"] = ticket.vehicle.model_dump()
    return data


# --- Vehicles ---

@router.post("/vehicles")
async def register_vehicle(body: VehicleCreate, service: ParkingService = Depends(get_parking_service)):
    vehicle = await service.register_vehicle(body.plate, body.vehicle_type, body.cylinder_capacity)
    return ResponseModel.success(vehicle.model_dump())


@router.get("/vehicles")
async def list_vehicles(
    vehicle_type: Optional[VehicleType] = None,
    plate: Optional[str] = None,
    service: ParkingService = Depends(get_parking_service),
):
    """List vehicles, optionally by type and plate prefix."""
    items, total = await service.list_vehicles(vehicle_type=vehicle_type, plate_prefix=plate)
    return ResponseModel.listing([vehicle.model_dump() for vehicle in items], total)


@router.get("/vehicles/{vehicle_id}")
async def get_vehicle(vehicle_id: int, service: ParkingService = Depends(get_parking_service)):
    vehicle = await service.get_vehicle(vehicle_id)
    return ResponseModel.success(vehicle.model_dump())


@router.patch("/vehicles/{vehicle_id}")
async def update_vehicle(
    vehicle_id: int,
    body: VehicleUpdate,
    service: ParkingService = Depends(get_parking_service),
):
    vehicle = await service.update_vehicle(vehicle_id, body.model_dump(exclude_unset=True))
    return ResponseModel.success(vehicle.model_dump())


@router.delete("/vehicles/{vehicle_id}")
async def remove_vehicle(vehicle_id: int, service: ParkingService = Depends(get_parking_service)):
    await service.remove_vehicle(vehicle_id)
    return ResponseModel.success(message="Vehicle removed")


# --- Tickets ---

@router.post("/tickets")
async def check_in(body: CheckIn, service: ParkingService = Depends(get_parking_service)):
    ticket = await service.check_in(body.plate)
    return ResponseModel.success(_ticket_payload(ticket, with_vehicle=True))


@router.post("/tickets/{ticket_id}/checkout")
async def check_out(ticket_id: int, service: ParkingService = Depends(get_parking_service)):
    ticket = await service.check_out(ticket_id)
    return ResponseModel.success(_ticket_payload(ticket))


@router.get("/tickets/open")
async def list_open_tickets(service: ParkingService = Depends(get_parking_service)):
    tickets = await service.list_open_tickets()
    return ResponseModel.listing([_ticket_payload(ticket, with_vehicle=True) for ticket in tickets], len(tickets))


@router.get("/tickets/open/count")
async def count_open_tickets(service: ParkingService = Depends(get_parking_service)):
    return ResponseModel.success({"count": await service.count_open_tickets()})
