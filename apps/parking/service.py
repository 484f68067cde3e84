from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from infrastructure.config import settings
from infrastructure.exceptions.handler import BusinessException
from infrastructure.logging.logger import get_logger
from infrastructure.repository.query import Criterion, Operator
from infrastructure.repository.unit_of_work import UnitOfWork
from .models import ParkingTicket, Vehicle, VehicleType
from .repository import TicketRepository, VehicleRepository

logger = get_logger("parking_service")


def normalize_plate(plate: str) -> str:
    return plate.strip().upper()


class ParkingService:
    """Vehicle registry and check-in/check-out on top of the generic repositories."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @property
    def vehicles(self) -> VehicleRepository:
        return self.uow.get_repository(Vehicle, VehicleRepository)

    @property
    def tickets(self) -> TicketRepository:
        return self.uow.get_repository(ParkingTicket, TicketRepository)

    # --- Vehicles ---

    async def register_vehicle(
        self,
        plate: str,
        vehicle_type: VehicleType = VehicleType.CAR,
        cylinder_capacity: Optional[int] = None,
    ) -> Vehicle:
        plate = normalize_plate(plate)
        if await self.vehicles.get_by_plate(plate):
            raise BusinessException(f"Vehicle {plate} already registered", status_code=409, code=409)

        vehicle = await self.vehicles.add(
            Vehicle(plate=plate, vehicle_type=vehicle_type, cylinder_capacity=cylinder_capacity)
        )
        logger.info(f"Vehicle {plate} registered (id={vehicle.id})")
        return vehicle

    async def list_vehicles(
        self,
        vehicle_type: Optional[VehicleType] = None,
        plate_prefix: Optional[str] = None,
    ) -> Tuple[List[Vehicle], int]:
        """Vehicles matching the optional type/plate prefix, with the matching total."""
        criteria = []
        if vehicle_type is not None:
            criteria.append(Criterion("vehicle_type", Operator.EQ, vehicle_type))
        if plate_prefix:
            criteria.append(Criterion("plate", Operator.LIKE, f"{normalize_plate(plate_prefix)}%"))

        items = await self.vehicles.get(filter=criteria)
        total = await self.vehicles.count(criteria)
        return items, total

    async def get_vehicle(self, vehicle_id: int) -> Vehicle:
        vehicle = await self.vehicles.get_by_id(vehicle_id)
        if vehicle is None:
            raise BusinessException("Vehicle not found", status_code=404, code=404)
        return vehicle

    async def update_vehicle(self, vehicle_id: int, changes: Dict[str, Any]) -> Vehicle:
        vehicle = await self.get_vehicle(vehicle_id)
        for field, value in changes.items():
            setattr(vehicle, field, value)
        vehicle = await self.vehicles.update(vehicle)
        logger.info(f"Vehicle {vehicle.plate} updated: {sorted(changes)}")
        return vehicle

    async def remove_vehicle(self, vehicle_id: int) -> None:
        vehicle = await self.get_vehicle(vehicle_id)
        if await self.tickets.count_for_vehicle(vehicle_id) > 0:
            raise BusinessException(
                f"Vehicle {vehicle.plate} has parking history and cannot be removed",
                status_code=409,
                code=409,
            )
        await self.vehicles.delete(vehicle)
        logger.info(f"Vehicle {vehicle.plate} removed")

    # --- Tickets ---

    async def check_in(self, plate: str) -> ParkingTicket:
        """Open a ticket for a registered vehicle if it is not parked and the lot has room."""
        plate = normalize_plate(plate)
        vehicle = await self.vehicles.get_by_plate(plate)
        if vehicle is None:
            raise BusinessException(f"Vehicle {plate} is not registered", status_code=404, code=404)

        if await self.tickets.get_open_for_vehicle(vehicle.id):
            raise BusinessException(f"Vehicle {plate} is already parked", status_code=409, code=409)

        occupied = await self.tickets.count_open()
        if occupied >= settings.PARKING_CAPACITY:
            raise BusinessException("Parking lot is full", status_code=409, code=4091)

        ticket = await self.tickets.add(ParkingTicket(vehicle_id=vehicle.id, vehicle=vehicle))
        logger.info(f"Vehicle {plate} checked in (ticket={ticket.id}, occupied={occupied + 1})")
        return ticket

    async def check_out(self, ticket_id: int) -> ParkingTicket:
        ticket = await self.tickets.get_by_id(ticket_id)
        if ticket is None:
            raise BusinessException("Ticket not found", status_code=404, code=404)
        if ticket.exited_at is not None:
            raise BusinessException("Ticket already closed", status_code=409, code=409)

        ticket.exited_at = datetime.now(timezone.utc)
        ticket = await self.tickets.update(ticket)
        logger.info(f"Ticket {ticket.id} closed")
        return ticket

    async def list_open_tickets(self) -> List[ParkingTicket]:
        return await self.tickets.list_open()

    async def count_open_tickets(self) -> int:
        return await self.tickets.count_open()
