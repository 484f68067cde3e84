"""Parking module repository implementations."""

from typing import List, Optional
from sqlmodel import col
from infrastructure.repository.base import GenericRepository
from .models import ParkingTicket, Vehicle


class VehicleRepository(GenericRepository[Vehicle]):
    """Vehicle repository."""

    def __init__(self, context):
        super().__init__(context, Vehicle)

    async def get_by_plate(self, plate: str) -> Optional[Vehicle]:
        """Find vehicle by plate."""
        return await self.find_one(plate=plate)


class TicketRepository(GenericRepository[ParkingTicket]):
    """Parking ticket repository."""

    def __init__(self, context):
        super().__init__(context, ParkingTicket)

    async def get_open_for_vehicle(self, vehicle_id: int) -> Optional[ParkingTicket]:
        """Ticket of a vehicle still inside the lot."""
        return await self.find_one(vehicle_id=vehicle_id, exited_at__is_null=True)

    async def list_open(self) -> List[ParkingTicket]:
        """Open tickets with their vehicle loaded, oldest entry first."""
        return await self.get(
            ParkingTicket.vehicle,
            filter=col(ParkingTicket.exited_at).is_(None),
            order_by=lambda statement: statement.order_by(
                col(ParkingTicket.created_on), col(ParkingTicket.id)
            ),
        )

    async def count_open(self) -> int:
        return await self.count(col(ParkingTicket.exited_at).is_(None))

    async def count_for_vehicle(self, vehicle_id: int) -> int:
        return await self.count(col(ParkingTicket.vehicle_id) == vehicle_id)
