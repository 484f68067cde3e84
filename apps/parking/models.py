from datetime import datetime
from enum import Enum
from typing import Optional
from sqlalchemy import DateTime
from sqlmodel import Field, Relationship
from infrastructure.repository.entity import AuditedEntity


class VehicleType(str, Enum):
    CAR = "CAR"
    MOTORCYCLE = "MOTORCYCLE"


class Vehicle(AuditedEntity, table=True):
    """Vehicle known to the parking lot."""
    __tablename__ = "vehicles"

    plate: str = Field(unique=True, index=True, max_length=16, description="License plate (upper-case)")
    vehicle_type: VehicleType = Field(default=VehicleType.CAR, description="Vehicle type")
    cylinder_capacity: Optional[int] = Field(default=None, description="Engine displacement in cc")


class ParkingTicket(AuditedEntity, table=True):
    """One stay in the lot; entry time is created_on, open while exited_at is null."""
    __tablename__ = "parking_tickets"

    vehicle_id: int = Field(foreign_key="vehicles.id", index=True)
    exited_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True), description="Exit time")

    vehicle: Optional[Vehicle] = Relationship()
