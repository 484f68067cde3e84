"""
Model registration for migrations: import every table model here so Alembic
(alembic/env.py) sees it in SQLModel.metadata.
"""
from apps.parking.models import ParkingTicket, Vehicle

__all__ = ["ParkingTicket", "Vehicle"]
