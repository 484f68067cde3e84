"""
Repository pattern: generic data access over SQLModel, decoupling services from the session.
"""

from .base import GenericRepository, IRepository
from .entity import AuditedEntity, DomainEntity
from .query import Criterion, Operator, build_clause, parse_filters
from .unit_of_work import EntityEntry, EntityState, UnitOfWork

__all__ = [
    "AuditedEntity",
    "Criterion",
    "DomainEntity",
    "EntityEntry",
    "EntityState",
    "GenericRepository",
    "IRepository",
    "Operator",
    "UnitOfWork",
    "build_clause",
    "parse_filters",
]
