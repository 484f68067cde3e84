"""
Repository abstract base class and generic implementation.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Generic, List, Optional, Type, TypeVar
from sqlalchemy.orm import selectinload
from sqlmodel import func, select
from infrastructure.logging.logger import get_logger
from .entity import AuditedEntity, DomainEntity
from .query import Filter, build_clause, parse_filters
from .unit_of_work import EntityState

if TYPE_CHECKING:
    from .unit_of_work import UnitOfWork

T = TypeVar("T", bound=DomainEntity)

# Receives the filtered statement and returns it ordered, e.g. lambda q: q.order_by(Vehicle.plate)
OrderBy = Callable[[Any], Any]

DEFAULT_PAGE_SIZE = 65535

logger = get_logger("repository")


class IRepository(ABC, Generic[T]):
    """Repository interface; defines standard data access API."""

    @abstractmethod
    async def add(self, entity: T) -> T:
        pass

    @abstractmethod
    async def delete(self, entity: Optional[T]) -> None:
        pass

    @abstractmethod
    async def get(
        self,
        *include: Any,
        filter: Optional[Filter] = None,
        order_by: Optional[OrderBy] = None,
        is_tracking: bool = False,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
    ) -> List[T]:
        pass

    @abstractmethod
    async def get_by_id(self, id: Any) -> Optional[T]:
        pass

    @abstractmethod
    async def update(self, entity: Optional[T]) -> Optional[T]:
        pass

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def count(self, filter: Optional[Filter] = None) -> int:
        pass

    @abstractmethod
    async def dispose(self) -> None:
        pass


class GenericRepository(IRepository[T]):
    """
    CRUD and query facade over one entity type.

    Every mutating call commits immediately; commit() stamps audit timestamps
    on AuditedEntity instances. Errors raised by SQLAlchemy or the driver are
    not caught here.
    """

    def __init__(self, context: "UnitOfWork", model: Type[T]):
        """Initialize repository with its persistence context and model."""
        self.context = context
        self.model = model

    async def add(self, entity: T) -> T:
        """Insert entity and commit; returns it with its generated id."""
        if entity is None:
            raise ValueError("Entity can not be null")
        self.context.add(entity)
        await self.commit()
        return entity

    async def delete(self, entity: Optional[T]) -> None:
        """Delete entity and commit; no-op for None."""
        if entity is None:
            return
        await self.context.remove(entity)
        await self.commit()

    async def get(
        self,
        *include: Any,
        filter: Optional[Filter] = None,
        order_by: Optional[OrderBy] = None,
        is_tracking: bool = False,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
    ) -> List[T]:
        """
        Query entities.

        Args:
            *include: Relationship attributes to eager-load (e.g. ParkingTicket.vehicle)
            filter: Column expression, Criterion, or a list of them (AND-ed)
            order_by: Applied to the statement; its result is always read tracked
            is_tracking: Keep results attached to the session
            page: Accepted for API compatibility, not applied
            size: Accepted for API compatibility, not applied

        Returns:
            List of entities
        """
        statement = self.context.query(self.model)

        clause = build_clause(self.model, filter)
        if clause is not None:
            statement = statement.where(clause)

        for relation in include:
            statement = statement.options(selectinload(relation))

        if order_by is not None:
            result = await self.context.exec(order_by(statement))
            return list(result.all())

        if is_tracking:
            result = await self.context.exec(statement)
            return list(result.all())
        return await self.context.fetch_detached(statement)

    async def get_by_id(self, id: Any) -> Optional[T]:
        """Get entity by primary key."""
        return await self.context.find(self.model, id)

    async def update(self, entity: Optional[T]) -> Optional[T]:
        """Mark entity modified and commit; no-op for None."""
        if entity is None:
            return None
        tracked = await self.context.mark_modified(entity)
        await self.commit()
        return tracked

    async def commit(self) -> None:
        """Stamp created_on/updated_on on audited entities, then commit the context."""
        now = datetime.now(timezone.utc)
        added = modified = deleted = 0

        for entry in self.context.entries():
            if entry.state is EntityState.ADDED:
                added += 1
                if isinstance(entry.entity, AuditedEntity):
                    entry.entity.created_on = now
            elif entry.state is EntityState.MODIFIED:
                modified += 1
                if isinstance(entry.entity, AuditedEntity):
                    entry.entity.updated_on = now
            elif entry.state is EntityState.DELETED:
                deleted += 1

        logger.debug(
            f"Commit [{self.model.__name__}] added={added} modified={modified} deleted={deleted}"
        )
        await self.context.commit()

    async def count(self, filter: Optional[Filter] = None) -> int:
        """Count entities matching filter (all entities if None)."""
        statement = select(func.count(self.model.id))
        clause = build_clause(self.model, filter)
        if clause is not None:
            statement = statement.where(clause)

        result = await self.context.exec(statement)
        return result.one()

    async def dispose(self) -> None:
        """Release the persistence context."""
        await self.context.dispose()

    async def find_one(self, **filters) -> Optional[T]:
        """Find one entity by filters (e.g. plate='ABC123', exited_at__is_null=True)."""
        entities = await self.get(filter=parse_filters(**filters), is_tracking=True)
        return entities[0] if entities else None

    async def find_all(self, **filters) -> List[T]:
        """Find entities by filters."""
        return await self.get(filter=parse_filters(**filters), is_tracking=True)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.dispose()
