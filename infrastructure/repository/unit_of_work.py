"""
Unit of Work: the persistence context shared by repositories.

Wraps one AsyncSession, exposes per-type queries and a change tracker, and
owns the transaction boundary.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Type
from sqlalchemy import inspect
from sqlalchemy.orm import make_transient_to_detached
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from .entity import AuditedEntity


class EntityState(str, Enum):
    """State of a tracked entity since the last commit."""
    ADDED = "Added"
    MODIFIED = "Modified"
    UNCHANGED = "Unchanged"
    DELETED = "Deleted"


@dataclass(frozen=True)
class EntityEntry:
    entity: Any
    state: EntityState


class UnitOfWork:
    """Shared session, change tracker and commit/rollback for related repositories."""

    def __init__(self, session: Optional[AsyncSession] = None):
        """Initialize UnitOfWork; session must be provided (e.g. UnitOfWork.from_session())."""
        if session is None:
            raise ValueError("Session must be provided. Use UnitOfWork.from_session() or pass session explicitly.")

        self.session = session
        self._repositories = {}
        # id(entity) -> entity, forced to Modified until the next commit/rollback
        self._marked_modified: Dict[int, Any] = {}

    @classmethod
    async def from_session(cls, session: AsyncSession) -> "UnitOfWork":
        """Create UnitOfWork from an existing session."""
        return cls(session=session)

    def get_repository(self, model_class: Type[Any], repo_class=None):
        """Get or create a repository bound to this context (cached per model and class)."""
        from .base import GenericRepository

        repo_class = repo_class or GenericRepository
        cache_key = f"{repo_class.__name__}_{model_class.__name__}"
        if cache_key not in self._repositories:
            if repo_class is GenericRepository:
                self._repositories[cache_key] = GenericRepository(self, model_class)
            else:
                self._repositories[cache_key] = repo_class(self)
        return self._repositories[cache_key]

    # --- Collections ---

    def query(self, model: Type[Any]):
        """Composable SELECT over the model's table."""
        return select(model)

    async def exec(self, statement):
        """Execute a statement on the tracked session."""
        return await self.session.exec(statement)

    async def find(self, model: Type[Any], id: Any):
        """Primary key lookup (identity map first); None if missing."""
        return await self.session.get(model, id)

    async def fetch_detached(self, statement) -> List[Any]:
        """
        Run a SELECT without tracking its results.

        Instances first loaded by this query (eager-loaded relations included)
        are expunged before returning. Rows that were already tracked come back
        as the tracked instance, since the identity map holds one per row.
        """
        sync_session = self.session.sync_session
        identity_map = sync_session.identity_map
        with sync_session.no_autoflush:
            tracked = set(identity_map.keys())
            result = await self.session.exec(statement)
            entities = list(result.all())
            for key, obj in list(identity_map.items()):
                if key not in tracked and obj in sync_session:
                    sync_session.expunge(obj)
        return entities

    # --- Change tracking ---

    @staticmethod
    def _has_key(entity) -> bool:
        """True when every primary key column of entity is set."""
        mapper = inspect(entity).mapper
        return None not in mapper.primary_key_from_instance(entity)

    async def _merge_keyed(self, entity):
        """
        Copy a new instance carrying an existing row's key onto the tracked row.

        created_on left unset on the incoming instance keeps the stored value.
        A key with no matching row comes back pending (inserted on flush).
        """
        tracked = await self.session.merge(entity)
        if isinstance(entity, AuditedEntity) and entity.created_on is None:
            previous = inspect(tracked).attrs.created_on.history.deleted
            if previous:
                set_committed_value(tracked, "created_on", previous[0])
        return tracked

    async def _attach(self, entity):
        """Bring a detached (or new but keyed) instance under tracking; returns the tracked instance."""
        state = inspect(entity)
        if state.transient and self._has_key(entity):
            make_transient_to_detached(entity)
        if not state.detached:
            return entity
        if state.key in self.session.sync_session.identity_map:
            return await self.session.merge(entity)
        self.session.add(entity)
        return entity

    def add(self, entity) -> None:
        """Register a new entity (state Added)."""
        self.session.add(entity)

    async def remove(self, entity) -> None:
        """Mark entity for deletion (state Deleted)."""
        state = inspect(entity)
        if state.pending:
            self.session.expunge(entity)
            return
        tracked = await self._attach(entity)
        await self.session.delete(tracked)

    async def mark_modified(self, entity):
        """
        Force entity to Modified and return the tracked instance.

        A new instance with its key set updates that row; one without a key
        is added instead.
        """
        state = inspect(entity)
        if state.transient:
            if not self._has_key(entity):
                self.session.add(entity)
                return entity
            tracked = await self._merge_keyed(entity)
        else:
            tracked = await self._attach(entity)
        if inspect(tracked).persistent:
            self._marked_modified[id(tracked)] = tracked
        return tracked

    def entries(self) -> List[EntityEntry]:
        """Snapshot of every tracked entity and its state."""
        sync_session = self.session.sync_session
        entries = [EntityEntry(obj, EntityState.ADDED) for obj in sync_session.new]
        deleted = list(sync_session.deleted)
        entries.extend(EntityEntry(obj, EntityState.DELETED) for obj in deleted)
        deleted_ids = {id(obj) for obj in deleted}

        for obj in list(sync_session.identity_map.values()):
            if id(obj) in deleted_ids:
                continue
            if id(obj) in self._marked_modified or sync_session.is_modified(obj):
                entries.append(EntityEntry(obj, EntityState.MODIFIED))
            else:
                entries.append(EntityEntry(obj, EntityState.UNCHANGED))
        return entries

    # --- Transaction ---

    async def commit(self) -> None:
        """Flush all tracked changes and commit; modified marks are dropped even if it fails."""
        try:
            await self.session.commit()
        finally:
            self._marked_modified.clear()

    async def rollback(self) -> None:
        """Rollback all changes."""
        await self.session.rollback()
        self._marked_modified.clear()

    async def flush(self) -> None:
        """Flush session (e.g. to get auto-increment IDs)."""
        await self.session.flush()

    async def dispose(self) -> None:
        """Release the session."""
        self._marked_modified.clear()
        self._repositories.clear()
        await self.session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            await self.rollback()
        else:
            await self.commit()
