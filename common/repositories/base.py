import asyncio
from contextlib import asynccontextmanager
from typing import (
    Any,
    AsyncGenerator,
    Awaitable,
    Generic,
    List,
    Optional,
    Type,
    TypeVar,
)

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from common.core.config import settings
from common.core.exceptions import StoreUnavailable
from common.core.otel_axiom_exporter import get_logger, trace_span
from common.db.scoped import get_session

logger = get_logger(__name__)

EntityType = TypeVar("EntityType")
DomainModelType = TypeVar("DomainModelType")
T = TypeVar("T")

# Inserts that support ON CONFLICT DO NOTHING
_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class BaseRepository(Generic[EntityType, DomainModelType]):
    """
    Base repository with lazy, per-operation session management.

    Sessions are acquired per operation and released immediately unless the
    caller opened a transaction() block. Every operation is bounded by
    ``settings.store_timeout_seconds``; timeouts and driver errors surface as
    StoreUnavailable.
    """

    def __init__(
        self,
        entity_class: Type[EntityType],
        domain_class: Type[DomainModelType],
        db_session: Optional[AsyncSession] = None,
    ):
        self.entity_class = entity_class
        self.domain_class = domain_class
        self._explicit_session = db_session

    @asynccontextmanager
    async def _get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a session for an operation.

        If an explicit session was provided to __init__, uses that and leaves
        its lifecycle to the caller.
        """
        if self._explicit_session is not None:
            yield self._explicit_session
        else:
            async with get_session() as session:
                yield session

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Run a store operation under the store timeout, mapping failures."""
        try:
            return await asyncio.wait_for(
                awaitable, timeout=settings.store_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            logger.error(
                f"Store operation timed out: {operation}",
                extra={"operation": operation, "table": self._table_name},
            )
            raise StoreUnavailable(f"{operation} timed out") from e
        except SQLAlchemyError as e:
            logger.error(
                f"Store operation failed: {operation}: {e}",
                extra={"operation": operation, "table": self._table_name},
            )
            raise StoreUnavailable(f"{operation} failed") from e

    @property
    def _table_name(self) -> str:
        return getattr(self.entity_class, "__tablename__", "unknown")

    def _entity_to_domain(self, entity: EntityType) -> DomainModelType:
        """Convert database entity to domain model."""
        return self.domain_class.model_validate(entity)

    def _entities_to_domain(self, entities: List[EntityType]) -> List[DomainModelType]:
        """Convert list of database entities to domain models."""
        return [self._entity_to_domain(entity) for entity in entities]

    @trace_span
    async def get(self, key: Any) -> Optional[DomainModelType]:
        """Get an entity by primary key."""

        async def _get():
            async with self._get_session() as session:
                entity = await session.get(self.entity_class, key)
                return self._entity_to_domain(entity) if entity else None

        return await self._run(f"get {self._table_name}", _get())

    def _insert(self, session: AsyncSession):
        """Dialect-specific INSERT for this entity, supporting on_conflict_do_nothing."""
        dialect = session.get_bind().dialect.name
        if dialect not in _INSERT_BY_DIALECT:
            raise StoreUnavailable(f"Unsupported database dialect: {dialect}")
        return _INSERT_BY_DIALECT[dialect](self.entity_class)
