from sqlalchemy import func, select

from common.repositories.base import BaseRepository
from common.core.otel_axiom_exporter import trace_span
from packages.users.models.database.user import LocalUserEntity
from packages.users.models.domain.user import LocalUser


class UserRepository(BaseRepository[LocalUserEntity, LocalUser]):
    def __init__(self, db_session=None):
        super().__init__(LocalUserEntity, LocalUser, db_session)

    @trace_span
    async def upsert(self, auth_sub: str) -> None:
        """Insert the user if absent. Existing rows are left untouched."""

        async def _upsert():
            async with self._get_session() as session:
                await session.execute(
                    self._insert(session)
                    .values(auth_sub=auth_sub)
                    .on_conflict_do_nothing(index_elements=["auth_sub"])
                )

        await self._run("upsert users", _upsert())

    @trace_span
    async def count(self) -> int:
        async def _count():
            async with self._get_session() as session:
                result = await session.execute(
                    select(func.count()).select_from(LocalUserEntity)
                )
                return result.scalar_one()

        return await self._run("count users", _count())
