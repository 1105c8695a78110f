import pytest
from sqlalchemy import select
from unittest.mock import patch

from common.core.exceptions import StoreUnavailable
from packages.users.models.database.user import LocalUserEntity
from packages.users.repositories.user_repository import UserRepository


class TestUserRepository:
    async def test_upsert_inserts_once(self, test_db):
        repository = UserRepository(test_db)

        await repository.upsert("auth0|1")
        await repository.upsert("auth0|1")

        assert await repository.count() == 1

    async def test_upsert_keeps_existing_row(self, test_db):
        repository = UserRepository(test_db)
        await repository.upsert("auth0|1")
        original = (
            await test_db.execute(
                select(LocalUserEntity).where(LocalUserEntity.auth_sub == "auth0|1")
            )
        ).scalar_one()

        await repository.upsert("auth0|1")

        user = await repository.get("auth0|1")
        assert user.auth_sub == "auth0|1"
        assert user.created_at == original.created_at

    async def test_count_distinct_users(self):
        repository = UserRepository()

        await repository.upsert("auth0|1")
        await repository.upsert("auth0|2")
        await repository.upsert("auth0|3")

        assert await repository.count() == 3

    async def test_count_empty(self):
        assert await UserRepository().count() == 0

    async def test_store_timeout_raises_store_unavailable(self, test_db):
        repository = UserRepository(test_db)

        with patch("common.repositories.base.settings") as mock_settings:
            mock_settings.store_timeout_seconds = 0
            with pytest.raises(StoreUnavailable):
                await repository.count()
