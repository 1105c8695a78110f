import time

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from common.core.config import settings
from common.core.constants import Environment
from common.core.otel_axiom_exporter import get_logger
from common.db.base import Base

logger = get_logger(__name__)

engine_kwargs = {
    "echo": settings.debug,
    "pool_pre_ping": True,
}

# SQLite (local/dev) uses a static pool; pool sizing only applies to Postgres
if settings.database_url.startswith("postgresql"):
    logger.info(
        f"Using connection pooling - pool_size={settings.db_pool_size}, max_overflow={settings.db_pool_overflow}"
    )
    engine_kwargs["pool_size"] = settings.db_pool_size
    engine_kwargs["max_overflow"] = settings.db_pool_overflow
    engine_kwargs["pool_recycle"] = 3600

engine = create_async_engine(settings.database_url, **engine_kwargs)
AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db():
    start = time.perf_counter()
    async with AsyncSessionLocal() as session:
        acquire_time = time.perf_counter() - start
        logger.debug(f"Session acquire: {acquire_time * 1000:.2f}ms")

        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Rolling back due to error {e}")
            await session.rollback()
            raise


async def init_db():
    """Create tables for local runs. Deployed environments manage schema separately."""
    if settings.environment != Environment.LOCAL:
        return

    # Import models so they are registered on Base.metadata
    import packages.users.models.database.user  # noqa: F401
    import packages.billing.models.database.webhook_event  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Local database schema created")
