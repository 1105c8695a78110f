# Shared pytest configuration and fixtures for all test types
import json
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from slowapi import Limiter
from slowapi.util import get_remote_address
from unittest.mock import MagicMock, patch

# Create test limiter with no limits and in-memory storage
test_limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri="memory://",
)

# Patch the limiter before importing the app so decorators use test limiter
with patch("common.providers.rate_limiter.limiter.limiter", test_limiter):
    from api.main import app

from common.db.session import get_db
from common.db.base import Base
from common.providers.locking.memory_lock import MemoryLock
from packages.billing.models.database.webhook_event import WebhookEventEntity  # noqa: F401
from packages.billing.models.domain.payment import FinalizedInvoice, PaymentMethod
from packages.billing.models.domain.enums import InvoiceStatus
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.extraction.models.domain.keyword import Keyword
from packages.extraction.providers.interface import EntityExtractionInterface
from packages.identity.providers.memory_metadata import MemoryMetadataProvider
from packages.users.models.database.user import LocalUserEntity  # noqa: F401

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so nested transaction()
    calls create savepoints instead of real nested transactions.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_lazy_sessions(test_session_factory, monkeypatch):
    """
    Patch session factories to use test database.

    This allows real transaction() and get_session() to run with proper
    commit/rollback/ContextVar semantics while using the test database.
    """
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", test_session_factory)


@pytest.fixture
def identity_provider():
    """In-memory identity store with one free-tier and one paying user."""
    return MemoryMetadataProvider(
        users={
            "auth0|free": {"usageCount": 0},
            "auth0|paying": {
                "isRegistered": False,
                "usageCount": 5,
                "stripeCustomerId": "cus_paying",
            },
        }
    )


@pytest.fixture
def lock_provider():
    return MemoryLock()


@pytest.fixture
def payment_provider():
    """
    Payment provider double.

    Signature checks pass and the raw body is decoded as the event.
    """
    provider = MagicMock(spec=PaymentProviderInterface)
    provider.construct_event.side_effect = lambda payload, signature: json.loads(payload)
    provider.get_default_payment_method_id.return_value = "pm_default"
    provider.get_payment_method.return_value = PaymentMethod(
        id="pm_default",
        type="card",
        customer="cus_paying",
        card_brand="visa",
        card_last4="4242",
        exp_month=12,
        exp_year=2030,
    )
    provider.create_customer.return_value = "cus_new"
    provider.create_invoice.return_value = "in_123"
    provider.finalize_invoice.return_value = FinalizedInvoice(
        id="in_123",
        customer_id="cus_paying",
        amount_cents=1,
        currency="usd",
        status=InvoiceStatus.OPEN,
    )
    provider.get_invoice_status.return_value = InvoiceStatus.DRAFT
    provider.create_setup_session.return_value = "cs_test_123"
    provider.create_payment_intent.return_value = "pi_123_secret_456"
    provider.has_active_subscription.return_value = False
    return provider


@pytest.fixture
def extraction_provider():
    provider = MagicMock(spec=EntityExtractionInterface)
    provider.extract_keywords.return_value = [
        Keyword(name="Stripe", type="ORGANIZATION", salience=0.42)
    ]
    return provider


@pytest.fixture
def wired_providers(
    monkeypatch, identity_provider, lock_provider, payment_provider, extraction_provider
):
    """Install the provider doubles as the process-wide provider instances."""
    monkeypatch.setattr(
        "packages.identity.providers.factory._identity_provider", identity_provider
    )
    monkeypatch.setattr(
        "common.providers.locking.factory._lock_provider", lock_provider
    )
    monkeypatch.setattr(
        "packages.billing.providers.payment.factory._payment_provider",
        payment_provider,
    )
    monkeypatch.setattr(
        "packages.extraction.providers.factory._extraction_provider",
        extraction_provider,
    )


@pytest_asyncio.fixture(scope="function")
async def client(test_db: AsyncSession, wired_providers):
    """Create a test client."""

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
