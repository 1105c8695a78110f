from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.core.constants import Environment, IdentityProviderType, LockProvider


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment Profile
    environment: Environment = Environment.LOCAL

    # API Settings
    app_name: str = "keyword-metering-api"
    api_version: str = "v1"
    debug: bool = False

    # Application store (local users table)
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "metering"
    db_url_override: Optional[str] = None  # e.g. sqlite+aiosqlite:///./local.db
    db_pool_size: int = 10
    db_pool_overflow: int = 5

    @property
    def database_url(self) -> str:
        """Construct async database URL from components."""
        if self.db_url_override:
            return self.db_url_override
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @property
    def redis_connection_url(self) -> str:
        """Construct Redis URL from components."""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        else:
            return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Locking
    lock_provider: LockProvider = LockProvider.MEMORY
    quota_lock_ttl_seconds: int = 15
    quota_lock_timeout_seconds: float = 5.0

    # Rate limiting (memory:// keeps a single pod self-contained)
    rate_limit_storage_uri: str = "memory://"
    meter_action_rate_limit: str = "100/hour"

    # OpenTelemetry
    otel_service_name: str = "keyword-metering-service"
    otel_service_version: str = "0.1.0"

    # Axiom (exporters are only attached when a token is configured)
    axiom_token: Optional[str] = None
    axiom_dataset: Optional[str] = None

    # Auth0 Management API (identity metadata store)
    identity_provider: IdentityProviderType = IdentityProviderType.AUTH0
    auth0_domain: str = ""
    auth0_client_id: str = ""
    auth0_client_secret: str = ""
    auth0_token_refresh_margin_seconds: int = 60
    identity_timeout_seconds: float = 10.0

    # Free tier
    free_tier_usage_limit: int = 5

    # Billing - Stripe (payments)
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_currency: str = "usd"
    payment_timeout_seconds: float = 20.0
    rate_per_hundred_chars: float = 0.01  # USD per 100 characters
    charge_description: str = "Text extraction service"

    # Webhook handling
    webhook_fail_on_transient_error: bool = False
    webhook_event_retention_days: int = 30
    webhook_processing_lease_seconds: int = 600
    webhook_maintenance_interval_seconds: int = 300

    # Application store
    store_timeout_seconds: float = 10.0

    # Google Natural Language (entity extraction)
    google_extractor_api_key: str = ""
    extraction_timeout_seconds: float = 15.0
    extraction_min_salience: float = 0.1

    # Frontend
    frontend_url: str = "http://localhost:4200"

    @property
    def cors_allowed_origins(self) -> List[str]:
        """Auto-select CORS origins based on environment."""
        if self.environment == Environment.LOCAL:
            return [
                "http://localhost:4200",
            ]
        return [
            "https://keyword-extractor-plus.netlify.app",
            "https://seoextraction.com",
        ]


settings = Settings()
