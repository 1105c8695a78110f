from enum import Enum


class Environment(str, Enum):
    """Environment profiles."""

    LOCAL = "local"
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class LockProvider(str, Enum):
    """Distributed lock backends."""

    MEMORY = "memory"
    REDIS = "redis"


class IdentityProviderType(str, Enum):
    """Identity metadata store backends."""

    AUTH0 = "auth0"
    MEMORY = "memory"
