from fastapi import APIRouter

from api.v1.routes import (
    health,
)
from packages.billing.routes import billing, webhooks
from packages.usage.routes import metering
from packages.users.routes import users

api_router = APIRouter()

# Health check
api_router.include_router(health.router, prefix="/health", tags=["health"])

# Webhooks (signature verified internally)
api_router.include_router(webhooks.router, tags=["webhooks"])

# Metered actions and usage
api_router.include_router(metering.router, tags=["usage"])

# Billing
api_router.include_router(billing.router, tags=["billing"])

# Users
api_router.include_router(users.router, tags=["users"])
