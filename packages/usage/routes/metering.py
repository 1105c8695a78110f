"""
Metered action endpoints.

No authentication: the caller's identity subject is taken from the request
body, as the frontend sends it.
"""

from fastapi import APIRouter, Request

from common.core.config import settings
from common.providers.rate_limiter.limiter import limiter
from packages.usage.models.schemas.metering import (
    MeterActionRequest,
    MeterActionResponse,
    UsageMetadataRequest,
)
from packages.usage.services.metering_service import MeteringService

router = APIRouter()


@router.post(
    "/meter-action",
    response_model=MeterActionResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
@limiter.limit(settings.meter_action_rate_limit)
async def meter_action(request: Request, body: MeterActionRequest):
    """
    Gate the action on payment or free-tier quota, then extract keywords.
    """
    user = body.user
    result = await MeteringService().perform_metered_action(
        text=body.text,
        user_id=user.sub,
        stripe_customer_id=user.stripe_customer_id
        or user.app_metadata.get("stripeCustomerId"),
        is_registered=body.is_registered,
    )
    return MeterActionResponse(
        keywords=result.keywords,
        usage_count=result.usage_count,
        invoice_id=result.invoice_id,
    )


@router.post("/usage-metadata")
async def usage_metadata(body: UsageMetadataRequest):
    """Identity app_metadata plus usage count, spending one action unless trackUsage is false."""
    user_id = body.token.sub if body.token else None
    return await MeteringService().usage_metadata(user_id, body.track_usage)
