"""
API schemas for billing operations.

Request and response models for billing endpoints.
"""

from typing import Optional
from pydantic import BaseModel, Field

from packages.billing.models.domain.payment import PaymentMethod
from packages.usage.models.schemas.metering import CamelModel, UserProfile


# ============================================================================
# Customer Schemas
# ============================================================================


class CreateCustomerRequest(CamelModel):
    email: Optional[str] = None
    name: Optional[str] = None


class CreateCustomerResponse(CamelModel):
    customer_id: str


class PaymentMethodResponse(BaseModel):
    """Default payment method, or null when the customer has none."""

    default_payment_method: Optional[PaymentMethod] = None


class SubscriptionStatusResponse(CamelModel):
    is_registered: bool


# ============================================================================
# Payment Schemas
# ============================================================================


class SetupPaymentSessionRequest(CamelModel):
    customer_id: Optional[str] = None
    user: UserProfile


class SetupPaymentSessionResponse(CamelModel):
    session_id: str
    success: str = Field(..., description="Frontend URL to return to afterwards")


class PaymentIntentRequest(CamelModel):
    amount: int = Field(..., gt=0, description="Amount in cents")


class PaymentIntentResponse(CamelModel):
    client_secret: str


class WebhookAck(BaseModel):
    received: bool = True
