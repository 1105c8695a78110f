"""
Domain models for Stripe webhook payloads.

Strongly-typed Pydantic models for the Stripe events this service reconciles.
Event types are kept as plain strings so unknown kinds still parse and can be
acknowledged and ignored.
"""

from typing import Any, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict


class StripeWebhookType(str, Enum):
    """Stripe webhook event types we act on."""

    PAYMENT_METHOD_ATTACHED = "payment_method.attached"
    SETUP_INTENT_SUCCEEDED = "setup_intent.succeeded"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"


class StripePaymentMethodData(BaseModel):
    """Stripe payment_method object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    customer: Optional[str] = None
    type: Optional[str] = None


class StripeSetupIntentData(BaseModel):
    """Stripe setup_intent object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    customer: Optional[str] = None
    payment_method: Optional[str] = None
    status: Optional[str] = None


class StripeInvoiceData(BaseModel):
    """Stripe invoice object."""

    model_config = ConfigDict(extra="ignore")

    id: str
    customer: Optional[str] = None
    status: Optional[str] = None
    amount_due: int = 0
    amount_paid: int = 0
    currency: Optional[str] = None
    hosted_invoice_url: Optional[str] = None


class StripeEventData(BaseModel):
    """Stripe event data wrapper."""

    object: dict[str, Any]  # The actual object (payment method, setup intent, invoice)


class StripeWebhookPayload(BaseModel):
    """Complete Stripe webhook payload."""

    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    data: StripeEventData
    created: int = 0
    livemode: bool = False

    @property
    def known_type(self) -> Optional[StripeWebhookType]:
        try:
            return StripeWebhookType(self.type)
        except ValueError:
            return None

    @property
    def customer_id(self) -> Optional[str]:
        customer = self.data.object.get("customer")
        return customer if isinstance(customer, str) else None
