"""
Domain models for metered charges and their invoices.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field

from packages.billing.models.domain.enums import InvoiceSagaStep, InvoiceStatus


class PaymentMethod(BaseModel):
    """Customer's default payment method, reduced to what callers display."""

    id: str
    type: str
    customer: Optional[str] = None
    card_brand: Optional[str] = None
    card_last4: Optional[str] = None
    exp_month: Optional[int] = None
    exp_year: Optional[int] = None


class ChargeRequest(BaseModel):
    """Priced metered action."""

    char_count: int = Field(ge=0)
    rate_per_hundred_chars: float = Field(ge=0)
    amount_cents: int = Field(ge=0)


class FinalizedInvoice(BaseModel):
    id: str
    customer_id: str
    amount_cents: int
    currency: str = "usd"
    status: InvoiceStatus
    hosted_invoice_url: Optional[str] = None


class InvoiceSaga(BaseModel):
    """
    Recorded progress of one metered charge through the invoice protocol.

    The idempotency key is fixed when the saga is created, so a retried
    create call cannot produce a second invoice.
    """

    customer_id: str
    amount_cents: int = Field(ge=0)
    description: str
    currency: str = "usd"
    idempotency_key: str = Field(default_factory=lambda: f"invoice-{uuid.uuid4()}")
    invoice_id: Optional[str] = None
    step: InvoiceSagaStep = InvoiceSagaStep.PENDING
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def advance(self, step: InvoiceSagaStep) -> None:
        self.step = step
