"""
Billing enums - strongly typed enumerations for invoice and webhook states.
"""

from enum import Enum


class InvoiceStatus(str, Enum):
    """Stripe invoice status."""

    DRAFT = "draft"
    OPEN = "open"
    PAID = "paid"
    UNCOLLECTIBLE = "uncollectible"
    VOID = "void"


class InvoiceSagaStep(str, Enum):
    """
    Progress of a metered charge through the invoice protocol.

    Flow: pending -> invoice_created -> item_attached -> finalized
    On failure after creation: compensated (draft removed) or failed.
    """

    PENDING = "pending"
    INVOICE_CREATED = "invoice_created"
    ITEM_ATTACHED = "item_attached"
    FINALIZED = "finalized"
    COMPENSATED = "compensated"
    FAILED = "failed"


class WebhookEventStatus(str, Enum):
    """Processing state of a received webhook event."""

    PROCESSING = "processing"
    COMPLETED = "completed"  # All side effects applied
    FAILED = "failed"  # Retryable from the stored payload
    IGNORED = "ignored"  # Nothing to do (unknown kind or no matching user)

    def is_settled(self) -> bool:
        """A settled event is skipped when the processor redelivers it."""
        return self in (WebhookEventStatus.COMPLETED, WebhookEventStatus.IGNORED)


class ReconciliationStep(str, Enum):
    """Side effects applied while reconciling a payment-method event."""

    MARK_REGISTERED = "mark_registered"
    UPSERT_LOCAL_USER = "upsert_local_user"
    SET_DEFAULT_PAYMENT_METHOD = "set_default_payment_method"
