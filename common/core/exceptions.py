from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Category of failure, used by callers to branch without string matching."""

    DOMAIN = "domain"  # user-correctable rejection, not a fault
    INFRASTRUCTURE = "infrastructure"  # transient, retryable by caller
    SECURITY = "security"  # always rejected, never retried
    PARTIAL_STATE = "partial_state"  # needs reconciliation


class AppException(Exception):
    """Base application exception."""

    kind: ErrorKind = ErrorKind.INFRASTRUCTURE
    public_message: str = "Request failed. Please try again later."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.public_message)

    @property
    def is_retryable(self) -> bool:
        return self.kind == ErrorKind.INFRASTRUCTURE


class ValidationError(AppException):
    """Validation error exception."""

    kind = ErrorKind.DOMAIN

    def __init__(self, message: str):
        super().__init__(message)
        self.public_message = message


class QuotaExceeded(AppException):
    """Free-tier usage limit reached."""

    kind = ErrorKind.DOMAIN
    public_message = "Free usage limit reached. Set up a payment method to continue."

    def __init__(self, user_id: str, usage_count: int, limit: int):
        super().__init__(
            f"Usage limit reached for {user_id} ({usage_count}/{limit})"
        )
        self.user_id = user_id
        self.usage_count = usage_count
        self.limit = limit


class NoPaymentMethod(AppException):
    """Customer has not completed payment method setup."""

    kind = ErrorKind.DOMAIN
    public_message = "No valid payment method found. Please set up payment."

    def __init__(self, customer_id: Optional[str]):
        super().__init__(f"No default payment method for customer {customer_id}")
        self.customer_id = customer_id


class MetadataUnavailable(AppException):
    """Identity metadata store could not be read or written."""

    pass


class PaymentGatewayError(AppException):
    """Payment processor communication failure."""

    pass


class StoreUnavailable(AppException):
    """Application store could not be read or written."""

    pass


class ExtractionUnavailable(AppException):
    """Entity extraction service failure."""

    pass


class InvalidSignature(AppException):
    """Webhook payload failed signature verification."""

    kind = ErrorKind.SECURITY
    public_message = "Invalid signature"


class InvoiceCreationFailed(AppException):
    """
    Invoice protocol failed part-way.

    Carries the invoice id (if one was created), the step reached and whether
    the draft was cleaned up, so the charge can be reconciled by hand.
    """

    kind = ErrorKind.PARTIAL_STATE
    public_message = "Failed to create invoice or charge user."

    def __init__(
        self,
        customer_id: str,
        step: str,
        invoice_id: Optional[str] = None,
        compensated: bool = False,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            f"Invoice creation failed for customer {customer_id} at step '{step}' "
            f"(invoice_id={invoice_id}, compensated={compensated}): {cause}"
        )
        self.customer_id = customer_id
        self.step = step
        self.invoice_id = invoice_id
        self.compensated = compensated
        self.cause = cause
