"""
Interface for payment providers.

Abstracts payment processing away from specific platforms (Stripe, PayPal, etc.)
Every method is bounded by the provider's timeout; processor faults and
timeouts surface as PaymentGatewayError.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from packages.billing.models.domain.enums import InvoiceStatus
from packages.billing.models.domain.payment import FinalizedInvoice, PaymentMethod


class PaymentProviderInterface(ABC):
    """Abstract interface for payment providers."""

    @abstractmethod
    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]:
        """
        Verify a webhook signature and decode the event.

        Raises:
            InvalidSignature: if the signature is missing or does not match
        """
        pass

    @abstractmethod
    async def get_default_payment_method_id(self, customer_id: str) -> Optional[str]:
        """Customer's invoice-settings default payment method id, if any."""
        pass

    @abstractmethod
    async def get_payment_method(self, payment_method_id: str) -> PaymentMethod:
        pass

    @abstractmethod
    async def set_default_payment_method(
        self, customer_id: str, payment_method_id: str
    ) -> None:
        """Make the payment method the customer's default for invoices."""
        pass

    @abstractmethod
    async def create_customer(
        self, email: Optional[str] = None, name: Optional[str] = None
    ) -> str:
        """
        Create a customer in the payment provider.

        Returns:
            customer_id: Payment provider customer ID
        """
        pass

    @abstractmethod
    async def create_invoice(
        self, customer_id: str, currency: str, idempotency_key: str
    ) -> str:
        """
        Create an empty draft invoice for the customer.

        Returns:
            invoice_id
        """
        pass

    @abstractmethod
    async def add_invoice_item(
        self,
        customer_id: str,
        invoice_id: str,
        amount_cents: int,
        currency: str,
        description: str,
        idempotency_key: str,
    ) -> None:
        """Attach one line item to the given draft invoice."""
        pass

    @abstractmethod
    async def finalize_invoice(self, invoice_id: str) -> FinalizedInvoice:
        pass

    @abstractmethod
    async def get_invoice_status(self, invoice_id: str) -> InvoiceStatus:
        pass

    @abstractmethod
    async def delete_invoice(self, invoice_id: str) -> None:
        """Delete a draft invoice."""
        pass

    @abstractmethod
    async def void_invoice(self, invoice_id: str) -> None:
        """Void a finalized invoice so it is never collected."""
        pass

    @abstractmethod
    async def create_setup_session(
        self, customer_id: str, success_url: str, cancel_url: str
    ) -> str:
        """
        Create a checkout session that saves a card without charging it.

        Returns:
            session_id
        """
        pass

    @abstractmethod
    async def create_payment_intent(self, amount_cents: int, currency: str) -> str:
        """
        Create a payment intent.

        Returns:
            client_secret
        """
        pass

    @abstractmethod
    async def has_active_subscription(self, customer_id: str) -> bool:
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the payment backend is available and healthy.

        Returns:
            True if healthy, False otherwise
        """
        pass
