"""
Stripe implementation of payment provider.

The Stripe SDK is synchronous, so each call runs in a worker thread and is
bounded by ``payment_timeout_seconds``.
"""

import asyncio
from typing import Any, Callable, Optional, TypeVar

import stripe

from common.core.config import settings
from common.core.exceptions import InvalidSignature, PaymentGatewayError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.enums import InvoiceStatus
from packages.billing.models.domain.payment import FinalizedInvoice, PaymentMethod
from packages.billing.providers.payment.interface import PaymentProviderInterface

logger = get_logger(__name__)

T = TypeVar("T")


def _field(obj: Any, name: str) -> Any:
    """Read a field from a Stripe object or a plain dict."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    try:
        return obj[name]
    except (KeyError, TypeError, IndexError):
        return getattr(obj, name, None)


def _invoice_status(invoice: Any, default: Optional[str] = None) -> InvoiceStatus:
    status = _field(invoice, "status") or default
    try:
        return InvoiceStatus(status)
    except ValueError as e:
        raise PaymentGatewayError(
            f"Unrecognized status {status!r} for invoice {_field(invoice, 'id')}"
        ) from e


class StripePaymentProvider(PaymentProviderInterface):
    """Stripe-based payment implementation."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """Initialize Stripe with API credentials."""
        stripe.api_key = api_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self.timeout_seconds = timeout_seconds or settings.payment_timeout_seconds

    async def _call(self, operation: str, fn: Callable[..., T], *args, **kwargs) -> T:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args, **kwargs), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as e:
            logger.error(
                f"Stripe {operation} timed out after {self.timeout_seconds}s",
                extra={"operation": operation},
            )
            raise PaymentGatewayError(f"Stripe {operation} timed out") from e
        except stripe.StripeError as e:
            logger.error(
                f"Stripe {operation} failed: {str(e)}",
                extra={"operation": operation, "error": str(e)},
            )
            raise PaymentGatewayError(f"Stripe {operation} failed") from e

    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]:
        if not signature:
            raise InvalidSignature("Missing stripe-signature header")
        try:
            event = stripe.Webhook.construct_event(
                payload, signature, self.webhook_secret
            )
        except stripe.SignatureVerificationError as e:
            logger.error(f"Stripe webhook signature verification failed: {str(e)}")
            raise InvalidSignature("Webhook signature verification failed") from e
        except ValueError as e:
            logger.error(f"Stripe webhook payload could not be decoded: {str(e)}")
            raise InvalidSignature("Webhook payload could not be decoded") from e
        return event.to_dict() if hasattr(event, "to_dict") else dict(event)

    @trace_span
    async def get_default_payment_method_id(self, customer_id: str) -> Optional[str]:
        customer = await self._call(
            "customer.retrieve", stripe.Customer.retrieve, customer_id
        )
        default = _field(_field(customer, "invoice_settings"), "default_payment_method")
        # Expanded objects carry the id inside
        if default is not None and not isinstance(default, str):
            default = _field(default, "id")
        return default

    @trace_span
    async def get_payment_method(self, payment_method_id: str) -> PaymentMethod:
        obj = await self._call(
            "payment_method.retrieve", stripe.PaymentMethod.retrieve, payment_method_id
        )
        card = _field(obj, "card")
        return PaymentMethod(
            id=_field(obj, "id"),
            type=_field(obj, "type") or "card",
            customer=_field(obj, "customer"),
            card_brand=_field(card, "brand"),
            card_last4=_field(card, "last4"),
            exp_month=_field(card, "exp_month"),
            exp_year=_field(card, "exp_year"),
        )

    @trace_span
    async def set_default_payment_method(
        self, customer_id: str, payment_method_id: str
    ) -> None:
        await self._call(
            "customer.modify",
            stripe.Customer.modify,
            customer_id,
            invoice_settings={"default_payment_method": payment_method_id},
        )
        logger.info(
            "Set default payment method",
            extra={"customer_id": customer_id, "payment_method_id": payment_method_id},
        )

    @trace_span
    async def create_customer(
        self, email: Optional[str] = None, name: Optional[str] = None
    ) -> str:
        """Create a Stripe customer."""
        customer = await self._call(
            "customer.create", stripe.Customer.create, email=email, name=name
        )
        logger.info("Created Stripe customer", extra={"customer_id": customer.id})
        return customer.id

    @trace_span
    async def create_invoice(
        self, customer_id: str, currency: str, idempotency_key: str
    ) -> str:
        invoice = await self._call(
            "invoice.create",
            stripe.Invoice.create,
            customer=customer_id,
            currency=currency,
            auto_advance=True,
            # Only the item attached below, never stray pending items
            pending_invoice_items_behavior="exclude",
            idempotency_key=idempotency_key,
        )
        return invoice.id

    @trace_span
    async def add_invoice_item(
        self,
        customer_id: str,
        invoice_id: str,
        amount_cents: int,
        currency: str,
        description: str,
        idempotency_key: str,
    ) -> None:
        await self._call(
            "invoice_item.create",
            stripe.InvoiceItem.create,
            customer=customer_id,
            invoice=invoice_id,
            amount=amount_cents,
            currency=currency,
            description=description,
            idempotency_key=idempotency_key,
        )

    @trace_span
    async def finalize_invoice(self, invoice_id: str) -> FinalizedInvoice:
        invoice = await self._call(
            "invoice.finalize", stripe.Invoice.finalize_invoice, invoice_id
        )
        return FinalizedInvoice(
            id=_field(invoice, "id"),
            customer_id=_field(invoice, "customer"),
            amount_cents=_field(invoice, "amount_due") or 0,
            currency=_field(invoice, "currency") or settings.stripe_currency,
            status=_invoice_status(invoice, default=InvoiceStatus.OPEN.value),
            hosted_invoice_url=_field(invoice, "hosted_invoice_url"),
        )

    @trace_span
    async def get_invoice_status(self, invoice_id: str) -> InvoiceStatus:
        invoice = await self._call("invoice.retrieve", stripe.Invoice.retrieve, invoice_id)
        return _invoice_status(invoice)

    @trace_span
    async def delete_invoice(self, invoice_id: str) -> None:
        await self._call("invoice.delete", stripe.Invoice.delete, invoice_id)
        logger.info("Deleted draft invoice", extra={"invoice_id": invoice_id})

    @trace_span
    async def void_invoice(self, invoice_id: str) -> None:
        await self._call("invoice.void", stripe.Invoice.void_invoice, invoice_id)
        logger.info("Voided invoice", extra={"invoice_id": invoice_id})

    @trace_span
    async def create_setup_session(
        self, customer_id: str, success_url: str, cancel_url: str
    ) -> str:
        session = await self._call(
            "checkout_session.create",
            stripe.checkout.Session.create,
            customer=customer_id,
            payment_method_types=["card"],
            mode="setup",
            success_url=success_url,
            cancel_url=cancel_url,
        )
        logger.info(
            "Created Stripe setup session",
            extra={"customer_id": customer_id, "session_id": session.id},
        )
        return session.id

    @trace_span
    async def create_payment_intent(self, amount_cents: int, currency: str) -> str:
        intent = await self._call(
            "payment_intent.create",
            stripe.PaymentIntent.create,
            amount=amount_cents,
            currency=currency,
        )
        return intent.client_secret

    @trace_span
    async def has_active_subscription(self, customer_id: str) -> bool:
        subscriptions = await self._call(
            "subscription.list",
            stripe.Subscription.list,
            customer=customer_id,
            status="active",
            limit=1,
        )
        return len(_field(subscriptions, "data") or []) > 0

    @trace_span
    async def health_check(self) -> bool:
        """Check Stripe health."""
        try:
            # Try to retrieve account to verify API key works
            await self._call("account.retrieve", stripe.Account.retrieve)
            return True
        except PaymentGatewayError as e:
            logger.error(f"Payment health check failed: {e}")
            return False
