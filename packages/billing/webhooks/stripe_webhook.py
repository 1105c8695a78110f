"""
Stripe webhook handler for payment events.

Reconciles "paying user with a saved card" across the identity record, the
local users table and the Stripe customer:
- payment_method.attached: mark registered, record the user, make the card default
- setup_intent.succeeded: mark registered
- invoice.payment_succeeded / invoice.payment_failed: logged

Each event is claimed in the webhook ledger before any side effect, so
redeliveries of a settled event are no-ops and a failed event resumes after
the steps it already completed. Every write is a set-to-true or an upsert,
so replaying a step is harmless.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional, Set

import pydantic
from fastapi import Request

from common.core.config import settings
from common.core.exceptions import AppException
from common.core.otel_axiom_exporter import get_logger, trace_span
from common.db.scoped import transaction
from packages.billing.models.domain.enums import (
    ReconciliationStep,
    WebhookEventStatus,
)
from packages.billing.models.domain.stripe_webhooks import (
    StripeInvoiceData,
    StripePaymentMethodData,
    StripeSetupIntentData,
    StripeWebhookPayload,
    StripeWebhookType,
)
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.billing.repositories.webhook_event_repository import (
    WebhookEventRepository,
)
from packages.identity.models.domain.metadata import MetadataPatch
from packages.identity.providers.factory import get_identity_provider
from packages.identity.providers.interface import IdentityMetadataProviderInterface
from packages.users.repositories.user_repository import UserRepository

logger = get_logger(__name__)

PaymentFailedHook = Callable[[StripeInvoiceData], Awaitable[None]]


async def log_failed_payment(invoice: StripeInvoiceData) -> None:
    logger.warning(
        f"Payment for invoice {invoice.id} failed",
        extra={
            "invoice_id": invoice.id,
            "customer_id": invoice.customer,
            "amount_due": invoice.amount_due,
        },
    )


class WebhookReconciler:
    def __init__(
        self,
        payment_provider: Optional[PaymentProviderInterface] = None,
        identity_provider: Optional[IdentityMetadataProviderInterface] = None,
        user_repository: Optional[UserRepository] = None,
        event_repository: Optional[WebhookEventRepository] = None,
        on_payment_failed: Optional[PaymentFailedHook] = None,
    ):
        self.payment_provider = payment_provider or get_payment_provider()
        self.identity_provider = identity_provider or get_identity_provider()
        self.user_repository = user_repository or UserRepository()
        self.event_repository = event_repository or WebhookEventRepository()
        self.on_payment_failed = on_payment_failed or log_failed_payment

    @trace_span
    async def handle(self, raw_body: bytes, signature: Optional[str]) -> dict:
        """
        Verify, record and reconcile one delivery.

        Raises:
            InvalidSignature: before any parsing or side effect
            AppException: only for transient faults, and only when
                webhook_fail_on_transient_error is enabled
        """
        event = self.payment_provider.construct_event(raw_body, signature)

        try:
            payload = StripeWebhookPayload.model_validate(event)
        except pydantic.ValidationError as e:
            logger.error(
                "Invalid Stripe webhook payload", extra={"validation_errors": e.errors()}
            )
            return {"received": True}

        logger.info(
            f"Received Stripe webhook: {payload.type}",
            extra={
                "event_id": payload.id,
                "event_type": payload.type,
                "livemode": payload.livemode,
            },
        )

        await self.process(payload)
        return {"received": True}

    async def process(self, payload: StripeWebhookPayload) -> Optional[WebhookEventStatus]:
        """
        Reconcile one parsed event under the ledger.

        Returns the status recorded, or None when the event was skipped.
        """
        if payload.known_type is None:
            logger.info(f"Unhandled Stripe webhook type: {payload.type}")
            return None

        claimed = False
        try:
            ledger = await self.event_repository.claim(
                event_id=payload.id,
                event_type=payload.type,
                customer_id=payload.customer_id,
                payload=payload.model_dump(mode="json"),
            )
            if ledger is None:
                logger.info(
                    f"Skipping already handled Stripe event {payload.id}",
                    extra={"event_id": payload.id, "event_type": payload.type},
                )
                return None
            claimed = True

            status = await self._dispatch(payload, set(ledger.completed_steps))
            await self.event_repository.mark(payload.id, status)
            return status

        except asyncio.CancelledError as e:
            logger.warning(
                f"Cancelled while handling {payload.type}",
                extra={"event_id": payload.id},
            )
            if claimed:
                await self._mark_failed(payload.id, e)
            raise

        except Exception as e:
            logger.error(
                f"Error handling {payload.type}: {str(e)}",
                extra={"event_id": payload.id, "error": str(e)},
            )
            if claimed:
                await self._mark_failed(payload.id, e)
            if (
                settings.webhook_fail_on_transient_error
                and isinstance(e, AppException)
                and e.is_retryable
            ):
                raise
            return WebhookEventStatus.FAILED

    async def _mark_failed(self, event_id: str, error: BaseException) -> None:
        try:
            await self.event_repository.mark(
                event_id,
                WebhookEventStatus.FAILED,
                error=str(error) or type(error).__name__,
            )
        except AppException as e:
            # Row stays 'processing' until its claim lease expires
            logger.error(
                f"Could not record failure for Stripe event {event_id}: {e}",
                extra={"event_id": event_id},
            )

    async def _dispatch(
        self, payload: StripeWebhookPayload, completed: Set[str]
    ) -> WebhookEventStatus:
        event_type = payload.known_type
        data = payload.data.object

        if event_type == StripeWebhookType.PAYMENT_METHOD_ATTACHED:
            return await self._handle_payment_method_attached(
                payload.id, StripePaymentMethodData.model_validate(data), completed
            )
        if event_type == StripeWebhookType.SETUP_INTENT_SUCCEEDED:
            return await self._handle_setup_intent_succeeded(
                payload.id, StripeSetupIntentData.model_validate(data), completed
            )
        if event_type == StripeWebhookType.INVOICE_PAYMENT_SUCCEEDED:
            invoice = StripeInvoiceData.model_validate(data)
            logger.info(
                f"Payment for invoice {invoice.id} succeeded",
                extra={"invoice_id": invoice.id, "customer_id": invoice.customer},
            )
            return WebhookEventStatus.COMPLETED
        if event_type == StripeWebhookType.INVOICE_PAYMENT_FAILED:
            await self._run_payment_failed_hook(StripeInvoiceData.model_validate(data))
            return WebhookEventStatus.COMPLETED

        return WebhookEventStatus.IGNORED

    async def _handle_payment_method_attached(
        self, event_id: str, payment_method: StripePaymentMethodData, completed: Set[str]
    ) -> WebhookEventStatus:
        user_id = await self._find_user(payment_method.customer)
        if user_id is None:
            return WebhookEventStatus.IGNORED

        await self._step(
            event_id,
            ReconciliationStep.MARK_REGISTERED,
            completed,
            lambda: self.identity_provider.patch_metadata(
                user_id, MetadataPatch(is_registered=True)
            ),
        )
        await self._step(
            event_id,
            ReconciliationStep.UPSERT_LOCAL_USER,
            completed,
            lambda: self.user_repository.upsert(user_id),
            local=True,
        )
        await self._step(
            event_id,
            ReconciliationStep.SET_DEFAULT_PAYMENT_METHOD,
            completed,
            lambda: self.payment_provider.set_default_payment_method(
                payment_method.customer, payment_method.id
            ),
        )

        logger.info(
            f"User payment is now registered and set payment as default: {user_id}",
            extra={"user_id": user_id, "customer_id": payment_method.customer},
        )
        return WebhookEventStatus.COMPLETED

    async def _handle_setup_intent_succeeded(
        self, event_id: str, setup_intent: StripeSetupIntentData, completed: Set[str]
    ) -> WebhookEventStatus:
        user_id = await self._find_user(setup_intent.customer)
        if user_id is None:
            return WebhookEventStatus.IGNORED

        await self._step(
            event_id,
            ReconciliationStep.MARK_REGISTERED,
            completed,
            lambda: self.identity_provider.patch_metadata(
                user_id, MetadataPatch(is_registered=True)
            ),
        )
        logger.info(
            f"isRegistered status added to user: {user_id}",
            extra={"user_id": user_id, "customer_id": setup_intent.customer},
        )
        return WebhookEventStatus.COMPLETED

    async def _find_user(self, customer_id: Optional[str]) -> Optional[str]:
        if not customer_id:
            logger.warning("Stripe event has no customer id")
            return None

        user_id = await self.identity_provider.find_user_by_customer_id(customer_id)
        if user_id is None:
            logger.error(
                "No Auth0 user found for the given Stripe Customer ID.",
                extra={"customer_id": customer_id},
            )
        return user_id

    async def _step(
        self,
        event_id: str,
        step: ReconciliationStep,
        completed: Set[str],
        action: Callable[[], Awaitable[object]],
        local: bool = False,
    ) -> None:
        if step.value in completed:
            logger.debug(f"Step {step.value} already applied for {event_id}")
            return

        if local:
            # Application-store writes commit together with their step record
            async with transaction():
                await action()
                await self.event_repository.record_step(event_id, step.value)
        else:
            await action()
            await self.event_repository.record_step(event_id, step.value)
        completed.add(step.value)

    async def _run_payment_failed_hook(self, invoice: StripeInvoiceData) -> None:
        try:
            await self.on_payment_failed(invoice)
        except Exception as e:
            logger.error(
                f"Payment failure hook raised for invoice {invoice.id}: {e}",
                extra={"invoice_id": invoice.id},
            )

    @trace_span
    async def retry_failed_events(self, limit: int = 100) -> int:
        """
        Replay failed and abandoned events from their stored payloads.

        Returns:
            Number of events that completed on this attempt
        """
        failed = await self.event_repository.list_retryable(limit=limit)
        recovered = 0
        for event in failed:
            payload = StripeWebhookPayload.model_validate(event.payload)
            status = await self.process(payload)
            if status is not None and status.is_settled():
                recovered += 1

        logger.info(
            f"Retried {len(failed)} webhook events, {recovered} recovered",
            extra={"retried": len(failed), "recovered": recovered},
        )
        return recovered

    @trace_span
    async def purge_events_older_than(self, days: Optional[int] = None) -> int:
        """Drop ledger rows older than the retention window."""
        days = settings.webhook_event_retention_days if days is None else days
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        return await self.event_repository.purge_received_before(cutoff)


async def handle_stripe_webhook(request: Request) -> dict:
    """
    Handle incoming webhook from Stripe.

    The raw body is read before any JSON decoding so the signature is checked
    against the exact bytes Stripe signed.
    """
    payload_bytes = await request.body()
    sig_header = request.headers.get("stripe-signature")
    return await WebhookReconciler().handle(payload_bytes, sig_header)
