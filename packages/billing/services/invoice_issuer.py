"""
Issues a one-line invoice for a metered charge.

The three processor calls (create, add item, finalize) run as a saga against a
single invoice id. When a later step fails, the invoice created earlier is
removed (deleted while still a draft, voided once finalized) so a failed
charge never leaves a collectible invoice behind.
"""

from typing import Optional

from common.core.config import settings
from common.core.exceptions import InvoiceCreationFailed, PaymentGatewayError
from common.core.otel_axiom_exporter import trace_span, get_logger, log_span_event
from packages.billing.models.domain.enums import InvoiceSagaStep, InvoiceStatus
from packages.billing.models.domain.payment import FinalizedInvoice, InvoiceSaga
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface

logger = get_logger(__name__)


class InvoiceIssuer:
    def __init__(
        self,
        payment_provider: Optional[PaymentProviderInterface] = None,
        currency: Optional[str] = None,
    ):
        self.payment_provider = payment_provider or get_payment_provider()
        self.currency = currency or settings.stripe_currency

    @trace_span
    async def issue(
        self, customer_id: str, description: str, amount_cents: int
    ) -> FinalizedInvoice:
        """
        Create, fill and finalize an invoice for the customer.

        Raises:
            InvoiceCreationFailed: with the step reached, the invoice id (if one
                was created) and whether it was cleaned up
        """
        saga = InvoiceSaga(
            customer_id=customer_id,
            amount_cents=amount_cents,
            description=description,
            currency=self.currency,
        )

        try:
            saga.invoice_id = await self.payment_provider.create_invoice(
                customer_id, saga.currency, saga.idempotency_key
            )
        except PaymentGatewayError as e:
            saga.advance(InvoiceSagaStep.FAILED)
            self._log_failure(saga, InvoiceSagaStep.PENDING, e)
            raise InvoiceCreationFailed(
                customer_id, step=InvoiceSagaStep.PENDING.value, cause=e
            ) from e
        saga.advance(InvoiceSagaStep.INVOICE_CREATED)

        try:
            await self.payment_provider.add_invoice_item(
                customer_id=customer_id,
                invoice_id=saga.invoice_id,
                amount_cents=amount_cents,
                currency=saga.currency,
                description=description,
                idempotency_key=f"{saga.idempotency_key}-item",
            )
            saga.advance(InvoiceSagaStep.ITEM_ATTACHED)

            invoice = await self.payment_provider.finalize_invoice(saga.invoice_id)
            saga.advance(InvoiceSagaStep.FINALIZED)
        except PaymentGatewayError as e:
            failed_at = saga.step
            compensated = await self._compensate(saga)
            self._log_failure(saga, failed_at, e)
            raise InvoiceCreationFailed(
                customer_id,
                step=failed_at.value,
                invoice_id=saga.invoice_id,
                compensated=compensated,
                cause=e,
            ) from e

        log_span_event(
            f"Invoice {invoice.id} finalized",
            {
                "customer_id": customer_id,
                "invoice_id": invoice.id,
                "amount_cents": amount_cents,
            },
        )
        return invoice

    async def _compensate(self, saga: InvoiceSaga) -> bool:
        """Remove the saga's invoice. Returns True if nothing collectible remains."""
        try:
            if saga.step == InvoiceSagaStep.INVOICE_CREATED:
                await self.payment_provider.delete_invoice(saga.invoice_id)
            else:
                # Finalize may have succeeded before the failure was reported
                status = await self.payment_provider.get_invoice_status(saga.invoice_id)
                if status == InvoiceStatus.DRAFT:
                    await self.payment_provider.delete_invoice(saga.invoice_id)
                elif status == InvoiceStatus.OPEN:
                    await self.payment_provider.void_invoice(saga.invoice_id)
                elif status != InvoiceStatus.VOID:
                    logger.error(
                        f"Invoice {saga.invoice_id} is {status.value}, cannot compensate",
                        extra={"customer_id": saga.customer_id},
                    )
                    saga.advance(InvoiceSagaStep.FAILED)
                    return False
        except PaymentGatewayError as e:
            logger.error(
                f"Compensation failed for invoice {saga.invoice_id}: {e}",
                extra={"customer_id": saga.customer_id, "invoice_id": saga.invoice_id},
            )
            saga.advance(InvoiceSagaStep.FAILED)
            return False

        saga.advance(InvoiceSagaStep.COMPENSATED)
        return True

    def _log_failure(
        self, saga: InvoiceSaga, failed_at: InvoiceSagaStep, error: Exception
    ) -> None:
        logger.error(
            f"Invoice saga failed at {failed_at.value}: {error}",
            extra={
                "customer_id": saga.customer_id,
                "invoice_id": saga.invoice_id,
                "failed_at": failed_at.value,
                "outcome": saga.step.value,
                "idempotency_key": saga.idempotency_key,
                "amount_cents": saga.amount_cents,
            },
        )
