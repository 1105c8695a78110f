import pytest

from common.core.exceptions import InvoiceCreationFailed, PaymentGatewayError
from packages.billing.models.domain.enums import InvoiceSagaStep, InvoiceStatus
from packages.billing.services.invoice_issuer import InvoiceIssuer


@pytest.fixture
def issuer(payment_provider):
    return InvoiceIssuer(payment_provider=payment_provider, currency="usd")


class TestInvoiceIssuer:
    async def test_issue_creates_fills_and_finalizes(self, issuer, payment_provider):
        invoice = await issuer.issue("cus_paying", "Text extraction service", 3)

        assert invoice.id == "in_123"
        create_args = payment_provider.create_invoice.await_args.args
        assert create_args[0] == "cus_paying"
        assert create_args[1] == "usd"
        idempotency_key = create_args[2]
        assert idempotency_key.startswith("invoice-")

        payment_provider.add_invoice_item.assert_awaited_once_with(
            customer_id="cus_paying",
            invoice_id="in_123",
            amount_cents=3,
            currency="usd",
            description="Text extraction service",
            idempotency_key=f"{idempotency_key}-item",
        )
        payment_provider.finalize_invoice.assert_awaited_once_with("in_123")
        payment_provider.delete_invoice.assert_not_called()
        payment_provider.void_invoice.assert_not_called()

    async def test_each_charge_gets_its_own_idempotency_key(
        self, issuer, payment_provider
    ):
        await issuer.issue("cus_paying", "charge", 1)
        await issuer.issue("cus_paying", "charge", 1)

        keys = [call.args[2] for call in payment_provider.create_invoice.await_args_list]
        assert keys[0] != keys[1]

    async def test_create_failure_leaves_nothing_to_clean(self, issuer, payment_provider):
        payment_provider.create_invoice.side_effect = PaymentGatewayError("down")

        with pytest.raises(InvoiceCreationFailed) as exc_info:
            await issuer.issue("cus_paying", "charge", 1)

        assert exc_info.value.step == InvoiceSagaStep.PENDING.value
        assert exc_info.value.invoice_id is None
        payment_provider.add_invoice_item.assert_not_called()
        payment_provider.delete_invoice.assert_not_called()

    async def test_item_failure_deletes_draft(self, issuer, payment_provider):
        payment_provider.add_invoice_item.side_effect = PaymentGatewayError("down")

        with pytest.raises(InvoiceCreationFailed) as exc_info:
            await issuer.issue("cus_paying", "charge", 1)

        assert exc_info.value.step == InvoiceSagaStep.INVOICE_CREATED.value
        assert exc_info.value.invoice_id == "in_123"
        assert exc_info.value.compensated is True
        payment_provider.delete_invoice.assert_awaited_once_with("in_123")
        payment_provider.finalize_invoice.assert_not_called()

    async def test_finalize_failure_on_draft_deletes(self, issuer, payment_provider):
        payment_provider.finalize_invoice.side_effect = PaymentGatewayError("down")
        payment_provider.get_invoice_status.return_value = InvoiceStatus.DRAFT

        with pytest.raises(InvoiceCreationFailed) as exc_info:
            await issuer.issue("cus_paying", "charge", 1)

        assert exc_info.value.step == InvoiceSagaStep.ITEM_ATTACHED.value
        assert exc_info.value.compensated is True
        payment_provider.delete_invoice.assert_awaited_once_with("in_123")
        payment_provider.void_invoice.assert_not_called()

    async def test_finalize_reported_failure_after_success_voids(
        self, issuer, payment_provider
    ):
        payment_provider.finalize_invoice.side_effect = PaymentGatewayError("timeout")
        payment_provider.get_invoice_status.return_value = InvoiceStatus.OPEN

        with pytest.raises(InvoiceCreationFailed) as exc_info:
            await issuer.issue("cus_paying", "charge", 1)

        assert exc_info.value.compensated is True
        payment_provider.void_invoice.assert_awaited_once_with("in_123")
        payment_provider.delete_invoice.assert_not_called()

    async def test_paid_invoice_cannot_be_compensated(self, issuer, payment_provider):
        payment_provider.finalize_invoice.side_effect = PaymentGatewayError("timeout")
        payment_provider.get_invoice_status.return_value = InvoiceStatus.PAID

        with pytest.raises(InvoiceCreationFailed) as exc_info:
            await issuer.issue("cus_paying", "charge", 1)

        assert exc_info.value.compensated is False
        payment_provider.void_invoice.assert_not_called()
        payment_provider.delete_invoice.assert_not_called()

    async def test_compensation_failure_is_reported(self, issuer, payment_provider):
        payment_provider.add_invoice_item.side_effect = PaymentGatewayError("down")
        payment_provider.delete_invoice.side_effect = PaymentGatewayError("down")

        with pytest.raises(InvoiceCreationFailed) as exc_info:
            await issuer.issue("cus_paying", "charge", 1)

        assert exc_info.value.invoice_id == "in_123"
        assert exc_info.value.compensated is False
        assert isinstance(exc_info.value.cause, PaymentGatewayError)
