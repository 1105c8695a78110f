import asyncio
import json

import pytest
from unittest.mock import AsyncMock, patch

from common.core.config import settings
from common.core.exceptions import InvalidSignature, PaymentGatewayError
from packages.billing.models.domain.enums import ReconciliationStep, WebhookEventStatus
from packages.billing.models.domain.stripe_webhooks import StripeWebhookPayload
from packages.billing.repositories.webhook_event_repository import (
    WebhookEventRepository,
)
from packages.billing.webhooks.stripe_webhook import WebhookReconciler
from packages.users.repositories.user_repository import UserRepository


def stripe_event(event_id: str, event_type: str, obj: dict) -> bytes:
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "created": 1700000000,
            "livemode": False,
            "data": {"object": obj},
        }
    ).encode()


def payment_method_attached(event_id="evt_pm_1", customer="cus_paying") -> bytes:
    return stripe_event(
        event_id,
        "payment_method.attached",
        {"id": "pm_new", "object": "payment_method", "customer": customer, "type": "card"},
    )


def setup_intent_succeeded(event_id="evt_si_1", customer="cus_paying") -> bytes:
    return stripe_event(
        event_id,
        "setup_intent.succeeded",
        {"id": "seti_1", "object": "setup_intent", "customer": customer, "status": "succeeded"},
    )


def invoice_event(event_id: str, event_type: str) -> bytes:
    return stripe_event(
        event_id,
        event_type,
        {"id": "in_1", "object": "invoice", "customer": "cus_paying", "amount_due": 3},
    )


@pytest.fixture
def user_repository():
    return UserRepository()


@pytest.fixture
def event_repository():
    return WebhookEventRepository()


@pytest.fixture
def payment_failed_hook():
    return AsyncMock()


@pytest.fixture
def reconciler(
    payment_provider,
    identity_provider,
    user_repository,
    event_repository,
    payment_failed_hook,
):
    return WebhookReconciler(
        payment_provider=payment_provider,
        identity_provider=identity_provider,
        user_repository=user_repository,
        event_repository=event_repository,
        on_payment_failed=payment_failed_hook,
    )


class TestWebhookReconciler:
    async def test_invalid_signature_has_no_side_effects(
        self, reconciler, payment_provider, event_repository, user_repository
    ):
        payment_provider.construct_event.side_effect = InvalidSignature("bad")

        with pytest.raises(InvalidSignature):
            await reconciler.handle(payment_method_attached(), "t=1,v1=bad")

        assert await event_repository.get_by_event_id("evt_pm_1") is None
        assert await user_repository.count() == 0
        payment_provider.set_default_payment_method.assert_not_called()

    async def test_payment_method_attached_registers_user(
        self,
        reconciler,
        payment_provider,
        identity_provider,
        user_repository,
        event_repository,
    ):
        ack = await reconciler.handle(payment_method_attached(), "t=1,v1=ok")

        assert ack == {"received": True}
        metadata = await identity_provider.get_metadata("auth0|paying")
        assert metadata.is_registered is True
        assert await user_repository.count() == 1
        payment_provider.set_default_payment_method.assert_awaited_once_with(
            "cus_paying", "pm_new"
        )

        event = await event_repository.get_by_event_id("evt_pm_1")
        assert event.status == WebhookEventStatus.COMPLETED.value
        assert event.completed_steps == [
            ReconciliationStep.MARK_REGISTERED.value,
            ReconciliationStep.UPSERT_LOCAL_USER.value,
            ReconciliationStep.SET_DEFAULT_PAYMENT_METHOD.value,
        ]

    async def test_redelivered_event_is_a_no_op(
        self, reconciler, payment_provider, user_repository
    ):
        await reconciler.handle(payment_method_attached(), "t=1,v1=ok")
        ack = await reconciler.handle(payment_method_attached(), "t=1,v1=ok")

        assert ack == {"received": True}
        assert payment_provider.set_default_payment_method.await_count == 1
        assert await user_repository.count() == 1

    async def test_distinct_events_for_same_card_are_idempotent(
        self, reconciler, identity_provider, user_repository
    ):
        await reconciler.handle(payment_method_attached("evt_a"), "t=1,v1=ok")
        await reconciler.handle(payment_method_attached("evt_b"), "t=1,v1=ok")

        assert await user_repository.count() == 1
        assert (await identity_provider.get_metadata("auth0|paying")).is_registered

    async def test_unmatched_customer_writes_nothing(
        self, reconciler, payment_provider, user_repository, event_repository
    ):
        await reconciler.handle(
            payment_method_attached(customer="cus_unknown"), "t=1,v1=ok"
        )

        assert await user_repository.count() == 0
        payment_provider.set_default_payment_method.assert_not_called()
        event = await event_repository.get_by_event_id("evt_pm_1")
        assert event.status == WebhookEventStatus.IGNORED.value
        assert event.completed_steps == []

    async def test_setup_intent_marks_registered_only(
        self, reconciler, payment_provider, identity_provider, user_repository
    ):
        await reconciler.handle(setup_intent_succeeded(), "t=1,v1=ok")

        assert (await identity_provider.get_metadata("auth0|paying")).is_registered
        assert await user_repository.count() == 0
        payment_provider.set_default_payment_method.assert_not_called()

    async def test_setup_intent_without_user_writes_nothing(
        self, reconciler, identity_provider
    ):
        with patch.object(
            identity_provider, "patch_metadata", new_callable=AsyncMock
        ) as patch_metadata:
            await reconciler.handle(
                setup_intent_succeeded(customer="cus_unknown"), "t=1,v1=ok"
            )

        patch_metadata.assert_not_called()

    async def test_unknown_event_type_acknowledged_without_ledger(
        self, reconciler, event_repository
    ):
        ack = await reconciler.handle(
            stripe_event("evt_other", "customer.created", {"id": "cus_1"}), "t=1,v1=ok"
        )

        assert ack == {"received": True}
        assert await event_repository.get_by_event_id("evt_other") is None

    async def test_malformed_event_acknowledged(self, reconciler, payment_provider):
        payment_provider.construct_event.side_effect = None
        payment_provider.construct_event.return_value = {"id": "evt_bad"}

        assert await reconciler.handle(b"{}", "t=1,v1=ok") == {"received": True}

    async def test_invoice_payment_succeeded_completes(self, reconciler, event_repository):
        await reconciler.handle(
            invoice_event("evt_inv_ok", "invoice.payment_succeeded"), "t=1,v1=ok"
        )

        event = await event_repository.get_by_event_id("evt_inv_ok")
        assert event.status == WebhookEventStatus.COMPLETED.value

    async def test_invoice_payment_failed_runs_hook(
        self, reconciler, payment_failed_hook
    ):
        await reconciler.handle(
            invoice_event("evt_inv_fail", "invoice.payment_failed"), "t=1,v1=ok"
        )

        payment_failed_hook.assert_awaited_once()
        invoice = payment_failed_hook.await_args.args[0]
        assert invoice.id == "in_1"
        assert invoice.amount_due == 3

    async def test_payment_failed_hook_errors_are_contained(
        self, reconciler, payment_failed_hook, event_repository
    ):
        payment_failed_hook.side_effect = RuntimeError("mailer down")

        ack = await reconciler.handle(
            invoice_event("evt_inv_fail", "invoice.payment_failed"), "t=1,v1=ok"
        )

        assert ack == {"received": True}
        event = await event_repository.get_by_event_id("evt_inv_fail")
        assert event.status == WebhookEventStatus.COMPLETED.value

    async def test_transient_failure_is_acknowledged_and_recorded(
        self, reconciler, payment_provider, event_repository
    ):
        payment_provider.set_default_payment_method.side_effect = PaymentGatewayError(
            "down"
        )

        ack = await reconciler.handle(payment_method_attached(), "t=1,v1=ok")

        assert ack == {"received": True}
        event = await event_repository.get_by_event_id("evt_pm_1")
        assert event.status == WebhookEventStatus.FAILED.value
        assert event.completed_steps == [
            ReconciliationStep.MARK_REGISTERED.value,
            ReconciliationStep.UPSERT_LOCAL_USER.value,
        ]
        assert event.error

    async def test_transient_failure_raised_when_configured(
        self, reconciler, payment_provider, monkeypatch
    ):
        monkeypatch.setattr(settings, "webhook_fail_on_transient_error", True)
        payment_provider.set_default_payment_method.side_effect = PaymentGatewayError(
            "down"
        )

        with pytest.raises(PaymentGatewayError):
            await reconciler.handle(payment_method_attached(), "t=1,v1=ok")

    async def test_redelivery_resumes_failed_event(
        self, reconciler, payment_provider, identity_provider, event_repository
    ):
        payment_provider.set_default_payment_method.side_effect = PaymentGatewayError(
            "down"
        )
        await reconciler.handle(payment_method_attached(), "t=1,v1=ok")

        payment_provider.set_default_payment_method.side_effect = None
        with patch.object(
            identity_provider,
            "patch_metadata",
            wraps=identity_provider.patch_metadata,
        ) as patch_metadata:
            await reconciler.handle(payment_method_attached(), "t=1,v1=ok")

        # Identity was already marked on the first attempt
        patch_metadata.assert_not_called()
        assert payment_provider.set_default_payment_method.await_count == 2
        event = await event_repository.get_by_event_id("evt_pm_1")
        assert event.status == WebhookEventStatus.COMPLETED.value
        assert event.attempts == 2

    async def test_retry_failed_events(self, reconciler, payment_provider, event_repository):
        payment_provider.set_default_payment_method.side_effect = PaymentGatewayError(
            "down"
        )
        await reconciler.handle(payment_method_attached(), "t=1,v1=ok")
        payment_provider.set_default_payment_method.side_effect = None

        recovered = await reconciler.retry_failed_events()

        assert recovered == 1
        event = await event_repository.get_by_event_id("evt_pm_1")
        assert event.status == WebhookEventStatus.COMPLETED.value

    async def test_cancelled_delivery_resumes_on_redelivery(
        self, reconciler, identity_provider, event_repository
    ):
        with patch.object(
            identity_provider,
            "patch_metadata",
            new_callable=AsyncMock,
            side_effect=asyncio.CancelledError(),
        ):
            with pytest.raises(asyncio.CancelledError):
                await reconciler.handle(payment_method_attached(), "t=1,v1=ok")

        event = await event_repository.get_by_event_id("evt_pm_1")
        assert event.status == WebhookEventStatus.FAILED.value
        assert event.completed_steps == []

        await reconciler.handle(payment_method_attached(), "t=1,v1=ok")

        assert (await identity_provider.get_metadata("auth0|paying")).is_registered
        event = await event_repository.get_by_event_id("evt_pm_1")
        assert event.status == WebhookEventStatus.COMPLETED.value

    async def test_retry_recovers_event_abandoned_mid_processing(
        self, reconciler, identity_provider, event_repository, monkeypatch
    ):
        # A claim left behind by a process that died before settling the event
        await event_repository.claim(
            event_id="evt_pm_1",
            event_type="payment_method.attached",
            customer_id="cus_paying",
            payload=json.loads(payment_method_attached()),
        )

        assert await reconciler.handle(payment_method_attached(), "t=1,v1=ok") == {
            "received": True
        }
        assert await reconciler.retry_failed_events() == 0
        assert not (await identity_provider.get_metadata("auth0|paying")).is_registered

        monkeypatch.setattr(settings, "webhook_processing_lease_seconds", -1)

        assert await reconciler.retry_failed_events() == 1
        assert (await identity_provider.get_metadata("auth0|paying")).is_registered
        event = await event_repository.get_by_event_id("evt_pm_1")
        assert event.status == WebhookEventStatus.COMPLETED.value
        assert event.attempts == 2

    async def test_retry_with_nothing_failed(self, reconciler):
        assert await reconciler.retry_failed_events() == 0

    async def test_purge_old_events(self, reconciler, event_repository):
        await reconciler.handle(setup_intent_succeeded(), "t=1,v1=ok")

        assert await reconciler.purge_events_older_than(days=30) == 0
        assert await event_repository.get_by_event_id("evt_si_1") is not None

        assert await reconciler.purge_events_older_than(days=-1) == 1
        assert await event_repository.get_by_event_id("evt_si_1") is None


class TestStripeWebhookPayload:
    def test_known_and_unknown_types(self):
        known = StripeWebhookPayload.model_validate(
            json.loads(setup_intent_succeeded())
        )
        unknown = StripeWebhookPayload.model_validate(
            json.loads(stripe_event("evt_x", "charge.refunded", {"id": "ch_1"}))
        )

        assert known.known_type is not None
        assert known.customer_id == "cus_paying"
        assert unknown.known_type is None
        assert unknown.customer_id is None
