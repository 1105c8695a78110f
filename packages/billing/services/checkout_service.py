"""
Customer onboarding against the payment processor.
"""

from typing import Optional

from common.core.config import settings
from common.core.exceptions import ValidationError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface
from packages.identity.models.domain.metadata import MetadataPatch
from packages.identity.providers.factory import get_identity_provider
from packages.identity.providers.interface import IdentityMetadataProviderInterface

logger = get_logger(__name__)


class CheckoutService:
    def __init__(
        self,
        payment_provider: Optional[PaymentProviderInterface] = None,
        identity_provider: Optional[IdentityMetadataProviderInterface] = None,
    ):
        self.payment_provider = payment_provider or get_payment_provider()
        self.identity_provider = identity_provider or get_identity_provider()

    @trace_span
    async def create_customer(
        self, email: Optional[str] = None, name: Optional[str] = None
    ) -> str:
        return await self.payment_provider.create_customer(email=email, name=name)

    @trace_span
    async def create_payment_intent(self, amount_cents: int) -> str:
        if amount_cents <= 0:
            raise ValidationError("Amount must be a positive number of cents.")
        return await self.payment_provider.create_payment_intent(
            amount_cents, settings.stripe_currency
        )

    @trace_span
    async def setup_payment_session(
        self,
        user_id: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> dict:
        """
        Start a setup-mode checkout so the user can save a card.

        The customer id comes from the user's identity record. A user without
        one gets a new processor customer, and its id is stored in the
        identity record before the session is created.

        Returns:
            {"sessionId": str, "success": str}
        """
        if not user_id:
            raise ValidationError("User ID is required.")

        metadata = await self.identity_provider.get_metadata(user_id)
        customer_id = metadata.stripe_customer_id
        if not customer_id:
            customer_id = await self.payment_provider.create_customer(
                email=email, name=name
            )
            await self.identity_provider.patch_metadata(
                user_id, MetadataPatch(stripe_customer_id=customer_id)
            )
            logger.info(
                "Linked new Stripe customer to identity",
                extra={"user_id": user_id, "customer_id": customer_id},
            )

        session_id = await self.payment_provider.create_setup_session(
            customer_id,
            success_url=f"{settings.frontend_url}/success",
            cancel_url=f"{settings.frontend_url}/cancel",
        )
        return {"sessionId": session_id, "success": f"{settings.frontend_url}/home"}

    @trace_span
    async def subscription_status(self, customer_id: str) -> bool:
        return await self.payment_provider.has_active_subscription(customer_id)
