"""
Metered text extraction.

Registered users pay per character through an invoice; everyone else spends
free-tier quota. Either gate must pass before the text is sent for
extraction, and any failure of the gate blocks the action.
"""

from typing import List, Optional
from pydantic import BaseModel

from common.core.config import settings
from common.core.exceptions import ValidationError
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.services.billing_calculator import BillingCalculator
from packages.billing.services.invoice_issuer import InvoiceIssuer
from packages.billing.services.payment_method_resolver import PaymentMethodResolver
from packages.extraction.models.domain.keyword import Keyword
from packages.extraction.providers.factory import get_entity_extraction_provider
from packages.extraction.providers.interface import EntityExtractionInterface
from packages.identity.providers.factory import get_identity_provider
from packages.identity.providers.interface import IdentityMetadataProviderInterface
from packages.usage.services.quota_tracker import QuotaTracker

logger = get_logger(__name__)


class MeteredActionResult(BaseModel):
    keywords: List[Keyword]
    usage_count: Optional[int] = None
    invoice_id: Optional[str] = None
    amount_cents: Optional[int] = None


class MeteringService:
    """Service for gating and performing metered actions."""

    def __init__(
        self,
        quota_tracker: Optional[QuotaTracker] = None,
        payment_method_resolver: Optional[PaymentMethodResolver] = None,
        billing_calculator: Optional[BillingCalculator] = None,
        invoice_issuer: Optional[InvoiceIssuer] = None,
        extraction_provider: Optional[EntityExtractionInterface] = None,
        identity_provider: Optional[IdentityMetadataProviderInterface] = None,
    ):
        self.identity_provider = identity_provider or get_identity_provider()
        self.quota_tracker = quota_tracker or QuotaTracker(
            identity_provider=self.identity_provider
        )
        self.payment_method_resolver = (
            payment_method_resolver or PaymentMethodResolver()
        )
        self.billing_calculator = billing_calculator or BillingCalculator()
        self.invoice_issuer = invoice_issuer or InvoiceIssuer()
        self.extraction_provider = (
            extraction_provider or get_entity_extraction_provider()
        )

    @trace_span
    async def perform_metered_action(
        self,
        text: str,
        user_id: Optional[str],
        stripe_customer_id: Optional[str] = None,
        is_registered: bool = False,
    ) -> MeteredActionResult:
        if not text:
            raise ValidationError("Text input is required.")
        if not user_id:
            raise ValidationError("User ID is required.")

        result = MeteredActionResult(keywords=[])

        if is_registered:
            await self.payment_method_resolver.require(stripe_customer_id)
            charge = self.billing_calculator.price(text)
            invoice = await self.invoice_issuer.issue(
                stripe_customer_id, settings.charge_description, charge.amount_cents
            )
            result.invoice_id = invoice.id
            result.amount_cents = charge.amount_cents
            logger.info(
                f"Charged {charge.amount_cents} cents for {charge.char_count} characters",
                extra={"user_id": user_id, "invoice_id": invoice.id},
            )
        else:
            result.usage_count = await self.quota_tracker.track(user_id, True)

        result.keywords = await self.extraction_provider.extract_keywords(
            text, settings.extraction_min_salience
        )
        return result

    @trace_span
    async def usage_metadata(self, user_id: Optional[str], track_usage: bool = True) -> dict:
        """
        Current app_metadata for the user, optionally spending one free action.

        Returns:
            {"app_metadata": {...}, "usageCount": int}
        """
        if not user_id:
            raise ValidationError("Invalid token")

        usage_count = await self.quota_tracker.track(user_id, track_usage)
        metadata = await self.identity_provider.get_metadata(user_id)
        return {
            "app_metadata": metadata.to_app_metadata(),
            "usageCount": usage_count,
        }
