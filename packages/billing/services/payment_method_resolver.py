from typing import Optional

from common.core.exceptions import NoPaymentMethod
from common.core.otel_axiom_exporter import trace_span, get_logger
from packages.billing.models.domain.payment import PaymentMethod
from packages.billing.providers.payment.factory import get_payment_provider
from packages.billing.providers.payment.interface import PaymentProviderInterface

logger = get_logger(__name__)


class PaymentMethodResolver:
    """Looks up the payment method a customer's invoices are charged to."""

    def __init__(self, payment_provider: Optional[PaymentProviderInterface] = None):
        self.payment_provider = payment_provider or get_payment_provider()

    @trace_span
    async def resolve(self, customer_id: str) -> Optional[PaymentMethod]:
        """Default payment method for the customer, or None when unset."""
        payment_method_id = await self.payment_provider.get_default_payment_method_id(
            customer_id
        )
        if not payment_method_id:
            return None
        return await self.payment_provider.get_payment_method(payment_method_id)

    @trace_span
    async def require(self, customer_id: Optional[str]) -> PaymentMethod:
        """
        Default payment method for the customer.

        Raises:
            NoPaymentMethod: if the customer id is missing or has no default
        """
        if not customer_id:
            raise NoPaymentMethod(customer_id)

        payment_method = await self.resolve(customer_id)
        if payment_method is None:
            logger.info(
                "Customer has no default payment method",
                extra={"customer_id": customer_id},
            )
            raise NoPaymentMethod(customer_id)
        return payment_method
