"""Billing services."""

from packages.billing.services.billing_calculator import (
    BillingCalculator,
    calculate_charge,
)
from packages.billing.services.payment_method_resolver import PaymentMethodResolver
from packages.billing.services.invoice_issuer import InvoiceIssuer
from packages.billing.services.checkout_service import CheckoutService

__all__ = [
    "BillingCalculator",
    "calculate_charge",
    "PaymentMethodResolver",
    "InvoiceIssuer",
    "CheckoutService",
]
