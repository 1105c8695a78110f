"""
Billing API routes.

Customer onboarding and payment method lookups against Stripe.
"""

from typing import Optional
from fastapi import APIRouter, Query

from common.core.exceptions import ValidationError
from packages.billing.services.checkout_service import CheckoutService
from packages.billing.services.payment_method_resolver import PaymentMethodResolver
from packages.billing.models.schemas.billing import (
    CreateCustomerRequest,
    CreateCustomerResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
    PaymentMethodResponse,
    SetupPaymentSessionRequest,
    SetupPaymentSessionResponse,
    SubscriptionStatusResponse,
)

router = APIRouter()


# ============================================================================
# Payment Method
# ============================================================================


@router.get("/payment-method", response_model=PaymentMethodResponse)
async def get_payment_method(
    stripe_customer_id: Optional[str] = Query(default=None, alias="stripeCustomerId"),
):
    """Customer's default payment method, or null when none is set."""
    if not stripe_customer_id:
        raise ValidationError("Customer ID is required")

    payment_method = await PaymentMethodResolver().resolve(stripe_customer_id)
    return PaymentMethodResponse(default_payment_method=payment_method)


@router.post(
    "/setup-payment-session",
    response_model=SetupPaymentSessionResponse,
    response_model_by_alias=True,
)
async def setup_payment_session(body: SetupPaymentSessionRequest):
    """
    Create a Stripe Checkout session in setup mode for saving a card.

    Creates the Stripe customer first if the user does not have one yet.
    """
    result = await CheckoutService().setup_payment_session(
        user_id=body.user.sub,
        email=body.user.email,
        name=body.user.name,
    )
    return SetupPaymentSessionResponse(
        session_id=result["sessionId"], success=result["success"]
    )


# ============================================================================
# Customers & Payments
# ============================================================================


@router.post(
    "/create-customer",
    response_model=CreateCustomerResponse,
    response_model_by_alias=True,
)
async def create_customer(body: CreateCustomerRequest):
    customer_id = await CheckoutService().create_customer(
        email=body.email, name=body.name
    )
    return CreateCustomerResponse(customer_id=customer_id)


@router.post(
    "/create-payment-intent",
    response_model=PaymentIntentResponse,
    response_model_by_alias=True,
)
async def create_payment_intent(body: PaymentIntentRequest):
    client_secret = await CheckoutService().create_payment_intent(body.amount)
    return PaymentIntentResponse(client_secret=client_secret)


@router.get(
    "/subscription-status/{customer_id}",
    response_model=SubscriptionStatusResponse,
    response_model_by_alias=True,
)
async def subscription_status(customer_id: str):
    """Whether the customer has an active subscription."""
    is_registered = await CheckoutService().subscription_status(customer_id)
    return SubscriptionStatusResponse(is_registered=is_registered)
