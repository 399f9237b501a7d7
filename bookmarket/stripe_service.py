import logging
from dataclasses import dataclass
from typing import Optional

import stripe

from bookmarket import config
from bookmarket.errors import GatewayError
from bookmarket.schemas import CheckoutRequest

logger = logging.getLogger(__name__)

stripe.api_key = config.STRIPE_SECRET_KEY


@dataclass
class CheckoutOutcome:
    session_id: str
    payment_status: str
    transaction_id: Optional[str]
    order_id: Optional[str]


def to_minor_units(price: float) -> int:
    # Stripe wants integer cents; fractions of a cent are dropped
    return int(price * 100)


def create_checkout_session(request: CheckoutRequest) -> str:
    """Open a Stripe Checkout Session for one order and return its redirect URL."""
    try:
        session = stripe.checkout.Session.create(
            mode="payment",
            line_items=[
                {
                    "price_data": {
                        "currency": config.STRIPE_CURRENCY,
                        "product_data": {"name": request.book_name},
                        "unit_amount": to_minor_units(request.price),
                    },
                    "quantity": 1,
                }
            ],
            customer_email=request.customer_email,
            metadata={"orderId": request.order_id},
            success_url=f"{config.CLIENT_DOMAIN}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{config.CLIENT_DOMAIN}/dashboard/my-orders",
        )
    except stripe.StripeError as exc:
        logger.error("Checkout session for order %s failed: %s", request.order_id, exc)
        raise GatewayError(exc.user_message or str(exc))

    logger.info("Checkout session %s opened for order %s", session.id, request.order_id)
    return session.url


def outcome_from_session(session) -> CheckoutOutcome:
    try:
        metadata = session["metadata"] or {}
    except KeyError:
        metadata = {}
    try:
        order_id = metadata["orderId"]
    except KeyError:
        order_id = None

    return CheckoutOutcome(
        session_id=session["id"],
        payment_status=session["payment_status"],
        transaction_id=session["payment_intent"],
        order_id=order_id,
    )


def retrieve_session(session_id: str) -> CheckoutOutcome:
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.StripeError as exc:
        logger.error("Could not retrieve checkout session %s: %s", session_id, exc)
        raise GatewayError(exc.user_message or str(exc))
    return outcome_from_session(session)
