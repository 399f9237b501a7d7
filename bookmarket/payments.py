import logging

from bookmarket import stripe_service
from bookmarket.errors import NotFoundError, ValidationError
from bookmarket.models import utcnow
from bookmarket.orders import can_transition
from bookmarket.schemas import ReconcileResult
from bookmarket.stores import OrderStore
from bookmarket.stripe_service import CheckoutOutcome

logger = logging.getLogger(__name__)


class PaymentReconciler:
    """Copies a settled checkout session onto its order.

    Keyed by the Stripe transaction reference, so the same confirmation
    arriving twice (redirect and webhook, or a page refresh) is applied once.
    """

    def __init__(self, orders: OrderStore):
        self.orders = orders

    def reconcile(self, session_id: str) -> ReconcileResult:
        return self.apply(stripe_service.retrieve_session(session_id))

    def apply(self, outcome: CheckoutOutcome) -> ReconcileResult:
        result = ReconcileResult(
            session_id=outcome.session_id,
            order_id=outcome.order_id,
            payment_status=outcome.payment_status,
            transaction_id=outcome.transaction_id,
            applied=False,
        )

        if outcome.payment_status != "paid":
            logger.info("Session %s not settled (%s), nothing to apply", outcome.session_id, outcome.payment_status)
            return result

        if not outcome.order_id:
            raise ValidationError(f"Checkout session {outcome.session_id} carries no orderId")

        if outcome.transaction_id:
            existing = self.orders.find_by_transaction(outcome.transaction_id)
            if existing is not None:
                logger.info("Transaction %s already applied to order %s", outcome.transaction_id, existing.id)
                result.already_applied = True
                return result

        order = self.orders.get(outcome.order_id)
        if order is None:
            raise NotFoundError(f"Order {outcome.order_id} not found")
        if order.payment_status == "paid":
            logger.warning(
                "Order %s already paid by %s, ignoring transaction %s",
                order.id, order.transaction_id, outcome.transaction_id,
            )
            result.already_applied = True
            return result

        fields = {
            "payment_status": "paid",
            "transaction_id": outcome.transaction_id,
            "paid_at": utcnow(),
        }
        if can_transition(order.status, "paid"):
            fields["status"] = "paid"
        elif order.status == "cancelled":
            logger.warning("Payment settled for cancelled order %s", order.id)

        ack = self.orders.update(order.id, match={"payment_status": "unpaid"}, **fields)
        if ack.matched_count == 0:
            result.already_applied = True
            return result
        result.applied = True
        logger.info("Order %s paid, transaction %s", order.id, outcome.transaction_id)
        return result
