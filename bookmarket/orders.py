import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from bookmarket.errors import NotFoundError, ValidationError
from bookmarket.schemas import DeleteAck, InsertAck, OrderCreate, OrderOut, UpdateAck
from bookmarket.stores import BookStore, OrderStore

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "paid", "cancelled")

ALLOWED_TRANSITIONS = {
    "pending": ("paid", "cancelled"),
    "paid": ("cancelled",),
    "cancelled": (),
}


def can_transition(current: str, new: str) -> bool:
    return new in ALLOWED_TRANSITIONS.get(current, ())


def check_transition(current: str, new: str):
    if new not in ORDER_STATUSES:
        raise ValidationError(f"Invalid status '{new}', expected one of: {', '.join(ORDER_STATUSES)}")
    if not can_transition(current, new):
        raise ValidationError(f"Order cannot move from '{current}' to '{new}'")


class OrderLifecycle:
    """Creates orders and moves them through pending -> paid / cancelled."""

    def __init__(self, orders: OrderStore):
        self.orders = orders

    def create(self, payload: OrderCreate) -> InsertAck:
        ack = self.orders.insert(**payload.model_dump(), status="pending", payment_status="unpaid")
        logger.info("Order %s created for book %s by %s", ack.inserted_id, payload.book_id, payload.customer_email)
        return ack

    def list(self, seller_email: Optional[str] = None, customer_email: Optional[str] = None) -> List[OrderOut]:
        orders = self.orders.find(seller_email=seller_email, customer_email=customer_email)
        return [OrderOut.model_validate(order) for order in orders]

    def paid_invoices(self, customer_email: str) -> List[OrderOut]:
        return [OrderOut.model_validate(order) for order in self.orders.paid_for_customer(customer_email)]

    def update_status(self, order_id: str, new_status: str) -> UpdateAck:
        order = self.orders.get(order_id)
        if order is None:
            raise NotFoundError("Order not found")

        current = order.status
        check_transition(current, new_status)

        ack = self.orders.update(order_id, match={"status": current}, status=new_status)
        if ack.matched_count == 0:
            raise ValidationError("Order was changed by another request, reload and retry")
        logger.info("Order %s moved from %s to %s", order_id, current, new_status)
        return ack

    def cancel_by_customer(self, order_id: str) -> UpdateAck:
        return self.update_status(order_id, "cancelled")

    def delete(self, order_id: str) -> DeleteAck:
        ack = self.orders.delete(order_id)
        if ack.deleted_count == 0:
            raise NotFoundError("Order not found")
        logger.info("Order %s deleted", order_id)
        return ack

    def cascade_delete_for_book(self, books: BookStore, book_id: str) -> int:
        """Delete a book and every order referencing it in one transaction.

        Returns the number of orders removed.
        """
        db = self.orders.db
        try:
            if books.delete(book_id) == 0:
                db.rollback()
                raise NotFoundError("Book not found")
            deleted_orders = self.orders.delete_for_book(book_id)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Rolled back delete of book %s", book_id)
            raise

        logger.info("Book %s deleted with %d related orders", book_id, deleted_orders)
        return deleted_orders
