import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from bookmarket.auth import require_admin, require_self_role_guard, validate_role
from bookmarket.errors import NotFoundError, ValidationError
from bookmarket.models import User
from bookmarket.orders import OrderLifecycle
from bookmarket.payments import PaymentReconciler
from bookmarket.schemas import (
    BookCreate,
    BookDeleted,
    BookOut,
    BookStatusUpdate,
    BookUpdate,
    CheckoutRequest,
    CheckoutResponse,
    DeleteAck,
    InsertAck,
    Message,
    OrderCreate,
    OrderOut,
    ReconcileResult,
    RoleOut,
    RoleUpdate,
    StatusUpdate,
    UpdateAck,
    UserUpsert,
    WishlistCreate,
    WishlistOut,
)
from bookmarket.stores import (
    BookStore,
    OrderStore,
    UserStore,
    WishlistStore,
    get_book_store,
    get_order_store,
    get_user_store,
    get_wishlist_store,
)
from bookmarket.stripe_service import create_checkout_session

logger = logging.getLogger(__name__)

router = APIRouter()

BOOK_STATUSES = ("published", "unpublished")


def get_lifecycle(orders: OrderStore = Depends(get_order_store)) -> OrderLifecycle:
    return OrderLifecycle(orders)


def get_reconciler(orders: OrderStore = Depends(get_order_store)) -> PaymentReconciler:
    return PaymentReconciler(orders)


# --- orders ---

@router.post("/orders", response_model=InsertAck)
def create_order(payload: OrderCreate, lifecycle: OrderLifecycle = Depends(get_lifecycle)):
    return lifecycle.create(payload)


@router.get("/orders", response_model=List[OrderOut])
def list_orders(
    seller_email: Optional[str] = Query(None, alias="sellerEmail"),
    customer_email: Optional[str] = Query(None, alias="customerEmail"),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return lifecycle.list(seller_email=seller_email, customer_email=customer_email)


@router.get("/my-orders/{email}", response_model=List[OrderOut])
def my_orders(email: str, lifecycle: OrderLifecycle = Depends(get_lifecycle)):
    return lifecycle.list(customer_email=email)


@router.get("/my-books-orders/{email}", response_model=List[OrderOut])
def my_books_orders(email: str, lifecycle: OrderLifecycle = Depends(get_lifecycle)):
    return lifecycle.list(seller_email=email)


@router.patch("/orders/{order_id}", response_model=UpdateAck)
def update_order_status(
    order_id: str,
    body: StatusUpdate,
    admin: User = Depends(require_admin),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return lifecycle.update_status(order_id, body.status)


@router.patch("/cancel-order/{order_id}", response_model=UpdateAck)
def cancel_order(order_id: str, lifecycle: OrderLifecycle = Depends(get_lifecycle)):
    return lifecycle.cancel_by_customer(order_id)


@router.delete("/orders/{order_id}", response_model=DeleteAck)
def delete_order(
    order_id: str,
    admin: User = Depends(require_admin),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return lifecycle.delete(order_id)


@router.get("/invoices/{email}", response_model=List[OrderOut])
def invoices(email: str, lifecycle: OrderLifecycle = Depends(get_lifecycle)):
    return lifecycle.paid_invoices(email)


# --- payments ---

@router.post("/create-checkout-session", response_model=CheckoutResponse)
def create_checkout_session_api(request: CheckoutRequest):
    return CheckoutResponse(url=create_checkout_session(request))


@router.patch("/payment-success", response_model=ReconcileResult)
def payment_success(
    session_id: str = Query(..., min_length=1),
    reconciler: PaymentReconciler = Depends(get_reconciler),
):
    return reconciler.reconcile(session_id)


# --- users ---

@router.post("/user", response_model=UpdateAck)
def upsert_user(payload: UserUpsert, users: UserStore = Depends(get_user_store)):
    return users.upsert(payload.email, name=payload.name, photo_url=payload.photo_url)


@router.get("/user/role/{email}", response_model=RoleOut)
def get_user_role(email: str, users: UserStore = Depends(get_user_store)):
    user = users.get_by_email(email)
    if user is None:
        raise NotFoundError("User not found")
    return RoleOut(role=user.role)


@router.patch("/users/role/{user_id}", response_model=Message)
def update_user_role(
    user_id: str,
    body: RoleUpdate,
    admin: User = Depends(require_admin),
    users: UserStore = Depends(get_user_store),
):
    validate_role(body.role)

    target = users.get(user_id)
    if target is None:
        raise NotFoundError("User not found")
    require_self_role_guard(admin.email, target.email)

    users.update_role(user_id, body.role)
    logger.info("%s changed role of %s to %s", admin.email, target.email, body.role)
    return Message(message=f"Role updated to {body.role}")


# --- books ---

@router.post("/books", response_model=InsertAck)
def add_book(payload: BookCreate, books: BookStore = Depends(get_book_store)):
    return books.insert(**payload.model_dump())


@router.get("/books", response_model=List[BookOut])
def list_books(books: BookStore = Depends(get_book_store)):
    return [BookOut.model_validate(book) for book in books.all()]


@router.get("/books/{book_id}", response_model=BookOut)
def get_book(book_id: str, books: BookStore = Depends(get_book_store)):
    book = books.get(book_id)
    if book is None:
        raise NotFoundError("Book not found")
    return BookOut.model_validate(book)


@router.put("/books/{book_id}", response_model=UpdateAck)
def update_book(book_id: str, payload: BookUpdate, books: BookStore = Depends(get_book_store)):
    ack = books.update(book_id, **payload.model_dump(exclude_unset=True))
    if ack.matched_count == 0:
        raise NotFoundError("Book not found")
    return ack


@router.patch("/books/status/{book_id}", response_model=Message)
def update_book_status(
    book_id: str,
    body: BookStatusUpdate,
    admin: User = Depends(require_admin),
    books: BookStore = Depends(get_book_store),
):
    if body.status not in BOOK_STATUSES:
        raise ValidationError(f"Invalid status '{body.status}', expected one of: {', '.join(BOOK_STATUSES)}")
    if books.update(book_id, status=body.status).matched_count == 0:
        raise NotFoundError("Book not found")
    return Message(message=f"Book status updated to {body.status}")


@router.delete("/books/{book_id}", response_model=BookDeleted)
def delete_book(
    book_id: str,
    admin: User = Depends(require_admin),
    books: BookStore = Depends(get_book_store),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    deleted_orders = lifecycle.cascade_delete_for_book(books, book_id)
    return BookDeleted(message="Book and related orders deleted", deleted_orders=deleted_orders)


# --- wishlist ---

@router.post("/wishlist", response_model=InsertAck)
def add_to_wishlist(payload: WishlistCreate, wishlist: WishlistStore = Depends(get_wishlist_store)):
    return wishlist.insert(**payload.model_dump())


@router.get("/wishlist/{email}", response_model=List[WishlistOut])
def get_wishlist(email: str, wishlist: WishlistStore = Depends(get_wishlist_store)):
    return [WishlistOut.model_validate(item) for item in wishlist.for_email(email)]


@router.delete("/wishlist/{item_id}", response_model=DeleteAck)
def remove_from_wishlist(item_id: str, wishlist: WishlistStore = Depends(get_wishlist_store)):
    ack = wishlist.delete(item_id)
    if ack.deleted_count == 0:
        raise NotFoundError("Wishlist item not found")
    return ack
