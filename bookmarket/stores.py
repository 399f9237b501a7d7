import logging
from typing import List, Optional

from fastapi import Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bookmarket.database import get_db
from bookmarket.models import Book, Order, User, WishlistItem, utcnow
from bookmarket.schemas import DeleteAck, InsertAck, UpdateAck

logger = logging.getLogger(__name__)


class OrderStore:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, **fields) -> InsertAck:
        order = Order(**fields)
        self.db.add(order)
        self.db.commit()
        return InsertAck(inserted_id=order.id)

    def find(self, seller_email: Optional[str] = None, customer_email: Optional[str] = None) -> List[Order]:
        query = self.db.query(Order)
        if seller_email:
            query = query.filter_by(seller_email=seller_email)
        if customer_email:
            query = query.filter_by(customer_email=customer_email)
        return query.order_by(Order.created_at).all()

    def get(self, order_id: str) -> Optional[Order]:
        return self.db.get(Order, order_id)

    def find_by_transaction(self, transaction_id: str) -> Optional[Order]:
        return self.db.query(Order).filter_by(transaction_id=transaction_id).first()

    def paid_for_customer(self, customer_email: str) -> List[Order]:
        return (
            self.db.query(Order)
            .filter_by(customer_email=customer_email, payment_status="paid")
            .order_by(Order.created_at.desc())
            .all()
        )

    def update(self, order_id: str, match: Optional[dict] = None, **fields) -> UpdateAck:
        """Single-row update; `match` adds column values the row must still hold."""
        query = self.db.query(Order).filter(Order.id == order_id)
        if match:
            query = query.filter_by(**match)
        matched = query.update(fields, synchronize_session=False)
        self.db.commit()
        return UpdateAck(matched_count=matched, modified_count=matched)

    def delete(self, order_id: str) -> DeleteAck:
        deleted = self.db.query(Order).filter(Order.id == order_id).delete(synchronize_session=False)
        self.db.commit()
        return DeleteAck(deleted_count=deleted)

    def delete_for_book(self, book_id: str) -> int:
        # Caller owns the transaction
        return self.db.query(Order).filter(Order.book_id == book_id).delete(synchronize_session=False)


class UserStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter_by(email=email).first()

    def upsert(self, email: str, **fields) -> UpdateAck:
        fields = {k: v for k, v in fields.items() if v is not None}
        now = utcnow()

        user = self.get_by_email(email)
        if user is None:
            user = User(email=email, role="customer", created_at=now, last_login_at=now, **fields)
            self.db.add(user)
            try:
                self.db.commit()
            except IntegrityError:
                # Lost the race against a concurrent first login
                self.db.rollback()
                return self.upsert(email, **fields)
            logger.info("Created user %s", email)
            return UpdateAck(matched_count=0, modified_count=0, upserted_id=user.id)

        for key, value in fields.items():
            setattr(user, key, value)
        user.last_login_at = now
        self.db.commit()
        return UpdateAck(matched_count=1, modified_count=1)

    def update_role(self, user_id: str, role: str) -> UpdateAck:
        matched = self.db.query(User).filter(User.id == user_id).update(
            {"role": role}, synchronize_session=False
        )
        self.db.commit()
        return UpdateAck(matched_count=matched, modified_count=matched)


class BookStore:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, **fields) -> InsertAck:
        book = Book(**fields)
        self.db.add(book)
        self.db.commit()
        return InsertAck(inserted_id=book.id)

    def all(self) -> List[Book]:
        return self.db.query(Book).order_by(Book.created_at).all()

    def get(self, book_id: str) -> Optional[Book]:
        return self.db.get(Book, book_id)

    def update(self, book_id: str, **fields) -> UpdateAck:
        if not fields:
            matched = 1 if self.get(book_id) is not None else 0
            return UpdateAck(matched_count=matched, modified_count=0)
        matched = self.db.query(Book).filter(Book.id == book_id).update(fields, synchronize_session=False)
        self.db.commit()
        return UpdateAck(matched_count=matched, modified_count=matched)

    def delete(self, book_id: str) -> int:
        # Caller owns the transaction
        return self.db.query(Book).filter(Book.id == book_id).delete(synchronize_session=False)


class WishlistStore:
    def __init__(self, db: Session):
        self.db = db

    def insert(self, **fields) -> InsertAck:
        item = WishlistItem(**fields)
        self.db.add(item)
        self.db.commit()
        return InsertAck(inserted_id=item.id)

    def for_email(self, email: str) -> List[WishlistItem]:
        return self.db.query(WishlistItem).filter_by(email=email).order_by(WishlistItem.created_at.desc()).all()

    def delete(self, item_id: str) -> DeleteAck:
        deleted = self.db.query(WishlistItem).filter(WishlistItem.id == item_id).delete(synchronize_session=False)
        self.db.commit()
        return DeleteAck(deleted_count=deleted)


def get_order_store(db: Session = Depends(get_db)) -> OrderStore:
    return OrderStore(db)


def get_user_store(db: Session = Depends(get_db)) -> UserStore:
    return UserStore(db)


def get_book_store(db: Session = Depends(get_db)) -> BookStore:
    return BookStore(db)


def get_wishlist_store(db: Session = Depends(get_db)) -> WishlistStore:
    return WishlistStore(db)
