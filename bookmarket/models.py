import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Float, DateTime

from bookmarket.database import Base


def new_id():
    return uuid.uuid4().hex


def utcnow():
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=new_id)
    book_id = Column(String, index=True)
    book_name = Column(String)
    seller_email = Column(String, index=True)
    customer_email = Column(String, index=True)
    price = Column(Float, nullable=False)
    status = Column(String, nullable=False, default="pending")           # pending | paid | cancelled
    payment_status = Column(String, nullable=False, default="unpaid")    # unpaid | paid
    transaction_id = Column(String, unique=True, index=True)            # Stripe PaymentIntent ID
    created_at = Column(DateTime, nullable=False, default=utcnow)
    paid_at = Column(DateTime)


class User(Base):
    __tablename__ = "user"

    id = Column(String, primary_key=True, default=new_id)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String)
    photo_url = Column(String)
    role = Column(String, nullable=False, default="customer")            # customer | librarian | admin
    created_at = Column(DateTime, nullable=False, default=utcnow)
    last_login_at = Column(DateTime)


class Book(Base):
    __tablename__ = "books"

    id = Column(String, primary_key=True, default=new_id)
    title = Column(String, nullable=False)
    author = Column(String)
    image = Column(String)
    price = Column(Float, nullable=False)
    status = Column(String, nullable=False, default="published")         # published | unpublished
    seller_email = Column(String, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class WishlistItem(Base):
    __tablename__ = "wishList"

    id = Column(String, primary_key=True, default=new_id)
    book_id = Column(String, nullable=False)
    book_name = Column(String)
    email = Column(String, index=True, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
