import os

# Must be in place before the application modules read their configuration
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-identity-secret")
os.environ.setdefault("CLIENT_DOMAIN", "http://localhost:5173")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bookmarket.main import app as fastapi_app
from bookmarket.database import Base, get_db
from bookmarket.models import Book, Order, User

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_temp.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={
                       "check_same_thread": False})
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db():
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def auth_header():
    def make(email):
        token = jwt.encode({"email": email}, os.environ["JWT_SECRET"], algorithm="HS256")
        return {"Authorization": f"Bearer {token}"}
    return make


@pytest.fixture
def add_user(db):
    def make(email, role="customer"):
        user = User(email=email, role=role)
        db.add(user)
        db.commit()
        return user.id
    return make


@pytest.fixture
def add_order(db):
    def make(**fields):
        values = {
            "book_id": "book-1",
            "book_name": "Dune",
            "seller_email": "seller@example.com",
            "customer_email": "reader@example.com",
            "price": 500,
        }
        values.update(fields)
        order = Order(**values)
        db.add(order)
        db.commit()
        return order.id
    return make


@pytest.fixture
def add_book(db):
    def make(**fields):
        values = {"title": "Dune", "price": 500, "seller_email": "seller@example.com",
                  "created_at": datetime(2026, 1, 1)}
        values.update(fields)
        book = Book(**values)
        db.add(book)
        db.commit()
        return book.id
    return make
