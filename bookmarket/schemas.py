from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Records travel as camelCase JSON; Python code uses snake_case names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# --- mutation acknowledgements ---

class InsertAck(CamelModel):
    acknowledged: bool = True
    inserted_id: str


class UpdateAck(CamelModel):
    """Counts are rows the filter matched; SQL reports no separate modified count,
    so modified_count equals matched_count except for empty updates."""

    acknowledged: bool = True
    matched_count: int
    modified_count: int
    upserted_id: Optional[str] = None


class DeleteAck(CamelModel):
    acknowledged: bool = True
    deleted_count: int


class Message(BaseModel):
    message: str


# --- orders ---

class OrderCreate(CamelModel):
    book_id: str = Field(min_length=1)
    book_name: Optional[str] = None
    seller_email: EmailStr
    customer_email: EmailStr
    price: float = Field(gt=0)


class OrderOut(CamelModel):
    id: str
    book_id: Optional[str] = None
    book_name: Optional[str] = None
    seller_email: Optional[str] = None
    customer_email: Optional[str] = None
    price: float
    status: str
    payment_status: str
    transaction_id: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None


class StatusUpdate(BaseModel):
    # Checked against the transition table once the caller is authorized
    status: str


# --- payments ---

class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    price: float = Field(gt=0)
    book_name: str = Field(alias="bookName", min_length=1)
    customer_email: EmailStr
    order_id: str = Field(alias="orderId", min_length=1)


class CheckoutResponse(BaseModel):
    url: str


class ReconcileResult(CamelModel):
    session_id: str
    order_id: Optional[str] = None
    payment_status: str
    transaction_id: Optional[str] = None
    applied: bool
    already_applied: bool = False


# --- users ---

class UserUpsert(CamelModel):
    email: EmailStr
    name: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")


class RoleOut(BaseModel):
    role: str


class RoleUpdate(BaseModel):
    role: str


# --- books ---

class BookCreate(CamelModel):
    title: str = Field(min_length=1)
    author: Optional[str] = None
    image: Optional[str] = None
    price: float = Field(gt=0)
    seller_email: Optional[EmailStr] = None


class BookUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    author: Optional[str] = None
    image: Optional[str] = None
    price: Optional[float] = Field(default=None, gt=0)

    @field_validator("title", "price")
    @classmethod
    def not_null(cls, value):
        # May be omitted, but not cleared
        if value is None:
            raise ValueError("must not be null")
        return value


class BookOut(CamelModel):
    id: str
    title: str
    author: Optional[str] = None
    image: Optional[str] = None
    price: float
    status: str
    seller_email: Optional[str] = None
    created_at: datetime


class BookStatusUpdate(BaseModel):
    status: str


class BookDeleted(CamelModel):
    message: str
    deleted_orders: int


# --- wishlist ---

class WishlistCreate(CamelModel):
    book_id: str = Field(min_length=1)
    book_name: Optional[str] = None
    email: EmailStr


class WishlistOut(CamelModel):
    id: str
    book_id: str
    book_name: Optional[str] = None
    email: str
    created_at: datetime
