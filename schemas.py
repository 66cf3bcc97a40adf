"""
Database Schemas for the Shop API

Each Pydantic model corresponds to one MongoDB collection.
Collection name is the lowercase of the class name:
- Product -> "product"
- User -> "user"
- Order -> "order"

Records are validated here before every write; stored field names are the
JSON names clients see (``userId``, ``productId``, ``createdAt``).
"""
from datetime import datetime, timezone
from typing import Annotated, Iterable, List

from bson import ObjectId
from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field


def _to_object_id(value):
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    raise ValueError("must be a 24 character hex ObjectId")


PyObjectId = Annotated[ObjectId, BeforeValidator(_to_object_id)]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(..., ge=0)
    image: str = ""


class User(BaseModel):
    name: str = Field(..., min_length=1, description="Full name")
    email: EmailStr = Field(..., description="Unique, lower-cased email address")
    password: str = Field(..., description="bcrypt hash, never the plain password")


class OrderItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True, allow_inf_nan=False)

    product_id: PyObjectId = Field(..., alias="productId")
    quantity: float
    price: float


class Order(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True, allow_inf_nan=False)

    user_id: PyObjectId = Field(..., alias="userId")
    items: List[OrderItem] = Field(..., min_length=1)
    total: float
    created_at: datetime = Field(default_factory=_utcnow, alias="createdAt")


def order_total(items: Iterable[OrderItem]) -> float:
    """Sum of ``price * quantity``.  Prices are taken as submitted, not repriced from the catalogue."""
    return sum(item.price * item.quantity for item in items)
