"""
Request and response bodies for the storefront API.

Field names are snake_case in Python and camelCase on the wire, so
``image_url`` travels as ``imageUrl``. Both spellings are accepted on input.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ---------- Catalog ----------

class VariantIn(CamelModel):
    id: Optional[int] = None
    size: str
    stock: int = Field(0, ge=0)
    price_adjustment: float = 0


class ImageIn(CamelModel):
    image_url: str
    display_order: int = 0


class VariantOut(CamelModel):
    id: int
    product_id: int
    size: str
    stock: int
    price_adjustment: float = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ImageOut(CamelModel):
    id: int
    product_id: int
    image_url: str
    display_order: int


class ProductCreate(CamelModel):
    name: str
    description: Optional[str] = None
    price: float
    category: str
    image_url: Optional[str] = None
    in_stock: bool = True
    variants: List[VariantIn] = []
    images: List[ImageIn] = []


class ProductUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    in_stock: Optional[bool] = None
    variants: Optional[List[VariantIn]] = None
    images: Optional[List[ImageIn]] = None


class ProductOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    category: str
    image_url: Optional[str] = None
    in_stock: bool
    created_at: datetime
    updated_at: datetime
    variants: List[VariantOut] = []
    images: List[ImageOut] = []


# ---------- Users ----------

class RegisterRequest(CamelModel):
    email: str
    password: str
    name: str
    phone: Optional[str] = None


class LoginRequest(CamelModel):
    email: str
    password: str


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class UserOut(CamelModel):
    id: int
    email: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    avatar_url: Optional[str] = None
    role: str
    created_at: datetime
    updated_at: datetime


# ---------- Orders ----------

class CustomerInfo(CamelModel):
    name: str
    phone: str
    email: Optional[str] = None
    address: Optional[str] = None


class OrderItemIn(CamelModel):
    product_id: Optional[int] = None
    variant_id: Optional[int] = None
    quantity: int


class OrderCreate(CamelModel):
    items: List[OrderItemIn] = []
    customer_info: CustomerInfo
    notes: Optional[str] = None


class OrderItemOut(CamelModel):
    product_id: int
    product_name: str
    variant_id: Optional[int] = None
    variant_size: Optional[str] = None
    quantity: int
    price: float


class OrderOut(CamelModel):
    id: int
    user_id: Optional[int] = None
    items: List[OrderItemOut]
    total_amount: float
    status: str
    customer_info: CustomerInfo
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order) -> "OrderOut":
        return cls(
            id=order.id,
            user_id=order.user_id,
            items=[OrderItemOut.model_validate(item) for item in order.items],
            total_amount=order.total_amount,
            status=order.status,
            customer_info=CustomerInfo(
                name=order.customer_name,
                phone=order.customer_phone,
                email=order.customer_email,
                address=order.customer_address,
            ),
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderStatusUpdate(CamelModel):
    status: str


# ---------- Cart ----------

class CartItemIn(CamelModel):
    product_id: int
    product_name: str
    variant_id: Optional[int] = None
    variant_size: Optional[str] = None
    quantity: int = Field(..., gt=0)
    price: float = Field(..., ge=0)
    image_url: Optional[str] = None


class CartItemOut(CamelModel):
    product_id: int
    product_name: str
    variant_id: Optional[int] = None
    variant_size: Optional[str] = None
    quantity: int
    price: float
    image_url: Optional[str] = None


class CartSave(CamelModel):
    items: List[CartItemIn]


class CartQuantityUpdate(CamelModel):
    quantity: int


# ---------- Storage ----------

class UploadOut(CamelModel):
    url: str
    key: str
