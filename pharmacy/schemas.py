import re
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


class Address(BaseModel):
    street: str
    city: str
    state: str
    zip_code: str
    country: str


# -----------------------------
# Users / auth
# -----------------------------

_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "one upper-case letter"),
    (re.compile(r"[a-z]"), "one lower-case letter"),
    (re.compile(r"[0-9]"), "one digit"),
    (re.compile(r"[^A-Za-z0-9]"), "one special character"),
)


def check_password_policy(password: str) -> str:
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if len(password.encode("utf-8")) > 72:
        raise ValueError("Password must be at most 72 bytes long")
    missing = [label for pattern, label in _PASSWORD_RULES if not pattern.search(password)]
    if missing:
        raise ValueError("Password must contain at least " + ", ".join(missing))
    return password


class UserCreate(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=2, max_length=100)
    password: str = Field(..., description="Min 8 chars with upper, lower, digit and special character")

    @field_validator("password")
    @classmethod
    def _check_password(cls, v: str) -> str:
        return check_password_policy(v)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.lower()


class AdminSetup(UserCreate):
    name: str = Field(..., min_length=3, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserOut(BaseModel):
    id: int
    email: EmailStr
    name: str
    role: Role

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserOut


class CurrentUser(BaseModel):
    """Identity carried by a verified bearer token."""

    id: int
    email: str
    role: Role


# -----------------------------
# Products
# -----------------------------

class ProductBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(..., ge=0)
    category: str = Field(..., min_length=1, max_length=50)
    sku: str = Field(..., min_length=3, max_length=64)


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    sku: Optional[str] = Field(None, min_length=3, max_length=64)


class ProductOut(ProductBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProductResponse(BaseModel):
    message: str
    product: ProductOut


# -----------------------------
# Customers
# -----------------------------

class CustomerBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[Address] = None
    notes: Optional[str] = None


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[Address] = None
    notes: Optional[str] = None


class CustomerOut(CustomerBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CustomerResponse(BaseModel):
    message: str
    customer: CustomerOut


# -----------------------------
# Orders
# -----------------------------

class OrderItemCreate(BaseModel):
    """Line item as sent by the client; price defaults to the product's current price."""

    product_id: int = Field(..., gt=0, description="Product ID")
    quantity: int = Field(..., gt=0, description="Product quantity")
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2, description="Unit price")


class OrderCreate(BaseModel):
    customer_id: int = Field(..., gt=0, description="Customer ID")
    items: List[OrderItemCreate] = Field(..., min_length=1, description="List of order items")
    payment_method: str = Field(..., min_length=1, max_length=50)
    shipping_address: Optional[Address] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: int
    price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: int
    customer_id: int
    total: Decimal
    status: OrderStatus
    payment_method: str
    payment_status: PaymentStatus
    shipping_address: Optional[Address] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut] = []

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    message: str
    order: OrderOut


class OrderListResponse(BaseModel):
    orders: List[OrderOut]
    total: int


# -----------------------------
# Dashboard
# -----------------------------

class TopProduct(BaseModel):
    product_id: int
    total_sold: int
    product: Optional[ProductOut] = None


class DashboardMetrics(BaseModel):
    total_products: int
    low_stock_products: int
    total_orders: int
    total_customers: int
    total_revenue: Decimal
    orders_by_status: Dict[str, int]
    top_products: List[TopProduct]


class DashboardResponse(BaseModel):
    metrics: DashboardMetrics
    recent_orders: List[OrderOut]
