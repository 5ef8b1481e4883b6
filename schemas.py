from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field

from orders import OrderType
from payment import PaymentMethod
from tables import TableStatus
from users import UserRole


# ---------- Products ----------
class ProductCreate(BaseModel):
    name: str
    price: int = Field(..., ge=0)
    category: str
    stock: int = Field(default=0, ge=0)
    image: str = ""


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    price: Optional[int] = Field(default=None, ge=0)
    category: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)
    image: Optional[str] = None


# ---------- Tables & bookings ----------
class TableStatusUpdate(BaseModel):
    status: TableStatus


class BookingCreate(BaseModel):
    customer_name: str
    table_id: str
    booking_date: date
    booking_time: time
    party_size: int = 2


# ---------- Expenses ----------
class ExpenseCreate(BaseModel):
    category: str
    amount: int
    description: str = ""
    expense_date: Optional[datetime] = None


# ---------- Checkout ----------
class CartItemAdd(BaseModel):
    product_id: str


class CartQuantityChange(BaseModel):
    delta: int


class OrderTypeSelect(BaseModel):
    order_type: OrderType


class TableSelect(BaseModel):
    table_id: Optional[str] = None


class PaymentSelect(BaseModel):
    method: PaymentMethod


# ---------- Users ----------
class UserRegister(BaseModel):
    name: str
    email: str
    password: str


class UserLogin(BaseModel):
    email: str
    password: str


class UserApprove(BaseModel):
    role: UserRole = UserRole.STAFF
