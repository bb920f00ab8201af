from __future__ import annotations

import datetime as dt
import re
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from booking_ledger.models import OrderStatus, PaymentStatus

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    token: str
    roles: list[str]


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class OrderResponse(BaseModel):
    id: int
    user_id: int | None
    order_date: dt.datetime
    total_amount: Decimal
    order_status: OrderStatus
    payment_status: PaymentStatus
    is_booking: bool
    booking_title: str | None
    booking_details: str | None
    resource_id: int | None

    model_config = ConfigDict(from_attributes=True)


class OrderPage(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    page_size: int


class OrderFilters(BaseModel):
    """Bind to a FastAPI route via Depends(OrderFilters)."""

    status: OrderStatus | None = None
    # Case-insensitive substring of the booking title
    name: str | None = None

    # Pagination (zero-based)
    page: int = Field(default=0, ge=0)
    page_size: int = Field(default=10, ge=1, le=100)

    @property
    def name_keyword(self) -> str | None:
        if self.name is None or not self.name.strip():
            return None
        return self.name.lower()


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class BookingOrderCreate(BaseModel):
    total_amount: Decimal = Field(ge=0)
    booking_title: str = Field(min_length=1, max_length=255)
    booking_details: str | None = Field(default=None, max_length=4000)

    @field_validator("booking_title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("booking_title must not be blank")
        return v


# ---------------------------------------------------------------------------
# Resource bookings
# ---------------------------------------------------------------------------


class BookingSlot(BaseModel):
    start_time: str
    end_time: str
    unit: int = Field(default=1, gt=0)

    @field_validator("start_time", "end_time")
    @classmethod
    def require_hh_mm(cls, v: str) -> str:
        if not _TIME_RE.match(v):
            raise ValueError("time must be HH:mm (24h)")
        return v


class BookRequest(BookingSlot):
    date: dt.date


class BookBatchRequest(BaseModel):
    date: dt.date
    slots: list[BookingSlot] = Field(min_length=1)
