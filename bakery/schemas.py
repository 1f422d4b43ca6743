# bakery/schemas.py
"""
Request bodies.

Public (customer) endpoints speak camelCase, admin endpoints speak the
snake_case column names, matching what the two front-ends send.
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)

from .pickup import parse_ymd

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2)]
Phone = Annotated[str, StringConstraints(strip_whitespace=True, min_length=6)]
Trimmed = Annotated[str, StringConstraints(strip_whitespace=True)]

OrderStatus = Literal["pending", "fulfilled", "canceled"]


def _ymd(v):
    if v is None or isinstance(v, date):
        return v
    if not isinstance(v, str):
        raise ValueError("Expected YYYY-MM-DD")
    return parse_ymd(v)


Ymd = Annotated[date, BeforeValidator(_ymd)]


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# -------------------
# Public
# -------------------
class OrderLineIn(_CamelModel):
    product_id: int = Field(alias="productId", gt=0)
    quantity: int = Field(ge=1, le=99)


class PatchLineIn(_CamelModel):
    product_id: int = Field(alias="productId", gt=0)
    quantity: int = Field(ge=0, le=99)


class CreateOrderIn(_CamelModel):
    customer_name: Name = Field(alias="customerName")
    customer_email: EmailStr = Field(alias="customerEmail")
    customer_phone: Phone = Field(alias="customerPhone")
    pickup_date: Ymd = Field(alias="pickupDate")
    pickup_location: Trimmed = Field(alias="pickupLocation")
    items: list[OrderLineIn] = Field(min_length=1)

class PatchOrderIn(_CamelModel):
    customer_name: Name | None = Field(default=None, alias="customerName")
    customer_email: EmailStr | None = Field(default=None, alias="customerEmail")
    customer_phone: Phone | None = Field(default=None, alias="customerPhone")
    pickup_date: Ymd | None = Field(default=None, alias="pickupDate")
    pickup_location: Trimmed | None = Field(default=None, alias="pickupLocation")
    items: list[PatchLineIn] | None = None

# -------------------
# Admin
# -------------------
class AdminLoginIn(BaseModel):
    password: str


class ProductIn(BaseModel):
    name: Name
    description: Trimmed = ""
    price_cents: int = Field(ge=0)
    image_url: Trimmed = ""
    weight_grams: int | None = Field(default=None, gt=0)

    variant_group: Trimmed | None = None
    variant_label: Trimmed | None = None
    variant_sort: int | None = None

    is_available: bool
    unavailable_reason: Trimmed | None = None

    @field_validator("variant_group", "variant_label", "unavailable_reason")
    @classmethod
    def _blank_is_none(cls, v: str | None) -> str | None:
        return v or None

    @model_validator(mode="after")
    def _label_required_in_group(self):
        if self.variant_group and not self.variant_label:
            raise ValueError("variant_label is required when variant_group is set")
        return self


class ProductPatch(BaseModel):
    """Partial update; fields sent as null clear the stored value."""

    name: Name | None = None
    description: Trimmed | None = None
    price_cents: int | None = Field(default=None, ge=0)
    image_url: Trimmed | None = None
    weight_grams: int | None = Field(default=None, gt=0)

    variant_group: Trimmed | None = None
    variant_label: Trimmed | None = None
    variant_sort: int | None = None

    is_available: bool | None = None
    unavailable_reason: Trimmed | None = None

    @field_validator("variant_group", "variant_label", "unavailable_reason")
    @classmethod
    def _blank_is_none(cls, v: str | None) -> str | None:
        return v or None


class SetStatusIn(BaseModel):
    status: OrderStatus


class RescheduleIn(BaseModel):
    pickup_date: Ymd
    pickup_location: Trimmed

class CustomerIn(BaseModel):
    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3)]
    name: Trimmed | None = None
    phone: Trimmed | None = None
    notes: Trimmed | None = None
