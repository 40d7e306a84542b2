"""
Input Models for Invoicer

What callers hand to the service. None of these carry ids or owners:
the store assigns ids and the service stamps the acting owner.

Update models are partial. Only the fields the caller actually set are
applied (model_dump(exclude_unset=True)).
"""

import re
from datetime import datetime, timezone
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from invoicer.models.entities import InvoiceStatus, Money, UserRole


MAX_QUANTITY = 1_000_000
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

OptionalText = Annotated[Optional[str], Field(max_length=200)]


def _check_email(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    if not EMAIL_PATTERN.match(v):
        raise ValueError(f"Invalid email address: {v}")
    return v.lower()


def _as_utc(v: Optional[datetime]) -> Optional[datetime]:
    # Naive datetimes are taken as UTC so they compare with stored stamps
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class RequestContext(BaseModel):
    """Where a request came from. Copied into audit entries."""

    ip: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=500)


# =============================================================================
# USERS
# =============================================================================

class UserRegistration(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=6, repr=False)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)
    role: UserRole = UserRole.STANDARD

    normalize_email = field_validator("email")(_check_email)


class UserUpdate(BaseModel):
    """Profile edits. Role and active flag are not self-service."""
    model_config = ConfigDict(str_strip_whitespace=True)

    email: Optional[str] = Field(default=None, min_length=3, max_length=254)
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)

    normalize_email = field_validator("email")(_check_email)


# =============================================================================
# CLIENTS
# =============================================================================

class ClientData(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    email: OptionalText = None
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=500)
    city: OptionalText = None
    postal_code: Optional[str] = Field(default=None, max_length=20)
    country: OptionalText = None
    tax_id: Optional[str] = Field(default=None, max_length=50)

    normalize_email = field_validator("email")(_check_email)


class ClientUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: OptionalText = None
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=500)
    city: OptionalText = None
    postal_code: Optional[str] = Field(default=None, max_length=20)
    country: OptionalText = None
    tax_id: Optional[str] = Field(default=None, max_length=50)

    normalize_email = field_validator("email")(_check_email)


# =============================================================================
# PRODUCTS
# =============================================================================

class ProductData(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    unit_price: Money
    category: Optional[str] = Field(default=None, max_length=100)
    code: Optional[str] = Field(default=None, max_length=50)
    stock: int = Field(default=0, ge=0)


class ProductUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    unit_price: Optional[Money] = None
    category: Optional[str] = Field(default=None, max_length=100)
    code: Optional[str] = Field(default=None, max_length=50)
    stock: Optional[int] = Field(default=None, ge=0)


# =============================================================================
# INVOICES
# =============================================================================

class LineItemInput(BaseModel):
    """
    One requested invoice line.

    A line either references a catalogue product (description and price
    default to the product's) or is free text with an explicit price.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    product_id: Optional[int] = None
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    quantity: int = Field(..., ge=1, le=MAX_QUANTITY, description="Units, a positive integer")
    unit_price: Optional[Money] = None

    @model_validator(mode='after')
    def validate_source(self) -> 'LineItemInput':
        if self.product_id is None:
            if not self.description:
                raise ValueError("A free-text line needs a description")
            if self.unit_price is None:
                raise ValueError("A free-text line needs a unit price")
        return self


class InvoiceDraft(BaseModel):
    """
    A request to create an invoice.

    Number, subtotal, tax and total are never accepted from the caller;
    the composer derives them.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    client_id: int
    lines: list[LineItemInput] = Field(default_factory=list)
    issue_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    status: InvoiceStatus = InvoiceStatus.PENDING
    notes: Optional[str] = Field(default=None, max_length=1000)

    normalize_dates = field_validator("issue_date", "due_date")(_as_utc)


class InvoiceUpdate(BaseModel):
    """The mutable part of an invoice."""
    model_config = ConfigDict(str_strip_whitespace=True)

    status: Optional[InvoiceStatus] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=1000)

    normalize_dates = field_validator("due_date")(_as_utc)


class NewInvoiceLine(BaseModel):
    """A line whose total has been computed, ready to persist."""

    product_id: Optional[int] = None
    description: str = Field(..., min_length=1, max_length=500)
    quantity: int = Field(..., ge=1)
    unit_price: Money
    total: Money


class NewInvoice(BaseModel):
    """An invoice header whose number and amounts have been computed."""

    client_id: int
    number: str
    issue_date: datetime
    due_date: Optional[datetime] = None
    subtotal: Money
    tax_amount: Money
    total: Money
    status: InvoiceStatus = InvoiceStatus.PENDING
    notes: Optional[str] = None


# =============================================================================
# COMPANY
# =============================================================================

class CompanyProfileData(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    address: Optional[str] = Field(default=None, max_length=500)
    phone: Optional[str] = Field(default=None, max_length=50)
    email: OptionalText = None
    tax_id: Optional[str] = Field(default=None, max_length=50)
    logo_url: Optional[str] = Field(default=None, max_length=1000)

    normalize_email = field_validator("email")(_check_email)
