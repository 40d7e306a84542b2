"""
Core Data Models for Invoicer

These models define the stored shape of every record in the system.
They are designed to:
1. Enforce type safety at runtime
2. Keep money as Decimal with two decimal places
3. Be serializable for storage and logging (Decimal dumps as a string in JSON mode)
4. Carry the owner reference that scopes every read and write

DESIGN DECISION: Stored records always carry an integer id assigned by the
store. Inputs without ids live in invoicer.models.inputs.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# Up to 9,999,999,999,999.99
MONEY_DIGITS = 15
MAX_AMOUNT = Decimal("9999999999999.99")

Money = Annotated[Decimal, Field(ge=0, max_digits=MONEY_DIGITS, decimal_places=2)]


def utc_now() -> datetime:
    """Timezone-aware current time, used for every stamped timestamp."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class UserRole(str, Enum):
    """Account role."""
    ADMIN = "admin"
    STANDARD = "standard"


class InvoiceStatus(str, Enum):
    """
    Invoice payment status.

    Only PAID invoices count towards revenue.
    """
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


# =============================================================================
# IDENTITY
# =============================================================================

class User(BaseModel):
    """
    An account. Owns every client, product, invoice and company profile
    created under it. Users are deactivated, never deleted.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    email: str = Field(..., min_length=3, max_length=254)
    password_hash: str = Field(..., repr=False)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)
    role: UserRole = UserRole.STANDARD
    active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# =============================================================================
# CATALOGUE
# =============================================================================

class Client(BaseModel):
    """
    A billable party.

    Deleting a client only clears `active`; invoices keep resolving it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    owner_id: int
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    tax_id: Optional[str] = Field(
        default=None,
        description="NIF / VAT number"
    )
    active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Product(BaseModel):
    """A catalogue item. Same soft-delete semantics as Client."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    owner_id: int
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    unit_price: Money
    category: Optional[str] = None
    code: Optional[str] = Field(
        default=None,
        description="Code / SKU"
    )
    stock: int = Field(default=0, ge=0)
    active: bool = True
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# INVOICES
# =============================================================================

class InvoiceLine(BaseModel):
    """
    A single priced entry of an invoice.

    Lines are immutable once the invoice exists.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: int
    invoice_id: int
    product_id: Optional[int] = None
    description: str = Field(..., min_length=1, max_length=500)
    quantity: int = Field(..., ge=1)
    unit_price: Money
    total: Money

    @model_validator(mode='after')
    def validate_total(self) -> 'InvoiceLine':
        if self.total != self.quantity * self.unit_price:
            raise ValueError("Line total must equal quantity * unit price")
        return self


class Invoice(BaseModel):
    """
    The central record.

    INVARIANT: total == subtotal + tax_amount. Totals are fixed at
    creation; only status, due date and notes change afterwards.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    owner_id: int
    client_id: int
    number: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Sequential number, e.g. FAC-2024-007"
    )
    issue_date: datetime = Field(default_factory=utc_now)
    due_date: Optional[datetime] = None
    subtotal: Money
    tax_amount: Money
    total: Money
    status: InvoiceStatus = InvoiceStatus.PENDING
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_amounts(self) -> 'Invoice':
        if self.total != self.subtotal + self.tax_amount:
            raise ValueError("Invoice total must equal subtotal + tax")
        if self.due_date and self.due_date < self.issue_date:
            raise ValueError("Due date cannot be before issue date")
        return self


class InvoiceDetail(Invoice):
    """An invoice together with its client and its lines."""

    client: Client
    lines: list[InvoiceLine] = Field(default_factory=list)


# =============================================================================
# COMPANY
# =============================================================================

class CompanyProfile(BaseModel):
    """
    The issuing company shown on invoices. At most one per owner.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int
    owner_id: int
    name: str = Field(..., min_length=1, max_length=200)
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    tax_id: Optional[str] = None
    logo_url: Optional[str] = None
