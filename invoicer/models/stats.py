"""Statistics snapshot models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from invoicer.models.entities import Invoice, utc_now


class MonthlyBucket(BaseModel):
    """Invoices issued in one calendar month of the current year."""

    month: int = Field(..., ge=1, le=12)
    label: str = Field(..., description="Short month name, e.g. 'Mar'")
    invoice_count: int = Field(default=0, ge=0)
    revenue: Decimal = Field(
        default=Decimal("0.00"),
        description="Sum of totals of PAID invoices issued that month"
    )


class StatsSnapshot(BaseModel):
    """
    Dashboard figures for one owner. Recomputed on every request.

    `monthly` always has 12 entries, January first.
    """

    generated_at: datetime = Field(default_factory=utc_now)
    year: int
    month: int = Field(..., ge=1, le=12)
    currency: str = Field(
        default="EUR",
        description="ISO code of every amount in the snapshot"
    )
    invoices_this_month: int = 0
    total_revenue: Decimal = Field(
        default=Decimal("0.00"),
        description="All-time sum of totals of PAID invoices"
    )
    active_clients: int = 0
    active_products: int = 0
    monthly: list[MonthlyBucket] = Field(default_factory=list)
    recent_invoices: list[Invoice] = Field(default_factory=list)
