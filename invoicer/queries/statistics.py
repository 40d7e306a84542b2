"""
Statistics Aggregator

DESIGN DECISION: Statistics are DERIVED, never stored.
Every call scans the owner's invoices, clients and products afresh,
so the figures can never drift from the records they describe.

Revenue only counts PAID invoices. Invoice counts include every status.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from invoicer.billing import to_money
from invoicer.config import InvoicingSettings, get_settings
from invoicer.models.entities import Invoice, InvoiceStatus, utc_now
from invoicer.models.stats import MonthlyBucket, StatsSnapshot
from invoicer.services.storage import InvoicingStoreInterface


MONTH_LABELS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]


class StatisticsAggregator:
    """
    Read-only dashboard computation over the entity store.

    GUARANTEES:
    - Only reads, never writes
    - All 12 months are present, empty ones as zero buckets
    - Only the owner's records are counted
    """

    def __init__(
        self,
        store: InvoicingStoreInterface,
        settings: Optional[InvoicingSettings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._settings = settings or get_settings()
        self._clock = clock

    def get_statistics(self, owner_id: int) -> StatsSnapshot:
        now = self._clock()
        invoices = [
            Invoice.model_validate(detail.model_dump(exclude={"client", "lines"}))
            for detail in self._store.list_invoices(owner_id)
        ]

        this_month = [
            inv for inv in invoices
            if inv.issue_date.year == now.year and inv.issue_date.month == now.month
        ]

        return StatsSnapshot(
            generated_at=now,
            year=now.year,
            month=now.month,
            currency=self._settings.currency,
            invoices_this_month=len(this_month),
            total_revenue=self._revenue(invoices),
            active_clients=len(self._store.list_clients(owner_id)),
            active_products=len(self._store.list_products(owner_id)),
            monthly=self._monthly_series(invoices, now.year),
            recent_invoices=self._recent(invoices),
        )

    def _revenue(self, invoices: list[Invoice]) -> Decimal:
        return to_money(sum(
            (inv.total for inv in invoices if inv.status == InvoiceStatus.PAID),
            Decimal("0"),
        ))

    def _monthly_series(self, invoices: list[Invoice], year: int) -> list[MonthlyBucket]:
        """One bucket per month of `year`, January first."""
        groups: dict[int, list[Invoice]] = {month: [] for month in range(1, 13)}
        for inv in invoices:
            if inv.issue_date.year == year:
                groups[inv.issue_date.month].append(inv)

        return [
            MonthlyBucket(
                month=month,
                label=MONTH_LABELS[month - 1],
                invoice_count=len(groups[month]),
                revenue=self._revenue(groups[month]),
            )
            for month in range(1, 13)
        ]

    def _recent(self, invoices: list[Invoice]) -> list[Invoice]:
        ordered = sorted(invoices, key=lambda inv: (inv.issue_date, inv.id), reverse=True)
        return ordered[:self._settings.recent_invoices_limit]
