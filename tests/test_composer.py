"""Tests for invoice arithmetic, numbering and creation."""

from datetime import timedelta
from decimal import Decimal

import pytest

from invoicer.billing import InvoiceComposer, to_money
from invoicer.errors import NotFoundError, ValidationFailedError
from invoicer.models import (
    ClientData,
    InvoiceDraft,
    LineItemInput,
    NewInvoice,
    NewInvoiceLine,
    ProductData,
)
from invoicer.models.entities import MAX_AMOUNT
from invoicer.models.inputs import MAX_QUANTITY
from invoicer.services import DuplicateError


@pytest.fixture
def composer(store, settings, clock):
    return InvoiceComposer(store, settings, clock=clock)


@pytest.fixture
def acme(store):
    return store.create_client(1, ClientData(name="Acme"))


def _draft(client_id: int, *prices: str) -> InvoiceDraft:
    return InvoiceDraft(
        client_id=client_id,
        lines=[
            LineItemInput(description=f"Item {i}", quantity=1, unit_price=Decimal(price))
            for i, price in enumerate(prices)
        ],
    )


class TestArithmetic:
    """Tests for exact decimal arithmetic."""

    def test_line_total_exact(self, composer):
        """Test 3 x 19.99 = 59.97 with no float drift."""
        assert composer.line_total(3, Decimal("19.99")) == Decimal("59.97")

    def test_invoice_totals(self, composer):
        """Test 100.00 + 50.00 gives 150.00, tax 31.50, total 181.50."""
        lines = [
            NewInvoiceLine(description="A", quantity=1, unit_price=Decimal("100.00"), total=Decimal("100.00")),
            NewInvoiceLine(description="B", quantity=2, unit_price=Decimal("25.00"), total=Decimal("50.00")),
        ]
        subtotal = composer.subtotal(lines)
        tax = composer.tax(subtotal)
        assert subtotal == Decimal("150.00")
        assert tax == Decimal("31.50")
        assert composer.total(subtotal, tax) == Decimal("181.50")

    def test_tax_rounds_half_up(self, composer):
        """Test 0.21 x 0.50 = 0.105 rounds to 0.11."""
        assert composer.tax(Decimal("0.50")) == Decimal("0.11")

    def test_to_money(self):
        assert to_money(Decimal("2.005")) == Decimal("2.01")

    def test_zero_quantity_rejected(self, composer):
        with pytest.raises(ValidationFailedError) as exc:
            composer.line_total(0, Decimal("1.00"), index=2)
        assert exc.value.issues[0].field == "lines.2.quantity"

    def test_negative_price_rejected(self, composer):
        with pytest.raises(ValidationFailedError) as exc:
            composer.line_total(1, Decimal("-1.00"), index=0)
        assert exc.value.issues[0].field == "lines.0.unit_price"

    def test_total_beyond_max_amount_rejected(self, composer):
        """Test that a line total past MAX_AMOUNT is a validation error, not a crash."""
        with pytest.raises(ValidationFailedError) as exc:
            composer.line_total(10**6, Decimal("1" + "0" * 24), index=0)
        assert exc.value.issues[0].field == "lines.0.unit_price"
        assert exc.value.issues[0].issue_type == "out_of_range"

    def test_quantity_beyond_max_rejected(self, composer):
        with pytest.raises(ValidationFailedError) as exc:
            composer.line_total(MAX_QUANTITY + 1, Decimal("1.00"), index=1)
        assert exc.value.issues[0].field == "lines.1.quantity"

    def test_max_amount_accepted(self, composer):
        assert composer.line_total(1, MAX_AMOUNT) == MAX_AMOUNT


class TestNumbering:
    """Tests for sequential invoice numbers."""

    def test_first_and_second_number(self, composer, acme):
        """Test FAC-<year>-001 then FAC-<year>-002."""
        first = composer.create_invoice(1, _draft(acme.id, "10"))
        second = composer.create_invoice(1, _draft(acme.id, "10"))
        assert first.number == "FAC-2026-001"
        assert second.number == "FAC-2026-002"

    def test_preview_does_not_reserve(self, composer, acme):
        assert composer.next_invoice_number(1) == "FAC-2026-001"
        assert composer.next_invoice_number(1) == "FAC-2026-001"
        composer.create_invoice(1, _draft(acme.id, "10"))
        assert composer.next_invoice_number(1) == "FAC-2026-002"

    def test_deletion_does_not_free_number(self, composer, store, acme):
        """Test that a deleted invoice's number is never handed out again."""
        first = composer.create_invoice(1, _draft(acme.id, "10"))
        second = composer.create_invoice(1, _draft(acme.id, "10"))
        store.delete_invoice(first.id, 1)
        third = composer.create_invoice(1, _draft(acme.id, "10"))
        assert third.number == "FAC-2026-003"
        assert third.number != second.number

    def test_new_year_restarts(self, composer, clock, acme):
        composer.create_invoice(1, _draft(acme.id, "10"))
        clock.now = clock.now.replace(year=2027)
        assert composer.create_invoice(1, _draft(acme.id, "10")).number == "FAC-2027-001"

    def test_collision_retries_with_fresh_number(self, composer, store, clock, acme):
        """Test that a number already taken is skipped."""
        store.insert_invoice(
            1,
            NewInvoice(
                client_id=acme.id,
                number="FAC-2026-001",
                issue_date=clock.now,
                subtotal=Decimal("1.00"),
                tax_amount=Decimal("0.21"),
                total=Decimal("1.21"),
            ),
            [NewInvoiceLine(description="Imported", quantity=1, unit_price=Decimal("1.00"), total=Decimal("1.00"))],
        )
        created = composer.create_invoice(1, _draft(acme.id, "10"))
        assert created.number == "FAC-2026-002"

    def test_collisions_exhaust_attempts(self, composer, store, settings, clock, acme):
        """Test that repeated collisions surface as DuplicateError."""
        for seq in range(1, settings.invoice_number_attempts + 1):
            store.insert_invoice(
                1,
                NewInvoice(
                    client_id=acme.id,
                    number=composer.format_number(2026, seq),
                    issue_date=clock.now,
                    subtotal=Decimal("1.00"),
                    tax_amount=Decimal("0.21"),
                    total=Decimal("1.21"),
                ),
                [],
            )
        with pytest.raises(DuplicateError):
            composer.create_invoice(1, _draft(acme.id, "10"))


class TestCreation:
    """Tests for creating invoices."""

    def test_totals_persisted(self, composer, acme):
        invoice = composer.create_invoice(1, _draft(acme.id, "100.00", "50.00"))
        assert invoice.subtotal == Decimal("150.00")
        assert invoice.tax_amount == Decimal("31.50")
        assert invoice.total == Decimal("181.50")
        assert sum(line.total for line in invoice.lines) == invoice.subtotal

    def test_issue_date_defaults_to_clock(self, composer, clock, acme):
        invoice = composer.create_invoice(1, _draft(acme.id, "10"))
        assert invoice.issue_date == clock.now

    def test_empty_lines_write_nothing(self, composer, store, acme):
        """Test that a rejected draft consumes no number."""
        with pytest.raises(ValidationFailedError):
            composer.create_invoice(1, InvoiceDraft(client_id=acme.id))
        assert store.list_invoices(1) == []
        assert composer.next_invoice_number(1) == "FAC-2026-001"

    def test_due_before_issue_rejected(self, composer, clock, acme):
        draft = _draft(acme.id, "10")
        draft.due_date = clock.now - timedelta(days=1)
        with pytest.raises(ValidationFailedError):
            composer.create_invoice(1, draft)

    def test_foreign_client_not_found(self, composer, store):
        """Test that another owner's client is indistinguishable from a missing one."""
        theirs = store.create_client(2, ClientData(name="Globex"))
        with pytest.raises(NotFoundError):
            composer.create_invoice(1, _draft(theirs.id, "10"))

    def test_deleted_client_not_found(self, composer, store, acme):
        store.delete_client(acme.id, 1)
        with pytest.raises(NotFoundError):
            composer.create_invoice(1, _draft(acme.id, "10"))

    def test_product_line_uses_catalogue(self, composer, store, acme):
        """Test that description and price default to the product's."""
        pen = store.create_product(1, ProductData(name="Pen", unit_price=Decimal("19.99")))
        draft = InvoiceDraft(
            client_id=acme.id,
            lines=[LineItemInput(product_id=pen.id, quantity=3)],
        )
        invoice = composer.create_invoice(1, draft)
        line = invoice.lines[0]
        assert line.description == "Pen"
        assert line.unit_price == Decimal("19.99")
        assert line.total == Decimal("59.97")
        assert line.product_id == pen.id

    def test_foreign_product_not_found(self, composer, store, acme):
        theirs = store.create_product(2, ProductData(name="Pen", unit_price=Decimal("1")))
        draft = InvoiceDraft(
            client_id=acme.id,
            lines=[LineItemInput(product_id=theirs.id, quantity=1)],
        )
        with pytest.raises(NotFoundError):
            composer.create_invoice(1, draft)
