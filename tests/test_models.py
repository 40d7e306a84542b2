"""
Tests for models and validation.

Test strategy:
1. Schema rules live on the pydantic models
2. Cross-field rules live in InvoiceValidator
3. Nothing here touches the store
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from invoicer.errors import ValidationFailedError
from invoicer.models import (
    AuditAction,
    AuditEntryBuilder,
    AuditLogEntry,
    ClientData,
    ErrorKind,
    Invoice,
    InvoiceDraft,
    InvoiceLine,
    LineItemInput,
    OperationResult,
    RequestContext,
    SubjectKind,
    UserRegistration,
)
from invoicer.validation import InvoiceValidator, issues_from_pydantic


NOW = datetime(2026, 3, 15, 10, 0, tzinfo=timezone.utc)


class TestEntityModels:
    """Tests for stored record models."""

    def test_line_total_must_match(self):
        """Test that a line refuses a total other than quantity * price."""
        with pytest.raises(ValidationError):
            InvoiceLine(
                id=1,
                invoice_id=2,
                description="Widget",
                quantity=3,
                unit_price=Decimal("19.99"),
                total=Decimal("60.00"),
            )

    def test_line_total_exact(self):
        """Test 3 x 19.99 is accepted as 59.97."""
        line = InvoiceLine(
            id=1,
            invoice_id=2,
            description="Widget",
            quantity=3,
            unit_price=Decimal("19.99"),
            total=Decimal("59.97"),
        )
        assert line.total == Decimal("59.97")

    def test_invoice_total_identity(self):
        """Test that total must equal subtotal plus tax."""
        with pytest.raises(ValidationError):
            Invoice(
                id=1,
                owner_id=1,
                client_id=1,
                number="FAC-2026-001",
                subtotal=Decimal("150.00"),
                tax_amount=Decimal("31.50"),
                total=Decimal("181.00"),
            )

    def test_money_rejects_three_decimals(self):
        """Test that amounts carry at most two decimals."""
        with pytest.raises(ValidationError):
            Invoice(
                id=1,
                owner_id=1,
                client_id=1,
                number="FAC-2026-001",
                subtotal=Decimal("1.001"),
                tax_amount=Decimal("0"),
                total=Decimal("1.001"),
            )


class TestInputModels:
    """Tests for caller-facing input models."""

    def test_email_normalized(self):
        """Test that emails are stripped and lowercased."""
        reg = UserRegistration(email="  Ana@Example.COM ", password="secret123", first_name="Ana")
        assert reg.email == "ana@example.com"

    def test_malformed_email_rejected(self):
        """Test that a malformed email is a schema error on 'email'."""
        with pytest.raises(ValidationError) as exc:
            ClientData(name="Acme", email="not-an-email")
        assert [i.field for i in issues_from_pydantic(exc.value)] == ["email"]

    def test_empty_email_becomes_none(self):
        client = ClientData(name="Acme", email="")
        assert client.email is None

    def test_free_text_line_needs_price(self):
        """Test that a line without product needs description and price."""
        with pytest.raises(ValidationError):
            LineItemInput(description="Work", quantity=1)

    def test_product_line_needs_only_quantity(self):
        line = LineItemInput(product_id=7, quantity=2)
        assert line.unit_price is None

    def test_nested_issue_paths(self):
        """Test that nested errors become dotted field paths."""
        with pytest.raises(ValidationError) as exc:
            InvoiceDraft.model_validate({
                "client_id": 1,
                "lines": [{"description": "Work", "quantity": 0, "unit_price": "10.00"}],
            })
        fields = [i.field for i in issues_from_pydantic(exc.value)]
        assert "lines.0.quantity" in fields

    def test_naive_dates_become_utc(self):
        draft = InvoiceDraft(client_id=1, issue_date=datetime(2026, 3, 1))
        assert draft.issue_date.tzinfo == timezone.utc


class TestInvoiceValidator:
    """Tests for semantic draft validation."""

    def test_empty_lines_rejected(self):
        """Test that a draft without lines is rejected on 'lines'."""
        with pytest.raises(ValidationFailedError) as exc:
            InvoiceValidator().validate_draft(InvoiceDraft(client_id=1), issue_date=NOW)
        assert exc.value.issues[0].field == "lines"
        assert exc.value.issues[0].issue_type == "missing"

    def test_due_before_issue_rejected(self):
        """Test that a due date before the issue date is inconsistent."""
        draft = InvoiceDraft(
            client_id=1,
            lines=[LineItemInput(description="Work", quantity=1, unit_price=Decimal("10"))],
            due_date=NOW - timedelta(days=1),
        )
        with pytest.raises(ValidationFailedError) as exc:
            InvoiceValidator().validate_draft(draft, issue_date=NOW)
        assert [i.field for i in exc.value.issues] == ["due_date"]

    def test_valid_draft_passes(self):
        draft = InvoiceDraft(
            client_id=1,
            lines=[LineItemInput(description="Work", quantity=1, unit_price=Decimal("10"))],
            due_date=NOW + timedelta(days=30),
        )
        InvoiceValidator().validate_draft(draft, issue_date=NOW)

    def test_blank_search_query_rejected(self):
        with pytest.raises(ValidationFailedError) as exc:
            InvoiceValidator().validate_search_query("   ")
        assert exc.value.issues[0].field == "query"

    def test_search_query_stripped(self):
        assert InvoiceValidator().validate_search_query("  acme ") == "acme"


class TestAuditModels:
    """Tests for audit models."""

    def test_builder_created_copies_context(self):
        """Test that request context lands on the entry."""
        entry = AuditEntryBuilder.created(
            1,
            SubjectKind.CLIENT,
            5,
            {"name": "Acme"},
            RequestContext(ip="10.0.0.1", user_agent="pytest"),
        )
        assert entry.action == AuditAction.CREATE
        assert entry.ip == "10.0.0.1"
        assert entry.user_agent == "pytest"
        assert entry.details == {"name": "Acme"}

    def test_stored_entry_is_frozen(self):
        """Test that stored entries cannot be edited."""
        entry = AuditLogEntry(id=1, user_id=1, action=AuditAction.LOGIN)
        with pytest.raises(ValidationError):
            entry.action = AuditAction.LOGOUT

    def test_to_log_dict(self):
        entry = AuditLogEntry(
            id=3,
            user_id=1,
            action=AuditAction.DELETE,
            subject_kind=SubjectKind.INVOICE,
            subject_id=9,
        )
        log_dict = entry.to_log_dict()
        assert log_dict["entry_id"] == 3
        assert log_dict["action"] == "delete"
        assert log_dict["subject_kind"] == "invoice"


class TestOperationResult:
    """Tests for the boundary result type."""

    def test_ok(self):
        result = OperationResult.ok(42)
        assert result.success
        assert result.value == 42
        assert result.error_kind is None

    def test_fail(self):
        result = OperationResult.fail(ErrorKind.NOT_FOUND, "Client not found: 3")
        assert not result.success
        assert result.error_kind == ErrorKind.NOT_FOUND
        assert result.failed_fields == []
