"""
Invoice Composer

Derives the arithmetic of an invoice and assigns its number before it is
persisted.

    line total = quantity * unit price
    subtotal   = sum of line totals
    tax        = subtotal * tax rate, rounded half-up to cents
    total      = subtotal + tax

All amounts are Decimal quantized to two places; float never enters the
computation.

NUMBERING: numbers look like FAC-2024-007. The sequence part comes from a
per-owner, per-year counter kept by the store that only ever moves
forward, so deleting an invoice never frees its number for reuse. The
store also refuses a second invoice with the same number for one owner;
on that collision the composer reserves a fresh number and tries again.
"""

import threading
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, Optional

import structlog
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt

from invoicer.config import InvoicingSettings, get_settings
from invoicer.errors import NotFoundError, ValidationFailedError
from invoicer.models.entities import MAX_AMOUNT, InvoiceDetail, utc_now
from invoicer.models.inputs import MAX_QUANTITY, InvoiceDraft, NewInvoice, NewInvoiceLine
from invoicer.services.storage import DuplicateError, InvoicingStoreInterface
from invoicer.validation import InvoiceValidator


CENT = Decimal("0.01")

logger = structlog.get_logger(__name__)


def to_money(value: Decimal) -> Decimal:
    """Quantize to cents, rounding half-up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


class InvoiceComposer:
    """
    Computes invoice amounts and numbers, and creates invoices.

    Creation is a critical section per owner: reserving the number and
    persisting the invoice with its lines happen under that owner's lock.
    """

    def __init__(
        self,
        store: InvoicingStoreInterface,
        settings: Optional[InvoicingSettings] = None,
        clock: Callable[[], datetime] = utc_now,
        validator: Optional[InvoiceValidator] = None,
    ):
        self._store = store
        self._settings = settings or get_settings()
        self._clock = clock
        self._validator = validator or InvoiceValidator()
        self._owner_locks: dict[int, threading.Lock] = {}
        self._owner_locks_guard = threading.Lock()

    # ------------------------------------------------------------ arithmetic

    def line_total(self, quantity: int, unit_price: Decimal, index: Optional[int] = None) -> Decimal:
        """
        quantity * unit_price, exactly.

        Raises:
            ValidationFailedError: quantity out of range or not an integer,
                negative price, or a total beyond MAX_AMOUNT
        """
        prefix = f"lines.{index}." if index is not None else ""
        if (
            isinstance(quantity, bool)
            or not isinstance(quantity, int)
            or not 1 <= quantity <= MAX_QUANTITY
        ):
            raise ValidationFailedError.single(
                f"{prefix}quantity",
                "invalid_value",
                f"Quantity must be an integer between 1 and {MAX_QUANTITY}",
            )
        price = Decimal(unit_price)
        if price < 0:
            raise ValidationFailedError.single(
                f"{prefix}unit_price", "invalid_value", "Unit price cannot be negative"
            )
        if price > MAX_AMOUNT or quantity * price > MAX_AMOUNT:
            raise ValidationFailedError.single(
                f"{prefix}unit_price", "out_of_range", f"Line total cannot exceed {MAX_AMOUNT}"
            )
        return to_money(quantity * price)

    def subtotal(self, lines: Iterable[NewInvoiceLine]) -> Decimal:
        return to_money(sum((line.total for line in lines), Decimal("0")))

    def tax(self, subtotal: Decimal) -> Decimal:
        return to_money(subtotal * self._settings.tax_rate)

    def total(self, subtotal: Decimal, tax: Decimal) -> Decimal:
        return to_money(subtotal + tax)

    # ------------------------------------------------------------- numbering

    def format_number(self, year: int, sequence: int) -> str:
        width = self._settings.invoice_number_width
        return f"{self._settings.invoice_number_prefix}-{year}-{sequence:0{width}d}"

    def next_invoice_number(self, owner_id: int) -> str:
        """
        Preview the number the owner's next invoice will get.

        Nothing is reserved; a concurrent creation may still take it.
        """
        year = self._clock().year
        return self.format_number(year, self._store.peek_invoice_sequence(owner_id, year))

    def _lock_for(self, owner_id: int) -> threading.Lock:
        with self._owner_locks_guard:
            return self._owner_locks.setdefault(owner_id, threading.Lock())

    # ---------------------------------------------------------------- create

    def compose_lines(self, owner_id: int, draft: InvoiceDraft) -> list[NewInvoiceLine]:
        """
        Resolve catalogue references and compute every line total.

        Raises:
            NotFoundError: A referenced product is unknown, inactive or not the owner's
            ValidationFailedError: A line fails the quantity or price rules
        """
        lines = []
        for index, item in enumerate(draft.lines):
            description = item.description
            unit_price = item.unit_price

            if item.product_id is not None:
                product = self._store.get_product(item.product_id, owner_id)
                if product is None or not product.active:
                    raise NotFoundError(f"Product not found: {item.product_id}")
                description = description or product.name
                if unit_price is None:
                    unit_price = product.unit_price

            total = self.line_total(item.quantity, unit_price, index)
            lines.append(NewInvoiceLine(
                product_id=item.product_id,
                description=description,
                quantity=item.quantity,
                unit_price=to_money(unit_price),
                total=total,
            ))
        return lines

    def create_invoice(self, owner_id: int, draft: InvoiceDraft) -> InvoiceDetail:
        """
        Validate, number, total and persist an invoice with its lines.

        Nothing is written unless every check passes.

        Raises:
            ValidationFailedError: Empty line list, bad line, inconsistent dates
            NotFoundError: Client (or a product) is not an active record of the owner
            DuplicateError: Every attempt collided with an existing number
        """
        now = self._clock()
        issue_date = draft.issue_date or now
        self._validator.validate_draft(draft, issue_date=issue_date)

        client = self._store.get_client(draft.client_id, owner_id)
        if client is None or not client.active:
            raise NotFoundError(f"Client not found: {draft.client_id}")

        lines = self.compose_lines(owner_id, draft)
        subtotal = self.subtotal(lines)
        tax = self.tax(subtotal)
        total = self.total(subtotal, tax)
        if total > MAX_AMOUNT:
            raise ValidationFailedError.single(
                "lines", "out_of_range", f"Invoice total cannot exceed {MAX_AMOUNT}"
            )

        retrying = Retrying(
            stop=stop_after_attempt(self._settings.invoice_number_attempts),
            retry=retry_if_exception_type(DuplicateError),
            after=lambda state: logger.warning(
                "invoice_number_collision",
                owner_id=owner_id,
                attempt=state.attempt_number,
            ),
            reraise=True,
        )

        with self._lock_for(owner_id):
            for attempt in retrying:
                with attempt:
                    sequence = self._store.reserve_invoice_sequence(owner_id, now.year)
                    invoice = NewInvoice(
                        client_id=client.id,
                        number=self.format_number(now.year, sequence),
                        issue_date=issue_date,
                        due_date=draft.due_date,
                        subtotal=subtotal,
                        tax_amount=tax,
                        total=total,
                        status=draft.status,
                        notes=draft.notes,
                    )
                    created = self._store.insert_invoice(owner_id, invoice, lines)

        logger.info(
            "invoice_created",
            owner_id=owner_id,
            invoice_id=created.id,
            number=created.number,
            total=str(created.total),
        )
        return created
