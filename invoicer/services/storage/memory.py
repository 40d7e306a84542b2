"""
In-Memory Storage Implementation

DESIGN DECISION: The reference storage is a set of keyed maps held in
process memory, one per entity type, plus one id counter shared by all
of them.

TRADEOFFS:
- Nothing survives a restart
- Queries are full scans filtered in Python (fine for one small business)

Every public method runs under one re-entrant lock, so an invoice and its
lines become visible together or not at all. Records are handed out as
copies; mutating a returned model never changes the store.
"""

import itertools
import threading
from typing import Any, Callable, Iterable, Optional, TypeVar

import structlog
from pydantic import BaseModel

from invoicer.models.audit import AuditLogEntry, NewAuditEntry, SubjectKind
from invoicer.models.entities import (
    Client,
    CompanyProfile,
    Invoice,
    InvoiceDetail,
    InvoiceLine,
    Product,
    User,
    UserRole,
    utc_now,
)
from invoicer.models.inputs import (
    ClientData,
    CompanyProfileData,
    NewInvoice,
    NewInvoiceLine,
    ProductData,
)
from invoicer.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    InvoicingStoreInterface,
    StorageError,
)


M = TypeVar("M", bound=BaseModel)

logger = structlog.get_logger(__name__)

# Fields scanned by the catalogue searches
CLIENT_SEARCH_FIELDS = ("name", "email", "tax_id")
PRODUCT_SEARCH_FIELDS = ("name", "description", "code")


def _matches(record: BaseModel, fields: Iterable[str], term: str) -> bool:
    for name in fields:
        value = getattr(record, name)
        if value and term in value.lower():
            return True
    return False


class InMemoryStore(InvoicingStoreInterface, AuditStorageInterface):
    """
    Volatile entity store and audit log.

    Tables: users, clients, products, invoices, invoice_lines,
    company_profiles, audit_log. Ids are drawn from one shared counter.
    """

    def __init__(self, default_country: Optional[str] = None):
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._default_country = default_country
        self._users: dict[int, User] = {}
        self._clients: dict[int, Client] = {}
        self._products: dict[int, Product] = {}
        self._invoices: dict[int, Invoice] = {}
        self._invoice_lines: dict[int, InvoiceLine] = {}
        self._company_profiles: dict[int, CompanyProfile] = {}
        self._audit_log: dict[int, AuditLogEntry] = {}
        # (owner_id, year) -> last sequence value handed out
        self._sequences: dict[tuple[int, int], int] = {}

    # ------------------------------------------------------------- primitives

    def _next_id(self) -> int:
        return next(self._ids)

    def _insert(self, table: dict[int, M], build: Callable[[int], M]) -> M:
        with self._lock:
            record = build(self._next_id())
            table[record.id] = record
            return record.model_copy(deep=True)

    def _get(
        self,
        table: dict[int, M],
        record_id: int,
        owner_id: Optional[int] = None,
    ) -> Optional[M]:
        record = table.get(record_id)
        if record is None:
            return None
        if owner_id is not None and record.owner_id != owner_id:
            return None
        return record

    def _update(
        self,
        table: dict[int, M],
        record_id: int,
        changes: dict[str, Any],
        owner_id: Optional[int] = None,
    ) -> Optional[M]:
        with self._lock:
            record = self._get(table, record_id, owner_id)
            if record is None:
                return None
            protected = {"id", "owner_id", "created_at"}
            merged = record.model_dump()
            merged.update({k: v for k, v in changes.items() if k not in protected})
            if "updated_at" in type(record).model_fields:
                merged["updated_at"] = utc_now()
            updated = type(record).model_validate(merged)
            table[record_id] = updated
            return updated.model_copy(deep=True)

    def _list_by_owner(
        self,
        table: dict[int, M],
        owner_id: int,
        active_only: bool = False,
    ) -> list[M]:
        with self._lock:
            return [
                record.model_copy(deep=True)
                for record in table.values()
                if record.owner_id == owner_id
                and (not active_only or record.active)
            ]

    def _soft_delete(self, table: dict[int, M], record_id: int, owner_id: int) -> bool:
        return self._update(table, record_id, {"active": False}, owner_id) is not None

    def _search(
        self,
        table: dict[int, M],
        query: str,
        owner_id: int,
        fields: Iterable[str],
    ) -> list[M]:
        term = query.strip().lower()
        return [
            record
            for record in self._list_by_owner(table, owner_id, active_only=True)
            if _matches(record, fields, term)
        ]

    # ------------------------------------------------------------------ users

    def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str = "",
        role: UserRole = UserRole.STANDARD,
    ) -> User:
        return self._insert(
            self._users,
            lambda new_id: User(
                id=new_id,
                email=email,
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name,
                role=role,
            ),
        )

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            user = self._get(self._users, user_id)
            return user.model_copy(deep=True) if user else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        wanted = email.strip().lower()
        with self._lock:
            for user in self._users.values():
                if user.email.lower() == wanted:
                    return user.model_copy(deep=True)
        return None

    def update_user(self, user_id: int, changes: dict[str, Any]) -> Optional[User]:
        return self._update(self._users, user_id, changes)

    # ---------------------------------------------------------------- clients

    def list_clients(self, owner_id: int) -> list[Client]:
        return self._list_by_owner(self._clients, owner_id, active_only=True)

    def get_client(self, client_id: int, owner_id: int) -> Optional[Client]:
        with self._lock:
            client = self._get(self._clients, client_id, owner_id)
            return client.model_copy(deep=True) if client else None

    def create_client(self, owner_id: int, data: ClientData) -> Client:
        fields = data.model_dump()
        if not fields.get("country"):
            fields["country"] = self._default_country
        return self._insert(
            self._clients,
            lambda new_id: Client(id=new_id, owner_id=owner_id, **fields),
        )

    def update_client(
        self,
        client_id: int,
        owner_id: int,
        changes: dict[str, Any],
    ) -> Optional[Client]:
        return self._update(self._clients, client_id, changes, owner_id)

    def delete_client(self, client_id: int, owner_id: int) -> bool:
        return self._soft_delete(self._clients, client_id, owner_id)

    def search_clients(self, query: str, owner_id: int) -> list[Client]:
        return self._search(self._clients, query, owner_id, CLIENT_SEARCH_FIELDS)

    # --------------------------------------------------------------- products

    def list_products(self, owner_id: int) -> list[Product]:
        return self._list_by_owner(self._products, owner_id, active_only=True)

    def get_product(self, product_id: int, owner_id: int) -> Optional[Product]:
        with self._lock:
            product = self._get(self._products, product_id, owner_id)
            return product.model_copy(deep=True) if product else None

    def create_product(self, owner_id: int, data: ProductData) -> Product:
        return self._insert(
            self._products,
            lambda new_id: Product(id=new_id, owner_id=owner_id, **data.model_dump()),
        )

    def update_product(
        self,
        product_id: int,
        owner_id: int,
        changes: dict[str, Any],
    ) -> Optional[Product]:
        return self._update(self._products, product_id, changes, owner_id)

    def delete_product(self, product_id: int, owner_id: int) -> bool:
        return self._soft_delete(self._products, product_id, owner_id)

    def search_products(self, query: str, owner_id: int) -> list[Product]:
        return self._search(self._products, query, owner_id, PRODUCT_SEARCH_FIELDS)

    # --------------------------------------------------------------- invoices

    def _detail(self, invoice: Invoice) -> InvoiceDetail:
        """Join an invoice with its client and lines. Caller holds the lock."""
        client = self._clients.get(invoice.client_id)
        if client is None:
            raise StorageError(
                f"Invoice {invoice.id} references missing client {invoice.client_id}"
            )
        lines = sorted(
            (line for line in self._invoice_lines.values() if line.invoice_id == invoice.id),
            key=lambda line: line.id,
        )
        return InvoiceDetail(
            **invoice.model_dump(),
            client=client.model_copy(deep=True),
            lines=list(lines),
        )

    def list_invoices(self, owner_id: int) -> list[InvoiceDetail]:
        with self._lock:
            return [
                self._detail(invoice)
                for invoice in self._invoices.values()
                if invoice.owner_id == owner_id
            ]

    def get_invoice(self, invoice_id: int, owner_id: int) -> Optional[InvoiceDetail]:
        with self._lock:
            invoice = self._get(self._invoices, invoice_id, owner_id)
            return self._detail(invoice) if invoice else None

    def insert_invoice(
        self,
        owner_id: int,
        invoice: NewInvoice,
        lines: list[NewInvoiceLine],
    ) -> InvoiceDetail:
        with self._lock:
            for existing in self._invoices.values():
                if existing.owner_id == owner_id and existing.number == invoice.number:
                    raise DuplicateError(
                        f"Invoice number {invoice.number} already exists"
                    )

            # Build every record before touching the tables
            stored = Invoice(id=self._next_id(), owner_id=owner_id, **invoice.model_dump())
            stored_lines = [
                InvoiceLine(id=self._next_id(), invoice_id=stored.id, **line.model_dump())
                for line in lines
            ]

            self._invoices[stored.id] = stored
            for line in stored_lines:
                self._invoice_lines[line.id] = line

            logger.debug(
                "invoice_inserted",
                invoice_id=stored.id,
                number=stored.number,
                line_count=len(stored_lines),
            )
            return self._detail(stored)

    def update_invoice(
        self,
        invoice_id: int,
        owner_id: int,
        changes: dict[str, Any],
    ) -> Optional[InvoiceDetail]:
        with self._lock:
            updated = self._update(self._invoices, invoice_id, changes, owner_id)
            return self._detail(updated) if updated else None

    def delete_invoice(self, invoice_id: int, owner_id: int) -> bool:
        with self._lock:
            if self._get(self._invoices, invoice_id, owner_id) is None:
                return False
            del self._invoices[invoice_id]
            orphaned = [
                line_id
                for line_id, line in self._invoice_lines.items()
                if line.invoice_id == invoice_id
            ]
            for line_id in orphaned:
                del self._invoice_lines[line_id]
            return True

    def list_invoice_lines(self, invoice_id: int) -> list[InvoiceLine]:
        with self._lock:
            return [
                line for line in self._invoice_lines.values()
                if line.invoice_id == invoice_id
            ]

    def peek_invoice_sequence(self, owner_id: int, year: int) -> int:
        with self._lock:
            return self._sequences.get((owner_id, year), 0) + 1

    def reserve_invoice_sequence(self, owner_id: int, year: int) -> int:
        with self._lock:
            value = self._sequences.get((owner_id, year), 0) + 1
            self._sequences[(owner_id, year)] = value
            return value

    # ---------------------------------------------------------------- company

    def get_company_profile(self, owner_id: int) -> Optional[CompanyProfile]:
        with self._lock:
            for profile in self._company_profiles.values():
                if profile.owner_id == owner_id:
                    return profile.model_copy(deep=True)
        return None

    def save_company_profile(
        self,
        owner_id: int,
        data: CompanyProfileData,
    ) -> CompanyProfile:
        with self._lock:
            existing = self.get_company_profile(owner_id)
            if existing is not None:
                return self._update(
                    self._company_profiles,
                    existing.id,
                    data.model_dump(),
                    owner_id,
                )
            return self._insert(
                self._company_profiles,
                lambda new_id: CompanyProfile(id=new_id, owner_id=owner_id, **data.model_dump()),
            )

    # ------------------------------------------------------------------ audit

    def append_entry(self, entry: NewAuditEntry) -> AuditLogEntry:
        return self._insert(
            self._audit_log,
            lambda new_id: AuditLogEntry(id=new_id, **entry.model_dump()),
        )

    def get_entries_for_user(
        self,
        user_id: int,
        limit: Optional[int] = None,
    ) -> list[AuditLogEntry]:
        with self._lock:
            entries = [
                e.model_copy(deep=True)
                for e in self._audit_log.values()
                if e.user_id == user_id
            ]
        # Newest first; ids break timestamp ties
        entries.sort(key=lambda e: (e.created_at, e.id), reverse=True)
        if limit is not None:
            entries = entries[:limit]
        return entries

    def get_entries_for_subject(
        self,
        subject_kind: SubjectKind,
        subject_id: int,
    ) -> list[AuditLogEntry]:
        with self._lock:
            entries = [
                e.model_copy(deep=True)
                for e in self._audit_log.values()
                if e.subject_kind == subject_kind and e.subject_id == subject_id
            ]
        entries.sort(key=lambda e: (e.created_at, e.id))
        return entries
