"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the in-memory store for tests and single-process use
2. Swap in a durable database later
3. Keep business logic decoupled from storage implementation

OWNERSHIP CONTRACT: every method that takes an `owner_id` behaves as if
records of other owners did not exist. Reads return None, updates return
None and deletes return False; no method ever reports "forbidden".
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from invoicer.errors import ConflictError, InternalError
from invoicer.models.audit import AuditLogEntry, NewAuditEntry, SubjectKind
from invoicer.models.entities import (
    Client,
    CompanyProfile,
    InvoiceDetail,
    InvoiceLine,
    Product,
    User,
    UserRole,
)
from invoicer.models.inputs import (
    ClientData,
    CompanyProfileData,
    NewInvoice,
    NewInvoiceLine,
    ProductData,
)


class InvoicingStoreInterface(ABC):
    """
    Abstract interface for the entity store.

    Any storage implementation (in-memory, PostgreSQL, etc.)
    must implement these methods.
    """

    # ------------------------------------------------------------------ users

    @abstractmethod
    def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str = "",
        role: UserRole = UserRole.STANDARD,
    ) -> User:
        """
        Store a new user.

        Email uniqueness is checked by the caller, not here.
        """
        pass

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]:
        pass

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]:
        """Case-insensitive email lookup."""
        pass

    @abstractmethod
    def update_user(self, user_id: int, changes: dict[str, Any]) -> Optional[User]:
        """
        Merge `changes` into the user and refresh `updated_at`.

        Returns None if the user does not exist.
        """
        pass

    # ---------------------------------------------------------------- clients

    @abstractmethod
    def list_clients(self, owner_id: int) -> list[Client]:
        """Active clients of the owner."""
        pass

    @abstractmethod
    def get_client(self, client_id: int, owner_id: int) -> Optional[Client]:
        """
        Get a client of the owner, active or not.

        Inactive clients stay resolvable so old invoices keep their client.
        """
        pass

    @abstractmethod
    def create_client(self, owner_id: int, data: ClientData) -> Client:
        pass

    @abstractmethod
    def update_client(
        self,
        client_id: int,
        owner_id: int,
        changes: dict[str, Any],
    ) -> Optional[Client]:
        pass

    @abstractmethod
    def delete_client(self, client_id: int, owner_id: int) -> bool:
        """Soft delete: clears the active flag."""
        pass

    @abstractmethod
    def search_clients(self, query: str, owner_id: int) -> list[Client]:
        """
        Case-insensitive substring search over name, email and tax id.

        Only active clients of the owner are returned.
        """
        pass

    # --------------------------------------------------------------- products

    @abstractmethod
    def list_products(self, owner_id: int) -> list[Product]:
        pass

    @abstractmethod
    def get_product(self, product_id: int, owner_id: int) -> Optional[Product]:
        pass

    @abstractmethod
    def create_product(self, owner_id: int, data: ProductData) -> Product:
        pass

    @abstractmethod
    def update_product(
        self,
        product_id: int,
        owner_id: int,
        changes: dict[str, Any],
    ) -> Optional[Product]:
        pass

    @abstractmethod
    def delete_product(self, product_id: int, owner_id: int) -> bool:
        """Soft delete: clears the active flag."""
        pass

    @abstractmethod
    def search_products(self, query: str, owner_id: int) -> list[Product]:
        """
        Case-insensitive substring search over name, description and code.
        """
        pass

    # --------------------------------------------------------------- invoices

    @abstractmethod
    def list_invoices(self, owner_id: int) -> list[InvoiceDetail]:
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: int, owner_id: int) -> Optional[InvoiceDetail]:
        pass

    @abstractmethod
    def insert_invoice(
        self,
        owner_id: int,
        invoice: NewInvoice,
        lines: list[NewInvoiceLine],
    ) -> InvoiceDetail:
        """
        Persist an invoice and all of its lines as one unit.

        Raises:
            DuplicateError: If the owner already has an invoice with this number.
                            Nothing is written in that case.
        """
        pass

    @abstractmethod
    def update_invoice(
        self,
        invoice_id: int,
        owner_id: int,
        changes: dict[str, Any],
    ) -> Optional[InvoiceDetail]:
        pass

    @abstractmethod
    def delete_invoice(self, invoice_id: int, owner_id: int) -> bool:
        """Hard delete of the invoice and every one of its lines."""
        pass

    @abstractmethod
    def list_invoice_lines(self, invoice_id: int) -> list[InvoiceLine]:
        """All stored lines pointing at `invoice_id`, whoever owns it."""
        pass

    @abstractmethod
    def peek_invoice_sequence(self, owner_id: int, year: int) -> int:
        """The sequence value the next reservation would return."""
        pass

    @abstractmethod
    def reserve_invoice_sequence(self, owner_id: int, year: int) -> int:
        """
        Consume and return the next sequence value for (owner, year).

        Values are never handed out twice, even after deletions.
        """
        pass

    # ---------------------------------------------------------------- company

    @abstractmethod
    def get_company_profile(self, owner_id: int) -> Optional[CompanyProfile]:
        pass

    @abstractmethod
    def save_company_profile(
        self,
        owner_id: int,
        data: CompanyProfileData,
    ) -> CompanyProfile:
        """Upsert: overwrite the owner's profile in place, or create it."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_entry(self, entry: NewAuditEntry) -> AuditLogEntry:
        """
        Append an audit entry to the log.

        Returns:
            The stored entry with its id
        """
        pass

    @abstractmethod
    def get_entries_for_user(
        self,
        user_id: int,
        limit: Optional[int] = None,
    ) -> list[AuditLogEntry]:
        """
        Entries of actions performed by the user.

        Args:
            user_id: Acting user
            limit: Maximum entries to return; None returns every entry

        Returns:
            List of entries (newest first)
        """
        pass

    @abstractmethod
    def get_entries_for_subject(
        self,
        subject_kind: SubjectKind,
        subject_id: int,
    ) -> list[AuditLogEntry]:
        """
        Get all entries about a specific record.

        Returns:
            List of entries in chronological order
        """
        pass


class StorageError(InternalError):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError, ConflictError):
    """Attempted to insert a duplicate entity."""

    kind = ConflictError.kind
