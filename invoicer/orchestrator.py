"""
Main Orchestrator for Invoicer

This module ties together all the components and defines the public,
synchronous contract consumed by an HTTP or UI layer:
1. Accounts (register, authenticate, logout, profile)
2. Clients, products and the company profile
3. Invoices (create, read, update status/notes, delete, number preview)
4. Statistics and the audit log

DESIGN DECISION: The orchestrator enforces the boundaries:
- The caller supplies an already-authenticated owner id; every call is scoped to it
- Inputs are validated before anything is written
- Every successful mutation is audited, after the fact
- No exception escapes: each operation returns an OperationResult
"""

import threading
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar, Union

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from invoicer.audit import AuditLogger
from invoicer.billing import InvoiceComposer
from invoicer.config import InvoicingSettings, get_settings
from invoicer.errors import (
    ConflictError,
    InvoicingError,
    NotFoundError,
    ValidationFailedError,
)
from invoicer.models.audit import AuditAction, AuditLogEntry, SubjectKind
from invoicer.models.entities import (
    Client,
    CompanyProfile,
    InvoiceDetail,
    Product,
    User,
    UserRole,
    utc_now,
)
from invoicer.models.inputs import (
    ClientData,
    ClientUpdate,
    CompanyProfileData,
    InvoiceDraft,
    InvoiceUpdate,
    ProductData,
    ProductUpdate,
    RequestContext,
    UserRegistration,
    UserUpdate,
)
from invoicer.models.results import ErrorKind, OperationResult
from invoicer.models.stats import StatsSnapshot
from invoicer.queries import StatisticsAggregator
from invoicer.services import InMemoryStore, PasswordHasher, Pbkdf2PasswordHasher
from invoicer.validation import InvoiceValidator, issues_from_pydantic


M = TypeVar("M", bound=BaseModel)
T = TypeVar("T")

logger = structlog.get_logger(__name__)


def _parse(model: type[M], data: Union[M, dict[str, Any]]) -> M:
    """Accept either a model instance or raw mapping (e.g. a JSON body)."""
    if isinstance(data, model):
        return data
    return model.model_validate(data)


class InvoicingService:
    """
    Public facade of the bookkeeping core.

    Every method returns an OperationResult. Not-found covers both
    "absent" and "belongs to someone else".
    """

    def __init__(
        self,
        store: Optional[InMemoryStore] = None,
        settings: Optional[InvoicingSettings] = None,
        clock: Callable[[], datetime] = utc_now,
        hasher: Optional[PasswordHasher] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings()
        self._store = store or InMemoryStore(default_country=self._settings.default_country)
        self._clock = clock
        self._hasher = hasher or Pbkdf2PasswordHasher()
        self._audit = audit_logger or AuditLogger(
            self._store, query_limit=self._settings.audit_query_limit
        )
        self._validator = InvoiceValidator()
        self._composer = InvoiceComposer(
            self._store, self._settings, clock=clock, validator=self._validator
        )
        self._statistics = StatisticsAggregator(self._store, self._settings, clock=clock)
        self._accounts_lock = threading.Lock()

    @property
    def composer(self) -> InvoiceComposer:
        return self._composer

    # -------------------------------------------------------------- boundary

    def _run(self, operation: str, func: Callable[[], T]) -> OperationResult:
        """Execute `func`, converting every failure into a typed result."""
        try:
            return OperationResult.ok(func())
        except PydanticValidationError as e:
            issues = issues_from_pydantic(e)
            return OperationResult.fail(
                ErrorKind.VALIDATION,
                f"Invalid input for {operation}",
                issues,
            )
        except ValidationFailedError as e:
            return OperationResult.fail(e.kind, str(e), e.issues)
        except InvoicingError as e:
            if e.kind == ErrorKind.INTERNAL:
                logger.error("operation_failed", operation=operation, error=str(e))
            return OperationResult.fail(e.kind, str(e))
        except Exception:
            logger.exception("operation_crashed", operation=operation)
            return OperationResult.fail(ErrorKind.INTERNAL, f"Internal error during {operation}")

    @staticmethod
    def _found(record: Optional[T], what: str, record_id: int) -> T:
        if record is None:
            raise NotFoundError(f"{what} not found: {record_id}")
        return record

    # --------------------------------------------------------------- accounts

    def seed_admin(self, email: str, password: str) -> OperationResult:
        """Create the administrator account unless the email is already taken."""
        def op() -> User:
            with self._accounts_lock:
                existing = self._store.get_user_by_email(email)
                if existing is not None:
                    return existing
                user = self._store.create_user(
                    email=email.strip().lower(),
                    password_hash=self._hasher.hash(password),
                    first_name="Administrator",
                    last_name="System",
                    role=UserRole.ADMIN,
                )
            self._audit.record(None, AuditAction.REGISTER, SubjectKind.USER, user.id)
            return user

        return self._run("seed_admin", op)

    def register_user(
        self,
        data: Union[UserRegistration, dict],
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        def op() -> User:
            registration = _parse(UserRegistration, data)
            with self._accounts_lock:
                if self._store.get_user_by_email(registration.email) is not None:
                    raise ConflictError("Email is already registered")
                user = self._store.create_user(
                    email=registration.email,
                    password_hash=self._hasher.hash(registration.password),
                    first_name=registration.first_name,
                    last_name=registration.last_name,
                    role=registration.role,
                )
            self._audit.log_registered(user.id, user.email, context)
            return user

        return self._run("register_user", op)

    def authenticate(
        self,
        email: str,
        password: str,
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        """
        Check credentials and record the login.

        Unknown email, wrong password and inactive account all fail the same way.
        """
        def op() -> User:
            user = self._store.get_user_by_email(email or "")
            if (
                user is None
                or not user.active
                or not self._hasher.verify(user.password_hash, password or "")
            ):
                raise NotFoundError("Invalid email or password")
            self._audit.log_login(user.id, context)
            return user

        return self._run("authenticate", op)

    def logout(self, user_id: int, context: Optional[RequestContext] = None) -> OperationResult:
        def op() -> bool:
            self._found(self._store.get_user(user_id), "User", user_id)
            self._audit.log_logout(user_id, context)
            return True

        return self._run("logout", op)

    def get_user(self, user_id: int) -> OperationResult:
        return self._run(
            "get_user",
            lambda: self._found(self._store.get_user(user_id), "User", user_id),
        )

    def update_user(
        self,
        user_id: int,
        changes: Union[UserUpdate, dict],
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        def op() -> User:
            update = _parse(UserUpdate, changes)
            fields = update.model_dump(exclude_unset=True)
            with self._accounts_lock:
                if fields.get("email"):
                    holder = self._store.get_user_by_email(fields["email"])
                    if holder is not None and holder.id != user_id:
                        raise ConflictError("Email is already registered")
                user = self._found(self._store.update_user(user_id, fields), "User", user_id)
            self._audit.log_updated(
                user_id, SubjectKind.USER, user_id, {"fields": sorted(fields)}, context
            )
            return user

        return self._run("update_user", op)

    # ---------------------------------------------------------------- clients

    def list_clients(self, owner_id: int) -> OperationResult:
        return self._run("list_clients", lambda: self._store.list_clients(owner_id))

    def search_clients(self, query: str, owner_id: int) -> OperationResult:
        def op() -> list[Client]:
            term = self._validator.validate_search_query(query)
            return self._store.search_clients(term, owner_id)

        return self._run("search_clients", op)

    def get_client(self, client_id: int, owner_id: int) -> OperationResult:
        return self._run(
            "get_client",
            lambda: self._found(self._store.get_client(client_id, owner_id), "Client", client_id),
        )

    def create_client(
        self,
        owner_id: int,
        data: Union[ClientData, dict],
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        def op() -> Client:
            client = self._store.create_client(owner_id, _parse(ClientData, data))
            self._audit.log_created(
                owner_id, SubjectKind.CLIENT, client.id, {"name": client.name}, context
            )
            return client

        return self._run("create_client", op)

    def update_client(
        self,
        client_id: int,
        owner_id: int,
        changes: Union[ClientUpdate, dict],
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        def op() -> Client:
            fields = _parse(ClientUpdate, changes).model_dump(exclude_unset=True)
            client = self._found(
                self._store.update_client(client_id, owner_id, fields), "Client", client_id
            )
            self._audit.log_updated(
                owner_id, SubjectKind.CLIENT, client.id, {"name": client.name}, context
            )
            return client

        return self._run("update_client", op)

    def delete_client(
        self,
        client_id: int,
        owner_id: int,
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        def op() -> bool:
            if not self._store.delete_client(client_id, owner_id):
                raise NotFoundError(f"Client not found: {client_id}")
            self._audit.log_deleted(owner_id, SubjectKind.CLIENT, client_id, context)
            return True

        return self._run("delete_client", op)

    # --------------------------------------------------------------- products

    def list_products(self, owner_id: int) -> OperationResult:
        return self._run("list_products", lambda: self._store.list_products(owner_id))

    def search_products(self, query: str, owner_id: int) -> OperationResult:
        def op() -> list[Product]:
            term = self._validator.validate_search_query(query)
            return self._store.search_products(term, owner_id)

        return self._run("search_products", op)

    def get_product(self, product_id: int, owner_id: int) -> OperationResult:
        return self._run(
            "get_product",
            lambda: self._found(
                self._store.get_product(product_id, owner_id), "Product", product_id
            ),
        )

    def create_product(
        self,
        owner_id: int,
        data: Union[ProductData, dict],
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        def op() -> Product:
            product = self._store.create_product(owner_id, _parse(ProductData, data))
            self._audit.log_created(
                owner_id, SubjectKind.PRODUCT, product.id, {"name": product.name}, context
            )
            return product

        return self._run("create_product", op)

    def update_product(
        self,
        product_id: int,
        owner_id: int,
        changes: Union[ProductUpdate, dict],
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        def op() -> Product:
            fields = _parse(ProductUpdate, changes).model_dump(exclude_unset=True)
            product = self._found(
                self._store.update_product(product_id, owner_id, fields), "Product", product_id
            )
            self._audit.log_updated(
                owner_id, SubjectKind.PRODUCT, product.id, {"name": product.name}, context
            )
            return product

        return self._run("update_product", op)

    def delete_product(
        self,
        product_id: int,
        owner_id: int,
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        def op() -> bool:
            if not self._store.delete_product(product_id, owner_id):
                raise NotFoundError(f"Product not found: {product_id}")
            self._audit.log_deleted(owner_id, SubjectKind.PRODUCT, product_id, context)
            return True

        return self._run("delete_product", op)

    # --------------------------------------------------------------- invoices

    def list_invoices(self, owner_id: int) -> OperationResult:
        return self._run("list_invoices", lambda: self._store.list_invoices(owner_id))

    def get_invoice(self, invoice_id: int, owner_id: int) -> OperationResult:
        return self._run(
            "get_invoice",
            lambda: self._found(
                self._store.get_invoice(invoice_id, owner_id), "Invoice", invoice_id
            ),
        )

    def next_invoice_number(self, owner_id: int) -> OperationResult:
        return self._run(
            "next_invoice_number",
            lambda: self._composer.next_invoice_number(owner_id),
        )

    def create_invoice(
        self,
        owner_id: int,
        draft: Union[InvoiceDraft, dict],
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        def op() -> InvoiceDetail:
            invoice = self._composer.create_invoice(owner_id, _parse(InvoiceDraft, draft))
            self._audit.log_created(
                owner_id,
                SubjectKind.INVOICE,
                invoice.id,
                {"number": invoice.number, "total": str(invoice.total)},
                context,
            )
            return invoice

        return self._run("create_invoice", op)

    def update_invoice(
        self,
        invoice_id: int,
        owner_id: int,
        changes: Union[InvoiceUpdate, dict],
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        """Change status, due date or notes. Lines and amounts never change."""
        def op() -> InvoiceDetail:
            fields = _parse(InvoiceUpdate, changes).model_dump(exclude_unset=True)
            current = self._found(
                self._store.get_invoice(invoice_id, owner_id), "Invoice", invoice_id
            )
            if "due_date" in fields:
                self._validator.validate_due_date(fields["due_date"], current.issue_date)
            invoice = self._found(
                self._store.update_invoice(invoice_id, owner_id, fields), "Invoice", invoice_id
            )
            details = {"number": invoice.number}
            if "status" in fields:
                details["status"] = invoice.status.value
            self._audit.log_updated(owner_id, SubjectKind.INVOICE, invoice.id, details, context)
            return invoice

        return self._run("update_invoice", op)

    def delete_invoice(
        self,
        invoice_id: int,
        owner_id: int,
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        """Hard delete of the invoice and its lines."""
        def op() -> bool:
            if not self._store.delete_invoice(invoice_id, owner_id):
                raise NotFoundError(f"Invoice not found: {invoice_id}")
            self._audit.log_deleted(owner_id, SubjectKind.INVOICE, invoice_id, context)
            return True

        return self._run("delete_invoice", op)

    # ---------------------------------------------------------------- company

    def get_company_profile(self, owner_id: int) -> OperationResult:
        """The owner's profile, or a successful None when none is saved yet."""
        return self._run(
            "get_company_profile",
            lambda: self._store.get_company_profile(owner_id),
        )

    def save_company_profile(
        self,
        owner_id: int,
        data: Union[CompanyProfileData, dict],
        context: Optional[RequestContext] = None,
    ) -> OperationResult:
        def op() -> CompanyProfile:
            profile = self._store.save_company_profile(
                owner_id, _parse(CompanyProfileData, data)
            )
            self._audit.log_configured(owner_id, profile.id, profile.name, context)
            return profile

        return self._run("save_company_profile", op)

    # ------------------------------------------------------- statistics/audit

    def get_statistics(self, owner_id: int) -> OperationResult:
        def op() -> StatsSnapshot:
            return self._statistics.get_statistics(owner_id)

        return self._run("get_statistics", op)

    def list_audit_log(self, owner_id: int) -> OperationResult:
        def op() -> list[AuditLogEntry]:
            return self._audit.query(owner_id)

        return self._run("list_audit_log", op)


def create_service(
    settings: Optional[InvoicingSettings] = None,
    clock: Callable[[], datetime] = utc_now,
) -> InvoicingService:
    """
    Factory function to create the service with its default components.

    Seeds the administrator account when INVOICER_ADMIN_EMAIL and
    INVOICER_ADMIN_PASSWORD are both configured.
    """
    settings = settings or get_settings()
    service = InvoicingService(settings=settings, clock=clock)

    if settings.admin_email and settings.admin_password:
        result = service.seed_admin(
            settings.admin_email,
            settings.admin_password.get_secret_value(),
        )
        if not result.success:
            logger.warning("admin_seed_failed", error=result.error_message)

    return service
