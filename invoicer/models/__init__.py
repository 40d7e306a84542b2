"""
Data Models Package

This package contains all Pydantic models used in Invoicer.
All data flowing through the system must conform to these schemas.
"""

from invoicer.models.entities import (
    Client,
    CompanyProfile,
    Invoice,
    InvoiceDetail,
    InvoiceLine,
    InvoiceStatus,
    Money,
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
    LineItemInput,
    NewInvoice,
    NewInvoiceLine,
    ProductData,
    ProductUpdate,
    RequestContext,
    UserRegistration,
    UserUpdate,
)
from invoicer.models.audit import (
    AuditAction,
    AuditEntryBuilder,
    AuditLogEntry,
    NewAuditEntry,
    SubjectKind,
)
from invoicer.models.results import (
    ErrorKind,
    OperationResult,
    ValidationIssue,
)
from invoicer.models.stats import MonthlyBucket, StatsSnapshot

__all__ = [
    # Entities
    "Client",
    "CompanyProfile",
    "Invoice",
    "InvoiceDetail",
    "InvoiceLine",
    "InvoiceStatus",
    "Money",
    "Product",
    "User",
    "UserRole",
    "utc_now",
    # Inputs
    "ClientData",
    "ClientUpdate",
    "CompanyProfileData",
    "InvoiceDraft",
    "InvoiceUpdate",
    "LineItemInput",
    "NewInvoice",
    "NewInvoiceLine",
    "ProductData",
    "ProductUpdate",
    "RequestContext",
    "UserRegistration",
    "UserUpdate",
    # Audit models
    "AuditAction",
    "AuditEntryBuilder",
    "AuditLogEntry",
    "NewAuditEntry",
    "SubjectKind",
    # Results
    "ErrorKind",
    "OperationResult",
    "ValidationIssue",
    # Statistics
    "MonthlyBucket",
    "StatsSnapshot",
]
