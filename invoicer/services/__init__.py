"""Services package."""

from invoicer.services.security import Pbkdf2PasswordHasher, PasswordHasher
from invoicer.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryStore,
    InvoicingStoreInterface,
    StorageError,
)

__all__ = [
    # Credentials
    "PasswordHasher",
    "Pbkdf2PasswordHasher",
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryStore",
    "InvoicingStoreInterface",
    "StorageError",
]
