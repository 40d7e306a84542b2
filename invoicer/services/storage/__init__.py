"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements an in-memory backend, but designed to be swappable.
"""

from invoicer.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    InvoicingStoreInterface,
    StorageError,
)
from invoicer.services.storage.memory import InMemoryStore

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "InvoicingStoreInterface",
    # Exceptions
    "DuplicateError",
    "StorageError",
    # In-memory implementation
    "InMemoryStore",
]
