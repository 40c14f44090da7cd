"""
Storage Services Package

Provides the document store port and its implementations.
Google Sheets is the hosted backend; the in-memory backend serves local
runs and tests.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DocumentStoreInterface,
    NotFoundError,
    StorageError,
    Subscriber,
    Unsubscribe,
    validate_path,
)
from src.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryDocumentStore,
)
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DocumentStoreInterface",
    "Subscriber",
    "Unsubscribe",
    "validate_path",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryDocumentStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
]
