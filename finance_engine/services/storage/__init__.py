"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the production backend; the in-memory implementations
back tests and local runs.
"""

from finance_engine.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    FinancialDataProvider,
    NotFoundError,
    PersistenceProvider,
    StorageError,
)
from finance_engine.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryFinancialDataProvider,
    InMemoryPersistence,
)
from finance_engine.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinancialDataProvider,
    GoogleSheetsPersistence,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "FinancialDataProvider",
    "PersistenceProvider",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryFinancialDataProvider",
    "InMemoryPersistence",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFinancialDataProvider",
    "GoogleSheetsPersistence",
]
