"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory backend serves tests
and local runs.
"""

from grocery_budget.services.storage.interface import (
    AuditStorageInterface,
    CategoryCatalogInterface,
    ConnectionError,
    LedgerStorageInterface,
    StorageError,
)
from grocery_budget.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryCategoryCatalog,
    InMemoryLedgerStorage,
)
from grocery_budget.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryCatalog,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "CategoryCatalogInterface",
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryCategoryCatalog",
    "InMemoryLedgerStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsCategoryCatalog",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
