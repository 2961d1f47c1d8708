"""Services package."""

from grocery_budget.services.categories import DEFAULT_CATEGORIES, seed_default_categories
from grocery_budget.services.storage import (
    AuditStorageInterface,
    CategoryCatalogInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryCatalog,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryCategoryCatalog,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    StorageError,
)

__all__ = [
    "DEFAULT_CATEGORIES",
    "seed_default_categories",
    "AuditStorageInterface",
    "CategoryCatalogInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsCategoryCatalog",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryAuditStorage",
    "InMemoryCategoryCatalog",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "StorageError",
]
