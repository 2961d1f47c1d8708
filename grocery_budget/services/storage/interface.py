"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the budget engine decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the reads and writes the engine needs.

CRITICAL: Every budget and item operation carries the owner's user_id.
A record belonging to another user behaves exactly like a missing one.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from grocery_budget.models.audit import AuditEvent, AuditQuery
from grocery_budget.models.ledger import (
    Budget,
    BudgetFilter,
    Category,
    Item,
    ItemFilter,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for budgets and items.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    # ===== BUDGETS =====

    @abstractmethod
    async def find_budget(self, budget_id: UUID, user_id: UUID) -> Optional[Budget]:
        """
        Retrieve a budget owned by user_id.

        Returns:
            The budget if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_budgets(
        self,
        budget_filter: BudgetFilter,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Budget]:
        """
        List budgets matching a filter, newest first.

        Args:
            budget_filter: Filter (user_id is mandatory)
            limit: Maximum number of results, None for all
            offset: Number of results to skip
        """
        pass

    @abstractmethod
    async def save_budget(self, budget: Budget) -> Budget:
        """
        Insert or replace a budget.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: UUID, user_id: UUID) -> bool:
        """
        Delete a budget.

        Returns:
            True if a budget was deleted
        """
        pass

    # ===== ITEMS =====

    @abstractmethod
    async def find_item(self, item_id: UUID, user_id: UUID) -> Optional[Item]:
        """Retrieve an item owned by user_id, or None."""
        pass

    @abstractmethod
    async def find_items(
        self,
        item_filter: ItemFilter,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Item]:
        """
        List items matching a filter, most recent purchase first.

        Args:
            item_filter: Filter (user_id is mandatory)
            limit: Maximum number of results, None for all
            offset: Number of results to skip
        """
        pass

    @abstractmethod
    async def save_item(self, item: Item) -> Item:
        """
        Insert or replace an item.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def delete_item(self, item_id: UUID, user_id: UUID) -> bool:
        """Delete an item. Returns True if an item was deleted."""
        pass

    @abstractmethod
    async def count_items(self, item_filter: ItemFilter) -> int:
        """Count items matching a filter."""
        pass


class CategoryCatalogInterface(ABC):
    """
    Abstract interface for categories.

    System categories are shared. User categories are private.
    """

    @abstractmethod
    async def find_category(self, category_id: UUID) -> Optional[Category]:
        """Retrieve a category by ID regardless of owner."""
        pass

    @abstractmethod
    async def list_categories(self, user_id: Optional[UUID] = None) -> list[Category]:
        """
        List categories visible to a user (system ones plus their own),
        ordered by `order` then name. With no user, system categories only.
        """
        pass

    @abstractmethod
    async def save_category(self, category: Category) -> Category:
        """Insert or replace a category."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only. The retention purge is the only removal.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    async def query_events(self, query: AuditQuery) -> list[AuditEvent]:
        """
        Get a user's events matching a query.

        Returns:
            Matching events, newest first
        """
        pass

    @abstractmethod
    async def purge_before(self, cutoff: datetime) -> int:
        """
        Remove events older than cutoff.

        Returns:
            Number of events removed
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
