"""
In-Memory Storage Implementation

Dict-backed implementations of the storage interfaces. Used by tests and
for running the engine without Google Sheets configured.

Every read and write copies the model, so callers can never mutate
stored state through a reference they hold.
"""

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
from grocery_budget.services.storage.interface import (
    AuditStorageInterface,
    CategoryCatalogInterface,
    LedgerStorageInterface,
)


def _page(records: list, limit: Optional[int], offset: int) -> list:
    if limit is None:
        return records[offset:]
    return records[offset:offset + limit]


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Budgets and items held in dicts keyed by ID."""

    def __init__(self):
        self._budgets: dict[UUID, Budget] = {}
        self._items: dict[UUID, Item] = {}

    async def find_budget(self, budget_id: UUID, user_id: UUID) -> Optional[Budget]:
        budget = self._budgets.get(budget_id)
        if budget is None or budget.user_id != user_id:
            return None
        return budget.model_copy(deep=True)

    async def find_budgets(
        self,
        budget_filter: BudgetFilter,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Budget]:
        budgets = [b for b in self._budgets.values() if budget_filter.matches(b)]
        budgets.sort(key=lambda b: b.created_at, reverse=True)
        return [b.model_copy(deep=True) for b in _page(budgets, limit, offset)]

    async def save_budget(self, budget: Budget) -> Budget:
        self._budgets[budget.id] = budget.model_copy(deep=True)
        return budget.model_copy(deep=True)

    async def delete_budget(self, budget_id: UUID, user_id: UUID) -> bool:
        budget = self._budgets.get(budget_id)
        if budget is None or budget.user_id != user_id:
            return False
        del self._budgets[budget_id]
        return True

    async def find_item(self, item_id: UUID, user_id: UUID) -> Optional[Item]:
        item = self._items.get(item_id)
        if item is None or item.user_id != user_id:
            return None
        return item.model_copy(deep=True)

    async def find_items(
        self,
        item_filter: ItemFilter,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Item]:
        items = [i for i in self._items.values() if item_filter.matches(i)]
        items.sort(key=lambda i: i.purchase_date, reverse=True)
        return [i.model_copy(deep=True) for i in _page(items, limit, offset)]

    async def save_item(self, item: Item) -> Item:
        self._items[item.id] = item.model_copy(deep=True)
        return item.model_copy(deep=True)

    async def delete_item(self, item_id: UUID, user_id: UUID) -> bool:
        item = self._items.get(item_id)
        if item is None or item.user_id != user_id:
            return False
        del self._items[item_id]
        return True

    async def count_items(self, item_filter: ItemFilter) -> int:
        return sum(1 for i in self._items.values() if item_filter.matches(i))


class InMemoryCategoryCatalog(CategoryCatalogInterface):
    """Categories held in a dict keyed by ID."""

    def __init__(self, categories: Optional[list[Category]] = None):
        self._categories: dict[UUID, Category] = {}
        for category in categories or []:
            self._categories[category.id] = category.model_copy(deep=True)

    async def find_category(self, category_id: UUID) -> Optional[Category]:
        category = self._categories.get(category_id)
        return category.model_copy(deep=True) if category else None

    async def list_categories(self, user_id: Optional[UUID] = None) -> list[Category]:
        visible = [
            c for c in self._categories.values()
            if c.is_system or (user_id is not None and c.user_id == user_id)
        ]
        visible.sort(key=lambda c: (c.order, c.name))
        return [c.model_copy(deep=True) for c in visible]

    async def save_category(self, category: Category) -> Category:
        self._categories[category.id] = category.model_copy(deep=True)
        return category.model_copy(deep=True)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event.model_copy(deep=True))
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def query_events(self, query: AuditQuery) -> list[AuditEvent]:
        events = [e for e in self._events if query.matches(e)]
        return sorted(events, key=lambda e: e.timestamp, reverse=True)

    async def purge_before(self, cutoff: datetime) -> int:
        kept = [e for e in self._events if e.timestamp >= cutoff]
        removed = len(self._events) - len(kept)
        self._events = kept
        return removed
