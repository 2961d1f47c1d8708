"""
Tests for the storage backends.

The Google Sheets backend runs against a fake worksheet client,
so row mapping and upserts are tested without network access.
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from grocery_budget.models.audit import AuditEventBuilder, AuditQuery
from grocery_budget.models.ledger import (
    BudgetFilter,
    Category,
    CategoryAllocation,
    ItemFilter,
)
from grocery_budget.services import DEFAULT_CATEGORIES, seed_default_categories
from grocery_budget.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryCatalog,
    GoogleSheetsLedgerStorage,
    InMemoryCategoryCatalog,
    InMemoryLedgerStorage,
)
from grocery_budget.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    BUDGET_COLUMNS,
    CATEGORY_COLUMNS,
    ITEM_COLUMNS,
)

from conftest import make_budget, make_item


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage layer."""

    def __init__(self, columns: list[str]):
        self.rows = [list(columns)]

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(cell) for cell in row])

    def update(self, range_name, values, value_input_option=None):
        row_number = int(range_name[1:])
        self.rows[row_number - 1] = [str(cell) for cell in values[0]]

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:

    def __init__(self):
        self.budgets = FakeWorksheet(BUDGET_COLUMNS)
        self.items = FakeWorksheet(ITEM_COLUMNS)
        self.categories = FakeWorksheet(CATEGORY_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_budgets_sheet(self):
        return self.budgets

    def get_items_sheet(self):
        return self.items

    def get_categories_sheet(self):
        return self.categories

    def get_audit_sheet(self):
        return self.audit


@pytest.fixture
def sheets_client():
    return FakeSheetsClient()


class TestGoogleSheetsLedger:

    async def test_budget_round_trip(self, sheets_client, user_id):
        storage = GoogleSheetsLedgerStorage(sheets_client)
        category_id = uuid4()
        budget = make_budget(
            user_id,
            total_limit="120.50",
            current_spent="20.25",
            categories=[CategoryAllocation(category_id=category_id, limit=Decimal("40.00"))],
        )
        await storage.save_budget(budget)

        loaded = await storage.find_budget(budget.id, user_id)
        assert loaded == budget
        assert await storage.find_budget(budget.id, uuid4()) is None

    async def test_save_budget_updates_in_place(self, sheets_client, user_id):
        storage = GoogleSheetsLedgerStorage(sheets_client)
        budget = await storage.save_budget(make_budget(user_id))
        await storage.save_budget(budget.model_copy(update={"is_active": False}))

        assert len(sheets_client.budgets.rows) == 2
        inactive = await storage.find_budgets(BudgetFilter(user_id=user_id, is_active=False))
        assert [b.id for b in inactive] == [budget.id]

    async def test_items_filter_and_delete(self, sheets_client, user_id):
        storage = GoogleSheetsLedgerStorage(sheets_client)
        budget_id, category_id = uuid4(), uuid4()
        kept = await storage.save_item(make_item(
            user_id, budget_id, category_id, notes="organic"
        ))
        dropped = await storage.save_item(make_item(user_id, budget_id, category_id))

        assert await storage.count_items(ItemFilter(user_id=user_id, budget_id=budget_id)) == 2
        assert await storage.delete_item(dropped.id, uuid4()) is False
        assert await storage.delete_item(dropped.id, user_id) is True

        [remaining] = await storage.find_items(ItemFilter(user_id=user_id))
        assert remaining == kept


class TestGoogleSheetsCatalogAndAudit:

    async def test_seed_is_idempotent(self, sheets_client):
        catalog = GoogleSheetsCategoryCatalog(sheets_client)
        await seed_default_categories(catalog)
        await seed_default_categories(catalog)

        system = await catalog.list_categories()
        assert len(system) == len(DEFAULT_CATEGORIES)
        assert system[0].name == DEFAULT_CATEGORIES[0][0]

    async def test_private_categories(self, sheets_client, user_id):
        catalog = GoogleSheetsCategoryCatalog(sheets_client)
        mine = await catalog.save_category(Category(name="Baby", user_id=user_id))
        await catalog.save_category(Category(name="Pets", user_id=uuid4()))

        assert [c.name for c in await catalog.list_categories(user_id)] == ["Baby"]
        assert (await catalog.find_category(mine.id)).user_id == user_id

    async def test_audit_query_and_purge(self, sheets_client, user_id):
        storage = GoogleSheetsAuditStorage(sheets_client)
        now = datetime(2024, 6, 15)
        for days_ago in (1, 120):
            event = AuditEventBuilder.budget_deleted(user_id=user_id, budget_id=uuid4())
            event.timestamp = now - timedelta(days=days_ago)
            await storage.append_event(event)

        events = await storage.query_events(AuditQuery(user_id=user_id))
        assert len(events) == 2
        assert events[0].timestamp > events[1].timestamp

        assert await storage.purge_before(now - timedelta(days=90)) == 1
        assert len(await storage.query_events(AuditQuery(user_id=user_id))) == 1


class TestInMemoryStorage:

    async def test_reads_return_copies(self, user_id):
        storage = InMemoryLedgerStorage()
        budget = await storage.save_budget(make_budget(user_id))

        loaded = await storage.find_budget(budget.id, user_id)
        loaded.current_spent = Decimal("50")
        assert (await storage.find_budget(budget.id, user_id)).current_spent == Decimal("0")

    async def test_budget_paging_newest_first(self, user_id):
        storage = InMemoryLedgerStorage()
        base = datetime(2024, 1, 1)
        for day in range(3):
            await storage.save_budget(make_budget(
                user_id, name=f"B{day}", created_at=base + timedelta(days=day)
            ))
        page = await storage.find_budgets(BudgetFilter(user_id=user_id), limit=2, offset=1)
        assert [b.name for b in page] == ["B1", "B0"]

    async def test_catalog_visibility(self, user_id):
        catalog = InMemoryCategoryCatalog([
            Category(name="Produce", is_system=True),
            Category(name="Pets", user_id=uuid4()),
        ])
        assert [c.name for c in await catalog.list_categories(user_id)] == ["Produce"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
