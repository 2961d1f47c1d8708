"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Users can view their budgets and purchases directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal grocery ledger)
- No transactions: current_spent is reconciled by full re-aggregation
- Limited query capabilities (we filter in Python with the model filters)

The implementation follows the abstract interfaces, so the engine never
knows which backend it is talking to.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from grocery_budget.config import get_settings
from grocery_budget.models.audit import AuditEvent, AuditQuery
from grocery_budget.models.ledger import (
    Budget,
    BudgetFilter,
    BudgetPeriod,
    Category,
    CategoryAllocation,
    Item,
    ItemFilter,
)
from grocery_budget.services.storage.interface import (
    AuditStorageInterface,
    CategoryCatalogInterface,
    ConnectionError,
    LedgerStorageInterface,
    StorageError,
)


BUDGET_COLUMNS = [
    "id",
    "user_id",
    "name",
    "total_limit",
    "period_start",
    "period_end",
    "categories_json",
    "current_spent",
    "is_active",
    "created_at",
    "updated_at",
]

ITEM_COLUMNS = [
    "id",
    "user_id",
    "budget_id",
    "name",
    "price",
    "quantity",
    "category_id",
    "is_essential",
    "purchase_date",
    "notes",
    "created_at",
]

CATEGORY_COLUMNS = [
    "id",
    "name",
    "icon",
    "color",
    "is_system",
    "user_id",
    "parent_id",
    "order",
    "created_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "success",
    "error_message",
    "is_user_action",
]

sheets_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _cell(row: list, index: int, default: str = "") -> str:
    """Read a cell, tolerating short rows."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _page(records: list, limit: Optional[int], offset: int) -> list:
    if limit is None:
        return records[offset:]
    return records[offset:offset + limit]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet creation.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @sheets_retry
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_budgets_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.budgets_sheet_name, BUDGET_COLUMNS)

    def get_items_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(
            self._settings.items_sheet_name, ITEM_COLUMNS, rows=5000
        )

    def get_categories_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(
            self._settings.categories_sheet_name, CATEGORY_COLUMNS, rows=200
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _find_row_number(sheet: gspread.Worksheet, record_id: UUID) -> Optional[int]:
    """1-based sheet row holding record_id, or None. Row 1 is the header."""
    for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
        if row and row[0] == str(record_id):
            return idx
    return None


def _upsert_row(sheet: gspread.Worksheet, record_id: UUID, row: list) -> None:
    row_number = _find_row_number(sheet, record_id)
    if row_number is None:
        sheet.append_row(row, value_input_option="RAW")
    else:
        sheet.update(
            range_name=f"A{row_number}",
            values=[row],
            value_input_option="RAW",
        )


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of budget and item storage.

    One row per record. Category allocations are JSON-serialized.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # ===== ROW MAPPING =====

    def _budget_to_row(self, budget: Budget) -> list:
        return [
            str(budget.id),
            str(budget.user_id),
            budget.name,
            str(budget.total_limit),
            budget.period.start.isoformat(),
            budget.period.end.isoformat(),
            json.dumps([
                {"category_id": str(a.category_id), "limit": str(a.limit)}
                for a in budget.categories
            ]),
            str(budget.current_spent),
            str(budget.is_active),
            budget.created_at.isoformat(),
            budget.updated_at.isoformat(),
        ]

    def _row_to_budget(self, row: list) -> Budget:
        allocations_json = _cell(row, 6)
        allocations = [
            CategoryAllocation(
                category_id=UUID(a["category_id"]),
                limit=Decimal(a["limit"]),
            )
            for a in (json.loads(allocations_json) if allocations_json else [])
        ]
        return Budget(
            id=UUID(_cell(row, 0)),
            user_id=UUID(_cell(row, 1)),
            name=_cell(row, 2),
            total_limit=Decimal(_cell(row, 3)),
            period=BudgetPeriod(
                start=datetime.fromisoformat(_cell(row, 4)),
                end=datetime.fromisoformat(_cell(row, 5)),
            ),
            categories=allocations,
            current_spent=Decimal(_cell(row, 7, "0")),
            is_active=_cell(row, 8).lower() == "true",
            created_at=datetime.fromisoformat(_cell(row, 9)),
            updated_at=datetime.fromisoformat(_cell(row, 10)),
        )

    def _item_to_row(self, item: Item) -> list:
        return [
            str(item.id),
            str(item.user_id),
            str(item.budget_id),
            item.name,
            str(item.price),
            str(item.quantity),
            str(item.category_id),
            str(item.is_essential),
            item.purchase_date.isoformat(),
            item.notes or "",
            item.created_at.isoformat(),
        ]

    def _row_to_item(self, row: list) -> Item:
        return Item(
            id=UUID(_cell(row, 0)),
            user_id=UUID(_cell(row, 1)),
            budget_id=UUID(_cell(row, 2)),
            name=_cell(row, 3),
            price=Decimal(_cell(row, 4)),
            quantity=int(_cell(row, 5, "1")),
            category_id=UUID(_cell(row, 6)),
            is_essential=_cell(row, 7).lower() == "true",
            purchase_date=datetime.fromisoformat(_cell(row, 8)),
            notes=_cell(row, 9) or None,
            created_at=datetime.fromisoformat(_cell(row, 10)),
        )

    def _all_budgets(self) -> list[Budget]:
        budgets = []
        for row in self._client.get_budgets_sheet().get_all_values()[1:]:
            if row and row[0]:
                budgets.append(self._row_to_budget(row))
        return budgets

    def _all_items(self) -> list[Item]:
        items = []
        for row in self._client.get_items_sheet().get_all_values()[1:]:
            if row and row[0]:
                items.append(self._row_to_item(row))
        return items

    # ===== BUDGETS =====

    @sheets_retry
    async def find_budget(self, budget_id: UUID, user_id: UUID) -> Optional[Budget]:
        try:
            for budget in self._all_budgets():
                if budget.id == budget_id:
                    return budget if budget.user_id == user_id else None
            return None
        except Exception as e:
            raise StorageError(f"Failed to get budget: {e}")

    @sheets_retry
    async def find_budgets(
        self,
        budget_filter: BudgetFilter,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Budget]:
        try:
            budgets = [b for b in self._all_budgets() if budget_filter.matches(b)]
        except Exception as e:
            raise StorageError(f"Failed to list budgets: {e}")
        budgets.sort(key=lambda b: b.created_at, reverse=True)
        return _page(budgets, limit, offset)

    @sheets_retry
    async def save_budget(self, budget: Budget) -> Budget:
        try:
            sheet = self._client.get_budgets_sheet()
            _upsert_row(sheet, budget.id, self._budget_to_row(budget))
            return budget
        except Exception as e:
            raise StorageError(f"Failed to save budget: {e}")

    @sheets_retry
    async def delete_budget(self, budget_id: UUID, user_id: UUID) -> bool:
        try:
            sheet = self._client.get_budgets_sheet()
            for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
                if row and row[0] == str(budget_id) and _cell(row, 1) == str(user_id):
                    sheet.delete_rows(idx)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete budget: {e}")

    # ===== ITEMS =====

    @sheets_retry
    async def find_item(self, item_id: UUID, user_id: UUID) -> Optional[Item]:
        try:
            for item in self._all_items():
                if item.id == item_id:
                    return item if item.user_id == user_id else None
            return None
        except Exception as e:
            raise StorageError(f"Failed to get item: {e}")

    @sheets_retry
    async def find_items(
        self,
        item_filter: ItemFilter,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Item]:
        try:
            items = [i for i in self._all_items() if item_filter.matches(i)]
        except Exception as e:
            raise StorageError(f"Failed to list items: {e}")
        items.sort(key=lambda i: i.purchase_date, reverse=True)
        return _page(items, limit, offset)

    @sheets_retry
    async def save_item(self, item: Item) -> Item:
        try:
            sheet = self._client.get_items_sheet()
            _upsert_row(sheet, item.id, self._item_to_row(item))
            return item
        except Exception as e:
            raise StorageError(f"Failed to save item: {e}")

    @sheets_retry
    async def delete_item(self, item_id: UUID, user_id: UUID) -> bool:
        try:
            sheet = self._client.get_items_sheet()
            for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
                if row and row[0] == str(item_id) and _cell(row, 1) == str(user_id):
                    sheet.delete_rows(idx)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete item: {e}")

    async def count_items(self, item_filter: ItemFilter) -> int:
        return len(await self.find_items(item_filter))


class GoogleSheetsCategoryCatalog(CategoryCatalogInterface):
    """Google Sheets implementation of the category catalog."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _category_to_row(self, category: Category) -> list:
        return [
            str(category.id),
            category.name,
            category.icon,
            category.color,
            str(category.is_system),
            str(category.user_id) if category.user_id else "",
            str(category.parent_id) if category.parent_id else "",
            str(category.order),
            category.created_at.isoformat(),
        ]

    def _row_to_category(self, row: list) -> Category:
        return Category(
            id=UUID(_cell(row, 0)),
            name=_cell(row, 1),
            icon=_cell(row, 2, "📦"),
            color=_cell(row, 3, "#6c757d"),
            is_system=_cell(row, 4).lower() == "true",
            user_id=UUID(_cell(row, 5)) if _cell(row, 5) else None,
            parent_id=UUID(_cell(row, 6)) if _cell(row, 6) else None,
            order=int(_cell(row, 7, "0")),
            created_at=datetime.fromisoformat(_cell(row, 8)),
        )

    def _all_categories(self) -> list[Category]:
        categories = []
        for row in self._client.get_categories_sheet().get_all_values()[1:]:
            if row and row[0]:
                categories.append(self._row_to_category(row))
        return categories

    @sheets_retry
    async def find_category(self, category_id: UUID) -> Optional[Category]:
        try:
            for category in self._all_categories():
                if category.id == category_id:
                    return category
            return None
        except Exception as e:
            raise StorageError(f"Failed to get category: {e}")

    @sheets_retry
    async def list_categories(self, user_id: Optional[UUID] = None) -> list[Category]:
        try:
            categories = [
                c for c in self._all_categories()
                if c.is_system or (user_id is not None and c.user_id == user_id)
            ]
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")
        categories.sort(key=lambda c: (c.order, c.name))
        return categories

    @sheets_retry
    async def save_category(self, category: Category) -> Category:
        try:
            sheet = self._client.get_categories_sheet()
            _upsert_row(sheet, category.id, self._category_to_row(category))
            return category
        except Exception as e:
            raise StorageError(f"Failed to save category: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _all_events(self) -> list[AuditEvent]:
        events = []
        for row in self._client.get_audit_sheet().get_all_values()[1:]:
            if row and row[0]:
                events.append(AuditEvent.from_sheets_row(row))
        return events

    @sheets_retry
    async def append_event(self, event: AuditEvent) -> bool:
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._all_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def query_events(self, query: AuditQuery) -> list[AuditEvent]:
        try:
            events = [e for e in self._all_events() if query.matches(e)]
        except Exception as e:
            raise StorageError(f"Failed to query audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events

    @sheets_retry
    async def purge_before(self, cutoff: datetime) -> int:
        try:
            sheet = self._client.get_audit_sheet()
            stale_rows = []
            for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
                if row and row[0] and datetime.fromisoformat(_cell(row, 1)) < cutoff:
                    stale_rows.append(idx)
            # Bottom-up so earlier row numbers stay valid
            for idx in reversed(stale_rows):
                sheet.delete_rows(idx)
            return len(stale_rows)
        except Exception as e:
            raise StorageError(f"Failed to purge audit events: {e}")
