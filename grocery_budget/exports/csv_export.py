"""
CSV Export

Read-only renderings of a user's budgets and items as CSV text.

Column headers are user-facing labels, so they are kept human readable.
"""

import csv
import io
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from grocery_budget.engine.errors import NotFoundError
from grocery_budget.models.ledger import BudgetFilter, ItemFilter
from grocery_budget.services.storage import (
    CategoryCatalogInterface,
    LedgerStorageInterface,
)


SUMMARY_FIELDS = [
    "Budget Name",
    "Total Limit",
    "Current Spent",
    "Remaining Budget",
    "Percentage Spent",
    "Start Date",
    "End Date",
    "Status",
    "Created Date",
]

ITEM_FIELDS = [
    "Item Name",
    "Category",
    "Price",
    "Quantity",
    "Total Cost",
    "Essential",
    "Purchase Date",
    "Notes",
    "Added Date",
]

CATEGORY_FIELDS = [
    "Category",
    "Amount Spent",
    "Category Limit",
    "Items Count",
    "Percentage of Total",
    "Status",
]

REPORT_FIELDS = [
    "Budget Name",
    "Budget Period",
    "Item Name",
    "Category",
    "Price",
    "Quantity",
    "Total Cost",
    "Essential",
    "Purchase Date",
    "Budget Status",
]


class CsvExport(BaseModel):
    """A rendered CSV document."""

    filename: str
    content: str
    row_count: int


def _render(fields: list[str], rows: list[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fields, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def _money(value: Decimal) -> str:
    return f"{value:.2f}"


def generate_filename(prefix: str, now: Optional[datetime] = None) -> str:
    """prefix_YYYY-MM-DDTHH-MM-SS.csv"""
    stamp = (now or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
    return f"{prefix}_{stamp}.csv"


class CsvExporter:
    """Builds CSV exports from the ledger. Never writes to it."""

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        catalog: CategoryCatalogInterface,
    ):
        self._ledger = ledger
        self._catalog = catalog

    async def _category_names(self, user_id: UUID) -> dict[UUID, str]:
        return {c.id: c.name for c in await self._catalog.list_categories(user_id)}

    async def export_budget_summary(self, user_id: UUID, budget_id: UUID) -> CsvExport:
        budget = await self._ledger.find_budget(budget_id, user_id)
        if budget is None:
            raise NotFoundError("budget", budget_id)

        row = {
            "Budget Name": budget.name,
            "Total Limit": _money(budget.total_limit),
            "Current Spent": _money(budget.current_spent),
            "Remaining Budget": _money(budget.remaining_budget),
            "Percentage Spent": f"{budget.percentage_spent:.2f}%",
            "Start Date": budget.period.start.date().isoformat(),
            "End Date": budget.period.end.date().isoformat(),
            "Status": "Active" if budget.is_active else "Inactive",
            "Created Date": budget.created_at.date().isoformat(),
        }
        return CsvExport(
            filename=generate_filename("budget_summary"),
            content=_render(SUMMARY_FIELDS, [row]),
            row_count=1,
        )

    async def export_items(
        self,
        user_id: UUID,
        budget_id: UUID,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        category_id: Optional[UUID] = None,
    ) -> CsvExport:
        """Items of one budget, most recent purchase first."""
        budget = await self._ledger.find_budget(budget_id, user_id)
        if budget is None:
            raise NotFoundError("budget", budget_id)

        items = await self._ledger.find_items(ItemFilter(
            user_id=user_id,
            budget_id=budget_id,
            category_id=category_id,
            date_from=date_from,
            date_to=date_to,
        ))
        names = await self._category_names(user_id)

        rows = [
            {
                "Item Name": item.name,
                "Category": names.get(item.category_id, "Uncategorized"),
                "Price": _money(item.price),
                "Quantity": item.quantity,
                "Total Cost": _money(item.total_price),
                "Essential": "Yes" if item.is_essential else "No",
                "Purchase Date": item.purchase_date.date().isoformat(),
                "Notes": item.notes or "",
                "Added Date": item.created_at.date().isoformat(),
            }
            for item in items
        ]
        return CsvExport(
            filename=generate_filename("items"),
            content=_render(ITEM_FIELDS, rows),
            row_count=len(rows),
        )

    async def export_category_breakdown(self, user_id: UUID, budget_id: UUID) -> CsvExport:
        """Spend per category that has items, against its allocation if any."""
        budget = await self._ledger.find_budget(budget_id, user_id)
        if budget is None:
            raise NotFoundError("budget", budget_id)

        items = await self._ledger.find_items(
            ItemFilter(user_id=user_id, budget_id=budget_id)
        )
        names = await self._category_names(user_id)

        spent: dict[UUID, Decimal] = {}
        counts: dict[UUID, int] = {}
        for item in items:
            spent[item.category_id] = spent.get(item.category_id, Decimal("0")) + item.total_price
            counts[item.category_id] = counts.get(item.category_id, 0) + 1

        rows = []
        for category_id, amount in spent.items():
            allocation = budget.allocation_for(category_id)
            limit = allocation.limit if allocation and allocation.limit > 0 else None
            share = (
                float(amount / budget.current_spent * 100)
                if budget.current_spent > 0 else 0.0
            )
            rows.append({
                "Category": names.get(category_id, "Uncategorized"),
                "Amount Spent": _money(amount),
                "Category Limit": _money(limit) if limit is not None else "No limit",
                "Items Count": counts[category_id],
                "Percentage of Total": f"{share:.2f}%",
                "Status": "Over Limit" if limit is not None and amount > limit else "Within Limit",
            })

        return CsvExport(
            filename=generate_filename("category_breakdown"),
            content=_render(CATEGORY_FIELDS, rows),
            row_count=len(rows),
        )

    async def export_comprehensive_report(
        self,
        user_id: UUID,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> CsvExport:
        """Every item of every budget whose period starts inside the range."""
        budgets = await self._ledger.find_budgets(BudgetFilter(user_id=user_id))
        budgets = [
            b for b in budgets
            if (start_from is None or b.period.start >= start_from)
            and (start_to is None or b.period.start <= start_to)
        ]
        budgets.sort(key=lambda b: b.period.start, reverse=True)
        names = await self._category_names(user_id)

        by_budget: dict[UUID, list] = {b.id: [] for b in budgets}
        if budgets:
            for item in await self._ledger.find_items(ItemFilter(
                user_id=user_id,
                budget_ids=list(by_budget),
            )):
                by_budget[item.budget_id].append(item)

        rows = []
        for budget in budgets:
            period = (
                f"{budget.period.start.date().isoformat()} to "
                f"{budget.period.end.date().isoformat()}"
            )
            for item in by_budget[budget.id]:
                rows.append({
                    "Budget Name": budget.name,
                    "Budget Period": period,
                    "Item Name": item.name,
                    "Category": names.get(item.category_id, "Uncategorized"),
                    "Price": _money(item.price),
                    "Quantity": item.quantity,
                    "Total Cost": _money(item.total_price),
                    "Essential": "Yes" if item.is_essential else "No",
                    "Purchase Date": item.purchase_date.date().isoformat(),
                    "Budget Status": "Active" if budget.is_active else "Completed",
                })

        return CsvExport(
            filename=generate_filename("comprehensive_report"),
            content=_render(REPORT_FIELDS, rows),
            row_count=len(rows),
        )
