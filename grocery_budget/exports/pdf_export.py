"""
PDF Export

A printable report of one budget: summary, category breakdown and the
item list, rendered with reportlab.

Built from the same ledger reads as the CSV exports. Never writes.
"""

import io
import re
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from xml.sax.saxutils import escape

from pydantic import BaseModel
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import (
    PageBreak,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from grocery_budget.engine.errors import NotFoundError
from grocery_budget.models.ledger import Budget, Item, ItemFilter
from grocery_budget.services.storage import (
    CategoryCatalogInterface,
    LedgerStorageInterface,
)


MARGIN = 50
ITEM_NAME_WIDTH = 20

GREEN = "#10B981"
AMBER = "#F59E0B"
RED = "#EF4444"

HEADER_STYLE = TableStyle([
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("LINEBELOW", (0, 0), (-1, 0), 0.75, colors.black),
    ("FONTSIZE", (0, 0), (-1, -1), 9),
    ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
])


class PdfExport(BaseModel):
    """A rendered PDF document."""

    filename: str
    content: bytes
    row_count: int


def pdf_filename(budget_name: str, now: Optional[datetime] = None) -> str:
    """budget_<name with non-alphanumerics as _>_YYYY-MM-DD.pdf"""
    safe_name = re.sub(r"[^a-zA-Z0-9]", "_", budget_name)
    return f"budget_{safe_name}_{(now or datetime.now()).date().isoformat()}.pdf"


def _money(value: Decimal) -> str:
    return f"{value:,.2f}"


def _usage_color(percentage: float) -> str:
    if percentage > 90:
        return RED
    if percentage > 75:
        return AMBER
    return GREEN


def _short(name: str) -> str:
    if len(name) > ITEM_NAME_WIDTH:
        return name[:ITEM_NAME_WIDTH] + "..."
    return name


class PdfExporter:
    """Builds a budget report PDF from the ledger."""

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        catalog: CategoryCatalogInterface,
    ):
        self._ledger = ledger
        self._catalog = catalog

    async def export_budget(
        self,
        user_id: UUID,
        budget_id: UUID,
        now: Optional[datetime] = None,
    ) -> PdfExport:
        """
        Render one budget as a PDF report.

        Raises:
            NotFoundError: If the budget does not exist or is not the user's
        """
        budget = await self._ledger.find_budget(budget_id, user_id)
        if budget is None:
            raise NotFoundError("budget", budget_id)

        items = await self._ledger.find_items(
            ItemFilter(user_id=user_id, budget_id=budget_id)
        )
        names = {c.id: c.name for c in await self._catalog.list_categories(user_id)}

        now = now or datetime.now()
        content = render_budget_pdf(budget, items, names, now)
        return PdfExport(
            filename=pdf_filename(budget.name, now),
            content=content,
            row_count=len(items),
        )


def render_budget_pdf(
    budget: Budget,
    items: list[Item],
    category_names: dict[UUID, str],
    now: datetime,
) -> bytes:
    """Lay out the report and return the PDF bytes."""
    styles = getSampleStyleSheet()
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=f"Budget Report - {budget.name}",
    )

    story = [
        Paragraph("Budget Report", styles["Title"]),
        Paragraph(escape(budget.name), styles["Heading2"]),
        Paragraph(
            f"Period: {budget.period.start.date().isoformat()} - "
            f"{budget.period.end.date().isoformat()}",
            styles["Normal"],
        ),
        Paragraph(f"Generated on: {now.date().isoformat()}", styles["Normal"]),
        Spacer(1, 24),
        Paragraph("Budget Summary", styles["Heading2"]),
    ]

    summary = Table(
        [
            ["Total Budget", "Amount Spent", "Remaining"],
            [
                _money(budget.total_limit),
                _money(budget.current_spent),
                _money(budget.remaining_budget),
            ],
        ],
        colWidths=[150, 150, 150],
    )
    remaining_color = colors.HexColor(GREEN if budget.remaining_budget >= 0 else RED)
    summary.setStyle(TableStyle([
        ("BOX", (0, 0), (-1, -1), 0.75, colors.black),
        ("INNERGRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("FONTNAME", (0, 1), (-1, 1), "Helvetica-Bold"),
        ("FONTSIZE", (0, 1), (-1, 1), 14),
        ("TEXTCOLOR", (2, 1), (2, 1), remaining_color),
    ]))
    story += [
        summary,
        Spacer(1, 12),
        Paragraph(
            f'Budget Usage: <font color="{_usage_color(budget.percentage_spent)}">'
            f"{budget.percentage_spent:.1f}%</font>",
            styles["Normal"],
        ),
        Spacer(1, 24),
    ]

    spending: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for item in items:
        spending[category_names.get(item.category_id, "Uncategorized")] += item.total_price

    if spending:
        rows = [["Category", "Amount Spent", "Percentage"]]
        for name, amount in spending.items():
            share = (
                float(amount / budget.current_spent * 100)
                if budget.current_spent > 0 else 0.0
            )
            rows.append([name, _money(amount), f"{share:.1f}%"])
        breakdown = Table(rows, colWidths=[200, 150, 100])
        breakdown.setStyle(HEADER_STYLE)
        story += [Paragraph("Category Breakdown", styles["Heading2"]), breakdown]

    story += [PageBreak(), Paragraph("Transaction Details", styles["Heading2"])]
    if items:
        rows = [["Date", "Item", "Category", "Qty", "Price", "Total"]]
        for item in items:
            rows.append([
                item.purchase_date.date().isoformat(),
                _short(item.name),
                category_names.get(item.category_id, "Uncategorized"),
                str(item.quantity),
                _money(item.price),
                _money(item.total_price),
            ])
        transactions = Table(rows, colWidths=[70, 130, 100, 40, 75, 80], repeatRows=1)
        transactions.setStyle(HEADER_STYLE)
        story.append(transactions)
    else:
        story.append(Paragraph("No items recorded for this budget.", styles["Normal"]))

    doc.build(story)
    return buffer.getvalue()
