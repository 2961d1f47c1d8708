"""
Tests for CSV and PDF exports.
"""

import csv
import io
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from grocery_budget.engine import NotFoundError
from grocery_budget.exports import CsvExporter, PdfExporter, generate_filename, pdf_filename
from grocery_budget.models.audit import AuditEventType, AuditQuery
from grocery_budget.models.ledger import BudgetPeriod, CategoryAllocation

from conftest import NOW, make_budget, make_item


def rows(export) -> list[dict]:
    return list(csv.DictReader(io.StringIO(export.content)))


@pytest.fixture
async def stocked_budget(ledger, categories, user_id):
    dairy = categories["Dairy"].id
    snacks = categories["Snacks"].id
    budget = await ledger.save_budget(make_budget(
        user_id,
        total_limit="100.00",
        current_spent="30.00",
        categories=[CategoryAllocation(category_id=dairy, limit=Decimal("10.00"))],
    ))
    await ledger.save_item(make_item(
        user_id, budget.id, dairy, name="Cheese", price="6.00", quantity=2,
        is_essential=True, purchase_date=NOW,
    ))
    await ledger.save_item(make_item(
        user_id, budget.id, snacks, name="Chips", price="18.00",
        purchase_date=NOW - timedelta(days=3),
    ))
    return budget


class TestCsvExporter:

    def test_filename(self):
        assert generate_filename("items", datetime(2024, 6, 15, 9, 5, 1)) == (
            "items_2024-06-15T09-05-01.csv"
        )

    async def test_budget_summary(self, ledger, catalog, stocked_budget, user_id):
        export = await CsvExporter(ledger, catalog).export_budget_summary(
            user_id, stocked_budget.id
        )
        [row] = rows(export)
        assert row["Remaining Budget"] == "70.00"
        assert row["Percentage Spent"] == "30.00%"
        assert row["Status"] == "Active"

    async def test_items_newest_first(self, ledger, catalog, stocked_budget, user_id):
        export = await CsvExporter(ledger, catalog).export_items(user_id, stocked_budget.id)
        assert export.row_count == 2
        first, second = rows(export)
        assert first["Item Name"] == "Cheese"
        assert first["Total Cost"] == "12.00"
        assert first["Essential"] == "Yes"
        assert second["Category"] == "Snacks"

    async def test_items_date_filter(self, ledger, catalog, stocked_budget, user_id):
        export = await CsvExporter(ledger, catalog).export_items(
            user_id, stocked_budget.id, date_from=NOW - timedelta(days=1)
        )
        assert [r["Item Name"] for r in rows(export)] == ["Cheese"]

    async def test_category_breakdown(self, ledger, catalog, stocked_budget, user_id):
        export = await CsvExporter(ledger, catalog).export_category_breakdown(
            user_id, stocked_budget.id
        )
        by_category = {r["Category"]: r for r in rows(export)}
        assert by_category["Dairy"]["Status"] == "Over Limit"
        assert by_category["Dairy"]["Percentage of Total"] == "40.00%"
        assert by_category["Snacks"]["Category Limit"] == "No limit"

    async def test_comprehensive_report_range(self, ledger, catalog, categories, stocked_budget, user_id):
        old = await ledger.save_budget(make_budget(
            user_id,
            name="March",
            is_active=False,
            period=BudgetPeriod(start=datetime(2024, 3, 1), end=datetime(2024, 3, 31)),
        ))
        await ledger.save_item(make_item(user_id, old.id, categories["Meat"].id, name="Beef"))

        everything = await CsvExporter(ledger, catalog).export_comprehensive_report(user_id)
        assert everything.row_count == 3
        assert rows(everything)[-1]["Budget Status"] == "Completed"

        recent = await CsvExporter(ledger, catalog).export_comprehensive_report(
            user_id, start_from=datetime(2024, 5, 1)
        )
        assert {r["Budget Name"] for r in rows(recent)} == {stocked_budget.name}

    async def test_comprehensive_report_reads_items_once(self, ledger, catalog, stocked_budget, user_id):
        await ledger.save_budget(make_budget(user_id, name="Empty"))
        calls = []
        find_items = ledger.find_items

        async def counting_find_items(item_filter, *args, **kwargs):
            calls.append(item_filter)
            return await find_items(item_filter, *args, **kwargs)

        ledger.find_items = counting_find_items
        export = await CsvExporter(ledger, catalog).export_comprehensive_report(user_id)

        assert export.row_count == 2
        assert len(calls) == 1
        assert stocked_budget.id in calls[0].budget_ids

    async def test_foreign_budget_not_found(self, ledger, catalog, stocked_budget):
        with pytest.raises(NotFoundError):
            await CsvExporter(ledger, catalog).export_items(uuid4(), stocked_budget.id)


class TestPdfExporter:

    def test_filename(self):
        assert pdf_filename("June groceries!", datetime(2024, 6, 15, 9, 5)) == (
            "budget_June_groceries__2024-06-15.pdf"
        )

    async def test_renders_pdf(self, ledger, catalog, stocked_budget, user_id):
        export = await PdfExporter(ledger, catalog).export_budget(
            user_id, stocked_budget.id, now=NOW
        )
        assert export.content.startswith(b"%PDF-")
        assert b"%%EOF" in export.content[-32:]
        assert export.row_count == 2
        assert export.filename == "budget_June_groceries_2024-06-15.pdf"

    async def test_empty_budget_renders(self, ledger, catalog, user_id):
        budget = await ledger.save_budget(make_budget(user_id, name="Fish & Chips"))
        export = await PdfExporter(ledger, catalog).export_budget(user_id, budget.id)
        assert export.content.startswith(b"%PDF-")
        assert export.row_count == 0

    async def test_foreign_budget_not_found(self, ledger, catalog, stocked_budget):
        with pytest.raises(NotFoundError):
            await PdfExporter(ledger, catalog).export_budget(uuid4(), stocked_budget.id)


class TestExportFlow:

    async def test_exports_are_audited(self, export_flow, audit_storage, stocked_budget, user_id):
        export = await export_flow.export_category_breakdown(user_id, stocked_budget.id)
        events = await audit_storage.query_events(AuditQuery(
            user_id=user_id, event_type=AuditEventType.DATA_EXPORTED
        ))
        assert len(events) == 1
        assert events[0].details == {
            "export_type": "category_breakdown",
            "row_count": export.row_count,
        }

    async def test_pdf_export_is_audited(self, export_flow, audit_storage, stocked_budget, user_id):
        export = await export_flow.export_budget_pdf(user_id, stocked_budget.id)
        assert export.content.startswith(b"%PDF-")

        [event] = await audit_storage.query_events(AuditQuery(
            user_id=user_id, event_type=AuditEventType.DATA_EXPORTED
        ))
        assert event.entity_id == stocked_budget.id
        assert event.details == {"export_type": "budget_pdf", "row_count": 2}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
