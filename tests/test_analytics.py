"""
Tests for spending history and purchase pattern detection.
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

from grocery_budget.analytics import (
    SpendingHistory,
    analyze_spending_patterns,
    change_percent,
    detect_price_increases,
    find_category_overspend,
    find_duplicate_purchases,
    find_frequent_items,
    week_start,
)
from grocery_budget.engine import NotFoundError
from grocery_budget.models.ledger import BudgetPeriod, CategoryAllocation
from grocery_budget.models.reports import (
    NoPreviousPeriod,
    PeriodComparison,
    TrendDirection,
)

from conftest import NOW, make_budget, make_item


class TestHelpers:

    def test_week_starts_on_monday(self):
        # 2024-06-15 is a Saturday
        assert week_start(NOW).isoformat() == "2024-06-10"

    def test_change_percent(self):
        assert change_percent(Decimal("150"), Decimal("100")) == 50.0
        assert change_percent(Decimal("50"), Decimal("100")) == -50.0

    def test_change_from_zero(self):
        assert change_percent(Decimal("20"), Decimal("0")) == 100.0
        assert change_percent(Decimal("0"), Decimal("0")) == 0.0


class TestPatterns:

    def test_duplicates_are_case_insensitive(self):
        user_id, budget_id, category_id = uuid4(), uuid4(), uuid4()
        items = [
            make_item(user_id, budget_id, category_id, name="Milk"),
            make_item(user_id, budget_id, category_id, name="milk "),
            make_item(user_id, budget_id, category_id, name="MILK"),
            make_item(user_id, budget_id, category_id, name="Bread"),
        ]
        duplicates = find_duplicate_purchases(items)
        assert [(d.name, d.count) for d in duplicates] == [("milk", 3)]

    def test_frequent_items_per_category(self):
        user_id, budget_id = uuid4(), uuid4()
        dairy, bakery = uuid4(), uuid4()
        items = [
            make_item(user_id, budget_id, dairy, name="Milk"),
            make_item(user_id, budget_id, dairy, name="Milk"),
            make_item(user_id, budget_id, bakery, name="Bread"),
            make_item(user_id, budget_id, dairy, name="Bread"),
        ]
        frequent = find_frequent_items(items)
        assert [(f.name, f.count) for f in frequent] == [("Milk", 2)]

    def test_category_overspend(self):
        user_id, dairy = uuid4(), uuid4()
        budget = make_budget(user_id, categories=[
            CategoryAllocation(category_id=dairy, limit=Decimal("10")),
        ])
        items = [make_item(user_id, budget.id, dairy, price="8.50")]
        overspend = find_category_overspend(budget, items, {dairy: "Dairy"})
        assert len(overspend) == 1
        assert overspend[0].category_name == "Dairy"
        assert overspend[0].percentage == 85.0

    def test_price_increase_detected(self):
        user_id, budget_id, category_id = uuid4(), uuid4(), uuid4()
        items = [
            make_item(user_id, budget_id, category_id, name="Eggs", price="2.00",
                      purchase_date=NOW - timedelta(days=10)),
            make_item(user_id, budget_id, category_id, name="Eggs", price="2.50",
                      purchase_date=NOW),
            make_item(user_id, budget_id, category_id, name="Rice", price="5.00",
                      purchase_date=NOW - timedelta(days=10)),
            make_item(user_id, budget_id, category_id, name="Rice", price="5.20",
                      purchase_date=NOW),
        ]
        increases = detect_price_increases(items)
        assert len(increases) == 1
        assert increases[0].name == "eggs"
        assert increases[0].increase_percent == 25.0

    def test_free_first_purchase_skipped(self):
        user_id, budget_id, category_id = uuid4(), uuid4(), uuid4()
        items = [
            make_item(user_id, budget_id, category_id, name="Sample", price="0.00",
                      purchase_date=NOW - timedelta(days=1)),
            make_item(user_id, budget_id, category_id, name="Sample", price="3.00",
                      purchase_date=NOW),
        ]
        assert detect_price_increases(items) == []

    def test_empty_patterns(self):
        budget = make_budget(uuid4())
        assert analyze_spending_patterns(budget, []).is_empty


class TestSpendingHistory:

    async def _budget(self, ledger, user_id, start, is_active):
        return await ledger.save_budget(make_budget(
            user_id,
            period=BudgetPeriod(start=start, end=start + timedelta(days=7)),
            is_active=is_active,
        ))

    async def test_no_previous_period(self, ledger, catalog, user_id):
        current = await self._budget(ledger, user_id, NOW, True)
        result = await SpendingHistory(ledger, catalog).compare_periods(user_id, current.id)
        assert isinstance(result, NoPreviousPeriod)
        assert result.current_budget_id == current.id

    async def test_missing_current_budget(self, ledger, catalog, user_id):
        with pytest.raises(NotFoundError):
            await SpendingHistory(ledger, catalog).compare_periods(user_id, uuid4())

    async def test_compare_with_latest_previous(self, ledger, catalog, categories, user_id):
        produce = categories["Produce"].id
        dairy = categories["Dairy"].id
        older = await self._budget(ledger, user_id, NOW - timedelta(days=30), False)
        previous = await self._budget(ledger, user_id, NOW - timedelta(days=10), False)
        current = await self._budget(ledger, user_id, NOW, True)

        await ledger.save_item(make_item(user_id, older.id, produce, price="99.00"))
        await ledger.save_item(make_item(user_id, previous.id, produce, price="40.00"))
        await ledger.save_item(make_item(user_id, current.id, produce, price="60.00"))
        await ledger.save_item(make_item(user_id, current.id, dairy, price="20.00"))

        result = await SpendingHistory(ledger, catalog).compare_periods(user_id, current.id)
        assert isinstance(result, PeriodComparison)
        assert result.previous_budget_id == previous.id
        assert result.current_total == Decimal("80.00")
        assert result.previous_total == Decimal("40.00")
        assert result.change_percent == 100.0

        by_name = {c.category_name: c for c in result.categories}
        assert by_name["Produce"].change_percent == 50.0
        # New category with no previous spend
        assert by_name["Dairy"].previous == Decimal("0")
        assert by_name["Dairy"].change_percent == 100.0

    async def test_increasing_trend(self, ledger, catalog, categories, user_id):
        produce = categories["Produce"].id
        budget = await self._budget(ledger, user_id, NOW - timedelta(days=28), True)
        for weeks_ago, price in [(3, "10.00"), (2, "10.00"), (1, "30.00"), (0, "30.00")]:
            await ledger.save_item(make_item(
                user_id, budget.id, produce, price=price,
                purchase_date=NOW - timedelta(weeks=weeks_ago),
            ))

        trends = await SpendingHistory(ledger, catalog).analyze_spending_trends(
            user_id, window_days=30, now=NOW
        )
        assert trends.trend == TrendDirection.INCREASING
        assert len(trends.weekly_spending) == 4
        assert trends.total_spent == Decimal("80.00")
        assert trends.weekly_average == Decimal("20.00")
        assert trends.category_trends[0].category_name == "Produce"

    async def test_single_week_is_stable(self, ledger, catalog, categories, user_id):
        budget = await self._budget(ledger, user_id, NOW - timedelta(days=3), True)
        await ledger.save_item(make_item(
            user_id, budget.id, categories["Dairy"].id, purchase_date=NOW
        ))
        trends = await SpendingHistory(ledger, catalog).analyze_spending_trends(
            user_id, now=NOW
        )
        assert trends.trend == TrendDirection.STABLE

    async def test_items_outside_window_ignored(self, ledger, catalog, categories, user_id):
        budget = await self._budget(ledger, user_id, NOW - timedelta(days=90), False)
        await ledger.save_item(make_item(
            user_id, budget.id, categories["Dairy"].id,
            purchase_date=NOW - timedelta(days=60),
        ))
        trends = await SpendingHistory(ledger, catalog).analyze_spending_trends(
            user_id, window_days=30, now=NOW
        )
        assert trends.total_items == 0
        assert trends.weekly_spending == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
