"""
Period Comparator and Trend Analyzer

Read-only analytics over a user's ledger.

compare_periods: current budget against the most recent earlier inactive one.
analyze_spending_trends: weekly spend buckets over a look-back window.

Weeks start on Monday at local midnight.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

import structlog

from grocery_budget.engine.errors import NotFoundError
from grocery_budget.models.ledger import BudgetFilter, Item, ItemFilter
from grocery_budget.models.reports import (
    CategoryComparison,
    CategoryTrend,
    NoPreviousPeriod,
    PeriodComparison,
    SpendingTrends,
    TrendDirection,
    WeeklySpending,
)
from grocery_budget.services.storage import (
    CategoryCatalogInterface,
    LedgerStorageInterface,
)


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")
UNKNOWN_CATEGORY = "Unknown"


def week_start(moment: datetime) -> date:
    """Monday of the week containing moment."""
    day = moment.date()
    return day - timedelta(days=day.weekday())


def change_percent(current: Decimal, previous: Decimal) -> float:
    """
    Relative change in percent.

    With nothing spent previously: 100 if anything is spent now, else 0.
    """
    if previous > 0:
        return float((current - previous) / previous * 100)
    return 100.0 if current > 0 else 0.0


def _total(items: list[Item]) -> Decimal:
    return sum((item.total_price for item in items), ZERO)


class SpendingHistory:
    """Period comparison and trend analysis for one ledger."""

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        catalog: CategoryCatalogInterface,
        trend_change_ratio: float = 0.10,
    ):
        self._ledger = ledger
        self._catalog = catalog
        self._trend_change_ratio = Decimal(str(trend_change_ratio))

    async def _category_names(self, user_id: UUID) -> dict[UUID, str]:
        categories = await self._catalog.list_categories(user_id)
        return {c.id: c.name for c in categories}

    async def compare_periods(
        self,
        user_id: UUID,
        current_budget_id: UUID,
    ) -> Union[PeriodComparison, NoPreviousPeriod]:
        """
        Compare a budget with the user's previous period.

        The previous period is the inactive budget whose period ended
        before the current one started, latest end first.

        Raises:
            NotFoundError: If the current budget doesn't exist for this user
        """
        current = await self._ledger.find_budget(current_budget_id, user_id)
        if current is None:
            raise NotFoundError("budget", current_budget_id)

        candidates = await self._ledger.find_budgets(BudgetFilter(
            user_id=user_id,
            is_active=False,
            ended_before=current.period.start,
        ))
        if not candidates:
            return NoPreviousPeriod(current_budget_id=current.id)
        previous = max(candidates, key=lambda b: b.period.end)

        current_items = await self._ledger.find_items(
            ItemFilter(user_id=user_id, budget_id=current.id)
        )
        previous_items = await self._ledger.find_items(
            ItemFilter(user_id=user_id, budget_id=previous.id)
        )

        current_by_category: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        previous_by_category: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        for item in current_items:
            current_by_category[item.category_id] += item.total_price
        for item in previous_items:
            previous_by_category[item.category_id] += item.total_price

        names = await self._category_names(user_id)
        category_ids = list(dict.fromkeys(
            list(current_by_category) + list(previous_by_category)
        ))
        categories = []
        for category_id in category_ids:
            now_spent = current_by_category.get(category_id, ZERO)
            then_spent = previous_by_category.get(category_id, ZERO)
            categories.append(CategoryComparison(
                category_id=category_id,
                category_name=names.get(category_id, UNKNOWN_CATEGORY),
                current=now_spent,
                previous=then_spent,
                change=now_spent - then_spent,
                change_percent=change_percent(now_spent, then_spent),
            ))

        current_total = _total(current_items)
        previous_total = _total(previous_items)
        return PeriodComparison(
            current_budget_id=current.id,
            previous_budget_id=previous.id,
            current_total=current_total,
            previous_total=previous_total,
            change=current_total - previous_total,
            change_percent=change_percent(current_total, previous_total),
            categories=categories,
        )

    async def analyze_spending_trends(
        self,
        user_id: UUID,
        window_days: int = 30,
        now: Optional[datetime] = None,
    ) -> SpendingTrends:
        """
        Bucket the user's purchases inside the window by week.

        The buckets are split in half by position (the extra bucket of an
        odd count goes to the second half). The trend is increasing when
        the second half averages more than trend_change_ratio above the
        first, decreasing when more than that below, else stable.
        Fewer than two buckets is always stable.
        """
        now = now or datetime.now()
        items = await self._ledger.find_items(ItemFilter(
            user_id=user_id,
            date_from=now - timedelta(days=window_days),
            date_to=now,
        ))

        weekly_totals: dict[date, Decimal] = defaultdict(lambda: ZERO)
        weekly_counts: dict[date, int] = defaultdict(int)
        by_category: dict[UUID, dict[date, Decimal]] = defaultdict(
            lambda: defaultdict(lambda: ZERO)
        )
        for item in items:
            week = week_start(item.purchase_date)
            weekly_totals[week] += item.total_price
            weekly_counts[week] += 1
            by_category[item.category_id][week] += item.total_price

        weeks = sorted(weekly_totals)
        weekly = [
            WeeklySpending(
                week_start=week,
                total=weekly_totals[week],
                item_count=weekly_counts[week],
            )
            for week in weeks
        ]

        total_spent = _total(items)
        weekly_average = total_spent / len(weeks) if weeks else ZERO

        names = await self._category_names(user_id)
        category_trends = [
            CategoryTrend(
                category_id=category_id,
                category_name=names.get(category_id, UNKNOWN_CATEGORY),
                weekly=dict(sorted(per_week.items())),
                total=sum(per_week.values(), ZERO),
            )
            for category_id, per_week in by_category.items()
        ]
        category_trends.sort(key=lambda t: t.total, reverse=True)

        trend = self._trend([weekly_totals[week] for week in weeks])
        logger.debug(
            "spending_trends_analyzed",
            user_id=str(user_id),
            weeks=len(weeks),
            trend=trend.value,
        )
        return SpendingTrends(
            window_days=window_days,
            trend=trend,
            weekly_spending=weekly,
            weekly_average=weekly_average,
            category_trends=category_trends,
            total_items=len(items),
            total_spent=total_spent,
        )

    def _trend(self, totals: list[Decimal]) -> TrendDirection:
        if len(totals) < 2:
            return TrendDirection.STABLE

        middle = len(totals) // 2
        first_half, second_half = totals[:middle], totals[middle:]
        first_avg = sum(first_half, ZERO) / len(first_half)
        second_avg = sum(second_half, ZERO) / len(second_half)

        if second_avg > first_avg * (1 + self._trend_change_ratio):
            return TrendDirection.INCREASING
        if second_avg < first_avg * (1 - self._trend_change_ratio):
            return TrendDirection.DECREASING
        return TrendDirection.STABLE
