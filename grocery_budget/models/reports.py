"""
Report Models for Grocery Budget

Read-side shapes: write responses, running totals, period comparisons,
spending trends and detected purchase patterns.

None of these are persisted. They are rebuilt from the ledger on demand.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from grocery_budget.models.ledger import (
    Budget,
    BudgetStatus,
    Item,
    SpendingAlert,
    ValidationIssue,
)
from grocery_budget.models.tips import TipSuggestion


# =============================================================================
# WRITE RESPONSES
# =============================================================================

class ItemWriteResult(BaseModel):
    """
    Response to a single item create/update/delete.

    budget_status is None only when the budget vanished during the write.
    """

    item: Optional[Item] = None
    budget_status: Optional[BudgetStatus] = None
    alerts: list[SpendingAlert] = Field(default_factory=list)
    tips: list[TipSuggestion] = Field(default_factory=list)


class BatchItemFailure(BaseModel):
    """One rejected entry of a batch create."""

    index: int = Field(..., ge=0, description="Position in the submitted batch")
    name: Optional[str] = None
    error: str
    issues: list[ValidationIssue] = Field(default_factory=list)


class BatchSummary(BaseModel):
    total: int
    created: int
    failed: int


class BatchResult(BaseModel):
    """Partial-success result of a batch create."""

    created: list[Item] = Field(default_factory=list)
    failures: list[BatchItemFailure] = Field(default_factory=list)
    budget_status: Optional[BudgetStatus] = None
    alerts: list[SpendingAlert] = Field(default_factory=list)
    tips: list[TipSuggestion] = Field(default_factory=list)

    @property
    def summary(self) -> BatchSummary:
        return BatchSummary(
            total=len(self.created) + len(self.failures),
            created=len(self.created),
            failed=len(self.failures),
        )


class BudgetDetail(BaseModel):
    """A budget with its current status, alerts and tips."""

    budget: Budget
    status: BudgetStatus
    is_expired: bool = False
    alerts: list[SpendingAlert] = Field(default_factory=list)
    tips: list[TipSuggestion] = Field(default_factory=list)


# =============================================================================
# ITEM LISTINGS & RUNNING TOTALS
# =============================================================================

class ItemStats(BaseModel):
    total_items: int = 0
    total_spent: Decimal = Decimal("0")
    essential_spent: Decimal = Decimal("0")
    non_essential_spent: Decimal = Decimal("0")


class ItemListing(BaseModel):
    """A page of items plus stats over the whole filtered set."""

    items: list[Item] = Field(default_factory=list)
    total: int = 0
    limit: int = 50
    offset: int = 0
    stats: ItemStats = Field(default_factory=ItemStats)


class CategoryBreakdown(BaseModel):
    """
    Spend in one category of one budget.

    limit, remaining and percentage_used are only set when the
    budget allocates this category.
    """

    category_id: UUID
    category_name: str
    spent: Decimal = Decimal("0")
    item_count: int = 0
    essential_spent: Decimal = Decimal("0")
    non_essential_spent: Decimal = Decimal("0")
    limit: Optional[Decimal] = None
    remaining: Optional[Decimal] = None
    percentage_used: Optional[float] = None


class RunningTotals(BaseModel):
    budget_id: UUID
    status: BudgetStatus
    categories: list[CategoryBreakdown] = Field(default_factory=list)
    total_items: int = 0
    essential_items: int = 0
    non_essential_items: int = 0
    average_item_cost: Decimal = Decimal("0")


# =============================================================================
# PERIOD COMPARISON
# =============================================================================

class CategoryComparison(BaseModel):
    category_id: UUID
    category_name: str
    current: Decimal
    previous: Decimal
    change: Decimal
    change_percent: float


class PeriodComparison(BaseModel):
    """Current budget versus the most recent earlier inactive budget."""

    current_budget_id: UUID
    previous_budget_id: UUID
    current_total: Decimal
    previous_total: Decimal
    change: Decimal
    change_percent: float
    categories: list[CategoryComparison] = Field(default_factory=list)


class NoPreviousPeriod(BaseModel):
    """Returned when there is nothing to compare against."""

    current_budget_id: UUID
    message: str = "No previous budget period to compare against"


# =============================================================================
# SPENDING TRENDS
# =============================================================================

class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class WeeklySpending(BaseModel):
    week_start: date
    total: Decimal
    item_count: int


class CategoryTrend(BaseModel):
    category_id: UUID
    category_name: str
    weekly: dict[date, Decimal] = Field(default_factory=dict)
    total: Decimal = Decimal("0")


class SpendingTrends(BaseModel):
    window_days: int
    trend: TrendDirection = TrendDirection.STABLE
    weekly_spending: list[WeeklySpending] = Field(default_factory=list)
    weekly_average: Decimal = Decimal("0")
    category_trends: list[CategoryTrend] = Field(default_factory=list)
    total_items: int = 0
    total_spent: Decimal = Decimal("0")


# =============================================================================
# PURCHASE PATTERNS
# =============================================================================

class PurchaseCount(BaseModel):
    """An item name and how often it was bought."""

    name: str
    count: int


class CategoryOverspend(BaseModel):
    category_id: UUID
    category_name: str
    spent: Decimal
    limit: Decimal
    percentage: float


class PriceIncrease(BaseModel):
    name: str
    first_price: Decimal
    last_price: Decimal
    increase_percent: float


class SpendingPatterns(BaseModel):
    duplicates: list[PurchaseCount] = Field(default_factory=list)
    category_overspend: list[CategoryOverspend] = Field(default_factory=list)
    frequent_items: list[PurchaseCount] = Field(default_factory=list)
    price_increases: list[PriceIncrease] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.duplicates
            or self.category_overspend
            or self.frequent_items
            or self.price_increases
        )
