"""
Core Ledger Models for Grocery Budget

These models define the schemas for budgets, purchased items and categories.
They are designed to:
1. Enforce field ranges at the boundary (prices, quantities, limits)
2. Keep derived values (spend, percentages) computed, never hand-set
3. Be serializable for storage, exports and logging

DESIGN DECISION: Money is always Decimal.
Aggregation compares sums against limits, so float drift is not acceptable.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AlertLevel(str, Enum):
    """
    Spending alert tier derived from percentage of the total limit spent.

    Only one tier is ever emitted for a single evaluation.
    """
    NONE = "none"
    INFO = "info"          # >= 50%
    WARNING = "warning"    # >= 75%
    CRITICAL = "critical"  # >= 90%


class RejectionReason(str, Enum):
    """Why the limit enforcer refused an item write."""
    INACTIVE_BUDGET = "inactive_budget"
    TOTAL_LIMIT_EXCEEDED = "total_limit_exceeded"
    CATEGORY_LIMIT_EXCEEDED = "category_limit_exceeded"


# =============================================================================
# CATEGORY MODELS
# =============================================================================

class Category(BaseModel):
    """
    A grocery category.

    System categories are shared read-only seed data (user_id is None).
    User categories are private to their owner.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=50)
    icon: str = Field(default="📦", max_length=10)
    color: str = Field(
        default="#6c757d",
        pattern=r"^#[0-9A-Fa-f]{6}$",
        description="Hex display color"
    )
    is_system: bool = False
    user_id: Optional[UUID] = None
    parent_id: Optional[UUID] = Field(
        default=None,
        description="Parent category (one level deep)"
    )
    order: int = 0
    created_at: datetime = Field(default_factory=datetime.now)

    def is_visible_to(self, user_id: UUID) -> bool:
        """System categories are visible to everyone, others only to the owner."""
        return self.is_system or self.user_id == user_id


class CategoryAllocation(BaseModel):
    """A soft per-category cap embedded in a budget."""

    category_id: UUID
    limit: Decimal = Field(..., ge=0, decimal_places=2)


# =============================================================================
# BUDGET MODELS
# =============================================================================

class BudgetPeriod(BaseModel):
    """Date range a budget covers."""

    start: datetime
    end: datetime

    @model_validator(mode='after')
    def validate_range(self) -> 'BudgetPeriod':
        if self.end <= self.start:
            raise ValueError("End date must be after start date")
        return self

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def _validate_unique_allocations(
    categories: Optional[list[CategoryAllocation]],
) -> None:
    if not categories:
        return
    seen = set()
    for allocation in categories:
        if allocation.category_id in seen:
            raise ValueError(
                f"Category {allocation.category_id} is allocated more than once"
            )
        seen.add(allocation.category_id)


class Budget(BaseModel):
    """
    A user-scoped spending plan.

    CRITICAL: current_spent is derived. It is only ever written by the
    spend aggregator, as the full sum of the budget's items.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(default_factory=uuid4)
    user_id: UUID

    name: str = Field(..., min_length=1, max_length=100)
    total_limit: Decimal = Field(..., gt=0, decimal_places=2)
    period: BudgetPeriod
    categories: list[CategoryAllocation] = Field(default_factory=list)

    # Derived state
    current_spent: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Sum of price x quantity over the budget's items"
    )
    is_active: bool = True

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode='after')
    def validate_allocations(self) -> 'Budget':
        _validate_unique_allocations(self.categories)
        return self

    @property
    def remaining_budget(self) -> Decimal:
        return self.total_limit - self.current_spent

    @property
    def percentage_spent(self) -> float:
        """Percentage of the total limit spent. Not clamped, overspend reads above 100."""
        if self.total_limit <= 0:
            return 0.0
        return float(self.current_spent / self.total_limit * 100)

    @property
    def allocation_total(self) -> Decimal:
        return sum((a.limit for a in self.categories), Decimal("0"))

    def allocation_for(self, category_id: UUID) -> Optional[CategoryAllocation]:
        """Return the allocation for a category, if the budget has one."""
        for allocation in self.categories:
            if allocation.category_id == category_id:
                return allocation
        return None

    def status(self) -> 'BudgetStatus':
        return BudgetStatus(
            budget_id=self.id,
            current_spent=self.current_spent,
            total_limit=self.total_limit,
            remaining_budget=self.remaining_budget,
            percentage_spent=self.percentage_spent,
        )


class BudgetStatus(BaseModel):
    """Snapshot of a budget's spend, returned with every item write."""

    budget_id: UUID
    current_spent: Decimal
    total_limit: Decimal
    remaining_budget: Decimal
    percentage_spent: float


class BudgetCreate(BaseModel):
    """Attributes a user supplies when creating (activating) a budget."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str = Field(..., min_length=1, max_length=100)
    total_limit: Decimal = Field(..., gt=0, decimal_places=2)
    period: BudgetPeriod
    categories: list[CategoryAllocation] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_allocations(self) -> 'BudgetCreate':
        _validate_unique_allocations(self.categories)
        return self


class BudgetUpdate(BaseModel):
    """
    Partial budget update.

    current_spent is deliberately absent: callers cannot set it.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    total_limit: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    categories: Optional[list[CategoryAllocation]] = None
    is_active: Optional[bool] = None

    @model_validator(mode='after')
    def validate_allocations(self) -> 'BudgetUpdate':
        _validate_unique_allocations(self.categories)
        return self


# =============================================================================
# ITEM MODELS
# =============================================================================

class Item(BaseModel):
    """
    A single recorded purchase.

    budget_id is fixed at creation. Moving an item between budgets
    is not supported.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    budget_id: UUID

    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0, decimal_places=2)
    quantity: int = Field(default=1, ge=1)
    category_id: UUID
    is_essential: bool = False
    purchase_date: datetime = Field(default_factory=datetime.now)
    notes: Optional[str] = Field(default=None, max_length=500)

    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def total_price(self) -> Decimal:
        return self.price * self.quantity


class ItemDraft(BaseModel):
    """An item as submitted by the user, before it is attached to a budget."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str = Field(..., min_length=1, max_length=200)
    price: Decimal = Field(..., ge=0, decimal_places=2)
    quantity: int = Field(default=1, ge=1)
    category_id: UUID
    is_essential: bool = False
    purchase_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    @property
    def total_price(self) -> Decimal:
        return self.price * self.quantity

    def to_item(self, user_id: UUID, budget_id: UUID) -> Item:
        data = self.model_dump(exclude_none=True)
        return Item(user_id=user_id, budget_id=budget_id, **data)


class ItemUpdate(BaseModel):
    """Partial item update. budget_id is not accepted."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    quantity: Optional[int] = Field(default=None, ge=1)
    category_id: Optional[UUID] = None
    is_essential: Optional[bool] = None
    purchase_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    @property
    def changes_cost(self) -> bool:
        """Does this update touch anything the limit enforcer cares about?"""
        return (
            self.price is not None
            or self.quantity is not None
            or self.category_id is not None
        )

    def apply(self, item: Item) -> Item:
        changes = self.model_dump(exclude_unset=True, exclude_none=True)
        return item.model_copy(update=changes)


# =============================================================================
# QUERY FILTERS
# =============================================================================

class ItemFilter(BaseModel):
    """
    Item query filter.

    user_id is mandatory: every store read carries the ownership predicate.
    """

    user_id: UUID
    budget_id: Optional[UUID] = None
    budget_ids: Optional[list[UUID]] = None
    category_id: Optional[UUID] = None
    is_essential: Optional[bool] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    exclude_item_id: Optional[UUID] = None

    def matches(self, item: Item) -> bool:
        if item.user_id != self.user_id:
            return False
        if self.budget_id and item.budget_id != self.budget_id:
            return False
        if self.budget_ids is not None and item.budget_id not in self.budget_ids:
            return False
        if self.category_id and item.category_id != self.category_id:
            return False
        if self.is_essential is not None and item.is_essential != self.is_essential:
            return False
        if self.date_from and item.purchase_date < self.date_from:
            return False
        if self.date_to and item.purchase_date > self.date_to:
            return False
        if self.exclude_item_id and item.id == self.exclude_item_id:
            return False
        return True


class BudgetFilter(BaseModel):
    """Budget query filter. user_id is mandatory."""

    user_id: UUID
    is_active: Optional[bool] = None
    ended_before: Optional[datetime] = None

    def matches(self, budget: Budget) -> bool:
        if budget.user_id != self.user_id:
            return False
        if self.is_active is not None and budget.is_active != self.is_active:
            return False
        if self.ended_before and not budget.period.end < self.ended_before:
            return False
        return True


# =============================================================================
# LIMIT ENFORCEMENT MODELS
# =============================================================================

class WriteCandidate(BaseModel):
    """
    The spend change an item write would cause.

    total_delta moves the budget total. category_delta is what lands in
    the target category, measured against the *other* items there.
    For a plain create both are the item's total price.
    A batch candidate has no category: only the total is checked.
    """

    category_id: Optional[UUID] = None
    total_delta: Decimal
    category_delta: Decimal = Decimal("0")

    @classmethod
    def for_create(cls, draft: ItemDraft) -> 'WriteCandidate':
        return cls(
            category_id=draft.category_id,
            total_delta=draft.total_price,
            category_delta=draft.total_price,
        )

    @classmethod
    def for_update(cls, before: Item, after: Item) -> 'WriteCandidate':
        return cls(
            category_id=after.category_id,
            total_delta=after.total_price - before.total_price,
            category_delta=after.total_price,
        )

    @classmethod
    def for_batch(cls, drafts: list[ItemDraft]) -> 'WriteCandidate':
        return cls(
            total_delta=sum((d.total_price for d in drafts), Decimal("0")),
        )


class LimitDecision(BaseModel):
    """
    Outcome of a limit check: accepted, or rejected with structured context.

    For rejections, current/limit/delta/overage describe the limit that
    failed (the total limit or the category allocation).
    """

    accepted: bool
    reason: Optional[RejectionReason] = None
    category_id: Optional[UUID] = None
    current: Optional[Decimal] = None
    limit: Optional[Decimal] = None
    delta: Optional[Decimal] = None
    overage: Optional[Decimal] = None

    @classmethod
    def accept(cls) -> 'LimitDecision':
        return cls(accepted=True)

    @classmethod
    def reject(
        cls,
        reason: RejectionReason,
        current: Optional[Decimal] = None,
        limit: Optional[Decimal] = None,
        delta: Optional[Decimal] = None,
        category_id: Optional[UUID] = None,
    ) -> 'LimitDecision':
        overage = None
        if current is not None and limit is not None and delta is not None:
            overage = current + delta - limit
        return cls(
            accepted=False,
            reason=reason,
            category_id=category_id,
            current=current,
            limit=limit,
            delta=delta,
            overage=overage,
        )


# =============================================================================
# ALERT MODELS
# =============================================================================

class SpendingAlert(BaseModel):
    """A user-facing alert derived from spend percentages."""

    level: AlertLevel
    message: str
    percentage: float
    category_id: Optional[UUID] = None
    category_name: Optional[str] = None


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found in a submitted payload."""

    field: str = Field(
        ...,
        description="Field with the issue (dotted path for nested fields)"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'not_found')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )
