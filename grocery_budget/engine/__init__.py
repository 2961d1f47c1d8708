"""
Budget consistency engine.

Limit enforcement, spend aggregation, threshold signals and the
budget lifecycle.
"""

from grocery_budget.engine.aggregator import SpendAggregator
from grocery_budget.engine.enforcer import (
    LimitEnforcer,
    check_item_write,
    raise_for_decision,
)
from grocery_budget.engine.errors import (
    BudgetError,
    BudgetNotEmptyError,
    CategoryLimitExceededError,
    InactiveBudgetError,
    InvalidAllocationError,
    LimitExceededError,
    NotFoundError,
    TotalLimitExceededError,
    ValidationError,
)
from grocery_budget.engine.lifecycle import BudgetLifecycleManager, is_expired
from grocery_budget.engine.signals import ThresholdSignalGenerator

__all__ = [
    "BudgetLifecycleManager",
    "LimitEnforcer",
    "SpendAggregator",
    "ThresholdSignalGenerator",
    "check_item_write",
    "is_expired",
    "raise_for_decision",
    # Errors
    "BudgetError",
    "BudgetNotEmptyError",
    "CategoryLimitExceededError",
    "InactiveBudgetError",
    "InvalidAllocationError",
    "LimitExceededError",
    "NotFoundError",
    "TotalLimitExceededError",
    "ValidationError",
]
