"""
Budget engine errors.

None of these are retried. Storage failures are StorageError from the
storage interface and are not part of this hierarchy.
"""

from decimal import Decimal
from typing import Optional

from grocery_budget.models.ledger import LimitDecision, ValidationIssue


class BudgetError(Exception):
    """Base exception for budget engine errors."""
    pass


class NotFoundError(BudgetError):
    """Budget, item or category is missing or not owned by the caller."""

    def __init__(self, entity_type: str, entity_id: object):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")


class InactiveBudgetError(BudgetError):
    """Items cannot be written to an inactive budget."""

    def __init__(self, decision: LimitDecision, message: str = "Cannot add items to inactive budget"):
        self.decision = decision
        super().__init__(message)


class LimitExceededError(BudgetError):
    """A write would push spend past a limit."""

    def __init__(self, decision: LimitDecision, message: str):
        self.decision = decision
        super().__init__(message)

    @property
    def current(self) -> Optional[Decimal]:
        return self.decision.current

    @property
    def limit(self) -> Optional[Decimal]:
        return self.decision.limit

    @property
    def delta(self) -> Optional[Decimal]:
        return self.decision.delta

    @property
    def overage(self) -> Optional[Decimal]:
        return self.decision.overage


class TotalLimitExceededError(LimitExceededError):
    pass


class CategoryLimitExceededError(LimitExceededError):
    pass


class InvalidAllocationError(BudgetError):
    """Category allocations add up to more than the budget's total limit."""

    def __init__(self, allocation_total: Decimal, total_limit: Decimal):
        self.allocation_total = allocation_total
        self.total_limit = total_limit
        super().__init__(
            f"Category allocations ({allocation_total}) exceed total budget ({total_limit})"
        )


class ValidationError(BudgetError):
    """A payload failed validation. Carries every issue found."""

    def __init__(self, issues: list[ValidationIssue], message: str = "Validation failed"):
        self.issues = issues
        super().__init__(message)


class BudgetNotEmptyError(BudgetError):
    """A budget that still owns items cannot be deleted."""

    def __init__(self, budget_id: object, item_count: int):
        self.budget_id = budget_id
        self.item_count = item_count
        super().__init__(
            f"Cannot delete budget with existing items ({item_count} items)"
        )
