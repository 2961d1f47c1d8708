"""
Limit Enforcer

Decides whether an item write may proceed, before anything is persisted.

Rules, in order (the first failure wins):
1. The budget's stored is_active flag must be set
2. current_spent + total_delta must not exceed total_limit
3. If the budget allocates the target category, the other items already
   in that category plus category_delta must not exceed the allocation

DESIGN DECISION: Enforcement is soft.
It reads current_spent without locking. Two concurrent writes can both pass
against the same stale total; the spend aggregator's full recompute
restores the sum afterwards, but the limit may end up exceeded.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

import structlog

from grocery_budget.engine.errors import (
    CategoryLimitExceededError,
    InactiveBudgetError,
    TotalLimitExceededError,
)
from grocery_budget.models.ledger import (
    Budget,
    CategoryAllocation,
    Item,
    ItemFilter,
    LimitDecision,
    RejectionReason,
    WriteCandidate,
)
from grocery_budget.services.storage import LedgerStorageInterface


logger = structlog.get_logger(__name__)


def check_item_write(
    budget: Budget,
    allocation: Optional[CategoryAllocation],
    candidate: WriteCandidate,
    existing_items_in_category: Iterable[Item],
) -> LimitDecision:
    """
    Pure limit check.

    existing_items_in_category must exclude the item being updated, if any.
    """
    if not budget.is_active:
        return LimitDecision.reject(RejectionReason.INACTIVE_BUDGET)

    if budget.current_spent + candidate.total_delta > budget.total_limit:
        return LimitDecision.reject(
            RejectionReason.TOTAL_LIMIT_EXCEEDED,
            current=budget.current_spent,
            limit=budget.total_limit,
            delta=candidate.total_delta,
        )

    if allocation is not None:
        category_spent = sum(
            (item.total_price for item in existing_items_in_category),
            Decimal("0"),
        )
        if category_spent + candidate.category_delta > allocation.limit:
            return LimitDecision.reject(
                RejectionReason.CATEGORY_LIMIT_EXCEEDED,
                current=category_spent,
                limit=allocation.limit,
                delta=candidate.category_delta,
                category_id=allocation.category_id,
            )

    return LimitDecision.accept()


def raise_for_decision(decision: LimitDecision) -> None:
    """Turn a rejected decision into the matching BudgetError."""
    if decision.accepted:
        return

    if decision.reason == RejectionReason.INACTIVE_BUDGET:
        raise InactiveBudgetError(decision)
    if decision.reason == RejectionReason.TOTAL_LIMIT_EXCEEDED:
        raise TotalLimitExceededError(
            decision,
            f"Adding this item would exceed your budget limit by {decision.overage}",
        )
    if decision.reason == RejectionReason.CATEGORY_LIMIT_EXCEEDED:
        raise CategoryLimitExceededError(
            decision,
            f"Adding this item would exceed the category limit by {decision.overage}",
        )
    raise ValueError(f"Unknown rejection reason: {decision.reason}")


class LimitEnforcer:
    """
    Loads what check_item_write needs from the ledger.

    The category's items are only read when the budget allocates it.
    """

    def __init__(self, ledger: LedgerStorageInterface):
        self._ledger = ledger

    async def check(
        self,
        budget: Budget,
        candidate: WriteCandidate,
        exclude_item_id: Optional[UUID] = None,
    ) -> LimitDecision:
        allocation = budget.allocation_for(candidate.category_id)

        existing: list[Item] = []
        if budget.is_active and allocation is not None:
            existing = await self._ledger.find_items(ItemFilter(
                user_id=budget.user_id,
                budget_id=budget.id,
                category_id=candidate.category_id,
                exclude_item_id=exclude_item_id,
            ))

        decision = check_item_write(budget, allocation, candidate, existing)
        if not decision.accepted:
            logger.info(
                "item_write_rejected",
                budget_id=str(budget.id),
                reason=decision.reason.value,
                current=str(decision.current) if decision.current is not None else None,
                limit=str(decision.limit) if decision.limit is not None else None,
                delta=str(decision.delta) if decision.delta is not None else None,
            )
        return decision

    async def enforce(
        self,
        budget: Budget,
        candidate: WriteCandidate,
        exclude_item_id: Optional[UUID] = None,
    ) -> LimitDecision:
        """Like check(), but raises on rejection."""
        decision = await self.check(budget, candidate, exclude_item_id)
        raise_for_decision(decision)
        return decision
