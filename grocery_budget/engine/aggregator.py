"""
Spend Aggregator

Keeps a budget's current_spent equal to the sum of its items.

DESIGN DECISION: Always a full re-aggregation, never an incremental
adjustment. A recompute reads every item of the budget and overwrites
current_spent, so it is idempotent and repairs any drift left behind by
concurrent writes that raced past the limit enforcer.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from grocery_budget.audit import AuditLogger
from grocery_budget.models.ledger import Budget, ItemFilter
from grocery_budget.services.storage import LedgerStorageInterface, StorageError


logger = structlog.get_logger(__name__)


class SpendAggregator:
    """Recomputes derived spend on budgets from their items."""

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._audit = audit_logger

    async def recompute(self, budget_id: UUID, user_id: UUID) -> Optional[Budget]:
        """
        Set current_spent to the sum of price x quantity over the budget's items.

        Returns the saved budget, or None when the budget no longer exists.
        Items left pointing at a deleted budget are tolerated.

        Raises:
            StorageError: If reading items or saving the budget fails
        """
        budget = await self._ledger.find_budget(budget_id, user_id)
        if budget is None:
            logger.warning(
                "recompute_budget_missing",
                budget_id=str(budget_id),
                user_id=str(user_id),
            )
            return None

        items = await self._ledger.find_items(
            ItemFilter(user_id=user_id, budget_id=budget_id)
        )
        total = sum((item.total_price for item in items), Decimal("0"))

        updated = budget.model_copy(
            update={"current_spent": total, "updated_at": datetime.now()}
        )
        saved = await self._ledger.save_budget(updated)

        logger.debug(
            "budget_recomputed",
            budget_id=str(budget_id),
            item_count=len(items),
            previous_spent=str(budget.current_spent),
            current_spent=str(total),
        )
        return saved

    async def reconcile(
        self,
        budget_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Budget]:
        """
        Recompute after a committed item write.

        CRITICAL: The item write is already durable at this point and is
        not rolled back. A storage failure here is logged and audited,
        never raised; the next successful recompute repairs the total.
        """
        try:
            return await self.recompute(budget_id, user_id)
        except StorageError as e:
            logger.error(
                "budget_reconciliation_failed",
                budget_id=str(budget_id),
                user_id=str(user_id),
                error=str(e),
            )
            if self._audit:
                await self._audit.log_reconciliation_failed(
                    user_id=user_id,
                    budget_id=budget_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return None
