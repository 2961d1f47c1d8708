"""
Budget Lifecycle Manager

A user has at most one active budget. Creating a budget activates it and
deactivates every other active budget of that user.

Expiry is a read-time notion only: a budget whose period has ended keeps
its stored is_active flag until it is explicitly replaced or updated.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog

from grocery_budget.audit import AuditLogger
from grocery_budget.models.ledger import Budget, BudgetCreate, BudgetFilter
from grocery_budget.services.storage import LedgerStorageInterface, StorageError


logger = structlog.get_logger(__name__)


def is_expired(budget: Budget, now: Optional[datetime] = None) -> bool:
    """True once the budget's period has ended. Never writes."""
    return (now or datetime.now()) > budget.period.end


class BudgetLifecycleManager:
    """Activation and lookup of a user's active budget."""

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._audit = audit_logger

    async def activate(
        self,
        user_id: UUID,
        attrs: BudgetCreate,
        correlation_id: Optional[UUID] = None,
    ) -> Budget:
        """
        Create a new active budget for the user.

        Existing active budgets are deactivated first, best effort:
        a failed deactivation is logged and does not stop the creation.

        Raises:
            StorageError: If saving the new budget fails
        """
        new_budget = Budget(
            user_id=user_id,
            name=attrs.name,
            total_limit=attrs.total_limit,
            period=attrs.period,
            categories=attrs.categories,
            is_active=True,
        )

        deactivated = await self.deactivate_others(
            user_id, new_budget.id, correlation_id
        )

        saved = await self._ledger.save_budget(new_budget)
        logger.info(
            "budget_activated",
            budget_id=str(saved.id),
            user_id=str(user_id),
            deactivated=deactivated,
        )
        return saved

    async def deactivate_others(
        self,
        user_id: UUID,
        keep_budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Clear is_active on every other active budget of the user.

        Best effort. Returns how many were deactivated.
        """
        try:
            active = await self._ledger.find_budgets(
                BudgetFilter(user_id=user_id, is_active=True)
            )
        except StorageError as e:
            logger.error(
                "budget_deactivation_failed",
                user_id=str(user_id),
                error=str(e),
            )
            return 0
        deactivated = 0
        for budget in active:
            if budget.id == keep_budget_id:
                continue
            try:
                await self._ledger.save_budget(budget.model_copy(
                    update={"is_active": False, "updated_at": datetime.now()}
                ))
            except StorageError as e:
                logger.error(
                    "budget_deactivation_failed",
                    budget_id=str(budget.id),
                    user_id=str(user_id),
                    error=str(e),
                )
                continue
            deactivated += 1
            if self._audit:
                await self._audit.log_budget_deactivated(
                    user_id=user_id,
                    budget_id=budget.id,
                    replaced_by=keep_budget_id,
                    correlation_id=correlation_id,
                )
        return deactivated

    async def get_active_budget(
        self,
        user_id: UUID,
        now: Optional[datetime] = None,
    ) -> Optional[Budget]:
        """
        The user's current budget: stored flag set and now inside the period.

        If several match (possible after a partially failed activation),
        the newest wins.
        """
        now = now or datetime.now()
        active = await self._ledger.find_budgets(
            BudgetFilter(user_id=user_id, is_active=True)
        )
        for budget in active:
            if budget.period.contains(now):
                return budget
        return None
