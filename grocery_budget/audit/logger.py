"""
Audit Logger

DESIGN DECISION: Every budget and item mutation is logged.
This provides:
1. Complete traceability
2. Debugging capability when re-aggregation fails
3. User can see history of their budgets

The audit logger:
- Is async to match the storage layer
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from grocery_budget.config import get_settings
from grocery_budget.models.audit import (
    ActivityPage,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditQuery,
    AuditSeverity,
    DailyActivity,
)
from grocery_budget.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


BUDGET_TRAIL_LIMIT = 50


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user-visible history)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally and history queries are empty.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Audit failures never break the main flow
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    # ===== WRITE EVENTS =====

    async def log_budget_created(
        self,
        user_id: UUID,
        budget_id: UUID,
        name: str,
        total_limit: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log budget creation."""
        await self.log(AuditEventBuilder.budget_created(
            user_id=user_id,
            budget_id=budget_id,
            name=name,
            total_limit=total_limit,
            correlation_id=correlation_id,
        ))

    async def log_budget_updated(
        self,
        user_id: UUID,
        budget_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budget_updated(
            user_id=user_id,
            budget_id=budget_id,
            changes=changes,
            correlation_id=correlation_id,
        ))

    async def log_budget_deactivated(
        self,
        user_id: UUID,
        budget_id: UUID,
        replaced_by: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budget_deactivated(
            user_id=user_id,
            budget_id=budget_id,
            replaced_by=replaced_by,
            correlation_id=correlation_id,
        ))

    async def log_budget_deleted(
        self,
        user_id: UUID,
        budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.budget_deleted(
            user_id=user_id,
            budget_id=budget_id,
            correlation_id=correlation_id,
        ))

    async def log_allocations_updated(
        self,
        user_id: UUID,
        budget_id: UUID,
        allocation_total: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.allocations_updated(
            user_id=user_id,
            budget_id=budget_id,
            allocation_total=allocation_total,
            correlation_id=correlation_id,
        ))

    async def log_item_created(
        self,
        user_id: UUID,
        item_id: UUID,
        budget_id: UUID,
        name: str,
        total_price: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log item creation."""
        await self.log(AuditEventBuilder.item_created(
            user_id=user_id,
            item_id=item_id,
            budget_id=budget_id,
            name=name,
            total_price=total_price,
            correlation_id=correlation_id,
        ))

    async def log_item_updated(
        self,
        user_id: UUID,
        item_id: UUID,
        budget_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.item_updated(
            user_id=user_id,
            item_id=item_id,
            budget_id=budget_id,
            changes=changes,
            correlation_id=correlation_id,
        ))

    async def log_item_deleted(
        self,
        user_id: UUID,
        item_id: UUID,
        budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.item_deleted(
            user_id=user_id,
            item_id=item_id,
            budget_id=budget_id,
            correlation_id=correlation_id,
        ))

    async def log_batch_created(
        self,
        user_id: UUID,
        budget_id: UUID,
        created: int,
        failed: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.batch_created(
            user_id=user_id,
            budget_id=budget_id,
            created=created,
            failed=failed,
            correlation_id=correlation_id,
        ))

    async def log_limit_rejected(
        self,
        user_id: UUID,
        budget_id: UUID,
        reason: str,
        details: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an item write refused by the limit enforcer."""
        await self.log(AuditEventBuilder.limit_rejected(
            user_id=user_id,
            budget_id=budget_id,
            reason=reason,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        user_id: UUID,
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            user_id=user_id,
            entity_type=entity_type,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_data_exported(
        self,
        user_id: UUID,
        export_type: str,
        row_count: int,
        budget_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.data_exported(
            user_id=user_id,
            export_type=export_type,
            row_count=row_count,
            budget_id=budget_id,
            correlation_id=correlation_id,
        ))

    async def log_tips_generated(
        self,
        user_id: UUID,
        tip_count: int,
        budget_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.tips_generated(
            user_id=user_id,
            tip_count=tip_count,
            budget_id=budget_id,
            correlation_id=correlation_id,
        ))

    async def log_tip_helpful(
        self,
        user_id: UUID,
        tip_id: UUID,
        helpful_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.tip_helpful(
            user_id=user_id,
            tip_id=tip_id,
            helpful_count=helpful_count,
            correlation_id=correlation_id,
        ))

    async def log_reconciliation_failed(
        self,
        user_id: UUID,
        budget_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a re-aggregation that failed after the item write committed."""
        await self.log(AuditEventBuilder.reconciliation_failed(
            user_id=user_id,
            budget_id=budget_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        user_id: Optional[UUID] = None,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            user_id=user_id,
            details=details,
            correlation_id=correlation_id,
        ))

    # ===== HISTORY QUERIES =====

    async def get_user_activity(
        self,
        user_id: UUID,
        event_type: Optional[AuditEventType] = None,
        entity_type: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ActivityPage:
        """A page of a user's audit events, newest first."""
        if not self._storage:
            return ActivityPage(limit=limit, offset=offset)

        events = await self._storage.query_events(AuditQuery(
            user_id=user_id,
            event_type=event_type,
            entity_type=entity_type,
            date_from=date_from,
            date_to=date_to,
        ))
        return ActivityPage(
            events=events[offset:offset + limit],
            total=len(events),
            limit=limit,
            offset=offset,
        )

    async def get_budget_audit_trail(
        self,
        user_id: UUID,
        budget_id: UUID,
        limit: int = BUDGET_TRAIL_LIMIT,
    ) -> list[AuditEvent]:
        """
        Events about a budget and the items written to it, newest first.

        Item events reference their budget through details["budget_id"].
        """
        if not self._storage:
            return []

        own = await self._storage.get_events_by_entity("budget", budget_id)
        item_events = await self._storage.query_events(AuditQuery(
            user_id=user_id,
            entity_type="item",
        ))
        budget_key = str(budget_id)
        trail = [e for e in own if e.user_id == user_id]
        trail.extend(e for e in item_events if e.details.get("budget_id") == budget_key)
        trail.sort(key=lambda e: e.timestamp, reverse=True)
        return trail[:limit]

    async def get_activity_summary(
        self,
        user_id: UUID,
        days: int = 7,
        now: Optional[datetime] = None,
    ) -> list[DailyActivity]:
        """Per-day event counts over the last `days` days, newest day first."""
        if not self._storage:
            return []

        now = now or datetime.now()
        events = await self._storage.query_events(AuditQuery(
            user_id=user_id,
            date_from=now - timedelta(days=days),
            date_to=now,
        ))

        by_day: dict = defaultdict(lambda: defaultdict(int))
        for event in events:
            by_day[event.timestamp.date()][event.event_type.value] += 1

        return [
            DailyActivity(
                day=day,
                total=sum(counts.values()),
                counts=dict(counts),
            )
            for day, counts in sorted(by_day.items(), reverse=True)
        ]

    async def clean_old_logs(
        self,
        retention_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Purge events older than the retention window. Returns the count removed.

        The window defaults to the configured audit_retention_days.
        """
        if not self._storage:
            return 0

        if retention_days is None:
            retention_days = get_settings().app.audit_retention_days

        cutoff = (now or datetime.now()) - timedelta(days=retention_days)
        removed = await self._storage.purge_before(cutoff)
        self._logger.info(
            "audit_retention_purge",
            cutoff=cutoff.isoformat(),
            removed=removed,
        )
        return removed


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., a batch add).
    Pass it through all subsequent operations.
    """
    return uuid4()
