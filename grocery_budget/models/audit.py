"""
Audit Models for Grocery Budget

Every budget and item mutation is recorded as an audit event.
This provides:
1. Traceability of who changed which budget, and when
2. Debugging information when aggregation or storage goes wrong
3. A per-user activity history

DESIGN DECISION: Audit logs are append-only.
The only removal path is the retention purge of events older than
the configured retention window.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Write paths, rejections and background failures each have their own type.
    """
    # Budgets
    BUDGET_CREATED = "budget_created"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_DELETED = "budget_deleted"
    BUDGET_DEACTIVATED = "budget_deactivated"
    ALLOCATIONS_UPDATED = "allocations_updated"

    # Items
    ITEM_CREATED = "item_created"
    ITEM_UPDATED = "item_updated"
    ITEM_DELETED = "item_deleted"
    BATCH_CREATED = "batch_created"

    # Enforcement and validation
    LIMIT_REJECTED = "limit_rejected"
    VALIDATION_FAILED = "validation_failed"

    # Read-only consumers
    DATA_EXPORTED = "data_exported"
    TIPS_GENERATED = "tips_generated"
    TIP_HELPFUL = "tip_helpful"

    # System events
    RECONCILIATION_FAILED = "reconciliation_failed"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _json_default(value: Any) -> str:
    if isinstance(value, (UUID, Decimal, datetime)):
        return str(value)
    raise TypeError(f"Cannot serialize {type(value).__name__}")


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Who did it
    user_id: Optional[UUID] = Field(
        default=None,
        description="User the event belongs to"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'budget', 'item', 'export')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one batch)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Outcome
    success: bool = True
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": str(self.user_id) if self.user_id else None,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "success": self.success,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, success,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.user_id) if self.user_id else "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=_json_default) if self.details else "",
            str(self.success),
            self.error_message or "",
            str(self.is_user_action),
        ]

    @classmethod
    def from_sheets_row(cls, row: list) -> 'AuditEvent':
        """Inverse of to_sheets_row."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return cls(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            user_id=UUID(safe_get(4)) if safe_get(4) else None,
            entity_type=safe_get(5) or None,
            entity_id=UUID(safe_get(6)) if safe_get(6) else None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            success=safe_get(10, "True").lower() == "true",
            error_message=safe_get(11) or None,
            is_user_action=safe_get(12).lower() == "true",
        )


class AuditQuery(BaseModel):
    """Filter for reading a user's audit history."""

    user_id: UUID
    event_type: Optional[AuditEventType] = None
    entity_type: Optional[str] = None
    entity_id: Optional[UUID] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    def matches(self, event: AuditEvent) -> bool:
        if event.user_id != self.user_id:
            return False
        if self.event_type and event.event_type != self.event_type:
            return False
        if self.entity_type and event.entity_type != self.entity_type:
            return False
        if self.entity_id and event.entity_id != self.entity_id:
            return False
        if self.date_from and event.timestamp < self.date_from:
            return False
        if self.date_to and event.timestamp > self.date_to:
            return False
        return True


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.item_created(user_id, item_id, budget_id, "Milk", total)
        event = AuditEventBuilder.limit_rejected(user_id, budget_id, decision)
    """

    @staticmethod
    def budget_created(
        user_id: UUID,
        budget_id: UUID,
        name: str,
        total_limit: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_CREATED,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget created: {name}",
            details={
                "name": name,
                "total_limit": str(total_limit),
            },
            is_user_action=True,
        )

    @staticmethod
    def budget_updated(
        user_id: UUID,
        budget_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_UPDATED,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Budget updated: {', '.join(sorted(changes)) or 'no fields'}",
            details={key: str(value) for key, value in changes.items()},
            is_user_action=True,
        )

    @staticmethod
    def budget_deactivated(
        user_id: UUID,
        budget_id: UUID,
        replaced_by: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_DEACTIVATED,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description="Budget deactivated by a newer active budget",
            details={"replaced_by": str(replaced_by)},
        )

    @staticmethod
    def budget_deleted(
        user_id: UUID,
        budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_DELETED,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description="Budget deleted",
            is_user_action=True,
        )

    @staticmethod
    def allocations_updated(
        user_id: UUID,
        budget_id: UUID,
        allocation_total: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALLOCATIONS_UPDATED,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Category allocations updated (total {allocation_total})",
            details={"allocation_total": str(allocation_total)},
            is_user_action=True,
        )

    @staticmethod
    def item_created(
        user_id: UUID,
        item_id: UUID,
        budget_id: UUID,
        name: str,
        total_price: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEM_CREATED,
            user_id=user_id,
            entity_type="item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"Item added: {name} - {total_price}",
            details={
                "budget_id": str(budget_id),
                "name": name,
                "total_price": str(total_price),
            },
            is_user_action=True,
        )

    @staticmethod
    def item_updated(
        user_id: UUID,
        item_id: UUID,
        budget_id: UUID,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEM_UPDATED,
            user_id=user_id,
            entity_type="item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description=f"Item updated: {', '.join(sorted(changes)) or 'no fields'}",
            details={
                "budget_id": str(budget_id),
                **{key: str(value) for key, value in changes.items()},
            },
            is_user_action=True,
        )

    @staticmethod
    def item_deleted(
        user_id: UUID,
        item_id: UUID,
        budget_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ITEM_DELETED,
            user_id=user_id,
            entity_type="item",
            entity_id=item_id,
            correlation_id=correlation_id,
            description="Item deleted",
            details={"budget_id": str(budget_id)},
            is_user_action=True,
        )

    @staticmethod
    def batch_created(
        user_id: UUID,
        budget_id: UUID,
        created: int,
        failed: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BATCH_CREATED,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.INFO,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Batch add: {created} created, {failed} failed",
            details={"created": created, "failed": failed},
            success=created > 0 or failed == 0,
            is_user_action=True,
        )

    @staticmethod
    def limit_rejected(
        user_id: UUID,
        budget_id: UUID,
        reason: str,
        details: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LIMIT_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Item write rejected: {reason}",
            details={"reason": reason, **details},
            success=False,
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        user_id: UUID,
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
            success=False,
            is_user_action=True,
        )

    @staticmethod
    def data_exported(
        user_id: UUID,
        export_type: str,
        row_count: int,
        budget_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            user_id=user_id,
            entity_type="export",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Exported {export_type} ({row_count} rows)",
            details={"export_type": export_type, "row_count": row_count},
            is_user_action=True,
        )

    @staticmethod
    def tips_generated(
        user_id: UUID,
        tip_count: int,
        budget_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TIPS_GENERATED,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            entity_type="tip",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description=f"Generated {tip_count} tips",
            details={"tip_count": tip_count},
        )

    @staticmethod
    def tip_helpful(
        user_id: UUID,
        tip_id: UUID,
        helpful_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TIP_HELPFUL,
            user_id=user_id,
            entity_type="tip",
            entity_id=tip_id,
            correlation_id=correlation_id,
            description="Tip marked helpful",
            details={"helpful_count": helpful_count},
            is_user_action=True,
        )

    @staticmethod
    def reconciliation_failed(
        user_id: UUID,
        budget_id: UUID,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="budget",
            entity_id=budget_id,
            correlation_id=correlation_id,
            description="Spend re-aggregation failed after a committed write",
            error_message=error_message,
            success=False,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        user_id: Optional[UUID] = None,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
            success=False,
        )


class ActivityPage(BaseModel):
    """One page of a user's audit history."""

    events: list[AuditEvent] = Field(default_factory=list)
    total: int = 0
    limit: int = 50
    offset: int = 0


class DailyActivity(BaseModel):
    """Event counts for one day, keyed by event type."""

    day: date
    total: int = 0
    counts: dict[str, int] = Field(default_factory=dict)
