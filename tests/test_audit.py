"""
Tests for the audit logger and its history queries.
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

from grocery_budget.audit import AuditLogger, create_correlation_id
from grocery_budget.models.audit import AuditEventBuilder, AuditEventType


class TestAuditLogger:

    async def test_local_only_logger(self):
        logger = AuditLogger()
        assert await logger.log(AuditEventBuilder.budget_deleted(
            user_id=uuid4(), budget_id=uuid4()
        ))
        page = await logger.get_user_activity(uuid4())
        assert page.events == []
        assert await logger.clean_old_logs(30) == 0

    async def test_storage_failure_never_raises(self):
        storage = AsyncMock()
        storage.append_event.side_effect = RuntimeError("quota exceeded")
        logger = AuditLogger(storage)
        assert await logger.log(AuditEventBuilder.budget_deleted(
            user_id=uuid4(), budget_id=uuid4()
        )) is False

    async def test_correlated_events(self, audit_logger, audit_storage, user_id):
        correlation_id = create_correlation_id()
        budget_id = uuid4()
        await audit_logger.log_item_created(
            user_id=user_id,
            item_id=uuid4(),
            budget_id=budget_id,
            name="Eggs",
            total_price=Decimal("4.50"),
            correlation_id=correlation_id,
        )
        await audit_logger.log_batch_created(
            user_id=user_id,
            budget_id=budget_id,
            created=1,
            failed=0,
            correlation_id=correlation_id,
        )
        events = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.ITEM_CREATED,
            AuditEventType.BATCH_CREATED,
        ]


class TestAuditHistory:

    async def test_user_activity_paging(self, audit_logger, user_id):
        for _ in range(5):
            await audit_logger.log_budget_deleted(user_id=user_id, budget_id=uuid4())
        await audit_logger.log_budget_deleted(user_id=uuid4(), budget_id=uuid4())

        page = await audit_logger.get_user_activity(user_id, limit=2, offset=1)
        assert page.total == 5
        assert len(page.events) == 2

    async def test_user_activity_by_type(self, audit_logger, user_id):
        await audit_logger.log_budget_deleted(user_id=user_id, budget_id=uuid4())
        await audit_logger.log_tips_generated(user_id=user_id, tip_count=3)

        page = await audit_logger.get_user_activity(
            user_id, event_type=AuditEventType.TIPS_GENERATED
        )
        assert page.total == 1

    async def test_budget_trail_includes_item_events(self, audit_logger, user_id):
        budget_id = uuid4()
        await audit_logger.log_budget_created(
            user_id=user_id,
            budget_id=budget_id,
            name="June",
            total_limit=Decimal("100"),
        )
        await audit_logger.log_item_deleted(
            user_id=user_id, item_id=uuid4(), budget_id=budget_id
        )
        await audit_logger.log_item_deleted(
            user_id=user_id, item_id=uuid4(), budget_id=uuid4()
        )

        trail = await audit_logger.get_budget_audit_trail(user_id, budget_id)
        assert {e.event_type for e in trail} == {
            AuditEventType.BUDGET_CREATED,
            AuditEventType.ITEM_DELETED,
        }

    async def test_budget_trail_excludes_exports_and_other_users(self, audit_logger, user_id):
        budget_id = uuid4()
        await audit_logger.log_budget_deleted(user_id=user_id, budget_id=budget_id)
        await audit_logger.log_data_exported(
            user_id=user_id, export_type="items", row_count=3, budget_id=budget_id
        )
        await audit_logger.log_budget_deleted(user_id=uuid4(), budget_id=budget_id)

        trail = await audit_logger.get_budget_audit_trail(user_id, budget_id)
        assert [e.event_type for e in trail] == [AuditEventType.BUDGET_DELETED]
        assert trail[0].user_id == user_id

    async def test_activity_summary_per_day(self, audit_logger, audit_storage, user_id):
        now = datetime(2024, 6, 15, 12, 0)
        for days_ago in (0, 0, 2, 30):
            event = AuditEventBuilder.budget_deleted(user_id=user_id, budget_id=uuid4())
            event.timestamp = now - timedelta(days=days_ago)
            await audit_storage.append_event(event)

        summary = await audit_logger.get_activity_summary(user_id, days=7, now=now)
        assert [(d.day.isoformat(), d.total) for d in summary] == [
            ("2024-06-15", 2),
            ("2024-06-13", 1),
        ]
        assert summary[0].counts == {"budget_deleted": 2}

    async def test_clean_old_logs(self, audit_logger, audit_storage, user_id):
        now = datetime(2024, 6, 15)
        for days_ago in (1, 100, 200):
            event = AuditEventBuilder.budget_deleted(user_id=user_id, budget_id=uuid4())
            event.timestamp = now - timedelta(days=days_ago)
            await audit_storage.append_event(event)

        assert await audit_logger.clean_old_logs(90, now=now) == 2
        page = await audit_logger.get_user_activity(user_id)
        assert page.total == 1

    async def test_clean_old_logs_uses_configured_retention(
        self, audit_logger, audit_storage, user_id, monkeypatch
    ):
        monkeypatch.setenv("AUDIT_RETENTION_DAYS", "150")
        now = datetime(2024, 6, 15)
        for days_ago in (1, 100, 200):
            event = AuditEventBuilder.budget_deleted(user_id=user_id, budget_id=uuid4())
            event.timestamp = now - timedelta(days=days_ago)
            await audit_storage.append_event(event)

        assert await audit_logger.clean_old_logs(now=now) == 1
        page = await audit_logger.get_user_activity(user_id)
        assert page.total == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
