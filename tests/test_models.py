"""
Tests for Grocery Budget models

Test strategy:
1. Unit tests for individual components (models, validators, engine)
2. Integration tests for flows (against in-memory storage)
3. No real Google Sheets calls in tests
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

from grocery_budget.models.ledger import (
    AlertLevel,
    Budget,
    BudgetCreate,
    BudgetFilter,
    BudgetPeriod,
    BudgetUpdate,
    Category,
    CategoryAllocation,
    Item,
    ItemDraft,
    ItemFilter,
    ItemUpdate,
    LimitDecision,
    RejectionReason,
    WriteCandidate,
)
from grocery_budget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditQuery,
    AuditSeverity,
)
from grocery_budget.models.tips import Season

from conftest import NOW, make_budget, make_item


class TestBudgetModels:
    """Tests for budget-related Pydantic models."""

    def test_budget_derived_values(self):
        budget = make_budget(uuid4(), total_limit="200.00", current_spent="50.00")
        assert budget.remaining_budget == Decimal("150.00")
        assert budget.percentage_spent == 25.0

    def test_percentage_not_clamped(self):
        budget = make_budget(uuid4(), total_limit="100.00", current_spent="120.00")
        assert budget.percentage_spent == 120.0
        assert budget.remaining_budget == Decimal("-20.00")

    def test_budget_strips_whitespace(self):
        budget = make_budget(uuid4(), name="  Weekly shop  ")
        assert budget.name == "Weekly shop"

    def test_budget_rejects_zero_limit(self):
        with pytest.raises(ValueError):
            make_budget(uuid4(), total_limit="0")

    def test_period_end_must_follow_start(self):
        with pytest.raises(ValueError, match="End date must be after start date"):
            BudgetPeriod(start=NOW, end=NOW)

    def test_period_contains_is_inclusive(self):
        period = BudgetPeriod(start=NOW, end=NOW + timedelta(days=1))
        assert period.contains(NOW)
        assert period.contains(NOW + timedelta(days=1))
        assert not period.contains(NOW + timedelta(days=2))

    def test_duplicate_allocation_rejected(self):
        category_id = uuid4()
        with pytest.raises(ValueError, match="allocated more than once"):
            make_budget(uuid4(), categories=[
                CategoryAllocation(category_id=category_id, limit=Decimal("10")),
                CategoryAllocation(category_id=category_id, limit=Decimal("20")),
            ])

    def test_allocation_lookup_and_total(self):
        first, second = uuid4(), uuid4()
        budget = make_budget(uuid4(), categories=[
            CategoryAllocation(category_id=first, limit=Decimal("30")),
            CategoryAllocation(category_id=second, limit=Decimal("20")),
        ])
        assert budget.allocation_total == Decimal("50")
        assert budget.allocation_for(first).limit == Decimal("30")
        assert budget.allocation_for(uuid4()) is None

    def test_budget_update_cannot_set_current_spent(self):
        with pytest.raises(ValueError):
            BudgetUpdate.model_validate({"current_spent": "10"})

    def test_budget_create_forbids_unknown_fields(self):
        with pytest.raises(ValueError):
            BudgetCreate.model_validate({
                "name": "x",
                "total_limit": "10",
                "period": {"start": NOW, "end": NOW + timedelta(days=1)},
                "is_active": False,
            })


class TestItemModels:
    """Tests for item models and write candidates."""

    def test_total_price(self):
        item = make_item(uuid4(), uuid4(), uuid4(), price="2.50", quantity=4)
        assert item.total_price == Decimal("10.00")

    def test_item_rejects_negative_price(self):
        with pytest.raises(ValueError):
            make_item(uuid4(), uuid4(), uuid4(), price="-1.00")

    def test_item_rejects_zero_quantity(self):
        with pytest.raises(ValueError):
            make_item(uuid4(), uuid4(), uuid4(), quantity=0)

    def test_draft_to_item_keeps_default_purchase_date(self):
        draft = ItemDraft(name="Bread", price=Decimal("3.00"), category_id=uuid4())
        item = draft.to_item(uuid4(), uuid4())
        assert isinstance(item.purchase_date, datetime)
        assert item.quantity == 1

    def test_item_update_rejects_budget_id(self):
        with pytest.raises(ValueError):
            ItemUpdate.model_validate({"budget_id": str(uuid4())})

    def test_changes_cost(self):
        assert ItemUpdate(price=Decimal("1")).changes_cost
        assert ItemUpdate(category_id=uuid4()).changes_cost
        assert not ItemUpdate(name="Oat milk").changes_cost
        assert not ItemUpdate(notes="on sale").changes_cost

    def test_update_apply_only_touches_set_fields(self):
        item = make_item(uuid4(), uuid4(), uuid4(), price="4.00", quantity=2)
        updated = ItemUpdate(quantity=3).apply(item)
        assert updated.quantity == 3
        assert updated.price == Decimal("4.00")
        assert updated.id == item.id

    def test_candidate_for_update(self):
        user_id, budget_id, category_id = uuid4(), uuid4(), uuid4()
        before = make_item(user_id, budget_id, category_id, price="5.00", quantity=2)
        after = before.model_copy(update={"quantity": 3})
        candidate = WriteCandidate.for_update(before, after)
        assert candidate.total_delta == Decimal("5.00")
        assert candidate.category_delta == Decimal("15.00")

    def test_candidate_for_batch_has_no_category(self):
        drafts = [
            ItemDraft(name="A", price=Decimal("2"), quantity=2, category_id=uuid4()),
            ItemDraft(name="B", price=Decimal("3"), category_id=uuid4()),
        ]
        candidate = WriteCandidate.for_batch(drafts)
        assert candidate.category_id is None
        assert candidate.total_delta == Decimal("7")


class TestFiltersAndDecisions:

    def test_item_filter_ownership(self):
        user_id = uuid4()
        item = make_item(user_id, uuid4(), uuid4())
        assert ItemFilter(user_id=user_id).matches(item)
        assert not ItemFilter(user_id=uuid4()).matches(item)

    def test_item_filter_excludes_item(self):
        user_id = uuid4()
        item = make_item(user_id, uuid4(), uuid4())
        assert not ItemFilter(user_id=user_id, exclude_item_id=item.id).matches(item)

    def test_budget_filter_ended_before(self):
        user_id = uuid4()
        budget = make_budget(user_id)
        assert BudgetFilter(user_id=user_id, ended_before=budget.period.end + timedelta(days=1)).matches(budget)
        assert not BudgetFilter(user_id=user_id, ended_before=budget.period.start).matches(budget)

    def test_reject_computes_overage(self):
        decision = LimitDecision.reject(
            RejectionReason.TOTAL_LIMIT_EXCEEDED,
            current=Decimal("90"),
            limit=Decimal("100"),
            delta=Decimal("15"),
        )
        assert not decision.accepted
        assert decision.overage == Decimal("5")

    def test_category_visibility(self):
        owner = uuid4()
        system = Category(name="Produce", is_system=True)
        private = Category(name="Baby", user_id=owner)
        assert system.is_visible_to(uuid4())
        assert private.is_visible_to(owner)
        assert not private.is_visible_to(uuid4())

    def test_category_color_must_be_hex(self):
        with pytest.raises(ValueError):
            Category(name="Bad", color="green")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.BUDGET_CREATED,
            description="Budget created",
        )
        assert event.event_id is not None
        assert event.severity == AuditSeverity.INFO
        assert event.success is True

    def test_audit_event_to_log_dict(self):
        event = AuditEvent(
            event_type=AuditEventType.ITEM_CREATED,
            description="Item added",
            entity_type="item",
            entity_id=uuid4(),
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "item_created"
        assert log_dict["entity_type"] == "item"

    def test_sheets_row_round_trip(self):
        user_id, budget_id = uuid4(), uuid4()
        event = AuditEventBuilder.item_created(
            user_id=user_id,
            item_id=uuid4(),
            budget_id=budget_id,
            name="Eggs",
            total_price=Decimal("4.50"),
            correlation_id=uuid4(),
        )
        row = event.to_sheets_row()
        assert len(row) == 13

        restored = AuditEvent.from_sheets_row(row)
        assert restored.event_id == event.event_id
        assert restored.user_id == user_id
        assert restored.details["budget_id"] == str(budget_id)
        assert restored.is_user_action is True

    def test_limit_rejected_is_a_warning(self):
        event = AuditEventBuilder.limit_rejected(
            user_id=uuid4(),
            budget_id=uuid4(),
            reason="total_limit_exceeded",
            details={"overage": "5.00"},
        )
        assert event.event_type == AuditEventType.LIMIT_REJECTED
        assert event.severity == AuditSeverity.WARNING

    def test_audit_query_matches(self):
        user_id = uuid4()
        event = AuditEventBuilder.budget_deleted(user_id=user_id, budget_id=uuid4())
        assert AuditQuery(user_id=user_id).matches(event)
        assert not AuditQuery(user_id=uuid4()).matches(event)
        assert not AuditQuery(user_id=user_id, event_type=AuditEventType.ITEM_DELETED).matches(event)


class TestEnums:

    def test_alert_levels(self):
        assert [level.value for level in AlertLevel] == ["none", "info", "warning", "critical"]

    @pytest.mark.parametrize("month,season", [
        (1, Season.WINTER),
        (4, Season.SPRING),
        (7, Season.SUMMER),
        (10, Season.AUTUMN),
        (12, Season.WINTER),
    ])
    def test_season_for_month(self, month, season):
        assert Season.for_month(month) == season


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
