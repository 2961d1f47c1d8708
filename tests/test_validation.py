"""
Tests for payload validation.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from grocery_budget.engine import NotFoundError, ValidationError
from grocery_budget.models.ledger import Category, CategoryAllocation
from grocery_budget.validation import (
    CategoryValidator,
    parse_allocations,
    parse_budget_create,
    parse_item_draft,
    parse_item_update,
)

from conftest import budget_payload, item_payload


class TestSchemaValidation:
    """Stage 1: payload to model."""

    def test_valid_item(self):
        draft = parse_item_draft(item_payload(uuid4(), price="3.25", quantity=2))
        assert draft.total_price == Decimal("6.50")

    def test_every_issue_reported(self):
        with pytest.raises(ValidationError) as exc:
            parse_item_draft({"price": "-1", "quantity": 0})

        fields = {issue.field for issue in exc.value.issues}
        assert {"name", "price", "quantity", "category_id"} <= fields
        missing = [i for i in exc.value.issues if i.field == "name"]
        assert missing[0].issue_type == "missing"

    def test_non_dict_payload(self):
        with pytest.raises(ValidationError) as exc:
            parse_item_draft(["not", "a", "dict"])
        assert exc.value.issues[0].field == "payload"

    def test_update_rejects_unknown_field(self):
        with pytest.raises(ValidationError) as exc:
            parse_item_update({"budget_id": str(uuid4())})
        assert exc.value.issues[0].issue_type == "unexpected_field"

    def test_budget_period_order(self):
        payload = budget_payload(days=-1)
        with pytest.raises(ValidationError):
            parse_budget_create(payload)

    def test_allocations_must_be_list(self):
        with pytest.raises(ValidationError):
            parse_allocations({"category_id": str(uuid4()), "limit": "10"})

    def test_allocations_nested_issue_path(self):
        with pytest.raises(ValidationError) as exc:
            parse_allocations([{"category_id": str(uuid4()), "limit": "-5"}])
        assert exc.value.issues[0].field.startswith("categories.0")


class TestCategoryValidator:
    """Stage 2: category references."""

    async def test_system_category_visible(self, catalog, categories, user_id):
        validator = CategoryValidator(catalog)
        found = await validator.require_category(categories["Dairy"].id, user_id)
        assert found.name == "Dairy"

    async def test_foreign_category_is_not_found(self, catalog, user_id):
        private = await catalog.save_category(Category(name="Pets", user_id=uuid4()))
        with pytest.raises(NotFoundError) as exc:
            await CategoryValidator(catalog).require_category(private.id, user_id)
        assert exc.value.entity_type == "category"

    async def test_check_allocations(self, catalog, categories, user_id):
        allocations = [
            CategoryAllocation(category_id=categories["Meat"].id, limit=Decimal("20")),
            CategoryAllocation(category_id=uuid4(), limit=Decimal("10")),
        ]
        issues = await CategoryValidator(catalog).check_allocations(allocations, user_id)
        assert len(issues) == 1
        assert issues[0].field == "categories.1.category_id"
        assert issues[0].issue_type == "not_found"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
