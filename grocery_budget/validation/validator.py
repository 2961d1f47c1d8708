"""
Payload Validation

Turns raw request payloads (plain dicts) into typed models.

DESIGN DECISION: Validation happens in two stages:

STAGE 1 - SCHEMA VALIDATION:
- Types, required fields, ranges (pydantic)
- Every problem is reported, not just the first

STAGE 2 - REFERENCE VALIDATION:
- The referenced category exists
- It is visible to the caller (system, or owned by them)

IMPORTANT: Validation NEVER silently fixes issues.
A failed payload raises ValidationError carrying every issue found.
"""

from typing import Any, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from grocery_budget.engine.errors import NotFoundError, ValidationError
from grocery_budget.models.ledger import (
    BudgetCreate,
    BudgetUpdate,
    Category,
    CategoryAllocation,
    ItemDraft,
    ItemUpdate,
    ValidationIssue,
)
from grocery_budget.services.storage import CategoryCatalogInterface


ModelT = TypeVar("ModelT", bound=BaseModel)

ISSUE_TYPES = {
    "missing": "missing",
    "extra_forbidden": "unexpected_field",
}


def issues_from_pydantic(error: PydanticValidationError) -> list[ValidationIssue]:
    """Map pydantic's error list to ValidationIssues."""
    issues = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "payload"
        issues.append(ValidationIssue(
            field=location,
            issue_type=ISSUE_TYPES.get(detail["type"], "invalid_value"),
            message=detail["msg"],
            severity="error",
        ))
    return issues


def parse_payload(model: Type[ModelT], payload: Any) -> ModelT:
    """
    Stage 1: validate a payload against a model.

    Raises:
        ValidationError: With one issue per failing field
    """
    if not isinstance(payload, dict):
        raise ValidationError([ValidationIssue(
            field="payload",
            issue_type="invalid_value",
            message="Payload must be an object",
        )])
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(issues_from_pydantic(e)) from e


def parse_item_draft(payload: Any) -> ItemDraft:
    return parse_payload(ItemDraft, payload)


def parse_item_update(payload: Any) -> ItemUpdate:
    return parse_payload(ItemUpdate, payload)


def parse_budget_create(payload: Any) -> BudgetCreate:
    return parse_payload(BudgetCreate, payload)


def parse_budget_update(payload: Any) -> BudgetUpdate:
    return parse_payload(BudgetUpdate, payload)


def parse_allocations(payload: Any) -> list[CategoryAllocation]:
    """A bare list of {category_id, limit} objects."""
    if not isinstance(payload, list):
        raise ValidationError([ValidationIssue(
            field="categories",
            issue_type="invalid_value",
            message="Categories must be a list",
        )])
    update = parse_payload(BudgetUpdate, {"categories": payload})
    return update.categories or []


class CategoryValidator:
    """
    Stage 2: checks that referenced categories exist for the caller.

    A category owned by another user is reported exactly like a missing one.
    """

    def __init__(self, catalog: CategoryCatalogInterface):
        self._catalog = catalog

    async def require_category(self, category_id: UUID, user_id: UUID) -> Category:
        """
        Raises:
            NotFoundError: If the category is missing or not visible to the user
        """
        category = await self._catalog.find_category(category_id)
        if category is None or not category.is_visible_to(user_id):
            raise NotFoundError("category", category_id)
        return category

    async def check_allocations(
        self,
        allocations: list[CategoryAllocation],
        user_id: UUID,
    ) -> list[ValidationIssue]:
        """One issue per allocation whose category the user cannot see."""
        issues = []
        for index, allocation in enumerate(allocations):
            category: Optional[Category] = await self._catalog.find_category(
                allocation.category_id
            )
            if category is None or not category.is_visible_to(user_id):
                issues.append(ValidationIssue(
                    field=f"categories.{index}.category_id",
                    issue_type="not_found",
                    message=f"Category not found: {allocation.category_id}",
                    suggested_fix="Choose one of your categories or a system category",
                ))
        return issues
