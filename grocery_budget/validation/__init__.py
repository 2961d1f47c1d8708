"""Payload validation package."""

from grocery_budget.validation.validator import (
    CategoryValidator,
    issues_from_pydantic,
    parse_allocations,
    parse_budget_create,
    parse_budget_update,
    parse_item_draft,
    parse_item_update,
    parse_payload,
)

__all__ = [
    "CategoryValidator",
    "issues_from_pydantic",
    "parse_allocations",
    "parse_budget_create",
    "parse_budget_update",
    "parse_item_draft",
    "parse_item_update",
    "parse_payload",
]
