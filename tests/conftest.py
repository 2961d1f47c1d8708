"""
Shared fixtures.

Everything runs against the in-memory storage backends, so no test
touches Google Sheets.
"""

import random
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from grocery_budget.audit import AuditLogger
from grocery_budget.config import AppSettings
from grocery_budget.models.ledger import Budget, BudgetPeriod, Item
from grocery_budget.orchestrator import BudgetFlow, ExportFlow, InsightFlow, ItemFlow
from grocery_budget.services import seed_default_categories
from grocery_budget.services.storage import (
    InMemoryAuditStorage,
    InMemoryCategoryCatalog,
    InMemoryLedgerStorage,
)


NOW = datetime(2024, 6, 15, 12, 0, 0)


def make_budget(user_id, total_limit="100.00", current_spent="0", **kwargs) -> Budget:
    kwargs.setdefault("name", "June groceries")
    kwargs.setdefault("period", BudgetPeriod(
        start=NOW - timedelta(days=14),
        end=NOW + timedelta(days=16),
    ))
    return Budget(
        user_id=user_id,
        total_limit=Decimal(total_limit),
        current_spent=Decimal(current_spent),
        **kwargs,
    )


def make_item(user_id, budget_id, category_id, price="10.00", quantity=1, **kwargs) -> Item:
    kwargs.setdefault("name", "Milk")
    return Item(
        user_id=user_id,
        budget_id=budget_id,
        category_id=category_id,
        price=Decimal(price),
        quantity=quantity,
        **kwargs,
    )


def budget_payload(total_limit="100.00", categories=None, start=None, days=30) -> dict:
    start = start or (NOW - timedelta(days=1))
    return {
        "name": "Groceries",
        "total_limit": total_limit,
        "period": {
            "start": start.isoformat(),
            "end": (start + timedelta(days=days)).isoformat(),
        },
        "categories": categories or [],
    }


def item_payload(category_id, name="Milk", price="10.00", quantity=1, **kwargs) -> dict:
    return {
        "name": name,
        "price": price,
        "quantity": quantity,
        "category_id": str(category_id),
        **kwargs,
    }


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def ledger():
    return InMemoryLedgerStorage()


@pytest.fixture
async def catalog():
    catalog = InMemoryCategoryCatalog()
    await seed_default_categories(catalog)
    return catalog


@pytest.fixture
async def categories(catalog):
    """System categories keyed by name."""
    return {c.name: c for c in await catalog.list_categories()}


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def app_settings():
    return AppSettings()


@pytest.fixture
def insight_flow(ledger, catalog, audit_logger, app_settings):
    return InsightFlow(
        ledger,
        catalog,
        audit_logger,
        app_settings=app_settings,
        rng=random.Random(7),
    )


@pytest.fixture
def budget_flow(ledger, catalog, insight_flow, audit_logger):
    return BudgetFlow(ledger, catalog, insight_flow, audit_logger)


@pytest.fixture
def item_flow(ledger, catalog, insight_flow, audit_logger):
    return ItemFlow(ledger, catalog, insight_flow, audit_logger)


@pytest.fixture
def export_flow(ledger, catalog, audit_logger):
    return ExportFlow(ledger, catalog, audit_logger)
