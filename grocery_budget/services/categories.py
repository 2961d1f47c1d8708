"""
System category seed data.

System categories are shared by every user and never owned.
Seeding is idempotent: categories are matched by name.
"""

import structlog

from grocery_budget.models.ledger import Category
from grocery_budget.services.storage import CategoryCatalogInterface


logger = structlog.get_logger(__name__)

# (name, icon, color)
DEFAULT_CATEGORIES = [
    ("Produce", "🥬", "#28a745"),
    ("Dairy", "🥛", "#17a2b8"),
    ("Meat", "🥩", "#dc3545"),
    ("Bakery", "🍞", "#ffc107"),
    ("Frozen", "🧊", "#6c757d"),
    ("Pantry", "🥫", "#fd7e14"),
    ("Beverages", "☕", "#795548"),
    ("Snacks", "🍿", "#e91e63"),
    ("Household", "🧹", "#9c27b0"),
    ("Personal Care", "🧼", "#673ab7"),
    ("Other", "📦", "#6c757d"),
]


async def seed_default_categories(catalog: CategoryCatalogInterface) -> list[Category]:
    """Create any missing system categories. Returns the full system list."""
    existing = {c.name for c in await catalog.list_categories() if c.is_system}

    created = 0
    for order, (name, icon, color) in enumerate(DEFAULT_CATEGORIES, start=1):
        if name in existing:
            continue
        await catalog.save_category(Category(
            name=name,
            icon=icon,
            color=color,
            is_system=True,
            order=order,
        ))
        created += 1

    if created:
        logger.info("default_categories_seeded", created=created)
    return [c for c in await catalog.list_categories() if c.is_system]
