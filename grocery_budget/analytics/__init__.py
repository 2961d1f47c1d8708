"""Read-only spending analytics."""

from grocery_budget.analytics.history import (
    SpendingHistory,
    change_percent,
    week_start,
)
from grocery_budget.analytics.patterns import (
    analyze_spending_patterns,
    detect_price_increases,
    find_category_overspend,
    find_duplicate_purchases,
    find_frequent_items,
)

__all__ = [
    "SpendingHistory",
    "analyze_spending_patterns",
    "change_percent",
    "detect_price_increases",
    "find_category_overspend",
    "find_duplicate_purchases",
    "find_frequent_items",
    "week_start",
]
