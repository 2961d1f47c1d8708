"""
Purchase pattern detection.

Pure functions over a budget's items. Feeds the tip generator.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Mapping, Optional
from uuid import UUID

from grocery_budget.models.ledger import Budget, Item
from grocery_budget.models.reports import (
    CategoryOverspend,
    PriceIncrease,
    PurchaseCount,
    SpendingPatterns,
)


def _name_key(item: Item) -> str:
    return item.name.lower().strip()


def find_duplicate_purchases(items: list[Item], threshold: int = 3) -> list[PurchaseCount]:
    """Names bought at least `threshold` times, most frequent first."""
    counts: dict[str, int] = defaultdict(int)
    for item in items:
        counts[_name_key(item)] += 1
    duplicates = [
        PurchaseCount(name=name, count=count)
        for name, count in counts.items()
        if count >= threshold
    ]
    return sorted(duplicates, key=lambda d: d.count, reverse=True)


def find_frequent_items(items: list[Item], threshold: int = 2) -> list[PurchaseCount]:
    """Same name in the same category bought at least `threshold` times."""
    counts: dict[tuple[str, UUID], int] = defaultdict(int)
    display: dict[tuple[str, UUID], str] = {}
    for item in items:
        key = (_name_key(item), item.category_id)
        counts[key] += 1
        display.setdefault(key, item.name)
    frequent = [
        PurchaseCount(name=display[key], count=count)
        for key, count in counts.items()
        if count >= threshold
    ]
    return sorted(frequent, key=lambda f: f.count, reverse=True)


def find_category_overspend(
    budget: Budget,
    items: list[Item],
    category_names: Optional[Mapping[UUID, str]] = None,
    percentage: float = 80.0,
) -> list[CategoryOverspend]:
    """Allocated categories spent beyond `percentage` of their limit."""
    names = category_names or {}
    spent: dict[UUID, Decimal] = defaultdict(lambda: Decimal("0"))
    for item in items:
        spent[item.category_id] += item.total_price

    overspend = []
    for allocation in budget.categories:
        if allocation.limit <= 0 or allocation.category_id not in spent:
            continue
        used = float(spent[allocation.category_id] / allocation.limit * 100)
        if used > percentage:
            overspend.append(CategoryOverspend(
                category_id=allocation.category_id,
                category_name=names.get(allocation.category_id, "Unknown"),
                spent=spent[allocation.category_id],
                limit=allocation.limit,
                percentage=used,
            ))
    return overspend


def detect_price_increases(
    items: list[Item],
    threshold_percent: float = 10.0,
) -> list[PriceIncrease]:
    """
    Compare the first and last unit price paid for each name, by purchase date.

    Names first bought for free are skipped.
    """
    history: dict[str, list[Item]] = defaultdict(list)
    for item in items:
        history[_name_key(item)].append(item)

    increases = []
    for name, purchases in history.items():
        if len(purchases) < 2:
            continue
        purchases.sort(key=lambda i: i.purchase_date)
        first_price = purchases[0].price
        last_price = purchases[-1].price
        if first_price <= 0:
            continue
        increase = float((last_price - first_price) / first_price * 100)
        if increase > threshold_percent:
            increases.append(PriceIncrease(
                name=name,
                first_price=first_price,
                last_price=last_price,
                increase_percent=round(increase, 2),
            ))
    return sorted(increases, key=lambda p: p.increase_percent, reverse=True)


def analyze_spending_patterns(
    budget: Budget,
    items: list[Item],
    category_names: Optional[Mapping[UUID, str]] = None,
    duplicate_threshold: int = 3,
    overspend_percentage: float = 80.0,
    price_increase_percent: float = 10.0,
) -> SpendingPatterns:
    return SpendingPatterns(
        duplicates=find_duplicate_purchases(items, duplicate_threshold),
        category_overspend=find_category_overspend(
            budget, items, category_names, overspend_percentage
        ),
        frequent_items=find_frequent_items(items),
        price_increases=detect_price_increases(items, price_increase_percent),
    )
