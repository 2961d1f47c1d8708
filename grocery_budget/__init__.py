"""
Grocery Budget - Source Package

A budget consistency engine for household grocery spending:
user-scoped budgets, purchased items, soft category allocations,
threshold alerts and money-saving tips.

DESIGN PRINCIPLES:
1. Check limits before anything is persisted
2. Derived spend is always a full re-aggregation
3. One active budget per user
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Grocery Budget Team"
