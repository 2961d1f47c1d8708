"""Money-saving tips: bundled catalog, engagement counters and generator."""

from grocery_budget.tips.catalog import load_tip_catalog
from grocery_budget.tips.engagement import TipEngagement
from grocery_budget.tips.generator import TipGenerator

__all__ = ["TipEngagement", "TipGenerator", "load_tip_catalog"]
