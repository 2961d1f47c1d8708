"""
Tip Generator

Chooses money-saving tips for a user from the read-only tip catalog.

Order of assembly:
1. Threshold tips for the budget's alert tier
2. Pattern tips (duplicate purchases, overspent categories, price alerts)
3. Seasonal tips for the current month
4. Only if nothing above applied: a random handful of general tips

The result is de-duplicated by content and capped at max_tips.
"""

import random
from datetime import datetime
from typing import Optional
from uuid import UUID

from grocery_budget.engine.signals import ThresholdSignalGenerator
from grocery_budget.models.ledger import AlertLevel, Budget
from grocery_budget.models.reports import SpendingPatterns
from grocery_budget.models.tips import (
    Season,
    Tip,
    TipCatalog,
    TipPriority,
    TipSuggestion,
    TriggerType,
)
from grocery_budget.tips.engagement import TipEngagement


GENERAL_TIPS_MIN = 3
GENERAL_TIPS_MAX = 5


class TipGenerator:
    """Assembles tip suggestions. Never writes to the catalog."""

    def __init__(
        self,
        catalog: TipCatalog,
        signals: ThresholdSignalGenerator,
        max_tips: int = 8,
        rng: Optional[random.Random] = None,
        engagement: Optional[TipEngagement] = None,
    ):
        self._catalog = catalog
        self._signals = signals
        self._max_tips = max_tips
        self._rng = rng or random.Random()
        self._engagement = engagement or TipEngagement()

    def threshold_tips(self, budget: Budget) -> list[TipSuggestion]:
        level = self._signals.signal(budget.percentage_spent)
        if level == AlertLevel.NONE:
            return []
        return [
            TipSuggestion(tip=tip, context={"level": level.value})
            for tip in self._catalog.for_level(level)
            if tip.is_active
        ]

    def pattern_tips(self, patterns: SpendingPatterns) -> list[TipSuggestion]:
        suggestions = []

        if patterns.duplicates:
            tip = self._catalog.pattern_tip(pattern_type="duplicate_purchases")
            if tip is not None:
                suggestions.append(TipSuggestion(
                    tip=tip,
                    context={"items": [d.name for d in patterns.duplicates[:3]]},
                ))

        for overspend in patterns.category_overspend:
            tip = self._catalog.pattern_tip(category=overspend.category_name.lower())
            if tip is not None:
                suggestions.append(TipSuggestion(
                    tip=tip,
                    context={
                        "category": overspend.category_name,
                        "percentage": round(overspend.percentage),
                    },
                ))

        if patterns.price_increases:
            top = patterns.price_increases[0]
            suggestions.append(TipSuggestion(
                tip=Tip(
                    title="Price Alert",
                    content=(
                        f"Price alert: {top.name} has increased by "
                        f"{top.increase_percent:.2f}%. Consider alternatives "
                        "or buying in bulk."
                    ),
                    category="general",
                    trigger_type=TriggerType.PATTERN,
                    trigger_value={"type": "price_increase"},
                    priority=TipPriority.MEDIUM,
                    tags=("price-alert", "savings"),
                ),
                context={"item": top.name, "increase": top.increase_percent},
            ))

        return suggestions

    def seasonal_tips(self, now: Optional[datetime] = None) -> list[TipSuggestion]:
        season = Season.for_month((now or datetime.now()).month)
        return [
            TipSuggestion(tip=tip, context={"season": season.value})
            for tip in self._catalog.for_season(season)
            if tip.is_active
        ]

    def general_tips(self) -> list[TipSuggestion]:
        pool = [tip for tip in self._catalog.general if tip.is_active]
        count = min(len(pool), self._rng.randint(GENERAL_TIPS_MIN, GENERAL_TIPS_MAX))
        return [TipSuggestion(tip=tip) for tip in self._rng.sample(pool, count)]

    def generate(
        self,
        budget: Optional[Budget] = None,
        patterns: Optional[SpendingPatterns] = None,
        now: Optional[datetime] = None,
    ) -> list[TipSuggestion]:
        """All tips for a user, optionally in the context of one budget."""
        suggestions: list[TipSuggestion] = []
        if budget is not None:
            suggestions.extend(self.threshold_tips(budget))
        if patterns is not None:
            suggestions.extend(self.pattern_tips(patterns))
        suggestions.extend(self.seasonal_tips(now))

        if not suggestions:
            suggestions.extend(self.general_tips())

        return _dedupe(suggestions)[:self._max_tips]

    def get_relevant_tips(
        self,
        category: Optional[str] = None,
        trigger_type: Optional[TriggerType] = None,
        tags: Optional[list[str]] = None,
        limit: int = 5,
    ) -> list[Tip]:
        """
        Static lookup over the whole catalog.

        A category filter also admits "general" tips. Tags match if any
        tag overlaps. Ranked by live helpful count, then view count.
        """
        wanted_tags = set(tags or [])
        matches = []
        for tip in _unique_tips(self._catalog.all_tips()):
            if not tip.is_active:
                continue
            if category and tip.category not in (category, "general"):
                continue
            if trigger_type and tip.trigger_type != trigger_type:
                continue
            if wanted_tags and not wanted_tags.intersection(tip.tags):
                continue
            matches.append(self._engagement.apply(tip))

        matches.sort(key=lambda t: (t.helpful_count, t.view_count), reverse=True)
        return matches[:limit]

    def mark_helpful(self, tip_id: UUID) -> Optional[Tip]:
        """Count a helpful vote. Returns the tip with live counts, or None if unknown."""
        tip = self._catalog.find(tip_id)
        if tip is None:
            return None
        self._engagement.mark_helpful(tip)
        return self._engagement.apply(tip)

    def record_view(self, tip_id: UUID) -> Optional[Tip]:
        tip = self._catalog.find(tip_id)
        if tip is None:
            return None
        self._engagement.record_view(tip)
        return self._engagement.apply(tip)


def _dedupe(suggestions: list[TipSuggestion]) -> list[TipSuggestion]:
    seen = set()
    unique = []
    for suggestion in suggestions:
        if suggestion.tip.content in seen:
            continue
        seen.add(suggestion.tip.content)
        unique.append(suggestion)
    return unique


def _unique_tips(tips: list[Tip]) -> list[Tip]:
    seen = set()
    unique = []
    for tip in tips:
        if tip.content not in seen:
            seen.add(tip.content)
            unique.append(tip)
    return unique
