"""
Tip Engagement

Helpful and view counters per tip, kept beside the read-only catalog.
Counts add to the catalog baseline when tips are ranked.
"""

from collections import Counter

from grocery_budget.models.tips import Tip


class TipEngagement:
    """In-process engagement counters keyed by tip ID."""

    def __init__(self):
        self._helpful: Counter = Counter()
        self._views: Counter = Counter()

    def mark_helpful(self, tip: Tip) -> int:
        """Count one helpful vote. Returns the tip's new helpful count."""
        self._helpful[tip.id] += 1
        return self.helpful_count(tip)

    def record_view(self, tip: Tip) -> int:
        self._views[tip.id] += 1
        return self.view_count(tip)

    def helpful_count(self, tip: Tip) -> int:
        return tip.helpful_count + self._helpful[tip.id]

    def view_count(self, tip: Tip) -> int:
        return tip.view_count + self._views[tip.id]

    def apply(self, tip: Tip) -> Tip:
        """The tip with its live counts filled in."""
        return tip.model_copy(update={
            "helpful_count": self.helpful_count(tip),
            "view_count": self.view_count(tip),
        })
