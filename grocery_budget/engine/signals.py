"""
Threshold Signal Generator

Maps a spend percentage to exactly one alert tier.

DESIGN DECISION: Tiers are an ordered table, highest first.
The first tier whose threshold the percentage reaches wins, so a single
evaluation never emits more than one level. Percentages are not clamped:
an overspent budget (above 100%) is simply critical.
"""

from decimal import Decimal
from typing import Mapping, Optional
from uuid import UUID

from grocery_budget.config import AppSettings
from grocery_budget.models.ledger import AlertLevel, Budget, SpendingAlert


ALERT_MESSAGES = {
    AlertLevel.CRITICAL: "Critical: You've used {percentage:.1f}% of your budget!",
    AlertLevel.WARNING: "Warning: You've used {percentage:.1f}% of your budget",
    AlertLevel.INFO: "You've used {percentage:.1f}% of your budget",
}


class ThresholdSignalGenerator:
    """Ordered tier lookup for budget and category alerts."""

    def __init__(
        self,
        info_threshold: float = 50.0,
        warning_threshold: float = 75.0,
        critical_threshold: float = 90.0,
        category_alert_percentage: float = 80.0,
    ):
        if not info_threshold < warning_threshold < critical_threshold:
            raise ValueError(
                "Alert thresholds must be ascending: info < warning < critical"
            )
        self._tiers: tuple[tuple[float, AlertLevel], ...] = (
            (critical_threshold, AlertLevel.CRITICAL),
            (warning_threshold, AlertLevel.WARNING),
            (info_threshold, AlertLevel.INFO),
        )
        self.category_alert_percentage = category_alert_percentage

    @classmethod
    def from_settings(cls, settings: AppSettings) -> 'ThresholdSignalGenerator':
        return cls(
            info_threshold=settings.alert_info_threshold,
            warning_threshold=settings.alert_warning_threshold,
            critical_threshold=settings.alert_critical_threshold,
            category_alert_percentage=settings.category_alert_percentage,
        )

    @property
    def tiers(self) -> tuple[tuple[float, AlertLevel], ...]:
        return self._tiers

    def signal(self, percentage: float) -> AlertLevel:
        for threshold, level in self._tiers:
            if percentage >= threshold:
                return level
        return AlertLevel.NONE

    def build_alert(self, budget: Budget) -> Optional[SpendingAlert]:
        """The single budget-level alert, or None below the lowest tier."""
        percentage = budget.percentage_spent
        level = self.signal(percentage)
        if level == AlertLevel.NONE:
            return None
        return SpendingAlert(
            level=level,
            message=ALERT_MESSAGES[level].format(percentage=percentage),
            percentage=percentage,
        )

    def category_alerts(
        self,
        budget: Budget,
        spent_by_category: Mapping[UUID, Decimal],
        category_names: Optional[Mapping[UUID, str]] = None,
    ) -> list[SpendingAlert]:
        """
        One warning per allocated category at or above the category alert
        percentage. Allocations of zero never alert.
        """
        names = category_names or {}
        alerts = []
        for allocation in budget.categories:
            if allocation.limit <= 0:
                continue
            spent = spent_by_category.get(allocation.category_id, Decimal("0"))
            percentage = float(spent / allocation.limit * 100)
            if percentage < self.category_alert_percentage:
                continue
            name = names.get(allocation.category_id, "Category")
            alerts.append(SpendingAlert(
                level=AlertLevel.WARNING,
                message=f"{name} category is at {percentage:.1f}% of its limit",
                percentage=percentage,
                category_id=allocation.category_id,
                category_name=name,
            ))
        return alerts

    def alerts_for(
        self,
        budget: Budget,
        spent_by_category: Mapping[UUID, Decimal],
        category_names: Optional[Mapping[UUID, str]] = None,
    ) -> list[SpendingAlert]:
        """Budget-level alert first, then category alerts."""
        alerts = []
        overall = self.build_alert(budget)
        if overall is not None:
            alerts.append(overall)
        alerts.extend(self.category_alerts(budget, spent_by_category, category_names))
        return alerts
