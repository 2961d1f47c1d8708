"""
Tip Models for Grocery Budget

Tips are static advisory content. The catalog is loaded once at startup
and handed to the tip generator; nothing mutates it at runtime.
"""

from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid5

from pydantic import BaseModel, ConfigDict, Field, computed_field

from grocery_budget.models.ledger import AlertLevel


# Namespace for content-derived tip IDs
TIP_NAMESPACE = UUID("5b0f6f0e-3c1a-4d4e-9a57-2f1d6c8e9b10")


class TriggerType(str, Enum):
    """What makes a tip relevant."""
    THRESHOLD = "threshold"
    PATTERN = "pattern"
    SEASONAL = "seasonal"


class Season(str, Enum):
    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"
    WINTER = "winter"

    @classmethod
    def for_month(cls, month: int) -> 'Season':
        """Northern-hemisphere season for a calendar month (1-12)."""
        if 3 <= month <= 5:
            return cls.SPRING
        if 6 <= month <= 8:
            return cls.SUMMER
        if 9 <= month <= 11:
            return cls.AUTUMN
        return cls.WINTER


class TipPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Tip(BaseModel):
    """
    A single money-saving tip.

    view_count and helpful_count are the catalog baseline. Live
    engagement is counted separately and only affects ranking.
    """
    model_config = ConfigDict(frozen=True)

    title: str = ""
    content: str = Field(..., min_length=1)
    category: str = "general"
    trigger_type: TriggerType
    trigger_value: Any = None
    priority: TipPriority = TipPriority.MEDIUM
    tags: tuple[str, ...] = ()
    is_active: bool = True
    view_count: int = Field(default=0, ge=0)
    helpful_count: int = Field(default=0, ge=0)

    @computed_field
    @property
    def id(self) -> UUID:
        return uuid5(TIP_NAMESPACE, self.content)


class TipSuggestion(BaseModel):
    """A tip chosen for a user, with the data that triggered it."""

    tip: Tip
    context: dict[str, Any] = Field(default_factory=dict)


class TipCatalog(BaseModel):
    """
    Read-only tip tables.

    threshold: alert tier -> tips shown at that tier
    seasonal:  season -> tips
    pattern:   tips matched by trigger_value["type"] or by category
    general:   fallback pool when nothing else applies
    """
    model_config = ConfigDict(frozen=True)

    threshold: dict[AlertLevel, tuple[Tip, ...]] = Field(default_factory=dict)
    seasonal: dict[Season, tuple[Tip, ...]] = Field(default_factory=dict)
    pattern: tuple[Tip, ...] = ()
    general: tuple[Tip, ...] = ()

    def for_level(self, level: AlertLevel) -> list[Tip]:
        return list(self.threshold.get(level, ()))

    def for_season(self, season: Season) -> list[Tip]:
        return list(self.seasonal.get(season, ()))

    def pattern_tip(
        self,
        pattern_type: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Optional[Tip]:
        """First active pattern tip matching a pattern type or a category."""
        for tip in self.pattern:
            if not tip.is_active:
                continue
            if pattern_type is not None:
                value = tip.trigger_value if isinstance(tip.trigger_value, dict) else {}
                if value.get("type") == pattern_type:
                    return tip
            elif category is not None and tip.category == category:
                return tip
        return None

    def all_tips(self) -> list[Tip]:
        tips: list[Tip] = []
        for group in self.threshold.values():
            tips.extend(group)
        for group in self.seasonal.values():
            tips.extend(group)
        tips.extend(self.pattern)
        tips.extend(self.general)
        return tips

    def find(self, tip_id: UUID) -> Optional[Tip]:
        for tip in self.all_tips():
            if tip.id == tip_id:
                return tip
        return None
