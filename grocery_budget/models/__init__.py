"""
Data Models Package

This package contains all Pydantic models used in the Grocery Budget system.
All data flowing through the engine must conform to these schemas.
"""

from grocery_budget.models.ledger import (
    AlertLevel,
    Budget,
    BudgetCreate,
    BudgetFilter,
    BudgetPeriod,
    BudgetStatus,
    BudgetUpdate,
    Category,
    CategoryAllocation,
    Item,
    ItemDraft,
    ItemFilter,
    ItemUpdate,
    LimitDecision,
    RejectionReason,
    SpendingAlert,
    ValidationIssue,
    WriteCandidate,
)
from grocery_budget.models.audit import (
    ActivityPage,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditQuery,
    AuditSeverity,
    DailyActivity,
)
from grocery_budget.models.tips import (
    Season,
    Tip,
    TipCatalog,
    TipPriority,
    TipSuggestion,
    TriggerType,
)
from grocery_budget.models.reports import (
    BatchItemFailure,
    BatchResult,
    BatchSummary,
    BudgetDetail,
    CategoryBreakdown,
    CategoryComparison,
    CategoryOverspend,
    CategoryTrend,
    ItemListing,
    ItemStats,
    ItemWriteResult,
    NoPreviousPeriod,
    PeriodComparison,
    PriceIncrease,
    PurchaseCount,
    RunningTotals,
    SpendingPatterns,
    SpendingTrends,
    TrendDirection,
    WeeklySpending,
)

__all__ = [
    # Ledger models
    "AlertLevel",
    "Budget",
    "BudgetCreate",
    "BudgetFilter",
    "BudgetPeriod",
    "BudgetStatus",
    "BudgetUpdate",
    "Category",
    "CategoryAllocation",
    "Item",
    "ItemDraft",
    "ItemFilter",
    "ItemUpdate",
    "LimitDecision",
    "RejectionReason",
    "SpendingAlert",
    "ValidationIssue",
    "WriteCandidate",
    # Audit models
    "ActivityPage",
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditQuery",
    "AuditSeverity",
    "DailyActivity",
    # Tip models
    "Season",
    "Tip",
    "TipCatalog",
    "TipPriority",
    "TipSuggestion",
    "TriggerType",
    # Report models
    "BatchItemFailure",
    "BatchResult",
    "BatchSummary",
    "BudgetDetail",
    "CategoryBreakdown",
    "CategoryComparison",
    "CategoryOverspend",
    "CategoryTrend",
    "ItemListing",
    "ItemStats",
    "ItemWriteResult",
    "NoPreviousPeriod",
    "PeriodComparison",
    "PriceIncrease",
    "PurchaseCount",
    "RunningTotals",
    "SpendingPatterns",
    "SpendingTrends",
    "TrendDirection",
    "WeeklySpending",
]
