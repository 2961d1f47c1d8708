"""
Main Orchestrator for Grocery Budget

This module ties together all the components and defines the
end-to-end flows for:
1. Budgets (create/activate → update → allocations → delete)
2. Items (validate → enforce limits → persist → re-aggregate → signal)
3. Insights (alerts, running totals, tips, period comparison, trends)
4. Exports (CSV)

DESIGN DECISION: The orchestrator enforces the write ordering:
- Nothing is persisted before the limit enforcer accepts it
- Every item write is followed by a full re-aggregation of its budget
- Alerts and tips are derived from the re-aggregated budget
- Every mutation is audited

Each request runs these steps sequentially. There are no locks:
concurrent writes to one budget can both pass enforcement, and the
re-aggregation afterwards restores current_spent to the true sum.
"""

import random
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Any, NamedTuple, Optional, Union
from uuid import UUID

import structlog

from grocery_budget.analytics import SpendingHistory, analyze_spending_patterns
from grocery_budget.audit import AuditLogger, create_correlation_id
from grocery_budget.config import AppSettings, get_settings
from grocery_budget.engine import (
    BudgetLifecycleManager,
    BudgetNotEmptyError,
    InvalidAllocationError,
    LimitEnforcer,
    LimitExceededError,
    NotFoundError,
    SpendAggregator,
    ThresholdSignalGenerator,
    ValidationError,
    is_expired,
    raise_for_decision,
)
from grocery_budget.exports import CsvExport, CsvExporter, PdfExport, PdfExporter
from grocery_budget.models.ledger import (
    Budget,
    BudgetFilter,
    CategoryAllocation,
    Item,
    ItemDraft,
    ItemFilter,
    LimitDecision,
    SpendingAlert,
    ValidationIssue,
    WriteCandidate,
)
from grocery_budget.models.reports import (
    BatchItemFailure,
    BatchResult,
    BudgetDetail,
    CategoryBreakdown,
    ItemListing,
    ItemStats,
    ItemWriteResult,
    NoPreviousPeriod,
    PeriodComparison,
    RunningTotals,
    SpendingPatterns,
    SpendingTrends,
)
from grocery_budget.models.tips import Tip, TipSuggestion, TriggerType
from grocery_budget.services import seed_default_categories
from grocery_budget.services.storage import (
    CategoryCatalogInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsCategoryCatalog,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryCategoryCatalog,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    StorageError,
)
from grocery_budget.tips import TipGenerator, load_tip_catalog
from grocery_budget.validation import (
    CategoryValidator,
    parse_allocations,
    parse_budget_create,
    parse_budget_update,
    parse_item_draft,
    parse_item_update,
)


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


def _require_batch(payloads: Any) -> list:
    if not isinstance(payloads, list) or not payloads:
        raise ValidationError([ValidationIssue(
            field="payload",
            issue_type="missing",
            message="Please provide an array of items",
        )])
    return payloads


class InsightFlow:
    """
    Read-only derived views of a budget.

    Alerts, running totals, tips, spending patterns, period comparison
    and trends. Nothing here writes to the ledger.
    """

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        catalog: CategoryCatalogInterface,
        audit_logger: Optional[AuditLogger] = None,
        app_settings: Optional[AppSettings] = None,
        rng: Optional[random.Random] = None,
    ):
        self._ledger = ledger
        self._catalog = catalog
        self._audit_logger = audit_logger
        self._settings = app_settings or get_settings().app
        self.signals = ThresholdSignalGenerator.from_settings(self._settings)
        self._tips = TipGenerator(
            catalog=load_tip_catalog(),
            signals=self.signals,
            max_tips=self._settings.max_tips,
            rng=rng,
        )
        self._history = SpendingHistory(
            ledger,
            catalog,
            trend_change_ratio=self._settings.trend_change_ratio,
        )

    async def _require_budget(self, user_id: UUID, budget_id: UUID) -> Budget:
        budget = await self._ledger.find_budget(budget_id, user_id)
        if budget is None:
            raise NotFoundError("budget", budget_id)
        return budget

    async def _budget_items(self, budget: Budget) -> list[Item]:
        return await self._ledger.find_items(
            ItemFilter(user_id=budget.user_id, budget_id=budget.id)
        )

    async def category_names(self, user_id: UUID) -> dict[UUID, str]:
        return {c.id: c.name for c in await self._catalog.list_categories(user_id)}

    # ===== ALERTS & TIPS =====

    async def build_alerts(self, budget: Budget) -> list[SpendingAlert]:
        """The single budget alert plus category alerts."""
        spent: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        for item in await self._budget_items(budget):
            spent[item.category_id] += item.total_price
        names = await self.category_names(budget.user_id)
        return self.signals.alerts_for(budget, spent, names)

    async def analyze_patterns(self, budget: Budget) -> SpendingPatterns:
        items = await self._budget_items(budget)
        names = await self.category_names(budget.user_id)
        return analyze_spending_patterns(
            budget,
            items,
            names,
            duplicate_threshold=self._settings.duplicate_purchase_threshold,
            overspend_percentage=self._settings.category_alert_percentage,
            price_increase_percent=self._settings.price_increase_alert_percent,
        )

    async def suggest_tips(
        self,
        budget: Optional[Budget],
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[TipSuggestion]:
        patterns = await self.analyze_patterns(budget) if budget else None
        tips = self._tips.generate(budget=budget, patterns=patterns, now=now)
        return tips[:limit] if limit is not None else tips

    async def response_extras(
        self,
        budget: Optional[Budget],
    ) -> tuple[list[SpendingAlert], list[TipSuggestion]]:
        """Alerts and the short tip list attached to write responses."""
        if budget is None:
            return [], []
        alerts = await self.build_alerts(budget)
        tips = await self.suggest_tips(budget, limit=self._settings.tips_per_response)
        return alerts, tips

    async def generate_tips(
        self,
        user_id: UUID,
        budget_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> list[TipSuggestion]:
        """Full tip list for a user, optionally in the context of one budget."""
        budget = await self._require_budget(user_id, budget_id) if budget_id else None
        tips = await self.suggest_tips(budget, now=now)
        if self._audit_logger:
            await self._audit_logger.log_tips_generated(
                user_id=user_id,
                tip_count=len(tips),
                budget_id=budget_id,
            )
        return tips

    async def get_spending_patterns(self, user_id: UUID, budget_id: UUID) -> SpendingPatterns:
        budget = await self._require_budget(user_id, budget_id)
        return await self.analyze_patterns(budget)

    async def get_threshold_tips(self, user_id: UUID, budget_id: UUID) -> list[TipSuggestion]:
        budget = await self._require_budget(user_id, budget_id)
        return self._tips.threshold_tips(budget)

    def get_seasonal_tips(self, now: Optional[datetime] = None) -> list[TipSuggestion]:
        return self._tips.seasonal_tips(now)

    def get_relevant_tips(
        self,
        category: Optional[str] = None,
        trigger_type: Optional[TriggerType] = None,
        tags: Optional[list[str]] = None,
        limit: int = 5,
    ) -> list[Tip]:
        return self._tips.get_relevant_tips(category, trigger_type, tags, limit)

    async def mark_tip_helpful(self, user_id: UUID, tip_id: UUID) -> Tip:
        """
        Count a helpful vote for a catalog tip.

        Raises:
            NotFoundError: If no catalog tip has this ID
        """
        tip = self._tips.mark_helpful(tip_id)
        if tip is None:
            raise NotFoundError("tip", tip_id)
        if self._audit_logger:
            await self._audit_logger.log_tip_helpful(
                user_id=user_id,
                tip_id=tip_id,
                helpful_count=tip.helpful_count,
            )
        return tip

    def mark_tip_viewed(self, tip_id: UUID) -> Tip:
        tip = self._tips.record_view(tip_id)
        if tip is None:
            raise NotFoundError("tip", tip_id)
        return tip

    # ===== TOTALS & HISTORY =====

    async def get_running_totals(self, user_id: UUID, budget_id: UUID) -> RunningTotals:
        """Per-category spend of one budget plus a summary."""
        budget = await self._require_budget(user_id, budget_id)
        items = await self._budget_items(budget)
        names = await self.category_names(user_id)

        breakdown: dict[UUID, CategoryBreakdown] = {}
        for item in items:
            row = breakdown.get(item.category_id)
            if row is None:
                row = CategoryBreakdown(
                    category_id=item.category_id,
                    category_name=names.get(item.category_id, "Unknown"),
                )
                breakdown[item.category_id] = row
            row.spent += item.total_price
            row.item_count += 1
            if item.is_essential:
                row.essential_spent += item.total_price
            else:
                row.non_essential_spent += item.total_price

        for allocation in budget.categories:
            row = breakdown.get(allocation.category_id)
            if row is None:
                continue
            row.limit = allocation.limit
            row.remaining = allocation.limit - row.spent
            row.percentage_used = (
                float(row.spent / allocation.limit * 100) if allocation.limit > 0 else 0.0
            )

        essential_items = sum(1 for item in items if item.is_essential)
        total = sum((item.total_price for item in items), ZERO)
        return RunningTotals(
            budget_id=budget.id,
            status=budget.status(),
            categories=sorted(breakdown.values(), key=lambda r: r.spent, reverse=True),
            total_items=len(items),
            essential_items=essential_items,
            non_essential_items=len(items) - essential_items,
            average_item_cost=(total / len(items)) if items else ZERO,
        )

    async def compare_periods(
        self,
        user_id: UUID,
        budget_id: UUID,
    ) -> Union[PeriodComparison, NoPreviousPeriod]:
        return await self._history.compare_periods(user_id, budget_id)

    async def analyze_spending_trends(
        self,
        user_id: UUID,
        window_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> SpendingTrends:
        return await self._history.analyze_spending_trends(
            user_id,
            window_days or self._settings.default_trend_window_days,
            now=now,
        )


class BudgetFlow:
    """
    Orchestrates budget lifecycle operations.

    Creating a budget always activates it; the user's previously
    active budget is deactivated, never deleted.
    """

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        catalog: CategoryCatalogInterface,
        insights: Optional[InsightFlow] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._audit_logger = audit_logger
        self._insights = insights or InsightFlow(ledger, catalog, audit_logger)
        self._lifecycle = BudgetLifecycleManager(ledger, audit_logger)
        self._categories = CategoryValidator(catalog)

    async def _require_budget(self, user_id: UUID, budget_id: UUID) -> Budget:
        budget = await self._ledger.find_budget(budget_id, user_id)
        if budget is None:
            raise NotFoundError("budget", budget_id)
        return budget

    async def _check_allocations(
        self,
        user_id: UUID,
        allocations: list[CategoryAllocation],
    ) -> None:
        issues = await self._categories.check_allocations(allocations, user_id)
        if issues:
            await self._audit_validation(user_id, "budget", issues)
            raise ValidationError(issues, "Unknown category in allocations")

    async def _audit_validation(
        self,
        user_id: UUID,
        entity_type: str,
        issues: list[ValidationIssue],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_validation_failed(
                user_id=user_id,
                entity_type=entity_type,
                issues=[issue.model_dump() for issue in issues],
            )

    async def detail(self, budget: Budget, now: Optional[datetime] = None) -> BudgetDetail:
        alerts, tips = await self._insights.response_extras(budget)
        return BudgetDetail(
            budget=budget,
            status=budget.status(),
            is_expired=is_expired(budget, now),
            alerts=alerts,
            tips=tips,
        )

    async def create_budget(self, user_id: UUID, payload: dict[str, Any]) -> BudgetDetail:
        """
        Validate, then create and activate a budget.

        The allocation sum is allowed to exceed the total limit here.
        """
        correlation_id = create_correlation_id()
        try:
            attrs = parse_budget_create(payload)
        except ValidationError as e:
            await self._audit_validation(user_id, "budget", e.issues)
            raise
        await self._check_allocations(user_id, attrs.categories)

        budget = await self._lifecycle.activate(user_id, attrs, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_budget_created(
                user_id=user_id,
                budget_id=budget.id,
                name=budget.name,
                total_limit=budget.total_limit,
                correlation_id=correlation_id,
            )
        return await self.detail(budget)

    async def list_budgets(
        self,
        user_id: UUID,
        is_active: Optional[bool] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[Budget]:
        """Newest first."""
        return await self._ledger.find_budgets(
            BudgetFilter(user_id=user_id, is_active=is_active),
            limit=limit,
            offset=offset,
        )

    async def get_budget(
        self,
        user_id: UUID,
        budget_id: UUID,
        now: Optional[datetime] = None,
    ) -> BudgetDetail:
        budget = await self._require_budget(user_id, budget_id)
        return await self.detail(budget, now)

    async def get_active_budget(
        self,
        user_id: UUID,
        now: Optional[datetime] = None,
    ) -> Optional[BudgetDetail]:
        budget = await self._lifecycle.get_active_budget(user_id, now)
        if budget is None:
            return None
        return await self.detail(budget, now)

    async def update_budget(
        self,
        user_id: UUID,
        budget_id: UUID,
        payload: dict[str, Any],
    ) -> BudgetDetail:
        """
        Update name, total limit, allocations or the active flag.

        New allocations must fit inside the (possibly new) total limit.
        Re-activating a budget deactivates the user's other budgets.

        Raises:
            NotFoundError, ValidationError, InvalidAllocationError
        """
        correlation_id = create_correlation_id()
        try:
            update = parse_budget_update(payload)
        except ValidationError as e:
            await self._audit_validation(user_id, "budget", e.issues)
            raise
        budget = await self._require_budget(user_id, budget_id)

        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        total_limit = update.total_limit if update.total_limit is not None else budget.total_limit

        if update.categories is not None:
            await self._check_allocations(user_id, update.categories)
            allocation_total = sum((a.limit for a in update.categories), ZERO)
            if allocation_total > total_limit:
                raise InvalidAllocationError(allocation_total, total_limit)
            changes["categories"] = update.categories

        changes["updated_at"] = datetime.now()
        updated = await self._ledger.save_budget(budget.model_copy(update=changes))

        if update.is_active:
            await self._lifecycle.deactivate_others(user_id, updated.id, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_budget_updated(
                user_id=user_id,
                budget_id=budget_id,
                changes=update.model_dump(mode="json", exclude_unset=True, exclude_none=True),
                correlation_id=correlation_id,
            )
        return await self.detail(updated)

    async def update_allocations(
        self,
        user_id: UUID,
        budget_id: UUID,
        payload: list[dict[str, Any]],
    ) -> BudgetDetail:
        """
        Replace a budget's category allocations.

        Raises:
            InvalidAllocationError: If the allocations add up to more
                than the total limit
        """
        try:
            allocations = parse_allocations(payload)
        except ValidationError as e:
            await self._audit_validation(user_id, "budget", e.issues)
            raise
        budget = await self._require_budget(user_id, budget_id)
        await self._check_allocations(user_id, allocations)

        allocation_total = sum((a.limit for a in allocations), ZERO)
        if allocation_total > budget.total_limit:
            raise InvalidAllocationError(allocation_total, budget.total_limit)

        updated = await self._ledger.save_budget(budget.model_copy(
            update={"categories": allocations, "updated_at": datetime.now()}
        ))
        if self._audit_logger:
            await self._audit_logger.log_allocations_updated(
                user_id=user_id,
                budget_id=budget_id,
                allocation_total=allocation_total,
            )
        return await self.detail(updated)

    async def delete_budget(self, user_id: UUID, budget_id: UUID) -> None:
        """
        Delete a budget that owns no items.

        Raises:
            NotFoundError, BudgetNotEmptyError
        """
        await self._require_budget(user_id, budget_id)

        item_count = await self._ledger.count_items(
            ItemFilter(user_id=user_id, budget_id=budget_id)
        )
        if item_count > 0:
            raise BudgetNotEmptyError(budget_id, item_count)

        await self._ledger.delete_budget(budget_id, user_id)
        if self._audit_logger:
            await self._audit_logger.log_budget_deleted(
                user_id=user_id,
                budget_id=budget_id,
            )


class ItemFlow:
    """
    Orchestrates item writes.

    Flow for every write:
    1. Validate → payload to model, category must exist for the user
    2. Enforce → limit enforcer accepts or rejects (nothing persisted yet)
    3. Persist → ledger write
    4. Re-aggregate → full recompute of the budget's current_spent
    5. Signal → alerts and tips from the re-aggregated budget

    A failed re-aggregation is logged and audited; the write stands.
    """

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        catalog: CategoryCatalogInterface,
        insights: Optional[InsightFlow] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._audit_logger = audit_logger
        self._insights = insights or InsightFlow(ledger, catalog, audit_logger)
        self._enforcer = LimitEnforcer(ledger)
        self._aggregator = SpendAggregator(ledger, audit_logger)
        self._categories = CategoryValidator(catalog)

    async def _require_budget(self, user_id: UUID, budget_id: UUID) -> Budget:
        budget = await self._ledger.find_budget(budget_id, user_id)
        if budget is None:
            raise NotFoundError("budget", budget_id)
        return budget

    async def _require_item(self, user_id: UUID, item_id: UUID) -> Item:
        item = await self._ledger.find_item(item_id, user_id)
        if item is None:
            raise NotFoundError("item", item_id)
        return item

    async def _reject(
        self,
        user_id: UUID,
        budget_id: UUID,
        decision: LimitDecision,
        correlation_id: UUID,
    ) -> None:
        """Audit a rejected decision, then raise it."""
        if self._audit_logger:
            await self._audit_logger.log_limit_rejected(
                user_id=user_id,
                budget_id=budget_id,
                reason=decision.reason.value,
                details=decision.model_dump(
                    mode="json", exclude={"accepted", "reason"}, exclude_none=True
                ),
                correlation_id=correlation_id,
            )
        raise_for_decision(decision)

    async def _parse(self, user_id: UUID, parser, payload: Any):
        try:
            return parser(payload)
        except ValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    user_id=user_id,
                    entity_type="item",
                    issues=[issue.model_dump() for issue in e.issues],
                )
            raise

    async def _result(self, budget: Optional[Budget], item: Optional[Item]) -> ItemWriteResult:
        alerts, tips = await self._insights.response_extras(budget)
        return ItemWriteResult(
            item=item,
            budget_status=budget.status() if budget else None,
            alerts=alerts,
            tips=tips,
        )

    # ===== WRITES =====

    async def create_item(
        self,
        user_id: UUID,
        budget_id: UUID,
        payload: dict[str, Any],
    ) -> ItemWriteResult:
        """
        Add one item to a budget.

        Raises:
            ValidationError, NotFoundError, InactiveBudgetError,
            TotalLimitExceededError, CategoryLimitExceededError
        """
        correlation_id = create_correlation_id()
        draft: ItemDraft = await self._parse(user_id, parse_item_draft, payload)
        budget = await self._require_budget(user_id, budget_id)
        await self._categories.require_category(draft.category_id, user_id)

        decision = await self._enforcer.check(budget, WriteCandidate.for_create(draft))
        if not decision.accepted:
            await self._reject(user_id, budget_id, decision, correlation_id)

        item = await self._ledger.save_item(draft.to_item(user_id, budget_id))
        reconciled = await self._aggregator.reconcile(budget_id, user_id, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_item_created(
                user_id=user_id,
                item_id=item.id,
                budget_id=budget_id,
                name=item.name,
                total_price=item.total_price,
                correlation_id=correlation_id,
            )
        return await self._result(reconciled, item)

    async def update_item(
        self,
        user_id: UUID,
        item_id: UUID,
        payload: dict[str, Any],
    ) -> ItemWriteResult:
        """
        Update an item in place. The owning budget never changes.

        Limits are only checked when price, quantity or category change.
        The total check uses the cost difference; the category check
        uses the new cost against the other items of the target category.
        """
        correlation_id = create_correlation_id()
        update = await self._parse(user_id, parse_item_update, payload)
        item = await self._require_item(user_id, item_id)
        budget = await self._require_budget(user_id, item.budget_id)

        if update.category_id is not None:
            await self._categories.require_category(update.category_id, user_id)

        updated = update.apply(item)
        if update.changes_cost:
            decision = await self._enforcer.check(
                budget,
                WriteCandidate.for_update(item, updated),
                exclude_item_id=item.id,
            )
            if not decision.accepted:
                await self._reject(user_id, budget.id, decision, correlation_id)

        saved = await self._ledger.save_item(updated)
        reconciled = await self._aggregator.reconcile(budget.id, user_id, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_item_updated(
                user_id=user_id,
                item_id=item_id,
                budget_id=budget.id,
                changes=update.model_dump(mode="json", exclude_unset=True, exclude_none=True),
                correlation_id=correlation_id,
            )
        return await self._result(reconciled, saved)

    async def delete_item(self, user_id: UUID, item_id: UUID) -> ItemWriteResult:
        """Delete an item. Only ownership is checked."""
        correlation_id = create_correlation_id()
        item = await self._require_item(user_id, item_id)

        await self._ledger.delete_item(item_id, user_id)
        reconciled = await self._aggregator.reconcile(item.budget_id, user_id, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_item_deleted(
                user_id=user_id,
                item_id=item_id,
                budget_id=item.budget_id,
                correlation_id=correlation_id,
            )
        return await self._result(reconciled, item)

    async def create_items_batch(
        self,
        user_id: UUID,
        budget_id: UUID,
        payloads: list[dict[str, Any]],
    ) -> BatchResult:
        """
        Add several items with partial success.

        1. Every payload is validated; invalid ones are recorded as failures
        2. The valid items' combined cost is checked against the total limit;
           an inactive budget or a breach rejects the whole batch
        3. Items are created one by one; a category or limit rejection
           is recorded and never undoes items already created
        4. One re-aggregation at the end

        An empty batch is a validation error.
        """
        correlation_id = create_correlation_id()
        await self._parse(user_id, _require_batch, payloads)
        budget = await self._require_budget(user_id, budget_id)

        failures: list[BatchItemFailure] = []
        drafts: list[tuple[int, ItemDraft]] = []
        for index, payload in enumerate(payloads):
            try:
                drafts.append((index, parse_item_draft(payload)))
            except ValidationError as e:
                name = payload.get("name") if isinstance(payload, dict) else None
                failures.append(BatchItemFailure(
                    index=index,
                    name=str(name) if name is not None else None,
                    error=str(e),
                    issues=e.issues,
                ))

        aggregate = await self._enforcer.check(
            budget, WriteCandidate.for_batch([draft for _, draft in drafts])
        )
        if not aggregate.accepted:
            await self._reject(user_id, budget_id, aggregate, correlation_id)

        created: list[Item] = []
        for index, draft in drafts:
            try:
                await self._categories.require_category(draft.category_id, user_id)
                decision = await self._enforcer.check(budget, WriteCandidate.for_create(draft))
                raise_for_decision(decision)
                created.append(
                    await self._ledger.save_item(draft.to_item(user_id, budget_id))
                )
            except (NotFoundError, LimitExceededError, StorageError) as e:
                failures.append(BatchItemFailure(index=index, name=draft.name, error=str(e)))

        failures.sort(key=lambda f: f.index)
        reconciled = await self._aggregator.reconcile(budget_id, user_id, correlation_id)

        logger.info(
            "batch_items_created",
            budget_id=str(budget_id),
            created=len(created),
            failed=len(failures),
        )
        if self._audit_logger:
            await self._audit_logger.log_batch_created(
                user_id=user_id,
                budget_id=budget_id,
                created=len(created),
                failed=len(failures),
                correlation_id=correlation_id,
            )

        alerts, tips = await self._insights.response_extras(reconciled)
        return BatchResult(
            created=created,
            failures=failures,
            budget_status=reconciled.status() if reconciled else None,
            alerts=alerts,
            tips=tips,
        )

    # ===== READS =====

    async def get_item(self, user_id: UUID, item_id: UUID) -> Item:
        return await self._require_item(user_id, item_id)

    async def list_items(
        self,
        user_id: UUID,
        budget_id: Optional[UUID] = None,
        category_id: Optional[UUID] = None,
        is_essential: Optional[bool] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> ItemListing:
        """A page of items, with stats over everything the filter matches."""
        item_filter = ItemFilter(
            user_id=user_id,
            budget_id=budget_id,
            category_id=category_id,
            is_essential=is_essential,
            date_from=date_from,
            date_to=date_to,
        )
        matching = await self._ledger.find_items(item_filter)

        stats = ItemStats(total_items=len(matching))
        for item in matching:
            stats.total_spent += item.total_price
            if item.is_essential:
                stats.essential_spent += item.total_price
            else:
                stats.non_essential_spent += item.total_price

        return ItemListing(
            items=matching[offset:offset + limit],
            total=len(matching),
            limit=limit,
            offset=offset,
            stats=stats,
        )


class ExportFlow:
    """CSV and PDF exports, each one audited."""

    def __init__(
        self,
        ledger: LedgerStorageInterface,
        catalog: CategoryCatalogInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._exporter = CsvExporter(ledger, catalog)
        self._pdf_exporter = PdfExporter(ledger, catalog)
        self._audit_logger = audit_logger

    async def _audited(
        self,
        user_id: UUID,
        export_type: str,
        export: Union[CsvExport, PdfExport],
        budget_id: Optional[UUID] = None,
    ) -> Union[CsvExport, PdfExport]:
        if self._audit_logger:
            await self._audit_logger.log_data_exported(
                user_id=user_id,
                export_type=export_type,
                row_count=export.row_count,
                budget_id=budget_id,
            )
        return export

    async def export_budget_summary(self, user_id: UUID, budget_id: UUID) -> CsvExport:
        export = await self._exporter.export_budget_summary(user_id, budget_id)
        return await self._audited(user_id, "budget_summary", export, budget_id)

    async def export_items(
        self,
        user_id: UUID,
        budget_id: UUID,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        category_id: Optional[UUID] = None,
    ) -> CsvExport:
        export = await self._exporter.export_items(
            user_id, budget_id, date_from, date_to, category_id
        )
        return await self._audited(user_id, "items", export, budget_id)

    async def export_category_breakdown(self, user_id: UUID, budget_id: UUID) -> CsvExport:
        export = await self._exporter.export_category_breakdown(user_id, budget_id)
        return await self._audited(user_id, "category_breakdown", export, budget_id)

    async def export_comprehensive_report(
        self,
        user_id: UUID,
        start_from: Optional[datetime] = None,
        start_to: Optional[datetime] = None,
    ) -> CsvExport:
        export = await self._exporter.export_comprehensive_report(
            user_id, start_from, start_to
        )
        return await self._audited(user_id, "comprehensive_report", export)

    async def export_budget_pdf(self, user_id: UUID, budget_id: UUID) -> PdfExport:
        export = await self._pdf_exporter.export_budget(user_id, budget_id)
        return await self._audited(user_id, "budget_pdf", export, budget_id)



class AppComponents(NamedTuple):
    budget_flow: BudgetFlow
    item_flow: ItemFlow
    insight_flow: InsightFlow
    export_flow: ExportFlow
    audit_logger: AuditLogger
    sheets_client: Optional[GoogleSheetsClient]


async def create_app_components(use_storage: bool = True) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on in-memory storage.

    System categories are seeded on the chosen catalog.
    """
    sheets_client = None
    storage_error: Optional[str] = None
    ledger: LedgerStorageInterface
    catalog: CategoryCatalogInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            ledger = GoogleSheetsLedgerStorage(sheets_client)
            catalog = GoogleSheetsCategoryCatalog(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            storage_error = str(e)
            sheets_client = None
            use_storage = False

    if not use_storage:
        ledger = InMemoryLedgerStorage()
        catalog = InMemoryCategoryCatalog()
        audit_logger = AuditLogger()  # Local-only logging
        if storage_error:
            await audit_logger.log_error("storage_not_configured", storage_error)

    await seed_default_categories(catalog)

    insight_flow = InsightFlow(ledger, catalog, audit_logger)
    return AppComponents(
        budget_flow=BudgetFlow(ledger, catalog, insight_flow, audit_logger),
        item_flow=ItemFlow(ledger, catalog, insight_flow, audit_logger),
        insight_flow=insight_flow,
        export_flow=ExportFlow(ledger, catalog, audit_logger),
        audit_logger=audit_logger,
        sheets_client=sheets_client,
    )
