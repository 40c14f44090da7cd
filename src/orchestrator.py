"""
Main Orchestrator for Personal Finance Core

This module ties together the calculators, the validation boundary,
the document store port and the audit log, and defines the flows for:
1. Tax (amount → parse → brackets → audit → optionally save to history)
2. Health score (stored factors → parse → aggregate → persist score)
3. Budgets and goals (stored records → thresholds → summary)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Raw input is parsed before any calculation
- Calculators never see storage; flows never compute inline
- Every figure produced is audited

The calculators stay pure; everything with a side effect lives here.
"""

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from src.audit import AuditLogger, create_correlation_id
from src.calculators import (
    CalculatorError,
    InvalidInputError,
    TieredRateCalculator,
    WeightedScoreAggregator,
    add_months,
    days_until,
    goal_progress,
    summarize_budgets,
    weekly_target,
)
from src.config import get_settings
from src.config.settings import BudgetSettings, HealthScoreSettings, TaxSettings
from src.models.health import HealthFactor, HealthScoreSnapshot
from src.models.planning import (
    BudgetCategory,
    BudgetSummary,
    GoalProgress,
    SavingsGoal,
)
from src.models.tax import LiabilityResult, TaxEntry, TaxType
from src.services.storage import (
    AuditStorageInterface,
    DocumentStoreInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryAuditStorage,
    InMemoryDocumentStore,
    StorageError,
    Unsubscribe,
)
from src.validation import RecordValidator

logger = structlog.get_logger(__name__)


def user_path(user_id: str) -> str:
    return f"users/{user_id}"


def profile_path(user_id: str) -> str:
    return f"users/{user_id}/financialData/profile"


def budgets_path(user_id: str) -> str:
    return f"budgets/{user_id}"


def goals_path(user_id: str) -> str:
    return f"goals/{user_id}"


class _StoreBackedFlow:
    """Shared storage access with audit on failure."""

    def __init__(
        self,
        store: Optional[DocumentStoreInterface],
        audit_logger: Optional[AuditLogger],
    ):
        self._store = store
        self._audit_logger = audit_logger

    def _require_store(self) -> DocumentStoreInterface:
        if self._store is None:
            raise StorageError(
                "No document store configured. Set up Google Sheets first."
            )
        return self._store

    async def _read(self, path: str, correlation_id: UUID) -> Optional[dict]:
        store = self._require_store()
        try:
            return await store.get(path)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="get", path=path, error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

    async def _write(self, path: str, data: dict, correlation_id: UUID) -> None:
        store = self._require_store()
        try:
            await store.put(path, data, merge=True)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="put", path=path, error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

    async def _append(self, path: str, field: str, item: Any, correlation_id: UUID) -> bool:
        store = self._require_store()
        try:
            return await store.append_to_list(path, field, item)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="append", path=path, error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise


class TaxFlow(_StoreBackedFlow):
    """
    Orchestrates tax calculations and the tax history.

    Flow:
    1. Parse → raw form amount to Decimal (InvalidInputError on junk)
    2. Calculate → PAYE table or flat company rate
    3. Audit → every figure, and every rejection
    4. Save (optional) → append to history with the next due date

    Both calculators are built at construction, so a broken PAYE
    table fails when the flow is created, not on first use.
    """

    def __init__(
        self,
        store: Optional[DocumentStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[RecordValidator] = None,
        settings: Optional[TaxSettings] = None,
    ):
        super().__init__(store, audit_logger)
        self._settings = settings or get_settings().tax
        self._validator = validator or RecordValidator()
        self._paye = TieredRateCalculator(self._settings.paye_brackets)
        self._company = TieredRateCalculator.flat(self._settings.company_tax_rate)

    @property
    def currency(self) -> str:
        return self._settings.currency

    def _calculator_for(self, tax_type: TaxType) -> TieredRateCalculator:
        return self._paye if tax_type == TaxType.SALARY else self._company

    async def calculate(
        self,
        tax_type: TaxType,
        raw_amount: Any,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LiabilityResult:
        """
        Calculate tax on a raw amount.

        Raises:
            InvalidInputError: If the amount is unparsable or negative
        """
        correlation_id = correlation_id or create_correlation_id()
        field = "salary" if tax_type == TaxType.SALARY else "profit"

        try:
            amount = self._validator.parse_amount(raw_amount, field=field)
            result = self._calculator_for(tax_type).compute_liability(amount)
        except CalculatorError as e:
            if self._audit_logger:
                await self._audit_logger.log_calculation_rejected(
                    calculation=f"{tax_type.value} tax",
                    error=e,
                    correlation_id=correlation_id,
                    user_id=user_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_tax_calculated(
                tax_type=tax_type.value,
                amount=str(result.amount),
                total_tax=str(result.total_tax),
                effective_rate=str(result.effective_rate),
                correlation_id=correlation_id,
                user_id=user_id,
            )

        return result

    async def calculate_paye(self, salary: Any, **kwargs) -> LiabilityResult:
        """PAYE on a monthly salary."""
        return await self.calculate(TaxType.SALARY, salary, **kwargs)

    async def calculate_company_tax(self, profit: Any, **kwargs) -> LiabilityResult:
        """Flat company tax on profit."""
        return await self.calculate(TaxType.COMPANY, profit, **kwargs)

    async def save_tax_entry(
        self,
        user_id: str,
        tax_type: TaxType,
        amount: Decimal,
        calculated_tax: Decimal,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> TaxEntry:
        """
        Append a calculation to the user's tax history.

        The next due date is one remittance interval after today.
        """
        correlation_id = correlation_id or create_correlation_id()
        today = today or date.today()

        entry = TaxEntry(
            tax_type=tax_type,
            amount=amount,
            calculated_tax=calculated_tax,
            entry_date=today,
            next_due_date=add_months(today, self._settings.remittance_interval_months),
        )

        await self._append(
            user_path(user_id),
            "tax_history",
            entry.model_dump(mode="json"),
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_tax_entry_saved(
                user_id=user_id,
                tax_type=tax_type.value,
                calculated_tax=str(calculated_tax),
                next_due_date=entry.next_due_date.isoformat(),
                correlation_id=correlation_id,
            )

        return entry

    async def calculate_and_save(
        self,
        user_id: str,
        tax_type: TaxType,
        raw_amount: Any,
        today: Optional[date] = None,
    ) -> tuple[LiabilityResult, TaxEntry]:
        """Calculate tax and record it in one correlated action."""
        correlation_id = create_correlation_id()
        result = await self.calculate(
            tax_type, raw_amount, user_id=user_id, correlation_id=correlation_id
        )
        entry = await self.save_tax_entry(
            user_id=user_id,
            tax_type=tax_type,
            amount=result.amount,
            calculated_tax=result.total_tax,
            today=today,
            correlation_id=correlation_id,
        )
        return result, entry

    async def get_tax_history(self, user_id: str) -> list[TaxEntry]:
        """Saved entries in the order they were recorded."""
        document = await self._read(user_path(user_id), create_correlation_id()) or {}

        entries = []
        for index, raw in enumerate(document.get("tax_history") or []):
            try:
                entries.append(TaxEntry.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    "tax_history_entry_skipped",
                    user_id=user_id,
                    index=index,
                    error=str(e),
                )
        return entries

    async def add_reminder(
        self,
        user_id: str,
        reminder_date: date,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Record a remittance reminder date.

        Returns:
            False if the same date was already set
        """
        correlation_id = correlation_id or create_correlation_id()
        added = await self._append(
            user_path(user_id),
            "tax_reminders",
            reminder_date.isoformat(),
            correlation_id,
        )
        if added and self._audit_logger:
            await self._audit_logger.log_reminder_set(
                user_id=user_id,
                reminder_date=reminder_date.isoformat(),
                correlation_id=correlation_id,
            )
        return added

    async def get_reminders(self, user_id: str) -> list[date]:
        document = await self._read(user_path(user_id), create_correlation_id()) or {}

        reminders = []
        for raw in document.get("tax_reminders") or []:
            try:
                reminders.append(date.fromisoformat(raw))
            except (TypeError, ValueError):
                logger.warning("tax_reminder_skipped", user_id=user_id, value=raw)
        return sorted(reminders)

    async def upcoming_reminders(
        self,
        user_id: str,
        today: Optional[date] = None,
    ) -> list[tuple[date, int]]:
        """
        Reminders falling due within the reminder window.

        Returns:
            (reminder_date, days_until_due) pairs, soonest first
        """
        today = today or date.today()
        window = self._settings.reminder_window_days

        upcoming = []
        for reminder in await self.get_reminders(user_id):
            days = days_until(reminder, today)
            if 0 < days <= window:
                upcoming.append((reminder, days))
        return upcoming


class HealthScoreFlow(_StoreBackedFlow):
    """
    Orchestrates the financial health score.

    The score is recomputed from the factors stored on the user's
    profile and written back to the profile. Malformed stored factors
    are excluded and audited; the score always renders.
    """

    def __init__(
        self,
        store: Optional[DocumentStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[RecordValidator] = None,
        settings: Optional[HealthScoreSettings] = None,
    ):
        super().__init__(store, audit_logger)
        self._settings = settings or get_settings().health
        self._validator = validator or RecordValidator()
        self._aggregator = WeightedScoreAggregator(*self._settings.thresholds)

    def snapshot_from_document(self, document: Optional[dict]) -> HealthScoreSnapshot:
        """
        Compute a snapshot from a profile document without writing anything.
        """
        document = document or {}
        factors, _ = self._validator.parse_factors(document.get("health_factors") or [])
        score = self._aggregator.aggregate(factors)

        previous = document.get("previous_score")
        return HealthScoreSnapshot(
            score=score,
            previous_score=previous if isinstance(previous, int) else None,
            level=self._aggregator.classify(score) if factors else None,
            factors=factors,
        )

    async def recompute(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> HealthScoreSnapshot:
        """
        Recompute and persist the health score.

        A missing profile yields the no-data snapshot and nothing is written.
        """
        correlation_id = correlation_id or create_correlation_id()
        path = profile_path(user_id)

        document = await self._read(path, correlation_id)
        if document is None:
            return self.snapshot_from_document(None)

        _, validation = self._validator.parse_factors(document.get("health_factors") or [])
        if validation.issues and self._audit_logger:
            await self._audit_logger.log_health_records_rejected(
                user_id=user_id,
                issues=[
                    {"index": i.record_index, "field": i.field, "message": i.message}
                    for i in validation.issues
                ],
                correlation_id=correlation_id,
            )

        snapshot = self.snapshot_from_document(document)
        await self._write(
            path,
            {
                "health_score": snapshot.score,
                "last_updated": snapshot.last_updated.isoformat(),
            },
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_health_score_updated(
                user_id=user_id,
                score=snapshot.score,
                factor_count=len(snapshot.factors),
                correlation_id=correlation_id,
            )

        return snapshot

    async def update_factor_score(
        self,
        user_id: str,
        index: int,
        new_score: Any,
        correlation_id: Optional[UUID] = None,
    ) -> HealthScoreSnapshot:
        """
        Change one factor's score, then recompute and persist.

        Raises:
            InvalidInputError: If there is no factor at index or the
                               new score is not a number in 0-100
        """
        correlation_id = correlation_id or create_correlation_id()
        path = profile_path(user_id)

        document = await self._read(path, correlation_id) or {}
        records = list(document.get("health_factors") or [])
        if not 0 <= index < len(records) or not isinstance(records[index], dict):
            raise InvalidInputError(f"No health factor at index {index}", value=index)

        score = self._validator.parse_amount(new_score, field="score")
        updated = dict(records[index], score=float(score))
        try:
            factor = HealthFactor.model_validate(updated)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid factor score: {new_score}", value=new_score) from e

        old_score = records[index].get("score")
        records[index] = updated
        document["health_factors"] = records

        snapshot = self.snapshot_from_document(document)
        await self._write(
            path,
            {
                "health_factors": records,
                "health_score": snapshot.score,
                "last_updated": snapshot.last_updated.isoformat(),
            },
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_health_factor_updated(
                user_id=user_id,
                factor=factor.factor,
                old_score=float(old_score) if isinstance(old_score, (int, float)) else 0.0,
                new_score=factor.score,
                correlation_id=correlation_id,
            )
            await self._audit_logger.log_health_score_updated(
                user_id=user_id,
                score=snapshot.score,
                factor_count=len(snapshot.factors),
                correlation_id=correlation_id,
            )

        return snapshot

    def watch(
        self,
        user_id: str,
        callback: Callable[[HealthScoreSnapshot], None],
    ) -> Unsubscribe:
        """
        Deliver a fresh snapshot after every write to the user's profile.

        Snapshots are computed only; watching never writes back, so a
        recompute cannot re-trigger itself.
        """
        store = self._require_store()
        return store.subscribe(
            profile_path(user_id),
            lambda document: callback(self.snapshot_from_document(document)),
        )


class BudgetFlow(_StoreBackedFlow):
    """
    Orchestrates budget and savings goal evaluation.

    Malformed stored records are skipped with a warning in the local
    log; they never stop the rest of the summary from rendering.
    """

    def __init__(
        self,
        store: Optional[DocumentStoreInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[RecordValidator] = None,
        settings: Optional[BudgetSettings] = None,
    ):
        super().__init__(store, audit_logger)
        self._settings = settings or get_settings().budget
        self._validator = validator or RecordValidator()

    async def add_budget(
        self,
        user_id: str,
        name: str,
        raw_amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetCategory:
        """
        Add a budget category with nothing spent yet.

        Raises:
            InvalidInputError: If the amount is unparsable or negative
        """
        correlation_id = correlation_id or create_correlation_id()
        amount = self._validator.parse_amount(raw_amount, field="budget")
        try:
            category = BudgetCategory(name=name, budget=amount, spent=Decimal("0"))
        except ValidationError as e:
            raise InvalidInputError(f"Invalid budget: {e}", value=raw_amount) from e

        await self._append(
            budgets_path(user_id),
            "categories",
            category.model_dump(mode="json"),
            correlation_id,
        )
        return category

    async def get_budgets(self, user_id: str) -> list[BudgetCategory]:
        document = await self._read(budgets_path(user_id), create_correlation_id()) or {}

        categories = []
        for index, raw in enumerate(document.get("categories") or []):
            try:
                categories.append(BudgetCategory.model_validate(raw))
            except ValidationError as e:
                logger.warning("budget_skipped", user_id=user_id, index=index, error=str(e))
        return categories

    async def evaluate_budgets(
        self,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetSummary:
        correlation_id = correlation_id or create_correlation_id()
        summary = summarize_budgets(
            await self.get_budgets(user_id),
            warning_pct=self._settings.warning_threshold_pct,
            over_pct=self._settings.over_threshold_pct,
            alert_pct=self._settings.alert_threshold_pct,
        )

        if self._audit_logger:
            await self._audit_logger.log_budgets_evaluated(
                user_id=user_id,
                category_count=len(summary.categories),
                overall_percent=summary.overall_percent,
                alerts=summary.alerts,
                correlation_id=correlation_id,
            )

        return summary

    async def add_goal(
        self,
        user_id: str,
        name: str,
        raw_target: Any,
        deadline: date,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> SavingsGoal:
        """
        Add a savings goal; the weekly target is stored alongside it.

        Raises:
            InvalidInputError: If the target is unparsable or not positive
        """
        correlation_id = correlation_id or create_correlation_id()
        today = today or date.today()
        target = self._validator.parse_amount(raw_target, field="target")
        try:
            goal = SavingsGoal(name=name, target=target, deadline=deadline)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid goal: {e}", value=raw_target) from e

        record = goal.model_dump(mode="json")
        record["weekly_target"] = weekly_target(goal.target, goal.deadline, today)
        await self._append(goals_path(user_id), "goals", record, correlation_id)
        return goal

    async def get_goals(self, user_id: str) -> list[SavingsGoal]:
        document = await self._read(goals_path(user_id), create_correlation_id()) or {}

        goals = []
        for index, raw in enumerate(document.get("goals") or []):
            try:
                goals.append(SavingsGoal.model_validate(raw))
            except ValidationError as e:
                logger.warning("goal_skipped", user_id=user_id, index=index, error=str(e))
        return goals

    async def evaluate_goals(
        self,
        user_id: str,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[GoalProgress]:
        correlation_id = correlation_id or create_correlation_id()
        today = today or date.today()
        progress = [goal_progress(goal, today) for goal in await self.get_goals(user_id)]

        if self._audit_logger:
            await self._audit_logger.log_goals_evaluated(
                user_id=user_id,
                goal_count=len(progress),
                completed_count=sum(1 for p in progress if p.is_completed),
                correlation_id=correlation_id,
            )

        return progress


def create_app_components(
    use_storage: bool = True,
) -> tuple[TaxFlow, HealthScoreFlow, BudgetFlow, DocumentStoreInterface]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False (or leave Sheets unconfigured) to run
                    against in-memory storage.

    Returns:
        (tax_flow, health_score_flow, budget_flow, document_store)
    """
    store: DocumentStoreInterface
    audit_storage: AuditStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsDocumentStore(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except ValidationError as e:
            # Sheets not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            store = InMemoryDocumentStore()
            audit_storage = InMemoryAuditStorage()
    else:
        store = InMemoryDocumentStore()
        audit_storage = InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage)
    validator = RecordValidator()

    tax_flow = TaxFlow(store=store, audit_logger=audit_logger, validator=validator)
    health_flow = HealthScoreFlow(store=store, audit_logger=audit_logger, validator=validator)
    budget_flow = BudgetFlow(store=store, audit_logger=audit_logger, validator=validator)

    return tax_flow, health_flow, budget_flow, store
