"""
Main Orchestrator for the wallet engine

This module ties together all the components and defines the
end-to-end flows for:
1. Refresh (fetch snapshot → aggregate → allocate → monitor → alerts)
2. Ledger writes (validate → persist → ingestion rules → refresh)
3. Goal lifecycle (create → fund through the balance → complete)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Allocation and budget state are pure recomputations from a snapshot
- A failed refresh never replaces the last good snapshot
- Alert failures never escape as exceptions
- Every write is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Any, NamedTuple, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel, Field

from finwallet.alerts.dispatcher import (
    DispatchOutcome,
    DispatchResult,
    NotificationDispatcher,
    ToastSink,
)
from finwallet.alerts.triggers import (
    budget_alerts,
    goal_alerts,
    monthly_summary_alert,
    saving_tip_alert,
    transaction_alerts,
)
from finwallet.audit import AuditLogger, create_correlation_id
from finwallet.budgets.monitor import BudgetReport, BudgetThresholds, evaluate_budgets
from finwallet.config import EngineSettings, get_settings
from finwallet.goals.allocation import AllocationResult, allocate
from finwallet.insights.trends import CategoryTrend, analyze_category_trends
from finwallet.ledger.aggregator import (
    LedgerSummary,
    aggregate,
    in_window,
    month_window,
    previous_month_window,
)
from finwallet.models.audit import AuditEventType
from finwallet.models.ledger import (
    GOALS_CATEGORY,
    Budget,
    Goal,
    GoalPriority,
    Transaction,
    TransactionType,
)
from finwallet.services.storage import (
    AlertStorageInterface,
    AuditStorageInterface,
    BudgetStorageInterface,
    GoalStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsStore,
    InMemoryStore,
    ShareStorageInterface,
    StorageError,
    TransactionStorageInterface,
    WalletStorageInterface,
)
from finwallet.session import Session
from finwallet.validation import InputValidator, ValidationError, ensure_valid
from finwallet.wallets import WalletService, WalletSharingService


logger = structlog.get_logger(__name__)


class WalletSnapshot(BaseModel):
    """Everything computed from one consistent read of a wallet."""

    wallet_id: UUID
    taken_at: datetime
    transactions: list[Transaction] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)
    completed_goals: list[Goal] = Field(default_factory=list)
    budgets: list[Budget] = Field(default_factory=list)

    ledger: LedgerSummary
    current_month: LedgerSummary
    previous_month: LedgerSummary

    # None / empty when the engine rejected its input
    allocation: Optional[AllocationResult] = None
    budget_reports: list[BudgetReport] = Field(default_factory=list)
    errors: list[str] = Field(
        default_factory=list,
        description="Validation failures that degraded part of the snapshot"
    )

    @property
    def balance(self) -> Decimal:
        return self.ledger.balance


class WalletAccessError(ValueError):
    """The selected wallet is neither owned by nor shared with the user."""
    pass


class WalletEngine:
    """
    Per-session engine over the selected wallet.

    Keeps the last good snapshot of every wallet it refreshed. Two refreshes
    in flight resolve in completion order: the last one to finish wins.

    Every operation first checks that the session's user owns the selected
    wallet or holds an accepted share of it. Writes to a wallet that fails
    the check are no-ops; reads raise WalletAccessError.
    """

    def __init__(
        self,
        transactions: TransactionStorageInterface,
        goals: GoalStorageInterface,
        budgets: BudgetStorageInterface,
        dispatcher: NotificationDispatcher,
        access: WalletSharingService,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self._transactions = transactions
        self._goals = goals
        self._budgets = budgets
        self._dispatcher = dispatcher
        self._access = access
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or EngineSettings()
        self._snapshots: dict[UUID, WalletSnapshot] = {}

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    def snapshot(self, wallet_id: UUID) -> Optional[WalletSnapshot]:
        """The last successfully refreshed snapshot of a wallet."""
        return self._snapshots.get(wallet_id)

    @staticmethod
    def _wallet_of(session: Session) -> UUID:
        if session.wallet_id is None:
            raise ValueError("No wallet selected")
        return session.wallet_id

    async def _accessible_wallet(self, session: Session) -> Optional[UUID]:
        """The selected wallet, or None when the user may not touch it."""
        wallet_id = self._wallet_of(session)
        if await self._access.can_access(session, wallet_id):
            return wallet_id
        logger.warning("wallet_access_denied", wallet_id=str(wallet_id), user_id=session.user_id)
        await self._audit.log_entity_not_found("wallet", wallet_id, session.user_id)
        return None

    async def _readable_wallet(self, session: Session) -> UUID:
        wallet_id = await self._accessible_wallet(session)
        if wallet_id is None:
            raise WalletAccessError(f"No access to wallet {session.wallet_id}")
        return wallet_id

    # -------------------------------------------------------------------------
    # refresh
    # -------------------------------------------------------------------------

    async def load_snapshot(self, session: Session) -> WalletSnapshot:
        """
        Fetch the wallet and compute its derived state. Changes nothing.

        Raises:
            WalletAccessError: If the user may not read the selected wallet
            StorageError: If any fetch fails
        """
        wallet_id = await self._readable_wallet(session)
        now = session.now()

        transactions, goals, completed_goals, budgets = await asyncio.gather(
            self._transactions.list_transactions(wallet_id),
            self._goals.list_goals(wallet_id, completed=False),
            self._goals.list_goals(wallet_id, completed=True),
            self._budgets.list_budgets(wallet_id),
        )

        ledger = aggregate(transactions)
        current_month = aggregate(in_window(transactions, *month_window(now)))
        previous_month = aggregate(in_window(transactions, *previous_month_window(now)))
        errors = []

        try:
            allocation = allocate(ledger.balance, goals)
        except ValidationError as e:
            logger.warning("allocation_rejected", wallet_id=str(wallet_id), error=str(e))
            allocation = None
            errors.append(str(e))

        try:
            reports = evaluate_budgets(
                budgets,
                current_month.per_category_spend,
                BudgetThresholds.from_settings(self._settings),
            )
        except ValidationError as e:
            logger.warning("budget_evaluation_rejected", wallet_id=str(wallet_id), error=str(e))
            reports = []
            errors.append(str(e))

        return WalletSnapshot(
            wallet_id=wallet_id,
            taken_at=now,
            transactions=transactions,
            goals=goals,
            completed_goals=completed_goals,
            budgets=budgets,
            ledger=ledger,
            current_month=current_month,
            previous_month=previous_month,
            allocation=allocation,
            budget_reports=reports,
            errors=errors,
        )

    async def refresh(
        self,
        session: Session,
        emit_alerts: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> WalletSnapshot:
        """
        Reload the selected wallet and replace its snapshot.

        Goal alerts compare the new allocation with the previous snapshot's;
        the first refresh of a wallet is the baseline.

        Raises:
            WalletAccessError: If the user may not read the selected wallet
            StorageError: If the store fails. The previous snapshot is kept.
        """
        wallet_id = self._wallet_of(session)

        try:
            snapshot = await self.load_snapshot(session)
        except StorageError as e:
            logger.error("refresh_failed", wallet_id=str(wallet_id), error=str(e))
            await self._audit.log_refresh_failed(wallet_id, session.user_id, str(e))
            raise

        previous = self._snapshots.get(wallet_id)
        self._snapshots[wallet_id] = snapshot

        if emit_alerts:
            await self._emit_snapshot_alerts(session, previous, snapshot, correlation_id)

        return snapshot

    async def _emit_snapshot_alerts(
        self,
        session: Session,
        previous: Optional[WalletSnapshot],
        snapshot: WalletSnapshot,
        correlation_id: Optional[UUID],
    ) -> list[DispatchResult]:
        candidates = []

        if snapshot.allocation is not None:
            candidates.extend(goal_alerts(
                previous.allocation if previous else None,
                snapshot.allocation,
                self._settings.milestones_list,
                wallet_id=snapshot.wallet_id,
            ))

        candidates.extend(budget_alerts(snapshot.budget_reports, snapshot.taken_at))

        summary = monthly_summary_alert(
            snapshot.current_month,
            snapshot.previous_month,
            snapshot.taken_at,
            wallet_id=snapshot.wallet_id,
        )
        if summary is not None:
            candidates.append(summary)

        return await self._dispatcher.create_many(session, candidates, correlation_id)

    # -------------------------------------------------------------------------
    # transactions
    # -------------------------------------------------------------------------

    async def _validated(self, entity_type: str, session: Session, issues: list) -> None:
        try:
            ensure_valid(issues)
        except ValidationError as e:
            await self._audit.log_validation_failed(
                entity_type,
                [issue.model_dump() for issue in e.issues],
                session.user_id,
            )
            raise

    async def _ingest(
        self,
        session: Session,
        transaction: Transaction,
        event_type: AuditEventType,
    ) -> None:
        """Persist, audit, run the ingestion rules, refresh."""
        correlation_id = create_correlation_id()
        await self._transactions.save_transaction(transaction)
        await self._audit.log_ledger_changed(
            event_type,
            "transaction",
            transaction.id,
            session.user_id,
            transaction.wallet_id,
            details={
                "amount": str(transaction.amount),
                "type": transaction.type.value,
                "category": transaction.category,
            },
            correlation_id=correlation_id,
        )

        start, end = month_window(session.now())
        month_transactions = await self._transactions.list_transactions(
            transaction.wallet_id, date_from=start, date_to=end
        )
        await self._dispatcher.create_many(
            session,
            transaction_alerts(transaction, month_transactions, self._settings),
            correlation_id,
        )

        await self.refresh(session, correlation_id=correlation_id)

    async def record_transaction(
        self,
        session: Session,
        amount: Any,
        transaction_type: Any,
        category: str,
        description: str = "",
        date: Optional[datetime] = None,
    ) -> Optional[Transaction]:
        """
        Store a transaction, run the ingestion rules and refresh.

        Returns:
            The stored transaction, or None if the user may not write to the
            selected wallet

        Raises:
            ValidationError: If the input is invalid (nothing is written)
            StorageError: If the store fails
        """
        await self._validated(
            "transaction",
            session,
            InputValidator.validate_transaction(amount, transaction_type, category, description),
        )
        wallet_id = await self._accessible_wallet(session)
        if wallet_id is None:
            return None

        transaction = Transaction(
            amount=Decimal(str(amount)),
            type=TransactionType(transaction_type),
            category=category,
            date=date or session.now(),
            description=description,
            wallet_id=wallet_id,
            user_id=session.user_id,
        )
        await self._ingest(session, transaction, AuditEventType.TRANSACTION_RECORDED)
        return transaction

    async def update_transaction(
        self,
        session: Session,
        transaction_id: UUID,
        amount: Any,
        transaction_type: Any,
        category: str,
        description: str = "",
        date: Optional[datetime] = None,
    ) -> Optional[Transaction]:
        """
        Replace the fields of a transaction of the selected wallet.

        The id and the recording user are kept; `date` defaults to the
        existing one. The ingestion rules run again on the new values.

        Returns:
            The updated transaction, or None if the id is unknown, belongs to
            another wallet, or the wallet is not accessible

        Raises:
            ValidationError: If the input is invalid (nothing is written)
        """
        await self._validated(
            "transaction",
            session,
            InputValidator.validate_transaction(amount, transaction_type, category, description),
        )
        wallet_id = await self._accessible_wallet(session)
        if wallet_id is None:
            return None

        existing = await self._transactions.get_transaction(transaction_id)
        if existing is None or existing.wallet_id != wallet_id:
            logger.warning("transaction_not_found", transaction_id=str(transaction_id))
            await self._audit.log_entity_not_found("transaction", transaction_id, session.user_id)
            return None

        updated = Transaction(
            id=existing.id,
            amount=Decimal(str(amount)),
            type=TransactionType(transaction_type),
            category=category,
            date=date or existing.date,
            description=description,
            wallet_id=wallet_id,
            user_id=existing.user_id,
        )
        await self._ingest(session, updated, AuditEventType.TRANSACTION_UPDATED)
        return updated

    async def delete_transaction(self, session: Session, transaction_id: UUID) -> bool:
        """Delete a transaction of the selected wallet; unknown ids are a no-op."""
        wallet_id = await self._accessible_wallet(session)
        if wallet_id is None:
            return False

        transaction = await self._transactions.get_transaction(transaction_id)
        if transaction is None or transaction.wallet_id != wallet_id:
            logger.warning("transaction_not_found", transaction_id=str(transaction_id))
            await self._audit.log_entity_not_found("transaction", transaction_id, session.user_id)
            return False

        await self._transactions.delete_transaction(transaction_id)
        await self._audit.log_ledger_changed(
            AuditEventType.TRANSACTION_DELETED,
            "transaction",
            transaction_id,
            session.user_id,
            wallet_id,
        )
        await self.refresh(session)
        return True

    # -------------------------------------------------------------------------
    # goals
    # -------------------------------------------------------------------------

    async def add_goal(
        self,
        session: Session,
        name: str,
        target_amount: Any,
        priority: Any = GoalPriority.MEDIUM,
        deadline: Optional[datetime] = None,
    ) -> Optional[Goal]:
        """
        Returns:
            The stored goal, or None if the user may not write to the
            selected wallet

        Raises:
            ValidationError: If name, target or priority is invalid
        """
        await self._validated(
            "goal",
            session,
            InputValidator.validate_goal(name, target_amount, priority),
        )
        wallet_id = await self._accessible_wallet(session)
        if wallet_id is None:
            return None

        goal = Goal(
            name=name,
            target_amount=Decimal(str(target_amount)),
            priority=GoalPriority(int(priority)),
            deadline=deadline,
            wallet_id=wallet_id,
            user_id=session.user_id,
        )
        await self._goals.save_goal(goal)
        await self._audit.log_ledger_changed(
            AuditEventType.GOAL_CREATED,
            "goal",
            goal.id,
            session.user_id,
            wallet_id,
            details={"target_amount": str(goal.target_amount), "priority": int(goal.priority)},
        )
        await self.refresh(session)
        return goal

    async def complete_goal(
        self,
        session: Session,
        goal_id: UUID,
        create_transaction: bool = False,
    ) -> Optional[Goal]:
        """
        Mark an active goal completed. Happens at most once per goal.

        With `create_transaction`, an income of `target_amount` in the
        "goals" category is recorded as well.

        Returns:
            The completed goal, or None if no active goal has this id or the
            selected wallet is not accessible
        """
        wallet_id = await self._accessible_wallet(session)
        if wallet_id is None:
            return None
        goal = await self._goals.get_goal(goal_id)
        if goal is None or goal.wallet_id != wallet_id:
            logger.warning("goal_not_found", goal_id=str(goal_id))
            await self._audit.log_entity_not_found("goal", goal_id, session.user_id)
            return None
        if goal.completed:
            logger.warning("goal_already_completed", goal_id=str(goal_id))
            return None

        completed = goal.model_copy(update={"completed": True, "completed_at": session.now()})
        await self._goals.update_goal(completed)
        await self._audit.log_ledger_changed(
            AuditEventType.GOAL_COMPLETED,
            "goal",
            goal_id,
            session.user_id,
            wallet_id,
            details={"create_transaction": create_transaction},
        )

        if create_transaction:
            await self.record_transaction(
                session,
                completed.target_amount,
                TransactionType.INCOME,
                GOALS_CATEGORY,
                description=f"Goal achieved: {completed.name}",
            )
        else:
            await self.refresh(session)
        return completed

    # -------------------------------------------------------------------------
    # budgets
    # -------------------------------------------------------------------------

    async def set_budget(
        self,
        session: Session,
        category: str,
        limit: Any,
        budget_id: Optional[UUID] = None,
    ) -> Optional[Budget]:
        """
        Create a budget, or replace the limit of budget `budget_id`.

        Returns:
            The stored budget, or None if `budget_id` is unknown or the
            selected wallet is not accessible
        """
        await self._validated("budget", session, InputValidator.validate_budget(category, limit))
        wallet_id = await self._accessible_wallet(session)
        if wallet_id is None:
            return None

        if budget_id is not None:
            known = {b.id for b in await self._budgets.list_budgets(wallet_id)}
            if budget_id not in known:
                logger.warning("budget_not_found", budget_id=str(budget_id))
                await self._audit.log_entity_not_found("budget", budget_id, session.user_id)
                return None

        fields = {"id": budget_id} if budget_id else {}
        budget = Budget(
            category=category,
            limit=Decimal(str(limit)),
            wallet_id=wallet_id,
            user_id=session.user_id,
            **fields,
        )
        await self._budgets.save_budget(budget)
        await self._audit.log_ledger_changed(
            AuditEventType.BUDGET_SET,
            "budget",
            budget.id,
            session.user_id,
            wallet_id,
            details={"category": category, "limit": str(budget.limit)},
        )
        await self.refresh(session)
        return budget

    # -------------------------------------------------------------------------
    # tips & insights
    # -------------------------------------------------------------------------

    async def send_daily_tip(self, session: Session) -> DispatchResult:
        """The tip of the day; repeated calls on the same day are suppressed."""
        candidate = saving_tip_alert(session.now(), session.wallet_id)
        if session.wallet_id is not None and await self._accessible_wallet(session) is None:
            return DispatchResult(
                outcome=DispatchOutcome.FAILED,
                alert_type=candidate.type,
                error="Wallet not accessible",
            )
        return await self._dispatcher.create(
            session, candidate.type, candidate.data, wallet_id=candidate.wallet_id
        )

    async def category_trends(self, session: Session) -> list[CategoryTrend]:
        """Month-over-month spend per category of the selected wallet."""
        wallet_id = await self._readable_wallet(session)
        snapshot = self._snapshots.get(wallet_id) or await self.load_snapshot(session)
        return analyze_category_trends(
            snapshot.transactions,
            snapshot.budgets,
            session.now(),
            threshold=self._settings.category_trend_threshold,
        )


class AppComponents(NamedTuple):
    engine: WalletEngine
    wallets: WalletService
    sharing: WalletSharingService
    dispatcher: NotificationDispatcher
    sheets_client: Optional[GoogleSheetsClient]


def create_app_components(
    backend: Optional[str] = None,
    toast_sink: Optional[ToastSink] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        backend: "memory" or "google_sheets"; defaults to the configured
                 storage backend. A Google Sheets backend that cannot be
                 configured falls back to memory.
        toast_sink: Receiver of freshly created alerts

    Returns:
        AppComponents sharing one store and one audit logger
    """
    settings = get_settings()
    backend = backend or settings.app.storage_backend
    engine_settings = settings.engine

    sheets_client = None
    store: Any = None
    audit_storage: Optional[AuditStorageInterface] = None

    if backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            store = GoogleSheetsStore(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", backend=backend, error=str(e))
            sheets_client = None
            store = None

    if store is None:
        store = InMemoryStore()
        audit_storage = store

    audit_logger = AuditLogger(audit_storage)

    alerts: AlertStorageInterface = store
    dispatcher = NotificationDispatcher(
        alerts,
        audit_logger=audit_logger,
        toast_sink=toast_sink,
        settings=engine_settings,
    )
    wallets: WalletStorageInterface = store
    shares: ShareStorageInterface = store
    sharing = WalletSharingService(shares, wallets, dispatcher, audit_logger)

    engine = WalletEngine(
        transactions=store,
        goals=store,
        budgets=store,
        dispatcher=dispatcher,
        access=sharing,
        audit_logger=audit_logger,
        settings=engine_settings,
    )

    return AppComponents(
        engine=engine,
        wallets=WalletService(wallets, audit_logger, engine_settings, sharing),
        sharing=sharing,
        dispatcher=dispatcher,
        sheets_client=sheets_client,
    )
