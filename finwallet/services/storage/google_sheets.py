"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets can back the engine as a document store:
1. Each collection is one worksheet, each document one row
2. Nested payloads (alert data) are JSON-serialized into a single cell
3. The owner of a shared wallet can inspect the data directly in Sheets

TRADEOFFS:
- No conditional writes, so alert deduplication on this backend is the
  best-effort check-then-insert sequence
- No server-side queries (we filter in Python)
- Reads fetch the whole worksheet (fine for personal/family use)

Retries live here, in the store client, and never in the engine.
"""

import json
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from pydantic import BaseModel
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finwallet.config import get_settings
from finwallet.models.alert import Alert
from finwallet.models.audit import AuditEvent
from finwallet.models.ledger import (
    Budget,
    Goal,
    ShareStatus,
    Transaction,
    TransactionType,
    Wallet,
    WalletShare,
    ensure_utc,
)
from finwallet.services.storage.interface import (
    AlertStorageInterface,
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    GoalStorageInterface,
    NotFoundError,
    ShareStorageInterface,
    StorageError,
    TransactionStorageInterface,
    WalletStorageInterface,
)


ModelT = TypeVar("ModelT", bound=BaseModel)


# Column mappings, one list per worksheet.
# A column ending in "_json" holds the JSON form of the field without the suffix.
TRANSACTION_COLUMNS = [
    "id", "amount", "type", "category", "date", "description", "wallet_id", "user_id",
]
GOAL_COLUMNS = [
    "id", "name", "target_amount", "priority", "deadline", "wallet_id", "user_id",
    "completed", "completed_at",
]
BUDGET_COLUMNS = ["id", "category", "limit", "wallet_id", "user_id"]
ALERT_COLUMNS = [
    "id", "type", "title", "message", "icon", "created_at", "read", "wallet_id",
    "user_id", "data_json", "fingerprint",
]
WALLET_COLUMNS = ["id", "name", "owner_user_id", "created_at"]
SHARE_COLUMNS = [
    "id", "wallet_id", "owner_user_id", "owner_name", "grantee_email", "status",
    "created_at", "responded_at",
]
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "wallet_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Cells are strings; these columns need an explicit conversion on read.
_CELL_CONVERTERS: dict[str, Callable[[str], Any]] = {
    "priority": int,
}

# NotFoundError is final; anything else is retried
_write_retry = retry(
    retry=retry_if_not_exception_type(NotFoundError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def model_to_row(record: BaseModel, columns: list[str]) -> list[str]:
    """Convert a model to a spreadsheet row following `columns`."""
    dumped = record.model_dump(mode="json")
    row = []
    for column in columns:
        if column.endswith("_json"):
            row.append(json.dumps(dumped.get(column[:-5]) or {}, sort_keys=True))
            continue
        value = dumped.get(column)
        if value is None:
            row.append("")
        elif isinstance(value, bool):
            row.append("true" if value else "false")
        else:
            row.append(str(value))
    return row


def row_to_model(model_cls: type[ModelT], row: list[str], columns: list[str]) -> ModelT:
    """Convert a spreadsheet row back to a model. Empty cells become defaults."""
    values: dict[str, Any] = {}
    for index, column in enumerate(columns):
        cell = row[index] if index < len(row) else ""
        if column.endswith("_json"):
            values[column[:-5]] = json.loads(cell) if cell else {}
        elif cell != "":
            converter = _CELL_CONVERTERS.get(column)
            values[column] = converter(cell) if converter else cell
    return model_cls.model_validate(values)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication, worksheet creation and retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet with `columns` as its header row."""
        if title not in self._worksheets:
            spreadsheet = self.get_spreadsheet()
            try:
                sheet = spreadsheet.worksheet(title)
            except gspread.WorksheetNotFound:
                sheet = spreadsheet.add_worksheet(
                    title=title,
                    rows=1000,
                    cols=len(columns),
                )
                sheet.append_row(columns)
            self._worksheets[title] = sheet
        return self._worksheets[title]


class _SheetCollection:
    """One worksheet holding one kind of document, keyed by the first column."""

    def __init__(
        self,
        client: GoogleSheetsClient,
        title: str,
        model_cls: type[BaseModel],
        columns: list[str],
    ):
        self._client = client
        self._title = title
        self._model_cls = model_cls
        self._columns = columns

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._title, self._columns)

    def all(self) -> list[Any]:
        """Every parseable document in the worksheet."""
        try:
            rows = self._sheet().get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {self._title}: {e}")

        records = []
        for row in rows:
            if not row or not row[0]:
                continue
            try:
                records.append(row_to_model(self._model_cls, row, self._columns))
            except Exception:
                continue  # Skip malformed rows
        return records

    def get(self, record_id: UUID) -> Optional[Any]:
        for record in self.all():
            if self._key(record) == record_id:
                return record
        return None

    @_write_retry
    def append(self, record: BaseModel) -> None:
        try:
            self._sheet().append_row(
                model_to_row(record, self._columns),
                value_input_option="RAW",
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write {self._title}: {e}")

    @_write_retry
    def replace(self, record: BaseModel) -> None:
        """Overwrite the row holding `record`'s id."""
        try:
            sheet = self._sheet()
            all_rows = sheet.get_all_values()
            record_id = str(self._key(record))
            # Row 1 is the header
            for index, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == record_id:
                    sheet.update(
                        range_name=f"A{index}",
                        values=[model_to_row(record, self._columns)],
                        value_input_option="RAW",
                    )
                    return
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {self._title}: {e}")
        raise NotFoundError(f"{self._title} row not found: {record_id}")

    def upsert(self, record: BaseModel) -> None:
        try:
            self.replace(record)
        except NotFoundError:
            self.append(record)

    @_write_retry
    def delete(self, record_id: UUID) -> bool:
        try:
            sheet = self._sheet()
            for index, row in enumerate(sheet.get_all_values()[1:], start=2):
                if row and row[0] == str(record_id):
                    sheet.delete_rows(index)
                    return True
            return False
        except Exception as e:
            raise StorageError(f"Failed to delete from {self._title}: {e}")

    @staticmethod
    def _key(record: Any) -> UUID:
        return record.event_id if isinstance(record, AuditEvent) else record.id


class GoogleSheetsStore(
    TransactionStorageInterface,
    GoalStorageInterface,
    BudgetStorageInterface,
    AlertStorageInterface,
    WalletStorageInterface,
    ShareStorageInterface,
):
    """
    Google Sheets implementation of every ledger collection.

    Filtering and sorting happen in Python after reading the worksheet.
    """

    supports_conditional_insert = False

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        names = get_settings().google_sheets
        self._transactions = _SheetCollection(
            self._client, names.transactions_sheet_name, Transaction, TRANSACTION_COLUMNS
        )
        self._goals = _SheetCollection(
            self._client, names.goals_sheet_name, Goal, GOAL_COLUMNS
        )
        self._budgets = _SheetCollection(
            self._client, names.budgets_sheet_name, Budget, BUDGET_COLUMNS
        )
        self._alerts = _SheetCollection(
            self._client, names.alerts_sheet_name, Alert, ALERT_COLUMNS
        )
        self._wallets = _SheetCollection(
            self._client, names.wallets_sheet_name, Wallet, WALLET_COLUMNS
        )
        self._shares = _SheetCollection(
            self._client, names.shares_sheet_name, WalletShare, SHARE_COLUMNS
        )

    # transactions

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        self._transactions.upsert(transaction)
        return transaction

    async def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        return self._transactions.get(transaction_id)

    async def delete_transaction(self, transaction_id: UUID) -> bool:
        return self._transactions.delete(transaction_id)

    async def list_transactions(
        self,
        wallet_id: UUID,
        user_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> list[Transaction]:
        date_from = ensure_utc(date_from) if date_from else None
        date_to = ensure_utc(date_to) if date_to else None

        transactions = [
            txn for txn in self._transactions.all()
            if txn.wallet_id == wallet_id
            and (not user_id or txn.user_id == user_id)
            and (not date_from or txn.date >= date_from)
            and (not date_to or txn.date <= date_to)
            and (not transaction_type or txn.type == transaction_type)
            and (not category or txn.category == category)
        ]
        transactions.sort(key=lambda t: t.date, reverse=True)
        return transactions

    # goals

    async def save_goal(self, goal: Goal) -> Goal:
        self._goals.upsert(goal)
        return goal

    async def get_goal(self, goal_id: UUID) -> Optional[Goal]:
        return self._goals.get(goal_id)

    async def update_goal(self, goal: Goal) -> Goal:
        self._goals.replace(goal)
        return goal

    async def delete_goal(self, goal_id: UUID) -> bool:
        return self._goals.delete(goal_id)

    async def list_goals(
        self,
        wallet_id: UUID,
        completed: Optional[bool] = None,
    ) -> list[Goal]:
        return [
            goal for goal in self._goals.all()
            if goal.wallet_id == wallet_id
            and (completed is None or goal.completed == completed)
        ]

    # budgets

    async def save_budget(self, budget: Budget) -> Budget:
        self._budgets.upsert(budget)
        return budget

    async def delete_budget(self, budget_id: UUID) -> bool:
        return self._budgets.delete(budget_id)

    async def list_budgets(self, wallet_id: UUID) -> list[Budget]:
        return [b for b in self._budgets.all() if b.wallet_id == wallet_id]

    # alerts

    async def insert_alert(self, alert: Alert) -> Alert:
        self._alerts.append(alert)
        return alert

    async def get_alert(self, alert_id: UUID) -> Optional[Alert]:
        return self._alerts.get(alert_id)

    async def list_alerts(
        self,
        wallet_id: Optional[UUID] = None,
        user_id: Optional[str] = None,
        since: Optional[datetime] = None,
        read: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> list[Alert]:
        since = ensure_utc(since) if since else None
        alerts = [
            alert for alert in self._alerts.all()
            if (not wallet_id or alert.wallet_id == wallet_id)
            and (not user_id or alert.user_id == user_id)
            and (not since or alert.created_at >= since)
            and (read is None or alert.read == read)
        ]
        alerts.sort(key=lambda a: a.created_at, reverse=True)
        return alerts[:limit] if limit else alerts

    async def mark_read(self, alert_id: UUID) -> bool:
        alert = self._alerts.get(alert_id)
        if alert is None:
            return False
        alert.read = True
        self._alerts.replace(alert)
        return True

    # wallets

    async def save_wallet(self, wallet: Wallet) -> Wallet:
        self._wallets.upsert(wallet)
        return wallet

    async def get_wallet(self, wallet_id: UUID) -> Optional[Wallet]:
        return self._wallets.get(wallet_id)

    async def update_wallet(self, wallet: Wallet) -> Wallet:
        self._wallets.replace(wallet)
        return wallet

    async def delete_wallet(self, wallet_id: UUID) -> bool:
        return self._wallets.delete(wallet_id)

    async def list_wallets(self, owner_user_id: str) -> list[Wallet]:
        wallets = [w for w in self._wallets.all() if w.owner_user_id == owner_user_id]
        wallets.sort(key=lambda w: w.created_at)
        return wallets

    # wallet shares

    async def save_share(self, share: WalletShare) -> WalletShare:
        self._shares.upsert(share)
        return share

    async def get_share(self, share_id: UUID) -> Optional[WalletShare]:
        return self._shares.get(share_id)

    async def update_share(self, share: WalletShare) -> WalletShare:
        self._shares.replace(share)
        return share

    async def delete_share(self, share_id: UUID) -> bool:
        return self._shares.delete(share_id)

    async def list_shares(
        self,
        wallet_id: Optional[UUID] = None,
        grantee_email: Optional[str] = None,
        owner_user_id: Optional[str] = None,
        status: Optional[ShareStatus] = None,
    ) -> list[WalletShare]:
        email = grantee_email.lower() if grantee_email else None
        shares = [
            share for share in self._shares.all()
            if (not wallet_id or share.wallet_id == wallet_id)
            and (not email or share.grantee_email == email)
            and (not owner_user_id or share.owner_user_id == owner_user_id)
            and (not status or share.status == status)
        ]
        shares.sort(key=lambda s: s.created_at)
        return shares


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._events = _SheetCollection(
            self._client,
            get_settings().google_sheets.audit_sheet_name,
            AuditEvent,
            AUDIT_COLUMNS,
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Failures are reported, never raised."""
        try:
            self._events.append(event)
            return True
        except StorageError:
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events.all() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events.all()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = self._events.all()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
