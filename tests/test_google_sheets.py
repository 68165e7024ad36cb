"""
Tests for the Google Sheets backend

The gspread worksheet is replaced by an in-process fake; no network access.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from finwallet.alerts.dedup import DeduplicationGate
from finwallet.config import get_settings
from finwallet.models.alert import Alert
from finwallet.models.audit import AuditEventBuilder, AuditEventType
from finwallet.models.ledger import Goal, GoalPriority, ShareStatus, Transaction, WalletShare
from finwallet.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsStore,
    NotFoundError,
    StorageError,
)
from finwallet.services.storage.google_sheets import (
    ALERT_COLUMNS,
    GOAL_COLUMNS,
    TRANSACTION_COLUMNS,
    model_to_row,
    row_to_model,
)


NOW = datetime(2024, 5, 14, 10, 0, tzinfo=timezone.utc)
WALLET = uuid4()


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the store."""

    def __init__(self, columns):
        self.rows = [list(columns)]
        self.fail_reads = False

    def get_all_values(self):
        if self.fail_reads:
            raise RuntimeError("quota exceeded")
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append(list(row))

    def update(self, range_name, values, value_input_option=None):
        index = int(range_name[1:]) - 1
        self.rows[index] = list(values[0])

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient; creates worksheets on demand."""

    def __init__(self):
        self.sheets = {}

    def get_worksheet(self, title, columns):
        if title not in self.sheets:
            self.sheets[title] = FakeWorksheet(columns)
        return self.sheets[title]


@pytest.fixture(autouse=True)
def sheets_env(monkeypatch, tmp_path):
    credentials = tmp_path / "credentials.json"
    credentials.write_text("{}")
    monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
    monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "spreadsheet-123")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client():
    return FakeSheetsClient()


@pytest.fixture
def sheets_store(client):
    return GoogleSheetsStore(client)


def _txn(amount, date=NOW, wallet_id=WALLET):
    return Transaction(
        amount=Decimal(amount),
        type="expense",
        category="food",
        date=date,
        wallet_id=wallet_id,
        user_id="user-1",
    )


def _alert(fingerprint="fp", created_at=NOW):
    return Alert(
        type="budget_warning",
        title="⚠️ Budget Alert!",
        message="You've used 90% of your food budget",
        icon="⚠️",
        created_at=created_at,
        wallet_id=WALLET,
        user_id="user-1",
        data={"category": "food", "percentage": 90},
        fingerprint=fingerprint,
    )


class TestRowConversion:
    """Tests for model <-> row conversion."""

    def test_transaction_row(self):
        txn = _txn("12.50")
        row = model_to_row(txn, TRANSACTION_COLUMNS)
        assert row[:4] == [str(txn.id), "12.50", "expense", "food"]
        assert row_to_model(Transaction, row, TRANSACTION_COLUMNS) == txn

    def test_alert_data_is_json(self):
        alert = _alert()
        row = model_to_row(alert, ALERT_COLUMNS)
        data_cell = row[ALERT_COLUMNS.index("data_json")]
        assert data_cell == '{"category": "food", "percentage": 90}'
        assert row[ALERT_COLUMNS.index("read")] == "false"

        restored = row_to_model(Alert, row, ALERT_COLUMNS)
        assert restored.data == {"category": "food", "percentage": 90}
        assert restored.read is False

    def test_goal_priority_and_empty_cells(self):
        goal = Goal(
            name="Trip",
            target_amount=Decimal("900"),
            priority=GoalPriority.LOW,
            wallet_id=WALLET,
        )
        row = model_to_row(goal, GOAL_COLUMNS)
        assert row[GOAL_COLUMNS.index("deadline")] == ""

        restored = row_to_model(Goal, row, GOAL_COLUMNS)
        assert restored.priority == GoalPriority.LOW
        assert restored.deadline is None
        assert restored.completed is False

    def test_short_row_uses_defaults(self):
        goal_id = uuid4()
        row = [str(goal_id), "Trip", "900", "1", "", str(WALLET)]
        restored = row_to_model(Goal, row, GOAL_COLUMNS)
        assert restored.id == goal_id
        assert restored.completed is False


class TestGoogleSheetsStore:
    """Tests for the store against a fake worksheet."""

    @pytest.mark.asyncio
    async def test_transactions_filtered_and_sorted(self, sheets_store):
        older = _txn("10", date=NOW - timedelta(days=40))
        newer = _txn("20")
        elsewhere = _txn("30", wallet_id=uuid4())
        for txn in (older, newer, elsewhere):
            await sheets_store.save_transaction(txn)

        listed = await sheets_store.list_transactions(WALLET)
        assert [t.id for t in listed] == [newer.id, older.id]

        recent = await sheets_store.list_transactions(WALLET, date_from=NOW - timedelta(days=1))
        assert [t.id for t in recent] == [newer.id]

    @pytest.mark.asyncio
    async def test_save_goal_twice_keeps_one_row(self, sheets_store, client):
        goal = Goal(name="Trip", target_amount=Decimal("900"), wallet_id=WALLET)
        await sheets_store.save_goal(goal)
        await sheets_store.save_goal(goal.model_copy(update={"name": "Big trip"}))

        sheet = client.sheets[get_settings().google_sheets.goals_sheet_name]
        assert len(sheet.rows) == 2  # header + one goal
        assert (await sheets_store.get_goal(goal.id)).name == "Big trip"

    @pytest.mark.asyncio
    async def test_update_unknown_goal(self, sheets_store):
        goal = Goal(name="Ghost", target_amount=Decimal("1"), wallet_id=WALLET)
        with pytest.raises(NotFoundError):
            await sheets_store.update_goal(goal)

    @pytest.mark.asyncio
    async def test_list_goals_by_completion(self, sheets_store):
        active = Goal(name="A", target_amount=Decimal("1"), wallet_id=WALLET)
        done = Goal(name="B", target_amount=Decimal("1"), wallet_id=WALLET, completed=True)
        await sheets_store.save_goal(active)
        await sheets_store.save_goal(done)

        assert [g.id for g in await sheets_store.list_goals(WALLET, completed=False)] == [active.id]
        assert [g.id for g in await sheets_store.list_goals(WALLET, completed=True)] == [done.id]

    @pytest.mark.asyncio
    async def test_mark_read_persists(self, sheets_store):
        alert = await sheets_store.insert_alert(_alert())
        assert await sheets_store.mark_read(alert.id)
        assert (await sheets_store.get_alert(alert.id)).read is True
        assert await sheets_store.mark_read(uuid4()) is False

    @pytest.mark.asyncio
    async def test_delete_transaction(self, sheets_store):
        txn = await sheets_store.save_transaction(_txn("10"))
        assert await sheets_store.delete_transaction(txn.id)
        assert await sheets_store.get_transaction(txn.id) is None
        assert await sheets_store.delete_transaction(txn.id) is False

    @pytest.mark.asyncio
    async def test_share_email_lookup_is_case_insensitive(self, sheets_store):
        share = WalletShare(
            wallet_id=WALLET,
            owner_user_id="owner",
            grantee_email="friend@example.com",
        )
        await sheets_store.save_share(share)
        found = await sheets_store.list_shares(
            grantee_email="Friend@Example.com", status=ShareStatus.PENDING
        )
        assert [s.id for s in found] == [share.id]

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self, sheets_store, client):
        await sheets_store.save_transaction(_txn("10"))
        sheet = client.sheets[get_settings().google_sheets.transactions_sheet_name]
        sheet.rows.append(["not-a-uuid", "abc"])

        assert len(await sheets_store.list_transactions(WALLET)) == 1

    @pytest.mark.asyncio
    async def test_read_failure_is_a_storage_error(self, sheets_store, client):
        await sheets_store.save_transaction(_txn("10"))
        sheet = client.sheets[get_settings().google_sheets.transactions_sheet_name]
        sheet.fail_reads = True

        with pytest.raises(StorageError):
            await sheets_store.list_transactions(WALLET)

    @pytest.mark.asyncio
    async def test_dedup_uses_check_then_insert(self, sheets_store):
        assert sheets_store.supports_conditional_insert is False
        gate = DeduplicationGate(sheets_store)

        assert await gate.admit(_alert(), NOW)
        later = NOW + timedelta(hours=2)
        assert not await gate.admit(_alert(created_at=later), later)
        assert len(await sheets_store.list_alerts(wallet_id=WALLET)) == 1


class TestGoogleSheetsAuditStorage:
    """Tests for the audit worksheet."""

    @pytest.mark.asyncio
    async def test_events_round_trip(self, client):
        storage = GoogleSheetsAuditStorage(client)
        correlation_id = uuid4()
        event = AuditEventBuilder.ledger_changed(
            AuditEventType.TRANSACTION_RECORDED,
            "transaction",
            uuid4(),
            "user-1",
            WALLET,
            details={"amount": "10"},
            correlation_id=correlation_id,
        )

        assert await storage.append_event(event)

        [stored] = await storage.get_events_by_correlation_id(correlation_id)
        assert stored.event_id == event.event_id
        assert stored.details == {"amount": "10"}
        assert stored.is_user_action is True
        assert (await storage.get_recent_events(limit=1))[0].event_id == event.event_id


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
