"""Tests for audit models and the audit logger."""

import json
from uuid import uuid4

from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from household_ledger.models.ledger import (
    BalanceSyncResult,
    DebtAction,
    Expense,
    ExpenseSplit,
    ExpenseType,
)


class FailingAuditStorage:
    async def append_event(self, event):
        raise RuntimeError("sheet is read-only")


class TestAuditModels:
    """AuditEvent serialisation and the builder helpers."""

    def test_to_sheets_row(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.balance_synced(
            debt_month="March 2026",
            debt_action="inserted",
            kari_balance=-60.0,
            totals={"total": 100.0},
            correlation_id=correlation_id,
        )
        row = event.to_sheets_row()

        assert len(row) == 11
        assert row[2] == "balance_synced"
        assert row[5] == "March 2026"
        assert row[6] == str(correlation_id)
        assert json.loads(row[8])["kari_balance"] == -60.0
        assert row[10] == "False"

    def test_to_log_dict(self):
        event = AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description="boom",
        )
        data = event.to_log_dict()
        assert data["event_type"] == "system_error"
        assert data["correlation_id"] is None

    def test_expense_changed(self):
        event = AuditEventBuilder.expense_changed(
            AuditEventType.EXPENSE_DELETED, 4, "Rent", 900.0, uuid4()
        )
        assert event.description == "Expense deleted: Rent"
        assert event.entity_id == "4"
        assert event.is_user_action

    def test_savings_snapshot_records_original_date(self):
        event = AuditEventBuilder.savings_snapshot(
            AuditEventType.SAVINGS_SNAPSHOT_REPLACED, "2026-03-02", 3, uuid4(),
            original_date="2026-03-01",
        )
        assert event.details == {"entry_count": 3, "original_date": "2026-03-01"}
        assert event.description == "Savings snapshot replaced: 2026-03-02"


class TestAuditLogger:
    async def test_persists_events(self, audit_storage):
        logger = AuditLogger(audit_storage)
        correlation_id = create_correlation_id()
        expense = Expense(
            id=1, date="2026-03-01", description="Rent", amount=900, type=ExpenseType.PERCENTAGE
        )

        await logger.log_expense_changed(AuditEventType.EXPENSE_CREATED, expense, correlation_id)
        await logger.log_balance_synced(
            BalanceSyncResult(
                totals=ExpenseSplit(total=900, adolfo=540, kari=360),
                kari_balance=360,
                debt_month="March 2026",
                debt_action=DebtAction.INSERTED,
            ),
            correlation_id,
        )

        events = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.EXPENSE_CREATED,
            AuditEventType.BALANCE_SYNCED,
        ]
        assert events[1].details["totals"]["adolfo"] == 540

    async def test_rates_events(self, audit_storage):
        logger = AuditLogger(audit_storage)
        await logger.log_rates({"USD": 1.08})
        await logger.log_rates(None)

        types = {e.event_type for e in await audit_storage.get_recent_events()}
        assert types == {AuditEventType.RATES_FETCHED, AuditEventType.RATES_UNAVAILABLE}

    async def test_storage_failure_is_not_raised(self):
        logger = AuditLogger(FailingAuditStorage())
        assert await logger.log(AuditEventBuilder.rates_unavailable()) is False

    async def test_local_only(self):
        assert await AuditLogger().log(AuditEventBuilder.rates_unavailable()) is True
