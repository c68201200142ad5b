"""
Tests for the end-to-end flows.

Flows run on the in-memory store with a fixed clock; every flow shares one
audit store so the correlation of events can be checked.
"""

from datetime import date

import pytest

from household_ledger.audit import AuditLogger
from household_ledger.engine.balance import IncomeNotFoundError
from household_ledger.engine.savings import SavingsLedger
from household_ledger.models.audit import AuditEventType
from household_ledger.models.ledger import Currency, DebtAction, ExpenseType, Party
from household_ledger.orchestrator import (
    BalanceFlow,
    ExpenseFlow,
    ExportFlow,
    IncomeFlow,
    SavingsFlow,
    create_app_components,
)
from household_ledger.services.rates import ExchangeRateProviderInterface, ExchangeRateService
from household_ledger.services.storage import ConnectionError, InMemoryLedgerStorage, StorageError
from household_ledger.validation import LedgerInputValidator

TODAY = date(2026, 3, 15)


class StaticProvider(ExchangeRateProviderInterface):
    def __init__(self, payload):
        self.payload = payload

    async def get_latest_rates(self):
        return self.payload


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def validator(storage):
    return LedgerInputValidator(storage, today=lambda: TODAY)


@pytest.fixture
def expense_flow(expense_ledger, validator, audit_logger):
    return ExpenseFlow(expense_ledger, validator, audit_logger)


async def event_types(audit_storage, correlation_id):
    return [e.event_type for e in await audit_storage.get_events_by_correlation_id(correlation_id)]


class TestExpenseFlow:
    async def test_create_persists_syncs_and_audits(
        self, storage, audit_storage, expense_flow, seeded_income
    ):
        validation, stored, sync = await expense_flow.submit_expense({
            "description": "Supermarket",
            "amount": "100",
            "date": "2026-03-10",
            "category": "Supermarket",
            "type": "percentage",
            "is_paid_by_kari": True,
        })

        assert validation.is_valid
        assert stored.id == 1
        assert sync.debt_action == DebtAction.INSERTED
        assert (await storage.get_debt_by_month("March 2026")).kari_debt == 60.0

        events = await audit_storage.get_recent_events()
        correlation_id = events[0].correlation_id
        assert await event_types(audit_storage, correlation_id) == [
            AuditEventType.EXPENSE_CREATED,
            AuditEventType.BALANCE_SYNCED,
        ]

    async def test_update_through_form(self, storage, expense_flow, seeded_income):
        _, stored, _ = await expense_flow.submit_expense({
            "description": "Rent", "amount": "900", "date": "2026-03-01", "type": "shared",
        })
        _, updated, sync = await expense_flow.submit_expense({
            "id": stored.id, "description": "Rent", "amount": "1000", "date": "2026-03-01",
            "type": "shared",
        })

        assert updated.id == stored.id
        assert sync.totals.total == 1000.0
        assert len(await storage.list_expenses()) == 1

    async def test_invalid_form_is_audited_not_persisted(self, storage, audit_storage, expense_flow):
        validation, stored, sync = await expense_flow.submit_expense({"description": "", "amount": "x"})

        assert validation.has_errors
        assert stored is None and sync is None
        assert await storage.list_expenses() == []
        events = await audit_storage.get_recent_events()
        assert [e.event_type for e in events] == [AuditEventType.VALIDATION_FAILED]

    async def test_delete(self, storage, audit_storage, expense_flow, seeded_income):
        _, stored, _ = await expense_flow.submit_expense({
            "description": "Pet food", "amount": "30", "date": "2026-03-02", "type": "kari",
        })

        deleted, sync = await expense_flow.delete_expense(stored.id)

        assert deleted
        assert sync.totals.total == 0.0
        types = [e.event_type for e in await audit_storage.get_recent_events()]
        assert AuditEventType.EXPENSE_DELETED in types

    async def test_sync_failure_is_audited_and_raised(self, audit_storage, audit_logger, validator):
        from household_ledger.engine.balance import BalanceEngine, ExpenseLedger

        class TotalsWriteFails(InMemoryLedgerStorage):
            async def insert_totals(self, totals):
                raise StorageError("quota exceeded")

        storage = TotalsWriteFails()
        engine = BalanceEngine(storage, today=lambda: TODAY)
        flow = ExpenseFlow(ExpenseLedger(storage, engine), validator, audit_logger)

        with pytest.raises(StorageError):
            await flow.submit_expense({
                "description": "Rent", "amount": "900", "date": "2026-03-01", "type": "shared",
            })

        events = await audit_storage.get_recent_events()
        assert [e.event_type for e in events] == [AuditEventType.BALANCE_SYNC_FAILED]
        assert events[0].error_message == "quota exceeded"
        # The expense insert happened before the failing step
        assert len(await storage.list_expenses()) == 1


class TestIncomeFlow:
    @pytest.fixture
    def income_flow(self, income_ledger, balance_engine, validator, audit_logger):
        return IncomeFlow(income_ledger, balance_engine, validator, audit_logger)

    async def test_update(self, income_flow, audit_storage, seeded_income):
        validation, income, sync = await income_flow.update_income("kari", "2500")

        assert validation.is_valid
        assert income.kari_percentage == 45.45
        assert sync.debt_month == "March 2026"

        correlation_id = (await audit_storage.get_recent_events())[0].correlation_id
        events = await audit_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.INCOME_UPDATED,
            AuditEventType.BALANCE_SYNCED,
        ]
        assert events[0].details["party"] == "kari"

    async def test_new_split_reaches_dashboard_and_debt(
        self, storage, income_flow, expense_ledger, balance_engine, income_ledger,
        seeded_income, make_expense,
    ):
        await expense_ledger.create_expense(make_expense(100, ExpenseType.PERCENTAGE))
        await expense_ledger.create_expense(make_expense(20, ExpenseType.SHARED, is_paid_by_kari=True))

        await income_flow.update_income(Party.KARI, "6000")

        dashboard = await BalanceFlow(balance_engine, income_ledger).get_dashboard()
        paid_by_kari = 20.0
        assert dashboard.totals.kari == 76.67
        assert dashboard.kari_balance == pytest.approx(dashboard.totals.kari - paid_by_kari)
        assert (await storage.list_totals())[0].kari == dashboard.totals.kari
        debt = await storage.get_debt_by_month("March 2026")
        assert debt.adolfo_debt == pytest.approx(dashboard.kari_balance)

    async def test_sync_failure_is_audited_and_raised(
        self, audit_logger, audit_storage, validator, seeded_income
    ):
        from household_ledger.engine.balance import BalanceEngine, IncomeLedger

        class TotalsWriteFails(InMemoryLedgerStorage):
            async def insert_totals(self, totals):
                raise StorageError("quota exceeded")

        storage = TotalsWriteFails()
        await storage.insert_income(seeded_income)
        flow = IncomeFlow(
            IncomeLedger(storage),
            BalanceEngine(storage, today=lambda: TODAY),
            validator,
            audit_logger,
        )

        with pytest.raises(StorageError):
            await flow.update_income("kari", "2500")

        correlation_id = (await audit_storage.get_recent_events())[0].correlation_id
        assert await event_types(audit_storage, correlation_id) == [
            AuditEventType.INCOME_UPDATED,
            AuditEventType.BALANCE_SYNC_FAILED,
        ]
        # The income edit happened before the failing step
        assert (await storage.get_latest_income()).kari_income == 2500

    async def test_invalid_amount(self, income_flow, seeded_income):
        validation, income, sync = await income_flow.update_income("kari", "-1")
        assert validation.has_errors
        assert income is None and sync is None

    async def test_missing_income_record(self, income_flow):
        with pytest.raises(IncomeNotFoundError):
            await income_flow.update_income(Party.KARI, "10")


class TestSavingsFlow:
    @pytest.fixture
    def savings_flow(self, storage, validator, audit_logger):
        service = ExchangeRateService(StaticProvider({"USD": 1.25}))
        return SavingsFlow(SavingsLedger(storage), service, validator, audit_logger)

    async def test_save_and_overview(self, savings_flow, audit_storage):
        await savings_flow.save_snapshot({
            "date": "2026-02-01",
            "entries": [{"user": "kari", "type": "sabadell", "amount": "100"}],
        })
        await savings_flow.save_snapshot({
            "date": "2026-03-01",
            "entries": [
                {"user": "adolfo", "type": "cash", "amount": "125"},
                {"user": "kari", "type": "sabadell", "amount": "300"},
            ],
        })

        overview = await savings_flow.get_overview()

        assert overview.latest.date_key == "2026-03-01"
        assert [g.date_key for g in overview.history] == ["2026-02-01"]
        assert overview.summary.adolfo == 100.0
        assert overview.summary.kari == 300.0
        assert overview.rates_available
        assert overview.accounts[Party.ADOLFO][0].currency == Currency.USD

        types = [e.event_type for e in await audit_storage.get_recent_events()]
        assert types.count(AuditEventType.SAVINGS_SNAPSHOT_SAVED) == 2
        assert AuditEventType.RATES_FETCHED in types

    async def test_duplicate_day_rejected_by_validation(self, savings_flow, storage):
        form = {"date": "2026-03-01", "entries": [{"user": "kari", "type": "wise", "amount": "1"}]}
        await savings_flow.save_snapshot(form)

        validation, stored = await savings_flow.save_snapshot(form)

        assert validation.has_errors
        assert stored == []
        assert len(await storage.list_savings()) == 1

    async def test_replace_and_delete(self, savings_flow, audit_storage):
        form = {"date": "2026-03-01", "entries": [{"user": "kari", "type": "wise", "amount": "1"}]}
        await savings_flow.save_snapshot(form)

        moved = {"date": "2026-03-02", "entries": form["entries"]}
        _, stored = await savings_flow.save_snapshot(moved, original_date="2026-03-01")
        assert len(stored) == 1

        assert await savings_flow.delete_snapshot("2026-03-02") == 1
        types = [e.event_type for e in await audit_storage.get_recent_events()]
        assert AuditEventType.SAVINGS_SNAPSHOT_REPLACED in types
        assert AuditEventType.SAVINGS_SNAPSHOT_DELETED in types

    async def test_overview_without_rates(self, storage, audit_logger, audit_storage):
        flow = SavingsFlow(SavingsLedger(storage), ExchangeRateService(StaticProvider(None)),
                           audit_logger=audit_logger)

        overview = await flow.get_overview()

        assert overview.latest is None
        assert overview.summary.total == 0.0
        assert not overview.rates_available
        types = [e.event_type for e in await audit_storage.get_recent_events()]
        assert types == [AuditEventType.RATES_UNAVAILABLE]


class TestBalanceFlow:
    async def test_dashboard(self, storage, balance_engine, income_ledger, seeded_income, make_expense):
        await storage.insert_expense(make_expense(100, is_paid_by_kari=True))
        flow = BalanceFlow(balance_engine, income_ledger)

        dashboard = await flow.get_dashboard()

        assert dashboard.income.id == seeded_income.id
        assert dashboard.totals.kari == 40.0
        assert dashboard.kari_balance == -60.0
        assert (dashboard.debt.adolfo, dashboard.debt.kari) == (0.0, 0.0)

    async def test_manual_sync(self, balance_engine, income_ledger, audit_logger, audit_storage):
        flow = BalanceFlow(balance_engine, income_ledger, audit_logger)

        result = await flow.sync(effective_date=TODAY)

        assert result.debt_month == "March 2026"
        events = await audit_storage.get_recent_events()
        assert events[0].event_type == AuditEventType.BALANCE_SYNCED


class TestExportFlow:
    async def test_export(self, storage, app_settings, audit_logger, audit_storage, tmp_path, make_expense):
        await storage.insert_expense(make_expense(10))

        paths = await ExportFlow(storage, app_settings, audit_logger).export(tmp_path)

        assert [p.name for p in paths] == ["db-march-2026-expenses.csv"]
        events = await audit_storage.get_recent_events()
        assert events[0].details["files"] == ["db-march-2026-expenses.csv"]


class TestCreateAppComponents:
    def test_in_memory(self, app_settings):
        components = create_app_components(use_storage=False, settings=app_settings)
        assert isinstance(components.storage, InMemoryLedgerStorage)
        assert components.sheets_client is None

    def test_unconfigured_sheets_is_an_error(self, app_settings, monkeypatch, tmp_path):
        from household_ledger.config import get_settings

        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        get_settings.cache_clear()

        with pytest.raises(ConnectionError, match="not configured"):
            create_app_components(use_storage=True, settings=app_settings)
        get_settings.cache_clear()
