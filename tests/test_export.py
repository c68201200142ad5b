"""Tests for the CSV dump."""

import csv
from datetime import date

from household_ledger.export import export_database, export_filename, export_to_csv
from household_ledger.models.ledger import Debt, Expense, ExpenseType, Income, TotalExpenses

TODAY = date(2026, 3, 15)


def read_csv(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def expense(on, amount=10.0):
    return Expense(date=on, description="Vet", amount=amount, type=ExpenseType.KARI)


class TestExportToCsv:
    def test_filename(self):
        assert export_filename("debt", date(2026, 12, 1)) == "db-december-2026-debt.csv"

    def test_month_from_first_record(self, tmp_path):
        path = export_to_csv(
            [expense(date(2026, 1, 20)), expense(date(2026, 2, 3))], "expenses", tmp_path
        )
        assert path.name == "db-january-2026-expenses.csv"

    def test_header_and_rows(self, tmp_path):
        path = export_to_csv([expense(date(2026, 1, 20), amount=42.5)], "expenses", tmp_path)
        rows = read_csv(path)

        assert list(rows[0].keys())[:3] == ["id", "created_at", "date"]
        assert rows[0]["amount"] == "42.5"
        assert rows[0]["type"] == "kari"
        assert rows[0]["date"] == "2026-01-20"

    def test_month_from_today_without_date_field(self, tmp_path):
        path = export_to_csv([Debt(month="March 2026")], "debt", tmp_path, today=lambda: TODAY)
        assert path.name == "db-march-2026-debt.csv"

    def test_empty_is_skipped(self, tmp_path):
        assert export_to_csv([], "expenses", tmp_path) is None
        assert list(tmp_path.iterdir()) == []

    def test_creates_directory(self, tmp_path):
        target = tmp_path / "nested" / "dir"
        assert export_to_csv([Debt(month="March")], "debt", target).parent == target


class TestExportDatabase:
    async def test_four_files(self, storage, tmp_path):
        await storage.insert_expense(expense(date(2026, 2, 10)))
        await storage.insert_income(Income(adolfo_income=1))
        await storage.insert_income(Income(adolfo_income=2))
        await storage.insert_debt(Debt(month="February 2026"))
        await storage.insert_totals(TotalExpenses(total=10))

        paths = await export_database(storage, tmp_path, today=lambda: TODAY)

        assert [p.name for p in paths] == [
            "db-february-2026-expenses.csv",
            "db-march-2026-income.csv",
            "db-march-2026-debt.csv",
            "db-march-2026-total_expenses.csv",
        ]
        income_rows = read_csv(paths[1])
        assert len(income_rows) == 1
        assert income_rows[0]["adolfo_income"] == "2.0"

    async def test_empty_store_writes_nothing(self, storage, tmp_path):
        assert await export_database(storage, tmp_path) == []
