"""
CSV Export

Dumps ledger collections to CSV files, one file per collection, named
after the month they belong to: ``db-march-2026-expenses.csv``.

The month comes from the first record's ``date`` when it has one, else
from today. Collections without records are skipped.
"""

import csv
from datetime import date
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

import structlog
from pydantic import BaseModel

from household_ledger.services.storage.interface import LedgerStorageInterface
from household_ledger.utils.dates import MONTH_NAMES, to_date

logger = structlog.get_logger(__name__)


def export_filename(name: str, reference: date) -> str:
    month = MONTH_NAMES[reference.month - 1].lower()
    return f"db-{month}-{reference.year}-{name}.csv"


def export_to_csv(
    records: Sequence[BaseModel],
    name: str,
    directory: Union[str, Path],
    today: Callable[[], date] = date.today,
) -> Optional[Path]:
    """
    Write ``records`` to one CSV file in ``directory``.

    The header row is the model's field names. Returns the written path, or
    None when there was nothing to write.
    """
    if not records:
        logger.debug("csv_export_skipped", name=name)
        return None

    rows = [record.model_dump(mode="json") for record in records]
    reference = to_date(rows[0].get("date")) or today()

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(name, reference)

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)

    logger.info("csv_export_written", name=name, path=str(path), rows=len(rows))
    return path


async def export_database(
    storage: LedgerStorageInterface,
    directory: Union[str, Path],
    today: Callable[[], date] = date.today,
) -> list[Path]:
    """
    Export expenses, the latest income record, debts and totals.

    Each collection is its own file and its own write; a failure on one
    leaves the files already written in place.
    """
    income = await storage.get_latest_income()
    collections = [
        ("expenses", await storage.list_expenses()),
        ("income", [income] if income else []),
        ("debt", await storage.list_debts()),
        ("total_expenses", await storage.list_totals()),
    ]

    written = []
    for name, records in collections:
        path = export_to_csv(records, name, directory, today=today)
        if path is not None:
            written.append(path)
    return written
