"""
Savings Aggregation Engine

Groups raw savings records into dated snapshots and totals each person's
savings in the base currency.

A snapshot is every saving record created on the same calendar day: one
statement of both people's balances across all their accounts. The newest
snapshot is "current", the rest are history. A historical snapshot is only
ever changed by replacing it wholesale (delete the day, insert the new set).
"""

from datetime import date
from typing import Mapping, Optional, Union

import structlog

from household_ledger.engine.currency import convert_to_euro, needs_conversion
from household_ledger.models.ledger import (
    ACCOUNT_ORDER,
    AccountSummary,
    Currency,
    Party,
    Saving,
    SavingsGroup,
    SavingsSummary,
    SavingType,
)
from household_ledger.services.storage.interface import LedgerStorageInterface
from household_ledger.utils.dates import format_date, get_date_key, snapshot_timestamp
from household_ledger.utils.numbers import round_to_decimals, safe_number

logger = structlog.get_logger(__name__)


class DuplicateSnapshotError(ValueError):
    """A savings snapshot already exists for the requested day."""

    def __init__(self, date_key: str):
        self.date_key = date_key
        super().__init__(f"A savings snapshot already exists for {date_key}")


def group_savings_by_date(savings: list[Saving]) -> list[SavingsGroup]:
    """
    Group savings by the calendar day of their creation timestamp.

    Groups come back newest first. A group's timestamp is the latest of its
    members'; records with an unparseable timestamp group under their raw
    text and sort last. Members keep their input order.
    """
    groups: dict[str, SavingsGroup] = {}

    for saving in savings:
        key, timestamp = get_date_key(saving.created_at or "")
        existing = groups.get(key)

        if existing:
            existing.savings.append(saving)
            existing.timestamp = max(existing.timestamp, timestamp)
        else:
            groups[key] = SavingsGroup(date_key=key, timestamp=timestamp, savings=[saving])

    # sorted() is stable, so equal timestamps keep first-seen order
    return sorted(groups.values(), key=lambda group: group.timestamp, reverse=True)


def get_latest_savings_group(groups: list[SavingsGroup]) -> Optional[SavingsGroup]:
    return groups[0] if groups else None


def split_latest_and_history(
    groups: list[SavingsGroup],
) -> tuple[Optional[SavingsGroup], list[SavingsGroup]]:
    """Current snapshot and the older ones, both from newest-first groups."""
    if not groups:
        return None, []
    return groups[0], groups[1:]


def calculate_savings_summary(
    savings: list[Saving],
    rates: Mapping[Currency, float],
) -> SavingsSummary:
    """
    Total each person's savings in EUR.

    Records without a known user are skipped. A missing currency counts as
    EUR. Percentages are 0 when nothing is saved.
    """
    if not savings:
        return SavingsSummary()

    totals = {Party.ADOLFO: 0.0, Party.KARI: 0.0}

    for saving in savings:
        if saving.user not in totals:
            continue

        amount = safe_number(saving.amount)
        totals[saving.user] += convert_to_euro(amount, saving.currency or Currency.EUR, rates)

    adolfo_total = totals[Party.ADOLFO]
    kari_total = totals[Party.KARI]
    total = adolfo_total + kari_total

    return SavingsSummary(
        adolfo=round_to_decimals(adolfo_total),
        kari=round_to_decimals(kari_total),
        total=round_to_decimals(total),
        adolfo_percentage=round_to_decimals(adolfo_total / total * 100) if total else 0.0,
        kari_percentage=round_to_decimals(kari_total / total * 100) if total else 0.0,
    )


def summarize_accounts(savings: list[Saving]) -> dict[Party, list[AccountSummary]]:
    """
    Native-currency balance per person and account, in display order.

    Amounts of the same account are added together without conversion; the
    account keeps the currency of its first record. Records missing a user
    or an account type are skipped.
    """
    seen: dict[Party, dict[SavingType, AccountSummary]] = {party: {} for party in Party}

    for saving in savings:
        if saving.user is None or saving.type is None:
            continue

        accounts = seen[saving.user]
        existing = accounts.get(saving.type)
        if existing:
            existing.amount += safe_number(saving.amount)
        else:
            accounts[saving.type] = AccountSummary(
                type=saving.type,
                user=saving.user,
                amount=safe_number(saving.amount),
                currency=saving.currency or Currency.EUR,
            )

    return {
        party: [seen[party][t] for t in ACCOUNT_ORDER[party] if t in seen[party]]
        for party in Party
    }


def snapshot_requires_rates(savings: list[Saving]) -> bool:
    """True if any record must be converted before totals can be trusted."""
    return any(needs_conversion(saving.currency) for saving in savings)


class SavingsLedger:
    """
    Reads and writes savings snapshots through the record store.

    No transaction wraps a replace: if the insert fails after the delete,
    the day's snapshot is gone and the error propagates.
    """

    def __init__(self, storage: LedgerStorageInterface):
        self._storage = storage

    async def get_all_savings(self) -> list[Saving]:
        return await self._storage.list_savings()

    async def get_groups(self) -> list[SavingsGroup]:
        return group_savings_by_date(await self._storage.list_savings())

    async def save_snapshot(
        self,
        entries: list[Saving],
        snapshot_date: Union[str, date],
        original_date: Optional[str] = None,
    ) -> list[Saving]:
        """
        Save a new snapshot, or replace ``original_date``'s snapshot.

        Every entry is stamped with the snapshot day's shared timestamp.

        Raises:
            DuplicateSnapshotError: If another snapshot already uses the day
            ValueError: If ``snapshot_date`` is not a date
        """
        date_key = format_date(snapshot_date)
        if not date_key:
            raise ValueError(f"Invalid snapshot date: {snapshot_date!r}")

        existing_keys = {group.date_key for group in await self.get_groups()}
        existing_keys.discard(original_date)
        if date_key in existing_keys:
            raise DuplicateSnapshotError(date_key)

        timestamp = snapshot_timestamp(date_key)
        stamped = [
            entry.model_copy(update={"id": None, "created_at": timestamp})
            for entry in entries
        ]

        if original_date:
            deleted = await self._storage.delete_savings_by_date(original_date)
            logger.info(
                "savings_snapshot_cleared",
                date_key=original_date,
                deleted=deleted,
            )

        stored = await self._storage.insert_savings_batch(stamped)
        logger.info("savings_snapshot_saved", date_key=date_key, entries=len(stored))
        return stored

    async def delete_snapshot(self, date_key: str) -> int:
        deleted = await self._storage.delete_savings_by_date(date_key)
        logger.info("savings_snapshot_deleted", date_key=date_key, deleted=deleted)
        return deleted
