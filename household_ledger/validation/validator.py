"""
Boundary Input Validation

DESIGN DECISION: Form input is validated once, at the boundary, before it
reaches the engines. The engines assume well-formed records; they never
re-check required fields.

Each form gets its own check:
- expense form: description, amount, date, category and sharing type
- savings snapshot form: date, duplicate day, per-account amount and currency
- income edit: person and a non-negative amount

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the form can show them next to the field.
Amount text is parsed leniently ("12,50" is 12.5) but never guessed.
"""

from datetime import date, datetime
from typing import Any, Mapping, Optional

from household_ledger.models.ledger import (
    SAVINGS_ACCOUNT_FIELDS,
    Currency,
    Expense,
    ExpenseCategory,
    ExpenseType,
    Party,
    Saving,
    SavingType,
    ValidationIssue,
    ValidationResult,
)
from household_ledger.services.storage.interface import LedgerStorageInterface
from household_ledger.utils.dates import DATE_DISPLAY_FORMAT, get_date_key, is_valid_date_string
from household_ledger.utils.numbers import parse_decimal

_DEFAULT_CURRENCY = {
    (field.user, field.type): field.default_currency for field in SAVINGS_ACCOUNT_FIELDS
}


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _parse_amount(
    raw: Any,
    field: str,
    issues: list[ValidationIssue],
    required: bool = True,
) -> Optional[float]:
    """Parse an amount field, recording a missing/invalid issue."""
    text = _as_text(raw)
    if text is None or not text.strip():
        if required:
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        return None

    amount = parse_decimal(text)
    if amount is None:
        issues.append(ValidationIssue(
            field=field,
            issue_type="invalid_format",
            message=f"'{text}' is not a number",
            severity="error",
            suggested_fix="Use digits with a comma or dot, e.g. 12,50",
        ))
    return amount


def _parse_date(raw: Any, field: str, issues: list[ValidationIssue]) -> Optional[date]:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw

    text = _as_text(raw)
    if not is_valid_date_string(text):
        issues.append(ValidationIssue(
            field=field,
            issue_type="invalid_format",
            message=f"Date must be in YYYY-MM-DD format, got {text!r}",
            severity="error",
        ))
        return None
    return datetime.strptime(text, DATE_DISPLAY_FORMAT).date()


_TRUE_FLAGS = {"true", "1", "yes", "on"}
_FALSE_FLAGS = {"false", "0", "no", "off", ""}


def _parse_flag(raw: Any, field: str, issues: list[ValidationIssue]) -> bool:
    """Read a checkbox value; strings like "false" or "0" are False."""
    if raw is None:
        return False
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in _TRUE_FLAGS:
            return True
        if text in _FALSE_FLAGS:
            return False

    issues.append(ValidationIssue(
        field=field,
        issue_type="invalid_value",
        message=f"{field} must be true or false, got {raw!r}",
        severity="error",
    ))
    return False


def _parse_code(enum_cls, raw: Any, field: str, issues: list[ValidationIssue]):
    """Look up an enum member by value, recording an issue for unknown codes."""
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        issues.append(ValidationIssue(
            field=field,
            issue_type="invalid_value",
            message=f"Unknown {field} {raw!r}",
            severity="error",
            suggested_fix=f"Choose one of: {allowed}",
        ))
        return None


class LedgerInputValidator:
    """
    Validates the three ledger forms.

    The savings form check needs the store to detect a snapshot that
    already exists for the same day.
    """

    def __init__(
        self,
        storage: Optional[LedgerStorageInterface] = None,
        today=date.today,
    ):
        """
        Args:
            storage: Record store for the duplicate-day check.
                     If None, that check is skipped.
            today: Clock used for the future-date warning
        """
        self._storage = storage
        self._today = today

    def validate_expense_form(self, form: Mapping[str, Any]) -> ValidationResult:
        """
        Validate an add/edit expense form.

        On success ``result.value`` is the ``Expense`` to persist (with the
        form's ``id`` when editing).
        """
        issues: list[ValidationIssue] = []

        description = (_as_text(form.get("description")) or "").strip()
        if not description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
            ))
        elif len(description) > 200:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message="Description must be at most 200 characters",
                severity="error",
            ))

        amount = _parse_amount(form.get("amount"), "amount", issues)
        if amount is not None and amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))

        expense_date = _parse_date(form.get("date"), "date", issues)
        if expense_date and expense_date > self._today():
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({expense_date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        category = _parse_code(
            ExpenseCategory, form.get("category") or ExpenseCategory.OTHER.value, "category", issues
        )
        expense_type = _parse_code(ExpenseType, form.get("type"), "type", issues)
        is_paid_by_kari = _parse_flag(form.get("is_paid_by_kari"), "is_paid_by_kari", issues)
        is_default = _parse_flag(form.get("is_default"), "is_default", issues)

        result = ValidationResult(issues=issues)
        if not result.has_errors:
            result.value = Expense(
                id=form.get("id"),
                date=expense_date,
                description=description,
                category=category,
                amount=amount,
                type=expense_type,
                is_paid_by_kari=is_paid_by_kari,
                is_default=is_default,
            )
        return result

    def validate_income_form(self, party: Any, new_income: Any) -> ValidationResult:
        """
        Validate an income edit.

        On success ``result.value`` is ``(Party, amount)``.
        """
        issues: list[ValidationIssue] = []

        member = _parse_code(Party, party, "party", issues)
        amount = _parse_amount(new_income, "income", issues)
        if amount is not None and amount < 0:
            issues.append(ValidationIssue(
                field="income",
                issue_type="invalid_value",
                message="Income cannot be negative",
                severity="error",
            ))

        result = ValidationResult(issues=issues)
        if not result.has_errors:
            result.value = (member, amount)
        return result

    def _validate_saving_entry(
        self,
        index: int,
        entry: Mapping[str, Any],
        issues: list[ValidationIssue],
    ) -> Optional[Saving]:
        prefix = f"entries[{index}]"

        user = _parse_code(Party, entry.get("user"), f"{prefix}.user", issues)
        account = _parse_code(SavingType, entry.get("type"), f"{prefix}.type", issues)
        if user is not None and account is not None and (user, account) not in _DEFAULT_CURRENCY:
            issues.append(ValidationIssue(
                field=f"{prefix}.type",
                issue_type="invalid_value",
                message=f"{user.value} has no {account.value} account",
                severity="error",
                suggested_fix="Choose one of the accounts listed for that person",
            ))
            return None

        # Blank account fields are left out of the snapshot
        amount = _parse_amount(entry.get("amount"), f"{prefix}.amount", issues, required=False)
        if amount is None:
            return None
        if amount < 0:
            issues.append(ValidationIssue(
                field=f"{prefix}.amount",
                issue_type="invalid_value",
                message="Savings amounts cannot be negative",
                severity="error",
            ))
            return None

        raw_currency = entry.get("currency")
        if raw_currency:
            currency = _parse_code(
                Currency, str(raw_currency).upper(), f"{prefix}.currency", issues
            )
        else:
            currency = _DEFAULT_CURRENCY.get((user, account), Currency.EUR)

        if user is None or account is None or currency is None:
            return None
        return Saving(user=user, type=account, amount=amount, currency=currency)

    async def _check_duplicate_day(
        self,
        date_key: str,
        original_date: Optional[str],
    ) -> list[ValidationIssue]:
        """
        Flag a new snapshot on a day that already has one.

        This requires storage access.
        """
        if self._storage is None or date_key == original_date:
            return []

        savings = await self._storage.list_savings()
        taken = {get_date_key(saving.created_at or "").key for saving in savings}
        if date_key not in taken:
            return []

        return [ValidationIssue(
            field="date",
            issue_type="duplicate",
            message=f"A savings snapshot already exists for {date_key}",
            severity="error",
            suggested_fix="Edit the existing snapshot instead",
        )]

    async def validate_savings_form(
        self,
        form: Mapping[str, Any],
        original_date: Optional[str] = None,
    ) -> ValidationResult:
        """
        Validate a savings snapshot form.

        ``form`` holds ``date`` and ``entries`` (dicts with ``user``,
        ``type``, ``amount`` and optionally ``currency``; a missing currency
        falls back to the account's default). ``original_date`` is set when
        editing an existing snapshot.

        On success ``result.value`` is ``(date_key, list[Saving])``.
        """
        issues: list[ValidationIssue] = []

        snapshot_date = _parse_date(form.get("date"), "date", issues)
        date_key = snapshot_date.strftime(DATE_DISPLAY_FORMAT) if snapshot_date else None

        entries = []
        for index, entry in enumerate(form.get("entries") or []):
            saving = self._validate_saving_entry(index, entry, issues)
            if saving is not None:
                entries.append(saving)

        if not entries and not any(issue.field.startswith("entries") for issue in issues):
            issues.append(ValidationIssue(
                field="entries",
                issue_type="empty",
                message="Enter at least one account balance",
                severity="error",
            ))

        if date_key:
            issues.extend(await self._check_duplicate_day(date_key, original_date))

        result = ValidationResult(issues=issues)
        if not result.has_errors:
            result.value = (date_key, entries)
        return result

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """One line per issue, errors first, for display under the form."""
        if not result.issues:
            return "All fields look good."

        lines = []
        for severity, marker in (("error", "Fix"), ("warning", "Check")):
            for issue in result.issues:
                if issue.severity != severity:
                    continue
                line = f"{marker}: {issue.message}"
                if issue.suggested_fix:
                    line += f" ({issue.suggested_fix})"
                lines.append(line)
        return "\n".join(lines)
