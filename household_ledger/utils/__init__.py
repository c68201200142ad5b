"""Number and date helpers shared by the engines, validation and export."""

from household_ledger.utils.dates import (
    DATE_DISPLAY_FORMAT,
    DateKey,
    format_date,
    get_date_key,
    is_valid_date_string,
    month_label,
    previous_month,
    snapshot_timestamp,
    to_date,
    to_datetime,
)
from household_ledger.utils.numbers import (
    format_currency,
    format_decimal,
    is_finite_number,
    parse_decimal,
    round_to_decimals,
    safe_number,
    to_fixed_string,
)

__all__ = [
    "DATE_DISPLAY_FORMAT",
    "DateKey",
    "format_currency",
    "format_date",
    "format_decimal",
    "get_date_key",
    "is_finite_number",
    "is_valid_date_string",
    "month_label",
    "parse_decimal",
    "previous_month",
    "round_to_decimals",
    "safe_number",
    "snapshot_timestamp",
    "to_date",
    "to_datetime",
    "to_fixed_string",
]
