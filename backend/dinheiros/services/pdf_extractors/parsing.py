"""Low-level helpers shared by the bank statement extractors.

Brazilian banks print amounts as ``1.234,56`` (period for thousands, comma for
decimals), sometimes prefixed with ``R$ `` / ``−R$ `` and sometimes suffixed
with a ``C``/``D`` credit/debit marker. Dates come as ``DD/MM/YYYY``,
``DD-MM-YYYY`` or, on credit-card invoices, ``DD MON YYYY`` with Portuguese
month abbreviations.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional

# Portuguese three-letter month codes, upper case as printed on statements.
PT_MONTHS = {
    "JAN": 1, "FEV": 2, "MAR": 3, "ABR": 4, "MAI": 5, "JUN": 6,
    "JUL": 7, "AGO": 8, "SET": 9, "OUT": 10, "NOV": 11, "DEZ": 12,
}
PT_MONTH_ALTERNATION = "|".join(PT_MONTHS)

# U+2212 MINUS SIGN is what the Nubank invoice uses for payments.
MINUS_SIGN = "−"
_CURRENCY_PREFIXES = (MINUS_SIGN + "R$", "-R$", "R$")

_ASCII_WHITESPACE = " \t\n\r\x0b\x0c"
_SPLIT_WITH_TABS = re.compile(r"[\n\r\t]+")
_SPLIT_LINES_ONLY = re.compile(r"[\n\r]+")

_SLASH_DATE = re.compile(r"^([0-9]{2})/([0-9]{2})/([0-9]{4})$")
_DASH_DATE = re.compile(r"^([0-9]{2})-([0-9]{2})-([0-9]{4})$")

_ASCII_LETTER = re.compile(r"[A-Za-z]")
# After normalisation an amount must look like 123.45 (exactly two decimals).
_NORMALISED_AMOUNT = re.compile(r"^[+-]?[0-9]*\.[0-9]{2}$")


def split_lines(text: str, split_tabs: bool = True) -> List[str]:
    """Split extracted text into trimmed, non-empty logical lines.

    Current-account statements are tab separated inside a row, so tabs are
    separators there; credit-card invoices keep tabs inside the line.
    """
    pattern = _SPLIT_WITH_TABS if split_tabs else _SPLIT_LINES_ONLY
    lines = []
    for field in pattern.split(text or ""):
        trimmed = field.strip(_ASCII_WHITESPACE)
        if trimmed:
            lines.append(trimmed)
    return lines


def strip_currency_prefix(value: str) -> str:
    text = value.strip()
    for prefix in _CURRENCY_PREFIXES:
        if text.startswith(prefix):
            return text[len(prefix):].strip()
    return text


def normalise_amount(value: str) -> str:
    """Turn ``1.234,56`` into ``1234.56`` (no currency prefix handling)."""
    return value.strip().replace(".", "").replace(",", ".")


def parse_brl_amount(value: str) -> Decimal:
    """Decode a Brazilian-formatted amount into a Decimal.

    Raises ValueError when the string is not a finite number.
    """
    text = normalise_amount(strip_currency_prefix(value))
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return amount


def is_transaction_amount(value: str) -> bool:
    """Return True when a line holds nothing but a two-decimal amount."""
    text = strip_currency_prefix(value)
    if _ASCII_LETTER.search(text):
        return False
    return bool(_NORMALISED_AMOUNT.match(normalise_amount(text)))


def utc_date(year: int, month: int, day: int) -> Optional[datetime]:
    try:
        return datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None


def parse_br_date(value: str) -> Optional[datetime]:
    """Parse ``DD/MM/YYYY`` or ``DD-MM-YYYY``; None signals "not a date"."""
    text = value.strip()
    match = _SLASH_DATE.match(text) or _DASH_DATE.match(text)
    if not match:
        return None
    day, month, year = (int(g) for g in match.groups())
    return utc_date(year, month, day)


def parse_pt_date(day: str, month_code: str, year: str) -> Optional[datetime]:
    """Build a date from ``DD``, a Portuguese month code and ``YYYY``."""
    month = PT_MONTHS.get(month_code)
    if month is None or len(day) != 2 or len(year) != 4:
        return None
    if not (day.isdigit() and year.isdigit()):
        return None
    return utc_date(int(year), month, int(day))


def collapse_whitespace(value: str) -> str:
    return " ".join(value.split())
