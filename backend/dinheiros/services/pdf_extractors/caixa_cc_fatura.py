"""Caixa credit-card invoice ("fatura").

Purchases are listed in sections titled ``COMPRAS (Cartão ...)`` or
``COMPRAS PARCELADAS (Cartão ...)``. After the ``Data ...`` column header,
each purchase spans three or four lines::

    18/04
    PADARIA
    FLORIANOPOLIS      <- city, sometimes missing
    27,40D

A section ends at its ``Total`` line. Postings only carry day and month; the
year comes from the first ``DD MON YYYY`` date printed on the invoice (its
issue/due date), stepping back one year for postings made in a later month
than the invoice (December purchases on a January invoice).
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from dinheiros.errors import MissingMarkerError
from dinheiros.models_sqlalchemy.models import TransactionType
from dinheiros.utils.logger import logger
from .base import ParsedTransaction, StatementExtractor
from .parsing import PT_MONTH_ALTERNATION, PT_MONTHS, utc_date, parse_brl_amount, split_lines

SECTION_PREFIXES = ("COMPRAS (Cartão", "COMPRAS PARCELADAS (Cartão")
COLUMN_HEADER_PREFIX = "Data"
SECTION_END_PREFIX = "Total"

INVOICE_DATE_PATTERN = re.compile(rf"\b([0-9]{{2}}) ({PT_MONTH_ALTERNATION}) ([0-9]{{4}})\b")
DAY_MONTH_PATTERN = re.compile(r"^([0-9]{2})/([0-9]{2})$")
POSTING_AMOUNT_PATTERN = re.compile(r"^[0-9.]+,[0-9]{2} ?[CD]$")


def is_posting_amount(value: str) -> bool:
    """Invoice amounts carry a trailing debit/credit marker: ``27,40D``."""
    return POSTING_AMOUNT_PATTERN.match(value) is not None


class CaixaCCFaturaExtractor(StatementExtractor):
    key = "caixa_cc_fatura"
    name = "Caixa - Cartão de Crédito Fatura"

    def extract_transactions(self, text: str, account_id: int) -> List[ParsedTransaction]:
        invoice_year, invoice_month = self._find_invoice_period(text)
        lines = split_lines(text, split_tabs=False)
        transactions: List[ParsedTransaction] = []

        i = 0
        while i < len(lines):
            if not lines[i].startswith(SECTION_PREFIXES):
                i += 1
                continue

            header_index = self._find_column_header(lines, i + 1)
            if header_index is None:
                i += 1
                continue

            i = self._read_section(
                lines, header_index + 1, invoice_year, invoice_month, account_id, transactions
            )
            i += 1

        return transactions

    def _find_invoice_period(self, text: str) -> Tuple[int, int]:
        match = INVOICE_DATE_PATTERN.search(text or "")
        if not match:
            raise MissingMarkerError("could not find invoice date")
        return int(match.group(3)), PT_MONTHS[match.group(2)]

    def _find_column_header(self, lines: List[str], start: int) -> Optional[int]:
        for j in range(start, len(lines)):
            if lines[j].startswith(COLUMN_HEADER_PREFIX):
                return j
        return None

    def _read_section(
        self,
        lines: List[str],
        start: int,
        invoice_year: int,
        invoice_month: int,
        account_id: int,
        transactions: List[ParsedTransaction],
    ) -> int:
        """Collect postings from ``start`` up to the section's Total line."""
        i = start
        while i < len(lines):
            if lines[i].startswith(SECTION_END_PREFIX):
                break

            date_match = DAY_MONTH_PATTERN.match(lines[i])
            if date_match is None or i + 2 >= len(lines):
                i += 1
                continue

            # date, description, amount
            if is_posting_amount(lines[i + 2]):
                amount_line, width = lines[i + 2], 3
            # date, description, city, amount
            elif i + 3 < len(lines) and is_posting_amount(lines[i + 3]):
                amount_line, width = lines[i + 3], 4
            else:
                i += 1
                continue

            txn = self._build_transaction(
                date_match, lines[i + 1], amount_line, invoice_year, invoice_month, account_id
            )
            if txn is not None:
                transactions.append(txn)
            i += width

        return i

    def _build_transaction(
        self,
        date_match,
        description: str,
        amount_line: str,
        invoice_year: int,
        invoice_month: int,
        account_id: int,
    ) -> Optional[ParsedTransaction]:
        day, month = int(date_match.group(1)), int(date_match.group(2))
        year = invoice_year - 1 if month > invoice_month else invoice_year
        date = utc_date(year, month, day)
        if date is None:
            logger.debug(f"{self.key}: skipping posting with invalid date {date_match.group(0)!r}")
            return None

        try:
            amount = parse_brl_amount(amount_line[:-1])
        except ValueError:
            logger.debug(f"{self.key}: skipping posting with unreadable amount {amount_line!r}")
            return None
        if amount <= 0:
            return None

        txn_type = TransactionType.income if amount_line[-1] == "C" else TransactionType.expense
        return ParsedTransaction(
            date=date,
            amount=amount,
            type=txn_type,
            description=description,
            account_id=account_id,
        )
