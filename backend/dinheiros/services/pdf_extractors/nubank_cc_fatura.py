"""Nubank credit-card invoice ("fatura").

Purchases sit under the ``TRANSAÇÕES`` line, payments under ``Pagamentos``.
Each posting is a ``DD MON`` date line, then the description, then the amount
(``R$ 299,80`` for purchases, ``−R$ 381,30`` with U+2212 for payments). The
invoice year is read from the due date in the header.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import List, Optional, Pattern

from dinheiros.errors import MissingMarkerError
from dinheiros.models_sqlalchemy.models import TransactionType
from dinheiros.utils.logger import logger
from .base import ParsedTransaction, StatementExtractor
from .parsing import MINUS_SIGN, PT_MONTH_ALTERNATION, parse_brl_amount, parse_pt_date, split_lines

YEAR_PATTERNS = (
    re.compile(r"Data de vencimento: [0-9]{2} [A-Z]{3} ([0-9]{4})"),
    re.compile(r"FATURA [0-9]{2} [A-Z]{3} ([0-9]{4})"),
)
PURCHASES_MARKER = "TRANSAÇÕES"
PAYMENTS_MARKER = "Pagamentos"

DAY_MONTH_PATTERN = re.compile(rf"^([0-9]{{2}}) ({PT_MONTH_ALTERNATION})$")
CARD_PATTERN = re.compile(r"^•••• [0-9]{4}$")
PURCHASE_AMOUNT_PATTERN = re.compile(r"^R\$ ([0-9.,]+)")
PAYMENT_AMOUNT_PATTERN = re.compile(rf"^{MINUS_SIGN}R\$ ([0-9.,]+)")


def find_invoice_year(text: str) -> str:
    for pattern in YEAR_PATTERNS:
        match = pattern.search(text or "")
        if match:
            return match.group(1)
    raise MissingMarkerError("could not find year in text")


def _last_index(lines: List[str], marker: str) -> Optional[int]:
    found = None
    for index, line in enumerate(lines):
        if line == marker:
            found = index
    return found


class NubankCCFaturaExtractor(StatementExtractor):
    key = "nubank_cc_fatura"
    name = "Nubank - Cartão de Crédito Fatura"

    def extract_transactions(self, text: str, account_id: int) -> List[ParsedTransaction]:
        year = find_invoice_year(text)
        lines = split_lines(text, split_tabs=False)

        purchases_index = _last_index(lines, PURCHASES_MARKER)
        if purchases_index is None:
            raise MissingMarkerError(f"could not find '{PURCHASES_MARKER}' section")
        payments_index = _last_index(lines, PAYMENTS_MARKER)

        purchases_end = payments_index if payments_index is not None else len(lines)
        transactions = self._read_section(
            lines, purchases_index + 1, purchases_end, year,
            PURCHASE_AMOUNT_PATTERN, TransactionType.expense, account_id,
        )
        if payments_index is not None:
            transactions.extend(self._read_section(
                lines, payments_index + 1, len(lines), year,
                PAYMENT_AMOUNT_PATTERN, TransactionType.income, account_id,
            ))

        logger.debug(f"{self.key}: {len(transactions)} postings for invoice year {year}")
        return transactions

    def _read_section(
        self,
        lines: List[str],
        start: int,
        end: int,
        year: str,
        amount_pattern: Pattern,
        txn_type: TransactionType,
        account_id: int,
    ) -> List[ParsedTransaction]:
        transactions: List[ParsedTransaction] = []
        current_date: Optional[datetime] = None

        for i in range(start, end):
            line = lines[i]

            date_match = DAY_MONTH_PATTERN.match(line)
            if date_match:
                # An impossible date (31 FEV) keeps the previous one.
                current_date = parse_pt_date(date_match.group(1), date_match.group(2), year) or current_date
                continue

            if current_date is None or CARD_PATTERN.match(line):
                continue

            amount_match = amount_pattern.match(line)
            if not amount_match:
                continue

            try:
                amount = parse_brl_amount(amount_match.group(1))
            except ValueError:
                continue
            if amount <= 0:
                continue

            transactions.append(ParsedTransaction(
                date=current_date,
                amount=amount,
                type=txn_type,
                description=lines[i - 1],
                account_id=account_id,
            ))

        return transactions
