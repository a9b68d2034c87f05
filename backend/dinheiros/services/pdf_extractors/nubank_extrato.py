"""Nubank current-account statement ("extrato").

The statement is grouped by day. A ``02 JUN 2025`` header opens the day and
is followed by transaction blocks::

    Transferência recebida pelo Pix
    FULANO DE TAL - •••.123.456-•• - BANCO X
    Agência: 1 Conta: 12345-6
    2.149,20

A block opens on a known prefix, collects detail lines and closes on the
first line that is only an amount.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Tuple

from dinheiros.models_sqlalchemy.models import TransactionType
from .base import ParsedTransaction, StatementExtractor
from .parsing import (
    collapse_whitespace,
    is_transaction_amount,
    parse_brl_amount,
    parse_pt_date,
    split_lines,
)

BLOCK_OPENERS = ("Transferência", "Pagamento de fatura", "Reembolso")
INVOICE_PAYMENT_OPENER = "Pagamento de fatura"
INCOME_MARKERS = ("recebida", "Reembolso")
DETAIL_SEPARATOR = " - "


def parse_day_header(line: str) -> Optional[datetime]:
    """``02 JUN 2025`` -> date, anything else -> None."""
    parts = line.split()
    if len(parts) != 3:
        return None
    return parse_pt_date(parts[0], parts[1], parts[2])


class NubankExtratoExtractor(StatementExtractor):
    key = "nubank_extrato"
    name = "Nubank - Extrato"

    def extract_transactions(self, text: str, account_id: int) -> List[ParsedTransaction]:
        lines = split_lines(text, split_tabs=False)
        transactions: List[ParsedTransaction] = []
        current_date: Optional[datetime] = None

        i = 0
        while i < len(lines):
            line = lines[i]

            day = parse_day_header(line)
            if day is not None:
                current_date = day
                i += 1
                continue

            # Nothing is a transaction before the first day header.
            if current_date is None or not line.startswith(BLOCK_OPENERS):
                i += 1
                continue

            txn, amount_index = self._read_block(lines, i, current_date, account_id)
            if txn is not None:
                transactions.append(txn)
                i = amount_index + 1
            else:
                i += 1

        return transactions

    def _read_block(
        self, lines: List[str], start: int, date: datetime, account_id: int
    ) -> Tuple[Optional[ParsedTransaction], int]:
        opener = lines[start]

        j = start + 1
        details = []
        while j < len(lines) and not is_transaction_amount(lines[j]):
            details.append(lines[j])
            j += 1

        if j >= len(lines):
            return None, j

        description = opener
        if details:
            first_detail = details[0]
            if DETAIL_SEPARATOR in first_detail:
                description = f"{description} {first_detail.split(DETAIL_SEPARATOR, 1)[0]}"
            elif opener != INVOICE_PAYMENT_OPENER:
                description = f"{description} {first_detail}"

        try:
            amount = parse_brl_amount(lines[j])
        except ValueError:
            return None, j
        if amount <= 0:
            return None, j

        is_income = any(marker in opener for marker in INCOME_MARKERS)
        txn = ParsedTransaction(
            date=date,
            amount=amount,
            type=TransactionType.income if is_income else TransactionType.expense,
            description=collapse_whitespace(description),
            account_id=account_id,
        )
        return txn, j
