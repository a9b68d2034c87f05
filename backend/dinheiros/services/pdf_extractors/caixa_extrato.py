"""Caixa Econômica Federal current-account statement ("extrato").

After text extraction each movement is five consecutive fields::

    02/06/2025  000123  CRED PIX  6.000,00 C  6.245,10 C
    date        doc no  history   amount     running balance

Header rows and daily balance rows are skipped.
"""

from __future__ import annotations

from typing import List, Optional

from dinheiros.models_sqlalchemy.models import TransactionType
from dinheiros.utils.logger import logger
from .base import ParsedTransaction, StatementExtractor
from .parsing import parse_br_date, parse_brl_amount, split_lines

ROW_WIDTH = 5
SKIPPED_ROW_HEADERS = ("Data Mov.", "SALDO DIA", "SALDO ANTERIOR")


def _has_direction(value: str) -> bool:
    return value[-1:] in ("C", "D")


def is_transaction_row(row: List[str]) -> bool:
    if len(row) < ROW_WIDTH:
        return False
    if parse_br_date(row[0]) is None:
        return False
    return _has_direction(row[3]) and _has_direction(row[4])


class CaixaExtratoExtractor(StatementExtractor):
    key = "caixa_extrato"
    name = "Caixa - Extrato"

    def extract_transactions(self, text: str, account_id: int) -> List[ParsedTransaction]:
        fields = split_lines(text)
        transactions: List[ParsedTransaction] = []

        i = 0
        while i + ROW_WIDTH - 1 < len(fields):
            row = fields[i:i + ROW_WIDTH]
            if row[0] in SKIPPED_ROW_HEADERS or not is_transaction_row(row):
                i += 1
                continue

            txn = self._row_to_transaction(row, account_id)
            if txn is not None:
                transactions.append(txn)
            i += ROW_WIDTH

        return transactions

    def _row_to_transaction(self, row: List[str], account_id: int) -> Optional[ParsedTransaction]:
        date = parse_br_date(row[0])
        if date is None:
            return None

        # "6.000,00 C" -> amount and credit/debit marker
        parts = row[3].split()
        if len(parts) < 2:
            return None
        amount_text, direction = parts[0], parts[1]

        try:
            amount = parse_brl_amount(amount_text)
        except ValueError:
            logger.debug(f"{self.key}: skipping row with unreadable amount {row[3]!r}")
            return None
        if amount <= 0:
            return None

        txn_type = TransactionType.income if direction == "C" else TransactionType.expense
        return ParsedTransaction(
            date=date,
            amount=amount,
            type=txn_type,
            description=row[2],
            account_id=account_id,
        )
