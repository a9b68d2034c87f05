"""Common pieces for the bank statement extractors.

Every extractor turns the plain text of one statement format into a list of
``ParsedTransaction`` records. Text comes from pdfplumber, one page after the
other separated by a newline, so the same parsing can run on fixture text in
tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from os import PathLike
from typing import List, Union

import pdfplumber

from dinheiros.errors import StatementReadError
from dinheiros.models_sqlalchemy.models import TransactionType
from dinheiros.utils.logger import logger


@dataclass
class ParsedTransaction:
    """A transaction read from a statement, not yet persisted."""
    date: datetime
    amount: Decimal
    type: TransactionType
    description: str
    account_id: int
    category_ids: List[int] = field(default_factory=list)


class StatementExtractor:
    """Base class for one statement format.

    Subclasses set ``key`` (the registry name) and ``name`` (the label shown
    to users) and implement ``extract_transactions``.
    """

    key: str = ""
    name: str = ""

    def extract_text(self, file_path: Union[str, PathLike]) -> str:
        try:
            pdf = pdfplumber.open(file_path)
        except Exception as e:  # pdfminer raises its own parser errors
            raise StatementReadError(f"failed to open PDF file: {e}") from e

        pages_text: List[str] = []
        with pdf:
            for page_num, page in enumerate(pdf.pages, start=1):
                try:
                    text = page.extract_text()
                except Exception as e:
                    raise StatementReadError(f"failed to extract text from page {page_num}: {e}") from e
                if text is None:
                    logger.debug(f"{self.key}: page {page_num} has no text layer, skipping")
                    continue
                pages_text.append(text)

        full_text = "\n".join(pages_text)
        logger.info(f"{self.key}: extracted {len(full_text)} chars from {len(pages_text)} pages")
        return full_text

    def extract_transactions(self, text: str, account_id: int) -> List[ParsedTransaction]:
        raise NotImplementedError

    def extract(self, file_path: Union[str, PathLike], account_id: int) -> List[ParsedTransaction]:
        """Read a PDF statement and return its transactions."""
        text = self.extract_text(file_path)
        transactions = self.extract_transactions(text, account_id)
        logger.info(f"{self.key}: parsed {len(transactions)} transactions from {file_path}")
        return transactions
