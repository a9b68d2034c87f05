"""Transaction service: posting, deleting and reporting on transactions.

Every posting moves money, so creating or deleting a transaction changes one
or two account balances. The row writes and the balance updates for one call
run inside a single database transaction (``atomic``): either all of them
are committed or none is.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from os import PathLike
from typing import Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from dinheiros.errors import InsufficientFundsError, InvalidRequestError, NotFoundError
from dinheiros.models_sqlalchemy import atomic
from dinheiros.models_sqlalchemy.models import Transaction, TransactionType
from dinheiros.services.account_repository import AccountRepository
from dinheiros.services.categorization_rules import CategorizationRuleService
from dinheiros.services.pdf_extractors import ParsedTransaction, get_extractor
from dinheiros.services.transaction_repository import TransactionRepository, as_cents, as_money
from dinheiros.utils.dates import to_utc
from dinheiros.utils.logger import logger

DEFAULT_EXTRACTOR = "caixa_extrato"

# Sign applied to the source account balance for each kind.
SOURCE_SIGN = {
    TransactionType.income: 1,
    TransactionType.expense: -1,
    TransactionType.transfer: -1,
    TransactionType.initial: 1,
}
DEBIT_TYPES = (TransactionType.expense, TransactionType.transfer)


def balance_deltas(
    kind: TransactionType, amount: Decimal, account_id: int, to_account_id: Optional[int]
) -> List[Tuple[int, Decimal]]:
    """(account id, delta) pairs a posting applies to balances."""
    deltas = [(account_id, amount * SOURCE_SIGN[kind])]
    if kind == TransactionType.transfer and to_account_id is not None:
        deltas.append((to_account_id, amount))
    return deltas


def _series(totals: Dict[str, Decimal]) -> Dict[str, list]:
    labels = sorted(totals)
    return {"labels": labels, "data": [totals[label] for label in labels]}


class TransactionService:
    def __init__(
        self,
        db: Session,
        account_repo: Optional[AccountRepository] = None,
        transaction_repo: Optional[TransactionRepository] = None,
        rule_service: Optional[CategorizationRuleService] = None,
    ):
        self.db = db
        self.account_repo = account_repo or AccountRepository(db)
        self.transaction_repo = transaction_repo or TransactionRepository(db)
        self.rule_service = rule_service or CategorizationRuleService(db)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        owner_id: int,
        account_id: int,
        amount: Decimal,
        kind: Union[TransactionType, str],
        description: str = "",
        to_account_id: Optional[int] = None,
        category_ids: Optional[Sequence[int]] = None,
        date: Optional[datetime] = None,
    ) -> Transaction:
        try:
            kind = TransactionType(kind)
        except ValueError:
            raise InvalidRequestError(f"invalid transaction type: {kind}")
        amount = as_cents(amount)
        if amount <= 0:
            raise InvalidRequestError("amount must be greater than zero")
        if date is None:
            raise InvalidRequestError("date is required")

        source = self.account_repo.find_by_id(account_id, owner_id)

        if kind == TransactionType.transfer:
            if to_account_id is None:
                raise InvalidRequestError("destination account is required for transfers")
            if to_account_id == account_id:
                raise InvalidRequestError("cannot transfer to the same account")
            self.account_repo.find_by_id(to_account_id, owner_id)
        else:
            to_account_id = None

        if kind in DEBIT_TYPES and source.balance < amount:
            raise InsufficientFundsError()

        with atomic(self.db):
            account_repo = self.account_repo.with_tx(self.db)
            transaction_repo = self.transaction_repo.with_tx(self.db)

            transaction = transaction_repo.create(Transaction(
                date=to_utc(date),
                amount=amount,
                type=kind.value,
                description=description or "",
                account_id=account_id,
                to_account_id=to_account_id,
            ))
            for target_id, delta in balance_deltas(kind, amount, account_id, to_account_id):
                account_repo.update_balance(target_id, delta)
            if category_ids:
                transaction_repo.associate_categories(transaction, category_ids, user_id=owner_id)
            transaction_id = transaction.id

        logger.info(
            f"[TransactionService] Created {kind.value} {transaction_id} of {amount} on account {account_id}"
            + (f" -> {to_account_id}" if to_account_id else "")
        )
        return transaction

    def delete(self, owner_id: int, transaction_id: int) -> None:
        transaction = self.transaction_repo.find_owned(transaction_id, owner_id)
        kind = TransactionType(transaction.type)
        deltas = balance_deltas(kind, transaction.amount, transaction.account_id, transaction.to_account_id)

        with atomic(self.db):
            account_repo = self.account_repo.with_tx(self.db)
            for target_id, delta in deltas:
                account_repo.update_balance(target_id, -delta)
            self.transaction_repo.with_tx(self.db).delete(transaction)

        logger.info(f"[TransactionService] Deleted transaction {transaction_id} for user {owner_id}")

    def update(self, owner_id: int, transaction_id: int, **changes) -> Transaction:
        """Posted transactions are immutable; delete and re-create instead."""
        raise InvalidRequestError("updating transactions is not supported")

    def import_transactions(self, owner_id: int, account_id: int, items: Sequence[dict]) -> List[Transaction]:
        """Post a reviewed import, one ``create`` per item."""
        self.account_repo.find_by_id(account_id, owner_id)
        created = []
        for item in items:
            created.append(self.create(
                owner_id,
                account_id,
                item["amount"],
                item["type"],
                description=item.get("description", ""),
                to_account_id=item.get("to_account_id"),
                category_ids=item.get("category_ids") or [],
                date=item["date"],
            ))
        logger.info(f"[TransactionService] Imported {len(created)} transactions into account {account_id}")
        return created

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int, transaction_id: int) -> Transaction:
        return self.transaction_repo.find_by_id(transaction_id, user_id)

    def list_by_account(self, user_id: int, account_id: int) -> List[Transaction]:
        self.account_repo.find_accessible(account_id, user_id)
        return self.transaction_repo.find_by_account_id(account_id, user_id)

    def search(self, user_id: int, **filters) -> Tuple[List[Transaction], int]:
        return self.transaction_repo.search(user_id, **filters)

    def dashboard_summary(self, user_id: int, now: Optional[datetime] = None):
        return self.transaction_repo.dashboard_summary(user_id, now=now)

    # ------------------------------------------------------------------
    # Statement import
    # ------------------------------------------------------------------

    def extract_from_pdf(
        self,
        file_path: Union[str, PathLike],
        account_id: int,
        user_id: int,
        extractor_name: Optional[str] = None,
    ) -> List[ParsedTransaction]:
        """Read a statement PDF into categorised, not yet persisted, transactions."""
        self.account_repo.find_accessible(account_id, user_id)

        extractor = get_extractor(extractor_name or DEFAULT_EXTRACTOR)
        if extractor is None:
            raise InvalidRequestError(f"invalid extractor: {extractor_name}")

        text = extractor.extract_text(file_path)
        transactions = extractor.extract_transactions(text, account_id)
        logger.info(f"[TransactionService] {extractor.key} extracted {len(transactions)} transactions")
        return self.rule_service.categorize(user_id, transactions)

    # ------------------------------------------------------------------
    # Statistics (label/data series for charts)
    # ------------------------------------------------------------------

    def _all_transactions(self, user_id, start_date=None, end_date=None) -> List[Transaction]:
        transactions, _ = self.transaction_repo.search(user_id, start_date=start_date, end_date=end_date)
        return transactions

    def transactions_per_day(self, user_id, start_date=None, end_date=None):
        per_day: Dict[str, int] = defaultdict(int)
        for txn in self._all_transactions(user_id, start_date, end_date):
            per_day[to_utc(txn.date).strftime("%Y-%m-%d")] += 1
        return _series(per_day)

    def amount_by_month(self, user_id, start_date=None, end_date=None):
        by_month: Dict[str, Decimal] = defaultdict(Decimal)
        for txn in self._all_transactions(user_id, start_date, end_date):
            by_month[to_utc(txn.date).strftime("%Y-%m")] += as_money(txn.amount)
        return _series(by_month)

    def amount_by_account(self, user_id, start_date=None, end_date=None):
        by_account: Dict[str, Decimal] = defaultdict(Decimal)
        for txn in self._all_transactions(user_id, start_date, end_date):
            by_account[txn.account.name] += as_money(txn.amount)
        return _series(by_account)

    def amount_by_category(self, user_id, start_date=None, end_date=None):
        by_category: Dict[str, Decimal] = defaultdict(Decimal)
        for txn in self._all_transactions(user_id, start_date, end_date):
            for category in txn.categories:
                by_category[category.name] += as_money(txn.amount)
        return _series(by_category)

    def spent_and_gained_by_day(self, user_id, start_date=None, end_date=None):
        spent: Dict[str, Decimal] = defaultdict(Decimal)
        gained: Dict[str, Decimal] = defaultdict(Decimal)
        for txn in self._all_transactions(user_id, start_date, end_date):
            day = to_utc(txn.date).strftime("%Y-%m-%d")
            if txn.type == TransactionType.expense.value:
                spent[day] += as_money(txn.amount)
            elif txn.type == TransactionType.income.value:
                gained[day] += as_money(txn.amount)
        labels = sorted(set(spent) | set(gained))
        return {
            "labels": labels,
            "spent": [spent.get(day, Decimal("0.00")) for day in labels],
            "gained": [gained.get(day, Decimal("0.00")) for day in labels],
        }

    def statistics(self, series: str, user_id: int, start_date=None, end_date=None):
        handlers = {
            "transactions-per-day": self.transactions_per_day,
            "amount-by-month": self.amount_by_month,
            "amount-by-account": self.amount_by_account,
            "amount-by-category": self.amount_by_category,
            "spent-and-gained-by-day": self.spent_and_gained_by_day,
        }
        handler = handlers.get(series)
        if handler is None:
            raise NotFoundError(f"unknown statistics series: {series}")
        return handler(user_id, start_date=start_date, end_date=end_date)
