from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session, joinedload, selectinload

from dinheiros.errors import InvalidRequestError, NotFoundError
from dinheiros.models_sqlalchemy import atomic
from dinheiros.models_sqlalchemy.models import (
    Account,
    AccountShare,
    Category,
    Transaction,
    TransactionType,
)
from dinheiros.utils.dates import end_of_day, start_of_current_month, to_utc

CENTS = Decimal("0.01")
RECENT_TRANSACTIONS_LIMIT = 5


def as_money(value) -> Decimal:
    """SUM() comes back as float on SQLite and Decimal elsewhere."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS)


def as_cents(value, field: str = "amount") -> Decimal:
    """Parse a posted amount; values finer than a cent are rejected."""
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise InvalidRequestError(f"invalid {field}: {value}")
        if amount.normalize().as_tuple().exponent < -2:
            raise InvalidRequestError(f"{field} must have at most two decimal places")
        return amount.quantize(CENTS)
    except InvalidOperation:
        raise InvalidRequestError(f"invalid {field}: {value}")


class TransactionRepository:
    def __init__(self, db: Session):
        self.db = db

    def with_tx(self, session: Session) -> "TransactionRepository":
        return TransactionRepository(session)

    def begin(self) -> Session:
        if not self.db.in_transaction():
            self.db.begin()
        return self.db

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    def atomic(self):
        return atomic(self.db)

    def _shared_account_ids(self, user_id: int):
        return self.db.query(AccountShare.account_id).filter(AccountShare.shared_user_id == user_id)

    def _visible_to(self, user_id: int):
        """Transactions on live accounts the user owns or has been shared."""
        return (
            self.db.query(Transaction)
            .join(Account, Account.id == Transaction.account_id)
            .filter(or_(Account.user_id == user_id, Account.id.in_(self._shared_account_ids(user_id))))
            .filter(Account.deleted_at.is_(None), Transaction.deleted_at.is_(None))
        )

    def create(self, transaction: Transaction) -> Transaction:
        self.db.add(transaction)
        self.db.flush()
        return transaction

    def find_by_id(self, transaction_id: int, user_id: int) -> Transaction:
        transaction = (
            self._visible_to(user_id)
            .options(selectinload(Transaction.categories))
            .filter(Transaction.id == transaction_id)
            .first()
        )
        if transaction is None:
            raise NotFoundError("transaction not found")
        return transaction

    def find_owned(self, transaction_id: int, owner_id: int) -> Transaction:
        """Like ``find_by_id`` but only through accounts ``owner_id`` owns."""
        transaction = (
            self.db.query(Transaction)
            .join(Account, Account.id == Transaction.account_id)
            .filter(
                Transaction.id == transaction_id,
                Account.user_id == owner_id,
                Transaction.deleted_at.is_(None),
            )
            .first()
        )
        if transaction is None:
            raise NotFoundError("transaction not found")
        return transaction

    def find_by_account_id(self, account_id: int, user_id: int) -> List[Transaction]:
        transactions, _ = self.search(user_id, account_ids=[account_id])
        return transactions

    def search(
        self,
        user_id: int,
        types: Optional[Sequence[str]] = None,
        account_ids: Optional[Sequence[int]] = None,
        category_ids: Optional[Sequence[int]] = None,
        description: Optional[str] = None,
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 0,
        page_size: int = 0,
    ) -> Tuple[List[Transaction], int]:
        """Filter the user's transactions, newest first.

        Pagination applies only when both ``page`` and ``page_size`` are
        positive; the returned total always counts every match.
        """
        query = self._visible_to(user_id)

        if types:
            query = query.filter(Transaction.type.in_([str(getattr(t, "value", t)) for t in types]))
        if account_ids:
            query = query.filter(Transaction.account_id.in_(list(account_ids)))
        if category_ids:
            query = query.filter(Transaction.categories.any(Category.id.in_(list(category_ids))))
        if description:
            query = query.filter(Transaction.description.ilike(f"%{description}%"))
        if min_amount is not None:
            query = query.filter(Transaction.amount >= min_amount)
        if max_amount is not None:
            query = query.filter(Transaction.amount <= max_amount)
        if start_date is not None:
            query = query.filter(Transaction.date >= to_utc(start_date))
        if end_date is not None:
            query = query.filter(Transaction.date <= end_of_day(to_utc(end_date)))

        total = query.count()

        query = query.options(
            joinedload(Transaction.account),
            selectinload(Transaction.categories),
        ).order_by(Transaction.date.desc(), Transaction.id.desc())

        if page > 0 and page_size > 0:
            query = query.offset((page - 1) * page_size).limit(page_size)

        return query.all(), total

    def delete(self, transaction: Transaction) -> None:
        self.db.delete(transaction)
        self.db.flush()

    def soft_delete_by_account_id(self, account_id: int) -> None:
        self.db.execute(
            update(Transaction)
            .where(Transaction.account_id == account_id, Transaction.deleted_at.is_(None))
            .values(deleted_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )

    def count_outgoing_transfers(self, account_id: int) -> int:
        """Live transfers from the account into any other account."""
        return (
            self.db.query(Transaction.id)
            .filter(
                Transaction.account_id == account_id,
                Transaction.type == TransactionType.transfer.value,
                Transaction.deleted_at.is_(None),
            )
            .count()
        )

    def reactivate_by_account_id(self, account_id: int) -> None:
        self.db.execute(
            update(Transaction)
            .where(Transaction.account_id == account_id, Transaction.deleted_at.isnot(None))
            .values(deleted_at=None)
            .execution_options(synchronize_session=False)
        )

    def associate_categories(
        self, transaction: Transaction, category_ids: Sequence[int], user_id: Optional[int] = None
    ) -> None:
        """Replace the transaction's categories with ``category_ids``."""
        if not category_ids:
            transaction.categories = []
            self.db.flush()
            return
        query = self.db.query(Category).filter(Category.id.in_(list(set(category_ids))))
        if user_id is not None:
            query = query.filter(Category.user_id == user_id)
        transaction.categories = query.order_by(Category.id.asc()).all()
        self.db.flush()

    def dashboard_summary(
        self, user_id: int, now: Optional[datetime] = None
    ) -> Tuple[Decimal, Decimal, Decimal, List[Transaction]]:
        """Total balance, this month's income and expenses, last five postings."""
        total_balance = (
            self.db.query(func.coalesce(func.sum(Account.balance), 0))
            .filter(Account.user_id == user_id, Account.deleted_at.is_(None))
            .scalar()
        )

        month_start = start_of_current_month(now)

        def month_total(kind: TransactionType) -> Decimal:
            value = (
                self.db.query(func.coalesce(func.sum(Transaction.amount), 0))
                .join(Account, Account.id == Transaction.account_id)
                .filter(
                    Account.user_id == user_id,
                    Account.deleted_at.is_(None),
                    Transaction.deleted_at.is_(None),
                    Transaction.type == kind.value,
                    Transaction.date >= month_start,
                )
                .scalar()
            )
            return as_money(value)

        recent = (
            self.db.query(Transaction)
            .join(Account, Account.id == Transaction.account_id)
            .filter(
                Account.user_id == user_id,
                Account.deleted_at.is_(None),
                Transaction.deleted_at.is_(None),
            )
            .options(selectinload(Transaction.categories))
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .limit(RECENT_TRANSACTIONS_LIMIT)
            .all()
        )

        return (
            as_money(total_balance),
            month_total(TransactionType.income),
            month_total(TransactionType.expense),
            recent,
        )
