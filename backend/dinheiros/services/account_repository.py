from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import or_, update
from sqlalchemy.orm import Session, joinedload

from dinheiros.errors import NotFoundError
from dinheiros.models_sqlalchemy import atomic
from dinheiros.models_sqlalchemy.models import Account, AccountShare


class AccountRepository:
    """Data access for accounts.

    Every method works on the session the repository was built with; use
    ``with_tx`` to bind another session so writes share one transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def with_tx(self, session: Session) -> "AccountRepository":
        return AccountRepository(session)

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

    def create(self, account: Account) -> Account:
        self.db.add(account)
        self.db.flush()
        return account

    def find_by_id(self, account_id: int, owner_id: int, include_deleted: bool = False) -> Account:
        query = self.db.query(Account).filter(Account.id == account_id, Account.user_id == owner_id)
        if not include_deleted:
            query = query.filter(Account.deleted_at.is_(None))
        account = query.first()
        if account is None:
            raise NotFoundError("account not found")
        return account

    def find_by_id_unscoped(self, account_id: int) -> Account:
        account = (
            self.db.query(Account)
            .filter(Account.id == account_id, Account.deleted_at.is_(None))
            .first()
        )
        if account is None:
            raise NotFoundError("account not found")
        return account

    def find_accessible(self, account_id: int, user_id: int) -> Account:
        """Account owned by ``user_id`` or shared with them."""
        account = (
            self.db.query(Account)
            .outerjoin(
                AccountShare,
                (AccountShare.account_id == Account.id) & (AccountShare.shared_user_id == user_id),
            )
            .filter(Account.id == account_id, Account.deleted_at.is_(None))
            .filter(or_(Account.user_id == user_id, AccountShare.id.isnot(None)))
            .first()
        )
        if account is None:
            raise NotFoundError("account not found")
        return account

    def find_by_user_id(
        self, owner_id: int, include_deleted: bool = False, include_shared: bool = False
    ) -> List[Account]:
        query = self.db.query(Account).options(joinedload(Account.user))
        if include_shared:
            shared_ids = self.db.query(AccountShare.account_id).filter(AccountShare.shared_user_id == owner_id)
            query = query.filter(or_(Account.user_id == owner_id, Account.id.in_(shared_ids)))
        else:
            query = query.filter(Account.user_id == owner_id)
        if not include_deleted:
            query = query.filter(Account.deleted_at.is_(None))
        return query.order_by(Account.id.asc()).all()

    def find_shared_with(self, user_id: int) -> List[Account]:
        return (
            self.db.query(Account)
            .join(AccountShare, AccountShare.account_id == Account.id)
            .filter(AccountShare.shared_user_id == user_id, Account.deleted_at.is_(None))
            .order_by(Account.id.asc())
            .all()
        )

    def is_owner(self, account_id: int, user_id: int) -> bool:
        count = (
            self.db.query(Account.id)
            .filter(Account.id == account_id, Account.user_id == user_id)
            .count()
        )
        return count > 0

    def update(self, account: Account) -> Account:
        self.db.add(account)
        self.db.flush()
        return account

    def soft_delete(self, account_id: int, owner_id: int) -> None:
        account = self.find_by_id(account_id, owner_id)
        account.deleted_at = datetime.now(timezone.utc)
        self.db.flush()

    def reactivate(self, account_id: int, owner_id: int) -> None:
        account = self.find_by_id(account_id, owner_id, include_deleted=True)
        account.deleted_at = None
        self.db.flush()

    def update_balance(self, account_id: int, delta: Decimal) -> None:
        """Add ``delta`` to the stored balance in a single UPDATE statement."""
        result = self.db.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(balance=Account.balance + delta)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("account not found")

    def get_balance(self, account_id: int) -> Optional[Decimal]:
        return self.db.query(Account.balance).filter(Account.id == account_id).scalar()
