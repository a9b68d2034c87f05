from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from dinheiros.errors import ForbiddenError, InvalidRequestError, NotFoundError
from dinheiros.models_sqlalchemy import atomic
from dinheiros.models_sqlalchemy.models import Account, AccountType, Transaction, TransactionType
from dinheiros.services.account_repository import AccountRepository
from dinheiros.services.transaction_repository import TransactionRepository, as_cents
from dinheiros.utils.logger import logger

DEFAULT_COLOR = "#cccccc"
INITIAL_BALANCE_DESCRIPTION = "Initial Balance"


def _account_type(value) -> str:
    try:
        return AccountType(value or AccountType.checking.value).value
    except ValueError:
        raise InvalidRequestError(f"invalid account type: {value}")


class AccountService:
    def __init__(
        self,
        db: Session,
        account_repo: Optional[AccountRepository] = None,
        transaction_repo: Optional[TransactionRepository] = None,
    ):
        self.db = db
        self.account_repo = account_repo or AccountRepository(db)
        self.transaction_repo = transaction_repo or TransactionRepository(db)

    def _require_owner(self, account_id: int, user_id: int, action: str) -> None:
        if self.account_repo.is_owner(account_id, user_id):
            return
        # Distinguish "not yours" from "does not exist".
        self.account_repo.find_by_id_unscoped(account_id)
        raise ForbiddenError(f"only account owners can {action} accounts")

    def create_account(
        self,
        user_id: int,
        name: str,
        account_type: Optional[str] = None,
        initial_balance: Decimal = Decimal("0"),
        currency: str = "BRL",
        color: Optional[str] = None,
    ) -> Account:
        """Create an account; a non-zero opening balance is posted as an
        ``initial`` transaction in the same database transaction.
        """
        name = (name or "").strip()
        if not name:
            raise InvalidRequestError("account name is required")
        initial_balance = as_cents(initial_balance or 0, "initial balance")

        logger.info(f"[AccountService] Creating account '{name}' for user {user_id} (initial balance {initial_balance})")

        with atomic(self.db):
            account_repo = self.account_repo.with_tx(self.db)
            account = account_repo.create(Account(
                user_id=user_id,
                name=name,
                type=_account_type(account_type),
                currency=currency or "BRL",
                initial_balance=initial_balance,
                balance=Decimal("0"),
                color=color or DEFAULT_COLOR,
            ))

            if initial_balance != 0:
                self.transaction_repo.with_tx(self.db).create(Transaction(
                    date=datetime.now(timezone.utc),
                    amount=initial_balance,
                    type=TransactionType.initial.value,
                    description=INITIAL_BALANCE_DESCRIPTION,
                    account_id=account.id,
                ))
                account_repo.update_balance(account.id, initial_balance)
            account_id = account.id

        logger.info(f"[AccountService] Account {account_id} created for user {user_id}")
        return account

    def get_account(self, account_id: int, user_id: int) -> Account:
        return self.account_repo.find_accessible(account_id, user_id)

    def list_accounts(
        self, user_id: int, include_deleted: bool = False, include_shared: bool = False
    ) -> List[Account]:
        return self.account_repo.find_by_user_id(
            user_id, include_deleted=include_deleted, include_shared=include_shared
        )

    def update_account(
        self,
        account_id: int,
        user_id: int,
        name: str,
        account_type: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Account:
        self._require_owner(account_id, user_id, "update")
        account = self.account_repo.find_by_id(account_id, user_id)

        name = (name or "").strip()
        if not name:
            raise InvalidRequestError("account name is required")
        account.name = name
        account.type = _account_type(account_type or account.type)
        account.color = color or DEFAULT_COLOR

        with atomic(self.db):
            self.account_repo.with_tx(self.db).update(account)
        return account

    def delete_account(self, account_id: int, user_id: int) -> None:
        """Soft-delete the account together with its transactions.

        Refused while the account still has live transfers out.
        """
        self._require_owner(account_id, user_id, "delete")
        account = self.account_repo.find_by_id(account_id, user_id)

        with atomic(self.db):
            transaction_repo = self.transaction_repo.with_tx(self.db)
            if transaction_repo.count_outgoing_transfers(account.id):
                raise InvalidRequestError("account has transfers to other accounts; delete them first")
            transaction_repo.soft_delete_by_account_id(account.id)
            self.account_repo.with_tx(self.db).soft_delete(account.id, user_id)
        logger.info(f"[AccountService] Account {account_id} soft-deleted by user {user_id}")

    def reactivate_account(self, account_id: int, user_id: int) -> None:
        self._require_owner(account_id, user_id, "reactivate")
        account = self.account_repo.find_by_id(account_id, user_id, include_deleted=True)
        if account.deleted_at is None:
            raise InvalidRequestError("account is not deleted")

        with atomic(self.db):
            self.account_repo.with_tx(self.db).reactivate(account.id, user_id)
            self.transaction_repo.with_tx(self.db).reactivate_by_account_id(account.id)
        logger.info(f"[AccountService] Account {account_id} reactivated by user {user_id}")
