from typing import List

from sqlalchemy.orm import Session, joinedload

from dinheiros.errors import ForbiddenError, InvalidRequestError, NotFoundError
from dinheiros.models_sqlalchemy.models import AccountShare, PermissionLevel, User
from dinheiros.services.account_repository import AccountRepository
from dinheiros.utils.logger import logger


class AccountShareService:
    """Read-only sharing of an account with other registered users."""

    def __init__(self, db: Session, account_repo: AccountRepository = None):
        self.db = db
        self.account_repo = account_repo or AccountRepository(db)

    def _owned_account(self, account_id: int, owner_id: int):
        if not self.account_repo.is_owner(account_id, owner_id):
            self.account_repo.find_by_id_unscoped(account_id)
            raise ForbiddenError("only account owners can manage shares")
        return self.account_repo.find_by_id(account_id, owner_id)

    def share_account(self, account_id: int, owner_id: int, email: str) -> AccountShare:
        account = self._owned_account(account_id, owner_id)

        user = self.db.query(User).filter(User.email == (email or "").strip().lower()).first()
        if user is None:
            raise NotFoundError("user not found")
        if user.id == owner_id:
            raise InvalidRequestError("cannot share an account with yourself")

        existing = (
            self.db.query(AccountShare)
            .filter(AccountShare.account_id == account.id, AccountShare.shared_user_id == user.id)
            .first()
        )
        if existing is not None:
            raise InvalidRequestError("account is already shared with this user")

        share = AccountShare(
            account_id=account.id,
            owner_user_id=owner_id,
            shared_user_id=user.id,
            permission_level=PermissionLevel.read.value,
        )
        self.db.add(share)
        self.db.commit()
        self.db.refresh(share)
        logger.info(f"[AccountShareService] Account {account.id} shared by user {owner_id} with user {user.id}")
        return share

    def list_shares(self, account_id: int, owner_id: int) -> List[AccountShare]:
        account = self._owned_account(account_id, owner_id)
        return (
            self.db.query(AccountShare)
            .options(joinedload(AccountShare.shared_user))
            .filter(AccountShare.account_id == account.id)
            .order_by(AccountShare.id.asc())
            .all()
        )

    def revoke_share(self, account_id: int, share_id: int, owner_id: int) -> None:
        account = self._owned_account(account_id, owner_id)
        share = (
            self.db.query(AccountShare)
            .filter(AccountShare.id == share_id, AccountShare.account_id == account.id)
            .first()
        )
        if share is None:
            raise NotFoundError("share not found")
        self.db.delete(share)
        self.db.commit()
        logger.info(f"[AccountShareService] Share {share_id} on account {account.id} revoked")

    def can_access(self, account_id: int, user_id: int) -> bool:
        try:
            self.account_repo.find_accessible(account_id, user_id)
        except NotFoundError:
            return False
        return True
