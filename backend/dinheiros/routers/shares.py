from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dinheiros.models.share import ShareCreate, ShareResponse
from dinheiros.models_sqlalchemy import get_db
from dinheiros.models_sqlalchemy.models import AccountShare, User
from dinheiros.services.account_share_service import AccountShareService
from dinheiros.services.auth import get_current_user

router = APIRouter(prefix="/api/accounts", tags=["shares"])


def _share_response(share: AccountShare) -> ShareResponse:
    response = ShareResponse.model_validate(share)
    if share.shared_user is not None:
        response.shared_user_email = share.shared_user.email
    return response


@router.get("/{account_id}/shares", response_model=List[ShareResponse])
async def list_shares(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    shares = AccountShareService(db).list_shares(account_id, current_user.id)
    return [_share_response(share) for share in shares]


@router.post("/{account_id}/shares", response_model=ShareResponse, status_code=201)
async def share_account(
    account_id: int,
    payload: ShareCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    share = AccountShareService(db).share_account(account_id, current_user.id, payload.email)
    return _share_response(share)


@router.delete("/{account_id}/shares/{share_id}", status_code=204)
async def revoke_share(
    account_id: int,
    share_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    AccountShareService(db).revoke_share(account_id, share_id, current_user.id)
