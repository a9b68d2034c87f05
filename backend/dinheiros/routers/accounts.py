from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dinheiros.models.account import AccountCreate, AccountResponse, AccountUpdate
from dinheiros.models_sqlalchemy import get_db
from dinheiros.models_sqlalchemy.models import User
from dinheiros.services.account_service import AccountService
from dinheiros.services.auth import get_current_user

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


@router.get("", response_model=List[AccountResponse])
async def list_accounts(
    include_deleted: bool = Query(False),
    include_shared: bool = Query(True),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    accounts = AccountService(db).list_accounts(
        current_user.id, include_deleted=include_deleted, include_shared=include_shared
    )
    return [AccountResponse.for_user(account, current_user.id) for account in accounts]


@router.post("", response_model=AccountResponse, status_code=201)
async def create_account(
    payload: AccountCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    account = AccountService(db).create_account(
        current_user.id,
        payload.name,
        account_type=payload.type.value,
        initial_balance=payload.initial_balance,
        currency=payload.currency,
        color=payload.color,
    )
    return AccountResponse.for_user(account, current_user.id)


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    account = AccountService(db).get_account(account_id, current_user.id)
    return AccountResponse.for_user(account, current_user.id)


@router.put("/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: int,
    payload: AccountUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    account = AccountService(db).update_account(
        account_id,
        current_user.id,
        payload.name,
        account_type=payload.type.value if payload.type else None,
        color=payload.color,
    )
    return AccountResponse.for_user(account, current_user.id)


@router.delete("/{account_id}", status_code=204)
async def delete_account(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    AccountService(db).delete_account(account_id, current_user.id)


@router.post("/{account_id}/reactivate", status_code=204)
async def reactivate_account(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    AccountService(db).reactivate_account(account_id, current_user.id)
