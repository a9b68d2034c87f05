from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from dinheiros.errors import NotFoundError
from dinheiros.models.transaction import (
    DashboardSummary,
    StatisticsSeries,
    TransactionCreate,
    TransactionPage,
    TransactionResponse,
)
from dinheiros.models_sqlalchemy import get_db
from dinheiros.models_sqlalchemy.models import User
from dinheiros.services.auth import get_current_user
from dinheiros.services.transaction_service import TransactionService

router = APIRouter(prefix="/api", tags=["transactions"])


@router.get("/accounts/{account_id}/transactions", response_model=List[TransactionResponse])
async def list_account_transactions(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    transactions = TransactionService(db).list_by_account(current_user.id, account_id)
    return [TransactionResponse.model_validate(txn) for txn in transactions]


@router.post("/accounts/{account_id}/transactions", response_model=TransactionResponse, status_code=201)
async def create_transaction(
    account_id: int,
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    txn = TransactionService(db).create(
        current_user.id,
        account_id,
        payload.amount,
        payload.type,
        description=payload.description,
        to_account_id=payload.to_account_id,
        category_ids=payload.category_ids,
        date=payload.date,
    )
    return TransactionResponse.model_validate(txn)


@router.get("/accounts/{account_id}/transactions/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    account_id: int,
    transaction_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    txn = TransactionService(db).get_by_id(current_user.id, transaction_id)
    if txn.account_id != account_id:
        raise NotFoundError("transaction not found")
    return TransactionResponse.model_validate(txn)


@router.delete("/accounts/{account_id}/transactions/{transaction_id}", status_code=204)
async def delete_transaction(
    account_id: int,
    transaction_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    service = TransactionService(db)
    txn = service.get_by_id(current_user.id, transaction_id)
    if txn.account_id != account_id:
        raise NotFoundError("transaction not found")
    service.delete(current_user.id, transaction_id)


@router.get("/transactions", response_model=TransactionPage)
async def search_transactions(
    types: Optional[List[str]] = Query(None, alias="type"),
    account_ids: Optional[List[int]] = Query(None, alias="account_id"),
    category_ids: Optional[List[int]] = Query(None, alias="category_id"),
    description: Optional[str] = None,
    min_amount: Optional[Decimal] = None,
    max_amount: Optional[Decimal] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    transactions, total = TransactionService(db).search(
        current_user.id,
        types=types,
        account_ids=account_ids,
        category_ids=category_ids,
        description=description,
        min_amount=min_amount,
        max_amount=max_amount,
        start_date=start_date,
        end_date=end_date,
        page=page,
        page_size=page_size,
    )
    return TransactionPage(
        transactions=[TransactionResponse.model_validate(txn) for txn in transactions],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/dashboard/summary", response_model=DashboardSummary)
async def dashboard_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    total_balance, month_income, month_expense, recent = TransactionService(db).dashboard_summary(current_user.id)
    return DashboardSummary(
        total_balance=total_balance,
        month_income=month_income,
        month_expense=month_expense,
        recent_transactions=[TransactionResponse.model_validate(txn) for txn in recent],
    )


@router.get("/statistics/{series}", response_model=StatisticsSeries)
async def statistics(
    series: str,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return TransactionService(db).statistics(series, current_user.id, start_date=start_date, end_date=end_date)
