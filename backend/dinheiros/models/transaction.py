from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from dinheiros.models.category import CategoryResponse
from dinheiros.models.common import UTCDateTime
from dinheiros.models_sqlalchemy.models import TransactionType


class TransactionCreate(BaseModel):
    amount: Decimal = Field(gt=0, decimal_places=2)
    type: TransactionType
    description: str = ""
    date: datetime
    to_account_id: Optional[int] = None
    category_ids: List[int] = Field(default_factory=list)


class TransactionResponse(BaseModel):
    id: int
    date: UTCDateTime
    amount: float
    type: str
    description: str
    account_id: int
    to_account_id: Optional[int] = None
    categories: List[CategoryResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class TransactionPage(BaseModel):
    transactions: List[TransactionResponse]
    total: int
    page: int
    page_size: int


class DashboardSummary(BaseModel):
    total_balance: float
    month_income: float
    month_expense: float
    recent_transactions: List[TransactionResponse]


class ExtractedTransaction(BaseModel):
    """A statement line ready for review before it is posted."""
    date: UTCDateTime
    amount: float
    type: TransactionType
    description: str
    account_id: int
    category_ids: List[int] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ImportTransactionsRequest(BaseModel):
    transactions: List[TransactionCreate]


class StatisticsSeries(BaseModel):
    labels: List[str]
    data: Optional[List[float]] = None
    spent: Optional[List[float]] = None
    gained: Optional[List[float]] = None
