from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from dinheiros.models.common import UTCDateTime
from dinheiros.models_sqlalchemy.models import Account, AccountType


class AccountCreate(BaseModel):
    name: str
    type: AccountType = AccountType.checking
    initial_balance: Decimal = Field(default=Decimal("0"), decimal_places=2)
    currency: str = "BRL"
    color: Optional[str] = None


class AccountUpdate(BaseModel):
    name: str
    type: Optional[AccountType] = None
    color: Optional[str] = None


class AccountResponse(BaseModel):
    id: int
    user_id: int
    name: str
    type: str
    currency: str
    initial_balance: float
    balance: float
    color: Optional[str] = None
    created_at: Optional[UTCDateTime] = None
    deleted_at: Optional[UTCDateTime] = None
    is_owner: bool = True
    owner_name: Optional[str] = None

    class Config:
        from_attributes = True

    @classmethod
    def for_user(cls, account: Account, user_id: int) -> "AccountResponse":
        response = cls.model_validate(account)
        response.is_owner = account.user_id == user_id
        if not response.is_owner and account.user is not None:
            response.owner_name = account.user.name
        return response
