from typing import Optional

from pydantic import BaseModel

from dinheiros.models_sqlalchemy.models import TransactionType


class CategoryCreate(BaseModel):
    name: str
    type: TransactionType
    description: Optional[str] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    type: str
    description: Optional[str] = None

    class Config:
        from_attributes = True


class CategorizationRuleCreate(BaseModel):
    name: str
    type: str = "regex"
    value: str
    category_dst: int
    active: bool = True


class CategorizationRuleUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    value: Optional[str] = None
    category_dst: Optional[int] = None
    active: Optional[bool] = None


class CategorizationRuleResponse(BaseModel):
    id: int
    name: str
    type: str
    value: str
    category_dst: int
    active: bool

    class Config:
        from_attributes = True
