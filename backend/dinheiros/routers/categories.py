from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dinheiros.models.category import (
    CategorizationRuleCreate,
    CategorizationRuleResponse,
    CategorizationRuleUpdate,
    CategoryCreate,
    CategoryResponse,
)
from dinheiros.models_sqlalchemy import get_db
from dinheiros.models_sqlalchemy.models import User
from dinheiros.services.auth import get_current_user
from dinheiros.services.categorization_rules import CategorizationRuleService
from dinheiros.services.category_service import CategoryService

router = APIRouter(prefix="/api", tags=["categories"])


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return [CategoryResponse.model_validate(c) for c in CategoryService(db).list_categories(current_user.id)]


@router.post("/categories", response_model=CategoryResponse, status_code=201)
async def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    category = CategoryService(db).create_category(
        current_user.id, payload.name, payload.type.value, description=payload.description
    )
    return CategoryResponse.model_validate(category)


@router.delete("/categories/{category_id}", status_code=204)
async def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    CategoryService(db).delete_category(category_id, current_user.id)


@router.get("/categorization-rules", response_model=List[CategorizationRuleResponse])
async def list_rules(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    rules = CategorizationRuleService(db).list_rules(current_user.id)
    return [CategorizationRuleResponse.model_validate(rule) for rule in rules]


@router.post("/categorization-rules", response_model=CategorizationRuleResponse, status_code=201)
async def create_rule(
    payload: CategorizationRuleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rule = CategorizationRuleService(db).create_rule(
        current_user.id,
        payload.name,
        payload.type,
        payload.value,
        payload.category_dst,
        active=payload.active,
    )
    return CategorizationRuleResponse.model_validate(rule)


@router.put("/categorization-rules/{rule_id}", response_model=CategorizationRuleResponse)
async def update_rule(
    rule_id: int,
    payload: CategorizationRuleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    rule = CategorizationRuleService(db).update_rule(
        rule_id, current_user.id, **payload.model_dump(exclude_unset=True)
    )
    return CategorizationRuleResponse.model_validate(rule)


@router.delete("/categorization-rules/{rule_id}", status_code=204)
async def delete_rule(
    rule_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    CategorizationRuleService(db).delete_rule(rule_id, current_user.id)
