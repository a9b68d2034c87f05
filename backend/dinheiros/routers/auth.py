from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from dinheiros.models.user import PasswordUpdate, UserCreate, UserLogin, UserNameUpdate, UserResponse, Token
from dinheiros.models_sqlalchemy import get_db
from dinheiros.models_sqlalchemy.models import User
from dinheiros.services.auth import (
    register_user,
    authenticate_user,
    create_access_token,
    get_current_user,
    update_name,
    update_password,
)
from dinheiros.utils.logger import logger

router = APIRouter(prefix="/api/auth", tags=["authentication"])


def _token_response(user: User) -> Token:
    return Token(
        access_token=create_access_token(user.id),
        token_type="bearer",
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=Token, status_code=201)
async def register(user_data: UserCreate, db: Session = Depends(get_db)):
    logger.info(f"Registration attempt for email: {user_data.email}")
    user = register_user(db, user_data.name, user_data.email, user_data.password)
    return _token_response(user)


@router.post("/login", response_model=Token)
async def login(user_credentials: UserLogin, request: Request, db: Session = Depends(get_db)):
    rid = getattr(request.state, "rid", "unknown")
    logger.info(f"Login attempt email={user_credentials.email} rid={rid}")
    user = authenticate_user(db, user_credentials.email, user_credentials.password)
    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)


@router.patch("/me", response_model=UserResponse)
async def change_name(
    payload: UserNameUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = update_name(db, current_user, payload.name)
    return UserResponse.model_validate(user)


@router.patch("/me/password")
async def change_password(
    payload: PasswordUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    update_password(db, current_user, payload.current_password, payload.new_password)
    return {"message": "password updated"}
