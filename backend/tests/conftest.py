from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dinheiros.main import app
from dinheiros.models_sqlalchemy import Base, get_db
from dinheiros.models_sqlalchemy.models import Account, User
from dinheiros.services.auth import create_access_token, get_password_hash

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make_user(name="Alice", email="alice@mail.com", password="secret123"):
        user = User(name=name, email=email, hashed_password=get_password_hash(password))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_account(db):
    def _make_account(user, name="Wallet", balance="0.00", account_type="checking"):
        account = Account(
            user_id=user.id,
            name=name,
            type=account_type,
            currency="BRL",
            initial_balance=Decimal(balance),
            balance=Decimal(balance),
            color="#cccccc",
        )
        db.add(account)
        db.commit()
        db.refresh(account)
        return account
    return _make_account


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def noon():
    return datetime(2023, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixture_text():
    def _read(name: str) -> str:
        return (FIXTURES_DIR / name).read_text(encoding="utf-8")
    return _read


