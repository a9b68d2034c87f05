from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from dinheiros.config import settings
from dinheiros.errors import PersistenceError
from dinheiros.utils.logger import logger

DATABASE_URL = settings.database_url

# SQLite is the default store; the same models also run against Postgres when
# DATABASE_URL points there.
if DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}
    engine_kwargs = {}
else:
    connect_args = {"connect_timeout": 10}
    engine_kwargs = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 3600,
    }

engine = create_engine(
    DATABASE_URL,
    connect_args=connect_args,
    echo=False,
    **engine_kwargs,
)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


if DATABASE_URL.startswith("sqlite"):
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db() -> None:
    """Create any missing tables (SQLite dev mode; Postgres uses Alembic)."""
    from dinheiros.models_sqlalchemy import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """Run a block inside one database transaction on ``db``.

    Commits when the block finishes, rolls back on any exception. Database
    errors surface as ``PersistenceError``; anything else is re-raised as is.
    """
    if not db.in_transaction():
        db.begin()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database transaction rolled back: {e}")
        raise PersistenceError(str(e)) from e
    except Exception:
        db.rollback()
        raise
