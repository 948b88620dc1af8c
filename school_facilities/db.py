# school_facilities/db.py
from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import settings


class Base(DeclarativeBase):
    pass


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON;")
    cursor.close()


def make_engine(url: str, **kwargs) -> Engine:
    """
    Build an engine for `url`.

    SQLite does not enforce REFERENCES clauses unless the pragma is switched on
    per connection, so every sqlite engine gets a connect hook.
    """
    eng = create_engine(url, pool_pre_ping=True, future=True, **kwargs)
    if eng.dialect.name == "sqlite":
        event.listen(eng, "connect", _enable_sqlite_foreign_keys)
    return eng


engine = make_engine(settings.database_url, echo=settings.sql_echo)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)


def init_db(bind: Engine | None = None) -> None:
    # Import for side effect: registers every table on Base.metadata.
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db():
    """
    Yields a session for one unit of work.

    If any statement fails the transaction is aborted (Postgres refuses further
    statements until a rollback), so roll back before re-raising.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
