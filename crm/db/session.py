"""
crm/db/session.py — SQLAlchemy engine and session factory.

Usage:
    from crm.db.session import get_db

    # As a FastAPI dependency:
    def my_route(db: Session = Depends(get_db)):
        ...

    # In scripts:
    with get_session() as db:
        ...
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from crm.config import settings


def configure_sqlite(engine: Engine) -> Engine:
    """
    Let pysqlite honour SAVEPOINTs.

    The record store wraps every write in Session.begin_nested(); pysqlite's
    own transaction handling defeats that, so BEGIN is emitted by SQLAlchemy
    instead of the driver.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def _build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        return configure_sqlite(
            create_engine(
                url,
                connect_args={"check_same_thread": False},
                echo=settings.sql_echo,
            )
        )
    return create_engine(
        url,
        pool_pre_ping=True,          # reconnect on stale connections
        pool_size=5,
        max_overflow=10,
        echo=settings.sql_echo,
    )


engine = _build_engine(settings.database_url)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a DB session and ensures it's closed."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Context manager for use in scripts and services (non-FastAPI code)."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
