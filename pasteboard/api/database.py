import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from pasteboard.api.errors import StorageError
from pasteboard.api.models import Base

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str) -> Engine:
    """
    Build the engine for the given URL.

    SQLite connections get check_same_thread=False (FastAPI runs sync handlers
    on a threadpool) and foreign key enforcement switched on.
    """
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}
    engine = create_engine(database_url, connect_args=connect_args, future=True)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        future=True,
        expire_on_commit=False,
    )


def init_schema(engine: Engine) -> None:
    """Create the accounts, sessions and notes tables if they are missing."""
    Base.metadata.create_all(bind=engine)


# PUBLIC_INTERFACE
@contextmanager
def session_scope(session_factory: sessionmaker, action: str) -> Iterator[Session]:
    """
    Provide a database session for one service operation.

    Any SQLAlchemy failure that escapes the block is logged, rolled back and
    re-raised as StorageError. The session is always closed.
    """
    db = session_factory()
    try:
        yield db
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Database error while %s", action)
        raise StorageError("Database error") from exc
    finally:
        db.close()
