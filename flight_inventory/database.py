"""Database helpers for the flight inventory."""
from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

DEFAULT_DB_URL = os.environ.get("AIRLINE_DB_URL", "sqlite+pysqlite:///airline.db")

# Seconds SQLite waits on a locked database file before reporting
# "database is locked".
_SQLITE_BUSY_TIMEOUT = float(os.environ.get("AIRLINE_SQLITE_BUSY_TIMEOUT", 15))

# Execution option marking a transaction that must hold the database write
# lock from its first statement.
WRITE_LOCK_OPTION = "inventory_write_lock"


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # Stop pysqlite from issuing its own BEGIN; _begin_sqlite_transaction does it.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_sqlite_transaction(conn: Connection) -> None:
    if conn.get_execution_options().get(WRITE_LOCK_OPTION):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
    else:
        conn.exec_driver_sql("BEGIN")


def create_session_factory(
    db_url: str = DEFAULT_DB_URL,
    *,
    echo: bool = False,
    connect_args: Optional[Dict[str, object]] = None,
) -> Tuple[Engine, sessionmaker[Session]]:
    """Return an engine/session factory pair configured for SQLite by default."""

    is_sqlite = db_url.startswith("sqlite")
    if is_sqlite:
        final_connect_args: Dict[str, object] = {
            "check_same_thread": False,
            "timeout": _SQLITE_BUSY_TIMEOUT,
        }
        if connect_args:
            final_connect_args.update(connect_args)
    else:
        final_connect_args = connect_args or {}

    if db_url.endswith(":memory:"):
        engine = create_engine(
            db_url,
            echo=echo,
            connect_args=final_connect_args,
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            db_url,
            echo=echo,
            connect_args=final_connect_args,
        )
    if is_sqlite:
        event.listen(engine, "connect", _configure_sqlite_connection)
        event.listen(engine, "begin", _begin_sqlite_transaction)
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    return engine, session_factory


def init_db(db_url: str = DEFAULT_DB_URL, *, echo: bool = False) -> sessionmaker[Session]:
    """Create all tables and return a session factory."""

    engine, session_factory = create_session_factory(db_url, echo=echo)
    Base.metadata.create_all(engine)
    return session_factory


@contextmanager
def session_scope(session_factory: sessionmaker[Session], *, write_lock: bool = False) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations.

    With ``write_lock`` the transaction starts immediately and holds the
    database write lock until commit. On SQLite this is ``BEGIN IMMEDIATE``,
    which serializes writers across processes sharing one database file.
    Other backends rely on the ``SELECT ... FOR UPDATE`` row locks taken by
    the caller.
    """

    session = session_factory()
    try:
        if write_lock:
            session.connection(execution_options={WRITE_LOCK_OPTION: True})
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
