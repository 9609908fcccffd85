"""
Engine and session lifecycle for the back-office database.

One module-level engine is configured by ``init_engine_from_url``.  On
PostgreSQL it runs a pre-pinging QueuePool at READ COMMITTED; document
sequences take ``SELECT ... FOR UPDATE`` where that is not enough.  The
SQLite engine used by the test-suite shares one static connection and lets
SQLAlchemy issue BEGIN so that SAVEPOINTs nest as they do on PostgreSQL.

Services only flush.  ``session_scope`` (or the caller that owns the
session) commits.
"""

import atexit
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from backoffice_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _sqlite_engine(database_url: str, echo: bool) -> Engine:
    engine = create_engine(
        database_url,
        echo=echo,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _autocommit_driver(dbapi_connection, connection_record):
        # pysqlite's own transaction handling breaks nested SAVEPOINTs
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the engine and session factory for ``database_url``.

    A second call disposes of nothing and simply replaces the first engine;
    call ``reset_engine`` beforehand to release its connections.  The pool
    arguments only apply to PostgreSQL.
    """
    global _engine, _session_factory

    dialect = make_url(database_url).get_backend_name()
    if dialect == "sqlite":
        _engine = _sqlite_engine(database_url, echo)
    else:
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={
        "dialect": dialect,
        "pool_size": 1 if dialect == "sqlite" else pool_size,
        "echo": echo,
    })
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("init_engine_from_url() has not been called")
    return _engine


def get_session() -> Session:
    """A new, unmanaged session; the caller commits and closes it."""
    if _session_factory is None:
        raise RuntimeError("init_engine_from_url() has not been called")
    return _session_factory()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Commit on success, roll back and re-raise on error, always close.

        with session_scope() as session:
            MaterialRequestService(session).approve_request(actor, request_id)
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create every table registered by the kernel and the modules."""
    from backoffice_kernel.db.base import Base
    from backoffice_modules._orm_registry import import_all_orm_models

    import_all_orm_models()
    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables() -> None:
    from backoffice_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


@atexit.register
def reset_engine() -> None:
    """Dispose of the engine's pooled connections and forget the engine."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
