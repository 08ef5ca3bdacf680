"""Database engine and session factory for SQLite.

Repositories receive a ``sessionmaker`` and open one short-lived session per
call, so no connection outlives the request that used it.
"""

import logging
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from luna_dine.models.db_models import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///lunadine.db"


def create_database_engine(database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> Engine:
    """Create a SQLAlchemy engine with foreign keys enforced for SQLite.

    Args:
        database_url: SQLAlchemy database URL
        echo: Whether to log emitted SQL

    Returns:
        Configured engine
    """
    connect_args: dict[str, Any] = {}
    engine_options: dict[str, Any] = {}

    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        # An in-memory database only exists on a single shared connection
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            engine_options["poolclass"] = StaticPool

    engine = create_engine(database_url, connect_args=connect_args, echo=echo, **engine_options)

    if database_url.startswith("sqlite"):

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:  # noqa: ARG001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    logger.info(f"Database engine created for {engine.url.render_as_string(hide_password=True)}")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create the session factory shared by all repositories."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)
