#!/usr/bin/env python3
"""
factory.py
--------------------
The shared connection factory: one SQLAlchemy engine (connection pool)
plus a session factory producing short-lived handles.

Also holds the URL and SQLite helpers shared with the migration runner.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
from pathlib import Path
from typing import Any, Dict, Optional

# --- Third party ---
from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import Session, sessionmaker

# --- Local imports ---
from roam.core.exceptions import FactoryClosedError, HandleAcquisitionError
from roam.core.logging_manager import RoamLogger, safe_logger
from .config import ConnectionCredentials


def build_url(credentials: ConnectionCredentials) -> URL:
    """
    Build the effective database URL from resolved credentials.

    The resolved driver replaces the URL's driver name. For server
    backends the resolved username and password replace any embedded in
    the URL; SQLite URLs never carry them.

    Args:
        credentials: Resolved connection credentials

    Returns:
        SQLAlchemy URL object
    """
    url = make_url(credentials.url)
    if credentials.driver:
        url = url.set(drivername=credentials.driver)

    if url.get_backend_name() != "sqlite":
        url = url.set(
            username=credentials.username or url.username,
            password=credentials.password or url.password,
        )
    return url


def is_sqlite(url: URL) -> bool:
    return url.get_backend_name() == "sqlite"


def sqlite_file(url: URL) -> Optional[Path]:
    """Filesystem path of a file-backed SQLite URL, None for memory/URI forms."""
    database = url.database
    if not is_sqlite(url) or not database or database == ":memory:":
        return None
    if database.startswith("file:"):
        return None
    return Path(database)


def ensure_sqlite_directory(url: URL) -> None:
    """Create the parent directory of a file-backed SQLite store."""
    db_file = sqlite_file(url)
    if db_file is not None:
        db_file.expanduser().parent.mkdir(parents=True, exist_ok=True)


def enable_transactional_ddl(engine: Engine) -> None:
    """
    Make pysqlite run DDL inside the surrounding transaction.

    The driver's own transaction handling only begins transactions before
    DML; emitting BEGIN ourselves makes CREATE/ALTER part of the same
    atomic unit as the history row.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


class ConnectionFactory:
    """
    Pooled access to the Roam store.

    Attributes:
        engine (Engine): SQLAlchemy engine (owns the connection pool)
        SessionLocal (sessionmaker): Session factory bound to the engine
    """

    def __init__(
        self,
        engine: Engine,
        logger: Optional[RoamLogger] = None,
    ) -> None:
        self.engine = engine
        self.logger = logger
        self.SessionLocal: sessionmaker = sessionmaker(
            bind=self.engine,
            autoflush=True,
            expire_on_commit=False,
            future=True,
        )
        self._open = True

    @classmethod
    def from_credentials(
        cls,
        credentials: ConnectionCredentials,
        engine_options: Optional[Dict[str, Any]] = None,
        logger: Optional[RoamLogger] = None,
    ) -> "ConnectionFactory":
        """
        Build the factory from runtime credentials.

        Runtime credentials always win over anything in ``engine_options``
        or embedded in the configured URL.

        Args:
            credentials: Resolved credentials
            engine_options: Extra ``create_engine`` keyword arguments
            logger: Optional RoamLogger
        """
        url = build_url(credentials)
        ensure_sqlite_directory(url)

        options: Dict[str, Any] = {"echo": False, "future": True, "pool_pre_ping": True}
        options.update(engine_options or {})

        engine = create_engine(url, **options)
        safe_logger(logger).log_operation(
            "connection_factory_created",
            {"url": url.render_as_string(hide_password=True), "driver": credentials.driver},
        )
        return cls(engine, logger=logger)

    @property
    def is_open(self) -> bool:
        return self._open

    def create_handle(self) -> Session:
        """
        Create a new, independent session.

        Raises:
            FactoryClosedError: If the factory was closed
            HandleAcquisitionError: If the session cannot be created
        """
        if not self._open:
            raise FactoryClosedError("Connection factory is closed")
        try:
            return self.SessionLocal()
        except Exception as e:
            raise HandleAcquisitionError(f"Could not create database handle: {e}") from e

    def ping(self) -> bool:
        """Run ``SELECT 1`` through a pooled connection."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def close(self) -> None:
        """Dispose the pool. Safe to call more than once."""
        if not self._open:
            return
        self._open = False
        self.engine.dispose()
        safe_logger(self.logger).log_operation("connection_factory_closed")
