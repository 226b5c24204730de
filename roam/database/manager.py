#!/usr/bin/env python3
"""
manager.py
--------------------
Lifecycle owner of the shared connection factory.

ConnectionFactoryManager is built once at application startup and handed
to every consumer. The first request for a handle runs the whole
bootstrap chain:

    ConfigResolver.resolve() -> MigrationRunner.apply() -> ConnectionFactory

Later requests reuse the cached factory. No handle can be obtained before
migrations have succeeded, because handles come only from the factory and
the factory is only built after a successful migration.

States:
    UNINITIALIZED -> INITIALIZING -> READY -> SHUTTING_DOWN -> CLOSED

A failed initialization returns to UNINITIALIZED and raises an
InitializationError; the application is expected to abort startup.

Usage:
    manager = ConnectionFactoryManager(logger=logger)
    with manager.handle_scope() as session:
        session.execute(text("SELECT 1"))
    manager.shutdown()
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import enum
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, Optional

# --- Third party ---
from sqlalchemy.orm import Session

# --- Local imports ---
from roam.core.exceptions import (
    FactoryClosedError,
    FactoryConstructionError,
    HandleAcquisitionError,
    InitializationTimeoutError,
    MigrationFailedError,
)
from roam.core.logging_manager import RoamLogger, safe_logger
from .config import ConfigResolver, ConnectionCredentials
from .factory import ConnectionFactory
from .migrations import MigrationResult, MigrationRunner


FactoryBuilder = Callable[[ConnectionCredentials], ConnectionFactory]


class FactoryState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"
    CLOSED = "closed"


class ConnectionFactoryManager:
    """
    Thread-safe, lazily initialized owner of the ConnectionFactory.

    Attributes:
        resolver (ConfigResolver): Credential cascade
        runner (MigrationRunner): Schema migration runner
        factory_builder (Callable): Builds the factory from credentials
        logger (RoamLogger | None): Optional logger
    """

    def __init__(
        self,
        resolver: Optional[ConfigResolver] = None,
        runner: Optional[MigrationRunner] = None,
        factory_builder: Optional[FactoryBuilder] = None,
        engine_options: Optional[Dict[str, Any]] = None,
        logger: Optional[RoamLogger] = None,
    ) -> None:
        """
        Args:
            resolver: Credential resolver (default: env/file/default cascade)
            runner: Migration runner (default: bundled migrations)
            factory_builder: Factory constructor override
            engine_options: Extra ``create_engine`` options for the default builder
            logger: Optional RoamLogger
        """
        self.logger = logger
        self.resolver = resolver or ConfigResolver(logger=logger)
        self.runner = runner or MigrationRunner(logger=logger)
        self.engine_options = dict(engine_options or {})
        self.factory_builder = factory_builder or self._build_factory

        self._lock = threading.Lock()
        self._state = FactoryState.UNINITIALIZED
        self._factory: Optional[ConnectionFactory] = None
        self._credentials: Optional[ConnectionCredentials] = None
        self._migration_result: Optional[MigrationResult] = None

    # ---- Properties ----
    @property
    def state(self) -> FactoryState:
        return self._state

    @property
    def credentials(self) -> Optional[ConnectionCredentials]:
        """Credentials used to build the factory (None before READY)."""
        return self._credentials

    @property
    def migration_result(self) -> Optional[MigrationResult]:
        return self._migration_result

    # ---- Factory ----
    def get_factory(self, timeout: Optional[float] = None) -> ConnectionFactory:
        """
        Return the shared factory, initializing it on first use.

        Args:
            timeout: Optional bound in seconds on waiting for and running
                initialization (lock wait plus migration)

        Returns:
            The single ConnectionFactory

        Raises:
            MigrationFailedError: If migrations did not succeed
            FactoryConstructionError: If the factory could not be built
            InitializationTimeoutError: If initialization did not finish in time
            FactoryClosedError: If the manager was shut down
        """
        factory = self._factory
        if self._state is FactoryState.READY and factory is not None:
            return factory

        started = time.monotonic()
        acquired = self._lock.acquire() if timeout is None else self._lock.acquire(timeout=timeout)
        if not acquired:
            raise InitializationTimeoutError(
                f"Timed out after {timeout}s waiting for database initialization"
            )

        try:
            if self._state is FactoryState.READY and self._factory is not None:
                return self._factory
            if self._state in (FactoryState.SHUTTING_DOWN, FactoryState.CLOSED):
                raise FactoryClosedError("Connection factory has been shut down")

            remaining = None if timeout is None else max(timeout - (time.monotonic() - started), 0.0)
            return self._initialize(remaining)
        finally:
            self._lock.release()

    def _initialize(self, timeout: Optional[float]) -> ConnectionFactory:
        """Run resolve -> migrate -> construct. Caller holds the lock."""
        log = safe_logger(self.logger)
        self._state = FactoryState.INITIALIZING
        log.log_info("🔧 Initializing database connection factory...")

        try:
            credentials = self.resolver.resolve()

            log.log_info("🔄 Running database migrations...")
            if not self.runner.apply(credentials, timeout=timeout):
                raise MigrationFailedError(
                    "Database migration failed. Cannot initialize connection factory."
                )

            try:
                factory = self.factory_builder(credentials)
            except Exception as e:
                raise FactoryConstructionError(
                    f"Failed to build connection factory: {e}"
                ) from e

        except Exception as e:
            self._state = FactoryState.UNINITIALIZED
            log.log_error(e, {"operation": "initialize_factory"})
            raise

        self._credentials = credentials
        self._migration_result = self.runner.last_result
        self._factory = factory
        self._state = FactoryState.READY
        log.log_operation("factory_initialized", credentials.masked())
        return factory

    def _build_factory(self, credentials: ConnectionCredentials) -> ConnectionFactory:
        return ConnectionFactory.from_credentials(
            credentials,
            engine_options=self.engine_options,
            logger=self.logger,
        )

    # ---- Handles ----
    def get_handle(self) -> Session:
        """
        Create a new, independent handle (SQLAlchemy session).

        The caller owns the handle and must close it; prefer
        ``handle_scope()``.

        Raises:
            InitializationError: If first-use initialization fails
            HandleAcquisitionError: If this handle cannot be created
        """
        factory = self.get_factory()
        try:
            return factory.create_handle()
        except (FactoryClosedError, HandleAcquisitionError):
            raise
        except Exception as e:
            raise HandleAcquisitionError(f"Could not acquire database handle: {e}") from e

    @contextmanager
    def handle_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope around one unit of work.

        Commits on success, rolls back on error, always closes.

        Usage:
            with manager.handle_scope() as session:
                session.add(obj)
        """
        log = safe_logger(self.logger)
        session = self.get_handle()
        handle_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        log.log_debug("handle_open", {"handle_id": handle_id})

        try:
            yield session
            session.commit()
            log.log_debug("handle_commit", {"handle_id": handle_id})
        except Exception as e:
            session.rollback()
            log.log_error(e, {"operation": "handle_rollback", "handle_id": handle_id})
            raise
        finally:
            session.close()
            log.log_debug("handle_close", {"handle_id": handle_id})

    # ---- Lifecycle ----
    def shutdown(self) -> None:
        """
        Close the factory if one is open. Idempotent.

        Safe whether or not the factory was ever initialized.
        """
        with self._lock:
            factory = self._factory
            if self._state is FactoryState.CLOSED or factory is None or not factory.is_open:
                return

            log = safe_logger(self.logger)
            log.log_info("🔒 Shutting down database connection factory...")
            self._state = FactoryState.SHUTTING_DOWN
            try:
                factory.close()
            finally:
                self._state = FactoryState.CLOSED
            log.log_info("✓ Database shutdown complete")

    def __enter__(self) -> "ConnectionFactoryManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        del exc_type, exc_val, exc_tb
        self.shutdown()
