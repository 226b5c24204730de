#!/usr/bin/env python3
"""
migrations.py
--------------------
Versioned schema migrations for the Roam store.

MigrationRunner brings a store up to date before anything else touches it:

    1. Open an administrative engine with the resolved credentials
    2. Create the history table; baseline an existing unmanaged store
    3. Validate history against local scripts; on mismatch repair once
    4. Apply pending scripts in version order (out-of-order allowed),
       each script and its history row in one transaction
    5. Report executed count and the final version

``apply`` never raises: every failure is logged and reported as False,
and the caller must not go on to build the connection factory.

Usage:
    runner = MigrationRunner(logger=logger)
    if not runner.apply(credentials):
        raise SystemExit("schema could not be brought up to date")
    print(runner.last_result.migrations_executed)
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

# --- Third party ---
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import NullPool

# --- Local imports ---
from roam.core.exceptions import (
    MigrationError,
    MigrationRepairError,
    MigrationTimeoutError,
    MigrationValidationError,
)
from roam.core.logging_manager import RoamLogger, safe_logger
from roam.core.paths import MIGRATIONS_DIR
from .config import ConnectionCredentials
from .decorators import handle_db_errors, log_database_operation
from .factory import build_url, enable_transactional_ddl, ensure_sqlite_directory, is_sqlite
from .history import (
    TYPE_BASELINE,
    MigrationRecord,
    MigrationState,
    SchemaHistory,
)
from .scripts import MigrationScript, MigrationVersion, discover_scripts


# Repairs allowed per apply() call. Validation is not re-run after a repair.
MAX_REPAIR_ATTEMPTS = 1
DEFAULT_BASELINE_VERSION = "0"


@dataclass(frozen=True)
class MigrationResult:
    """
    Summary of one successful migration run.

    Attributes:
        migrations_executed: Scripts executed by this run
        initial_version: Version before the run (None for an empty history)
        current_version: Version after the run
        repaired: Whether the history was repaired during this run
        baselined: Whether an existing store was baselined during this run
    """

    migrations_executed: int
    initial_version: Optional[MigrationVersion]
    current_version: Optional[MigrationVersion]
    repaired: bool = False
    baselined: bool = False


class Deadline:
    """Optional time budget checked between migration steps."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout
        self._expires = None if timeout is None else time.monotonic() + timeout

    def remaining(self) -> Optional[float]:
        if self._expires is None:
            return None
        return max(self._expires - time.monotonic(), 0.0)

    def check(self, step: str) -> None:
        """
        Raises:
            MigrationTimeoutError: If the budget is spent
        """
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise MigrationTimeoutError(
                f"Migration exceeded its {self.timeout}s budget before {step}"
            )


class MigrationRunner:
    """
    Applies, validates and repairs versioned migrations.

    Attributes:
        migrations_dir (Path): Folder holding ``V*__*.sql|py`` scripts
        baseline_version (MigrationVersion): Version recorded when an
            existing unmanaged store is first brought under management
        baseline_on_migrate (bool): Whether to baseline such stores
        logger (RoamLogger | None): Optional logger
        last_result (MigrationResult | None): Result of the last
            successful ``apply``; None after a failure
    """

    def __init__(
        self,
        migrations_dir: Optional[Union[str, Path]] = None,
        baseline_version: Union[str, MigrationVersion] = DEFAULT_BASELINE_VERSION,
        baseline_on_migrate: bool = True,
        logger: Optional[RoamLogger] = None,
    ) -> None:
        self.migrations_dir = Path(migrations_dir) if migrations_dir else MIGRATIONS_DIR
        self.baseline_version = MigrationVersion.parse(baseline_version)
        self.baseline_on_migrate = baseline_on_migrate
        self.logger = logger
        self.last_result: Optional[MigrationResult] = None

    # ---- Public API ----
    def apply(
        self, credentials: ConnectionCredentials, timeout: Optional[float] = None
    ) -> bool:
        """
        Bring the store up to date.

        Args:
            credentials: Resolved connection credentials
            timeout: Optional budget in seconds for the whole run

        Returns:
            True if the schema is current, False on any failure
        """
        log = safe_logger(self.logger)
        self.last_result = None
        try:
            self.last_result = self.migrate(credentials, timeout=timeout)
        except Exception as e:
            log.log_warning(
                f"❌ Migration failed: {e}",
                {"error_type": type(e).__name__, "url": credentials.url},
            )
            log.log_warning("Database schema may be inconsistent. Check migration scripts.")
            return False
        return True

    @log_database_operation("migrate")
    def migrate(
        self, credentials: ConnectionCredentials, timeout: Optional[float] = None
    ) -> MigrationResult:
        """
        Run the full migration protocol.

        Unlike ``apply`` this raises on failure.

        Returns:
            MigrationResult for the run

        Raises:
            MigrationError: On script, validation-repair, apply or timeout failures
            DatabaseError: On store access failures
        """
        log = safe_logger(self.logger)
        deadline = Deadline(timeout)
        log.log_info("🔄 Initializing database migrations...")

        scripts = discover_scripts(self.migrations_dir)
        engine = self._admin_engine(credentials, deadline)
        try:
            deadline.check("history preparation")
            baselined = self._prepare_history(engine)
            initial = self._current_version(engine)
            if initial is None:
                log.log_info("📊 No migrations applied yet. Running initial migration...")
            else:
                log.log_info(f"📊 Current database version: {initial}")

            deadline.check("validation")
            repaired = False
            repairs_attempted = 0
            try:
                self._validate(engine, scripts)
            except MigrationValidationError as e:
                log.log_warning(
                    "⚠️ Validation failed. Attempting to repair schema history...",
                    {"problems": e.problems},
                )
                if repairs_attempted >= MAX_REPAIR_ATTEMPTS:
                    raise
                repairs_attempted += 1
                self._repair(engine, scripts)
                repaired = True
                log.log_info("✅ Schema history repaired. Continuing with migration...")

            executed = 0
            for script in self._pending(engine, scripts):
                deadline.check(f"migration {script.version}")
                self._execute(engine, script)
                executed += 1

            current = self._current_version(engine)
        finally:
            engine.dispose()

        if executed == 0:
            log.log_info("✅ Database schema is up-to-date (no new migrations)")
        else:
            log.log_info(f"✅ Successfully applied {executed} migration(s)")
        if current is not None:
            log.log_info(f"📌 Final database version: {current}")

        return MigrationResult(
            migrations_executed=executed,
            initial_version=initial,
            current_version=current,
            repaired=repaired,
            baselined=baselined,
        )

    def validate(self, credentials: ConnectionCredentials) -> bool:
        """
        Check the store's history against local scripts.

        Returns:
            True if history is consistent, False otherwise
        """
        log = safe_logger(self.logger)
        try:
            scripts = discover_scripts(self.migrations_dir)
            engine = self._admin_engine(credentials, Deadline())
            try:
                self._validate(engine, scripts)
            finally:
                engine.dispose()
        except MigrationValidationError as e:
            log.log_warning("❌ Database schema validation failed", {"problems": e.problems})
            return False
        except Exception as e:
            log.log_error(e, {"operation": "validate_migrations"})
            return False

        log.log_info("✅ Database schema validation passed")
        return True

    def repair(self, credentials: ConnectionCredentials) -> bool:
        """
        Remove failed history rows and realign checksums.

        Returns:
            True if the repair succeeded
        """
        log = safe_logger(self.logger)
        log.log_warning("⚠️ Repairing schema history...")
        try:
            scripts = discover_scripts(self.migrations_dir)
            engine = self._admin_engine(credentials, Deadline())
            try:
                self._repair(engine, scripts)
            finally:
                engine.dispose()
        except Exception as e:
            log.log_error(e, {"operation": "repair_migrations"})
            return False

        log.log_info("✅ Schema history repaired")
        return True

    @handle_db_errors
    def info(self, credentials: ConnectionCredentials) -> List[MigrationRecord]:
        """
        Applied, failed and pending migrations sorted by version.

        Raises:
            DatabaseError: If the store cannot be read
            MigrationScriptError: If local scripts are invalid
        """
        scripts = discover_scripts(self.migrations_dir)
        engine = self._admin_engine(credentials, Deadline())
        try:
            with engine.connect() as conn:
                history = SchemaHistory(conn)
                records = history.records() if history.exists() else []
            pending = self._pending_from(records, scripts)
        finally:
            engine.dispose()

        records = records + [
            MigrationRecord(
                version=script.version,
                description=script.description,
                installed_on=None,
                state=MigrationState.PENDING,
                checksum=script.checksum,
                script=script.script,
                type=script.kind,
            )
            for script in pending
        ]
        return sorted(records, key=lambda r: (r.version, r.installed_rank or 0))

    @handle_db_errors
    def current_version(self, credentials: ConnectionCredentials) -> Optional[MigrationVersion]:
        """Highest successfully applied version, or None."""
        engine = self._admin_engine(credentials, Deadline())
        try:
            return self._current_version(engine)
        finally:
            engine.dispose()

    def scripts(self) -> List[MigrationScript]:
        """Local migration scripts sorted by version."""
        return discover_scripts(self.migrations_dir)

    # ---- Engine ----
    def _admin_engine(self, credentials: ConnectionCredentials, deadline: Deadline) -> Engine:
        url = build_url(credentials)
        connect_args: Dict[str, float] = {}

        if is_sqlite(url):
            ensure_sqlite_directory(url)
            remaining = deadline.remaining()
            if remaining is not None:
                connect_args["timeout"] = max(remaining, 0.001)

        engine = create_engine(url, poolclass=NullPool, connect_args=connect_args, future=True)
        if is_sqlite(url):
            enable_transactional_ddl(engine)
        return engine

    # ---- Protocol steps ----
    @handle_db_errors
    def _prepare_history(self, engine: Engine) -> bool:
        """
        Create the history table, baselining an unmanaged store.

        Returns:
            True if a baseline row was written
        """
        with engine.begin() as conn:
            history = SchemaHistory(conn)
            if history.exists():
                return False

            existing_tables = history.other_tables()
            history.create()

            if existing_tables and self.baseline_on_migrate:
                history.add_baseline(self.baseline_version)
                safe_logger(self.logger).log_operation(
                    "schema_baselined",
                    {"version": str(self.baseline_version), "existing_tables": len(existing_tables)},
                )
                return True
        return False

    @handle_db_errors
    def _current_version(self, engine: Engine) -> Optional[MigrationVersion]:
        with engine.connect() as conn:
            history = SchemaHistory(conn)
            return history.current_version() if history.exists() else None

    def _validate(self, engine: Engine, scripts: List[MigrationScript]) -> None:
        """
        Raises:
            MigrationValidationError: Listing every inconsistency found
        """
        with engine.connect() as conn:
            history = SchemaHistory(conn)
            records = history.records() if history.exists() else []

        local = {script.version: script for script in scripts}
        problems: List[str] = []

        for record in records:
            if record.type == TYPE_BASELINE:
                continue
            if record.state is MigrationState.FAILED:
                problems.append(
                    f"Detected failed migration to version {record.version} ({record.description})"
                )
                continue

            script = local.get(record.version)
            if script is None:
                problems.append(
                    f"Detected applied migration not resolved locally: {record.version}"
                )
            elif script.checksum != record.checksum:
                problems.append(
                    f"Migration checksum mismatch for version {record.version}: "
                    f"applied={record.checksum} local={script.checksum}"
                )
            elif script.description != record.description:
                problems.append(
                    f"Migration description mismatch for version {record.version}: "
                    f"applied={record.description!r} local={script.description!r}"
                )

        if problems:
            raise MigrationValidationError(
                f"Validate failed: {len(problems)} problem(s) in migration history",
                problems,
            )

    def _repair(self, engine: Engine, scripts: List[MigrationScript]) -> None:
        """
        Raises:
            MigrationRepairError: If the history cannot be repaired
        """
        local = {script.version: script for script in scripts}
        try:
            with engine.begin() as conn:
                history = SchemaHistory(conn)
                if not history.exists():
                    return

                removed = history.delete_failed()
                realigned = deleted = 0
                for record in history.records():
                    if record.type == TYPE_BASELINE:
                        continue
                    script = local.get(record.version)
                    if script is None:
                        history.mark_deleted(record.installed_rank)
                        deleted += 1
                    elif (
                        script.checksum != record.checksum
                        or script.description != record.description
                    ):
                        history.realign(record.installed_rank, script)
                        realigned += 1
        except Exception as e:
            raise MigrationRepairError(f"Schema history repair failed: {e}") from e

        safe_logger(self.logger).log_operation(
            "schema_history_repaired",
            {"failed_removed": removed, "realigned": realigned, "marked_deleted": deleted},
        )

    @handle_db_errors
    def _pending(self, engine: Engine, scripts: List[MigrationScript]) -> List[MigrationScript]:
        with engine.connect() as conn:
            records = SchemaHistory(conn).records()
        return self._pending_from(records, scripts)

    @staticmethod
    def _pending_from(
        records: List[MigrationRecord], scripts: List[MigrationScript]
    ) -> List[MigrationScript]:
        """
        Scripts not yet successfully applied and above the baseline.

        Versions below the highest applied one still count as pending.
        """
        applied = {r.version for r in records if r.state is MigrationState.APPLIED}
        baselines = [r.version for r in records if r.type == TYPE_BASELINE]
        baseline = max(baselines) if baselines else None

        return [
            script
            for script in scripts
            if script.version not in applied
            and (baseline is None or script.version > baseline)
        ]

    def _execute(self, engine: Engine, script: MigrationScript) -> None:
        """
        Run one script atomically with its history row.

        Raises:
            MigrationError: If the script fails (after recording the failure)
        """
        log = safe_logger(self.logger)
        log.log_debug(f"Migrating schema to version {script.version} - {script.description}")

        start = time.perf_counter()
        try:
            with engine.begin() as conn:
                script.execute(conn)
                elapsed_ms = int((time.perf_counter() - start) * 1000)
                installed_on = SchemaHistory(conn).add_applied(script, elapsed_ms)
        except Exception as e:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            try:
                with engine.begin() as conn:
                    SchemaHistory(conn).add_applied(script, elapsed_ms, success=False)
            except Exception as record_error:
                log.log_error(record_error, {"operation": "record_failed_migration"})
            raise MigrationError(
                f"Migration V{script.version} ({script.description}) failed: {e}"
            ) from e

        log.log_info(
            f"  ✓ {script.version} - {script.description} (installed on: {installed_on.isoformat()})",
            {"execution_ms": elapsed_ms, "script": script.script},
        )
