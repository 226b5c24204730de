#!/usr/bin/env python3
"""
End-to-end tests of the persistence bootstrap.

Resolve credentials, run the bundled migrations and hand out handles,
exactly as the application does at startup.
"""
import threading

import pytest
from sqlalchemy import text

from roam.core.exceptions import FactoryClosedError, MigrationFailedError
from roam.database import (
    ConfigResolver,
    ConnectionFactoryManager,
    FactoryState,
    MigrationRunner,
)
from roam.database.config import SOURCE_DEFAULT, SOURCE_ENVIRONMENT, SOURCE_FILE


def write_properties(home, content: str) -> None:
    path = home / ".roam" / "database.properties"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def history_count(manager) -> int:
    with manager.handle_scope() as session:
        return session.execute(text("SELECT COUNT(*) FROM roam_schema_history")).scalar_one()


class TestStartupScenarios:
    """First-launch scenarios for the three credential tiers."""

    def test_environment_credentials(self, home, mock_logger):
        resolver = ConfigResolver(
            environ={"ROAM_DB_USER": "alice", "ROAM_DB_PASSWORD": "s3cret"},
            home=home,
            logger=mock_logger,
        )

        with ConnectionFactoryManager(resolver=resolver, logger=mock_logger) as manager:
            with manager.handle_scope() as session:
                assert session.execute(text("SELECT 1")).scalar_one() == 1

            assert manager.credentials.source == SOURCE_ENVIRONMENT
            assert manager.credentials.username == "alice"
            assert manager.migration_result.migrations_executed == 3

        assert (home / "roam" / "roamdb.db").exists()
        assert manager.state is FactoryState.CLOSED

    def test_properties_file_credentials(self, home):
        write_properties(home, "db.username=bob\n")
        resolver = ConfigResolver(environ={}, home=home)

        with ConnectionFactoryManager(resolver=resolver) as manager:
            manager.get_factory()
            assert manager.credentials.source == SOURCE_FILE
            assert manager.credentials.password == ""

    def test_default_credentials(self, home, mock_logger):
        resolver = ConfigResolver(environ={}, home=home, logger=mock_logger)

        with ConnectionFactoryManager(resolver=resolver) as manager:
            manager.get_factory()
            assert manager.credentials.source == SOURCE_DEFAULT

        mock_logger.log_warning.assert_called()


class TestBootstrap:
    @pytest.fixture
    def manager(self, home, sqlite_url, mock_logger):
        resolver = ConfigResolver(
            environ={"ROAM_DB_USER": "roam", "ROAM_DB_PASSWORD": "pw", "ROAM_DB_URL": sqlite_url},
            home=home,
        )
        manager = ConnectionFactoryManager(resolver=resolver, logger=mock_logger)
        yield manager
        manager.shutdown()

    def test_unit_of_work_round_trip(self, manager):
        now = "2025-01-01 09:00:00"
        with manager.handle_scope() as session:
            session.execute(
                text(
                    "INSERT INTO regions (name, color, is_default, created_at, updated_at) "
                    "VALUES (:name, :color, :is_default, :now, :now)"
                ),
                {"name": "Work", "color": "#3366ff", "is_default": True, "now": now},
            )

        with manager.handle_scope() as session:
            names = session.execute(text("SELECT name FROM regions")).scalars().all()
        assert names == ["Work"]

    def test_rollback_discards_work(self, manager):
        now = "2025-01-01 09:00:00"
        with pytest.raises(RuntimeError):
            with manager.handle_scope() as session:
                session.execute(
                    text(
                        "INSERT INTO journal_templates (name, created_at, updated_at) "
                        "VALUES ('Daily', :now, :now)"
                    ),
                    {"now": now},
                )
                raise RuntimeError("abort")

        with manager.handle_scope() as session:
            assert session.execute(text("SELECT COUNT(*) FROM journal_templates")).scalar_one() == 0

    def test_concurrent_first_use(self, manager):
        barrier = threading.Barrier(6)
        errors = []

        def worker():
            barrier.wait()
            try:
                with manager.handle_scope() as session:
                    session.execute(text("SELECT COUNT(*) FROM tasks")).scalar_one()
            except Exception as e:  # pragma: no cover - reported below
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert history_count(manager) == 3

    def test_restart_runs_no_migrations(self, home, sqlite_url, manager):
        manager.get_factory()
        manager.shutdown()

        resolver = ConfigResolver(
            environ={"ROAM_DB_USER": "roam", "ROAM_DB_PASSWORD": "pw", "ROAM_DB_URL": sqlite_url},
            home=home,
        )
        with ConnectionFactoryManager(resolver=resolver) as restarted:
            restarted.get_factory()
            assert restarted.migration_result.migrations_executed == 0
            assert history_count(restarted) == 3

    def test_no_handle_after_shutdown(self, manager):
        manager.get_handle().close()
        manager.shutdown()

        with pytest.raises(FactoryClosedError):
            manager.get_handle()

    def test_failed_migration_prevents_startup(self, home, sqlite_url, migrations_dir, write_script):
        write_script("V1__broken.sql", "INSERT INTO no_such_table VALUES (1);\n")
        resolver = ConfigResolver(
            environ={"ROAM_DB_USER": "roam", "ROAM_DB_PASSWORD": "pw", "ROAM_DB_URL": sqlite_url},
            home=home,
        )
        manager = ConnectionFactoryManager(
            resolver=resolver, runner=MigrationRunner(migrations_dir=migrations_dir)
        )

        with pytest.raises(MigrationFailedError):
            manager.get_handle()
        assert manager.state is FactoryState.UNINITIALIZED
        manager.shutdown()
