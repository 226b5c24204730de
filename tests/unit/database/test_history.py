"""
Tests for the schema history ledger.
"""
import pytest
from sqlalchemy import create_engine, text

from roam.database.history import (
    TYPE_BASELINE,
    MigrationState,
    SchemaHistory,
)
from roam.database.scripts import MigrationVersion, discover_scripts


@pytest.fixture
def engine():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    yield engine
    engine.dispose()


@pytest.fixture
def scripts(migrations_dir, write_script):
    write_script("V1__first.sql", "CREATE TABLE first (id INTEGER);")
    write_script("V2__second.sql", "CREATE TABLE second (id INTEGER);")
    return discover_scripts(migrations_dir)


class TestSchemaHistory:
    def test_create_and_exists(self, engine):
        with engine.begin() as conn:
            history = SchemaHistory(conn)
            assert not history.exists()
            history.create()
            assert history.exists()
            assert history.records() == []
            assert history.current_version() is None

    def test_other_tables_excludes_history(self, engine):
        with engine.begin() as conn:
            conn.execute(text("CREATE TABLE wikis (id INTEGER)"))
            history = SchemaHistory(conn)
            history.create()
            assert history.other_tables() == ["wikis"]

    def test_add_applied_and_failed(self, engine, scripts):
        with engine.begin() as conn:
            history = SchemaHistory(conn)
            history.create()
            history.add_applied(scripts[0], 12)
            history.add_applied(scripts[1], 3, success=False)

            records = history.records()

        assert [r.installed_rank for r in records] == [1, 2]
        assert records[0].state is MigrationState.APPLIED
        assert records[0].checksum == scripts[0].checksum
        assert records[0].script == "V1__first.sql"
        assert records[1].state is MigrationState.FAILED

    def test_current_version_ignores_failed_rows(self, engine, scripts):
        with engine.begin() as conn:
            history = SchemaHistory(conn)
            history.create()
            history.add_applied(scripts[0], 1)
            history.add_applied(scripts[1], 1, success=False)
            assert history.current_version() == MigrationVersion.parse("1")

    def test_baseline(self, engine):
        with engine.begin() as conn:
            history = SchemaHistory(conn)
            history.create()
            history.add_baseline(MigrationVersion.parse("0"))

            assert history.baseline_version() == MigrationVersion.parse("0")
            assert history.records()[0].type == TYPE_BASELINE

    def test_delete_failed(self, engine, scripts):
        with engine.begin() as conn:
            history = SchemaHistory(conn)
            history.create()
            history.add_applied(scripts[0], 1)
            history.add_applied(scripts[1], 1, success=False)

            assert history.delete_failed() == 1
            assert [str(r.version) for r in history.records()] == ["1"]

    def test_realign_and_mark_deleted(self, engine, scripts):
        with engine.begin() as conn:
            history = SchemaHistory(conn)
            history.create()
            history.add_applied(scripts[0], 1)
            history.add_applied(scripts[1], 1)

            history.realign(1, scripts[1])
            history.mark_deleted(2)

            visible = history.records()
            everything = history.records(include_deleted=True)

        assert len(visible) == 1
        assert visible[0].checksum == scripts[1].checksum
        assert visible[0].description == "second"
        assert len(everything) == 2
