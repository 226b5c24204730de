#!/usr/bin/env python3
"""
Integration tests for the database CLI (roamdb).

Runs the click commands against temporary SQLite stores, with
credentials supplied through the environment the way an operator would.
"""
import pytest
from click.testing import CliRunner

from roam.database.cli import cli


V1_SQL = "CREATE TABLE wikis (id INTEGER PRIMARY KEY, title VARCHAR(255));\n"
V2_SQL = "CREATE TABLE tasks (id INTEGER PRIMARY KEY, title VARCHAR(255));\n"


class TestDatabaseCLI:
    """Test database CLI commands with a temporary database."""

    @pytest.fixture
    def runner(self):
        """Create Click test runner."""
        return CliRunner()

    @pytest.fixture
    def env(self, home, sqlite_url):
        """Environment with complete credentials."""
        return {
            "HOME": str(home),
            "ROAM_DB_USER": "alice",
            "ROAM_DB_PASSWORD": "alice-secret",
            "ROAM_DB_URL": sqlite_url,
            "ROAM_DB_DRIVER": None,
        }

    @pytest.fixture
    def bare_env(self, home):
        """Environment without any ROAM_DB_* variables."""
        return {
            "HOME": str(home),
            "ROAM_DB_USER": None,
            "ROAM_DB_PASSWORD": None,
            "ROAM_DB_URL": None,
            "ROAM_DB_DRIVER": None,
        }

    def invoke_cli(self, runner, tmp_path, migrations_dir, args, env):
        """Helper to invoke CLI with test configuration."""
        base_args = [
            "--migrations-dir", str(migrations_dir),
            "--log-dir", str(tmp_path / "logs"),
        ]
        return runner.invoke(cli, base_args + args, env=env)

    def test_cli_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "migration" in result.output
        assert "config" in result.output

    # ---- config ----
    def test_config_show_environment(self, runner, tmp_path, migrations_dir, env):
        result = self.invoke_cli(runner, tmp_path, migrations_dir, ["config", "show"], env)

        assert result.exit_code == 0
        assert "Source:   environment" in result.output
        assert "Username: alice" in result.output
        assert "****" in result.output
        assert "alice-secret" not in result.output

    def test_config_show_defaults(self, runner, tmp_path, migrations_dir, bare_env):
        result = self.invoke_cli(runner, tmp_path, migrations_dir, ["config", "show"], bare_env)

        assert result.exit_code == 0
        assert "Source:   default" in result.output
        assert "roamdb.db" in result.output

    def test_config_init_then_show_file(self, runner, tmp_path, migrations_dir, bare_env, home):
        result = self.invoke_cli(runner, tmp_path, migrations_dir, ["config", "init"], bare_env)
        assert result.exit_code == 0
        assert "Created configuration file" in result.output
        assert (home / ".roam" / "database.properties").exists()

        again = self.invoke_cli(runner, tmp_path, migrations_dir, ["config", "init"], bare_env)
        assert again.exit_code == 0
        assert "already exists" in again.output

        show = self.invoke_cli(runner, tmp_path, migrations_dir, ["config", "show"], bare_env)
        assert "Source:   file" in show.output

    def test_config_init_custom_path(self, runner, tmp_path, migrations_dir, bare_env):
        target = tmp_path / "custom" / "db.properties"
        result = self.invoke_cli(
            runner, tmp_path, migrations_dir, ["config", "init", "--path", str(target)], bare_env
        )
        assert result.exit_code == 0
        assert target.exists()

    # ---- migration ----
    def test_migration_apply(self, runner, tmp_path, migrations_dir, write_script, env, db_path):
        write_script("V1__create_wikis.sql", V1_SQL)
        write_script("V2__create_tasks.sql", V2_SQL)

        result = self.invoke_cli(runner, tmp_path, migrations_dir, ["migration", "apply"], env)

        assert result.exit_code == 0
        assert "Migrations executed: 2" in result.output
        assert "Current version: 2" in result.output
        assert db_path.exists()

        again = self.invoke_cli(runner, tmp_path, migrations_dir, ["migration", "apply"], env)
        assert again.exit_code == 0
        assert "Migrations executed: 0" in again.output

    def test_migration_apply_failure(self, runner, tmp_path, migrations_dir, write_script, env):
        write_script("V1__broken.sql", "INSERT INTO no_such_table VALUES (1);\n")

        result = self.invoke_cli(runner, tmp_path, migrations_dir, ["migration", "apply"], env)

        assert result.exit_code == 1
        assert "MigrationFailedError" in result.output

    def test_migration_validate_and_repair(
        self, runner, tmp_path, migrations_dir, write_script, env
    ):
        v1 = write_script("V1__create_wikis.sql", V1_SQL)
        self.invoke_cli(runner, tmp_path, migrations_dir, ["migration", "apply"], env)

        valid = self.invoke_cli(runner, tmp_path, migrations_dir, ["migration", "validate"], env)
        assert valid.exit_code == 0
        assert "consistent" in valid.output

        v1.write_text("-- edited\n" + V1_SQL, encoding="utf-8")
        invalid = self.invoke_cli(runner, tmp_path, migrations_dir, ["migration", "validate"], env)
        assert invalid.exit_code == 1

        repaired = self.invoke_cli(runner, tmp_path, migrations_dir, ["migration", "repair"], env)
        assert repaired.exit_code == 0
        assert "Schema history repaired" in repaired.output

        valid_again = self.invoke_cli(runner, tmp_path, migrations_dir, ["migration", "validate"], env)
        assert valid_again.exit_code == 0

    def test_migration_info(self, runner, tmp_path, migrations_dir, write_script, env):
        write_script("V1__create_wikis.sql", V1_SQL)
        self.invoke_cli(runner, tmp_path, migrations_dir, ["migration", "apply"], env)
        write_script("V2__create_tasks.sql", V2_SQL)

        result = self.invoke_cli(runner, tmp_path, migrations_dir, ["migration", "info"], env)

        assert result.exit_code == 0
        assert "create wikis" in result.output
        assert "applied" in result.output
        assert "pending" in result.output

    def test_migration_info_missing_folder(self, runner, tmp_path, env):
        result = self.invoke_cli(runner, tmp_path, tmp_path / "nowhere", ["migration", "info"], env)
        assert result.exit_code == 1
        assert "MigrationScriptError" in result.output

    # ---- check ----
    def test_check(self, runner, tmp_path, migrations_dir, write_script, env):
        write_script("V1__create_wikis.sql", V1_SQL)

        result = self.invoke_cli(runner, tmp_path, migrations_dir, ["check"], env)

        assert result.exit_code == 0
        assert "Database ready (environment configuration)" in result.output
        assert "Migrations executed: 1" in result.output

    def test_check_failure(self, runner, tmp_path, migrations_dir, write_script, env):
        write_script("V1__broken.sql", "INSERT INTO no_such_table VALUES (1);\n")

        result = self.invoke_cli(runner, tmp_path, migrations_dir, ["check"], env)

        assert result.exit_code == 1
        assert "MigrationFailedError" in result.output

    def test_logs_written(self, runner, tmp_path, migrations_dir, write_script, env):
        write_script("V1__create_wikis.sql", V1_SQL)
        self.invoke_cli(runner, tmp_path, migrations_dir, ["migration", "apply"], env)

        assert (tmp_path / "logs" / "roamdb.log").exists()
