"""
Tests for migration script discovery, versions and SQL splitting.
"""
import pytest

from roam.core.exceptions import MigrationScriptError
from roam.database.scripts import (
    KIND_PYTHON,
    KIND_SQL,
    MigrationVersion,
    checksum_of,
    discover_scripts,
    split_sql,
)


class TestMigrationVersion:
    @pytest.mark.parametrize(
        "text, parts",
        [("1", (1,)), ("1.1", (1, 1)), ("2_5", (2, 5)), ("10", (10,))],
    )
    def test_parse(self, text, parts):
        assert MigrationVersion.parse(text).parts == parts

    def test_numeric_ordering(self):
        versions = [MigrationVersion.parse(v) for v in ["10", "2", "1.1", "1"]]
        assert [str(v) for v in sorted(versions)] == ["1", "1.1", "2", "10"]

    def test_trailing_zeros_are_insignificant(self):
        assert MigrationVersion.parse("1.0") == MigrationVersion.parse("1")
        assert hash(MigrationVersion.parse("1.0")) == hash(MigrationVersion.parse("1"))

    def test_parse_int_and_instance(self):
        version = MigrationVersion.parse(3)
        assert MigrationVersion.parse(version) is version
        assert str(version) == "3"

    @pytest.mark.parametrize("text", ["", "v1", "1.", "a.b", "1-2"])
    def test_invalid(self, text):
        with pytest.raises(MigrationScriptError):
            MigrationVersion.parse(text)


class TestSplitSql:
    def test_splits_on_line_ending_semicolons(self):
        sql = (
            "-- create things\n"
            "CREATE TABLE a (id INTEGER);\n"
            "\n"
            "INSERT INTO a (id)\n"
            "VALUES (1);\n"
        )
        assert split_sql(sql) == [
            "CREATE TABLE a (id INTEGER)",
            "INSERT INTO a (id)\nVALUES (1)",
        ]

    def test_trailing_statement_without_semicolon(self):
        assert split_sql("SELECT 1;\nSELECT 2") == ["SELECT 1", "SELECT 2"]

    def test_empty(self):
        assert split_sql("-- only a comment\n\n") == []


class TestChecksum:
    def test_line_endings_are_normalized(self):
        assert checksum_of("a;\r\nb;\r\n") == checksum_of("a;\nb;\n")

    def test_content_changes_checksum(self):
        assert checksum_of("CREATE TABLE a (id INTEGER);") != checksum_of(
            "CREATE TABLE b (id INTEGER);"
        )

    def test_sha256_hex(self):
        assert len(checksum_of("x")) == 64


class TestDiscoverScripts:
    def test_finds_and_sorts_scripts(self, migrations_dir, write_script):
        write_script("V10__late.sql", "SELECT 1;")
        write_script("V2__add_index.sql", "SELECT 1;")
        write_script("V1_1__hotfix.py", "def upgrade():\n    pass\n")
        write_script("V1__initial_schema.sql", "SELECT 1;")
        write_script("README.md", "ignored")
        write_script("__init__.py", "")

        scripts = discover_scripts(migrations_dir)

        assert [str(s.version) for s in scripts] == ["1", "1.1", "2", "10"]
        assert scripts[0].description == "initial schema"
        assert scripts[0].kind == KIND_SQL
        assert scripts[1].kind == KIND_PYTHON
        assert scripts[0].script == "V1__initial_schema.sql"

    def test_missing_directory(self, tmp_path):
        with pytest.raises(MigrationScriptError, match="not found"):
            discover_scripts(tmp_path / "nope")

    def test_duplicate_versions(self, migrations_dir, write_script):
        write_script("V1__one.sql", "SELECT 1;")
        write_script("V1.0__other.sql", "SELECT 1;")

        with pytest.raises(MigrationScriptError, match="Duplicate migration version"):
            discover_scripts(migrations_dir)

    def test_empty_directory(self, migrations_dir):
        assert discover_scripts(migrations_dir) == []

    def test_bundled_scripts(self):
        from roam.core.paths import MIGRATIONS_DIR

        scripts = discover_scripts(MIGRATIONS_DIR)
        assert [str(s.version) for s in scripts] == ["1", "2", "3"]
        assert all(s.kind == KIND_PYTHON for s in scripts)
