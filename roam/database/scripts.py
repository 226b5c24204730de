#!/usr/bin/env python3
"""
scripts.py
--------------------
Discovery and execution of versioned migration scripts.

Scripts are named ``V<version>__<description>.<ext>``:
    - ``V1__initial_schema.py``   Python, ``upgrade()`` using ``alembic.op``
    - ``V2_1__add_index.sql``     plain SQL, statements end with ``;``

Versions are dotted or underscored integers (``1``, ``1.1``, ``2_5``) and
compare numerically. Descriptions use underscores for spaces.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import hashlib
import importlib.util
import re
from dataclasses import dataclass, field
from functools import total_ordering
from pathlib import Path
from typing import Dict, List, Tuple, Union

# --- Third party ---
from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext
from sqlalchemy import Connection

# --- Local imports ---
from roam.core.exceptions import MigrationScriptError


SCRIPT_PATTERN = re.compile(r"^V(?P<version>\d+(?:[._]\d+)*)__(?P<description>\w+)\.(?P<ext>sql|py)$")
KIND_SQL = "SQL"
KIND_PYTHON = "PYTHON"


@total_ordering
@dataclass(frozen=True, eq=False)
class MigrationVersion:
    """
    Ordered-comparable migration version.

    Trailing zero parts are insignificant, so ``1.0 == 1``.
    """

    parts: Tuple[int, ...]

    @classmethod
    def parse(cls, text: Union[str, int, "MigrationVersion"]) -> "MigrationVersion":
        """
        Parse ``"1"``, ``"1.1"`` or ``"2_5"`` into a version.

        Raises:
            MigrationScriptError: If the text is not a valid version
        """
        if isinstance(text, MigrationVersion):
            return text
        raw = str(text).strip()
        if not re.fullmatch(r"\d+(?:[._]\d+)*", raw):
            raise MigrationScriptError(f"Invalid migration version: {text!r}")
        return cls(tuple(int(part) for part in re.split(r"[._]", raw)))

    @property
    def _key(self) -> Tuple[int, ...]:
        parts = list(self.parts)
        while len(parts) > 1 and parts[-1] == 0:
            parts.pop()
        return tuple(parts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MigrationVersion):
            return NotImplemented
        return self._key == other._key

    def __lt__(self, other: "MigrationVersion") -> bool:
        if not isinstance(other, MigrationVersion):
            return NotImplemented
        return self._key < other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __str__(self) -> str:
        return ".".join(str(part) for part in self.parts)


@dataclass(frozen=True)
class MigrationScript:
    """
    One migration script found on disk.

    Attributes:
        version: Parsed version
        description: Human-readable description
        path: Script location
        kind: ``SQL`` or ``PYTHON``
        checksum: SHA-256 of the script text (line endings normalized)
    """

    version: MigrationVersion
    description: str
    path: Path = field(compare=False)
    kind: str
    checksum: str

    @property
    def script(self) -> str:
        return self.path.name

    def execute(self, connection: Connection) -> None:
        """
        Run the script on ``connection``.

        The caller owns the surrounding transaction.

        Raises:
            MigrationScriptError: If a Python script has no ``upgrade``
        """
        if self.kind == KIND_SQL:
            for statement in split_sql(self.path.read_text(encoding="utf-8")):
                connection.exec_driver_sql(statement)
            return

        module = _load_module(self.path)
        upgrade = getattr(module, "upgrade", None)
        if not callable(upgrade):
            raise MigrationScriptError(f"{self.script} does not define upgrade()")

        context = MigrationContext.configure(connection)
        with Operations.context(context):
            upgrade()


def checksum_of(text: str) -> str:
    """SHA-256 hex digest of ``text`` with normalized line endings."""
    normalized = "\n".join(line.rstrip() for line in text.strip().splitlines())
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def split_sql(text: str) -> List[str]:
    """
    Split SQL text into statements.

    Statements end with ``;`` at the end of a line; ``--`` comment lines
    are dropped.
    """
    statements: List[str] = []
    buffer: List[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("--"):
            continue
        buffer.append(line)
        if stripped.endswith(";"):
            statement = "\n".join(buffer).strip().rstrip(";").strip()
            if statement:
                statements.append(statement)
            buffer = []

    tail = "\n".join(buffer).strip()
    if tail:
        statements.append(tail)
    return statements


def _load_module(path: Path):
    module_name = f"roam_migration_{path.stem.lower()}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise MigrationScriptError(f"Cannot load migration script {path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        raise MigrationScriptError(f"Error importing {path.name}: {e}") from e
    return module


def discover_scripts(directory: Union[str, Path]) -> List[MigrationScript]:
    """
    Find all migration scripts in ``directory``.

    Files not matching the naming pattern are ignored, except Python
    caches and dunder files which are skipped silently.

    Args:
        directory: Folder holding ``V*__*.sql`` / ``V*__*.py`` scripts

    Returns:
        Scripts sorted by version

    Raises:
        MigrationScriptError: If the directory is missing or two
            scripts share a version
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise MigrationScriptError(f"Migration directory not found: {directory}")

    by_version: Dict[MigrationVersion, MigrationScript] = {}
    for path in sorted(directory.iterdir()):
        if not path.is_file():
            continue
        match = SCRIPT_PATTERN.match(path.name)
        if not match:
            continue

        version = MigrationVersion.parse(match.group("version"))
        if version in by_version:
            raise MigrationScriptError(
                f"Duplicate migration version {version}: "
                f"{by_version[version].script} and {path.name}"
            )

        by_version[version] = MigrationScript(
            version=version,
            description=match.group("description").replace("_", " "),
            path=path,
            kind=KIND_SQL if match.group("ext") == "sql" else KIND_PYTHON,
            checksum=checksum_of(path.read_text(encoding="utf-8")),
        )

    return [by_version[v] for v in sorted(by_version)]
