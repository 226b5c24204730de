#!/usr/bin/env python3
"""
history.py
--------------------
Persistent migration history for a Roam store.

One row per migration attempt in ``roam_schema_history``:

    installed_rank  ordinal of the row (primary key)
    version         migration version as text
    description     script description
    type            SQL | PYTHON | BASELINE | DELETED
    script          script file name
    checksum        SHA-256 of the script when recorded
    installed_on    UTC timestamp
    execution_time  milliseconds
    success         False for a failed attempt

Rows are only written by MigrationRunner.
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

# --- Third party ---
from sqlalchemy import (
    Boolean,
    Column,
    Connection,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    delete,
    func,
    inspect,
    insert,
    select,
    update,
)

# --- Local imports ---
from .scripts import MigrationScript, MigrationVersion


HISTORY_TABLE = "roam_schema_history"
TYPE_BASELINE = "BASELINE"
TYPE_DELETED = "DELETED"
BASELINE_DESCRIPTION = "<< Roam Baseline >>"

history_metadata = MetaData()

schema_history = Table(
    HISTORY_TABLE,
    history_metadata,
    Column("installed_rank", Integer, primary_key=True, autoincrement=False),
    Column("version", String(50), nullable=True),
    Column("description", String(200), nullable=False),
    Column("type", String(20), nullable=False),
    Column("script", String(1000), nullable=False),
    Column("checksum", String(64), nullable=True),
    Column("installed_on", DateTime(timezone=True), nullable=False),
    Column("execution_time", Integer, nullable=False),
    Column("success", Boolean, nullable=False),
)


class MigrationState(str, enum.Enum):
    """Lifecycle state of one migration as seen by the runner."""

    PENDING = "pending"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass(frozen=True)
class MigrationRecord:
    """
    One entry of a store's migration history, or a pending script.

    Attributes:
        version: Migration version
        description: Script description
        installed_on: When the row was recorded (None while pending)
        state: pending, applied or failed
        checksum: Checksum recorded (or of the pending script)
        script: Script file name
        type: Row type (SQL, PYTHON, BASELINE)
    """

    version: MigrationVersion
    description: str
    installed_on: Optional[datetime]
    state: MigrationState
    checksum: Optional[str] = None
    script: str = ""
    type: str = ""
    installed_rank: Optional[int] = None


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SchemaHistory:
    """
    Reads and writes ``roam_schema_history`` on a given connection.

    All methods run on the caller's connection and inside the caller's
    transaction.
    """

    def __init__(self, connection: Connection) -> None:
        self.connection = connection

    # ---- Table management ----
    def exists(self) -> bool:
        return inspect(self.connection).has_table(HISTORY_TABLE)

    def create(self) -> None:
        history_metadata.create_all(self.connection, tables=[schema_history])

    def other_tables(self) -> List[str]:
        """Tables in the store other than the history table."""
        return [
            name
            for name in inspect(self.connection).get_table_names()
            if name != HISTORY_TABLE
        ]

    # ---- Reads ----
    def records(self, include_deleted: bool = False) -> List[MigrationRecord]:
        """
        All history rows in installation order.

        Args:
            include_deleted: Also return rows marked DELETED by a repair
        """
        query = select(schema_history).order_by(schema_history.c.installed_rank)
        records = []
        for row in self.connection.execute(query).mappings():
            if row["type"] == TYPE_DELETED and not include_deleted:
                continue
            records.append(
                MigrationRecord(
                    version=MigrationVersion.parse(row["version"]),
                    description=row["description"],
                    installed_on=row["installed_on"],
                    state=MigrationState.APPLIED if row["success"] else MigrationState.FAILED,
                    checksum=row["checksum"],
                    script=row["script"],
                    type=row["type"],
                    installed_rank=row["installed_rank"],
                )
            )
        return records

    def baseline_version(self) -> Optional[MigrationVersion]:
        for record in self.records():
            if record.type == TYPE_BASELINE:
                return record.version
        return None

    def current_version(self) -> Optional[MigrationVersion]:
        """Highest successfully applied version, baseline included."""
        applied = [r.version for r in self.records() if r.state is MigrationState.APPLIED]
        return max(applied) if applied else None

    def _next_rank(self) -> int:
        highest = self.connection.execute(
            select(func.max(schema_history.c.installed_rank))
        ).scalar()
        return (highest or 0) + 1

    # ---- Writes ----
    def add_baseline(self, version: MigrationVersion) -> None:
        self.connection.execute(
            insert(schema_history).values(
                installed_rank=self._next_rank(),
                version=str(version),
                description=BASELINE_DESCRIPTION,
                type=TYPE_BASELINE,
                script=BASELINE_DESCRIPTION,
                checksum=None,
                installed_on=utc_now(),
                execution_time=0,
                success=True,
            )
        )

    def add_applied(
        self,
        script: MigrationScript,
        execution_ms: int,
        success: bool = True,
    ) -> datetime:
        """
        Record one migration attempt.

        Returns:
            The recorded installation timestamp
        """
        installed_on = utc_now()
        self.connection.execute(
            insert(schema_history).values(
                installed_rank=self._next_rank(),
                version=str(script.version),
                description=script.description,
                type=script.kind,
                script=script.script,
                checksum=script.checksum,
                installed_on=installed_on,
                execution_time=execution_ms,
                success=success,
            )
        )
        return installed_on

    def delete_failed(self) -> int:
        """Remove failed rows. Returns the number removed."""
        result = self.connection.execute(
            delete(schema_history).where(schema_history.c.success.is_(False))
        )
        return result.rowcount or 0

    def realign(self, rank: int, script: MigrationScript) -> None:
        """Update a row's checksum and description to match ``script``."""
        self.connection.execute(
            update(schema_history)
            .where(schema_history.c.installed_rank == rank)
            .values(
                checksum=script.checksum,
                description=script.description,
                script=script.script,
            )
        )

    def mark_deleted(self, rank: int) -> None:
        """Mark a row whose script no longer exists locally."""
        self.connection.execute(
            update(schema_history)
            .where(schema_history.c.installed_rank == rank)
            .values(type=TYPE_DELETED)
        )
