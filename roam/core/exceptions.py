#!/usr/bin/env python3
"""
exceptions.py
--------------------
Custom exception classes for the Roam persistence layer.

Exception Hierarchy:
    Exception (built-in)
    └── RoamError - Base for everything raised by this package
        ├── ConfigurationError - Config file could not be written
        └── DatabaseError - Base for all database-related errors
            ├── MigrationError - Base for migration failures
            │   ├── MigrationValidationError - History does not match scripts
            │   ├── MigrationRepairError - History repair failed
            │   ├── MigrationScriptError - Script naming/loading problems
            │   └── MigrationTimeoutError - Migration exceeded its time budget
            ├── InitializationError - Fatal first-use bootstrap failure
            │   ├── MigrationFailedError - Schema could not be brought current
            │   ├── FactoryConstructionError - Engine/session factory build failed
            │   └── InitializationTimeoutError - Bootstrap lock not acquired in time
            ├── FactoryClosedError - Factory used after shutdown
            └── HandleAcquisitionError - A single handle could not be created

Usage:
    from roam.core.exceptions import InitializationError, HandleAcquisitionError

    try:
        with manager.handle_scope() as session:
            ...
    except HandleAcquisitionError as e:
        logger.error(f"Operation failed: {e}")
    except InitializationError:
        # schema is not current; the application cannot start
        raise
"""


class RoamError(Exception):
    """Base exception for all Roam persistence errors."""

    pass


class ConfigurationError(RoamError):
    """
    Exception for configuration file management failures.

    Raised only by explicit configuration writes (e.g. creating the
    sample properties file). Credential resolution itself never raises:
    incomplete sources fall through to the next tier.

    Examples:
        >>> raise ConfigurationError("Cannot create ~/.roam: permission denied")
    """

    pass


class DatabaseError(RoamError):
    """
    Base exception for database-related errors.

    Raised when database operations fail due to connection issues,
    query errors, integrity violations, or other database problems.

    This is the parent class for all database-specific exceptions.
    Catch this to handle any database error, or catch specific
    subclasses for more granular error handling.

    Examples:
        >>> raise DatabaseError("Connection to database failed")
    """

    pass


class MigrationError(DatabaseError):
    """
    Base exception for schema migration failures.

    MigrationRunner raises these internally and converts them to a
    boolean result at its boundary; they never escape ``apply``.
    """

    pass


class MigrationValidationError(MigrationError):
    """
    Exception for migration history inconsistencies.

    Raised when validation finds failed history rows, checksum
    mismatches, or applied versions whose script is missing locally.
    Recoverable once through a history repair.

    Attributes:
        problems: Human-readable list of detected inconsistencies
    """

    def __init__(self, message: str, problems=None) -> None:
        super().__init__(message)
        self.problems = list(problems or [])


class MigrationRepairError(MigrationError):
    """Exception raised when the history repair itself fails."""

    pass


class MigrationScriptError(MigrationError):
    """
    Exception for migration script problems.

    Raised for badly named scripts, duplicate versions, and scripts
    that cannot be loaded.

    Examples:
        >>> raise MigrationScriptError("Duplicate migration version 2")
    """

    pass


class MigrationTimeoutError(MigrationError):
    """Exception raised when a migration run exceeds its time budget."""

    pass


class InitializationError(DatabaseError):
    """
    Exception for fatal failures during first-use initialization.

    Raised by ConnectionFactoryManager only. The application must not
    continue startup: there is no degraded mode without a current schema.
    """

    pass


class MigrationFailedError(InitializationError):
    """Raised when migrations could not bring the schema up to date."""

    pass


class FactoryConstructionError(InitializationError):
    """Raised when the shared connection factory cannot be built."""

    pass


class InitializationTimeoutError(InitializationError):
    """Raised when initialization could not complete within its timeout."""

    pass


class FactoryClosedError(DatabaseError):
    """Raised when a handle or factory is requested after shutdown."""

    pass


class HandleAcquisitionError(DatabaseError):
    """
    Exception for failures creating a single handle.

    Local to the requesting call; the factory stays usable.

    Examples:
        >>> raise HandleAcquisitionError("Connection pool exhausted")
    """

    pass
