#!/usr/bin/env python3
"""
Roam Database Package
---------------------
Persistence bootstrap for the Roam application:
- Credential resolution (environment, properties file, defaults)
- Versioned schema migrations with validation and repair
- Lazily initialized, thread-safe connection factory

The rest of the application only needs ConnectionFactoryManager:

    manager = ConnectionFactoryManager(logger=logger)
    with manager.handle_scope() as session:
        ...
    manager.shutdown()
"""

from .config import (
    ConfigResolver,
    ConnectionCredentials,
    EnvironmentSource,
    PropertiesFileSource,
    DefaultSource,
    write_sample_config,
)
from .factory import ConnectionFactory, build_url
from .history import MigrationRecord, MigrationState
from .manager import ConnectionFactoryManager, FactoryState
from .migrations import MigrationResult, MigrationRunner
from .scripts import MigrationScript, MigrationVersion
from roam.core.exceptions import (
    DatabaseError,
    FactoryClosedError,
    FactoryConstructionError,
    HandleAcquisitionError,
    InitializationError,
    InitializationTimeoutError,
    MigrationFailedError,
)

__all__ = [
    # Bootstrap pipeline
    "ConfigResolver",
    "ConnectionCredentials",
    "EnvironmentSource",
    "PropertiesFileSource",
    "DefaultSource",
    "write_sample_config",
    "MigrationRunner",
    "MigrationResult",
    "MigrationRecord",
    "MigrationState",
    "MigrationScript",
    "MigrationVersion",
    "ConnectionFactory",
    "ConnectionFactoryManager",
    "FactoryState",
    "build_url",
    # Exceptions
    "DatabaseError",
    "InitializationError",
    "MigrationFailedError",
    "FactoryConstructionError",
    "InitializationTimeoutError",
    "FactoryClosedError",
    "HandleAcquisitionError",
]
