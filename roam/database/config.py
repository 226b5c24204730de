#!/usr/bin/env python3
"""
config.py
--------------------
Database credential resolution for Roam.

Credentials are assembled from an ordered list of sources; the first
source that can produce a complete set wins:

    1. Environment: ROAM_DB_USER + ROAM_DB_PASSWORD (ROAM_DB_URL and
       ROAM_DB_DRIVER optional)
    2. Properties file: ~/.roam/database.properties with db.username
       (db.password, db.url, db.driver optional)
    3. Development defaults, with a loud warning

Resolution never fails. A missing or unreadable properties file is
treated as absent and resolution falls through to the next source.

Usage:
    resolver = ConfigResolver(logger=logger)
    credentials = resolver.resolve()
    print(credentials.source, credentials.url)
"""
# --- Annotations ---
from __future__ import annotations

# --- Standard library imports ---
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

# --- Local imports ---
from roam.core.exceptions import ConfigurationError
from roam.core.logging_manager import RoamLogger, safe_logger
from roam.core.paths import config_path, default_db_path, user_home


# ----- Constants -----
ENV_USER = "ROAM_DB_USER"
ENV_PASSWORD = "ROAM_DB_PASSWORD"
ENV_URL = "ROAM_DB_URL"
ENV_DRIVER = "ROAM_DB_DRIVER"

PROP_USERNAME = "db.username"
PROP_PASSWORD = "db.password"
PROP_URL = "db.url"
PROP_DRIVER = "db.driver"

DEFAULT_DRIVER = "sqlite+pysqlite"
DEFAULT_USERNAME = "roam"
DEFAULT_PASSWORD = "roam-dev-password"

SOURCE_ENVIRONMENT = "environment"
SOURCE_FILE = "file"
SOURCE_DEFAULT = "default"

SAMPLE_CONFIG = """\
# Roam Database Configuration
# DO NOT commit this file to version control!

# Database connection settings
db.driver=sqlite+pysqlite
db.url={default_url}
db.username={username}
db.password={password}

# For PostgreSQL (production):
# db.driver=postgresql+psycopg2
# db.url=postgresql://localhost:5432/roamdb
# db.username=roam_user
# db.password=your_secure_password
"""


# ----- Data model -----
@dataclass(frozen=True)
class ConnectionCredentials:
    """
    Resolved connection settings, immutable for the process lifetime.

    Attributes:
        url: SQLAlchemy database URL
        username: Database user
        password: Database password (masked in repr)
        driver: SQLAlchemy ``dialect+driver`` identifier
        source: Which tier produced these values
    """

    url: str
    username: str
    password: str = field(repr=False)
    driver: str = DEFAULT_DRIVER
    source: str = SOURCE_DEFAULT

    def masked(self) -> Dict[str, str]:
        """Return a log-safe dictionary view (password hidden)."""
        return {
            "url": self.url,
            "username": self.username,
            "password": "****" if self.password else "",
            "driver": self.driver,
            "source": self.source,
        }


def default_url(home: Optional[Union[str, Path]] = None) -> str:
    """
    Compute the default store URL under the user's home directory.

    ``check_same_thread=false`` lets pooled SQLite connections be reopened
    and reused by any thread in the process.

    Args:
        home: Home directory override

    Returns:
        SQLAlchemy URL string for ``~/roam/roamdb.db``
    """
    db_path = str(default_db_path(home)).replace("\\", "/")
    return f"{DEFAULT_DRIVER}:///{db_path}?check_same_thread=false"


def load_properties(path: Path) -> Dict[str, str]:
    """
    Parse a Java-style properties file.

    Supports ``key=value`` and ``key: value`` lines, ``#`` / ``!``
    comments and blank lines. Keys and values are stripped.

    Args:
        path: File to read

    Returns:
        Mapping of keys to values

    Raises:
        OSError: If the file cannot be read
    """
    properties: Dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line[0] in "#!":
            continue

        separators = [i for i in (line.find("="), line.find(":")) if i != -1]
        if not separators:
            properties[line] = ""
            continue

        index = min(separators)
        properties[line[:index].strip()] = line[index + 1:].strip()
    return properties


# ----- Sources -----
class CredentialSource:
    """
    One tier of the credential cascade.

    Subclasses return complete credentials, or None when the tier does
    not have enough information.
    """

    name: str = ""

    def load(self) -> Optional[ConnectionCredentials]:
        raise NotImplementedError


class EnvironmentSource(CredentialSource):
    """Credentials from ROAM_DB_* environment variables."""

    name = SOURCE_ENVIRONMENT

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        home: Optional[Union[str, Path]] = None,
    ) -> None:
        self.environ = environ if environ is not None else os.environ
        self.home = home

    def load(self) -> Optional[ConnectionCredentials]:
        username = self.environ.get(ENV_USER)
        password = self.environ.get(ENV_PASSWORD)
        if username is None or password is None:
            return None

        return ConnectionCredentials(
            url=self.environ.get(ENV_URL) or default_url(self.home),
            username=username,
            password=password,
            driver=self.environ.get(ENV_DRIVER) or DEFAULT_DRIVER,
            source=self.name,
        )


class PropertiesFileSource(CredentialSource):
    """Credentials from ``~/.roam/database.properties``."""

    name = SOURCE_FILE

    def __init__(
        self,
        path: Optional[Path] = None,
        home: Optional[Union[str, Path]] = None,
        logger: Optional[RoamLogger] = None,
    ) -> None:
        self.home = home
        self.path = Path(path) if path is not None else config_path(home)
        self.logger = logger

    def load(self) -> Optional[ConnectionCredentials]:
        if not self.path.is_file():
            return None

        try:
            properties = load_properties(self.path)
        except (OSError, UnicodeDecodeError) as e:
            safe_logger(self.logger).log_error(
                e, {"operation": "load_properties", "path": str(self.path)}
            )
            return None

        username = properties.get(PROP_USERNAME)
        if username is None:
            return None

        return ConnectionCredentials(
            url=properties.get(PROP_URL) or default_url(self.home),
            username=username,
            password=properties.get(PROP_PASSWORD, ""),
            driver=properties.get(PROP_DRIVER) or DEFAULT_DRIVER,
            source=self.name,
        )


class DefaultSource(CredentialSource):
    """Hard-coded development credentials. Always complete."""

    name = SOURCE_DEFAULT

    def __init__(self, home: Optional[Union[str, Path]] = None) -> None:
        self.home = home

    def load(self) -> ConnectionCredentials:
        return ConnectionCredentials(
            url=default_url(self.home),
            username=DEFAULT_USERNAME,
            password=DEFAULT_PASSWORD,
            driver=DEFAULT_DRIVER,
            source=self.name,
        )


# ----- Resolver -----
class ConfigResolver:
    """
    Resolve connection credentials through an ordered cascade of sources.

    Attributes:
        sources: Sources consulted in order; the default tier is always
            appended last so resolution cannot fail
        logger: Optional RoamLogger
    """

    def __init__(
        self,
        sources: Optional[Sequence[CredentialSource]] = None,
        environ: Optional[Mapping[str, str]] = None,
        home: Optional[Union[str, Path]] = None,
        logger: Optional[RoamLogger] = None,
    ) -> None:
        """
        Args:
            sources: Explicit source list (defaults to env, file)
            environ: Environment mapping override for the env source
            home: Home directory override for file path and default URL
            logger: Optional RoamLogger
        """
        self.home = home
        self.logger = logger
        if sources is None:
            sources = [
                EnvironmentSource(environ=environ, home=home),
                PropertiesFileSource(home=home, logger=logger),
            ]
        self.sources: List[CredentialSource] = list(sources)
        self._default = DefaultSource(home=home)

    def resolve(self) -> ConnectionCredentials:
        """
        Resolve credentials from the first complete source.

        Returns:
            Complete ConnectionCredentials; never raises
        """
        log = safe_logger(self.logger)

        for source in self.sources:
            try:
                credentials = source.load()
            except Exception as e:
                log.log_error(e, {"operation": "resolve_credentials", "source": source.name})
                credentials = None

            if credentials is not None:
                log.log_info(
                    f"✓ Database configuration loaded from {source.name}",
                    {"url": credentials.url, "driver": credentials.driver},
                )
                return credentials

            log.log_debug(f"Credential source '{source.name}' incomplete, falling through")

        log.log_warning("⚠️  Using default database credentials! Unsafe for production.")
        log.log_warning(
            f"⚠️  Set {ENV_USER} and {ENV_PASSWORD} or create {config_path(self.home)}"
        )
        return self._default.load()


def write_sample_config(
    path: Optional[Path] = None,
    home: Optional[Union[str, Path]] = None,
    logger: Optional[RoamLogger] = None,
) -> Optional[Path]:
    """
    Create a template properties file if none exists.

    Args:
        path: Target file (defaults to ~/.roam/database.properties)
        home: Home directory override
        logger: Optional RoamLogger

    Returns:
        Path of the created file, or None if one already existed

    Raises:
        ConfigurationError: If the file cannot be written
    """
    log = safe_logger(logger)
    target = Path(path) if path is not None else config_path(home)

    if target.exists():
        log.log_info(f"Configuration file already exists: {target}")
        return None

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            SAMPLE_CONFIG.format(
                default_url=default_url(user_home(home)),
                username=DEFAULT_USERNAME,
                password=DEFAULT_PASSWORD,
            ),
            encoding="utf-8",
        )
    except OSError as e:
        log.log_error(e, {"operation": "write_sample_config", "path": str(target)})
        raise ConfigurationError(f"Could not create configuration file {target}: {e}")

    log.log_operation("sample_config_created", {"path": str(target)})
    log.log_warning("⚠️  Please update the password in this file!")
    return target
