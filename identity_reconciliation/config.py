"""
Configuration module for Identity Reconciliation.

Handles configuration settings including the contact database path and the
HTTP server bind address.

Environment Variables:
    IDENTITY_DB_PATH: Path to the contact database (SQLite).
    IDENTITY_BUSY_TIMEOUT: Seconds to wait for the store's write lock.
    IDENTITY_HOST: Host the API server binds to.
    IDENTITY_PORT: Port the API server binds to.
    IDENTITY_LOG_FILE: Optional path of a rotating log file.
"""

import os
from pathlib import Path
from typing import Optional


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, falling back to default if invalid."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _env_int(name: str, default: int) -> int:
    """Read an int from the environment, falling back to default if invalid."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Config:
    """Configuration class for Identity Reconciliation."""

    # Default path for the contact database
    DEFAULT_DATA_PATH = Path.home() / ".identity_reconciliation"
    DEFAULT_DB_NAME = "contacts.db"

    DEFAULT_BUSY_TIMEOUT = 5.0
    DEFAULT_HOST = "127.0.0.1"
    DEFAULT_PORT = 8000

    def __init__(
        self,
        db_path: Optional[str] = None,
        busy_timeout_seconds: Optional[float] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        log_file: Optional[str] = None,
    ):
        """
        Initialize configuration.

        Args:
            db_path: Optional path to the contact database. If not provided,
                    reads IDENTITY_DB_PATH, then defaults to
                    ~/.identity_reconciliation/contacts.db
            busy_timeout_seconds: How long a reconciliation waits for the
                    store's write lock before failing.
            host: Bind host for the API server.
            port: Bind port for the API server.
            log_file: Optional log file; falls back to IDENTITY_LOG_FILE.
        """
        self._db_path: Path
        if db_path:
            self._db_path = Path(db_path)
        elif os.getenv("IDENTITY_DB_PATH"):
            self._db_path = Path(os.environ["IDENTITY_DB_PATH"])
        else:
            self._db_path = self.DEFAULT_DATA_PATH / self.DEFAULT_DB_NAME

        if busy_timeout_seconds is not None:
            self._busy_timeout = float(busy_timeout_seconds)
        else:
            self._busy_timeout = _env_float("IDENTITY_BUSY_TIMEOUT", self.DEFAULT_BUSY_TIMEOUT)

        self._host = host or os.getenv("IDENTITY_HOST", self.DEFAULT_HOST)
        self._port = port if port is not None else _env_int("IDENTITY_PORT", self.DEFAULT_PORT)

        log_file = log_file or os.getenv("IDENTITY_LOG_FILE")
        self._log_file: Optional[Path] = Path(log_file) if log_file else None

    @property
    def db_path(self) -> Path:
        """Get the contact database path."""
        return self._db_path

    @property
    def db_path_str(self) -> str:
        """Get the contact database path as a string."""
        return str(self._db_path)

    @property
    def busy_timeout_seconds(self) -> float:
        """Get the write-lock wait timeout in seconds."""
        return self._busy_timeout

    @property
    def host(self) -> str:
        """Get the API bind host."""
        return self._host

    @property
    def port(self) -> int:
        """Get the API bind port."""
        return self._port

    @property
    def log_file(self) -> Optional[Path]:
        """Get the log file path, or None to log to stdout only."""
        return self._log_file

    def validate(self) -> bool:
        """
        Validate that the contact database exists and is readable and writable.

        Returns:
            True if the database file is usable, False otherwise.
        """
        return self._db_path.is_file() and os.access(self._db_path, os.R_OK | os.W_OK)


# Global configuration instance
_config: Optional[Config] = None


def get_config(db_path: Optional[str] = None) -> Config:
    """
    Get or create the global configuration instance.

    Args:
        db_path: Optional path to the contact database.

    Returns:
        Config instance.
    """
    global _config
    if _config is None or db_path is not None:
        _config = Config(db_path)
    return _config


def set_config(config: Optional[Config]) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Config instance to use, or None to reset.
    """
    global _config
    _config = config
