"""
Database connection and transaction module.

Provides read-write access to an existing contact database with explicit
transaction control. Only linkage.schema.create_schema creates the file;
opening a missing database fails and leaves nothing behind.

Every reconciliation runs inside ``transaction()``, which opens with
``BEGIN IMMEDIATE`` so the SQLite write lock is held from the first read
through the last write.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional
import logging

from identity_reconciliation.config import Config

logger = logging.getLogger(__name__)


def _open_uri(db_path: str) -> str:
    """URI that opens an existing database read-write and never creates one."""
    if db_path == ":memory:":
        return "file::memory:"
    return f"{Path(db_path).resolve().as_uri()}?mode=rw"


class DatabaseConnection:
    """
    Database connection manager for the contact database.

    The connection runs in autocommit mode (``isolation_level=None``);
    multi-statement work must go through ``transaction()``.
    """

    def __init__(self, config: Config):
        """
        Initialize database connection.

        Args:
            config: Configuration object with database path and busy timeout.
        """
        self.config = config
        self._connection: Optional[sqlite3.Connection] = None

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def connect(self) -> sqlite3.Connection:
        """
        Open the contact database.

        Returns:
            SQLite connection object.

        Raises:
            sqlite3.Error: If connection fails.
        """
        if self._connection is not None:
            return self._connection

        db_path = self.config.db_path_str
        try:
            conn = sqlite3.connect(
                _open_uri(db_path),
                uri=True,
                timeout=self.config.busy_timeout_seconds,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON;")
            if db_path != ":memory:":
                conn.execute("PRAGMA journal_mode = WAL;")
            self._connection = conn
            logger.debug(f"Connected to database: {db_path}")
            return self._connection
        except sqlite3.Error as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

    def close(self) -> None:
        """Close database connection."""
        if self._connection:
            self._connection.close()
            self._connection = None
            logger.debug("Database connection closed")

    @property
    def connection(self) -> sqlite3.Connection:
        """
        Get database connection.

        Raises:
            RuntimeError: If connection not established.
        """
        if self._connection is None:
            raise RuntimeError("Database connection not established. Call connect() first.")
        return self._connection

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run a block inside one write transaction.

        Commits when the block finishes, rolls back if it raises. Waits up to
        the configured busy timeout for other writers to finish.
        """
        conn = self.connection
        conn.execute("BEGIN IMMEDIATE;")
        try:
            yield conn
        except BaseException:
            conn.rollback()
            logger.debug("Transaction rolled back")
            raise
        else:
            conn.commit()
