"""
Schema definitions for the contact database.

Design Decisions:
    1. One ``contact`` table; clusters are expressed through ``linked_id``
    2. ``id`` is AUTOINCREMENT so it doubles as a monotonic insertion sequence;
       (created_at, id) is the total creation order
    3. ISO-8601 TEXT timestamps with microseconds (sortable as strings)
    4. ``deleted_at`` is reserved for soft-delete; every query filters on it
    5. schema_meta records the schema version for migration tracking
"""

import sqlite3
from pathlib import Path
from typing import List
import logging

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"

SCHEMA_DDL = """
-- =============================================================================
-- contact: one observed (email, phone_number) fact
-- =============================================================================
-- A primary contact is the root of a cluster. A secondary contact records an
-- additional fact and points at its cluster's primary through linked_id.
--
CREATE TABLE IF NOT EXISTS contact (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    phone_number TEXT,
    email TEXT,
    linked_id INTEGER REFERENCES contact(id),
    link_precedence TEXT NOT NULL CHECK (link_precedence IN ('primary', 'secondary')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT,
    CHECK (
        (link_precedence = 'primary' AND linked_id IS NULL)
        OR (link_precedence = 'secondary' AND linked_id IS NOT NULL)
    )
);

CREATE INDEX IF NOT EXISTS idx_contact_email
    ON contact(email);

CREATE INDEX IF NOT EXISTS idx_contact_phone_number
    ON contact(phone_number);

CREATE INDEX IF NOT EXISTS idx_contact_linked_id
    ON contact(linked_id);

-- =============================================================================
-- schema_meta: key-value metadata
-- =============================================================================
CREATE TABLE IF NOT EXISTS schema_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

INSERT OR REPLACE INTO schema_meta (key, value, updated_at)
VALUES ('schema_version', '{schema_version}', datetime('now'));
""".format(
    schema_version=SCHEMA_VERSION
)

REQUIRED_TABLES = {"contact", "schema_meta"}


def create_schema(db_path: Path) -> None:
    """
    Create the contact database schema if it doesn't exist.

    Idempotent: every statement uses IF NOT EXISTS.

    Args:
        db_path: Path to the database file. Parent directory will be created
                 if it doesn't exist.

    Raises:
        sqlite3.Error: If schema creation fails.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Creating/verifying schema at: {db_path}")

    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        # Persistent; lets readers proceed while a reconciliation holds the write lock
        conn.execute("PRAGMA journal_mode = WAL;")
        conn.executescript(SCHEMA_DDL)
        conn.commit()
        logger.info(f"Schema created/verified successfully (version {SCHEMA_VERSION})")
    except sqlite3.Error as e:
        logger.error(f"Schema creation failed: {e}")
        raise
    finally:
        conn.close()


def get_table_names(db_path: Path) -> List[str]:
    """
    Get all table names in the contact database.

    Args:
        db_path: Path to the database file.

    Returns:
        List of table names.
    """
    conn = sqlite3.connect(str(db_path))
    try:
        cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;")
        return [row[0] for row in cursor.fetchall()]
    finally:
        conn.close()


def verify_schema(db_path: Path) -> bool:
    """
    Verify that the schema exists and has all required tables.

    Args:
        db_path: Path to the database file.

    Returns:
        True if schema is valid, False otherwise.
    """
    if not db_path.exists():
        return False

    existing_tables = set(get_table_names(db_path))
    return REQUIRED_TABLES.issubset(existing_tables)
