"""
Pytest fixtures for Identity Reconciliation tests.

Fixture Categories:
    1. Database fixtures (empty contact database, open connection, store)
    2. Seeding helper that inserts contacts with explicit timestamps
    3. API fixtures (global config pointed at the test database)
    4. Root logger restore for tests that call setup_logging

Design Notes:
    - Fixtures use tmp_path for isolation between tests
    - Seeded contacts get timestamps in 2023, so anything the code under
      test creates is always newer
"""

import logging
import sqlite3
from pathlib import Path
from typing import Callable, Iterator, Optional

import pytest

from identity_reconciliation.config import Config, set_config
from identity_reconciliation.database import DatabaseConnection
from identity_reconciliation.linkage.locks import AttributeLockManager
from identity_reconciliation.linkage.schema import create_schema
from identity_reconciliation.linkage.store import ContactStore
from identity_reconciliation.models import Contact


def pytest_configure(config):
    config.addinivalue_line("markers", "property: hypothesis property-based tests")
    config.addinivalue_line("markers", "concurrency: multi-threaded reconciliation tests")


def ts(day: int, second: int = 0) -> str:
    """Deterministic seed timestamp: 2023-04-<day> 00:00:<second>."""
    return f"2023-04-{day:02d}T00:00:{second:02d}.000000Z"


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def contacts_db(tmp_path: Path) -> Path:
    """
    Create an empty contact database with schema.

    Returns:
        Path to the database file.
    """
    db_path = tmp_path / "contacts.db"
    create_schema(db_path)
    return db_path


@pytest.fixture
def config(contacts_db: Path) -> Config:
    """Config pointed at the test database."""
    return Config(db_path=str(contacts_db), busy_timeout_seconds=30)


@pytest.fixture
def db(config: Config) -> Iterator[DatabaseConnection]:
    """Open DatabaseConnection to the test database."""
    with DatabaseConnection(config) as connection:
        yield connection


@pytest.fixture
def store(db: DatabaseConnection) -> ContactStore:
    """ContactStore on the open connection (autocommit outside transactions)."""
    return ContactStore(db.connection)


@pytest.fixture
def lock_manager() -> AttributeLockManager:
    """Fresh lock registry, isolated from the process-wide one."""
    return AttributeLockManager()


@pytest.fixture
def global_config(config: Config) -> Iterator[Config]:
    """Install the test config as the global config for the duration of a test."""
    set_config(config)
    yield config
    set_config(None)


# =============================================================================
# Seeding
# =============================================================================


SeedFn = Callable[..., Contact]


@pytest.fixture
def seed(db: DatabaseConnection) -> SeedFn:
    """
    Insert a contact row directly, bypassing reconciliation.

    Usage:
        a = seed(email="a@x.io", created_at=ts(1))
        b = seed(phone="555", precedence="secondary", linked_id=a.id, created_at=ts(2))
    """

    def _seed(
        email: Optional[str] = None,
        phone: Optional[str] = None,
        precedence: str = "primary",
        linked_id: Optional[int] = None,
        created_at: str = ts(1),
        deleted_at: Optional[str] = None,
    ) -> Contact:
        conn: sqlite3.Connection = db.connection
        cursor = conn.execute(
            """INSERT INTO contact
               (email, phone_number, linked_id, link_precedence, created_at, updated_at, deleted_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (email, phone, linked_id, precedence, created_at, created_at, deleted_at),
        )
        return Contact(
            id=cursor.lastrowid,
            email=email,
            phone_number=phone,
            link_precedence=precedence,
            created_at=created_at,
            updated_at=created_at,
            linked_id=linked_id,
            deleted_at=deleted_at,
        )

    return _seed


def make_contact(
    contact_id: int,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    precedence: str = "primary",
    linked_id: Optional[int] = None,
    created_at: Optional[str] = None,
) -> Contact:
    """Build an in-memory Contact for pure-function tests."""
    created = created_at or ts(1, contact_id % 60)
    return Contact(
        id=contact_id,
        email=email,
        phone_number=phone,
        link_precedence=precedence,
        created_at=created,
        updated_at=created,
        linked_id=linked_id,
    )


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    """Put the root logger back the way the test runner left it."""
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
