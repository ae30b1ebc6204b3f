"""
Contact Store: keyed storage of Contact records.

Every query excludes logically deleted rows (``deleted_at IS NULL``) and
returns contacts in total creation order ``(created_at, id)``.

The store never commits. Callers wrap a sequence of store calls in
``DatabaseConnection.transaction()`` so the whole sequence is applied
atomically or not at all.
"""

import sqlite3
from contextlib import closing
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence
import logging

from identity_reconciliation.models import Contact, LINK_PRECEDENCES, PRIMARY, SECONDARY

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, email, phone_number, linked_id, link_precedence, created_at, updated_at, deleted_at"
)
_ORDER = "ORDER BY created_at ASC, id ASC"


def now_iso() -> str:
    """Get current UTC timestamp in ISO-8601 format with microseconds."""
    return datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def _attribute_predicate(email: Optional[str], phone_number: Optional[str]):
    """Build an OR predicate over the attributes that are present."""
    clauses = []
    params: List[str] = []
    if email:
        clauses.append("email = ?")
        params.append(email)
    if phone_number:
        clauses.append("phone_number = ?")
        params.append(phone_number)
    return " OR ".join(clauses), params


class ContactStore:
    """Query and persistence operations over the ``contact`` table."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def _fetch(self, query: str, params: Sequence = ()) -> List[Contact]:
        with closing(self.conn.cursor()) as cursor:
            cursor.execute(query, tuple(params))
            return [Contact.from_row(row) for row in cursor.fetchall()]

    def get(self, contact_id: int) -> Optional[Contact]:
        """Get one non-deleted contact by id."""
        rows = self._fetch(
            f"SELECT {_COLUMNS} FROM contact WHERE id = ? AND deleted_at IS NULL;",
            (contact_id,),
        )
        return rows[0] if rows else None

    def find_by_email_or_phone(
        self, email: Optional[str], phone_number: Optional[str]
    ) -> List[Contact]:
        """
        Find contacts whose email or phone number equals the given values.

        An absent attribute matches nothing. Returns an empty list if
        neither attribute is given.
        """
        predicate, params = _attribute_predicate(email, phone_number)
        if not predicate:
            return []
        return self._fetch(
            f"SELECT {_COLUMNS} FROM contact "
            f"WHERE ({predicate}) AND deleted_at IS NULL {_ORDER};",
            params,
        )

    def find_other_primaries(
        self, email: Optional[str], phone_number: Optional[str], exclude_id: int
    ) -> List[Contact]:
        """Find primaries sharing the email or phone number, other than exclude_id."""
        predicate, params = _attribute_predicate(email, phone_number)
        if not predicate:
            return []
        return self._fetch(
            f"SELECT {_COLUMNS} FROM contact "
            f"WHERE ({predicate}) AND link_precedence = ? AND id != ? "
            f"AND deleted_at IS NULL {_ORDER};",
            [*params, PRIMARY, exclude_id],
        )

    def find_cluster(self, primary_id: int) -> List[Contact]:
        """Get a primary and every contact linked to it."""
        return self._fetch(
            f"SELECT {_COLUMNS} FROM contact "
            f"WHERE (id = ? OR linked_id = ?) AND deleted_at IS NULL {_ORDER};",
            (primary_id, primary_id),
        )

    def find_by_ids(self, ids: Iterable[int]) -> List[Contact]:
        """Get non-deleted contacts by id."""
        id_list = sorted(set(ids))
        if not id_list:
            return []
        placeholders = ", ".join("?" for _ in id_list)
        return self._fetch(
            f"SELECT {_COLUMNS} FROM contact "
            f"WHERE id IN ({placeholders}) AND deleted_at IS NULL {_ORDER};",
            id_list,
        )

    def create(
        self,
        email: Optional[str],
        phone_number: Optional[str],
        link_precedence: str,
        linked_id: Optional[int] = None,
    ) -> Contact:
        """
        Insert a new contact, assigning its id and timestamps.

        Raises:
            ValueError: If link_precedence is not 'primary' or 'secondary'.
        """
        if link_precedence not in LINK_PRECEDENCES:
            raise ValueError(f"Unknown link precedence: {link_precedence!r}")

        now = now_iso()
        query = """
            INSERT INTO contact
                (email, phone_number, linked_id, link_precedence, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?);
        """
        with closing(self.conn.cursor()) as cursor:
            cursor.execute(query, (email, phone_number, linked_id, link_precedence, now, now))
            new_id = cursor.lastrowid

        logger.debug(f"Created {link_precedence} contact {new_id}")
        return Contact(
            id=new_id,
            email=email,
            phone_number=phone_number,
            link_precedence=link_precedence,
            created_at=now,
            updated_at=now,
            linked_id=linked_id,
        )

    def save(self, contact: Contact) -> Contact:
        """
        Upsert a contact by id.

        ``created_at`` of an existing row is never overwritten.
        """
        query = """
            INSERT INTO contact
                (id, email, phone_number, linked_id, link_precedence,
                 created_at, updated_at, deleted_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                email = excluded.email,
                phone_number = excluded.phone_number,
                linked_id = excluded.linked_id,
                link_precedence = excluded.link_precedence,
                updated_at = excluded.updated_at,
                deleted_at = excluded.deleted_at;
        """
        with closing(self.conn.cursor()) as cursor:
            cursor.execute(
                query,
                (
                    contact.id,
                    contact.email,
                    contact.phone_number,
                    contact.linked_id,
                    contact.link_precedence,
                    contact.created_at,
                    contact.updated_at,
                    contact.deleted_at,
                ),
            )
        return contact

    def demote(self, contact: Contact, primary_id: int) -> Contact:
        """Turn a primary into a secondary of primary_id and persist it."""
        demoted = replace(
            contact,
            link_precedence=SECONDARY,
            linked_id=primary_id,
            updated_at=now_iso(),
        )
        return self.save(demoted)

    def relink_secondaries(self, from_ids: Iterable[int], to_id: int) -> int:
        """
        Re-point every contact linked to one of from_ids at to_id.

        Returns:
            Number of contacts re-linked.
        """
        id_list = sorted(set(from_ids))
        if not id_list:
            return 0
        placeholders = ", ".join("?" for _ in id_list)
        query = (
            f"UPDATE contact SET linked_id = ?, updated_at = ? "
            f"WHERE linked_id IN ({placeholders}) AND deleted_at IS NULL;"
        )
        with closing(self.conn.cursor()) as cursor:
            cursor.execute(query, (to_id, now_iso(), *id_list))
            return cursor.rowcount

    def count(self, include_deleted: bool = False) -> int:
        """Count contacts."""
        query = "SELECT COUNT(*) FROM contact"
        if not include_deleted:
            query += " WHERE deleted_at IS NULL"
        with closing(self.conn.cursor()) as cursor:
            cursor.execute(query)
            result = cursor.fetchone()
            return result[0] if result else 0
