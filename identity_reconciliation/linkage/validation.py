"""
Invariant audit for the contact store.

Runs read-only checks over every non-deleted contact and reports each as a
ValidationCheck. Used by the ``validate`` CLI command and the diagnostics
endpoint.

Validation Checks:
    1. linked_id is set exactly when a contact is secondary
    2. Every secondary links to a live primary (no chains)
    3. Each cluster's primary is its earliest member
    4. No two live primaries share an email or phone number
"""

import sqlite3
from contextlib import closing
from dataclasses import dataclass, field
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class ValidationCheck:
    """Result of a single validation check."""

    name: str
    passed: bool
    message: str
    details: Optional[str] = None


@dataclass
class ValidationResult:
    """Result of all validation checks."""

    passed: bool
    checks: List[ValidationCheck] = field(default_factory=list)
    summary: str = ""

    def __str__(self) -> str:
        lines = []
        for check in self.checks:
            icon = "✓" if check.passed else "✗"
            lines.append(f"{icon} {check.name}: {check.message}")
            if check.details and not check.passed:
                lines.append(f"  → {check.details}")

        status = "All checks passed" if self.passed else "Some checks failed"
        lines.append(f"\n{status}.")
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "summary": self.summary,
            "checks": [
                {
                    "name": c.name,
                    "passed": c.passed,
                    "message": c.message,
                    "details": c.details,
                }
                for c in self.checks
            ],
        }


def _ids(conn: sqlite3.Connection, query: str) -> List[int]:
    with closing(conn.cursor()) as cursor:
        cursor.execute(query)
        return [row[0] for row in cursor.fetchall()]


def _sample(ids: List[int], limit: int = 10) -> str:
    shown = ", ".join(str(i) for i in ids[:limit])
    return shown + (" ..." if len(ids) > limit else "")


def check_precedence_consistency(conn: sqlite3.Connection) -> ValidationCheck:
    """
    Verify linked_id is present iff link_precedence is secondary.

    Args:
        conn: Connection to the contact database.

    Returns:
        ValidationCheck result.
    """
    bad = _ids(
        conn,
        """
        SELECT id FROM contact
        WHERE deleted_at IS NULL
          AND ((link_precedence = 'primary' AND linked_id IS NOT NULL)
               OR (link_precedence = 'secondary' AND linked_id IS NULL))
        ORDER BY id;
        """,
    )
    passed = not bad
    return ValidationCheck(
        name="Precedence consistency",
        passed=passed,
        message="All contacts consistent" if passed else f"{len(bad)} inconsistent contacts",
        details=f"Contact ids: {_sample(bad)}" if not passed else None,
    )


def check_no_chains(conn: sqlite3.Connection) -> ValidationCheck:
    """
    Verify every secondary links directly to a live primary.

    Args:
        conn: Connection to the contact database.

    Returns:
        ValidationCheck result.
    """
    bad = _ids(
        conn,
        """
        SELECT s.id FROM contact s
        LEFT JOIN contact p ON p.id = s.linked_id
        WHERE s.deleted_at IS NULL
          AND s.link_precedence = 'secondary'
          AND (p.id IS NULL OR p.deleted_at IS NOT NULL OR p.link_precedence != 'primary')
        ORDER BY s.id;
        """,
    )
    passed = not bad
    return ValidationCheck(
        name="No chains",
        passed=passed,
        message="All secondaries link to a live primary"
        if passed
        else f"{len(bad)} secondaries with a bad link",
        details=f"Contact ids: {_sample(bad)}" if not passed else None,
    )


def check_primary_is_earliest(conn: sqlite3.Connection) -> ValidationCheck:
    """
    Verify no secondary was created before its cluster's primary.

    Args:
        conn: Connection to the contact database.

    Returns:
        ValidationCheck result.
    """
    bad = _ids(
        conn,
        """
        SELECT DISTINCT p.id FROM contact s
        JOIN contact p ON p.id = s.linked_id
        WHERE s.deleted_at IS NULL
          AND p.deleted_at IS NULL
          AND s.link_precedence = 'secondary'
          AND (s.created_at < p.created_at
               OR (s.created_at = p.created_at AND s.id < p.id))
        ORDER BY p.id;
        """,
    )
    passed = not bad
    return ValidationCheck(
        name="Primary is earliest",
        passed=passed,
        message="Every primary is its cluster's oldest contact"
        if passed
        else f"{len(bad)} clusters with an older secondary",
        details=f"Primary ids: {_sample(bad)}" if not passed else None,
    )


def check_unique_primary_per_attribute(conn: sqlite3.Connection) -> ValidationCheck:
    """
    Verify no email or phone number belongs to more than one cluster.

    An attribute's clusters are the roots of every live contact carrying it.

    Args:
        conn: Connection to the contact database.

    Returns:
        ValidationCheck result.
    """
    query = """
        SELECT attribute FROM (
            SELECT 'email:' || email AS attribute,
                   COALESCE(linked_id, id) AS root
            FROM contact
            WHERE deleted_at IS NULL AND email IS NOT NULL AND email != ''
            UNION
            SELECT 'phone:' || phone_number AS attribute,
                   COALESCE(linked_id, id) AS root
            FROM contact
            WHERE deleted_at IS NULL AND phone_number IS NOT NULL AND phone_number != ''
        )
        GROUP BY attribute
        HAVING COUNT(DISTINCT root) > 1
        ORDER BY attribute;
    """
    with closing(conn.cursor()) as cursor:
        cursor.execute(query)
        shared = [row[0] for row in cursor.fetchall()]

    passed = not shared
    return ValidationCheck(
        name="One cluster per attribute",
        passed=passed,
        message="No attribute spans clusters" if passed else f"{len(shared)} attributes span clusters",
        details=", ".join(shared[:10]) if not passed else None,
    )


def validate_store(conn: sqlite3.Connection) -> ValidationResult:
    """
    Run all invariant checks.

    Args:
        conn: Connection to the contact database.

    Returns:
        ValidationResult with all check results.
    """
    checks = [
        check_precedence_consistency(conn),
        check_no_chains(conn),
        check_primary_is_earliest(conn),
        check_unique_primary_per_attribute(conn),
    ]
    passed = all(c.passed for c in checks)
    failed = [c.name for c in checks if not c.passed]
    summary = "All invariants hold" if passed else f"Failed: {', '.join(failed)}"

    if not passed:
        logger.error(f"Store validation failed: {summary}")
    else:
        logger.info("Store validation passed")

    return ValidationResult(passed=passed, checks=checks, summary=summary)
