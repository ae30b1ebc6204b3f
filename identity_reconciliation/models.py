"""
Record types for the contact store and the reconciliation response.

Contact mirrors one row of the ``contact`` table. ConsolidatedContact is the
externally visible summary of a cluster.
"""

import sqlite3
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

PRIMARY = "primary"
SECONDARY = "secondary"
LINK_PRECEDENCES = (PRIMARY, SECONDARY)


@dataclass
class Contact:
    """One stored contact fact (an email, a phone number, or both)."""

    id: int
    email: Optional[str]
    phone_number: Optional[str]
    link_precedence: str  # 'primary' or 'secondary'
    created_at: str  # ISO-8601 UTC, microsecond precision
    updated_at: str
    linked_id: Optional[int] = None
    deleted_at: Optional[str] = None

    @property
    def is_primary(self) -> bool:
        return self.link_precedence == PRIMARY

    @property
    def is_secondary(self) -> bool:
        return self.link_precedence == SECONDARY

    @property
    def creation_order(self) -> Tuple[str, int]:
        """Total creation order: timestamp, then insertion sequence."""
        return (self.created_at, self.id)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Contact":
        """Build a Contact from a ``contact`` table row."""
        return cls(
            id=row["id"],
            email=row["email"],
            phone_number=row["phone_number"],
            link_precedence=row["link_precedence"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            linked_id=row["linked_id"],
            deleted_at=row["deleted_at"],
        )


@dataclass
class ConsolidatedContact:
    """Deduplicated summary of one identity cluster."""

    primary_contact_id: int
    emails: List[str] = field(default_factory=list)
    phone_numbers: List[str] = field(default_factory=list)
    secondary_contact_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Render the JSON-shaped response body."""
        return {
            "contact": {
                "primaryContactId": self.primary_contact_id,
                "emails": list(self.emails),
                "phoneNumbers": list(self.phone_numbers),
                "secondaryContactIds": list(self.secondary_contact_ids),
            }
        }
