"""
Consolidator: render a cluster as a deduplicated identity summary.
"""

from typing import Iterable, List, Optional

from identity_reconciliation.models import Contact, ConsolidatedContact


def _distinct_with_front(values: Iterable[Optional[str]], front: Optional[str]) -> List[str]:
    """Distinct non-empty values in first-seen order, with front moved first."""
    ordered = list(dict.fromkeys(v for v in values if v))
    if front:
        if front in ordered:
            ordered.remove(front)
        ordered.insert(0, front)
    return ordered


def consolidate(cluster: Iterable[Contact], primary_contact: Contact) -> ConsolidatedContact:
    """
    Build the summary of a cluster.

    Args:
        cluster: Every contact of the cluster (primary included).
        primary_contact: The cluster's canonical primary.

    Returns:
        ConsolidatedContact whose emails and phone numbers lead with the
        primary's own values, followed by the rest in creation order.
    """
    ordered = sorted(cluster, key=lambda c: c.creation_order)
    return ConsolidatedContact(
        primary_contact_id=primary_contact.id,
        emails=_distinct_with_front((c.email for c in ordered), primary_contact.email),
        phone_numbers=_distinct_with_front(
            (c.phone_number for c in ordered), primary_contact.phone_number
        ),
        secondary_contact_ids=[c.id for c in ordered if c.is_secondary],
    )
