"""
Cluster Resolver: pick the canonical primary of a matched set.

Design Decisions:
    1. "Earliest" is the total creation order (created_at, id)
    2. The earliest primary present in the matched set wins
    3. Every other primary touched by the request is reported for merging,
       including primaries reached through a matched secondary
    4. With no primary available at all, a primary view of the earliest
       matched contact is synthesized
"""

from dataclasses import dataclass, field, replace
from typing import Iterable, List
import logging

from identity_reconciliation.models import Contact, PRIMARY

logger = logging.getLogger(__name__)


@dataclass
class ClusterResolution:
    """Outcome of resolving a matched set."""

    primary_contact: Contact
    other_primaries: List[Contact] = field(default_factory=list)
    synthesized: bool = False

    @property
    def needs_merge(self) -> bool:
        return bool(self.other_primaries)


def resolve_cluster(
    matches: List[Contact],
    linked_primaries: Iterable[Contact] = (),
) -> ClusterResolution:
    """
    Determine the canonical primary and the other primaries to merge.

    Args:
        matches: Matcher output, in creation order. Must not be empty.
        linked_primaries: Primaries of matched secondaries not in matches.

    Returns:
        ClusterResolution.

    Raises:
        ValueError: If matches is empty.
    """
    if not matches:
        raise ValueError("Cannot resolve a cluster from an empty match set")

    ordered = sorted(matches, key=lambda c: c.creation_order)
    matched_primaries = [c for c in ordered if c.is_primary]
    seen = {c.id for c in matched_primaries}
    reached = sorted(
        (c for c in linked_primaries if c.is_primary and c.id not in seen),
        key=lambda c: c.creation_order,
    )

    candidates = matched_primaries or reached
    if not candidates:
        earliest = ordered[0]
        logger.warning(f"No primary among matched contacts; promoting contact {earliest.id}")
        return ClusterResolution(
            primary_contact=replace(earliest, link_precedence=PRIMARY, linked_id=None),
            synthesized=True,
        )

    primary = candidates[0]
    others = {c.id: c for c in matched_primaries + reached if c.id != primary.id}
    return ClusterResolution(
        primary_contact=primary,
        other_primaries=sorted(others.values(), key=lambda c: c.creation_order),
    )
