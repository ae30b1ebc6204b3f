"""
Cluster Merger: collapse several clusters under their oldest primary.

Every demoted primary becomes a secondary of the canonical primary, and
every contact that was linked to a demoted primary is re-pointed at the
canonical primary too, so the merged cluster is a flat star with no chains.
All writes go through the caller's transaction.
"""

from dataclasses import dataclass, field
from typing import Iterable, List
import logging

from identity_reconciliation.linkage.store import ContactStore
from identity_reconciliation.models import Contact

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Outcome of a merge."""

    canonical: Contact
    demoted: List[Contact] = field(default_factory=list)
    relinked_count: int = 0


def merge_clusters(
    store: ContactStore,
    primary_contact: Contact,
    other_primaries: Iterable[Contact],
) -> MergeResult:
    """
    Merge the clusters rooted at other_primaries into the oldest root.

    Args:
        store: Contact store bound to the current transaction.
        primary_contact: Primary chosen by the resolver.
        other_primaries: Other primaries touched by the request.

    Returns:
        MergeResult naming the canonical primary and the demoted contacts.
    """
    roots = {c.id: c for c in [primary_contact, *other_primaries]}
    canonical = min(roots.values(), key=lambda c: c.creation_order)
    losers = sorted(
        (c for c in roots.values() if c.id != canonical.id),
        key=lambda c: c.creation_order,
    )

    demoted = [store.demote(contact, canonical.id) for contact in losers]
    relinked = store.relink_secondaries([c.id for c in losers], canonical.id)

    if demoted:
        logger.info(
            f"Merged clusters {[c.id for c in demoted]} into {canonical.id} "
            f"({relinked} secondaries re-linked)"
        )
    return MergeResult(canonical=canonical, demoted=demoted, relinked_count=relinked)
