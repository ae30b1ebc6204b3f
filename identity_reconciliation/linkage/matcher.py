"""
Matcher: find every active contact sharing the observation's email or phone.

Also loads the primaries of matched secondaries whose own primary was not
matched, so a request that only touches a cluster through one of its
secondaries still sees that cluster's root.
"""

from typing import List, Optional
import logging

from identity_reconciliation.errors import InvariantViolation
from identity_reconciliation.linkage.store import ContactStore
from identity_reconciliation.models import Contact

logger = logging.getLogger(__name__)


def find_matches(
    store: ContactStore,
    email: Optional[str],
    phone_number: Optional[str],
) -> List[Contact]:
    """
    Find all non-deleted contacts whose email or phone number equals the input.

    Args:
        store: Contact store bound to the current transaction.
        email: Observed email, or None.
        phone_number: Observed phone number, or None.

    Returns:
        Matching contacts in creation order. Empty if nothing matches.
    """
    matches = store.find_by_email_or_phone(email, phone_number)
    logger.info(
        f"Found {len(matches)} contacts for email: {email}, phoneNumber: {phone_number}"
    )
    return matches


def load_linked_primaries(store: ContactStore, matches: List[Contact]) -> List[Contact]:
    """
    Load the primaries referenced by matched secondaries that were not matched.

    Raises:
        InvariantViolation: If a matched secondary points at a contact that is
            missing, logically deleted, or not itself primary.
    """
    matched_ids = {c.id for c in matches}
    wanted = {
        c.linked_id
        for c in matches
        if c.is_secondary and c.linked_id is not None and c.linked_id not in matched_ids
    }
    # Matched targets must be primary too
    for contact in matches:
        if contact.is_secondary and contact.linked_id in matched_ids:
            target = next(c for c in matches if c.id == contact.linked_id)
            if not target.is_primary:
                _violation(contact, "links to secondary contact", target.id)

    if not wanted:
        return []

    found = {c.id: c for c in store.find_by_ids(wanted)}
    for contact in matches:
        if contact.linked_id not in wanted:
            continue
        target = found.get(contact.linked_id)
        if target is None:
            _violation(contact, "links to missing or deleted contact", contact.linked_id)
        elif not target.is_primary:
            _violation(contact, "links to secondary contact", target.id)

    return sorted(found.values(), key=lambda c: c.creation_order)


def _violation(contact: Contact, reason: str, target_id: Optional[int]) -> None:
    message = f"Contact {contact.id} {reason} {target_id}"
    logger.error(f"Invariant violation: {message}")
    raise InvariantViolation(message)
