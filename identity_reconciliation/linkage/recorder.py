"""
Fact Recorder: persist an observation that adds information to a cluster.
"""

from typing import Iterable, Optional
import logging

from identity_reconciliation.linkage.store import ContactStore
from identity_reconciliation.models import Contact, SECONDARY

logger = logging.getLogger(__name__)


def has_new_info(
    contacts: Iterable[Contact],
    email: Optional[str],
    phone_number: Optional[str],
) -> bool:
    """
    True if the observation carries an email or phone not already in contacts.

    Examples:
        >>> c = Contact(1, "a@x.io", "111", "primary", "t", "t")
        >>> has_new_info([c], "a@x.io", "111")
        False
        >>> has_new_info([c], "a@x.io", "222")
        True
        >>> has_new_info([c], None, "111")
        False
    """
    contacts = list(contacts)
    new_email = bool(email) and not any(c.email == email for c in contacts)
    new_phone = bool(phone_number) and not any(c.phone_number == phone_number for c in contacts)
    return new_email or new_phone


def record_fact(
    store: ContactStore,
    contacts: Iterable[Contact],
    email: Optional[str],
    phone_number: Optional[str],
    primary_id: int,
) -> Optional[Contact]:
    """
    Create a secondary contact under primary_id if the observation is new.

    Args:
        store: Contact store bound to the current transaction.
        contacts: The matched set the observation is compared against.
        email: Observed email, or None.
        phone_number: Observed phone number, or None.
        primary_id: Canonical primary the new fact is linked to.

    Returns:
        The new secondary contact, or None if nothing new was observed.
    """
    if not has_new_info(contacts, email, phone_number):
        return None

    logger.info(
        f"Creating new secondary contact for email: {email}, phoneNumber: {phone_number}"
    )
    return store.create(email, phone_number, SECONDARY, linked_id=primary_id)
