"""
Top-level reconciliation flow.

Flow:
    1. Reject requests with neither email nor phone number
    2. Hold the advisory locks for the request's attributes
    3. Inside one write transaction:
       a. Match contacts by email or phone
       b. No match: create a primary and summarize it
       c. Otherwise resolve the cluster, merge other clusters under the
          oldest primary, record the observation if it is new, re-read the
          merged cluster and summarize it
    4. Map store errors to StorageFailure

Any error rolls the transaction back, so a failed reconciliation leaves no
partial writes and can be retried from scratch.

``lookup`` reads a cluster summary by contact id without writing.
"""

import sqlite3
from dataclasses import replace
from typing import Optional
import logging

from identity_reconciliation.config import Config, get_config
from identity_reconciliation.database import DatabaseConnection
from identity_reconciliation.errors import InvalidInput, InvariantViolation, StorageFailure
from identity_reconciliation.linkage.consolidator import consolidate
from identity_reconciliation.linkage.locks import AttributeLockManager, default_lock_manager
from identity_reconciliation.linkage.matcher import find_matches, load_linked_primaries
from identity_reconciliation.linkage.merger import merge_clusters
from identity_reconciliation.linkage.normalizers import lock_keys
from identity_reconciliation.linkage.recorder import record_fact
from identity_reconciliation.linkage.resolver import resolve_cluster
from identity_reconciliation.linkage.store import ContactStore, now_iso
from identity_reconciliation.models import ConsolidatedContact, PRIMARY

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    return value if value else None


def reconcile(
    db: DatabaseConnection,
    email: Optional[str] = None,
    phone_number: Optional[str] = None,
    lock_manager: Optional[AttributeLockManager] = None,
) -> ConsolidatedContact:
    """
    Map one observation to its identity cluster and summarize the cluster.

    Args:
        db: Open database connection.
        email: Observed email. Empty strings count as absent.
        phone_number: Observed phone number. Empty strings count as absent.
        lock_manager: Advisory lock registry (defaults to the process-wide one).

    Returns:
        ConsolidatedContact for the (possibly merged) cluster.

    Raises:
        InvalidInput: If neither email nor phone number is given.
        StorageFailure: If the store fails.
        InvariantViolation: If stored clusters are inconsistent.
    """
    email = _clean(email)
    phone_number = _clean(phone_number)

    if not email and not phone_number:
        logger.error("Identification failed: No email or phone number provided")
        raise InvalidInput("At least one of email or phoneNumber must be provided")

    locks = lock_manager or default_lock_manager
    try:
        with locks.hold(lock_keys(email, phone_number)):
            with db.transaction() as conn:
                return _reconcile(ContactStore(conn), email, phone_number)
    except sqlite3.Error as e:
        logger.error(f"Storage failure during contact identification: {e}")
        raise StorageFailure(f"Contact store error: {e}") from e


def identify(
    email: Optional[str] = None,
    phone_number: Optional[str] = None,
    config: Optional[Config] = None,
) -> ConsolidatedContact:
    """
    Run one reconciliation on its own database connection.

    Convenience wrapper used by the API and the CLI.
    """
    config = config or get_config()
    db = DatabaseConnection(config)
    try:
        db.connect()
        return reconcile(db, email=email, phone_number=phone_number)
    except sqlite3.Error as e:
        logger.error(f"Failed to open contact store: {e}")
        raise StorageFailure(f"Contact store error: {e}") from e
    finally:
        db.close()


def lookup(db: DatabaseConnection, contact_id: int) -> Optional[ConsolidatedContact]:
    """
    Summarize the cluster a stored contact belongs to, without writing.

    Returns:
        ConsolidatedContact for the contact's cluster, or None if no live
        contact has that id.

    Raises:
        StorageFailure: If the store fails.
        InvariantViolation: If a secondary's primary is missing or not primary.
    """
    try:
        store = ContactStore(db.connection)
        contact = store.get(contact_id)
        if contact is None:
            return None
        if contact.is_secondary:
            linked = store.get(contact.linked_id) if contact.linked_id else None
            if linked is None or not linked.is_primary:
                message = (
                    f"Contact {contact_id} links to {contact.linked_id}, "
                    f"which is not a live primary"
                )
                logger.error(f"Invariant violation: {message}")
                raise InvariantViolation(message)
            contact = linked
        return consolidate(store.find_cluster(contact.id), contact)
    except sqlite3.Error as e:
        logger.error(f"Storage failure during contact lookup: {e}")
        raise StorageFailure(f"Contact store error: {e}") from e


def _reconcile(
    store: ContactStore,
    email: Optional[str],
    phone_number: Optional[str],
) -> ConsolidatedContact:
    matches = find_matches(store, email, phone_number)

    if not matches:
        logger.info(
            f"No existing contacts found. Creating new contact for email: {email}, "
            f"phoneNumber: {phone_number}"
        )
        primary = store.create(email, phone_number, PRIMARY)
        return consolidate([primary], primary)

    resolution = resolve_cluster(matches, load_linked_primaries(store, matches))
    canonical = resolution.primary_contact

    if resolution.synthesized:
        logger.warning(f"Assigning {canonical.id} as primary contact")
        canonical = store.save(replace(canonical, updated_at=now_iso()))

    if resolution.needs_merge:
        canonical = merge_clusters(store, canonical, resolution.other_primaries).canonical
        _check_single_primary(store, email, phone_number, canonical.id)

    record_fact(store, matches, email, phone_number, canonical.id)

    cluster = store.find_cluster(canonical.id)
    return consolidate(cluster, canonical)


def _check_single_primary(
    store: ContactStore,
    email: Optional[str],
    phone_number: Optional[str],
    canonical_id: int,
) -> None:
    """Raise if another live primary still shares the request's attributes."""
    leftovers = store.find_other_primaries(email, phone_number, canonical_id)
    if leftovers:
        message = (
            f"Merge into {canonical_id} left live primaries {[c.id for c in leftovers]}"
        )
        logger.error(f"Invariant violation: {message}")
        raise InvariantViolation(message)
