"""
Identity linkage: match, resolve, merge and consolidate contact clusters.

Architecture Overview:
    observation (email?, phoneNumber?)
        → matcher       find contacts sharing either attribute
        → resolver      pick the canonical primary, list other primaries
        → merger        demote younger primaries, flatten their clusters
        → recorder      store the observation if it adds information
        → consolidator  summarize the merged cluster

All steps of one reconciliation run in a single write transaction while
holding per-attribute advisory locks (see reconciler.py).
"""

from identity_reconciliation.linkage.schema import create_schema, verify_schema, SCHEMA_VERSION
from identity_reconciliation.linkage.store import ContactStore
from identity_reconciliation.linkage.locks import AttributeLockManager, default_lock_manager
from identity_reconciliation.linkage.matcher import find_matches, load_linked_primaries
from identity_reconciliation.linkage.resolver import resolve_cluster, ClusterResolution
from identity_reconciliation.linkage.recorder import has_new_info, record_fact
from identity_reconciliation.linkage.merger import merge_clusters, MergeResult
from identity_reconciliation.linkage.consolidator import consolidate
from identity_reconciliation.linkage.reconciler import reconcile, identify, lookup
from identity_reconciliation.linkage.validation import validate_store, ValidationResult

__all__ = [
    # Schema
    "create_schema",
    "verify_schema",
    "SCHEMA_VERSION",
    # Store
    "ContactStore",
    # Locks
    "AttributeLockManager",
    "default_lock_manager",
    # Matching and resolution
    "find_matches",
    "load_linked_primaries",
    "resolve_cluster",
    "ClusterResolution",
    # Writes
    "has_new_info",
    "record_fact",
    "merge_clusters",
    "MergeResult",
    # Summary
    "consolidate",
    # Flow
    "reconcile",
    "identify",
    "lookup",
    # Validation
    "validate_store",
    "ValidationResult",
]
