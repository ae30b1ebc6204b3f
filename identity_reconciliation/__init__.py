"""
Identity Reconciliation - resolve partial contact fragments into identities.

This package provides functionality to:
- Match an (email, phone number) observation against stored contacts
- Merge clusters bridged by a new observation under their oldest primary
- Summarize a cluster's emails, phone numbers and secondary contacts
"""

__version__ = "0.1.0"

from identity_reconciliation.config import get_config, Config
from identity_reconciliation.database import DatabaseConnection
from identity_reconciliation.errors import (
    ReconciliationError,
    InvalidInput,
    StorageFailure,
    InvariantViolation,
)
from identity_reconciliation.models import Contact, ConsolidatedContact
from identity_reconciliation.linkage import reconcile, identify

__all__ = [
    "get_config",
    "Config",
    "DatabaseConnection",
    "ReconciliationError",
    "InvalidInput",
    "StorageFailure",
    "InvariantViolation",
    "Contact",
    "ConsolidatedContact",
    "reconcile",
    "identify",
]
