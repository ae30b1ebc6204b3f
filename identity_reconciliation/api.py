"""
FastAPI backend for Identity Reconciliation.

Routes:
    POST /identify     reconcile one observation, return its cluster summary
    GET  /health       liveness and database presence
    GET  /diagnostics  contact counts and the invariant audit

Each request opens its own database connection and closes it before
returning. Routes are plain functions, so FastAPI runs them in its thread
pool and concurrent requests go through the reconciliation locks.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, field_validator

from identity_reconciliation import __version__
from identity_reconciliation.config import get_config
from identity_reconciliation.database import DatabaseConnection
from identity_reconciliation.errors import InvalidInput, ReconciliationError
from identity_reconciliation.linkage.normalizers import is_valid_email, is_valid_phone
from identity_reconciliation.linkage.reconciler import identify as run_identify
from identity_reconciliation.linkage.store import ContactStore
from identity_reconciliation.linkage.validation import validate_store

logger = logging.getLogger(__name__)


class IdentifyRequest(BaseModel):
    """Incoming observation. At least one field must be non-empty."""

    email: Optional[str] = None
    phoneNumber: Optional[Union[str, int]] = None

    @field_validator("email", mode="before")
    @classmethod
    def _check_email(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        if not isinstance(value, str):
            raise ValueError("email must be a string")
        if not is_valid_email(value):
            raise ValueError("Invalid email format")
        return value

    @field_validator("phoneNumber", mode="before")
    @classmethod
    def _check_phone(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        if isinstance(value, bool) or not isinstance(value, (str, int)):
            raise ValueError("phoneNumber must be a string")
        value = str(value)
        if not is_valid_phone(value):
            raise ValueError(
                "Invalid phone number format. Must be a valid phone number (e.g., +1234567890)"
            )
        return value


class ContactSummary(BaseModel):
    primaryContactId: int
    emails: List[str]
    phoneNumbers: List[str]
    secondaryContactIds: List[int]


class IdentifyResponse(BaseModel):
    contact: ContactSummary


app = FastAPI(
    title="Identity Reconciliation API",
    version=__version__,
    description="Links email and phone observations into canonical contact identities.",
)


@app.post("/identify", response_model=IdentifyResponse)
def identify(body: IdentifyRequest) -> Dict[str, Any]:
    """Reconcile one observation and return its consolidated contact."""
    logger.info(
        f"Received contact identification request: email={body.email}, "
        f"phoneNumber={body.phoneNumber}"
    )
    try:
        result = run_identify(email=body.email, phone_number=body.phoneNumber)
    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ReconciliationError as e:
        logger.error(f"Error processing contact identification request: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to process contact identification request",
        )

    logger.info("Contact identification request processed successfully")
    return result.to_dict()


@app.get("/health")
def health() -> Dict[str, Any]:
    """Health check - also reports whether the contact database exists."""
    config = get_config()
    exists = config.db_path.exists()
    return {
        "status": "ok" if exists else "degraded",
        "db_exists": exists,
        "db_path": config.db_path_str,
    }


@app.get("/diagnostics")
def diagnostics() -> Dict[str, Any]:
    """Contact counts and the store invariant audit."""
    config = get_config()
    if not config.db_path.exists():
        return {
            "status": "not_initialized",
            "db_exists": False,
            "db_path": config.db_path_str,
            "message": "Run `identity-reconciliation init-db` to create the contact database",
        }

    db = DatabaseConnection(config)
    try:
        conn = db.connect()
        store = ContactStore(conn)
        cursor = conn.execute(
            """
            SELECT link_precedence, COUNT(*) FROM contact
            WHERE deleted_at IS NULL
            GROUP BY link_precedence
            """
        )
        by_precedence = {row[0]: row[1] for row in cursor.fetchall()}
        audit = validate_store(conn)
        return {
            "status": "ok" if audit.passed else "invariant_violation",
            "db_exists": True,
            "db_path": config.db_path_str,
            "counts": {
                "contacts": store.count(),
                "primary": by_precedence.get("primary", 0),
                "secondary": by_precedence.get("secondary", 0),
                "deleted": store.count(include_deleted=True) - store.count(),
            },
            "validation": audit.to_dict(),
        }
    except sqlite3.Error as e:
        logger.error(f"Diagnostics failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to read contact database")
    finally:
        db.close()
