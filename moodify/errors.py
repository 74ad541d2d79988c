"""Error types raised by the ingestion engine.

Every error carries an ``ErrorKind`` so the HTTP layer can map it to a status
code without inspecting the message text.
"""

import sqlite3
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of failure categories."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    PERSISTENCE = "persistence"


class CatalogError(Exception):
    """Base class for engine errors."""

    kind: ErrorKind = ErrorKind.PERSISTENCE

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(CatalogError):
    """Malformed or incomplete input, detected before touching the store."""

    kind = ErrorKind.VALIDATION


class NotFoundError(CatalogError):
    """Referenced external id does not exist."""

    kind = ErrorKind.NOT_FOUND


class PersistenceError(CatalogError):
    """Store failure not otherwise classified."""

    kind = ErrorKind.PERSISTENCE


def is_unique_violation(error: sqlite3.Error) -> bool:
    """Check whether a sqlite3 error is a UNIQUE (or primary key) constraint failure."""
    return getattr(error, "sqlite_errorname", "") in ("SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY")


def is_check_violation(error: sqlite3.Error) -> bool:
    """Check whether a sqlite3 error is a CHECK constraint failure."""
    return getattr(error, "sqlite_errorname", "") == "SQLITE_CONSTRAINT_CHECK"
