# Overview: Locking and retry helpers shared by write paths.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, PersistenceError
from ..extensions import db

# Transient failures worth retrying from the top of the operation:
# - OperationalError: locks, deadlocks, dropped connections
# - StaleDataError: optimistic version conflicts
# - IntegrityError: unique collisions between concurrent writers
RETRYABLE_ERRORS = (OperationalError, StaleDataError, IntegrityError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; write paths there rely on
    begin_write_transaction() instead.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    On SQLite, take the database write lock before the first read so that
    concurrent committers queue instead of failing mid-transaction.
    Other databases rely on conditional updates and row locks.
    """
    if db.engine.dialect.name == "sqlite":
        db.session.execute(db.text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    The session is rolled back before every retry, so ``func`` must redo
    all of its work. When the attempts run out the failure is surfaced as a
    typed error: ConflictError for contention, PersistenceError when the
    store itself is unavailable.
    """
    if attempts is None:
        attempts = current_app.config.get("COMMIT_RETRY_ATTEMPTS", 3)
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise _as_typed_error(exc) from exc
            current_app.logger.warning(
                "Retrying after %s (attempt %d of %d)",
                type(exc).__name__,
                attempt + 1,
                attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))


def _as_typed_error(exc: Exception):
    if isinstance(exc, (StaleDataError, IntegrityError)):
        return ConflictError(
            "Concurrent update conflict; please retry",
            details={"reason": type(exc).__name__},
        )
    if isinstance(exc, OperationalError) and _is_lock_error(exc):
        return ConflictError(
            "Database is busy; please retry",
            details={"reason": "locked"},
        )
    return PersistenceError(
        "Data store unavailable; please retry",
        details={"reason": type(exc).__name__},
    )


def _is_lock_error(exc: OperationalError) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return "locked" in message or "deadlock" in message or "could not serialize" in message
