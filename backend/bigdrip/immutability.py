"""
ORM-level write-once enforcement.

Committed sales, their items, and audit log entries are write-once. Mapper
events fire before SQL reaches the database; an UPDATE with real column
changes, or any DELETE, raises ImmutabilityViolationError and the flush (and
therefore the surrounding transaction) is aborted.

Bulk Core statements bypass these listeners. Nothing in the application
issues them against these tables; test fixtures use them to wipe data.
"""

from __future__ import annotations

import logging

from sqlalchemy import event, inspect

logger = logging.getLogger(__name__)

_registered = False


class ImmutabilityViolationError(Exception):
    """Raised when code attempts to modify a write-once record."""

    code = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id, operation: str):
        super().__init__(f"{entity_type} {entity_id} is immutable ({operation} blocked)")
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.operation = operation


def _has_column_changes(target) -> bool:
    # Collection changes (e.g. sale.items appends) mark the parent dirty
    # without touching its row; only real column edits count.
    state = inspect(target)
    for attr in state.mapper.column_attrs:
        if state.attrs[attr.key].history.has_changes():
            return True
    return False


def _block_update(mapper, connection, target):
    if not _has_column_changes(target):
        return
    logger.error(
        "immutability_violation_blocked entity=%s id=%s operation=UPDATE",
        mapper.class_.__name__,
        target.id,
    )
    raise ImmutabilityViolationError(mapper.class_.__name__, target.id, "UPDATE")


def _block_delete(mapper, connection, target):
    logger.error(
        "immutability_violation_blocked entity=%s id=%s operation=DELETE",
        mapper.class_.__name__,
        target.id,
    )
    raise ImmutabilityViolationError(mapper.class_.__name__, target.id, "DELETE")


def register_immutability_listeners() -> None:
    """Attach the listeners once per process; safe to call from create_app repeatedly."""
    global _registered
    if _registered:
        return

    from bigdrip.models import AuditLogEntry, Sale, SaleItem

    for model in (Sale, SaleItem, AuditLogEntry):
        event.listen(model, "before_update", _block_update)
        event.listen(model, "before_delete", _block_delete)

    _registered = True
