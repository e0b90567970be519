# Overview: Audit recorder; appends before/after snapshots of every mutation.

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import and_, or_

from ..extensions import db
from ..models import AuditLogEntry
"""
Audit Trail Invariants (authoritative)

- Append-only: entries are never updated or deleted by the application.
- Entries are written inside the same DB transaction as the mutation they
  record. record_audit() flushes but never commits, so either both the
  business change and its entry persist, or neither does.
- old_values / new_values are JSON snapshots taken from Model.to_dict().
- Listing is newest first with a keyset cursor of "<created_at>|<id>".
"""

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_DELETE = "delete"

VALID_ACTIONS = (ACTION_CREATE, ACTION_UPDATE, ACTION_DELETE)

AUDITED_ENTITY_TYPES = (
    "product",
    "sale",
    "sale_item",
    "customer",
    "user",
    "category",
    "brand",
    "expense",
)


def snapshot(model, *, only: set[str] | None = None) -> dict[str, Any]:
    """JSON-safe snapshot of a model row, optionally restricted to some keys."""
    data = model.to_dict()
    if only is not None:
        data = {k: v for k, v in data.items() if k in only}
    return data


def record_audit(
    *,
    actor_user_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int,
    old_values: Optional[dict] = None,
    new_values: Optional[dict] = None,
) -> AuditLogEntry:
    """
    Append one audit entry to the current transaction.

    - No domain logic here.
    - No deletes/updates of existing entries.
    - create carries only new_values, delete only old_values, update both.
    """
    if action not in VALID_ACTIONS:
        raise ValueError(f"Invalid audit action: {action}")
    if entity_type not in AUDITED_ENTITY_TYPES:
        raise ValueError(f"Unsupported audit entity type: {entity_type}")
    if entity_id is None:
        raise ValueError("entity_id is required (flush the entity first)")

    entry = AuditLogEntry(
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        old_values=old_values,
        new_values=new_values,
    )
    db.session.add(entry)
    db.session.flush()  # assigns entry.id without committing
    return entry


def record_create(model, entity_type: str, actor_user_id: int | None) -> AuditLogEntry:
    return record_audit(
        actor_user_id=actor_user_id,
        action=ACTION_CREATE,
        entity_type=entity_type,
        entity_id=model.id,
        new_values=snapshot(model),
    )


def list_audit_entries(
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    actor_user_id: int | None = None,
    action: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    cursor: tuple[datetime, int] | None = None,
    limit: int = 100,
) -> list[AuditLogEntry]:
    """Newest-first audit entries matching the filters (end is inclusive)."""
    q = db.session.query(AuditLogEntry)

    if entity_type:
        q = q.filter(AuditLogEntry.entity_type == entity_type)
    if entity_id is not None:
        q = q.filter(AuditLogEntry.entity_id == entity_id)
    if actor_user_id is not None:
        q = q.filter(AuditLogEntry.actor_user_id == actor_user_id)
    if action:
        q = q.filter(AuditLogEntry.action == action)
    if start is not None:
        q = q.filter(AuditLogEntry.created_at >= start)
    if end is not None:
        q = q.filter(AuditLogEntry.created_at <= end)

    if cursor is not None:
        cursor_dt, cursor_id = cursor
        q = q.filter(
            or_(
                AuditLogEntry.created_at < cursor_dt,
                and_(AuditLogEntry.created_at == cursor_dt, AuditLogEntry.id < cursor_id),
            )
        )

    limit = max(1, min(limit, 500))
    return (
        q.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
        .limit(limit)
        .all()
    )
