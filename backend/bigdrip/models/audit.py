from __future__ import annotations

from ..extensions import db
from bigdrip.time_utils import to_utc_z, utcnow


class AuditLogEntry(db.Model):
    """
    Append-only record of one data mutation.

    IMMUTABLE: rows are never updated or deleted by the application
    (enforced by db.immutability listeners). Entries are written inside the
    same DB transaction as the mutation they describe, so an aborted
    mutation leaves no entry behind.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        db.Index("ix_audit_logs_created_id", "created_at", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Null for system actions (CLI seed, migrations)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    action = db.Column(db.String(16), nullable=False, index=True)  # create, update, delete
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)

    old_values = db.Column(db.JSON, nullable=True)
    new_values = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    actor = db.relationship("User", foreign_keys=[actor_user_id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "actor_user_id": self.actor_user_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "old_values": self.old_values,
            "new_values": self.new_values,
            "created_at": to_utc_z(self.created_at),
        }
