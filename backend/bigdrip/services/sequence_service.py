# Overview: Sale number generator backed by an atomically incremented counter row.

from __future__ import annotations

from flask import current_app
from sqlalchemy import update

from ..extensions import db
from ..models import SaleSequence

SALE_SEQUENCE = "SALE"


class SequenceError(Exception):
    """Raised when sequence operations fail."""
    pass


def format_sale_number(number: int, *, prefix: str, pad: int) -> str:
    return f"{prefix}-{number:0{pad}d}"


def ensure_sequence(name: str = SALE_SEQUENCE) -> SaleSequence:
    """Create the counter row if missing (idempotent; flushes, does not commit)."""
    seq = db.session.query(SaleSequence).filter_by(name=name).first()
    if seq:
        return seq
    seq = SaleSequence(name=name, next_number=1)
    db.session.add(seq)
    db.session.flush()
    return seq


def allocate_number(name: str = SALE_SEQUENCE) -> int:
    """
    Atomically allocate the next number of a named sequence.

    Runs inside the caller's transaction and never commits: a rolled-back
    sale gives its number back. The increment is a single UPDATE, so two
    concurrent transactions serialize on the counter row and can never
    observe the same value. If the row does not exist yet it is created; a
    concurrent creator makes one of the two inserts fail with IntegrityError,
    which the caller's retry loop handles.
    """
    if not name:
        raise SequenceError("sequence name is required")

    stmt = (
        update(SaleSequence)
        .where(SaleSequence.name == name)
        .values(next_number=SaleSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        db.session.add(SaleSequence(name=name, next_number=2))
        db.session.flush()
        return 1

    current = (
        db.session.query(SaleSequence.next_number)
        .filter_by(name=name)
        .scalar()
    )
    return current - 1


def next_sale_number() -> str:
    """Next human-readable sale number, e.g. BD-000123."""
    number = allocate_number(SALE_SEQUENCE)
    return format_sale_number(
        number,
        prefix=current_app.config.get("SALE_NUMBER_PREFIX", "BD"),
        pad=current_app.config.get("SALE_NUMBER_PAD", 6),
    )
