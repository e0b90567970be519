"""
Audit recorder tests: append-only writes, transactional coupling, listing.
"""

from datetime import timedelta

import pytest

from bigdrip.immutability import ImmutabilityViolationError
from bigdrip.models import AuditLogEntry, Customer
from bigdrip.services.audit_service import list_audit_entries, record_audit, record_create


def _customer(db_session, name):
    c = Customer(name=name)
    db_session.add(c)
    db_session.flush()
    return c


def test_record_create_snapshots_new_values(db_session, admin):
    c = _customer(db_session, "Kofi")
    entry = record_create(c, "customer", admin.id)
    db_session.commit()

    stored = db_session.get(AuditLogEntry, entry.id)
    assert stored.action == "create"
    assert stored.old_values is None
    assert stored.new_values["name"] == "Kofi"
    assert stored.actor_user_id == admin.id


def test_entry_disappears_with_rolled_back_mutation(db_session, admin):
    c = _customer(db_session, "Ama")
    record_create(c, "customer", admin.id)

    db_session.rollback()

    assert db_session.query(AuditLogEntry).count() == 0
    assert db_session.query(Customer).count() == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"action": "upsert", "entity_type": "product", "entity_id": 1},
        {"action": "create", "entity_type": "spaceship", "entity_id": 1},
        {"action": "create", "entity_type": "product", "entity_id": None},
    ],
)
def test_invalid_entries_rejected(db_session, kwargs):
    with pytest.raises(ValueError):
        record_audit(actor_user_id=None, **kwargs)


def test_entries_are_write_once(db_session, admin):
    c = _customer(db_session, "Yaw")
    entry = record_create(c, "customer", admin.id)
    db_session.commit()

    entry.action = "delete"
    with pytest.raises(ImmutabilityViolationError):
        db_session.flush()
    db_session.rollback()

    db_session.delete(db_session.get(AuditLogEntry, entry.id))
    with pytest.raises(ImmutabilityViolationError):
        db_session.flush()
    db_session.rollback()


def test_listing_filters_and_keyset_cursor(db_session, admin, staff):
    customers = [_customer(db_session, f"Customer {i}") for i in range(5)]
    entries = [record_create(c, "customer", admin.id) for c in customers]
    record_audit(
        actor_user_id=staff.id,
        action="update",
        entity_type="customer",
        entity_id=customers[0].id,
        old_values={"name": "Customer 0"},
        new_values={"name": "Customer Zero"},
    )
    db_session.commit()

    newest_first = list_audit_entries()
    assert newest_first[0].action == "update"
    assert len(newest_first) == 6

    by_staff = list_audit_entries(actor_user_id=staff.id)
    assert [e.action for e in by_staff] == ["update"]

    for_first = list_audit_entries(entity_type="customer", entity_id=customers[0].id)
    assert len(for_first) == 2

    creates = list_audit_entries(action="create", limit=2)
    assert [e.id for e in creates] == [entries[4].id, entries[3].id]
    last = creates[-1]
    page_two = list_audit_entries(action="create", cursor=(last.created_at, last.id), limit=2)
    assert [e.id for e in page_two] == [entries[2].id, entries[1].id]

    future = max(e.created_at for e in newest_first) + timedelta(days=1)
    assert list_audit_entries(start=future) == []
