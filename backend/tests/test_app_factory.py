"""
Application factory tests.
"""

from bigdrip import create_app
from bigdrip.extensions import db
from bigdrip.immutability import ImmutabilityViolationError  # noqa: F401
from bigdrip.models import User


def _config():
    return {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'LOG_LEVEL': 'WARNING',
    }


def test_create_app_can_run_repeatedly():
    first = create_app(_config())
    second = create_app(_config())

    assert first is not second
    for app in (first, second):
        assert "sales" in app.blueprints
        with app.app_context():
            db.create_all()
            db.session.add(User(email="twice@bigdrip.test", full_name="Twice", role="cashier"))
            db.session.commit()
            assert db.session.query(User).count() == 1
            db.session.remove()
            db.drop_all()


def test_health_on_fresh_app():
    app = create_app(_config())
    with app.app_context():
        db.create_all()

    resp = app.test_client().get("/api/health")

    assert resp.status_code == 200
    with app.app_context():
        db.session.remove()
        db.drop_all()
