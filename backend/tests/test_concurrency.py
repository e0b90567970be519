"""
Threaded concurrency tests against a file-backed SQLite database.

Each worker runs in its own app context and session, like separate requests.
"""

import threading

import pytest

from bigdrip import create_app
from bigdrip.errors import InsufficientStock
from bigdrip.extensions import db
from bigdrip.models import Product, Sale, User
from bigdrip.services import sales_service
from bigdrip.services.cart_service import CartLineRequest, CommitSaleRequest


@pytest.fixture
def file_app(tmp_path):
    db_path = tmp_path / "concurrency.db"
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{db_path}",
        'COMMIT_RETRY_ATTEMPTS': 5,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _seed(app, *, stock):
    with app.app_context():
        cashier = User(email="till@bigdrip.test", full_name="Till One", role="cashier")
        product = Product(
            sku="CONCUR-1",
            name="Concurrent Sneaker",
            selling_price_cents=1000,
            stock_quantity=stock,
            low_stock_threshold=0,
        )
        db.session.add_all([cashier, product])
        db.session.commit()
        return cashier.id, product.id


def _run_sales(app, cashier_id, product_id, quantities):
    results = []
    lock = threading.Lock()
    barrier = threading.Barrier(len(quantities))

    def worker(quantity):
        with app.app_context():
            try:
                barrier.wait()
                sale = sales_service.commit_sale(
                    CommitSaleRequest(
                        cashier_id=cashier_id,
                        lines=[CartLineRequest(product_id=product_id, quantity=quantity)],
                        payment_method="card",
                    )
                )
                with lock:
                    results.append(sale.sale_number)
            except Exception as exc:
                with lock:
                    results.append(exc)
            finally:
                db.session.remove()

    threads = [threading.Thread(target=worker, args=(q,)) for q in quantities]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


def test_last_unit_sells_once(file_app):
    cashier_id, product_id = _seed(file_app, stock=1)

    results = _run_sales(file_app, cashier_id, product_id, [1, 1])

    successes = [r for r in results if isinstance(r, str)]
    failures = [r for r in results if not isinstance(r, str)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientStock)

    with file_app.app_context():
        assert db.session.get(Product, product_id).stock_quantity == 0
        assert db.session.query(Sale).count() == 1


def test_concurrent_sales_never_oversell(file_app):
    cashier_id, product_id = _seed(file_app, stock=10)

    results = _run_sales(file_app, cashier_id, product_id, [6, 6])

    assert sum(1 for r in results if isinstance(r, str)) == 1
    assert sum(1 for r in results if isinstance(r, InsufficientStock)) == 1

    with file_app.app_context():
        assert db.session.get(Product, product_id).stock_quantity == 4


def test_sale_numbers_unique_under_concurrency(file_app):
    cashier_id, product_id = _seed(file_app, stock=100)

    results = _run_sales(file_app, cashier_id, product_id, [1] * 10)

    errors = [r for r in results if not isinstance(r, str)]
    assert not errors
    assert len(results) == 10
    assert len(set(results)) == 10
    assert sorted(results) == [f"BD-{n:06d}" for n in range(1, 11)]

    with file_app.app_context():
        assert db.session.get(Product, product_id).stock_quantity == 90
