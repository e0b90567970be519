"""
CLI command tests via Flask's CLI runner.
"""

from bigdrip.models import AuditLogEntry, Brand, Category, SaleSequence, User
from bigdrip.services import sales_service
from bigdrip.services.cart_service import CartLineRequest, CommitSaleRequest


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    second = runner.invoke(args=["system", "init"])

    assert first.exit_code == 0, first.output
    assert second.exit_code == 0, second.output
    assert "already exists" in second.output
    assert db_session.query(User).filter_by(role="admin").count() == 1
    assert db_session.query(SaleSequence).count() == 1


def test_catalog_seed_creates_audited_defaults(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["catalog", "seed"])
    rerun = runner.invoke(args=["catalog", "seed"])

    assert result.exit_code == 0, result.output
    assert {c.name for c in db_session.query(Category).all()} == {"Sneakers", "Apparel", "Accessories"}
    assert db_session.query(Brand).count() == 5
    assert db_session.query(AuditLogEntry).count() == 8
    assert "(0 created)" in rerun.output


def test_sales_show_prints_receipt(app, db_session, cashier, make_product):
    shoe = make_product(name="Club C 85", price_cents=8000, stock=4)
    sales_service.commit_sale(
        CommitSaleRequest(
            cashier_id=cashier.id,
            lines=[CartLineRequest(product_id=shoe.id, quantity=1)],
            payment_method="cash",
            amount_paid_cents=10000,
        )
    )
    runner = app.test_cli_runner()

    result = runner.invoke(args=["sales", "show", "BD-000001"])
    missing = runner.invoke(args=["sales", "show", "BD-999999"])

    assert result.exit_code == 0, result.output
    assert "Club C 85" in result.output
    assert "86.00" in result.output  # 80.00 + 7.5% tax
    assert "14.00" in result.output  # change
    assert missing.exit_code != 0


def test_alerts_list(app, db_session, cashier, make_product):
    shoe = make_product(name="Blazer Mid", stock=6, threshold=5)
    sales_service.commit_sale(
        CommitSaleRequest(
            cashier_id=cashier.id,
            lines=[CartLineRequest(product_id=shoe.id, quantity=2)],
            payment_method="card",
        )
    )
    runner = app.test_cli_runner()

    result = runner.invoke(args=["alerts", "list"])

    assert result.exit_code == 0, result.output
    assert "Blazer Mid" in result.output
    assert "OPEN" in result.output
