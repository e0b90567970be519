"""
Product catalog tests.
"""

from bigdrip.services.catalog_service import CatalogFilter, get_product_catalog, lookup_product


def _names(result):
    return [item["name"] for item in result["items"]]


def test_catalog_hides_inactive_products(db_session, make_product):
    make_product(name="Air Force 1")
    make_product(name="Discontinued Runner", is_active=False)

    assert _names(get_product_catalog()) == ["Air Force 1"]
    assert len(get_product_catalog(CatalogFilter(include_inactive=True))["items"]) == 2


def test_catalog_search_matches_name_sku_and_barcode(db_session, make_product):
    a = make_product(name="Gazelle", barcode="4060509000001")
    make_product(name="Samba")

    assert _names(get_product_catalog(CatalogFilter(search="gaz"))) == ["Gazelle"]
    assert _names(get_product_catalog(CatalogFilter(search=a.sku))) == ["Gazelle"]
    assert _names(get_product_catalog(CatalogFilter(search="40605090"))) == ["Gazelle"]


def test_catalog_search_treats_wildcards_literally(db_session, make_product):
    make_product(name="Superstar")

    assert get_product_catalog(CatalogFilter(search="%"))["count"] == 0


def test_catalog_in_stock_filter(db_session, make_product):
    make_product(name="Sold Out", stock=0)
    make_product(name="Available", stock=1)

    assert _names(get_product_catalog(CatalogFilter(in_stock_only=True))) == ["Available"]


def test_catalog_pagination(db_session, make_product):
    for i in range(5):
        make_product(name=f"Model {i}")

    page = get_product_catalog(page=2, per_page=2)

    assert _names(page) == ["Model 2", "Model 3"]
    assert page["pagination"]["total"] == 5
    assert page["pagination"]["total_pages"] == 3
    assert page["pagination"]["has_next"] is True
    assert page["pagination"]["has_prev"] is True


def test_lookup_by_barcode_then_sku(db_session, make_product):
    by_barcode = make_product(name="Scanned", barcode="0001112223334")
    by_sku = make_product(name="Typed")

    assert lookup_product("0001112223334").id == by_barcode.id
    assert lookup_product(f"  {by_sku.sku} ").id == by_sku.id
    assert lookup_product("nope") is None
    assert lookup_product("") is None


def test_lookup_ignores_inactive_products(db_session, make_product):
    make_product(name="Retired", barcode="999", is_active=False)

    assert lookup_product("999") is None
