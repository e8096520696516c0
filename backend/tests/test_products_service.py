# Overview: Pytest coverage for the catalog service.

import pytest

from shopledger.errors import ConflictError, NotFoundError, ValidationError
from shopledger.models import Inventory, Product
from shopledger.services.products_service import (
    create_product,
    deactivate_product,
    get_product,
    list_categories,
    list_products,
    update_product,
)
from shopledger.stock import FILTER_IN_STOCK, FILTER_LOW_STOCK, FILTER_OUT_OF_STOCK


class TestCreateProduct:
    def test_creates_inventory_row(self, db_session, product):
        inventory = db_session.query(Inventory).filter_by(product_id=product.id).one()
        assert inventory.quantity_in_stock == 10
        assert inventory.reorder_level == 10
        assert product.is_active is True

    def test_duplicate_item_code_conflicts(self, db_session, product):
        with pytest.raises(ConflictError):
            create_product(patch={
                "item_code": "BAG-001",
                "name": "Another",
                "cost_price_cents": 100,
                "selling_price_cents": 200,
            })
        assert db_session.query(Product).count() == 1

    def test_missing_required_fields(self, db_session):
        with pytest.raises(ValidationError, match="Missing required fields"):
            create_product(patch={"item_code": "X", "name": "No prices"})

    def test_negative_price_rejected(self, db_session):
        with pytest.raises(ValidationError):
            create_product(patch={
                "item_code": "NEG",
                "name": "Negative",
                "cost_price_cents": -1,
                "selling_price_cents": 100,
            })

    def test_decimal_string_price_rejected(self, db_session):
        with pytest.raises(ValidationError, match="no decimals"):
            create_product(patch={
                "item_code": "DEC",
                "name": "Decimal",
                "cost_price_cents": "10.50",
                "selling_price_cents": 100,
            })

    def test_unknown_field_rejected(self, db_session):
        with pytest.raises(ValidationError, match="Field not allowed"):
            create_product(patch={
                "item_code": "UNK",
                "name": "Unknown",
                "cost_price_cents": 1,
                "selling_price_cents": 2,
                "quantity_in_stock": 5,
            })


class TestUpdateProduct:
    def test_partial_update(self, db_session, product):
        update_product(product.id, {"selling_price_cents": 12000})
        db_session.expire_all()
        refreshed = db_session.get(Product, product.id)
        assert refreshed.selling_price_cents == 12000
        assert refreshed.name == "Canvas Tote"

    def test_item_code_stays_unique(self, db_session, product, make_product):
        other = make_product(item_code="BAG-002")
        with pytest.raises(ConflictError):
            update_product(other.id, {"item_code": "BAG-001"})

    def test_keeping_own_item_code_is_allowed(self, db_session, product):
        update_product(product.id, {"item_code": "BAG-001", "name": "Renamed"})
        assert get_product(product.id).name == "Renamed"

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            update_product(999, {"name": "Ghost"})


class TestDeactivateProduct:
    def test_soft_delete_hides_from_catalog(self, db_session, product):
        deactivate_product(product.id)
        assert list_products() == []
        assert db_session.get(Product, product.id) is not None
        assert db_session.query(Inventory).filter_by(product_id=product.id).count() == 1


class TestListProducts:
    def test_stock_filters(self, db_session, make_product):
        make_product(item_code="IN", name="A In", initial_stock=8)
        make_product(item_code="LOW", name="B Low", initial_stock=2)
        make_product(item_code="OUT", name="C Out", initial_stock=0)

        assert [r["item_code"] for r in list_products()] == ["IN", "LOW", "OUT"]
        assert [r["item_code"] for r in list_products(stock_filter=FILTER_IN_STOCK)] == ["IN"]
        assert [r["item_code"] for r in list_products(stock_filter=FILTER_LOW_STOCK)] == ["LOW"]
        assert [r["item_code"] for r in list_products(stock_filter=FILTER_OUT_OF_STOCK)] == ["OUT"]

    def test_row_carries_status(self, db_session, make_product):
        make_product(item_code="LOW", initial_stock=4)
        row = list_products()[0]
        assert row["stock_status"] == "Low Stock"
        assert row["is_low_stock"] is True
        assert row["is_out_of_stock"] is False

    def test_search_and_category(self, db_session, make_product):
        make_product(item_code="TOTE-1", name="Canvas Tote", category="Bags")
        make_product(item_code="CAP-1", name="Baseball Cap", category="Hats", brand="Peak")

        assert [r["item_code"] for r in list_products(search="cap")] == ["CAP-1"]
        assert [r["item_code"] for r in list_products(search="Peak")] == ["CAP-1"]
        assert [r["item_code"] for r in list_products(category="Bags")] == ["TOTE-1"]

    def test_categories(self, db_session, make_product):
        make_product(category="Hats")
        make_product(category="Bags")
        hidden = make_product(category="Shoes")
        deactivate_product(hidden.id)

        assert list_categories() == ["Bags", "Hats"]
        assert list_categories(active_only=False) == ["Bags", "Hats", "Shoes"]
