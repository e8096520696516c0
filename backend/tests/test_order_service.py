# Overview: Pytest coverage for checkout, payment and order status transitions.

"""
Order lifecycle tests.

Reference scenario: product stock 10, price 100.00, cost 60.00; 3 units in
the cart and the default 50.00 shipping fee.
"""

import pytest

from shopledger.errors import InvalidArgumentError, InvalidStateError, NotFoundError, ValidationError
from shopledger.models import CashFlow, Order, OrderItem
from shopledger.services.cart_service import add_to_cart, get_cart
from shopledger.services.order_service import (
    checkout,
    delete_order,
    get_order,
    get_order_by_number,
    list_orders,
    order_financials,
    process_payment,
    update_order_status,
)
from shopledger.services import order_service
from shopledger.services.products_service import update_product


class TestCheckout:
    def test_totals_and_stock(self, db_session, product, pending_order, stock_of):
        assert pending_order.subtotal_cents == 30000
        assert pending_order.shipping_fee_cents == 5000
        assert pending_order.total_cents == 35000
        assert pending_order.status == "Pending"
        assert stock_of(product.id) == 7

    def test_cart_deleted(self, db_session, pending_order):
        assert get_cart("sess-order") is None

    def test_lines_are_snapshots(self, db_session, product, pending_order):
        update_product(product.id, {"selling_price_cents": 99999, "name": "Renamed"})

        line = db_session.query(OrderItem).filter_by(order_id=pending_order.id).one()
        assert line.product_name == "Canvas Tote"
        assert line.unit_price_cents == 10000
        assert line.unit_cost_cents == 6000
        assert line.quantity == 3

    def test_order_numbers_are_sequential(self, db_session, product):
        numbers = []
        for n in range(2):
            add_to_cart(f"s{n}", product.id, 1)
            numbers.append(checkout(session_id=f"s{n}", customer_name="A", shipping_address="B").order_number)

        assert numbers[0].startswith("ORD-") and numbers[0].endswith("-0001")
        assert numbers[1].endswith("-0002")

    def test_oversell_goes_negative(self, db_session, make_product, stock_of):
        scarce = make_product(initial_stock=2)
        add_to_cart("sess-1", scarce.id, 5)
        checkout(session_id="sess-1", customer_name="A", shipping_address="B")
        assert stock_of(scarce.id) == -3

    def test_empty_cart(self, db_session):
        with pytest.raises(ValidationError, match="empty"):
            checkout(session_id="nobody", customer_name="A", shipping_address="B")

    def test_missing_customer_keeps_cart(self, db_session, product, stock_of):
        add_to_cart("sess-1", product.id, 2)
        with pytest.raises(ValidationError):
            checkout(session_id="sess-1", customer_name="  ", shipping_address="1 Main St")

        assert get_cart("sess-1") is not None
        assert stock_of(product.id) == 10
        assert db_session.query(Order).count() == 0

    def test_failure_after_stock_change_rolls_back(self, db_session, product, make_product, stock_of, monkeypatch):
        """A failure on the second line undoes the first line's stock deduction."""
        other = make_product(item_code="BAG-002")
        add_to_cart("sess-1", product.id, 2)
        add_to_cart("sess-1", other.id, 1)

        real_change_stock = order_service.change_stock
        calls = []

        def failing_change_stock(inventory, delta):
            calls.append(delta)
            if len(calls) == 2:
                raise RuntimeError("disk full")
            return real_change_stock(inventory, delta)

        monkeypatch.setattr(order_service, "change_stock", failing_change_stock)

        with pytest.raises(RuntimeError):
            checkout(session_id="sess-1", customer_name="A", shipping_address="B")

        assert calls == [-2, -1]
        assert stock_of(product.id) == 10
        assert stock_of(other.id) == 10
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        assert [i.quantity for i in get_cart("sess-1").items] == [2, 1]

    def test_custom_shipping_fee(self, db_session, product):
        add_to_cart("sess-1", product.id, 1)
        order = checkout(session_id="sess-1", customer_name="A", shipping_address="B", shipping_fee_cents=0)
        assert order.total_cents == 10000


class TestPayment:
    def test_pay_pending_order(self, db_session, pending_order):
        result = process_payment(pending_order.id, "Cash", notes="paid at counter")

        order = get_order(pending_order.id)
        assert order.status == "Paid"
        assert order.payment_method == "Cash"
        assert order.payment_date is not None
        assert order.notes.endswith("Payment: paid at counter")

        entries = db_session.query(CashFlow).all()
        assert len(entries) == 1
        assert entries[0].transaction_type == "Income"
        assert entries[0].category == "Sales"
        assert entries[0].amount_cents == 35000
        assert entries[0].reference_number == order.order_number
        assert entries[0].order_id == order.id
        assert result.cash_flow_id == entries[0].id

    def test_reported_profit(self, db_session, pending_order):
        result = process_payment(pending_order.id, "Card")
        # 30000 - 3 x 6000 - 5000
        assert result.profit_cents == 7000

    def test_second_payment_rejected(self, db_session, pending_order):
        process_payment(pending_order.id, "Cash")
        with pytest.raises(InvalidStateError):
            process_payment(pending_order.id, "Cash")
        assert db_session.query(CashFlow).count() == 1

    def test_blank_method(self, db_session, pending_order):
        with pytest.raises(ValidationError):
            process_payment(pending_order.id, " ")

    def test_unknown_order(self, db_session):
        with pytest.raises(NotFoundError):
            process_payment(999, "Cash")


class TestStatusTransitions:
    def test_cancel_pending_restores_stock(self, db_session, product, pending_order, stock_of):
        update_order_status(pending_order.id, "Cancelled")
        assert get_order(pending_order.id).status == "Cancelled"
        assert stock_of(product.id) == 10

    def test_cancel_paid_does_not_restore(self, db_session, product, pending_order, stock_of):
        process_payment(pending_order.id, "Cash")
        update_order_status(pending_order.id, "Cancelled")
        assert stock_of(product.id) == 7

    def test_admin_may_jump_states(self, db_session, pending_order):
        update_order_status(pending_order.id, "Delivered")
        assert get_order(pending_order.id).status == "Delivered"

    def test_invalid_status_leaves_order(self, db_session, pending_order):
        with pytest.raises(InvalidArgumentError):
            update_order_status(pending_order.id, "Lost")
        assert get_order(pending_order.id).status == "Pending"


class TestDeleteOrder:
    def test_delete_pending_restores_stock(self, db_session, product, pending_order, stock_of):
        delete_order(pending_order.id)
        assert db_session.query(Order).count() == 0
        assert db_session.query(OrderItem).count() == 0
        assert stock_of(product.id) == 10

    def test_delete_cancelled_does_not_restore_twice(self, db_session, product, pending_order, stock_of):
        update_order_status(pending_order.id, "Cancelled")
        delete_order(pending_order.id)
        assert stock_of(product.id) == 10

    @pytest.mark.parametrize("status", ["Shipped", "Delivered"])
    def test_delete_after_shipping_rejected(self, db_session, pending_order, status):
        update_order_status(pending_order.id, status)
        with pytest.raises(InvalidStateError):
            delete_order(pending_order.id)

    def test_delete_cancelled_paid_order_unlinks_cash_flow(self, db_session, pending_order):
        process_payment(pending_order.id, "Cash")
        update_order_status(pending_order.id, "Cancelled")
        delete_order(pending_order.id)

        db_session.expire_all()
        entry = db_session.query(CashFlow).one()
        assert entry.order_id is None
        assert entry.amount_cents == 35000

    def test_delete_paid_rejected(self, db_session, pending_order):
        process_payment(pending_order.id, "Cash")
        with pytest.raises(InvalidStateError):
            delete_order(pending_order.id)
        assert db_session.query(Order).count() == 1


class TestOrderReads:
    def test_tracking_lookup(self, db_session, pending_order):
        assert get_order_by_number(pending_order.order_number).id == pending_order.id
        with pytest.raises(NotFoundError):
            get_order_by_number("ORD-00000000-9999")

    def test_financials(self, db_session, pending_order):
        data = order_financials(get_order(pending_order.id))
        assert data["total_cost_cents"] == 18000
        assert data["profit_cents"] == 7000
        assert data["lines"][0]["line_total_cents"] == 30000
        assert data["lines"][0]["line_profit_cents"] == 12000

    def test_list_filters_and_pagination(self, db_session, product):
        for n in range(3):
            add_to_cart(f"s{n}", product.id, 1)
            checkout(session_id=f"s{n}", customer_name=f"Customer {n}", shipping_address="B")

        assert list_orders()["count"] == 3
        assert list_orders(search="Customer 1")["count"] == 1
        assert list_orders(status="Paid")["count"] == 0

        page = list_orders(page=2, per_page=2)
        assert page["count"] == 1
        assert page["pagination"]["total"] == 3
        assert page["pagination"]["total_pages"] == 2
        assert page["pagination"]["has_prev"] is True
        assert page["pagination"]["has_next"] is False
