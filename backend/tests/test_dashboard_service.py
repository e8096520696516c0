# Overview: Pytest coverage for dashboard aggregation.

from datetime import date, timedelta

from shopledger.models import Order
from shopledger.services.cart_service import add_to_cart
from shopledger.services.order_service import checkout, process_payment, update_order_status
from shopledger.services.dashboard_service import dashboard_metrics
from shopledger.services.shipment_service import create_shipment
from shopledger.time_utils import utcnow


def test_empty_store(db_session):
    metrics = dashboard_metrics()
    assert metrics["total_sales_cents"] == 0
    assert metrics["total_orders"] == 0
    assert metrics["stock_alerts"] == []
    assert metrics["net_cash_flow_cents"] == 0


def test_sales_and_profit_follow_paid_orders(db_session, product, pending_order):
    metrics = dashboard_metrics()
    assert metrics["total_sales_cents"] == 0
    assert metrics["pending_orders"] == 1

    process_payment(pending_order.id, "Cash")
    update_order_status(pending_order.id, "Shipped")

    metrics = dashboard_metrics()
    assert metrics["total_sales_cents"] == 30000
    assert metrics["total_profit_cents"] == 7000
    assert metrics["today_sales_cents"] == 30000
    assert metrics["month_sales_cents"] == 30000
    assert metrics["shipped_orders"] == 1
    assert metrics["total_money_in_cents"] == 35000


def test_payment_dates_bucket_sales(db_session, product, pending_order):
    process_payment(pending_order.id, "Cash")
    order = db_session.get(Order, pending_order.id)
    order.payment_date = utcnow() - timedelta(days=40)
    db_session.commit()

    metrics = dashboard_metrics()
    assert metrics["total_sales_cents"] == 30000
    assert metrics["today_sales_cents"] == 0
    assert metrics["month_sales_cents"] == 0


def test_cancelled_orders_do_not_count(db_session, product, pending_order):
    update_order_status(pending_order.id, "Cancelled")
    metrics = dashboard_metrics()
    assert metrics["total_sales_cents"] == 0
    assert metrics["cancelled_orders"] == 1


def test_stock_alerts(db_session, make_product):
    make_product(item_code="LOW", name="Low", initial_stock=2)
    make_product(item_code="OUT", name="Out", initial_stock=0)
    make_product(item_code="FINE", name="Fine", initial_stock=7)

    metrics = dashboard_metrics()
    assert metrics["low_stock_count"] == 1
    assert metrics["out_of_stock_count"] == 1
    assert [r["item_code"] for r in metrics["stock_alerts"]] == ["OUT", "LOW"]


def test_recent_lists_are_capped(db_session, product):
    for n in range(6):
        add_to_cart(f"s{n}", product.id, 1)
        checkout(session_id=f"s{n}", customer_name="A", shipping_address="B")
    create_shipment(
        store_source="Mart",
        items=[{"item_name": "Thing", "item_code": "T1", "unit_cost_cents": 100, "quantity": 1}],
    )

    metrics = dashboard_metrics(today=date.today())
    assert len(metrics["recent_orders"]) == 5
    assert metrics["total_orders"] == 6
    assert metrics["pending_shipments"] == 1
    assert len(metrics["recent_shipments"]) == 1
