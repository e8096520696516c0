# Overview: Read-side aggregation for the admin dashboard.

"""
Dashboard metrics

Read only. Sales and profit count orders in Paid, Shipped or Delivered;
"this month" and "today" are keyed on payment_date. Stock badges use
stock_status() so counts agree with the inventory list.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from sqlalchemy import func

from ..extensions import db
from ..models import Inventory, Order, OrderItem, Product, Shipment
from ..models.logistics import (
    SHIPMENT_STATUS_IN_TRANSIT,
    SHIPMENT_STATUS_PENDING,
    SHIPMENT_STATUS_RECEIVED,
)
from ..models.sales import (
    ORDER_STATUS_CANCELLED,
    ORDER_STATUS_DELIVERED,
    ORDER_STATUS_PAID,
    ORDER_STATUS_PENDING,
    ORDER_STATUS_SHIPPED,
    PAID_ORDER_STATUSES,
)
from ..stock import is_low_stock, is_out_of_stock
from ..time_utils import utcnow
from .cashflow_service import cash_totals
from .inventory_service import inventory_row

RECENT_LIMIT = 5
STOCK_ALERT_LIMIT = 10


def _sales_and_profit(since: datetime | None = None, until: datetime | None = None) -> tuple[int, int]:
    orders = db.session.query(Order).filter(Order.status.in_(PAID_ORDER_STATUSES))
    cost = (
        db.session.query(func.coalesce(func.sum(OrderItem.unit_cost_cents * OrderItem.quantity), 0))
        .select_from(OrderItem)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.status.in_(PAID_ORDER_STATUSES))
    )
    if since is not None:
        orders = orders.filter(Order.payment_date >= since)
        cost = cost.filter(Order.payment_date >= since)
    if until is not None:
        orders = orders.filter(Order.payment_date < until)
        cost = cost.filter(Order.payment_date < until)

    subtotal, shipping = orders.with_entities(
        func.coalesce(func.sum(Order.subtotal_cents), 0),
        func.coalesce(func.sum(Order.shipping_fee_cents), 0),
    ).one()
    total_cost = int(cost.scalar() or 0)
    subtotal = int(subtotal or 0)
    return subtotal, subtotal - total_cost - int(shipping or 0)


def _count_orders(status: str) -> int:
    return db.session.query(func.count(Order.id)).filter(Order.status == status).scalar() or 0


def _count_shipments(status: str) -> int:
    return db.session.query(func.count(Shipment.id)).filter(Shipment.status == status).scalar() or 0


def dashboard_metrics(today: date | None = None) -> dict:
    today = today or utcnow().date()
    day_start = datetime(today.year, today.month, today.day)
    month_start = datetime(today.year, today.month, 1)
    tomorrow = day_start + timedelta(days=1)

    total_sales, total_profit = _sales_and_profit()
    month_sales, month_profit = _sales_and_profit(since=month_start, until=tomorrow)
    today_sales, today_profit = _sales_and_profit(since=day_start, until=tomorrow)

    stock_rows = (
        db.session.query(Inventory, Product)
        .join(Product, Product.id == Inventory.product_id)
        .filter(Product.is_active.is_(True))
        .all()
    )
    rows = [inventory_row(inv, p) for inv, p in stock_rows]
    alerts = sorted(
        (r for r in rows if r["is_low_stock"] or r["is_out_of_stock"]),
        key=lambda r: (r["quantity_in_stock"], r["name"]),
    )

    recent_orders = (
        db.session.query(Order)
        .order_by(Order.order_date.desc(), Order.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    recent_shipments = (
        db.session.query(Shipment)
        .order_by(Shipment.order_date.desc(), Shipment.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )

    metrics = {
        "total_sales_cents": total_sales,
        "total_profit_cents": total_profit,
        "month_sales_cents": month_sales,
        "month_profit_cents": month_profit,
        "today_sales_cents": today_sales,
        "today_profit_cents": today_profit,
        "total_orders": db.session.query(func.count(Order.id)).scalar() or 0,
        "pending_orders": _count_orders(ORDER_STATUS_PENDING),
        "paid_orders": _count_orders(ORDER_STATUS_PAID),
        "shipped_orders": _count_orders(ORDER_STATUS_SHIPPED),
        "delivered_orders": _count_orders(ORDER_STATUS_DELIVERED),
        "cancelled_orders": _count_orders(ORDER_STATUS_CANCELLED),
        "total_shipments": db.session.query(func.count(Shipment.id)).scalar() or 0,
        "pending_shipments": _count_shipments(SHIPMENT_STATUS_PENDING),
        "in_transit_shipments": _count_shipments(SHIPMENT_STATUS_IN_TRANSIT),
        "received_shipments": _count_shipments(SHIPMENT_STATUS_RECEIVED),
        "total_products": len(rows),
        "low_stock_count": sum(1 for r in rows if is_low_stock(r["quantity_in_stock"], r["reorder_level"])),
        "out_of_stock_count": sum(1 for r in rows if is_out_of_stock(r["quantity_in_stock"])),
        "total_inventory_value_cents": sum(r["total_value_cents"] for r in rows),
        "recent_orders": [o.to_dict() for o in recent_orders],
        "recent_shipments": [s.to_dict() for s in recent_shipments],
        "stock_alerts": alerts[:STOCK_ALERT_LIMIT],
    }
    metrics.update(cash_totals())
    return metrics
