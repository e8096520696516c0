"""
Order Service - checkout, payment and status lifecycle

LIFECYCLE:
1. Pending: created at checkout, stock already deducted
2. Paid: payment recorded, Income/Sales cash flow appended
3. Shipped / Delivered: informational, no side effects
4. Cancelled: from Pending, stock restored

The admin is trusted: update_order_status() accepts any known status from
any state (e.g. Pending -> Delivered). Only Pending -> Cancelled has a side
effect.

IMMUTABLE: OrderItems snapshot name, unit price and unit cost at checkout;
later catalog edits never change an existing order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..errors import InvalidArgumentError, InvalidStateError, NotFoundError, ValidationError
from ..models import Inventory, Order, OrderItem, Product
from ..models.finance import CATEGORY_SALES, TYPE_INCOME
from ..models.sales import (
    ORDER_STATUS_CANCELLED,
    ORDER_STATUS_PAID,
    ORDER_STATUS_PENDING,
    ORDER_STATUSES,
)
from ..stock import line_total
from ..time_utils import end_of_day_exclusive, normalize_datetime, utcnow
from ..validation import require_non_negative, require_text
from .cart_service import get_cart
from .cashflow_service import record_cash_flow
from .document_service import next_document_number
from .inventory_service import change_stock, restore_stock
from .products_service import search_filter
from .transaction import run_in_transaction

logger = logging.getLogger(__name__)

DELETABLE_STATUSES = (ORDER_STATUS_PENDING, ORDER_STATUS_CANCELLED)
DEFAULT_PAGE_SIZE = 10


@dataclass
class PaymentResult:
    order: Order
    cash_flow_id: int
    profit_cents: int


def order_financials(order: Order) -> dict:
    """Cost and profit derived from the order's snapshot lines."""
    total_cost = sum(line_total(i.unit_cost_cents, i.quantity) for i in order.items)
    return {
        "subtotal_cents": order.subtotal_cents,
        "shipping_fee_cents": order.shipping_fee_cents,
        "total_cents": order.total_cents,
        "total_cost_cents": total_cost,
        "profit_cents": order.subtotal_cents - total_cost - order.shipping_fee_cents,
        "lines": [
            {
                "order_item_id": i.id,
                "line_total_cents": line_total(i.unit_price_cents, i.quantity),
                "line_profit_cents": (i.unit_price_cents - i.unit_cost_cents) * i.quantity,
            }
            for i in order.items
        ],
    }


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFoundError(f"Order {order_id} not found")
    return order


def get_order_by_number(order_number: str) -> Order:
    """Customer order tracking lookup."""
    if not order_number or not order_number.strip():
        raise ValidationError("order_number is required")
    order = db.session.query(Order).filter_by(order_number=order_number.strip()).first()
    if order is None:
        raise NotFoundError(f"Order {order_number} not found")
    return order


def checkout(
    *,
    session_id: str,
    customer_name: str,
    shipping_address: str,
    contact_number: str | None = None,
    shipping_fee_cents: int | None = None,
    notes: str | None = None,
) -> Order:
    """
    Convert the session's cart into a Pending order.

    Snapshots every line, decrements stock by the ordered quantity (no
    availability check) and deletes the cart, all in one transaction.

    Raises:
        ValidationError: empty/missing cart, blank customer name or address
    """
    if shipping_fee_cents is None:
        shipping_fee_cents = current_app.config["DEFAULT_SHIPPING_FEE_CENTS"]
    shipping_fee_cents = require_non_negative("shipping_fee_cents", shipping_fee_cents)

    def _op():
        cart = get_cart(session_id)
        if cart is None or not cart.items:
            raise ValidationError("Your cart is empty.")

        name = (customer_name or "").strip()
        address = (shipping_address or "").strip()
        if not name or not address:
            raise ValidationError("Customer name and shipping address are required.")

        order = Order(
            order_number=next_document_number(document_type="ORDER", prefix="ORD"),
            order_date=utcnow(),
            customer_name=name,
            shipping_address=address,
            contact_number=contact_number,
            shipping_fee_cents=shipping_fee_cents,
            status=ORDER_STATUS_PENDING,
            notes=notes,
        )

        subtotal = 0
        for cart_item in cart.items:
            product = db.session.get(Product, cart_item.product_id)
            unit_price = product.selling_price_cents if product else 0
            order.items.append(OrderItem(
                product_id=cart_item.product_id,
                product_name=product.name if product else "Unknown",
                quantity=cart_item.quantity,
                unit_price_cents=unit_price,
                unit_cost_cents=product.cost_price_cents if product else 0,
            ))
            subtotal += line_total(unit_price, cart_item.quantity)

            inventory = db.session.query(Inventory).filter_by(product_id=cart_item.product_id).first()
            if inventory is not None:
                change_stock(inventory, -cart_item.quantity)

        order.subtotal_cents = subtotal
        order.total_cents = subtotal + shipping_fee_cents
        db.session.add(order)

        db.session.delete(cart)
        db.session.flush()

        logger.info(
            "Order %s placed: %d lines, total %d cents",
            order.order_number, len(order.items), order.total_cents,
        )
        return order

    return run_in_transaction(_op)


def _append_note(existing: str | None, note: str) -> str:
    return note if not existing else f"{existing}\n{note}"


def process_payment(order_id: int, method: str, notes: str | None = None) -> PaymentResult:
    """
    Mark a Pending order Paid and record the income.

    Raises:
        NotFoundError: unknown order
        InvalidStateError: order is not Pending
        ValidationError: blank payment method
    """
    method = require_text("payment method", method)

    def _op():
        order = get_order(order_id)
        if order.status != ORDER_STATUS_PENDING:
            raise InvalidStateError(
                f"Order {order.order_number} has already been processed (status {order.status})."
            )

        order.status = ORDER_STATUS_PAID
        order.payment_date = utcnow()
        order.payment_method = method
        if notes:
            order.notes = _append_note(order.notes, f"Payment: {notes}")

        entry = record_cash_flow(
            transaction_type=TYPE_INCOME,
            category=CATEGORY_SALES,
            description=f"Payment received for Order {order.order_number}",
            amount_cents=order.total_cents,
            transaction_date=order.payment_date,
            reference_number=order.order_number,
            order_id=order.id,
            notes=f"Customer: {order.customer_name}, Payment Method: {method}",
        )

        profit = order_financials(order)["profit_cents"]
        logger.info("Order %s paid via %s (profit %d cents)", order.order_number, method, profit)
        return PaymentResult(order=order, cash_flow_id=entry.id, profit_cents=profit)

    return run_in_transaction(_op)


def _restore_order_stock(order: Order) -> None:
    for item in order.items:
        restore_stock(item.product_id, item.quantity)


def update_order_status(order_id: int, new_status: str) -> Order:
    """
    Overwrite the order's status.

    Pending -> Cancelled puts every line's quantity back into stock.

    Raises:
        NotFoundError: unknown order
        InvalidArgumentError: status is not one of ORDER_STATUSES
    """
    def _op():
        order = get_order(order_id)
        if new_status not in ORDER_STATUSES:
            raise InvalidArgumentError(f"Invalid status {new_status!r}.")

        if new_status == ORDER_STATUS_CANCELLED and order.status == ORDER_STATUS_PENDING:
            _restore_order_stock(order)
            logger.info("Order %s cancelled, inventory restored", order.order_number)
        else:
            logger.info("Order %s status %s -> %s", order.order_number, order.status, new_status)

        order.status = new_status
        return order

    return run_in_transaction(_op)


def delete_order(order_id: int) -> None:
    """
    Delete a Pending or Cancelled order and its items.

    A Pending order's quantities go back into stock first.

    Raises:
        NotFoundError: unknown order
        InvalidStateError: order is Paid, Shipped or Delivered
    """
    def _op():
        order = get_order(order_id)
        if order.status not in DELETABLE_STATUSES:
            raise InvalidStateError("Cannot delete orders that have been paid, shipped, or delivered.")

        if order.status == ORDER_STATUS_PENDING:
            _restore_order_stock(order)

        number = order.order_number
        db.session.delete(order)
        logger.info("Order %s deleted", number)

    run_in_transaction(_op)


def list_orders(
    *,
    status: str | None = None,
    start_date=None,
    end_date=None,
    search: str | None = None,
    page: int | None = None,
    per_page: int = DEFAULT_PAGE_SIZE,
) -> dict:
    """
    Orders newest first with optional pagination.

    search matches order number or customer name; end_date includes the
    whole day.
    """
    q = db.session.query(Order)
    if status:
        q = q.filter(Order.status == status)
    start = normalize_datetime(start_date)
    if start is not None:
        q = q.filter(Order.order_date >= start)
    end = end_of_day_exclusive(end_date)
    if end is not None:
        q = q.filter(Order.order_date < end)
    if search:
        q = q.filter(search_filter(search, Order.order_number, Order.customer_name))

    q = q.order_by(Order.order_date.desc(), Order.id.desc())

    if page is None:
        orders = q.all()
        return {"items": orders, "count": len(orders)}

    per_page = max(per_page, 1)
    page = max(page, 1)
    total = q.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    orders = q.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": orders,
        "count": len(orders),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
