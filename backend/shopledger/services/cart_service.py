"""
Storefront cart service.

The cart is addressed by an opaque session id that the caller passes in
explicitly; nothing here reads request or session state.
"""

from __future__ import annotations

import logging

from flask import current_app

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import Cart, CartItem, Inventory, Product
from ..stock import line_total
from ..time_utils import utcnow
from .products_service import get_product, search_filter
from .transaction import run_in_transaction

logger = logging.getLogger(__name__)


def get_cart(session_id: str) -> Cart | None:
    return db.session.query(Cart).filter_by(session_id=session_id).first()


def get_cart_item(session_id: str, cart_item_id: int) -> CartItem:
    """A line of this session's cart; lines of other sessions are not found."""
    item = (
        db.session.query(CartItem)
        .join(Cart, Cart.id == CartItem.cart_id)
        .filter(CartItem.id == cart_item_id, Cart.session_id == session_id)
        .first()
    )
    if item is None:
        raise NotFoundError(f"Cart item {cart_item_id} not found")
    return item


def _stock_for(product_id: int) -> int:
    qty = (
        db.session.query(Inventory.quantity_in_stock)
        .filter_by(product_id=product_id)
        .scalar()
    )
    return qty or 0


def list_shop_products(*, category: str | None = None, search: str | None = None) -> list[Product]:
    """Products a customer can buy: active and with stock on hand."""
    q = (
        db.session.query(Product)
        .join(Inventory, Inventory.product_id == Product.id)
        .filter(Product.is_active.is_(True), Inventory.quantity_in_stock > 0)
    )
    if category:
        q = q.filter(Product.category == category)
    if search:
        q = q.filter(search_filter(search, Product.name, Product.brand))
    return q.order_by(Product.name.asc(), Product.id.asc()).all()


def add_to_cart(session_id: str, product_id: int, quantity: int = 1) -> CartItem:
    """
    Add quantity of a product to the session's cart.

    The cart is created on first add; adding a product already in the cart
    increases that line instead of creating a second one.
    """
    if not session_id:
        raise ValidationError("session_id is required")
    if quantity <= 0:
        raise ValidationError("quantity must be positive")

    def _op():
        get_product(product_id)

        cart = get_cart(session_id)
        now = utcnow()
        if cart is None:
            cart = Cart(session_id=session_id, created_at=now, last_updated=now)
            db.session.add(cart)
            db.session.flush()

        item = next((i for i in cart.items if i.product_id == product_id), None)
        if item is not None:
            item.quantity += quantity
        else:
            item = CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity, added_at=now)
            cart.items.append(item)

        cart.last_updated = now
        db.session.flush()
        logger.debug("Cart %s: product %s now x%d", session_id, product_id, item.quantity)
        return item

    return run_in_transaction(_op)


def update_cart_item(session_id: str, cart_item_id: int, quantity: int) -> CartItem | None:
    """
    Change a line's quantity.

    quantity <= 0 removes the line (returns None). Otherwise the quantity is
    clamped to the product's current stock when there is any stock.
    """
    def _op():
        item = get_cart_item(session_id, cart_item_id)
        if quantity <= 0:
            db.session.delete(item)
            return None

        max_stock = _stock_for(item.product_id)
        item.quantity = min(quantity, max_stock) if max_stock > 0 else quantity
        return item

    return run_in_transaction(_op)


def remove_cart_item(session_id: str, cart_item_id: int) -> None:
    def _op():
        item = get_cart_item(session_id, cart_item_id)
        db.session.delete(item)

    run_in_transaction(_op)


def cart_lines(cart: Cart) -> list[dict]:
    lines = []
    for item in cart.items:
        product = db.session.get(Product, item.product_id)
        unit_price = product.selling_price_cents if product else 0
        lines.append({
            "cart_item_id": item.id,
            "product_id": item.product_id,
            "product_name": product.name if product else "Unknown",
            "quantity": item.quantity,
            "unit_price_cents": unit_price,
            "line_total_cents": line_total(unit_price, item.quantity),
        })
    return lines


def cart_summary(session_id: str, shipping_fee_cents: int | None = None) -> dict:
    """Checkout preview. An unknown session yields an empty cart."""
    if shipping_fee_cents is None:
        shipping_fee_cents = current_app.config["DEFAULT_SHIPPING_FEE_CENTS"]

    cart = get_cart(session_id)
    lines = cart_lines(cart) if cart is not None else []
    subtotal = sum(line["line_total_cents"] for line in lines)
    return {
        "session_id": session_id,
        "items": lines,
        "subtotal_cents": subtotal,
        "shipping_fee_cents": shipping_fee_cents,
        "total_cents": subtotal + shipping_fee_cents,
    }
