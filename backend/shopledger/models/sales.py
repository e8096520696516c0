from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


ORDER_STATUS_PENDING = "Pending"
ORDER_STATUS_PAID = "Paid"
ORDER_STATUS_SHIPPED = "Shipped"
ORDER_STATUS_DELIVERED = "Delivered"
ORDER_STATUS_CANCELLED = "Cancelled"

ORDER_STATUSES = (
    ORDER_STATUS_PENDING,
    ORDER_STATUS_PAID,
    ORDER_STATUS_SHIPPED,
    ORDER_STATUS_DELIVERED,
    ORDER_STATUS_CANCELLED,
)

# Statuses that count as "money received" for reporting
PAID_ORDER_STATUSES = (ORDER_STATUS_PAID, ORDER_STATUS_SHIPPED, ORDER_STATUS_DELIVERED)


class Cart(db.Model):
    """
    Storefront cart keyed by an opaque session id.

    Created lazily on first add and deleted on successful checkout.
    """
    __tablename__ = "carts"
    __table_args__ = (
        db.UniqueConstraint("session_id", name="uq_carts_session"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(100), nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())
    last_updated = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    items = db.relationship(
        "CartItem",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
        lazy=True,
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "created_at": to_utc_z(self.created_at),
            "last_updated": to_utc_z(self.last_updated),
            "items": [item.to_dict() for item in self.items],
        }


class CartItem(db.Model):
    __tablename__ = "cart_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    cart_id = db.Column(db.Integer, db.ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    added_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cart_id": self.cart_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "added_at": to_utc_z(self.added_at),
        }


class Order(db.Model):
    """
    Customer order created at checkout.

    Status flow: Pending -> Paid -> Shipped -> Delivered, or Pending -> Cancelled.
    Amounts are fixed at creation: total = subtotal + shipping fee.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_status_date", "status", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(50), nullable=False)
    order_date = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    customer_name = db.Column(db.String(200), nullable=True)
    shipping_address = db.Column(db.String(500), nullable=True)
    contact_number = db.Column(db.String(20), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    shipping_fee_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(50), nullable=False, default=ORDER_STATUS_PENDING, index=True)

    payment_date = db.Column(db.DateTime, nullable=True)
    payment_method = db.Column(db.String(100), nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    items = db.relationship(
        "OrderItem",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
        lazy=True,
    )

    @property
    def is_paid(self) -> bool:
        return self.status in PAID_ORDER_STATUSES

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "order_date": to_utc_z(self.order_date),
            "customer_name": self.customer_name,
            "shipping_address": self.shipping_address,
            "contact_number": self.contact_number,
            "subtotal_cents": self.subtotal_cents,
            "shipping_fee_cents": self.shipping_fee_cents,
            "total_cents": self.total_cents,
            "status": self.status,
            "payment_date": to_utc_z(self.payment_date) if self.payment_date else None,
            "payment_method": self.payment_method,
            "notes": self.notes,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """Immutable snapshot of a cart line at checkout (name, price, cost)."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)

    product_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "line_total_cents": self.unit_price_cents * self.quantity,
        }
