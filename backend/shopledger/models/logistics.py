from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


SHIPMENT_STATUS_PENDING = "Pending"
SHIPMENT_STATUS_IN_TRANSIT = "In Transit"
SHIPMENT_STATUS_RECEIVED = "Received"
SHIPMENT_STATUS_CANCELLED = "Cancelled"

SHIPMENT_STATUSES = (
    SHIPMENT_STATUS_PENDING,
    SHIPMENT_STATUS_IN_TRANSIT,
    SHIPMENT_STATUS_RECEIVED,
    SHIPMENT_STATUS_CANCELLED,
)


class Shipment(db.Model):
    """
    Incoming supplier delivery batch.

    LIFECYCLE:
    1. Pending: created, nothing received yet
    2. In Transit: some items received
    3. Received: every item received (terminal, cannot be deleted)
    4. Cancelled: abandoned by the admin

    One shipping fee covers the whole batch; the per-unit share is derived on
    demand from the item quantities and never stored.
    """
    __tablename__ = "shipments"
    __table_args__ = (
        db.UniqueConstraint("shipment_number", name="uq_shipments_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shipment_number = db.Column(db.String(50), nullable=False)
    store_source = db.Column(db.String(200), nullable=False)

    order_date = db.Column(db.DateTime, nullable=False, server_default=db.func.now())
    expected_arrival = db.Column(db.DateTime, nullable=True)
    received_date = db.Column(db.DateTime, nullable=True)

    total_shipping_fee_cents = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(50), nullable=False, default=SHIPMENT_STATUS_PENDING, index=True)
    notes = db.Column(db.String(500), nullable=True)

    items = db.relationship(
        "ShipmentItem",
        cascade="all, delete-orphan",
        order_by="ShipmentItem.id",
        lazy=True,
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "shipment_number": self.shipment_number,
            "store_source": self.store_source,
            "order_date": to_utc_z(self.order_date),
            "expected_arrival": to_utc_z(self.expected_arrival) if self.expected_arrival else None,
            "received_date": to_utc_z(self.received_date) if self.received_date else None,
            "total_shipping_fee_cents": self.total_shipping_fee_cents,
            "status": self.status,
            "notes": self.notes,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class ShipmentItem(db.Model):
    """
    A line within a shipment.

    product_id may be set at creation (pre-linked) or resolved at receipt
    time by item_code. Deleting the product nulls the link.
    """
    __tablename__ = "shipment_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    shipment_id = db.Column(db.Integer, db.ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    item_name = db.Column(db.String(200), nullable=False)
    item_code = db.Column(db.String(50), nullable=False)
    category = db.Column(db.String(100), nullable=True)
    brand = db.Column(db.String(100), nullable=True)

    unit_cost_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    is_received = db.Column(db.Boolean, nullable=False, default=False)
    received_date = db.Column(db.DateTime, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shipment_id": self.shipment_id,
            "product_id": self.product_id,
            "item_name": self.item_name,
            "item_code": self.item_code,
            "category": self.category,
            "brand": self.brand,
            "unit_cost_cents": self.unit_cost_cents,
            "quantity": self.quantity,
            "line_total_cost_cents": self.unit_cost_cents * self.quantity,
            "is_received": self.is_received,
            "received_date": to_utc_z(self.received_date) if self.received_date else None,
        }
