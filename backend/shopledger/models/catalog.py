from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    SOFT DELETE:
    Products are never hard-deleted by the service layer. Clearing is_active
    hides the product from the catalog and storefront while historical
    OrderItems, CartItems and ShipmentItems keep resolving.

    ITEM CODE:
    item_code is the supplier/shop code and is globally unique. Shipment
    receipt matches incoming lines to existing products by item_code.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("item_code", name="uq_products_item_code"),
        db.Index("ix_products_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    item_code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    brand = db.Column(db.String(100), nullable=True)
    category = db.Column(db.String(100), nullable=True)
    description = db.Column(db.String(500), nullable=True)
    image_url = db.Column(db.String(500), nullable=True)

    # Authoritative storage in cents
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    selling_price_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Product id={self.id} item_code={self.item_code!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_code": self.item_code,
            "name": self.name,
            "brand": self.brand,
            "category": self.category,
            "description": self.description,
            "image_url": self.image_url,
            "cost_price_cents": self.cost_price_cents,
            "selling_price_cents": self.selling_price_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Inventory(db.Model):
    """
    Stock record for a product (one-to-one).

    quantity_in_stock is a mutable counter. Checkout decrements it, shipment
    receipt increments it, manual adjustment rewrites it and cancellation of a
    pending order restores it. Stock status is derived, see shopledger.stock.
    """
    __tablename__ = "inventories"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_inventories_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(
        db.Integer,
        db.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    quantity_in_stock = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=10)

    last_updated = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Inventory id={self.id} product_id={self.product_id} qty={self.quantity_in_stock}>"

    def to_dict(self) -> dict:
        from ..stock import stock_status

        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity_in_stock": self.quantity_in_stock,
            "reorder_level": self.reorder_level,
            "stock_status": stock_status(self.quantity_in_stock, self.reorder_level),
            "last_updated": to_utc_z(self.last_updated),
        }
