# Overview: Service-layer operations for inventory; stock counters, adjustments and listings.

# backend/shopledger/services/inventory_service.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..extensions import db
from ..errors import InvalidArgumentError, NotFoundError
from ..models import Inventory, Product
from ..models.finance import CATEGORY_PURCHASE, TYPE_EXPENSE
from ..stock import (
    is_low_stock,
    is_out_of_stock,
    matches_stock_filter,
    needs_reorder,
    stock_status,
)
from ..time_utils import to_utc_z, utcnow
from ..validation import require_non_negative
from .cashflow_service import record_cash_flow
from .document_service import timestamp_reference
from .products_service import search_filter
from .transaction import run_in_transaction
"""
Inventory Invariants

- Exactly one Inventory row per product; it is created with the product
  (catalog or shipment receipt) or lazily by ensure_inventory().
- quantity_in_stock is a plain counter. Checkout decrements it without a
  sufficiency check, so it may go negative; manual Remove clamps at zero.
- Every mutation stamps last_updated.
"""

logger = logging.getLogger(__name__)

ADJUST_ADD = "Add"
ADJUST_REMOVE = "Remove"
ADJUST_SET = "Set"
ADJUSTMENT_TYPES = (ADJUST_ADD, ADJUST_REMOVE, ADJUST_SET)

PURCHASE_REASON_TOKEN = "purchase"


@dataclass
class AdjustmentResult:
    inventory: Inventory
    previous_quantity: int
    new_quantity: int
    cash_flow_id: int | None = None


@dataclass
class InventoryListing:
    items: list[dict] = field(default_factory=list)
    total_products: int = 0
    in_stock_count: int = 0
    low_stock_count: int = 0
    out_of_stock_count: int = 0
    total_inventory_value_cents: int = 0
    total_inventory_cost_cents: int = 0

    def to_dict(self) -> dict:
        return {
            "items": self.items,
            "total_products": self.total_products,
            "in_stock_count": self.in_stock_count,
            "low_stock_count": self.low_stock_count,
            "out_of_stock_count": self.out_of_stock_count,
            "total_inventory_value_cents": self.total_inventory_value_cents,
            "total_inventory_cost_cents": self.total_inventory_cost_cents,
        }


def get_inventory(inventory_id: int) -> Inventory:
    inventory = db.session.get(Inventory, inventory_id)
    if inventory is None:
        raise NotFoundError(f"Inventory {inventory_id} not found")
    return inventory


def ensure_inventory(product_id: int, *, reorder_level: int = 10) -> Inventory:
    """Return the product's inventory row, creating an empty one if missing."""
    inventory = db.session.query(Inventory).filter_by(product_id=product_id).first()
    if inventory is None:
        inventory = Inventory(
            product_id=product_id,
            quantity_in_stock=0,
            reorder_level=reorder_level,
            last_updated=utcnow(),
        )
        db.session.add(inventory)
        db.session.flush()
    return inventory


def change_stock(inventory: Inventory, delta: int) -> Inventory:
    """Apply a signed delta in the caller's transaction (no clamping, no commit)."""
    inventory.quantity_in_stock += delta
    inventory.last_updated = utcnow()
    return inventory


def restore_stock(product_id: int, quantity: int) -> Inventory | None:
    """
    Put quantity back into a product's existing inventory.

    Products without an inventory row are left alone.
    """
    inventory = db.session.query(Inventory).filter_by(product_id=product_id).first()
    if inventory is None:
        return None
    return change_stock(inventory, quantity)


def compute_adjusted_quantity(current: int, adjustment_type: str, quantity: int) -> int:
    if adjustment_type == ADJUST_ADD:
        return current + quantity
    if adjustment_type == ADJUST_REMOVE:
        return max(0, current - quantity)
    if adjustment_type == ADJUST_SET:
        return quantity
    raise InvalidArgumentError(
        f"Invalid adjustment type {adjustment_type!r}. Must be one of: {', '.join(ADJUSTMENT_TYPES)}"
    )


def adjust_inventory(
    *,
    inventory_id: int,
    adjustment_type: str,
    quantity: int,
    reorder_level: int,
    reason: str | None = None,
) -> AdjustmentResult:
    """
    Manual stock adjustment.

    Add: current + quantity. Remove: current - quantity, clamped at zero.
    Set: quantity. The reorder level is overwritten in every case.

    An Add whose reason mentions "purchase" (any case) is bought stock and
    records an Expense/Purchase cash flow of cost price x quantity.
    """
    quantity = require_non_negative("quantity", quantity)
    reorder_level = require_non_negative("reorder_level", reorder_level)
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise InvalidArgumentError(
            f"Invalid adjustment type {adjustment_type!r}. Must be one of: {', '.join(ADJUSTMENT_TYPES)}"
        )

    def _op():
        inventory = get_inventory(inventory_id)
        previous = inventory.quantity_in_stock
        new_quantity = compute_adjusted_quantity(previous, adjustment_type, quantity)

        inventory.quantity_in_stock = new_quantity
        inventory.reorder_level = reorder_level
        inventory.last_updated = utcnow()

        result = AdjustmentResult(
            inventory=inventory,
            previous_quantity=previous,
            new_quantity=new_quantity,
        )

        if adjustment_type == ADJUST_ADD and reason and PURCHASE_REASON_TOKEN in reason.lower():
            product = db.session.get(Product, inventory.product_id)
            entry = record_cash_flow(
                transaction_type=TYPE_EXPENSE,
                category=CATEGORY_PURCHASE,
                description=f"Stock adjustment for {product.name}: Added {quantity} units. {reason}",
                amount_cents=product.cost_price_cents * quantity,
                reference_number=timestamp_reference("ADJ"),
                notes=reason,
            )
            result.cash_flow_id = entry.id

        logger.info(
            "Inventory %s adjusted (%s) from %d to %d",
            inventory.id, adjustment_type, previous, new_quantity,
        )
        return result

    return run_in_transaction(_op)


def inventory_row(inventory: Inventory, product: Product) -> dict:
    qty = inventory.quantity_in_stock
    return {
        "inventory_id": inventory.id,
        "product_id": product.id,
        "name": product.name,
        "brand": product.brand,
        "item_code": product.item_code,
        "category": product.category,
        "image_url": product.image_url,
        "cost_price_cents": product.cost_price_cents,
        "selling_price_cents": product.selling_price_cents,
        "quantity_in_stock": qty,
        "reorder_level": inventory.reorder_level,
        "last_updated": to_utc_z(inventory.last_updated),
        "is_low_stock": is_low_stock(qty, inventory.reorder_level),
        "is_out_of_stock": is_out_of_stock(qty),
        "stock_status": stock_status(qty, inventory.reorder_level),
        "total_value_cents": product.selling_price_cents * qty,
        "total_cost_cents": product.cost_price_cents * qty,
    }


def list_inventory(
    *,
    category: str | None = None,
    stock_filter: str | None = None,
    search: str | None = None,
) -> InventoryListing:
    """Inventory of active products with status counts; counts follow the filters."""
    q = (
        db.session.query(Inventory, Product)
        .join(Product, Product.id == Inventory.product_id)
        .filter(Product.is_active.is_(True))
    )
    if category:
        q = q.filter(Product.category == category)
    if search:
        q = q.filter(search_filter(search, Product.name, Product.item_code, Product.brand))

    rows = [inventory_row(inv, p) for inv, p in q.all()]
    if stock_filter:
        rows = [r for r in rows if matches_stock_filter(r["is_low_stock"], r["is_out_of_stock"], stock_filter)]
    rows.sort(key=lambda r: r["name"])

    return InventoryListing(
        items=rows,
        total_products=len(rows),
        in_stock_count=sum(1 for r in rows if not r["is_low_stock"] and not r["is_out_of_stock"]),
        low_stock_count=sum(1 for r in rows if r["is_low_stock"]),
        out_of_stock_count=sum(1 for r in rows if r["is_out_of_stock"]),
        total_inventory_value_cents=sum(r["total_value_cents"] for r in rows),
        total_inventory_cost_cents=sum(r["total_cost_cents"] for r in rows),
    )


def list_reorder_candidates() -> list[dict]:
    """
    Reorder list: active products at or below their reorder level.

    Uses needs_reorder(), which is wider than the Low Stock status. Rows keep
    the standard stock_status so badges agree with the rest of the system.
    """
    q = (
        db.session.query(Inventory, Product)
        .join(Product, Product.id == Inventory.product_id)
        .filter(Product.is_active.is_(True))
        .order_by(Inventory.quantity_in_stock.asc(), Inventory.id.asc())
    )
    return [
        inventory_row(inv, p)
        for inv, p in q.all()
        if needs_reorder(inv.quantity_in_stock, inv.reorder_level)
    ]
