# backend/shopledger/services/products_service.py
"""
Catalog Service

Products are soft-deleted: deactivate_product() clears is_active and keeps
the row so historical orders and shipments still resolve. Every product is
created together with its Inventory row.
"""
from __future__ import annotations

import logging

from sqlalchemy import or_

from ..extensions import db
from ..errors import ConflictError, NotFoundError
from ..models import Inventory, Product
from ..stock import is_low_stock, is_out_of_stock, matches_stock_filter, stock_status
from ..time_utils import utcnow
from ..validation import (
    PRODUCT_POLICY,
    enforce_rules_product,
    require_non_negative,
    validate_payload,
)
from .transaction import run_in_transaction

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = PRODUCT_POLICY.writable_fields

NO_INVENTORY_STATUS = "No Inventory"


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_item_code_free(item_code: str, exclude_product_id: int | None = None) -> None:
    q = db.session.query(Product.id).filter(Product.item_code == item_code)
    if exclude_product_id is not None:
        q = q.filter(Product.id != exclude_product_id)
    if q.first() is not None:
        raise ConflictError(f"Item code {item_code!r} is already used by another product")


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError(f"Product {product_id} not found")
    return product


def find_active_product_by_code(item_code: str) -> Product | None:
    return (
        db.session.query(Product)
        .filter(Product.item_code == item_code, Product.is_active.is_(True))
        .first()
    )


def get_inventory_for_product(product_id: int) -> Inventory | None:
    return db.session.query(Inventory).filter_by(product_id=product_id).first()


def new_product_with_inventory(
    *,
    patch: dict,
    initial_stock: int,
    reorder_level: int,
) -> tuple[Product, Inventory]:
    """
    Add a product and its inventory row to the current transaction.

    Flushes (ids assigned) but never commits. Callers validate the patch.
    """
    product = Product(is_active=True, created_at=utcnow())
    apply_product_patch(product, patch)
    db.session.add(product)
    db.session.flush()

    inventory = Inventory(
        product_id=product.id,
        quantity_in_stock=initial_stock,
        reorder_level=reorder_level,
        last_updated=utcnow(),
    )
    db.session.add(inventory)
    db.session.flush()
    return product, inventory


def create_product(*, patch: dict, initial_stock: int = 0, reorder_level: int = 10) -> Product:
    """
    Create a product using a patch dict, with its inventory row.

    Args:
        patch: item_code, name, cost_price_cents, selling_price_cents and
            optionally brand, category, description, image_url
        initial_stock: starting quantity in stock
        reorder_level: low-stock threshold

    Raises:
        ValidationError: invalid payload
        ConflictError: item_code already exists
    """
    cleaned = validate_payload(model=Product, payload=patch, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(cleaned)
    initial_stock = require_non_negative("initial_stock", initial_stock)
    reorder_level = require_non_negative("reorder_level", reorder_level)

    def _op():
        _ensure_item_code_free(cleaned["item_code"])
        product, _ = new_product_with_inventory(
            patch=cleaned,
            initial_stock=initial_stock,
            reorder_level=reorder_level,
        )
        logger.info("Product %s created with %d units", product.item_code, initial_stock)
        return product

    return run_in_transaction(_op)


def update_product(product_id: int, patch: dict) -> Product:
    """Partial update; item_code stays unique across all products."""
    cleaned = validate_payload(model=Product, payload=patch, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(cleaned)

    def _op():
        product = get_product(product_id)
        if "item_code" in cleaned:
            _ensure_item_code_free(cleaned["item_code"], exclude_product_id=product.id)
        apply_product_patch(product, cleaned)
        return product

    return run_in_transaction(_op)


def deactivate_product(product_id: int) -> Product:
    """Soft delete: the row, its inventory and every reference stay in place."""
    def _op():
        product = get_product(product_id)
        product.is_active = False
        logger.info("Product %s deactivated", product.item_code)
        return product

    return run_in_transaction(_op)


def product_row(product: Product, inventory: Inventory | None) -> dict:
    """Catalog view of a product with its derived stock fields."""
    row = product.to_dict()
    if inventory is None:
        row.update({
            "quantity_in_stock": 0,
            "reorder_level": 0,
            "is_low_stock": False,
            "is_out_of_stock": True,
            "stock_status": NO_INVENTORY_STATUS,
        })
        return row

    qty = inventory.quantity_in_stock
    row.update({
        "quantity_in_stock": qty,
        "reorder_level": inventory.reorder_level,
        "is_low_stock": is_low_stock(qty, inventory.reorder_level),
        "is_out_of_stock": is_out_of_stock(qty),
        "stock_status": stock_status(qty, inventory.reorder_level),
    })
    return row


def search_filter(term: str, *columns):
    pattern = f"%{term}%"
    return or_(*[col.like(pattern) for col in columns])


def list_products(
    *,
    category: str | None = None,
    stock_filter: str | None = None,
    search: str | None = None,
) -> list[dict]:
    """
    Active products ordered by name, with stock fields.

    stock_filter: InStock, LowStock or OutOfStock (applied after status
    derivation). Products without inventory only match OutOfStock.
    """
    q = (
        db.session.query(Product, Inventory)
        .outerjoin(Inventory, Inventory.product_id == Product.id)
        .filter(Product.is_active.is_(True))
    )
    if category:
        q = q.filter(Product.category == category)
    if search:
        q = q.filter(search_filter(search, Product.name, Product.item_code, Product.brand))

    rows = [product_row(p, inv) for p, inv in q.order_by(Product.name.asc(), Product.id.asc()).all()]

    if stock_filter:
        rows = [r for r in rows if matches_stock_filter(r["is_low_stock"], r["is_out_of_stock"], stock_filter)]
    return rows


def list_categories(*, active_only: bool = True) -> list[str]:
    q = db.session.query(Product.category).filter(Product.category.isnot(None))
    if active_only:
        q = q.filter(Product.is_active.is_(True))
    return [c for (c,) in q.distinct().order_by(Product.category.asc()).all()]
