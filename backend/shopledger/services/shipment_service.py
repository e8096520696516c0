# Overview: Supplier shipments; creation with logistics expense, receipt into inventory, status upkeep.

"""
Shipment Service

LIFECYCLE:
1. Pending: created, logistics expense already recorded
2. In Transit: some items received
3. Received: every item received (terminal: no more receipts, no delete)
4. Cancelled: abandoned (no receipts)

RECEIPT: each item is received at most once. Re-requesting a received item
is counted as skipped and has no inventory effect.

COSTING: the batch shipping fee is spread evenly over the total unit count.
The per-unit share only feeds the cost of products created at receipt; it is
never stored on the shipment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from flask import current_app

from ..extensions import db
from ..errors import InvalidArgumentError, InvalidStateError, NotFoundError, ValidationError
from ..models import Inventory, Product, Shipment, ShipmentItem
from ..models.finance import CATEGORY_LOGISTICS, TYPE_EXPENSE
from ..models.logistics import (
    SHIPMENT_STATUS_CANCELLED,
    SHIPMENT_STATUS_IN_TRANSIT,
    SHIPMENT_STATUS_PENDING,
    SHIPMENT_STATUS_RECEIVED,
    SHIPMENT_STATUSES,
)
from ..stock import allocate_per_unit, line_total, markup_price
from ..time_utils import end_of_day_exclusive, normalize_datetime, utcnow
from ..validation import require_non_negative, require_text
from .cashflow_service import record_cash_flow
from .document_service import random_document_number
from .inventory_service import change_stock, ensure_inventory
from .products_service import find_active_product_by_code, new_product_with_inventory, search_filter
from .transaction import run_in_transaction

logger = logging.getLogger(__name__)

NOT_RECEIVABLE_STATUSES = (SHIPMENT_STATUS_RECEIVED, SHIPMENT_STATUS_CANCELLED)


@dataclass
class ReceiveRequest:
    shipment_item_id: int
    create_new_product: bool = False
    selling_price_cents: int | None = None


@dataclass
class ReceiveResult:
    shipment: Shipment
    received: int = 0
    skipped: int = 0

    @property
    def completed(self) -> bool:
        return self.shipment.status == SHIPMENT_STATUS_RECEIVED


def get_shipment(shipment_id: int) -> Shipment:
    shipment = db.session.get(Shipment, shipment_id)
    if shipment is None:
        raise NotFoundError(f"Shipment {shipment_id} not found")
    return shipment


def shipment_totals(shipment: Shipment) -> dict:
    total_units = sum(i.quantity for i in shipment.items)
    items_cost = sum(line_total(i.unit_cost_cents, i.quantity) for i in shipment.items)
    return {
        "total_units": total_units,
        "total_item_cost_cents": items_cost,
        "allocated_shipping_per_unit_cents": allocate_per_unit(shipment.total_shipping_fee_cents, total_units),
        "total_with_shipping_cents": items_cost + shipment.total_shipping_fee_cents,
    }


def _clean_items(items: list[dict]) -> list[dict]:
    cleaned = []
    for raw in items or []:
        name = (raw.get("item_name") or "").strip()
        if not name:
            continue
        code = (raw.get("item_code") or "").strip()
        if not code:
            raise ValidationError(f"Item code is required for {name!r}")
        cleaned.append({
            "item_name": name,
            "item_code": code,
            "category": raw.get("category"),
            "brand": raw.get("brand"),
            "unit_cost_cents": require_non_negative("unit_cost_cents", raw.get("unit_cost_cents")),
            "quantity": require_non_negative("quantity", raw.get("quantity")),
            "product_id": raw.get("product_id"),
        })
    return cleaned


def create_shipment(
    *,
    store_source: str,
    items: list[dict],
    order_date: datetime | str | None = None,
    expected_arrival: datetime | str | None = None,
    total_shipping_fee_cents: int = 0,
    notes: str | None = None,
) -> Shipment:
    """
    Record a supplier order and its logistics expense.

    Args:
        store_source: supplier / store the goods come from
        items: dicts with item_name, item_code, category, brand,
            unit_cost_cents, quantity and optional product_id. Items with a
            blank name are dropped.
        total_shipping_fee_cents: one fee for the whole batch

    Raises:
        ValidationError: blank store source or no usable items
    """
    store_source = require_text("store_source", store_source)
    total_shipping_fee_cents = require_non_negative("total_shipping_fee_cents", total_shipping_fee_cents)
    cleaned = _clean_items(items)
    if not cleaned:
        raise ValidationError("Please add at least one item to the shipment.")

    ordered_at = normalize_datetime(order_date) or utcnow()
    expected_at = normalize_datetime(expected_arrival)

    def _op():
        shipment = Shipment(
            shipment_number=random_document_number("SHP"),
            store_source=store_source,
            order_date=ordered_at,
            expected_arrival=expected_at,
            total_shipping_fee_cents=total_shipping_fee_cents,
            status=SHIPMENT_STATUS_PENDING,
            notes=notes,
        )
        for data in cleaned:
            shipment.items.append(ShipmentItem(is_received=False, **data))
        db.session.add(shipment)
        db.session.flush()

        totals = shipment_totals(shipment)
        record_cash_flow(
            transaction_type=TYPE_EXPENSE,
            category=CATEGORY_LOGISTICS,
            description=f"Shipment order from {store_source} - {shipment.shipment_number}",
            amount_cents=totals["total_with_shipping_cents"],
            transaction_date=ordered_at,
            reference_number=shipment.shipment_number,
            shipment_id=shipment.id,
            notes=f"Items: {len(shipment.items)}, Total Shipping: {total_shipping_fee_cents}",
        )

        logger.info(
            "Shipment %s created from %s: %d items, %d cents",
            shipment.shipment_number, store_source, len(shipment.items), totals["total_with_shipping_cents"],
        )
        return shipment

    return run_in_transaction(_op)


def _receive_item(
    item: ShipmentItem,
    request: ReceiveRequest,
    *,
    allocated_cents: int,
    reorder_level: int,
) -> bool:
    product = find_active_product_by_code(item.item_code)
    if product is not None:
        inventory = ensure_inventory(product.id, reorder_level=reorder_level)
        change_stock(inventory, item.quantity)
        item.product_id = product.id
        return True

    if request.create_new_product:
        if db.session.query(Product.id).filter(Product.item_code == item.item_code).first() is not None:
            # item_code held by a deactivated product
            logger.warning(
                "Shipment item %s not received: item code %s belongs to an inactive product",
                item.id, item.item_code,
            )
            return False

        final_cost = item.unit_cost_cents + allocated_cents
        selling = request.selling_price_cents
        if selling is None:
            selling = markup_price(final_cost)
        product, _ = new_product_with_inventory(
            patch={
                "item_code": item.item_code,
                "name": item.item_name,
                "brand": item.brand,
                "category": item.category,
                "cost_price_cents": final_cost,
                "selling_price_cents": require_non_negative("selling_price_cents", selling),
            },
            initial_stock=item.quantity,
            reorder_level=reorder_level,
        )
        item.product_id = product.id
        logger.info("Product %s created from shipment item %s", product.item_code, item.id)
        return True

    if item.product_id is not None:
        inventory = db.session.query(Inventory).filter_by(product_id=item.product_id).first()
        if inventory is not None:
            change_stock(inventory, item.quantity)
        return True

    logger.info("Shipment item %s (%s) received without a product", item.id, item.item_code)
    return True


def receive_shipment(shipment_id: int, requests: list[ReceiveRequest]) -> ReceiveResult:
    """
    Receive the requested shipment items into inventory.

    Per item, the first matching rule wins:
    1. an active product with the same item code gets the stock
    2. create_new_product builds a product costed at unit cost plus the
       allocated shipping share, priced as supplied or 1.5x that cost
    3. a pre-linked product gets the stock if it has inventory
    4. otherwise the item is only marked received

    Unknown or already received items are skipped and counted, not errors.
    So is a create request whose item code a deactivated product still holds.
    Afterwards the shipment is Received when every item is, else In Transit.

    Raises:
        NotFoundError: unknown shipment
        InvalidStateError: shipment already Received or Cancelled
    """
    reorder_level = current_app.config["DEFAULT_REORDER_LEVEL"]

    def _op():
        shipment = get_shipment(shipment_id)
        if shipment.status in NOT_RECEIVABLE_STATUSES:
            raise InvalidStateError(
                f"Shipment {shipment.shipment_number} is {shipment.status} and cannot be received."
            )

        by_id = {item.id: item for item in shipment.items}
        allocated = shipment_totals(shipment)["allocated_shipping_per_unit_cents"]
        result = ReceiveResult(shipment=shipment)
        now = utcnow()

        for request in requests:
            item = by_id.get(request.shipment_item_id)
            if item is None or item.is_received:
                result.skipped += 1
                continue

            if not _receive_item(item, request, allocated_cents=allocated, reorder_level=reorder_level):
                result.skipped += 1
                continue
            item.is_received = True
            item.received_date = now
            result.received += 1

        if all(item.is_received for item in shipment.items):
            shipment.status = SHIPMENT_STATUS_RECEIVED
            shipment.received_date = now
        else:
            shipment.status = SHIPMENT_STATUS_IN_TRANSIT

        db.session.flush()
        logger.info(
            "Shipment %s receipt: %d received, %d skipped, status %s",
            shipment.shipment_number, result.received, result.skipped, shipment.status,
        )
        return result

    return run_in_transaction(_op)


def update_shipment_status(shipment_id: int, new_status: str) -> Shipment:
    def _op():
        shipment = get_shipment(shipment_id)
        if new_status not in SHIPMENT_STATUSES:
            raise InvalidArgumentError(f"Invalid status {new_status!r}.")

        logger.info("Shipment %s status %s -> %s", shipment.shipment_number, shipment.status, new_status)
        shipment.status = new_status
        if new_status == SHIPMENT_STATUS_RECEIVED:
            shipment.received_date = utcnow()
        return shipment

    return run_in_transaction(_op)


def delete_shipment(shipment_id: int) -> None:
    """Delete a shipment that is not Received; its items go with it."""
    def _op():
        shipment = get_shipment(shipment_id)
        if shipment.status == SHIPMENT_STATUS_RECEIVED:
            raise InvalidStateError("Cannot delete shipments that have been received.")
        number = shipment.shipment_number
        db.session.delete(shipment)
        logger.info("Shipment %s deleted", number)

    run_in_transaction(_op)


def list_shipments(
    *,
    status: str | None = None,
    start_date=None,
    end_date=None,
    search: str | None = None,
) -> list[Shipment]:
    """Newest order date first; search matches number or store source."""
    q = db.session.query(Shipment)
    if status:
        q = q.filter(Shipment.status == status)
    start = normalize_datetime(start_date)
    if start is not None:
        q = q.filter(Shipment.order_date >= start)
    end = end_of_day_exclusive(end_date)
    if end is not None:
        q = q.filter(Shipment.order_date < end)
    if search:
        q = q.filter(search_filter(search, Shipment.shipment_number, Shipment.store_source))
    return q.order_by(Shipment.order_date.desc(), Shipment.id.desc()).all()
