"""
Derived stock and money values.

Everything here is a pure function of plain numbers so the same rule is used
by the catalog, storefront, inventory list and dashboard. Amounts are integer
cents.

Stock status:
- Out of Stock: quantity <= 0
- Low Stock:    0 < quantity < reorder_level // 2
- In Stock:     otherwise

The reorder list uses a different, wider rule (quantity <= reorder_level);
it is kept separate as needs_reorder() and must not feed status badges.
"""
from __future__ import annotations

STATUS_OUT_OF_STOCK = "Out of Stock"
STATUS_LOW_STOCK = "Low Stock"
STATUS_IN_STOCK = "In Stock"

# stock_filter values accepted by listing functions
FILTER_IN_STOCK = "InStock"
FILTER_LOW_STOCK = "LowStock"
FILTER_OUT_OF_STOCK = "OutOfStock"


def is_out_of_stock(quantity: int) -> bool:
    return quantity <= 0


def is_low_stock(quantity: int, reorder_level: int) -> bool:
    return 0 < quantity < reorder_level // 2


def stock_status(quantity: int, reorder_level: int) -> str:
    if is_out_of_stock(quantity):
        return STATUS_OUT_OF_STOCK
    if is_low_stock(quantity, reorder_level):
        return STATUS_LOW_STOCK
    return STATUS_IN_STOCK


def needs_reorder(quantity: int, reorder_level: int) -> bool:
    """Reorder-list rule: at or below the reorder level (includes out of stock)."""
    return quantity <= reorder_level


def matches_stock_filter(low: bool, out: bool, stock_filter: str | None) -> bool:
    """True when a row passes the filter; unknown or empty filters pass everything."""
    if stock_filter == FILTER_IN_STOCK:
        return not low and not out
    if stock_filter == FILTER_LOW_STOCK:
        return low
    if stock_filter == FILTER_OUT_OF_STOCK:
        return out
    return True


def line_total(unit_cents: int, quantity: int) -> int:
    return unit_cents * quantity


def allocate_per_unit(total_cents: int, units: int) -> int:
    """
    Share of a batch-level fee per unit, nearest cent (half-up).

    Returns 0 when there are no units.
    """
    if units <= 0:
        return 0
    return (total_cents + (units // 2)) // units


def markup_price(cost_cents: int) -> int:
    """Default selling price for products created from shipments: 1.5x cost, half-up."""
    return (cost_cents * 3 + 1) // 2
