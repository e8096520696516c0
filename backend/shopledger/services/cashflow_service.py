# Overview: Cash-flow ledger operations; appends, manual entries, and finance summaries.

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..errors import NotFoundError
from ..models import CashFlow, Inventory, Order, Product
from ..models.finance import (
    CATEGORY_LOGISTICS,
    CATEGORY_PURCHASE,
    CATEGORY_SALES,
    CATEGORY_SHIPPING,
    TYPE_EXPENSE,
    TYPE_INCOME,
)
from ..models.sales import ORDER_STATUS_PENDING
from ..time_utils import end_of_day_exclusive, normalize_datetime, utcnow
from ..validation import CASH_FLOW_POLICY, enforce_rules_cash_flow, validate_payload
from .document_service import timestamp_reference
from .transaction import run_in_transaction
"""
Cash-Flow Ledger Invariants

- System-generated rows (payments, shipment orders, purchase adjustments) are
  appended inside the same DB transaction as the event they record.
- Rows are never updated after creation.
- Any row may be deleted by an admin. Deleting a system-generated row leaves
  the originating order/shipment untouched, so reported totals can drift from
  document state; that is accepted behavior.
"""

logger = logging.getLogger(__name__)

RECENT_TRANSACTIONS_LIMIT = 50


def record_cash_flow(
    *,
    transaction_type: str,
    category: str,
    description: str,
    amount_cents: int,
    transaction_date: datetime | None = None,
    reference_number: str | None = None,
    order_id: int | None = None,
    shipment_id: int | None = None,
    notes: str | None = None,
) -> CashFlow:
    """
    Append a ledger row in the caller's transaction.

    - No validation beyond what the caller guarantees.
    - Flushes (assigns id) but never commits.
    """
    entry = CashFlow(
        transaction_date=transaction_date or utcnow(),
        transaction_type=transaction_type,
        category=category,
        description=description,
        amount_cents=amount_cents,
        reference_number=reference_number,
        order_id=order_id,
        shipment_id=shipment_id,
        notes=notes,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def create_cash_flow(payload: dict) -> CashFlow:
    """
    Create a manually entered ledger row.

    Args:
        payload: transaction_type, category, description, amount_cents and
            optionally transaction_date, reference_number, notes.

    Raises:
        ValidationError: missing/invalid fields or amount_cents <= 0
    """
    patch = validate_payload(
        model=CashFlow,
        payload=payload,
        policy=CASH_FLOW_POLICY,
        partial=False,
    )
    enforce_rules_cash_flow(patch)

    def _op():
        entry = record_cash_flow(
            transaction_type=patch["transaction_type"],
            category=patch["category"],
            description=patch["description"],
            amount_cents=patch["amount_cents"],
            transaction_date=patch.get("transaction_date"),
            reference_number=patch.get("reference_number") or timestamp_reference("MAN"),
            notes=patch.get("notes"),
        )
        logger.info(
            "Manual %s of %d cents recorded (%s)",
            entry.transaction_type, entry.amount_cents, entry.reference_number,
        )
        return entry

    return run_in_transaction(_op)


def get_cash_flow(cash_flow_id: int) -> CashFlow:
    entry = db.session.get(CashFlow, cash_flow_id)
    if entry is None:
        raise NotFoundError(f"Cash flow entry {cash_flow_id} not found")
    return entry


def delete_cash_flow(cash_flow_id: int) -> None:
    """Delete any ledger row, system-generated ones included."""
    def _op():
        entry = get_cash_flow(cash_flow_id)
        db.session.delete(entry)
        logger.info("Cash flow entry %s deleted (%s)", cash_flow_id, entry.reference_number)

    run_in_transaction(_op)


def _filtered_query(
    *,
    start_date=None,
    end_date=None,
    transaction_type: str | None = None,
    category: str | None = None,
):
    q = db.session.query(CashFlow)
    start = normalize_datetime(start_date)
    if start is not None:
        q = q.filter(CashFlow.transaction_date >= start)
    end = end_of_day_exclusive(end_date)
    if end is not None:
        q = q.filter(CashFlow.transaction_date < end)
    if transaction_type:
        q = q.filter(CashFlow.transaction_type == transaction_type)
    if category:
        q = q.filter(CashFlow.category == category)
    return q


def list_cash_flows(
    *,
    start_date=None,
    end_date=None,
    transaction_type: str | None = None,
    category: str | None = None,
    limit: int | None = None,
) -> list[CashFlow]:
    """Newest first; end_date is inclusive of the whole day."""
    q = _filtered_query(
        start_date=start_date,
        end_date=end_date,
        transaction_type=transaction_type,
        category=category,
    ).order_by(CashFlow.transaction_date.desc(), CashFlow.id.desc())
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def _sum_amount(*criteria) -> int:
    q = db.session.query(func.coalesce(func.sum(CashFlow.amount_cents), 0))
    if criteria:
        q = q.filter(*criteria)
    return int(q.scalar() or 0)


def cash_totals() -> dict:
    """All-time money in/out, independent of any listing filter."""
    total_in = _sum_amount(CashFlow.transaction_type == TYPE_INCOME)
    total_out = _sum_amount(CashFlow.transaction_type == TYPE_EXPENSE)
    return {
        "total_money_in_cents": total_in,
        "total_money_out_cents": total_out,
        "net_cash_flow_cents": total_in - total_out,
    }


def finance_summary(
    *,
    start_date=None,
    end_date=None,
    transaction_type: str | None = None,
    category: str | None = None,
) -> dict:
    """
    Finance overview.

    Totals and category breakdowns are all-time; only recent_transactions
    honors the filters.
    """
    inventory_rows = (
        db.session.query(Inventory.quantity_in_stock, Product.selling_price_cents, Product.cost_price_cents)
        .join(Product, Product.id == Inventory.product_id)
        .filter(Product.is_active.is_(True))
        .all()
    )
    inventory_value = sum(qty * price for qty, price, _ in inventory_rows)
    inventory_cost = sum(qty * cost for qty, _, cost in inventory_rows)

    pending_count, pending_total = (
        db.session.query(func.count(Order.id), func.coalesce(func.sum(Order.total_cents), 0))
        .filter(Order.status == ORDER_STATUS_PENDING)
        .one()
    )

    income = CashFlow.transaction_type == TYPE_INCOME
    expense = CashFlow.transaction_type == TYPE_EXPENSE
    expense_named = (CATEGORY_LOGISTICS, CATEGORY_SHIPPING, CATEGORY_PURCHASE)

    recent = list_cash_flows(
        start_date=start_date,
        end_date=end_date,
        transaction_type=transaction_type,
        category=category,
        limit=RECENT_TRANSACTIONS_LIMIT,
    )

    summary = {
        "total_inventory_value_cents": inventory_value,
        "total_inventory_cost_cents": inventory_cost,
        "pending_payments_cents": int(pending_total or 0),
        "pending_order_count": int(pending_count or 0),
        "sales_income_cents": _sum_amount(income, CashFlow.category == CATEGORY_SALES),
        "other_income_cents": _sum_amount(income, CashFlow.category != CATEGORY_SALES),
        "logistics_expense_cents": _sum_amount(expense, CashFlow.category == CATEGORY_LOGISTICS),
        "shipping_expense_cents": _sum_amount(expense, CashFlow.category == CATEGORY_SHIPPING),
        "purchase_expense_cents": _sum_amount(expense, CashFlow.category == CATEGORY_PURCHASE),
        "other_expense_cents": _sum_amount(expense, CashFlow.category.notin_(expense_named)),
        "recent_transactions": [entry.to_dict() for entry in recent],
    }
    summary.update(cash_totals())
    return summary
