# Overview: Pytest coverage for the cash-flow ledger and finance summary.

from datetime import datetime

import pytest

from shopledger.errors import NotFoundError, ValidationError
from shopledger.models import CashFlow, Order
from shopledger.services.cashflow_service import (
    cash_totals,
    create_cash_flow,
    delete_cash_flow,
    finance_summary,
    list_cash_flows,
)
from shopledger.services.order_service import process_payment


def _entry(**overrides):
    payload = {
        "transaction_type": "Expense",
        "category": "Utilities",
        "description": "Electric bill",
        "amount_cents": 12000,
    }
    payload.update(overrides)
    return create_cash_flow(payload)


class TestManualEntries:
    def test_default_reference(self, db_session):
        entry = _entry()
        assert entry.reference_number.startswith("MAN-")
        assert entry.transaction_date is not None

    def test_keeps_supplied_reference_and_date(self, db_session):
        entry = _entry(reference_number="INV-77", transaction_date="2026-03-01T10:00:00Z")
        assert entry.reference_number == "INV-77"
        assert entry.transaction_date == datetime(2026, 3, 1, 10, 0, 0)

    @pytest.mark.parametrize("amount", [0, -500])
    def test_amount_must_be_positive(self, db_session, amount):
        with pytest.raises(ValidationError):
            _entry(amount_cents=amount)
        assert db_session.query(CashFlow).count() == 0

    def test_unknown_type(self, db_session):
        with pytest.raises(ValidationError, match="transaction_type"):
            _entry(transaction_type="Transfer")

    def test_delete_any_entry(self, db_session, pending_order):
        result = process_payment(pending_order.id, "Cash")
        delete_cash_flow(result.cash_flow_id)

        assert db_session.query(CashFlow).count() == 0
        # the order keeps its Paid status; totals no longer reflect it
        assert db_session.get(Order, pending_order.id).status == "Paid"
        assert cash_totals()["total_money_in_cents"] == 0

    def test_delete_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            delete_cash_flow(999)


class TestListing:
    def test_filters_newest_first(self, db_session):
        _entry(description="Old", transaction_date="2026-01-05")
        _entry(description="New", transaction_date="2026-02-05")
        _entry(description="Sale", transaction_type="Income", category="Sales", transaction_date="2026-02-06")

        assert [e.description for e in list_cash_flows()] == ["Sale", "New", "Old"]
        assert [e.description for e in list_cash_flows(transaction_type="Expense")] == ["New", "Old"]
        assert [e.description for e in list_cash_flows(start_date="2026-02-01", end_date="2026-02-05")] == ["New"]
        assert [e.description for e in list_cash_flows(category="Sales")] == ["Sale"]
        assert len(list_cash_flows(limit=1)) == 1


class TestFinanceSummary:
    def test_breakdown(self, db_session, product, pending_order):
        _entry(category="Logistics", amount_cents=3000)
        _entry(category="Purchase", amount_cents=2000)
        _entry(category="Rent", amount_cents=1000)
        _entry(transaction_type="Income", category="Refund", amount_cents=500)

        summary = finance_summary()
        assert summary["pending_order_count"] == 1
        assert summary["pending_payments_cents"] == 35000
        # 7 units left after checkout
        assert summary["total_inventory_value_cents"] == 7 * 10000
        assert summary["total_inventory_cost_cents"] == 7 * 6000
        assert summary["logistics_expense_cents"] == 3000
        assert summary["purchase_expense_cents"] == 2000
        assert summary["other_expense_cents"] == 1000
        assert summary["other_income_cents"] == 500
        assert summary["sales_income_cents"] == 0
        assert summary["total_money_out_cents"] == 6000
        assert summary["net_cash_flow_cents"] == 500 - 6000

        process_payment(pending_order.id, "Cash")
        summary = finance_summary()
        assert summary["pending_order_count"] == 0
        assert summary["sales_income_cents"] == 35000

    def test_filters_only_recent_list(self, db_session):
        _entry(transaction_type="Income", category="Sales", amount_cents=900)
        _entry(amount_cents=400)

        summary = finance_summary(transaction_type="Income")
        assert [e["amount_cents"] for e in summary["recent_transactions"]] == [900]
        assert summary["total_money_out_cents"] == 400
