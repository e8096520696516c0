from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


TYPE_INCOME = "Income"
TYPE_EXPENSE = "Expense"
TRANSACTION_TYPES = (TYPE_INCOME, TYPE_EXPENSE)

CATEGORY_SALES = "Sales"
CATEGORY_LOGISTICS = "Logistics"
CATEGORY_SHIPPING = "Shipping"
CATEGORY_PURCHASE = "Purchase"
CATEGORY_OTHER = "Other"


class CashFlow(db.Model):
    """
    Money in/out ledger entry.

    Append-only for system-generated rows: payments, shipment orders and
    purchase adjustments write here inside their own transaction. Rows are
    never edited; an admin may delete any row (see cashflow_service).
    """
    __tablename__ = "cash_flows"
    __table_args__ = (
        db.Index("ix_cash_flows_type_category", "transaction_type", "category"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    transaction_date = db.Column(db.DateTime, nullable=False, server_default=db.func.now(), index=True)
    transaction_type = db.Column(db.String(50), nullable=False)
    category = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(300), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    reference_number = db.Column(db.String(100), nullable=True)

    # Optional links to the originating document
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="SET NULL"), nullable=True, index=True)
    shipment_id = db.Column(db.Integer, db.ForeignKey("shipments.id", ondelete="SET NULL"), nullable=True, index=True)

    notes = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())

    @property
    def is_income(self) -> bool:
        return self.transaction_type == TYPE_INCOME

    @property
    def is_expense(self) -> bool:
        return self.transaction_type == TYPE_EXPENSE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_date": to_utc_z(self.transaction_date),
            "transaction_type": self.transaction_type,
            "category": self.category,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "reference_number": self.reference_number,
            "order_id": self.order_id,
            "shipment_id": self.shipment_id,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
