from __future__ import annotations

from ..extensions import db
from fieldcash.time_utils import to_utc_z


SETTLEMENT_PENDING = "pending"
SETTLEMENT_RECEIVED = "received"
SETTLEMENT_DISCREPANCY = "discrepancy"
SETTLEMENT_STATUSES = (SETTLEMENT_PENDING, SETTLEMENT_RECEIVED, SETTLEMENT_DISCREPANCY)


class Settlement(db.Model):
    """
    One batch of cash an agent hands over to the office.

    LIFECYCLE:
    - pending: batch created, expected amount frozen from its transactions
    - received: office counted exactly the expected amount
    - discrepancy: office counted a different amount (variance != 0)

    Each collection transaction belongs to at most one settlement
    (collection_transactions.settlement_id).
    """
    __tablename__ = "settlements"
    __table_args__ = (
        db.Index("ix_settlements_employee_status", "employee_id", "status"),
        db.CheckConstraint("expected_amount_cents >= 0", name="ck_settlements_expected_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)

    expected_amount_cents = db.Column(db.Integer, nullable=False)
    received_amount_cents = db.Column(db.Integer, nullable=True)
    variance_cents = db.Column(db.Integer, nullable=True)  # received - expected

    status = db.Column(db.String(16), nullable=False, default=SETTLEMENT_PENDING, index=True)
    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    employee = db.relationship("Employee", foreign_keys=[employee_id], backref=db.backref("settlements", lazy=True))
    transactions = db.relationship(
        "CollectionTransaction",
        backref=db.backref("settlement", lazy=True),
        lazy=True,
        order_by="CollectionTransaction.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "expected_amount_cents": self.expected_amount_cents,
            "received_amount_cents": self.received_amount_cents,
            "variance_cents": self.variance_cents,
            "status": self.status,
            "note": self.note,
            "transaction_ids": [t.id for t in self.transactions],
            "created_at": to_utc_z(self.created_at),
            "created_by_employee_id": self.created_by_employee_id,
            "received_at": to_utc_z(self.received_at),
            "received_by_employee_id": self.received_by_employee_id,
        }
