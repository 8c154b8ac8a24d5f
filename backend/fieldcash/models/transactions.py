from __future__ import annotations

from ..extensions import db
from fieldcash.time_utils import to_utc_z


class CollectionTransaction(db.Model):
    """
    Money collected by a field agent at a shop.

    LIFECYCLE:
    - Created once, status "completed", is_verified False ("cash in bag")
    - Handover verification flips is_verified to True exactly once and stamps
      verified_at; it never flips back
    - A cash transaction may be batched into one settlement (settlement_id),
      which is never reassigned

    Only cash transactions take part in handover and reconciliation; UPI and
    cheque collections still credit the shop ledger.
    """
    __tablename__ = "collection_transactions"
    __table_args__ = (
        db.Index("ix_collections_employee_collected", "employee_id", "collected_at"),
        db.Index("ix_collections_employee_verified", "employee_id", "is_verified"),
        db.CheckConstraint("amount_cents > 0", name="ck_collections_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    payment_mode = db.Column(db.String(16), nullable=False, index=True)  # cash, upi, cheque
    reference = db.Column(db.String(64), nullable=True)  # UTR / cheque number

    latitude = db.Column(db.Float, nullable=False)
    longitude = db.Column(db.Float, nullable=False)

    status = db.Column(db.String(16), nullable=False, default="completed", index=True)  # completed, adjusted, reversed
    collected_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    verified_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    settlement_id = db.Column(db.Integer, db.ForeignKey("settlements.id"), nullable=True, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    employee = db.relationship("Employee", foreign_keys=[employee_id], backref=db.backref("collections", lazy=True))
    verified_by = db.relationship("Employee", foreign_keys=[verified_by_employee_id])
    shop = db.relationship("Shop", backref=db.backref("collections", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        geolocation = None
        if self.latitude is not None and self.longitude is not None:
            geolocation = {"lat": self.latitude, "lng": self.longitude}
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "shop_id": self.shop_id,
            "amount_cents": self.amount_cents,
            "payment_mode": self.payment_mode,
            "reference": self.reference,
            "geolocation": geolocation,
            "status": self.status,
            "collected_at": to_utc_z(self.collected_at),
            "is_verified": self.is_verified,
            "verified_at": to_utc_z(self.verified_at),
            "verified_by_employee_id": self.verified_by_employee_id,
            "settlement_id": self.settlement_id,
        }
