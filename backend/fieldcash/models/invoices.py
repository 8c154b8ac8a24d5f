from __future__ import annotations

from ..extensions import db
from fieldcash.time_utils import to_utc_z


class Invoice(db.Model):
    """
    Goods billed to a shop. Raises the shop balance by amount_cents.

    LIFECYCLE:
    - active: counted in the shop balance; amount may be corrected
    - cancelled: amount reversed out of the balance (terminal)
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "invoice_number", name="uq_invoices_shop_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    invoice_number = db.Column(db.String(64), nullable=False)
    invoice_date = db.Column(db.Date, nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    reference = db.Column(db.String(128), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="active", index=True)  # active, cancelled

    created_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    cancelled_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    shop = db.relationship("Shop", backref=db.backref("invoices", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "invoice_number": self.invoice_number,
            "invoice_date": self.invoice_date.isoformat(),
            "amount_cents": self.amount_cents,
            "reference": self.reference,
            "status": self.status,
            "created_by_employee_id": self.created_by_employee_id,
            "created_at": to_utc_z(self.created_at),
            "cancelled_by_employee_id": self.cancelled_by_employee_id,
            "cancelled_at": to_utc_z(self.cancelled_at),
        }
