from __future__ import annotations

from ..extensions import db
from fieldcash.time_utils import to_utc_z


class Shop(db.Model):
    """
    Retail shop that owes money and is visited by field agents.

    BALANCE: current_balance_cents is the amount the shop owes (positive = owes us).
    It only changes through ledger_service.apply_balance_change, which writes
    a BalanceAuditLog row in the same transaction.

    opening_balance_cents is the balance at creation and is never updated, so
    opening + sum(change_amount_cents) must always equal current_balance_cents.

    DESIGN: Shops are never deleted (deleted_at tombstone).
    """
    __tablename__ = "shops"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    zone = db.Column(db.String(64), nullable=False, index=True)

    opening_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    current_balance_cents = db.Column(db.Integer, nullable=False, default=0)
    last_collection_date = db.Column(db.Date, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "zone": self.zone,
            "opening_balance_cents": self.opening_balance_cents,
            "current_balance_cents": self.current_balance_cents,
            "last_collection_date": self.last_collection_date.isoformat() if self.last_collection_date else None,
            "created_at": to_utc_z(self.created_at),
            "deleted_at": to_utc_z(self.deleted_at),
            "version_id": self.version_id,
        }


class BalanceAuditLog(db.Model):
    """
    Append-only audit trail of shop balance changes.

    CHANGE TYPES:
    - collection: Field collection credited against the balance
    - correction: Manual signed adjustment (note required)
    - override: Manual absolute balance set (note required)
    - invoice / invoice_adjustment / invoice_cancel: Invoice driven changes

    IMMUTABLE: Records are never updated or deleted.
    change_amount_cents = new_balance_cents - previous_balance_cents.
    """
    __tablename__ = "balance_audit_logs"
    __table_args__ = (
        db.Index("ix_balance_audit_shop_changed", "shop_id", "changed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    previous_balance_cents = db.Column(db.Integer, nullable=False)
    new_balance_cents = db.Column(db.Integer, nullable=False)
    change_amount_cents = db.Column(db.Integer, nullable=False)

    change_type = db.Column(db.String(32), nullable=False, index=True)
    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    note = db.Column(db.Text, nullable=True)
    actor_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    changed_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    shop = db.relationship("Shop", backref=db.backref("audit_logs", lazy=True))
    actor = db.relationship("Employee", backref=db.backref("balance_changes", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "previous_balance_cents": self.previous_balance_cents,
            "new_balance_cents": self.new_balance_cents,
            "change_amount_cents": self.change_amount_cents,
            "change_type": self.change_type,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "note": self.note,
            "actor_employee_id": self.actor_employee_id,
            "changed_at": to_utc_z(self.changed_at),
        }
