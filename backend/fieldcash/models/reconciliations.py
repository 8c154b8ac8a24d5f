from __future__ import annotations

from ..extensions import db
from fieldcash.time_utils import to_utc_z


STATUS_PENDING = "pending"
STATUS_VERIFIED = "verified"
STATUS_MISMATCH = "mismatch"
STATUS_CLOSED = "closed"


class DailyReconciliation(db.Model):
    """
    End-of-day comparison of expected vs declared cash for one employee.

    LIFECYCLE:
    - pending: implicit, no row exists yet
    - verified / mismatch: written by verify(); re-verifying REPLACES the row
    - closed: set in bulk by close_day() for a whole date (terminal)

    UNIQUE: one row per (employee_id, business_date). Unlike the balance audit
    log this row is mutable; it holds the current best understanding of the day.
    """
    __tablename__ = "daily_reconciliations"
    __table_args__ = (
        db.UniqueConstraint("employee_id", "business_date", name="uq_reconciliations_employee_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False, index=True)
    business_date = db.Column(db.Date, nullable=False, index=True)

    expected_cash_cents = db.Column(db.Integer, nullable=False)
    actual_cash_cents = db.Column(db.Integer, nullable=False)
    variance_cents = db.Column(db.Integer, nullable=False)  # actual - expected

    status = db.Column(db.String(16), nullable=False, index=True)
    note = db.Column(db.Text, nullable=True)

    verified_at = db.Column(db.DateTime(timezone=True), nullable=False)
    verified_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=False)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    employee = db.relationship("Employee", foreign_keys=[employee_id], backref=db.backref("reconciliations", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_id": self.employee_id,
            "date": self.business_date.isoformat(),
            "expected_cash_cents": self.expected_cash_cents,
            "actual_cash_cents": self.actual_cash_cents,
            "variance_cents": self.variance_cents,
            "status": self.status,
            "note": self.note,
            "verified_at": to_utc_z(self.verified_at),
            "verified_by_employee_id": self.verified_by_employee_id,
            "closed_at": to_utc_z(self.closed_at),
            "closed_by_employee_id": self.closed_by_employee_id,
        }
