from __future__ import annotations

from ..extensions import db
from fieldcash.time_utils import to_utc_z


ROLE_FIELD_STAFF = "field_staff"
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"
ROLES = (ROLE_FIELD_STAFF, ROLE_ADMIN, ROLE_SUPER_ADMIN)


class Employee(db.Model):
    """
    Field agent or office staff member.

    Identity itself lives with the external identity provider; this row only
    carries the role used for access checks and the foreign key target for
    collections, audit entries and reconciliations.

    DESIGN: Employees are never hard-deleted (deleted_at tombstone).
    """
    __tablename__ = "employees"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_employees_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    role = db.Column(db.String(16), nullable=False, default=ROLE_FIELD_STAFF, index=True)
    status = db.Column(db.String(16), nullable=False, default="active", index=True)  # active, inactive

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    @property
    def is_active(self) -> bool:
        return self.status == "active" and self.deleted_at is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "deleted_at": to_utc_z(self.deleted_at),
        }
