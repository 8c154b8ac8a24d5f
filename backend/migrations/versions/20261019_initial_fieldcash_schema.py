"""Initial field collection schema

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_employees_email"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("employees", schema=None) as batch_op:
        batch_op.create_index("ix_employees_role", ["role"], unique=False)
        batch_op.create_index("ix_employees_status", ["status"], unique=False)
        batch_op.create_index("ix_employees_deleted_at", ["deleted_at"], unique=False)

    op.create_table(
        "shops",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("zone", sa.String(length=64), nullable=False),
        sa.Column("opening_balance_cents", sa.Integer(), nullable=False),
        sa.Column("current_balance_cents", sa.Integer(), nullable=False),
        sa.Column("last_collection_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("shops", schema=None) as batch_op:
        batch_op.create_index("ix_shops_zone", ["zone"], unique=False)
        batch_op.create_index("ix_shops_deleted_at", ["deleted_at"], unique=False)

    op.create_table(
        "balance_audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("previous_balance_cents", sa.Integer(), nullable=False),
        sa.Column("new_balance_cents", sa.Integer(), nullable=False),
        sa.Column("change_amount_cents", sa.Integer(), nullable=False),
        sa.Column("change_type", sa.String(length=32), nullable=False),
        sa.Column("reference_type", sa.String(length=32), nullable=True),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("actor_employee_id", sa.Integer(), nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.ForeignKeyConstraint(["actor_employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("balance_audit_logs", schema=None) as batch_op:
        batch_op.create_index("ix_balance_audit_logs_shop_id", ["shop_id"], unique=False)
        batch_op.create_index("ix_balance_audit_logs_change_type", ["change_type"], unique=False)
        batch_op.create_index("ix_balance_audit_logs_actor_employee_id", ["actor_employee_id"], unique=False)
        batch_op.create_index("ix_balance_audit_logs_changed_at", ["changed_at"], unique=False)
        batch_op.create_index("ix_balance_audit_shop_changed", ["shop_id", "changed_at"], unique=False)

    op.create_table(
        "collection_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("payment_mode", sa.String(length=16), nullable=False),
        sa.Column("reference", sa.String(length=64), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("collected_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("verified_by_employee_id", sa.Integer(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False),
        sa.CheckConstraint("amount_cents > 0", name="ck_collections_amount_positive"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.ForeignKeyConstraint(["verified_by_employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("collection_transactions", schema=None) as batch_op:
        batch_op.create_index("ix_collection_transactions_employee_id", ["employee_id"], unique=False)
        batch_op.create_index("ix_collection_transactions_shop_id", ["shop_id"], unique=False)
        batch_op.create_index("ix_collection_transactions_payment_mode", ["payment_mode"], unique=False)
        batch_op.create_index("ix_collection_transactions_status", ["status"], unique=False)
        batch_op.create_index("ix_collection_transactions_collected_at", ["collected_at"], unique=False)
        batch_op.create_index("ix_collections_employee_collected", ["employee_id", "collected_at"], unique=False)
        batch_op.create_index("ix_collections_employee_verified", ["employee_id", "is_verified"], unique=False)

    op.create_table(
        "daily_reconciliations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("business_date", sa.Date(), nullable=False),
        sa.Column("expected_cash_cents", sa.Integer(), nullable=False),
        sa.Column("actual_cash_cents", sa.Integer(), nullable=False),
        sa.Column("variance_cents", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("verified_by_employee_id", sa.Integer(), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_by_employee_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["verified_by_employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["closed_by_employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("employee_id", "business_date", name="uq_reconciliations_employee_date"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("daily_reconciliations", schema=None) as batch_op:
        batch_op.create_index("ix_daily_reconciliations_employee_id", ["employee_id"], unique=False)
        batch_op.create_index("ix_daily_reconciliations_business_date", ["business_date"], unique=False)
        batch_op.create_index("ix_daily_reconciliations_status", ["status"], unique=False)

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("invoice_number", sa.String(length=64), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("reference", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_by_employee_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("cancelled_by_employee_id", sa.Integer(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"]),
        sa.ForeignKeyConstraint(["created_by_employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["cancelled_by_employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("shop_id", "invoice_number", name="uq_invoices_shop_number"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("invoices", schema=None) as batch_op:
        batch_op.create_index("ix_invoices_shop_id", ["shop_id"], unique=False)
        batch_op.create_index("ix_invoices_status", ["status"], unique=False)


def downgrade():
    op.drop_table("invoices")
    op.drop_table("daily_reconciliations")
    op.drop_table("collection_transactions")
    op.drop_table("balance_audit_logs")
    op.drop_table("shops")
    op.drop_table("employees")
