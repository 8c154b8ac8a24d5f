"""Add cash settlement batches

Revision ID: 20261019_settlements
Revises: 20261019_initial
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_settlements"
down_revision = "20261019_initial"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "settlements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("expected_amount_cents", sa.Integer(), nullable=False),
        sa.Column("received_amount_cents", sa.Integer(), nullable=True),
        sa.Column("variance_cents", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("created_by_employee_id", sa.Integer(), nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_by_employee_id", sa.Integer(), nullable=True),
        sa.CheckConstraint("expected_amount_cents >= 0", name="ck_settlements_expected_non_negative"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["created_by_employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["received_by_employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("settlements", schema=None) as batch_op:
        batch_op.create_index("ix_settlements_employee_id", ["employee_id"], unique=False)
        batch_op.create_index("ix_settlements_status", ["status"], unique=False)
        batch_op.create_index("ix_settlements_employee_status", ["employee_id", "status"], unique=False)

    with op.batch_alter_table("collection_transactions", schema=None) as batch_op:
        batch_op.add_column(sa.Column("settlement_id", sa.Integer(), nullable=True))
        batch_op.create_index("ix_collection_transactions_settlement_id", ["settlement_id"], unique=False)
        batch_op.create_foreign_key(
            "fk_collection_transactions_settlement_id", "settlements", ["settlement_id"], ["id"]
        )


def downgrade():
    with op.batch_alter_table("collection_transactions", schema=None) as batch_op:
        batch_op.drop_constraint("fk_collection_transactions_settlement_id", type_="foreignkey")
        batch_op.drop_index("ix_collection_transactions_settlement_id")
        batch_op.drop_column("settlement_id")

    op.drop_table("settlements")
