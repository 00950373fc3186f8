"""Appointments, prescriptions and discharge invoice stock flag

Revision ID: vc002
Revises: vc001
Create Date: 2026-10-19

- appointments: agenda rows with client / pet name snapshots
- prescriptions: per-pet prescriptions (items as JSON)
- invoices.stock_deducted: False for invoices billed without deducting
  stock (discharge billing); item edits on them never move stock
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "vc002"
down_revision = "vc001"
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table("invoices", schema=None) as batch_op:
        batch_op.add_column(
            sa.Column("stock_deducted", sa.Boolean(), nullable=False, server_default=sa.true())
        )

    # Existing discharge invoices were billed from already-consumed stock
    invoices = sa.table("invoices", sa.column("source", sa.String), sa.column("stock_deducted", sa.Boolean))
    op.execute(
        invoices.update()
        .where(invoices.c.source == "hospitalization")
        .values(stock_deducted=False)
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("pet_id", sa.Integer(), nullable=False),
        sa.Column("client_name", sa.String(length=255), nullable=False),
        sa.Column("pet_name", sa.String(length=255), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("appointment_time", sa.String(length=5), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=False),
        sa.Column("vet", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="CONFIRMED"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(["pet_id"], ["pets.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    for column in ("company_id", "client_id", "pet_id", "status"):
        op.create_index(f"ix_appointments_{column}", "appointments", [column])
    op.create_index(
        "ix_appointments_company_date_time",
        "appointments",
        ["company_id", "appointment_date", "appointment_time"],
    )

    op.create_table(
        "prescriptions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("pet_id", sa.Integer(), nullable=False),
        sa.Column("prescribed_on", sa.Date(), nullable=False),
        sa.Column("vet", sa.String(length=255), nullable=True),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"]),
        sa.ForeignKeyConstraint(["pet_id"], ["pets.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    for column in ("company_id", "pet_id"):
        op.create_index(f"ix_prescriptions_{column}", "prescriptions", [column])
    op.create_index("ix_prescriptions_pet_date", "prescriptions", ["pet_id", "prescribed_on"])


def downgrade():
    op.drop_table("prescriptions")
    op.drop_table("appointments")
    with op.batch_alter_table("invoices", schema=None) as batch_op:
        batch_op.drop_column("stock_deducted")
