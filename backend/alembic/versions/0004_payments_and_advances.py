"""fee payments, salary payments and advance payment pools

Revision ID: 0004_payments_and_advances
Revises: 0003_billing_periods_and_ledgers
Create Date: 2026-10-01 11:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0004_payments_and_advances"
down_revision = "0003_billing_periods_and_ledgers"
branch_labels = None
depends_on = None

TENANT_TABLES = ("payments", "teacher_salary_payments", "advance_payments", "teacher_advance_payments")


def _enable_tenant_rls(table: str) -> None:
    op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
    op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY")
    op.execute(f"DROP POLICY IF EXISTS {table}_tenant_isolation ON {table}")
    op.execute(
        f"""
        CREATE POLICY {table}_tenant_isolation
        ON {table}
        FOR ALL
        USING (
            coalesce(current_setting('app.current_school_id', true), '') = ''
            OR school_id = current_setting('app.current_school_id', true)::int
        )
        WITH CHECK (
            coalesce(current_setting('app.current_school_id', true), '') = ''
            OR school_id = current_setting('app.current_school_id', true)::int
        )
        """
    )


def _payment_table(name: str, subject_fk: tuple[str, str], row_fk: tuple[str, str]) -> None:
    subject_column, subject_target = subject_fk
    row_column, row_target = row_fk
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("school_id", sa.Integer(), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column(subject_column, sa.Integer(), sa.ForeignKey(subject_target, ondelete="CASCADE"), nullable=False),
        sa.Column(
            "billing_period_id",
            sa.Integer(),
            sa.ForeignKey("billing_periods.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(row_column, sa.Integer(), sa.ForeignKey(row_target, ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("method", sa.String(length=50), nullable=False),
        sa.Column("notes", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    for column in ("id", "school_id", subject_column, "billing_period_id", row_column, "paid_at"):
        op.create_index(f"ix_{name}_{column}", name, [column], unique=False)


def _advance_table(name: str, subject_column: str, subject_target: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("school_id", sa.Integer(), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column(subject_column, sa.Integer(), sa.ForeignKey(subject_target, ondelete="CASCADE"), nullable=False),
        sa.Column("amount_per_month", sa.Numeric(12, 2), nullable=False),
        sa.Column("months_paid", sa.Integer(), nullable=False),
        sa.Column("months_remaining", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("months_remaining >= 0", name=f"ck_{name}_months_remaining"),
    )
    for column in ("id", "school_id", subject_column, "months_remaining"):
        op.create_index(f"ix_{name}_{column}", name, [column], unique=False)


def upgrade() -> None:
    _payment_table("payments", ("parent_id", "parents.id"), ("parent_month_fee_id", "parent_month_fees.id"))
    _payment_table(
        "teacher_salary_payments",
        ("teacher_id", "teachers.id"),
        ("teacher_salary_record_id", "teacher_salary_records.id"),
    )
    _advance_table("advance_payments", "parent_id", "parents.id")
    _advance_table("teacher_advance_payments", "teacher_id", "teachers.id")

    if op.get_bind().dialect.name == "postgresql":
        for table in TENANT_TABLES:
            _enable_tenant_rls(table)


def downgrade() -> None:
    bind = op.get_bind()
    for table in reversed(TENANT_TABLES):
        if bind.dialect.name == "postgresql":
            op.execute(f"DROP POLICY IF EXISTS {table}_tenant_isolation ON {table}")
        op.drop_table(table)
