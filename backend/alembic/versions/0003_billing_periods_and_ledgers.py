"""billing periods, parent fee rows and teacher salary rows

Revision ID: 0003_billing_periods_and_ledgers
Revises: 0002_parents_and_teachers
Create Date: 2026-10-01 10:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0003_billing_periods_and_ledgers"
down_revision = "0002_parents_and_teachers"
branch_labels = None
depends_on = None

TENANT_TABLES = ("billing_periods", "parent_month_fees", "teacher_salary_records")

billing_period_status = sa.Enum("active", "inactive", name="billing_period_status")
parent_fee_status = sa.Enum("unpaid", "partial", "paid", "advanced", name="parent_fee_status")
teacher_salary_status = sa.Enum(
    "unpaid", "partial", "paid", "outstanding", "advance_covered", name="teacher_salary_status"
)


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


def _money(name: str, *, default_zero: bool = False) -> sa.Column:
    if default_zero:
        return sa.Column(name, sa.Numeric(12, 2), nullable=False, server_default=sa.text("0"))
    return sa.Column(name, sa.Numeric(12, 2), nullable=False)


def upgrade() -> None:
    op.create_table(
        "billing_periods",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("school_id", sa.Integer(), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("status", billing_period_status, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("school_id", "year", "month", name="uq_billing_period_school_year_month"),
        sa.CheckConstraint("month BETWEEN 1 AND 12", name="ck_billing_periods_month_range"),
    )
    op.create_index("ix_billing_periods_id", "billing_periods", ["id"], unique=False)
    op.create_index("ix_billing_periods_school_id", "billing_periods", ["school_id"], unique=False)
    op.create_index("ix_billing_periods_status", "billing_periods", ["status"], unique=False)
    op.create_index(
        "uq_billing_periods_one_active_per_school",
        "billing_periods",
        ["school_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "parent_month_fees",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("school_id", sa.Integer(), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("parents.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "billing_period_id",
            sa.Integer(),
            sa.ForeignKey("billing_periods.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _money("monthly_fee"),
        _money("carried_forward_amount", default_zero=True),
        _money("total_due_this_month"),
        _money("amount_paid_this_month", default_zero=True),
        _money("outstanding_after_payment"),
        sa.Column("status", parent_fee_status, nullable=False),
        sa.Column("advance_months_remaining", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("parent_id", "billing_period_id", name="uq_parent_month_fee_period"),
    )
    op.create_index("ix_parent_month_fees_id", "parent_month_fees", ["id"], unique=False)
    op.create_index("ix_parent_month_fees_school_id", "parent_month_fees", ["school_id"], unique=False)
    op.create_index("ix_parent_month_fees_parent_id", "parent_month_fees", ["parent_id"], unique=False)
    op.create_index(
        "ix_parent_month_fees_billing_period_id", "parent_month_fees", ["billing_period_id"], unique=False
    )
    op.create_index("ix_parent_month_fees_status", "parent_month_fees", ["status"], unique=False)

    op.create_table(
        "teacher_salary_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("school_id", sa.Integer(), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("teacher_id", sa.Integer(), sa.ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "billing_period_id",
            sa.Integer(),
            sa.ForeignKey("billing_periods.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _money("monthly_salary"),
        _money("carried_forward_amount", default_zero=True),
        _money("advance_balance_used", default_zero=True),
        _money("total_due_this_month"),
        _money("amount_paid_this_month", default_zero=True),
        _money("outstanding_after_payment"),
        sa.Column("status", teacher_salary_status, nullable=False),
        sa.Column("advance_months_remaining", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("teacher_id", "billing_period_id", name="uq_teacher_salary_record_period"),
    )
    op.create_index("ix_teacher_salary_records_id", "teacher_salary_records", ["id"], unique=False)
    op.create_index("ix_teacher_salary_records_school_id", "teacher_salary_records", ["school_id"], unique=False)
    op.create_index("ix_teacher_salary_records_teacher_id", "teacher_salary_records", ["teacher_id"], unique=False)
    op.create_index(
        "ix_teacher_salary_records_billing_period_id", "teacher_salary_records", ["billing_period_id"], unique=False
    )
    op.create_index("ix_teacher_salary_records_status", "teacher_salary_records", ["status"], unique=False)

    if op.get_bind().dialect.name == "postgresql":
        for table in TENANT_TABLES:
            _enable_tenant_rls(table)


def downgrade() -> None:
    bind = op.get_bind()
    for table in reversed(TENANT_TABLES):
        if bind.dialect.name == "postgresql":
            op.execute(f"DROP POLICY IF EXISTS {table}_tenant_isolation ON {table}")
        op.drop_table(table)

    teacher_salary_status.drop(bind, checkfirst=True)
    parent_fee_status.drop(bind, checkfirst=True)
    billing_period_status.drop(bind, checkfirst=True)
