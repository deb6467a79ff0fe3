"""parents and teachers with tenant rls

Revision ID: 0002_parents_and_teachers
Revises: 0001_auth_and_schools
Create Date: 2026-10-01 09:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_parents_and_teachers"
down_revision = "0001_auth_and_schools"
branch_labels = None
depends_on = None

TENANT_TABLES = ("parents", "teachers")


def _enable_tenant_rls(table: str) -> None:
    # Rows stay visible when no tenant is set on the connection (migrations, seed script);
    # request handlers set app.current_school_id before touching tenant tables.
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


def _disable_tenant_rls(table: str) -> None:
    op.execute(f"DROP POLICY IF EXISTS {table}_tenant_isolation ON {table}")
    op.execute(f"ALTER TABLE {table} NO FORCE ROW LEVEL SECURITY")
    op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")


def upgrade() -> None:
    op.create_table(
        "parents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("school_id", sa.Integer(), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("parent_name", sa.String(length=255), nullable=False),
        sa.Column("student_name", sa.String(length=255), nullable=True),
        sa.Column("phone_number", sa.String(length=50), nullable=True),
        sa.Column("class_section", sa.String(length=50), nullable=True),
        sa.Column("number_of_children", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("monthly_fee_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_parents_id", "parents", ["id"], unique=False)
    op.create_index("ix_parents_school_id", "parents", ["school_id"], unique=False)
    op.create_index("ix_parents_parent_name", "parents", ["parent_name"], unique=False)
    op.create_index("ix_parents_phone_number", "parents", ["phone_number"], unique=False)

    op.create_table(
        "teachers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("school_id", sa.Integer(), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("teacher_name", sa.String(length=255), nullable=False),
        sa.Column("department", sa.String(length=100), nullable=True),
        sa.Column("monthly_salary", sa.Numeric(12, 2), nullable=False),
        sa.Column("phone_number", sa.String(length=50), nullable=True),
        sa.Column("date_of_joining", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_teachers_id", "teachers", ["id"], unique=False)
    op.create_index("ix_teachers_school_id", "teachers", ["school_id"], unique=False)
    op.create_index("ix_teachers_teacher_name", "teachers", ["teacher_name"], unique=False)
    op.create_index("ix_teachers_department", "teachers", ["department"], unique=False)
    op.create_index("ix_teachers_is_active", "teachers", ["is_active"], unique=False)

    if op.get_bind().dialect.name == "postgresql":
        for table in TENANT_TABLES:
            _enable_tenant_rls(table)


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        for table in TENANT_TABLES:
            _disable_tenant_rls(table)

    op.drop_index("ix_teachers_is_active", table_name="teachers")
    op.drop_index("ix_teachers_department", table_name="teachers")
    op.drop_index("ix_teachers_teacher_name", table_name="teachers")
    op.drop_index("ix_teachers_school_id", table_name="teachers")
    op.drop_index("ix_teachers_id", table_name="teachers")
    op.drop_table("teachers")

    op.drop_index("ix_parents_phone_number", table_name="parents")
    op.drop_index("ix_parents_parent_name", table_name="parents")
    op.drop_index("ix_parents_school_id", table_name="parents")
    op.drop_index("ix_parents_id", table_name="parents")
    op.drop_table("parents")
