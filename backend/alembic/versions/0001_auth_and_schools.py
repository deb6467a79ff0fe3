"""users, profiles, schools and school memberships

Revision ID: 0001_auth_and_schools
Revises:
Create Date: 2026-10-01 08:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_auth_and_schools"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_deleted_at", "users", ["deleted_at"], unique=False)

    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_user_profiles_id", "user_profiles", ["id"], unique=False)

    op.create_table(
        "schools",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_schools_id", "schools", ["id"], unique=False)
    op.create_index("ix_schools_slug", "schools", ["slug"], unique=True)
    op.create_index("ix_schools_deleted_at", "schools", ["deleted_at"], unique=False)

    op.create_table(
        "user_school_roles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("school_id", sa.Integer(), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "school_id", "role", name="uq_user_school_role"),
    )
    op.create_index("ix_user_school_roles_id", "user_school_roles", ["id"], unique=False)
    op.create_index("ix_user_school_roles_user_id", "user_school_roles", ["user_id"], unique=False)
    op.create_index("ix_user_school_roles_school_id", "user_school_roles", ["school_id"], unique=False)
    op.create_index("ix_user_school_roles_role", "user_school_roles", ["role"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_user_school_roles_role", table_name="user_school_roles")
    op.drop_index("ix_user_school_roles_school_id", table_name="user_school_roles")
    op.drop_index("ix_user_school_roles_user_id", table_name="user_school_roles")
    op.drop_index("ix_user_school_roles_id", table_name="user_school_roles")
    op.drop_table("user_school_roles")

    op.drop_index("ix_schools_deleted_at", table_name="schools")
    op.drop_index("ix_schools_slug", table_name="schools")
    op.drop_index("ix_schools_id", table_name="schools")
    op.drop_table("schools")

    op.drop_index("ix_user_profiles_id", table_name="user_profiles")
    op.drop_table("user_profiles")

    op.drop_index("ix_users_deleted_at", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
