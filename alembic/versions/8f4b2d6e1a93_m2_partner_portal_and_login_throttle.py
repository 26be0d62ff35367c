"""m2_partner_portal_and_login_throttle

Revision ID: 8f4b2d6e1a93
Revises: 3c1e9a7b5d20
Create Date: 2026-10-19 15:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "8f4b2d6e1a93"
down_revision: str | None = "3c1e9a7b5d20"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.add_column(
        "email_verifications",
        sa.Column("attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_check_constraint(
        "ck_email_verifications_attempts_non_negative",
        "email_verifications",
        "attempts >= 0",
    )

    op.add_column(
        "users",
        sa.Column("failed_login_attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.add_column("users", sa.Column("last_failed_login_at", sa.DateTime(timezone=True), nullable=True))
    op.add_column("users", sa.Column("login_locked_until", sa.DateTime(timezone=True), nullable=True))
    op.create_check_constraint(
        "ck_users_failed_login_attempts_non_negative",
        "users",
        "failed_login_attempts >= 0",
    )

    op.create_table(
        "partners",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(128), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("company_name", sa.Text(), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("failed_login_attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_failed_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("login_locked_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('pending','active','suspended')", name="ck_partners_status"),
        sa.CheckConstraint(
            "failed_login_attempts >= 0",
            name="ck_partners_failed_login_attempts_non_negative",
        ),
    )

    op.create_table(
        "partner_supermarkets",
        sa.Column(
            "partner_id",
            sa.BigInteger(),
            sa.ForeignKey("partners.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "supermarket_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("supermarkets.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index(
        "idx_partner_supermarkets_supermarket",
        "partner_supermarkets",
        ["supermarket_id"],
    )


def downgrade() -> None:
    op.drop_index("idx_partner_supermarkets_supermarket", table_name="partner_supermarkets")
    op.drop_table("partner_supermarkets")
    op.drop_table("partners")
    op.drop_constraint("ck_users_failed_login_attempts_non_negative", "users", type_="check")
    op.drop_column("users", "login_locked_until")
    op.drop_column("users", "last_failed_login_at")
    op.drop_column("users", "failed_login_attempts")
    op.drop_constraint(
        "ck_email_verifications_attempts_non_negative",
        "email_verifications",
        type_="check",
    )
    op.drop_column("email_verifications", "attempts")
