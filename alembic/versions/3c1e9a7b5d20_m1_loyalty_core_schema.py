"""m1_loyalty_core_schema

Revision ID: 3c1e9a7b5d20
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "3c1e9a7b5d20"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("first_name", sa.Text(), nullable=False),
        sa.Column("last_name", sa.Text(), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(32), nullable=False),
        sa.Column("pin_hash", sa.String(128), nullable=False),
        sa.Column("gender", sa.String(16), nullable=True),
        sa.Column("birthdate", sa.Date(), nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("points_balance", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("points_expiring", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("points_expires_at", sa.Date(), nullable=True),
        sa.Column("total_spent", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("last_receipt_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('ACTIVE','SUSPENDED','BANNED')", name="ck_users_status"),
        sa.CheckConstraint("points_balance >= 0", name="ck_users_points_balance_non_negative"),
        sa.CheckConstraint("points_expiring >= 0", name="ck_users_points_expiring_non_negative"),
        sa.CheckConstraint("total_spent >= 0", name="ck_users_total_spent_non_negative"),
        sa.UniqueConstraint("phone_number", name="uq_users_phone_number"),
    )
    op.create_index("idx_users_points_expires_at", "users", ["points_expires_at"])
    op.create_index("idx_users_joined_at", "users", ["joined_at"])

    op.create_table(
        "email_verifications",
        sa.Column("email", sa.String(255), primary_key=True),
        sa.Column("code_hash", sa.CHAR(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "supermarkets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("address", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("business_hours", sa.String(255), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("avg_basket", sa.Numeric(14, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_supermarkets_active", "supermarkets", ["active"])
    op.create_index("idx_supermarkets_name", "supermarkets", ["name"])

    op.create_table(
        "campaigns",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("brand", sa.String(128), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("mechanic", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("min_spend", sa.Numeric(14, 2), nullable=True),
        sa.Column("max_redemptions", sa.Integer(), nullable=True),
        sa.Column("conversions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("target_audience", sa.String(16), nullable=False, server_default=sa.text("'all'")),
        sa.Column("reward_type", sa.String(16), nullable=False),
        sa.Column("reward_value", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('draft','active','ended')", name="ck_campaigns_status"),
        sa.CheckConstraint(
            "target_audience IN ('all','vip','new','churn_risk')",
            name="ck_campaigns_target_audience",
        ),
        sa.CheckConstraint(
            "reward_type IN ('points','voucher','giveaway')",
            name="ck_campaigns_reward_type",
        ),
        sa.CheckConstraint("start_date <= end_date", name="ck_campaigns_date_range"),
        sa.CheckConstraint("conversions >= 0", name="ck_campaigns_conversions_non_negative"),
        sa.CheckConstraint(
            "max_redemptions IS NULL OR max_redemptions > 0",
            name="ck_campaigns_max_redemptions_positive",
        ),
        sa.CheckConstraint(
            "max_redemptions IS NULL OR conversions <= max_redemptions",
            name="ck_campaigns_conversions_le_max",
        ),
        sa.CheckConstraint("min_spend IS NULL OR min_spend >= 0", name="ck_campaigns_min_spend"),
    )
    op.create_index("idx_campaigns_status_dates", "campaigns", ["status", "start_date", "end_date"])

    op.create_table(
        "campaign_supermarkets",
        sa.Column("campaign_id", sa.BigInteger(), nullable=False),
        sa.Column("supermarket_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["supermarket_id"], ["supermarkets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("campaign_id", "supermarket_id"),
    )
    op.create_index(
        "idx_campaign_supermarkets_supermarket",
        "campaign_supermarkets",
        ["supermarket_id"],
    )

    op.create_table(
        "receipts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("supermarket_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("supermarket_name", sa.String(255), nullable=False),
        sa.Column("merchant_name_raw", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(8), nullable=False),
        sa.Column("receipt_date", sa.Date(), nullable=False),
        sa.Column("receipt_number", sa.String(64), nullable=True),
        sa.Column("image_sha256", sa.CHAR(64), nullable=False),
        sa.Column("image_url", sa.String(512), nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("points_awarded", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("campaign_id", sa.BigInteger(), nullable=True),
        sa.Column("reject_reason", sa.String(64), nullable=True),
        sa.Column("reviewed_by", sa.String(64), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("status IN ('PENDING','VERIFIED','REJECTED')", name="ck_receipts_status"),
        sa.CheckConstraint("amount > 0", name="ck_receipts_amount_positive"),
        sa.CheckConstraint("points_awarded >= 0", name="ck_receipts_points_awarded_non_negative"),
        sa.CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 1",
            name="ck_receipts_confidence_range",
        ),
        sa.CheckConstraint(
            "status = 'VERIFIED' OR points_awarded = 0",
            name="ck_receipts_points_only_when_verified",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["supermarket_id"], ["supermarkets.id"]),
        sa.ForeignKeyConstraint(["campaign_id"], ["campaigns.id"]),
        sa.UniqueConstraint("image_sha256", name="uq_receipts_image_sha256"),
    )
    op.create_index("idx_receipts_user_created", "receipts", ["user_id", "created_at"])
    op.create_index("idx_receipts_status_created", "receipts", ["status", "created_at"])
    op.create_index(
        "idx_receipts_similarity",
        "receipts",
        ["supermarket_id", "receipt_date", "amount"],
    )
    op.create_index("idx_receipts_campaign", "receipts", ["campaign_id"])
    op.create_index(
        "uq_receipts_receipt_number",
        "receipts",
        ["receipt_number"],
        unique=True,
        postgresql_where=sa.text("receipt_number IS NOT NULL"),
    )

    op.create_table(
        "receipt_items",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("receipt_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("total", sa.Numeric(14, 2), nullable=False),
        sa.Column("category", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(["receipt_id"], ["receipts.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_receipt_items_receipt", "receipt_items", ["receipt_id"])

    op.create_table(
        "receipt_submissions",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("image_sha256", sa.CHAR(64), nullable=False),
        sa.Column("result", sa.String(32), nullable=False),
        sa.Column("source", sa.String(16), nullable=False),
        sa.Column("attempted_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.CheckConstraint("source IN ('API','MODERATION')", name="ck_receipt_submissions_source"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index(
        "idx_receipt_submissions_user_time",
        "receipt_submissions",
        ["user_id", "attempted_at"],
    )
    op.create_index("idx_receipt_submissions_image", "receipt_submissions", ["image_sha256"])

    op.create_table(
        "rewards",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("cost", sa.Integer(), nullable=False),
        sa.Column("reward_type", sa.String(32), nullable=False),
        sa.Column("brand", sa.String(128), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("partner_name", sa.String(255), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("cost > 0", name="ck_rewards_cost_positive"),
        sa.CheckConstraint("reward_type IN ('airtime','voucher','product')", name="ck_rewards_type"),
    )

    op.create_table(
        "reward_redemptions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("reward_id", sa.BigInteger(), nullable=False),
        sa.Column("cost", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("cost > 0", name="ck_reward_redemptions_cost_positive"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["reward_id"], ["rewards.id"]),
    )
    op.create_index(
        "idx_reward_redemptions_user_created",
        "reward_redemptions",
        ["user_id", "created_at"],
    )

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("entry_type", sa.String(32), nullable=False),
        sa.Column("direction", sa.String(8), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=True),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("idempotency_key", sa.String(128), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_ledger_entries_amount_positive"),
        sa.CheckConstraint("direction IN ('CREDIT','DEBIT')", name="ck_ledger_entries_direction"),
        sa.CheckConstraint(
            "entry_type IN ('SIGNUP_BONUS','RECEIPT_AWARD','REWARD_REDEMPTION',"
            "'POINTS_EXPIRED','MANUAL_ADJUSTMENT')",
            name="ck_ledger_entries_type",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.UniqueConstraint("idempotency_key", name="uq_ledger_entries_idempotency_key"),
    )
    op.create_index("idx_ledger_user_created", "ledger_entries", ["user_id", "created_at"])
    op.create_index("idx_ledger_type", "ledger_entries", ["entry_type"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("notification_type", sa.String(16), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("expires_for_date", sa.Date(), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "notification_type IN ('expiration','system','reward')",
            name="ck_notifications_type",
        ),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
    )
    op.create_index("idx_notifications_user_created", "notifications", ["user_id", "created_at"])
    op.create_index(
        "uq_notifications_expiration_warning",
        "notifications",
        ["user_id", "expires_for_date"],
        unique=True,
        postgresql_where=sa.text("kind = 'EXPIRATION_WARNING'"),
    )


def downgrade() -> None:
    op.drop_index("uq_notifications_expiration_warning", table_name="notifications")
    op.drop_index("idx_notifications_user_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("idx_ledger_type", table_name="ledger_entries")
    op.drop_index("idx_ledger_user_created", table_name="ledger_entries")
    op.drop_table("ledger_entries")
    op.drop_index("idx_reward_redemptions_user_created", table_name="reward_redemptions")
    op.drop_table("reward_redemptions")
    op.drop_table("rewards")
    op.drop_index("idx_receipt_submissions_image", table_name="receipt_submissions")
    op.drop_index("idx_receipt_submissions_user_time", table_name="receipt_submissions")
    op.drop_table("receipt_submissions")
    op.drop_index("idx_receipt_items_receipt", table_name="receipt_items")
    op.drop_table("receipt_items")
    op.drop_index("uq_receipts_receipt_number", table_name="receipts")
    op.drop_index("idx_receipts_campaign", table_name="receipts")
    op.drop_index("idx_receipts_similarity", table_name="receipts")
    op.drop_index("idx_receipts_status_created", table_name="receipts")
    op.drop_index("idx_receipts_user_created", table_name="receipts")
    op.drop_table("receipts")
    op.drop_index("idx_campaign_supermarkets_supermarket", table_name="campaign_supermarkets")
    op.drop_table("campaign_supermarkets")
    op.drop_index("idx_campaigns_status_dates", table_name="campaigns")
    op.drop_table("campaigns")
    op.drop_index("idx_supermarkets_name", table_name="supermarkets")
    op.drop_index("idx_supermarkets_active", table_name="supermarkets")
    op.drop_table("supermarkets")
    op.drop_table("email_verifications")
    op.drop_table("users")
