from __future__ import annotations

from sqlalchemy import CheckConstraint

import drc_loyalty.db.models  # noqa: F401
from drc_loyalty.db.models.base import Base


def _check_names(table_name: str) -> set[str]:
    table = Base.metadata.tables[table_name]
    return {
        constraint.name
        for constraint in table.constraints
        if isinstance(constraint, CheckConstraint)
    }


def _index_names(table_name: str) -> set[str]:
    return {index.name for index in Base.metadata.tables[table_name].indexes}


def test_all_loyalty_tables_registered() -> None:
    expected_tables = {
        "users",
        "email_verifications",
        "supermarkets",
        "campaigns",
        "campaign_supermarkets",
        "receipts",
        "receipt_items",
        "receipt_submissions",
        "rewards",
        "reward_redemptions",
        "ledger_entries",
        "notifications",
        "partners",
        "partner_supermarkets",
    }
    assert expected_tables == set(Base.metadata.tables)


def test_receipt_constraints_present() -> None:
    checks = _check_names("receipts")
    assert "ck_receipts_points_only_when_verified" in checks
    assert "ck_receipts_confidence_range" in checks

    receipts = Base.metadata.tables["receipts"]
    assert receipts.c.image_sha256.unique is True
    assert "uq_receipts_receipt_number" in _index_names("receipts")
    assert "idx_receipts_similarity" in _index_names("receipts")


def test_campaign_budget_constraint_present() -> None:
    checks = _check_names("campaigns")
    assert "ck_campaigns_conversions_le_max" in checks
    assert "ck_campaigns_max_redemptions_positive" in checks
    assert "ck_campaigns_target_audience" in checks


def test_user_balance_cannot_go_negative() -> None:
    checks = _check_names("users")
    assert "ck_users_points_balance_non_negative" in checks
    assert "ck_users_points_expiring_non_negative" in checks


def test_login_throttle_and_otp_attempt_counters_cannot_go_negative() -> None:
    assert "ck_users_failed_login_attempts_non_negative" in _check_names("users")
    assert "ck_partners_failed_login_attempts_non_negative" in _check_names("partners")
    assert "ck_email_verifications_attempts_non_negative" in _check_names("email_verifications")


def test_partner_tables_shape() -> None:
    assert "ck_partners_status" in _check_names("partners")
    assert Base.metadata.tables["partners"].c.email.unique is True

    assignments = Base.metadata.tables["partner_supermarkets"]
    assert {column.name for column in assignments.primary_key.columns} == {
        "partner_id",
        "supermarket_id",
    }
    assert "idx_partner_supermarkets_supermarket" in _index_names("partner_supermarkets")


def test_ledger_idempotency_and_warning_dedupe() -> None:
    ledger = Base.metadata.tables["ledger_entries"]
    assert ledger.c.idempotency_key.unique is True
    assert "uq_notifications_expiration_warning" in _index_names("notifications")
