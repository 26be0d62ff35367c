from __future__ import annotations

from datetime import date, timedelta

from drc_loyalty.economy.points.expiration import evaluate_expiration, is_in_warning_window
from drc_loyalty.economy.points.types import ExpirationAction, PointsTrancheSnapshot

TODAY = date(2026, 5, 10)


def test_warns_once_inside_window() -> None:
    snapshot = PointsTrancheSnapshot(
        points_balance=300,
        points_expiring=200,
        points_expires_at=TODAY + timedelta(days=5),
    )

    first = evaluate_expiration(snapshot, today=TODAY)
    assert first.action == ExpirationAction.WARN
    assert first.expires_at == TODAY + timedelta(days=5)

    snapshot.warning_already_sent = True
    second = evaluate_expiration(snapshot, today=TODAY + timedelta(days=1))
    assert second.action == ExpirationAction.NONE


def test_no_warning_outside_window() -> None:
    snapshot = PointsTrancheSnapshot(
        points_balance=300,
        points_expiring=200,
        points_expires_at=TODAY + timedelta(days=8),
    )

    assert evaluate_expiration(snapshot, today=TODAY).action == ExpirationAction.NONE


def test_expires_after_expiry_date_and_caps_debit_at_balance() -> None:
    snapshot = PointsTrancheSnapshot(
        points_balance=150,
        points_expiring=200,
        points_expires_at=TODAY - timedelta(days=1),
        warning_already_sent=True,
    )

    decision = evaluate_expiration(snapshot, today=TODAY)

    assert decision.action == ExpirationAction.EXPIRE
    assert decision.points_to_debit == 150


def test_expiry_day_itself_is_not_expired() -> None:
    snapshot = PointsTrancheSnapshot(
        points_balance=500,
        points_expiring=200,
        points_expires_at=TODAY,
        warning_already_sent=True,
    )

    assert evaluate_expiration(snapshot, today=TODAY).action == ExpirationAction.NONE


def test_empty_tranche_is_ignored() -> None:
    snapshot = PointsTrancheSnapshot(
        points_balance=500,
        points_expiring=0,
        points_expires_at=TODAY - timedelta(days=3),
    )

    assert evaluate_expiration(snapshot, today=TODAY).action == ExpirationAction.NONE


def test_warning_window_edges() -> None:
    expires_at = TODAY + timedelta(days=7)
    assert is_in_warning_window(expires_at, today=TODAY) is True
    assert is_in_warning_window(expires_at, today=TODAY - timedelta(days=1)) is False
    assert is_in_warning_window(expires_at, today=expires_at) is False
