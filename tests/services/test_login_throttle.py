from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from drc_loyalty.services.login_throttle import (
    LOGIN_FAILURE_WINDOW,
    LOGIN_LOCKOUT,
    LOGIN_MAX_FAILURES,
    clear_failures,
    is_locked,
    register_failure,
)

NOW_UTC = datetime(2026, 9, 1, 10, 0, tzinfo=timezone.utc)


def _account(**overrides) -> SimpleNamespace:
    values = {"failed_login_attempts": 0, "last_failed_login_at": None, "login_locked_until": None}
    values.update(overrides)
    return SimpleNamespace(**values)


def test_account_locks_on_fifth_failure_inside_window() -> None:
    account = _account()

    results = [
        register_failure(account, now_utc=NOW_UTC + timedelta(minutes=index))
        for index in range(LOGIN_MAX_FAILURES)
    ]

    assert results == [False] * (LOGIN_MAX_FAILURES - 1) + [True]
    last_failure_at = NOW_UTC + timedelta(minutes=LOGIN_MAX_FAILURES - 1)
    assert account.login_locked_until == last_failure_at + LOGIN_LOCKOUT
    assert account.failed_login_attempts == 0
    assert is_locked(account, now_utc=last_failure_at + timedelta(minutes=1)) is True
    assert is_locked(account, now_utc=account.login_locked_until) is False


def test_stale_failures_do_not_accumulate() -> None:
    account = _account(
        failed_login_attempts=LOGIN_MAX_FAILURES - 1,
        last_failed_login_at=NOW_UTC - LOGIN_FAILURE_WINDOW - timedelta(seconds=1),
    )

    locked = register_failure(account, now_utc=NOW_UTC)

    assert locked is False
    assert account.failed_login_attempts == 1
    assert account.login_locked_until is None


def test_clear_failures_resets_counters() -> None:
    account = _account(
        failed_login_attempts=3,
        last_failed_login_at=NOW_UTC,
        login_locked_until=NOW_UTC + LOGIN_LOCKOUT,
    )

    clear_failures(account)

    assert account.failed_login_attempts == 0
    assert account.last_failed_login_at is None
    assert is_locked(account, now_utc=NOW_UTC) is False
