from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

LOGIN_MAX_FAILURES = 5
LOGIN_FAILURE_WINDOW = timedelta(minutes=15)
LOGIN_LOCKOUT = timedelta(minutes=15)


class ThrottledAccount(Protocol):
    failed_login_attempts: int
    last_failed_login_at: datetime | None
    login_locked_until: datetime | None


def is_locked(account: ThrottledAccount, *, now_utc: datetime) -> bool:
    return account.login_locked_until is not None and account.login_locked_until > now_utc


def register_failure(account: ThrottledAccount, *, now_utc: datetime) -> bool:
    """Counts a failed login in the rolling window; returns True when it locks the account."""
    last_failed_at = account.last_failed_login_at
    if last_failed_at is None or now_utc - last_failed_at > LOGIN_FAILURE_WINDOW:
        account.failed_login_attempts = 0

    account.failed_login_attempts += 1
    account.last_failed_login_at = now_utc
    if account.failed_login_attempts < LOGIN_MAX_FAILURES:
        return False

    account.failed_login_attempts = 0
    account.login_locked_until = now_utc + LOGIN_LOCKOUT
    return True


def clear_failures(account: ThrottledAccount) -> None:
    account.failed_login_attempts = 0
    account.last_failed_login_at = None
    account.login_locked_until = None
