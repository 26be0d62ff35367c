from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from drc_loyalty.db.repo.users_repo import UsersRepo
from drc_loyalty.services import shopper_auth
from drc_loyalty.services.auth_errors import (
    AuthInvalidCredentialsError,
    AuthInvalidOtpError,
    AuthLoginLockedError,
)
from drc_loyalty.services.credentials import hash_pin
from drc_loyalty.services.login_throttle import LOGIN_LOCKOUT, LOGIN_MAX_FAILURES
from drc_loyalty.services.session_tokens import decode_shopper_token
from drc_loyalty.services.shopper_auth import ShopperAuthService

NOW_UTC = datetime(2026, 9, 1, 10, 0, tzinfo=timezone.utc)
SECRET = "shopper-session-secret-for-tests-0001"
PHONE = "+243812345678"


class _Transaction:
    def __init__(self, calls: SimpleNamespace) -> None:
        self.calls = calls

    async def __aenter__(self):
        self.calls.transactions += 1
        return object()

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False


@pytest.fixture
def shopper(monkeypatch):
    calls = SimpleNamespace(transactions=0)
    user = SimpleNamespace(
        id=11,
        phone_number=PHONE,
        pin_hash=hash_pin("2468"),
        status="ACTIVE",
        points_balance=120,
        failed_login_attempts=0,
        last_failed_login_at=None,
        login_locked_until=None,
    )

    class FakeSessionLocal:
        @staticmethod
        def begin() -> _Transaction:
            return _Transaction(calls)

    async def fake_get_by_phone_number_for_update(session, phone_number):
        return user if phone_number == PHONE else None

    monkeypatch.setattr(shopper_auth, "SessionLocal", FakeSessionLocal)
    monkeypatch.setattr(
        shopper_auth,
        "get_settings",
        lambda: SimpleNamespace(auth_token_secret=SECRET, auth_token_ttl_hours=24),
    )
    monkeypatch.setattr(UsersRepo, "get_by_phone_number_for_update", fake_get_by_phone_number_for_update)
    return SimpleNamespace(user=user, calls=calls)


async def test_wrong_pin_is_counted_in_separate_transaction(shopper) -> None:
    with pytest.raises(AuthInvalidCredentialsError):
        await ShopperAuthService.authenticate(phone_number="+243 81 234 5678", pin="0000", now_utc=NOW_UTC)

    assert shopper.user.failed_login_attempts == 1
    assert shopper.user.last_failed_login_at == NOW_UTC
    assert shopper.calls.transactions == 2


async def test_repeated_wrong_pins_lock_the_account(shopper) -> None:
    for index in range(LOGIN_MAX_FAILURES):
        with pytest.raises(AuthInvalidCredentialsError):
            await ShopperAuthService.authenticate(
                phone_number=PHONE,
                pin="0000",
                now_utc=NOW_UTC + timedelta(seconds=index),
            )

    attempt_at = NOW_UTC + timedelta(minutes=1)
    with pytest.raises(AuthLoginLockedError) as locked:
        await ShopperAuthService.authenticate(phone_number=PHONE, pin="2468", now_utc=attempt_at)

    assert locked.value.locked_until == shopper.user.login_locked_until
    assert locked.value.locked_until > attempt_at


async def test_login_after_lockout_clears_failures(shopper) -> None:
    shopper.user.failed_login_attempts = 2
    shopper.user.last_failed_login_at = NOW_UTC
    shopper.user.login_locked_until = NOW_UTC + LOGIN_LOCKOUT

    session = await ShopperAuthService.authenticate(
        phone_number=PHONE,
        pin="2468",
        now_utc=NOW_UTC + LOGIN_LOCKOUT + timedelta(seconds=1),
    )

    assert session.user_id == 11
    assert session.points_balance == 120
    assert decode_shopper_token(session.token, secret=SECRET).user_id == 11
    assert shopper.user.failed_login_attempts == 0
    assert shopper.user.login_locked_until is None


async def test_unknown_phone_is_not_counted(shopper) -> None:
    locked = await ShopperAuthService.record_login_failure(phone_number="+243990000000", now_utc=NOW_UTC)

    assert locked is False
    assert shopper.user.failed_login_attempts == 0


async def test_register_stops_before_signup_when_otp_check_fails(shopper, monkeypatch) -> None:
    async def fake_check_email_otp(*, email, code, now_utc):
        raise AuthInvalidOtpError

    monkeypatch.setattr(shopper_auth, "check_email_otp", fake_check_email_otp)

    with pytest.raises(AuthInvalidOtpError):
        await ShopperAuthService.register(
            first_name="Amani",
            last_name="Kabeya",
            phone_number="+243970000001",
            pin="1357",
            email="amani@example.com",
            otp_code="000000",
            gender=None,
            birthdate=None,
            now_utc=NOW_UTC,
        )

    assert shopper.calls.transactions == 0
