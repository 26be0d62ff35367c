from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.core.config import get_settings
from drc_loyalty.db.models.users import User
from drc_loyalty.db.repo.users_repo import UsersRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.economy.points.constants import LEDGER_ENTRY_SIGNUP_BONUS
from drc_loyalty.economy.points.service import PointsService
from drc_loyalty.services.auth_errors import (
    AuthInvalidCredentialsError,
    AuthInvalidPinError,
    AuthLoginLockedError,
    AuthPhoneAlreadyRegisteredError,
    AuthUserInactiveError,
)
from drc_loyalty.services.credentials import (
    hash_pin,
    is_valid_pin,
    normalize_phone_number,
    verify_pin,
)
from drc_loyalty.services.email_otp import check_email_otp, consume_email_otp, normalize_email
from drc_loyalty.services.login_throttle import clear_failures, is_locked, register_failure
from drc_loyalty.services.session_tokens import issue_shopper_token

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class ShopperSession:
    user_id: int
    token: str
    expires_at: datetime
    points_balance: int


class ShopperAuthService:
    @staticmethod
    def _issue_session(user: User, *, points_balance: int, now_utc: datetime) -> ShopperSession:
        settings = get_settings()
        token, expires_at = issue_shopper_token(
            user_id=user.id,
            secret=settings.auth_token_secret,
            ttl=timedelta(hours=settings.auth_token_ttl_hours),
            now_utc=now_utc,
        )
        return ShopperSession(
            user_id=user.id,
            token=token,
            expires_at=expires_at,
            points_balance=points_balance,
        )

    @staticmethod
    async def signup(
        session: AsyncSession,
        *,
        first_name: str,
        last_name: str,
        phone_number: str,
        pin: str,
        email: str | None,
        otp_code: str | None,
        gender: str | None,
        birthdate: date | None,
        now_utc: datetime,
    ) -> ShopperSession:
        if not is_valid_pin(pin):
            raise AuthInvalidPinError

        normalized_phone = normalize_phone_number(phone_number)
        if await UsersRepo.get_by_phone_number(session, normalized_phone) is not None:
            raise AuthPhoneAlreadyRegisteredError

        normalized_email = normalize_email(email) if email else None
        if normalized_email is not None:
            await consume_email_otp(session, email=normalized_email, code=otp_code, now_utc=now_utc)

        try:
            user = await UsersRepo.create(
                session,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
                phone_number=normalized_phone,
                pin_hash=hash_pin(pin),
                email=normalized_email,
                gender=gender,
                birthdate=birthdate,
                joined_at=now_utc,
            )
        except IntegrityError as exc:
            raise AuthPhoneAlreadyRegisteredError from exc

        bonus_points = get_settings().signup_bonus_points
        balance = 0
        if bonus_points > 0:
            balance = await PointsService.credit(
                session,
                user_id=user.id,
                points=bonus_points,
                entry_type=LEDGER_ENTRY_SIGNUP_BONUS,
                source="SIGNUP",
                idempotency_key=f"signup:bonus:{user.id}",
                now_utc=now_utc,
            )

        logger.info("shopper_signed_up", user_id=user.id, bonus_points=bonus_points)
        return ShopperAuthService._issue_session(user, points_balance=balance, now_utc=now_utc)

    @staticmethod
    async def register(
        *,
        first_name: str,
        last_name: str,
        phone_number: str,
        pin: str,
        email: str | None,
        otp_code: str | None,
        gender: str | None,
        birthdate: date | None,
        now_utc: datetime,
    ) -> ShopperSession:
        if email:
            await check_email_otp(email=email, code=otp_code, now_utc=now_utc)

        async with SessionLocal.begin() as session:
            return await ShopperAuthService.signup(
                session,
                first_name=first_name,
                last_name=last_name,
                phone_number=phone_number,
                pin=pin,
                email=email,
                otp_code=otp_code,
                gender=gender,
                birthdate=birthdate,
                now_utc=now_utc,
            )

    @staticmethod
    async def login(
        session: AsyncSession,
        *,
        phone_number: str,
        pin: str,
        now_utc: datetime,
    ) -> ShopperSession:
        user = await UsersRepo.get_by_phone_number_for_update(
            session,
            normalize_phone_number(phone_number),
        )
        if user is not None and is_locked(user, now_utc=now_utc):
            raise AuthLoginLockedError(user.login_locked_until)
        if user is None or not verify_pin(pin, user.pin_hash):
            logger.info("shopper_login_failed")
            raise AuthInvalidCredentialsError
        if user.status != "ACTIVE":
            raise AuthUserInactiveError

        if user.failed_login_attempts or user.login_locked_until is not None:
            clear_failures(user)
        logger.info("shopper_logged_in", user_id=user.id)
        return ShopperAuthService._issue_session(
            user,
            points_balance=user.points_balance,
            now_utc=now_utc,
        )

    @staticmethod
    async def record_login_failure(*, phone_number: str, now_utc: datetime) -> bool:
        """Counts a wrong PIN against the phone's account; True when the account just locked."""
        async with SessionLocal.begin() as session:
            user = await UsersRepo.get_by_phone_number_for_update(
                session,
                normalize_phone_number(phone_number),
            )
            if user is None:
                return False
            locked = register_failure(user, now_utc=now_utc)

        if locked:
            logger.warning("shopper_login_locked", user_id=user.id, locked_until=user.login_locked_until)
        return locked

    @staticmethod
    async def authenticate(*, phone_number: str, pin: str, now_utc: datetime) -> ShopperSession:
        """Logs in and persists a failed attempt after the login transaction rolled back."""
        try:
            async with SessionLocal.begin() as session:
                return await ShopperAuthService.login(
                    session,
                    phone_number=phone_number,
                    pin=pin,
                    now_utc=now_utc,
                )
        except AuthInvalidCredentialsError:
            await ShopperAuthService.record_login_failure(phone_number=phone_number, now_utc=now_utc)
            raise
