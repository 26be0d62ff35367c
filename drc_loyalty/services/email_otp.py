"""Email one-time codes shared by shopper and partner signup.

A code is verified twice: once in a dedicated transaction that counts wrong
guesses under the row lock, and once more inside the signup transaction that
consumes it together with the new account.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.core.config import get_settings
from drc_loyalty.db.models.email_verifications import EmailVerification
from drc_loyalty.db.repo.email_verifications_repo import EmailVerificationsRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.services.auth_errors import AuthInvalidOtpError, AuthOtpAttemptsExceededError
from drc_loyalty.services.credentials import generate_otp_code, hash_otp_code, is_valid_otp_code

logger = structlog.get_logger(__name__)

OTP_TTL = timedelta(minutes=10)
OTP_MAX_ATTEMPTS = 5


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _code_matches(verification: EmailVerification, *, email: str, code: str | None) -> bool:
    if not code:
        return False
    return is_valid_otp_code(
        email=email,
        code=code,
        expected_hash=verification.code_hash,
        pepper=get_settings().otp_secret_pepper,
    )


def _is_live(verification: EmailVerification | None, *, now_utc: datetime) -> bool:
    return verification is not None and verification.expires_at > now_utc


async def issue_email_otp(session: AsyncSession, *, email: str, now_utc: datetime) -> str:
    """Stores a fresh code digest for the email and returns the plain code for delivery."""
    normalized_email = normalize_email(email)
    code = generate_otp_code()
    await EmailVerificationsRepo.upsert(
        session,
        email=normalized_email,
        code_hash=hash_otp_code(
            email=normalized_email,
            code=code,
            pepper=get_settings().otp_secret_pepper,
        ),
        expires_at=now_utc + OTP_TTL,
        now_utc=now_utc,
    )
    logger.info("signup_otp_issued")
    return code


async def check_email_otp(*, email: str, code: str | None, now_utc: datetime) -> None:
    normalized_email = normalize_email(email)
    error: Exception | None = None
    async with SessionLocal.begin() as session:
        verification = await EmailVerificationsRepo.get_for_update(session, normalized_email)
        if verification is None or not _is_live(verification, now_utc=now_utc):
            error = AuthInvalidOtpError()
        elif verification.attempts >= OTP_MAX_ATTEMPTS:
            error = AuthOtpAttemptsExceededError()
        elif not _code_matches(verification, email=normalized_email, code=code):
            attempts = await EmailVerificationsRepo.register_failed_attempt(
                session,
                normalized_email,
            )
            logger.info("signup_otp_mismatch", attempts=attempts)
            error = AuthInvalidOtpError()

    if error is not None:
        raise error


async def consume_email_otp(
    session: AsyncSession,
    *,
    email: str,
    code: str | None,
    now_utc: datetime,
) -> None:
    normalized_email = normalize_email(email)
    verification = await EmailVerificationsRepo.get_for_update(session, normalized_email)
    if (
        verification is None
        or not _is_live(verification, now_utc=now_utc)
        or verification.attempts >= OTP_MAX_ATTEMPTS
        or not _code_matches(verification, email=normalized_email, code=code)
    ):
        raise AuthInvalidOtpError
    await EmailVerificationsRepo.delete(session, normalized_email)
