from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from drc_loyalty.core.config import get_settings
from drc_loyalty.db.models.partners import Partner
from drc_loyalty.db.repo.partners_repo import PartnersRepo
from drc_loyalty.db.session import SessionLocal
from drc_loyalty.services.auth_errors import (
    AuthEmailAlreadyRegisteredError,
    AuthInvalidCredentialsError,
    AuthInvalidPasswordError,
    AuthLoginLockedError,
    AuthPartnerPendingError,
    AuthPartnerSuspendedError,
)
from drc_loyalty.services.credentials import hash_password, is_valid_password, verify_password
from drc_loyalty.services.email_otp import check_email_otp, consume_email_otp, normalize_email
from drc_loyalty.services.login_throttle import clear_failures, is_locked, register_failure
from drc_loyalty.services.session_tokens import issue_partner_token

logger = structlog.get_logger(__name__)

PARTNER_STATUSES = {"pending", "active", "suspended"}


@dataclass(slots=True)
class PartnerSession:
    partner_id: int
    token: str
    expires_at: datetime


class PartnerAuthService:
    @staticmethod
    async def signup(
        session: AsyncSession,
        *,
        name: str,
        email: str,
        password: str,
        company_name: str,
        phone: str | None,
        otp_code: str,
        now_utc: datetime,
    ) -> Partner:
        """Creates a partner awaiting approval; signing in stays refused until then."""
        if not is_valid_password(password):
            raise AuthInvalidPasswordError

        normalized_email = normalize_email(email)
        if await PartnersRepo.get_by_email(session, normalized_email) is not None:
            raise AuthEmailAlreadyRegisteredError
        await consume_email_otp(session, email=normalized_email, code=otp_code, now_utc=now_utc)

        try:
            partner = await PartnersRepo.create(
                session,
                partner=Partner(
                    email=normalized_email,
                    password_hash=hash_password(password),
                    name=name.strip(),
                    company_name=company_name.strip(),
                    phone=(phone or "").strip() or None,
                    status="pending",
                    failed_login_attempts=0,
                    created_at=now_utc,
                    updated_at=now_utc,
                ),
            )
        except IntegrityError as exc:
            raise AuthEmailAlreadyRegisteredError from exc

        logger.info("partner_signed_up", partner_id=partner.id)
        return partner

    @staticmethod
    async def register(
        *,
        name: str,
        email: str,
        password: str,
        company_name: str,
        phone: str | None,
        otp_code: str,
        now_utc: datetime,
    ) -> Partner:
        await check_email_otp(email=email, code=otp_code, now_utc=now_utc)
        async with SessionLocal.begin() as session:
            return await PartnerAuthService.signup(
                session,
                name=name,
                email=email,
                password=password,
                company_name=company_name,
                phone=phone,
                otp_code=otp_code,
                now_utc=now_utc,
            )

    @staticmethod
    async def login(
        session: AsyncSession,
        *,
        email: str,
        password: str,
        now_utc: datetime,
    ) -> PartnerSession:
        partner = await PartnersRepo.get_by_email_for_update(session, normalize_email(email))
        if partner is not None and is_locked(partner, now_utc=now_utc):
            raise AuthLoginLockedError(partner.login_locked_until)
        if partner is None or not verify_password(password, partner.password_hash):
            logger.info("partner_login_failed")
            raise AuthInvalidCredentialsError
        if partner.status == "pending":
            raise AuthPartnerPendingError
        if partner.status != "active":
            raise AuthPartnerSuspendedError

        if partner.failed_login_attempts or partner.login_locked_until is not None:
            clear_failures(partner)
        settings = get_settings()
        token, expires_at = issue_partner_token(
            partner_id=partner.id,
            secret=settings.auth_token_secret,
            ttl=timedelta(hours=settings.auth_token_ttl_hours),
            now_utc=now_utc,
        )
        logger.info("partner_logged_in", partner_id=partner.id)
        return PartnerSession(partner_id=partner.id, token=token, expires_at=expires_at)

    @staticmethod
    async def record_login_failure(*, email: str, now_utc: datetime) -> bool:
        async with SessionLocal.begin() as session:
            partner = await PartnersRepo.get_by_email_for_update(session, normalize_email(email))
            if partner is None:
                return False
            locked = register_failure(partner, now_utc=now_utc)

        if locked:
            logger.warning(
                "partner_login_locked",
                partner_id=partner.id,
                locked_until=partner.login_locked_until,
            )
        return locked

    @staticmethod
    async def authenticate(*, email: str, password: str, now_utc: datetime) -> PartnerSession:
        try:
            async with SessionLocal.begin() as session:
                return await PartnerAuthService.login(
                    session,
                    email=email,
                    password=password,
                    now_utc=now_utc,
                )
        except AuthInvalidCredentialsError:
            await PartnerAuthService.record_login_failure(email=email, now_utc=now_utc)
            raise
