from __future__ import annotations

import math
from datetime import date, datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from drc_loyalty.db.session import SessionLocal
from drc_loyalty.services.auth_errors import (
    AuthEmailAlreadyRegisteredError,
    AuthInvalidCredentialsError,
    AuthInvalidOtpError,
    AuthInvalidPasswordError,
    AuthInvalidPinError,
    AuthLoginLockedError,
    AuthOtpAttemptsExceededError,
    AuthPartnerPendingError,
    AuthPartnerSuspendedError,
    AuthPhoneAlreadyRegisteredError,
    AuthUserInactiveError,
)
from drc_loyalty.services.email_delivery import (
    send_otp_email,
    send_partner_welcome_email,
    send_welcome_email,
)
from drc_loyalty.services.email_otp import OTP_TTL, issue_email_otp
from drc_loyalty.services.partner_auth import PartnerAuthService, PartnerSession
from drc_loyalty.services.shopper_auth import ShopperAuthService, ShopperSession

from .deps import utc_now
from .partners_models import PartnerResponse, partner_as_response

router = APIRouter(prefix="/auth", tags=["auth"])

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class SendOtpRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)


class SendOtpResponse(BaseModel):
    sent: bool
    expires_in_seconds: int


class ShopperSignupRequest(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone_number: str = Field(min_length=6, max_length=32)
    pin: str = Field(min_length=4, max_length=6)
    email: str | None = Field(default=None, max_length=255)
    otp_code: str | None = Field(default=None, max_length=6)
    gender: str | None = Field(default=None, max_length=16)
    birthdate: date | None = None


class ShopperLoginRequest(BaseModel):
    phone_number: str = Field(min_length=6, max_length=32)
    pin: str = Field(min_length=4, max_length=6)


class ShopperSessionResponse(BaseModel):
    user_id: int
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    points_balance: int


class PartnerSignupRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=8, max_length=128)
    company_name: str = Field(min_length=1, max_length=255)
    phone: str | None = Field(default=None, max_length=32)
    otp_code: str = Field(min_length=6, max_length=6)


class PartnerLoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class PartnerSessionResponse(BaseModel):
    partner_id: int
    token: str
    token_type: str = "bearer"
    expires_at: datetime


def _as_response(shopper_session: ShopperSession) -> ShopperSessionResponse:
    return ShopperSessionResponse(
        user_id=shopper_session.user_id,
        token=shopper_session.token,
        expires_at=shopper_session.expires_at,
        points_balance=shopper_session.points_balance,
    )


def _partner_session_response(partner_session: PartnerSession) -> PartnerSessionResponse:
    return PartnerSessionResponse(
        partner_id=partner_session.partner_id,
        token=partner_session.token,
        expires_at=partner_session.expires_at,
    )


def _locked_exception(exc: AuthLoginLockedError) -> HTTPException:
    retry_after = max(1, math.ceil((exc.locked_until - utc_now()).total_seconds()))
    return HTTPException(
        status_code=429,
        detail={"code": "E_LOGIN_LOCKED"},
        headers={"Retry-After": str(retry_after)},
    )


@router.post("/send-otp", response_model=SendOtpResponse)
async def send_otp(payload: SendOtpRequest) -> SendOtpResponse:
    async with SessionLocal.begin() as session:
        code = await issue_email_otp(session, email=payload.email, now_utc=utc_now())

    ttl_minutes = int(OTP_TTL.total_seconds() // 60)
    sent = await send_otp_email(to_email=payload.email, code=code, ttl_minutes=ttl_minutes)
    return SendOtpResponse(sent=sent, expires_in_seconds=int(OTP_TTL.total_seconds()))


@router.post("/shopper/signup", response_model=ShopperSessionResponse, status_code=201)
async def shopper_signup(payload: ShopperSignupRequest) -> ShopperSessionResponse:
    try:
        shopper_session = await ShopperAuthService.register(
            first_name=payload.first_name,
            last_name=payload.last_name,
            phone_number=payload.phone_number,
            pin=payload.pin,
            email=payload.email,
            otp_code=payload.otp_code,
            gender=payload.gender,
            birthdate=payload.birthdate,
            now_utc=utc_now(),
        )
    except AuthInvalidPinError as exc:
        raise HTTPException(status_code=422, detail={"code": "E_INVALID_PIN"}) from exc
    except AuthInvalidOtpError as exc:
        raise HTTPException(status_code=422, detail={"code": "E_INVALID_OTP"}) from exc
    except AuthOtpAttemptsExceededError as exc:
        raise HTTPException(status_code=429, detail={"code": "E_OTP_ATTEMPTS_EXCEEDED"}) from exc
    except AuthPhoneAlreadyRegisteredError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_PHONE_ALREADY_REGISTERED"}) from exc

    if payload.email:
        await send_welcome_email(
            to_email=payload.email,
            first_name=payload.first_name,
            bonus_points=shopper_session.points_balance,
        )
    return _as_response(shopper_session)


@router.post("/shopper/login", response_model=ShopperSessionResponse)
async def shopper_login(payload: ShopperLoginRequest) -> ShopperSessionResponse:
    try:
        shopper_session = await ShopperAuthService.authenticate(
            phone_number=payload.phone_number,
            pin=payload.pin,
            now_utc=utc_now(),
        )
    except AuthLoginLockedError as exc:
        raise _locked_exception(exc) from exc
    except AuthInvalidCredentialsError as exc:
        raise HTTPException(status_code=401, detail={"code": "E_INVALID_CREDENTIALS"}) from exc
    except AuthUserInactiveError as exc:
        raise HTTPException(status_code=403, detail={"code": "E_USER_INACTIVE"}) from exc

    return _as_response(shopper_session)


@router.post("/partner/signup", response_model=PartnerResponse, status_code=201)
async def partner_signup(payload: PartnerSignupRequest) -> PartnerResponse:
    try:
        partner = await PartnerAuthService.register(
            name=payload.name,
            email=payload.email,
            password=payload.password,
            company_name=payload.company_name,
            phone=payload.phone,
            otp_code=payload.otp_code,
            now_utc=utc_now(),
        )
    except AuthInvalidPasswordError as exc:
        raise HTTPException(status_code=422, detail={"code": "E_INVALID_PASSWORD"}) from exc
    except AuthInvalidOtpError as exc:
        raise HTTPException(status_code=422, detail={"code": "E_INVALID_OTP"}) from exc
    except AuthOtpAttemptsExceededError as exc:
        raise HTTPException(status_code=429, detail={"code": "E_OTP_ATTEMPTS_EXCEEDED"}) from exc
    except AuthEmailAlreadyRegisteredError as exc:
        raise HTTPException(status_code=409, detail={"code": "E_EMAIL_ALREADY_REGISTERED"}) from exc

    await send_partner_welcome_email(
        to_email=partner.email,
        name=partner.name,
        company_name=partner.company_name,
    )
    return partner_as_response(partner, [])


@router.post("/partner/login", response_model=PartnerSessionResponse)
async def partner_login(payload: PartnerLoginRequest) -> PartnerSessionResponse:
    try:
        partner_session = await PartnerAuthService.authenticate(
            email=payload.email,
            password=payload.password,
            now_utc=utc_now(),
        )
    except AuthLoginLockedError as exc:
        raise _locked_exception(exc) from exc
    except AuthInvalidCredentialsError as exc:
        raise HTTPException(status_code=401, detail={"code": "E_INVALID_CREDENTIALS"}) from exc
    except AuthPartnerPendingError as exc:
        raise HTTPException(status_code=403, detail={"code": "E_PARTNER_PENDING"}) from exc
    except AuthPartnerSuspendedError as exc:
        raise HTTPException(status_code=403, detail={"code": "E_PARTNER_SUSPENDED"}) from exc

    return _partner_session_response(partner_session)
