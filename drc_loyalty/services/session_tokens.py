from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

TOKEN_ALGORITHM = "HS256"
TOKEN_TYPE_SHOPPER = "shopper"
TOKEN_TYPE_PARTNER = "partner"


@dataclass(frozen=True, slots=True)
class SessionClaims:
    user_id: int
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class PartnerClaims:
    partner_id: int
    expires_at: datetime


def _issue_token(
    *,
    subject_id: int,
    token_type: str,
    secret: str,
    ttl: timedelta,
    now_utc: datetime | None,
) -> tuple[str, datetime]:
    issued_at = now_utc or datetime.now(timezone.utc)
    expires_at = issued_at + ttl
    payload = {
        "sub": str(subject_id),
        "type": token_type,
        "iat": issued_at,
        "exp": expires_at,
    }
    return jwt.encode(payload, secret, algorithm=TOKEN_ALGORITHM), expires_at


def _decode_subject(token: str, *, secret: str, token_type: str) -> tuple[int, datetime] | None:
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[TOKEN_ALGORITHM],
            options={"require": ["sub", "exp", "type"]},
        )
    except jwt.PyJWTError:
        return None

    if payload.get("type") != token_type:
        return None
    try:
        subject_id = int(payload["sub"])
    except (TypeError, ValueError):
        return None
    return subject_id, datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)


def issue_shopper_token(
    *,
    user_id: int,
    secret: str,
    ttl: timedelta,
    now_utc: datetime | None = None,
) -> tuple[str, datetime]:
    return _issue_token(
        subject_id=user_id,
        token_type=TOKEN_TYPE_SHOPPER,
        secret=secret,
        ttl=ttl,
        now_utc=now_utc,
    )


def decode_shopper_token(token: str, *, secret: str) -> SessionClaims | None:
    decoded = _decode_subject(token, secret=secret, token_type=TOKEN_TYPE_SHOPPER)
    if decoded is None:
        return None
    user_id, expires_at = decoded
    return SessionClaims(user_id=user_id, expires_at=expires_at)


def issue_partner_token(
    *,
    partner_id: int,
    secret: str,
    ttl: timedelta,
    now_utc: datetime | None = None,
) -> tuple[str, datetime]:
    return _issue_token(
        subject_id=partner_id,
        token_type=TOKEN_TYPE_PARTNER,
        secret=secret,
        ttl=ttl,
        now_utc=now_utc,
    )


def decode_partner_token(token: str, *, secret: str) -> PartnerClaims | None:
    decoded = _decode_subject(token, secret=secret, token_type=TOKEN_TYPE_PARTNER)
    if decoded is None:
        return None
    partner_id, expires_at = decoded
    return PartnerClaims(partner_id=partner_id, expires_at=expires_at)
