from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import HTTPException, Request

from drc_loyalty.core.config import get_settings
from drc_loyalty.services.internal_auth import (
    INTERNAL_TOKEN_HEADER,
    extract_client_ip,
    extract_internal_actor,
    is_client_ip_allowed,
    is_valid_internal_token,
)
from drc_loyalty.services.session_tokens import decode_partner_token, decode_shopper_token

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _bearer_token(request: Request) -> str:
    scheme, _, token = (request.headers.get("Authorization") or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHORIZED"})
    return token.strip()


def require_shopper_user_id(request: Request) -> int:
    claims = decode_shopper_token(_bearer_token(request), secret=get_settings().auth_token_secret)
    if claims is None:
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHORIZED"})
    return claims.user_id


def require_partner_id(request: Request) -> int:
    claims = decode_partner_token(_bearer_token(request), secret=get_settings().auth_token_secret)
    if claims is None:
        raise HTTPException(status_code=401, detail={"code": "E_UNAUTHORIZED"})
    return claims.partner_id


def require_internal_actor(request: Request) -> str:
    settings = get_settings()
    client_ip = extract_client_ip(
        request,
        trusted_proxies=getattr(settings, "internal_api_trusted_proxies", ""),
    )

    if not is_client_ip_allowed(client_ip=client_ip, allowlist=settings.internal_api_allowlist):
        logger.warning("internal_auth_failed", reason="ip_not_allowed", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    if not is_valid_internal_token(
        expected_token=settings.internal_api_token,
        received_token=request.headers.get(INTERNAL_TOKEN_HEADER),
    ):
        logger.warning("internal_auth_failed", reason="invalid_credentials", client_ip=client_ip)
        raise HTTPException(status_code=403, detail={"code": "E_FORBIDDEN"})

    return extract_internal_actor(request)
