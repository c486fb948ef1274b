from __future__ import annotations

import base64
import json
from typing import Any, Dict, Optional

import jwt
import structlog
from fastapi import HTTPException, Request

from account_backend.core.settings import S

log = structlog.get_logger(__name__)


def _jwt_enabled() -> bool:
    return bool(S.jwt_secret)


def warn_if_unverified() -> bool:
    """Log once at startup when identities are accepted without verification."""
    if _jwt_enabled():
        return False
    log.warning("jwt_verification_disabled", trusted=["x-user-id", "unverified bearer sub"])
    return True


def _decode_access_token(token: str) -> Dict[str, Any]:
    options = {"require": ["exp", "sub"], "verify_aud": bool(S.jwt_audience)}
    try:
        return jwt.decode(
            token,
            S.jwt_secret,
            algorithms=[S.jwt_algorithm],
            audience=S.jwt_audience or None,
            issuer=S.jwt_issuer or None,
            options=options,
        )
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(401, "Token expired") from exc
    except jwt.PyJWTError as exc:
        raise HTTPException(401, "Invalid token") from exc


def _decode_jwt_sub(token: str) -> Optional[str]:
    if token.count(".") != 2:
        return None
    _, payload, _ = token.split(".", 2)
    if not payload:
        return None
    padding = "=" * (-len(payload) % 4)
    try:
        data = json.loads(base64.urlsafe_b64decode(payload + padding).decode("utf-8"))
    except (ValueError, UnicodeDecodeError):
        return None
    sub = data.get("sub") if isinstance(data, dict) else None
    return sub if isinstance(sub, str) and sub.strip() else None


def extract_bearer_token(auth_header: Optional[str]) -> str:
    if not auth_header:
        raise HTTPException(401, "Missing Authorization header")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(401, "Invalid Authorization header")
    return token.strip()


async def get_authenticated_user_id(request: Request) -> str:
    """
    Resolve the caller's user id.

    With JWT_SECRET set, a verified bearer token is required and its ``sub``
    is the user id. Without it (development), ``X-User-Id`` is trusted, then
    the bearer token's unverified ``sub``, then the raw bearer token.
    """
    if _jwt_enabled():
        token = extract_bearer_token(request.headers.get("authorization"))
        sub = _decode_access_token(token).get("sub")
        if not isinstance(sub, str) or not sub.strip():
            raise HTTPException(401, "Token missing subject")
        return sub

    fallback_user = request.headers.get("x-user-id")
    if fallback_user:
        return fallback_user

    token = extract_bearer_token(request.headers.get("authorization"))
    return _decode_jwt_sub(token) or token
