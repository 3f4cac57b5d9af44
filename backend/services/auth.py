from __future__ import annotations

from datetime import datetime, timedelta

import jwt
from fastapi import Header, HTTPException, status

from config.app_config import load_app_config
from services.errors import AuthError
from util.jsonlog import get_logger, log_event
from util.time import utcnow


logger = get_logger("auth")

JWT_ALGORITHM = "HS256"
_DEV_SECRET = "my_jwt_secret"


def issue_token(
    username: str,
    *,
    secret: str | None = None,
    ttl_minutes: int | None = None,
    now: datetime | None = None,
) -> str:
    cfg = load_app_config()
    now = now or utcnow()
    ttl = ttl_minutes if ttl_minutes is not None else cfg.token_ttl_minutes()
    claims = {
        "username": username,
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
    }
    return jwt.encode(claims, secret or cfg.jwt_secret(), algorithm=JWT_ALGORITHM)


def decode_token(token: str, *, secret: str | None = None) -> str:
    """Return the username carried by a valid, unexpired token."""
    try:
        claims = jwt.decode(
            token,
            secret or load_app_config().jwt_secret(),
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "username"]},
        )
    except jwt.PyJWTError as e:
        raise AuthError("Invalid token") from e

    username = claims.get("username")
    if not isinstance(username, str) or not username:
        raise AuthError("Invalid token")
    return username


def require_owner(
    authorization: str | None = Header(default=None),
) -> str:
    """
    Resolve the caller's identity from "Authorization: Bearer <token>".

    Behavior:
    - no header -> 401 "No authorization header"
    - malformed, bad signature or expired -> 401 "Invalid token"
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No authorization header",
        )

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    try:
        return decode_token(token.strip())
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )


def validate_auth_config_on_startup() -> None:
    """Warn loudly when running with the development signing secret."""
    if load_app_config().jwt_secret() == _DEV_SECRET:
        log_event(
            logger,
            level="WARNING",
            event="auth_dev_secret",
            msg="JWT_SECRET is not set; using the development secret",
        )
