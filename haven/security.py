"""Password hashing, signed tokens, and client/device helpers."""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from haven.config import settings
from haven.errors import Unauthorized

SESSION_TOKEN = "session"
VERIFY_EMAIL_TOKEN = "verify-email"

_MOBILE_MARKERS = ("android", "iphone", "ipad", "mobile")


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str | None) -> bool:
    encoded = password.encode("utf-8")
    # Nothing longer than 72 bytes can have been hashed.
    if not hashed or len(encoded) > 72:
        return False
    return bcrypt.checkpw(encoded, hashed.encode("utf-8"))


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

def create_token(user_id: int, purpose: str, ttl: timedelta) -> str:
    """Return an HS256 JWT for *user_id* valid for *ttl*."""
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "jti": uuid.uuid4().hex,
        "type": purpose,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, purpose: str) -> dict[str, Any]:
    """
    Decode *token* and check that it was issued for *purpose*.

    Raises ``Unauthorized`` for expired, malformed or mis-typed tokens.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as exc:
        raise Unauthorized("token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise Unauthorized("invalid token") from exc

    if payload.get("type") != purpose or not str(payload.get("sub", "")).isdigit():
        raise Unauthorized("invalid token")
    return payload


# ---------------------------------------------------------------------------
# Devices
# ---------------------------------------------------------------------------

def device_platform(user_agent: str | None) -> str:
    """Classify a User-Agent string as ``"mobile"`` or ``"web"``."""
    agent = (user_agent or "").lower()
    if any(marker in agent for marker in _MOBILE_MARKERS):
        return "mobile"
    return "web"


def session_ttl(platform: str) -> timedelta:
    if platform == "mobile":
        return timedelta(days=settings.SESSION_TTL_MOBILE_DAYS)
    return timedelta(hours=settings.SESSION_TTL_WEB_HOURS)
