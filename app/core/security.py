"""Password hashing (bcrypt) and JWT helpers (PyJWT)."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt

from app.core.config import settings

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"
TEMP_2FA_TOKEN = "temp_2fa"
TWO_FACTOR_RESET_TOKEN = "2fa_reset"

TEMP_2FA_EXPIRE_MINUTES = 10


# ── Passwords ─────────────────────────────────────────────

def hash_password(plain: str, rounds: int | None = None) -> str:
    """Hash a password (or backup code) with bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_salt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


# ── Tokens ────────────────────────────────────────────────

def _encode(claims: dict[str, Any], expires: timedelta, secret: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": now,
        "exp": now + expires,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def create_access_token(
    *,
    user_id: str,
    username: str,
    email: str,
    company_id: str | None,
    role: str,
    is_super_admin: bool = False,
) -> str:
    return _encode(
        {
            "userId": user_id,
            "username": username,
            "email": email,
            "companyId": company_id,
            "role": role,
            "isSuperAdmin": is_super_admin,
            "type": ACCESS_TOKEN,
        },
        timedelta(minutes=settings.jwt_access_expire_minutes),
        settings.jwt_secret,
    )


def create_refresh_token(user_id: str) -> tuple[str, str]:
    """Return (token, jti). The jti is stored on the user so logout can revoke it."""
    jti = str(uuid.uuid4())
    token = _encode(
        {"userId": user_id, "type": REFRESH_TOKEN, "jti": jti},
        timedelta(days=settings.jwt_refresh_expire_days),
        settings.jwt_refresh_secret,
    )
    return token, jti


def create_temp_2fa_token(user_id: str) -> str:
    return _encode(
        {"userId": user_id, "type": TEMP_2FA_TOKEN},
        timedelta(minutes=TEMP_2FA_EXPIRE_MINUTES),
        settings.jwt_secret,
    )


def create_2fa_reset_token(user_id: str) -> str:
    return _encode(
        {"userId": user_id, "type": TWO_FACTOR_RESET_TOKEN},
        timedelta(hours=1),
        settings.jwt_secret,
    )


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> dict[str, Any]:
    """Decode and validate a token.

    Raises ``jwt.ExpiredSignatureError`` / ``jwt.InvalidTokenError``; the
    global exception handlers turn those into 401 responses.
    """
    secret = settings.jwt_refresh_secret if expected_type == REFRESH_TOKEN else settings.jwt_secret
    payload = jwt.decode(
        token,
        secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError("Invalid token type")
    return payload
