from __future__ import annotations

import jwt
import pytest

from app.core.config import settings
from app.core.security import (
    ACCESS_TOKEN,
    REFRESH_TOKEN,
    TEMP_2FA_TOKEN,
    create_access_token,
    create_refresh_token,
    create_temp_2fa_token,
    decode_token,
    hash_password,
    verify_password,
)


def test_password_hash_roundtrip():
    hashed = hash_password("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_verify_password_rejects_garbage_hash():
    assert not verify_password("anything", "not-a-bcrypt-hash")
    assert not verify_password("anything", None)


def test_access_token_claims():
    token = create_access_token(
        user_id="u1",
        username="alice",
        email="alice@example.com",
        company_id="c1",
        role="owner",
        is_super_admin=False,
    )
    claims = decode_token(token)
    assert claims["userId"] == "u1"
    assert claims["companyId"] == "c1"
    assert claims["role"] == "owner"
    assert claims["isSuperAdmin"] is False
    assert claims["type"] == ACCESS_TOKEN
    assert claims["iss"] == settings.jwt_issuer
    assert claims["aud"] == settings.jwt_audience


def test_refresh_token_uses_its_own_secret():
    token, jti = create_refresh_token("u1")
    claims = decode_token(token, REFRESH_TOKEN)
    assert claims["jti"] == jti
    # Signed with the refresh secret, so the access path cannot read it
    with pytest.raises(jwt.InvalidTokenError):
        decode_token(token, ACCESS_TOKEN)


def test_token_type_is_enforced():
    temp = create_temp_2fa_token("u1")
    assert decode_token(temp, TEMP_2FA_TOKEN)["userId"] == "u1"
    with pytest.raises(jwt.InvalidTokenError, match="Invalid token type"):
        decode_token(temp, ACCESS_TOKEN)


def test_expired_token_raises(monkeypatch):
    monkeypatch.setattr(settings, "jwt_access_expire_minutes", -1)
    token = create_access_token(
        user_id="u1", username="a", email="a@example.com", company_id=None, role="user"
    )
    with pytest.raises(jwt.ExpiredSignatureError):
        decode_token(token)
