from __future__ import annotations

from datetime import timedelta

import pytest

from app.core.exceptions import ValidationError
from app.core.security import verify_password
from app.domain.mixins import utcnow
from app.repositories.password_reset import PasswordResetTokenRepository
from app.repositories.user import UserRepository
from app.services.password_reset import PasswordResetService


async def test_token_is_64_hex_and_replaces_previous(session, tenant):
    service = PasswordResetService(session)
    first = await service.create_reset_token(tenant.user.id, tenant.company.id, "ALICE@example.com")
    second = await service.create_reset_token(tenant.user.id, tenant.company.id, "alice@example.com")

    assert len(second.token) == 64
    int(second.token, 16)
    assert second.email == "alice@example.com"
    assert await service.verify_token(first.token) is None
    assert (await service.verify_token(second.token)).id == second.id


async def test_expired_and_used_tokens_are_invalid(session, tenant):
    service = PasswordResetService(session)
    row = await service.create_reset_token(tenant.user.id, tenant.company.id, tenant.user.email)

    await service.mark_as_used(row.token)
    assert await service.verify_token(row.token) is None

    row = await service.create_reset_token(tenant.user.id, tenant.company.id, tenant.user.email)
    row.expires_at = utcnow() - timedelta(minutes=1)
    await session.flush()
    assert row.is_expired
    assert await service.verify_token(row.token) is None


async def test_cleanup_removes_expired_and_old_used(session, make_tenant):
    alice = await make_tenant("alice")
    bob = await make_tenant("bob")
    carol = await make_tenant("carol")
    service = PasswordResetService(session)

    expired = await service.create_reset_token(alice.user.id, alice.company.id, alice.user.email)
    expired.expires_at = utcnow() - timedelta(hours=2)
    old_used = await service.create_reset_token(bob.user.id, bob.company.id, bob.user.email)
    old_used.used = True
    old_used.used_at = utcnow() - timedelta(hours=25)
    fresh = await service.create_reset_token(carol.user.id, carol.company.id, carol.user.email)
    await session.flush()

    assert await service.cleanup_expired() == 2
    remaining = await PasswordResetTokenRepository(session).find_all()
    assert [r.id for r in remaining] == [fresh.id]


async def test_request_reset_unknown_email_returns_none(session, tenant):
    assert await PasswordResetService(session).request_reset("nobody@example.com") is None


async def test_reset_password_flow(session, tenant):
    service = PasswordResetService(session)
    row = await service.request_reset("Alice@Example.com", ip_address="10.0.0.1", user_agent="pytest")
    assert row is not None
    assert row.company_id == tenant.company.id
    assert row.ip_address == "10.0.0.1"

    users = UserRepository(session)
    user = await users.get_by_id(tenant.user.id)
    user.failed_login_attempts = 4
    await session.flush()

    await service.reset_password(row.token, "brand-new-password")

    user = await users.get_by_id(tenant.user.id)
    assert verify_password("brand-new-password", user.password_hash)
    assert user.failed_login_attempts == 0
    assert user.locked_until is None

    with pytest.raises(ValidationError, match="Invalid or expired reset token"):
        await service.reset_password(row.token, "another-password")


async def test_reset_password_enforces_min_length(session, tenant):
    service = PasswordResetService(session)
    row = await service.request_reset(tenant.user.email)
    with pytest.raises(ValidationError, match="at least 8"):
        await service.reset_password(row.token, "short")
