from __future__ import annotations

import re
from datetime import timedelta

import pyotp
import pytest

from app.core.exceptions import AccountLockedError, ValidationError
from app.core.security import verify_password
from app.domain.mixins import utcnow
from app.repositories.two_factor import TwoFactorRepository
from app.services.admin_two_factor import AdminTwoFactorService
from app.services.two_factor import (
    BACKUP_CODE_COUNT,
    TwoFactorService,
    generate_backup_codes,
    generate_secret,
    qr_code_data_url,
)
from tests.conftest import PASSWORD


def test_secret_is_base32_of_expected_length():
    secret = generate_secret()
    assert len(secret) == 32
    assert pyotp.TOTP(secret).now()


def test_backup_codes_are_hashed():
    plain, stored = generate_backup_codes()
    assert len(plain) == BACKUP_CODE_COUNT == len(stored)
    assert all(re.fullmatch(r"[A-Z0-9]{8}", c) for c in plain)
    # base-36, not just hex digits
    assert set("".join(generate_backup_codes(200)[0])) - set("0123456789ABCDEF")
    assert verify_password(plain[0], stored[0]["code_hash"])
    assert stored[0]["used"] is False


def test_qr_code_is_png_data_url():
    assert qr_code_data_url("otpauth://totp/ERP?secret=ABC").startswith("data:image/png;base64,")


async def _enabled(session, user_id: str) -> tuple[TwoFactorService, str, list[str]]:
    service = TwoFactorService(session)
    setup = await service.setup(user_id)
    codes = await service.enable(user_id, pyotp.TOTP(setup["secret"]).now())
    return service, setup["secret"], codes["backup_codes"]


async def test_setup_then_enable(session, tenant):
    service = TwoFactorService(session)
    setup = await service.setup(tenant.user.id)
    assert setup["backup_codes"] == []
    assert setup["qr_code_url"].startswith("data:image/png")
    assert not await service.is_enabled_for(tenant.user.id)

    with pytest.raises(ValidationError, match="Invalid verification code"):
        await service.enable(tenant.user.id, "000000")

    result = await service.enable(tenant.user.id, pyotp.TOTP(setup["secret"]).now())
    assert len(result["backup_codes"]) == 10
    assert await service.is_enabled_for(tenant.user.id)

    status = await service.get_status(tenant.user.id)
    assert status["is_enabled"] is True
    assert status["backup_codes_remaining"] == 10


async def test_enable_requires_setup(session, tenant):
    with pytest.raises(ValidationError, match="not set up"):
        await TwoFactorService(session).enable(tenant.user.id, "123456")


async def test_enable_twice_rejected(session, tenant):
    service, secret, _ = await _enabled(session, tenant.user.id)
    with pytest.raises(ValidationError, match="already enabled"):
        await service.enable(tenant.user.id, pyotp.TOTP(secret).now())


async def test_backup_code_is_single_use(session, tenant):
    service, _, codes = await _enabled(session, tenant.user.id)

    assert await service.verify_token(tenant.user.id, codes[0].lower(), is_backup_code=True)
    assert not await service.verify_token(tenant.user.id, codes[0], is_backup_code=True)

    status = await service.get_status(tenant.user.id)
    assert status["backup_codes_remaining"] == 9
    assert status["last_used"] is not None


async def test_five_failures_lock_verification(session, tenant):
    service, secret, _ = await _enabled(session, tenant.user.id)

    for _ in range(5):
        assert not await service.verify_token(tenant.user.id, "000000")

    record = await TwoFactorRepository(session).get_for_user(tenant.user.id)
    assert record.failed_attempts == 5
    assert record.is_locked

    # Even a valid token is refused while locked
    with pytest.raises(AccountLockedError):
        await service.verify_token(tenant.user.id, pyotp.TOTP(secret).now())


async def test_lock_expires(session, tenant):
    service, secret, _ = await _enabled(session, tenant.user.id)
    record = await TwoFactorRepository(session).get_for_user(tenant.user.id)
    record.failed_attempts = 5
    record.locked_until = utcnow() - timedelta(seconds=1)
    await session.flush()

    assert await service.verify_token(tenant.user.id, pyotp.TOTP(secret).now())
    record = await TwoFactorRepository(session).get_for_user(tenant.user.id)
    assert record.failed_attempts == 0
    assert record.locked_until is None


async def test_verify_when_not_enabled_is_false(session, tenant):
    assert not await TwoFactorService(session).verify_token(tenant.user.id, "123456")


async def test_disable_checks_password_and_token(session, tenant):
    service, secret, _ = await _enabled(session, tenant.user.id)

    with pytest.raises(ValidationError, match="Invalid password"):
        await service.disable(tenant.user.id, "wrong")
    with pytest.raises(ValidationError, match="Invalid 2FA token"):
        await service.disable(tenant.user.id, PASSWORD, "000000")

    await service.disable(tenant.user.id, PASSWORD, pyotp.TOTP(secret).now())
    status = await service.get_status(tenant.user.id)
    assert status["is_enabled"] is False
    assert status["backup_codes_remaining"] == 0
    assert status["last_used"] is not None

    with pytest.raises(ValidationError, match="2FA is not enabled"):
        await service.disable(tenant.user.id, PASSWORD)


async def test_disable_counts_failures_and_honours_lock(session, tenant):
    service, secret, _ = await _enabled(session, tenant.user.id)

    for _ in range(5):
        with pytest.raises(ValidationError, match="Invalid 2FA token"):
            await service.disable(tenant.user.id, PASSWORD, "000000")

    record = await TwoFactorRepository(session).get_for_user(tenant.user.id)
    assert record.failed_attempts == 5
    assert record.is_locked

    with pytest.raises(AccountLockedError):
        await service.disable(tenant.user.id, PASSWORD, pyotp.TOTP(secret).now())
    assert (await service.get_status(tenant.user.id))["is_enabled"] is True


async def test_regenerate_backup_codes(session, tenant):
    service, _, old_codes = await _enabled(session, tenant.user.id)
    new = await service.regenerate_backup_codes(tenant.user.id, PASSWORD)
    assert set(new["backup_codes"]).isdisjoint(old_codes)
    assert not await service.verify_token(tenant.user.id, old_codes[0], is_backup_code=True)


def test_test_token_messages():
    secret = generate_secret()
    ok = TwoFactorService.test_token(secret, pyotp.TOTP(secret).now())
    assert ok == {"verified": True, "message": "Token verified successfully"}
    assert TwoFactorService.test_token(secret, "000000")["message"] == "Invalid token"


async def test_admin_actions_and_audit_log(session, make_tenant):
    admin = await make_tenant("root", is_super_admin=True)
    target = await make_tenant("bob", role="user")
    service = AdminTwoFactorService(session, admin.user.id)

    enabled = await service.enable(target.user.id)
    assert len(enabled["backup_codes"]) == 10
    with pytest.raises(ValidationError, match="already enabled for this user"):
        await service.enable(target.user.id)

    status = await service.list_status()
    assert status["stats"]["total_users"] == 2
    assert status["stats"]["two_factor_enabled"] == 1
    assert status["stats"]["adoption_rate"] == 50

    reset = await service.reset(target.user.id)
    assert len(reset["backup_codes"]) == 10
    record = await TwoFactorRepository(session).get_for_user(target.user.id)
    assert record.is_enabled is False
    assert len(record.secret) == 52

    with pytest.raises(ValidationError, match="2FA is not enabled for this user"):
        await service.disable(target.user.id)

    await service.force_disable(target.user.id)
    assert await TwoFactorRepository(session).get_for_user(target.user.id) is None
    with pytest.raises(ValidationError, match="not set up for this user"):
        await service.force_disable(target.user.id)

    entries, total = await service.audit_log(0, 20)
    assert total == 3
    assert {e.action for e in entries} == {"enable", "reset", "force_disable"}
    assert all(e.user_id == admin.user.id for e in entries)
