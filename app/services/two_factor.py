"""Two-factor authentication: TOTP secrets, QR codes, backup codes, lockout.

pyotp does the TOTP math, qrcode renders the provisioning URI and bcrypt
hashes backup codes. This module only owns the bookkeeping around them:
the failed-attempt counter, the time-boxed lock and backup-code consumption.
"""

import base64
import io
import logging
import secrets
import string
from datetime import timedelta

import pyotp
import qrcode
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AccountLockedError, NotFoundError, ValidationError
from app.core.security import hash_password, verify_password
from app.domain.mixins import utcnow
from app.domain.two_factor import TwoFactor
from app.repositories.audit import AuditRepository
from app.repositories.two_factor import TwoFactorRepository
from app.repositories.user import UserRepository

logger = logging.getLogger(__name__)

ISSUER = "ERP System"
TOTP_WINDOW = 2
BACKUP_CODE_COUNT = 10
_BACKUP_ALPHABET = string.ascii_uppercase + string.digits
MAX_FAILED_ATTEMPTS = 5
LOCKOUT = timedelta(minutes=15)

# base32 lengths: 32 chars = 20 bytes, 52 chars = 32 bytes
SECRET_LENGTH = 32
RESET_SECRET_LENGTH = 52


def generate_secret(length: int = SECRET_LENGTH) -> str:
    return pyotp.random_base32(length=length)


def provisioning_uri(secret: str, email: str) -> str:
    return pyotp.TOTP(secret).provisioning_uri(name=f"ERP ({email})", issuer_name=ISSUER)


def qr_code_data_url(uri: str) -> str:
    """Render a provisioning URI as a PNG data URL; empty string on failure."""
    try:
        img = qrcode.make(uri)
        buf = io.BytesIO()
        img.save(buf, format="PNG")
    except (OSError, ValueError) as exc:
        logger.warning("QR code generation failed: %s", exc)
        return ""
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def verify_totp(secret: str, token: str) -> bool:
    return pyotp.TOTP(secret).verify(str(token).strip(), valid_window=TOTP_WINDOW)


def generate_backup_codes(count: int = BACKUP_CODE_COUNT) -> tuple[list[str], list[dict]]:
    """Return (plain_codes, stored_entries). Plain codes are shown exactly once."""
    plain = ["".join(secrets.choice(_BACKUP_ALPHABET) for _ in range(8)) for _ in range(count)]
    stored = [{"code_hash": hash_password(code), "used": False, "used_at": None} for code in plain]
    return plain, stored


class TwoFactorService:
    def __init__(self, session: AsyncSession):
        self._repo = TwoFactorRepository(session)
        self._users = UserRepository(session)
        self._audit = AuditRepository(session)

    async def _audit_event(self, user_id: str, action: str, description: str) -> None:
        await self._audit.record(
            action=action,
            entity_type="two_factor",
            entity_id=user_id,
            user_id=user_id,
            description=description,
        )

    async def _get_user(self, user_id: str):
        user = await self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    # ------------------------------------------------------------------
    # Setup / enable / disable
    # ------------------------------------------------------------------

    async def setup(self, user_id: str) -> dict:
        user = await self._get_user(user_id)
        secret = generate_secret()
        now = utcnow()

        record = await self._repo.get_for_user(user_id)
        if record is None:
            await self._repo.create(user_id=user_id, secret=secret, is_enabled=False, setup_at=now)
        else:
            record.secret = secret
            record.is_enabled = False
            record.setup_at = now
            record.backup_codes = []
            record.failed_attempts = 0
            record.locked_until = None
            await self._repo.save(record)

        logger.info("2FA setup started for user %s", user_id)
        return {
            "secret": secret,
            "qr_code_url": qr_code_data_url(provisioning_uri(secret, user.email)),
            "backup_codes": [],
        }

    async def enable(self, user_id: str, token: str) -> dict:
        record = await self._repo.get_for_user(user_id)
        if record is None:
            raise ValidationError("2FA not set up. Please set up 2FA first.")
        if record.is_enabled:
            raise ValidationError("2FA is already enabled")
        if not verify_totp(record.secret, token):
            raise ValidationError("Invalid verification code")

        plain, stored = generate_backup_codes()
        record.is_enabled = True
        record.enabled_at = utcnow()
        record.disabled_at = None
        record.backup_codes = stored
        record.failed_attempts = 0
        record.locked_until = None
        await self._repo.save(record)

        logger.warning("2FA enabled for user %s", user_id)
        await self._audit_event(user_id, "enable", "2FA enabled by user")
        return {"backup_codes": plain}

    async def disable(self, user_id: str, password: str, token: str | None = None) -> None:
        user = await self._get_user(user_id)
        if not verify_password(password, user.password_hash):
            raise ValidationError("Invalid password")

        record = await self._repo.get_for_user(user_id)
        if record is None or not record.is_enabled:
            raise ValidationError("2FA is not enabled")
        if token and not await self.verify_token(user_id, token):
            raise ValidationError("Invalid 2FA token")

        record.is_enabled = False
        record.disabled_at = utcnow()
        record.backup_codes = []
        await self._repo.save(record)
        logger.warning("2FA disabled for user %s", user_id)
        await self._audit_event(user_id, "disable", "2FA disabled by user")

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    async def verify_token(self, user_id: str, token: str, is_backup_code: bool = False) -> bool:
        """Check a TOTP token or backup code, tracking failures.

        Five consecutive failures lock verification for 15 minutes; while
        locked every call raises :class:`AccountLockedError`.
        """
        record = await self._repo.get_for_user(user_id)
        if record is None or not record.is_enabled:
            return False
        if record.is_locked:
            raise AccountLockedError()

        verified = (
            self._consume_backup_code(record, token)
            if is_backup_code
            else verify_totp(record.secret, token)
        )

        if verified:
            record.failed_attempts = 0
            record.locked_until = None
            record.last_used_at = utcnow()
        else:
            record.failed_attempts = (record.failed_attempts or 0) + 1
            if record.failed_attempts >= MAX_FAILED_ATTEMPTS:
                record.locked_until = utcnow() + LOCKOUT
                logger.warning(
                    "2FA locked for user %s after %s failed attempts",
                    user_id, record.failed_attempts,
                )
                await self._audit_event(user_id, "locked", "2FA verification locked for 15 minutes")
        await self._repo.save(record)
        # Failure counters must survive the 401 the caller is about to raise
        await self._repo.commit()
        return verified

    @staticmethod
    def _consume_backup_code(record: TwoFactor, code: str) -> bool:
        code = str(code).strip().upper()
        codes = [dict(c) for c in record.backup_codes or []]
        for entry in codes:
            if not entry.get("used") and verify_password(code, entry.get("code_hash")):
                entry["used"] = True
                entry["used_at"] = utcnow().isoformat()
                # Reassign so the JSON column is flagged dirty
                record.backup_codes = codes
                return True
        return False

    # ------------------------------------------------------------------
    # Status / backup codes / helpers
    # ------------------------------------------------------------------

    async def get_status(self, user_id: str) -> dict:
        record = await self._repo.get_for_user(user_id)
        if record is None:
            return {"is_enabled": False, "backup_codes_remaining": 0, "last_used": None}
        return {
            "is_enabled": record.is_enabled,
            "backup_codes_remaining": record.unused_backup_codes,
            "last_used": record.last_used_at,
        }

    async def regenerate_backup_codes(self, user_id: str, password: str) -> dict:
        user = await self._get_user(user_id)
        if not verify_password(password, user.password_hash):
            raise ValidationError("Invalid password")

        record = await self._repo.get_for_user(user_id)
        if record is None or not record.is_enabled:
            raise ValidationError("2FA is not enabled")

        plain, stored = generate_backup_codes()
        record.backup_codes = stored
        await self._repo.save(record)
        logger.info("Backup codes regenerated for user %s", user_id)
        return {"backup_codes": plain}

    @staticmethod
    def test_token(secret: str, token: str) -> dict:
        verified = verify_totp(secret, token)
        return {
            "verified": verified,
            "message": "Token verified successfully" if verified else "Invalid token",
        }

    async def is_enabled_for(self, user_id: str) -> bool:
        record = await self._repo.get_for_user(user_id)
        return bool(record and record.is_enabled)
