"""Super-admin management of other users' two-factor authentication.

Every action is written to the audit trail under entity_type "two_factor";
the 2FA audit log endpoint reads those rows back.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.domain.audit import AuditTrail
from app.domain.company import User
from app.domain.mixins import utcnow
from app.repositories.audit import AuditRepository
from app.repositories.two_factor import TwoFactorRepository
from app.repositories.user import UserRepository
from app.services.two_factor import RESET_SECRET_LENGTH, generate_backup_codes, generate_secret

logger = logging.getLogger(__name__)

AUDIT_ENTITY = "two_factor"


class AdminTwoFactorService:
    def __init__(self, session: AsyncSession, admin_id: str):
        self._admin_id = admin_id
        self._users = UserRepository(session)
        self._repo = TwoFactorRepository(session)
        self._audit = AuditRepository(session)

    async def _target(self, user_id: str) -> User:
        user = await self._users.get_by_id(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    async def _record(self, action: str, user: User, description: str) -> None:
        await self._audit.record(
            action=action,
            entity_type=AUDIT_ENTITY,
            entity_id=user.id,
            user_id=self._admin_id,
            description=description,
        )
        logger.warning("Admin %s: %s (user %s)", self._admin_id, description, user.username)

    async def list_status(self) -> dict:
        users, _ = await self._users.list(offset=0, limit=10_000, order_by="username", order="asc")
        records = await self._repo.for_users([u.id for u in users])

        rows = []
        for user in users:
            record = records.get(user.id)
            rows.append(
                {
                    "id": user.id,
                    "username": user.username,
                    "email": user.email,
                    "full_name": user.full_name,
                    "is_super_admin": user.is_super_admin,
                    "is_active": user.is_active,
                    "two_factor_enabled": bool(record and record.is_enabled),
                    "two_factor_setup_at": record.setup_at if record else None,
                    "two_factor_last_used": record.last_used_at if record else None,
                    "backup_codes_remaining": record.unused_backup_codes if record else 0,
                }
            )

        total = len(rows)
        enabled = sum(1 for r in rows if r["two_factor_enabled"])
        return {
            "users": rows,
            "stats": {
                "total_users": total,
                "two_factor_enabled": enabled,
                "two_factor_disabled": total - enabled,
                "adoption_rate": round(enabled / total * 100) if total else 0,
            },
        }

    async def enable(self, user_id: str) -> dict:
        user = await self._target(user_id)
        record = await self._repo.get_for_user(user_id)
        if record and record.is_enabled:
            raise ValidationError("2FA is already enabled for this user")

        plain, stored = generate_backup_codes()
        now = utcnow()
        if record is None:
            await self._repo.create(
                user_id=user_id,
                secret=generate_secret(),
                is_enabled=True,
                setup_at=now,
                enabled_at=now,
                backup_codes=stored,
            )
        else:
            record.is_enabled = True
            record.enabled_at = now
            record.disabled_at = None
            record.backup_codes = stored
            record.failed_attempts = 0
            record.locked_until = None
            await self._repo.save(record)

        await self._record("enable", user, "2FA enabled by administrator")
        return {"backup_codes": plain}

    async def disable(self, user_id: str) -> None:
        user = await self._target(user_id)
        record = await self._repo.get_for_user(user_id)
        if record is None or not record.is_enabled:
            raise ValidationError("2FA is not enabled for this user")

        record.is_enabled = False
        record.disabled_at = utcnow()
        record.backup_codes = []
        await self._repo.save(record)
        await self._record("disable", user, "2FA disabled by administrator")

    async def force_disable(self, user_id: str) -> None:
        user = await self._target(user_id)
        record = await self._repo.get_for_user(user_id)
        if record is None:
            raise ValidationError("2FA is not set up for this user")

        await self._repo.delete(record)
        await self._record("force_disable", user, "2FA record removed by administrator")

    async def reset(self, user_id: str) -> dict:
        user = await self._target(user_id)
        plain, stored = generate_backup_codes()
        secret = generate_secret(RESET_SECRET_LENGTH)
        now = utcnow()

        record = await self._repo.get_for_user(user_id)
        if record is None:
            await self._repo.create(
                user_id=user_id, secret=secret, is_enabled=False, setup_at=now, backup_codes=stored
            )
        else:
            record.secret = secret
            record.is_enabled = False
            record.setup_at = now
            record.enabled_at = None
            record.backup_codes = stored
            record.failed_attempts = 0
            record.locked_until = None
            await self._repo.save(record)

        await self._record("reset", user, "2FA reset by administrator")
        return {"backup_codes": plain}

    async def audit_log(self, offset: int, limit: int) -> tuple[list[AuditTrail], int]:
        return await self._audit.list(
            offset=offset,
            limit=limit,
            order_by="created_at",
            order="desc",
            filters={"entity_type": AUDIT_ENTITY},
        )
