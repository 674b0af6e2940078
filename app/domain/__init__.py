"""Domain package: all ORM models are imported here so Alembic autogenerate detects them.

Folder intent:
  company.py         Company, User, UserCompanyAccess (identity and tenancy)
  two_factor.py      Per-user TOTP secret, backup codes and lockout state
  password_reset.py  Single-use password reset tokens
  vehicle.py         Gate-pass vehicle entries
  customer_visit.py  Customer visits with expense line items
  stock_movement.py  Inventory ledger entries
  audit.py           Immutable audit trail (never updated or deleted)
  mixins.py          Shared IdMixin, TimestampMixin, TenantMixin
"""

from app.domain.audit import AuditTrail
from app.domain.company import Company, User, UserCompanyAccess
from app.domain.customer_visit import CustomerVisit
from app.domain.password_reset import PasswordResetToken
from app.domain.stock_movement import StockMovement
from app.domain.two_factor import TwoFactor
from app.domain.vehicle import Vehicle

__all__ = [
    "AuditTrail",
    "Company",
    "CustomerVisit",
    "PasswordResetToken",
    "StockMovement",
    "TwoFactor",
    "User",
    "UserCompanyAccess",
    "Vehicle",
]
