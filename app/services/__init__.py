"""Services package: all business logic lives here, never in routers.

Files:
  auth.py              registration, login with lockout, token issue and refresh
  two_factor.py        TOTP setup, backup codes and verification lockout
  admin_two_factor.py  super admin management of other users' 2FA
  password_reset.py    single-use reset tokens
  vehicle.py           gate-pass check-in and checkout
  customer_visit.py    visits, expense totals and the approval flow
  stock_movement.py    inventory ledger, running balances and approvals
  storage.py           S3-compatible object storage client
  upload.py            file validation and tenant-scoped keys

Rule: routers call services, services call repositories, repositories call the DB.
      No SQLAlchemy queries in routers. No FastAPI imports in services.
"""
