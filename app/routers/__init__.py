"""Routers package: HTTP endpoint definitions.

Files:
  auth.py               /api/auth/* (register, login, tokens, password reset)
  two_factor.py         /api/auth/2fa/*
  admin_two_factor.py   /api/admin/* (super admin 2FA management)
  v2_simple.py          /api/v2-simple/* (health, info)
  v2/                   tenant-scoped resources (/api/v2/*)
"""
