"""Pydantic schemas package.

Folder intent:
  common.py          CamelModel base + HealthResponse (all schemas inherit CamelModel)
  auth.py            register/login/refresh/password reset payloads and user output
  two_factor.py      2FA request DTOs and admin status views
  vehicle.py, customer_visit.py, stock_movement.py, upload.py
                     request and response models of the /api/v2 resources
"""
