"""v2 router package: all tenant-scoped /api/v2/* endpoints live here.

Files:
  vehicles.py          gate-pass entries (check-in, checkout, status)
  customer_visits.py   visits, expense line items, approval flow
  stock_movements.py   inventory ledger, balances, approvals
  uploads.py           S3-compatible file storage

Rule: Routers only handle HTTP (request parsing, response shaping).
      All business logic delegates to app/services/.
"""
