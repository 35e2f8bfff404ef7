"""
API routes.

- cron: /api/cron/predictions, the scheduled sync and settlement trigger
"""
