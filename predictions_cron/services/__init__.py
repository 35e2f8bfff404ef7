"""
Services module for the cron business logic.

- cron: orchestrator and the football sync API client
"""
