"""
Prediction market cron jobs.

Key components:
- FootballSyncClient: calls the football sync API actions
- CronOrchestrator: authenticates triggers, runs the selected sub-actions
  in order and aggregates their results
"""
from predictions_cron.services.cron.football_client import FootballSyncClient
from predictions_cron.services.cron.orchestrator import CronOrchestrator

__all__ = ["FootballSyncClient", "CronOrchestrator"]
