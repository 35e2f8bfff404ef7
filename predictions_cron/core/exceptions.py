"""
Error types for the cron orchestration layer.

Callers (cron schedulers, alerting) rely on the split between errors that
stop a pass before anything runs (401/400/500) and sub-action failures,
which are reported as data inside a 200 response.
"""
from typing import Optional, Sequence


class CronError(Exception):
    """Base class for cron orchestration errors."""

    status_code: int = 500

    def to_body(self) -> dict:
        return {"error": str(self)}


class ConfigurationError(CronError):
    """Settings are missing or invalid."""


class UnauthorizedError(CronError):
    """The trigger did not carry the expected shared secret."""

    status_code = 401

    def __init__(self):
        super().__init__("Unauthorized")


class InvalidActionError(CronError):
    """The action selector is not one of the known values."""

    status_code = 400

    def __init__(self, action: str, allowed: Sequence[str]):
        self.action = action
        self.allowed = list(allowed)
        super().__init__(f"Unknown action '{action}'")

    def to_body(self) -> dict:
        return {
            "error": "Invalid action",
            "message": f"{self}. Use: {', '.join(self.allowed)}",
            "allowed": self.allowed,
        }


class OrchestratorFailure(CronError):
    """A pass failed outside the per-sub-action guards."""

    def to_body(self) -> dict:
        return {"error": "Cron job failed", "message": str(self)}


class CollaboratorError(CronError):
    """The football sync API answered with an error status or an unreadable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.http_status = status_code


class SubActionFailure(CronError):
    """One sub-action failed; recorded under its key, never re-raised."""

    def __init__(self, sub_action: str, message: str):
        super().__init__(message)
        self.sub_action = sub_action
