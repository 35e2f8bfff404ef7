"""Types exchanged by the cron route, the orchestrator and the scheduler."""
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, Field, PrivateAttr


class CronAction(str, Enum):
    """Action selectors accepted by the cron endpoint."""
    ALL = "all"
    SYNC_FIXTURES = "sync-fixtures"
    SYNC_LIVE = "sync-live"
    SETTLE = "settle"

    @classmethod
    def values(cls) -> List[str]:
        return [a.value for a in cls]


DEFAULT_ACTION = CronAction.ALL.value


@dataclass(frozen=True)
class SubAction:
    """
    One independently invokable sync/settlement step.

    Attributes:
        key: Key of the result in the report (fixtures, live, settle)
        selector: Action selector that runs only this step
        remote_action: ``action`` sent to the football sync API
    """
    key: str
    selector: str
    remote_action: str

    def selected_by(self, action: str) -> bool:
        return action in (CronAction.ALL.value, self.selector)


# Execution order matters: settlement reads the scores written by the live sync
SUB_ACTIONS = (
    SubAction(key="fixtures", selector=CronAction.SYNC_FIXTURES.value, remote_action="sync-fixtures"),
    SubAction(key="live", selector=CronAction.SYNC_LIVE.value, remote_action="sync-live"),
    SubAction(key="settle", selector=CronAction.SETTLE.value, remote_action="sync-results"),
)


@dataclass(frozen=True)
class TriggerRequest:
    """
    Inbound cron trigger.

    Attributes:
        authorization: Raw Authorization header value, if any
        action: Raw ``action`` query parameter, if any
        origin: Scheme and host the request arrived on (base URL fallback)
    """
    authorization: Optional[str] = None
    action: Optional[str] = None
    origin: Optional[str] = None

    @property
    def resolved_action(self) -> str:
        return self.action or DEFAULT_ACTION


@dataclass(frozen=True)
class SubActionResult:
    """Outcome of one sub-action: a success payload or an error message, never both."""
    key: str
    ok: bool
    payload: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, key: str, payload: Any) -> "SubActionResult":
        return cls(key=key, ok=True, payload=payload)

    @classmethod
    def failure(cls, key: str, message: str) -> "SubActionResult":
        return cls(key=key, ok=False, error=message)

    def to_json(self) -> Any:
        if self.ok:
            return self.payload
        return {"error": self.error}


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AggregatedReport(BaseModel):
    """Response body of a successful orchestration pass."""
    success: bool = True
    timestamp: str
    action: str
    results: Dict[str, Any] = Field(default_factory=dict)

    # Outcomes behind ``results``; a payload that looks like {"error": ...} may still be a success
    _outcomes: List[SubActionResult] = PrivateAttr(default_factory=list)

    @classmethod
    def from_results(
        cls,
        action: str,
        results: List[SubActionResult],
        completed_at: Optional[datetime] = None,
    ) -> "AggregatedReport":
        report = cls(
            success=True,
            timestamp=utc_timestamp(completed_at),
            action=action,
            results={r.key: r.to_json() for r in results},
        )
        report._outcomes = list(results)
        return report

    def failed_keys(self) -> List[str]:
        return [r.key for r in self._outcomes if not r.ok]


class ErrorBody(BaseModel):
    """Response body when a pass did not run (400, 401, 500)."""
    error: str
    message: Optional[str] = None
    allowed: Optional[List[str]] = None


class CronResponse(NamedTuple):
    """HTTP status and JSON body produced by ``CronOrchestrator.handle``."""
    status_code: int
    body: Dict[str, Any]
