"""Cron orchestrator for the prediction market sync jobs.

One orchestration pass runs up to three sub-actions against the football
sync API, always in this order:

- fixtures -> action=sync-fixtures  (recommended cron: daily)
- live     -> action=sync-live      (every 2-5 minutes on match days)
- settle   -> action=sync-results   (after the live sync)

Every sub-action is attempted regardless of how the previous ones went,
and each failure is reported under its own key instead of failing the
pass. Only authorization problems, unknown selectors and errors outside
the per-sub-action guards stop a pass before it reports.
"""
import logging
import time
from typing import Callable, List, Optional

from predictions_cron.core import metrics
from predictions_cron.core.auth import verify_cron_secret
from predictions_cron.core.config import CronConfig
from predictions_cron.core.exceptions import (
    InvalidActionError,
    OrchestratorFailure,
    SubActionFailure,
    UnauthorizedError,
)
from predictions_cron.core.logging import get_correlation_id
from predictions_cron.core.tracing import record_exception, span
from predictions_cron.schemas.cron import (
    DEFAULT_ACTION,
    SUB_ACTIONS,
    AggregatedReport,
    CronAction,
    CronResponse,
    SubAction,
    SubActionResult,
    TriggerRequest,
)
from predictions_cron.services.cron.football_client import FootballSyncClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], FootballSyncClient]


def _error_message(error: BaseException) -> str:
    return str(error) or error.__class__.__name__


class CronOrchestrator:
    """
    Runs orchestration passes for the cron endpoint and the scheduler.

    The orchestrator holds no per-pass state; a single instance can serve
    any number of triggers.
    """

    def __init__(
        self,
        config: CronConfig,
        client_factory: Optional[ClientFactory] = None,
        production: bool = False,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Validated cron configuration
            client_factory: Builds a football API client for a base URL
                (defaults to FootballSyncClient with the configured path/timeout)
            production: Whether the service runs in production (affects auth logging)
        """
        self.config = config
        self.production = production
        self._client_factory = client_factory or self._default_client

    def _default_client(self, base_url: str) -> FootballSyncClient:
        correlation_id = get_correlation_id()
        return FootballSyncClient(
            base_url,
            api_path=self.config.football_api_path,
            timeout=self.config.request_timeout,
            headers={"X-Correlation-ID": correlation_id} if correlation_id else None,
        )

    def resolve_action(self, raw_action: Optional[str]) -> str:
        """
        Resolve the action selector, defaulting to ``all``.

        Raises:
            InvalidActionError: For unknown selectors when strict mode is on
        """
        action = raw_action or DEFAULT_ACTION
        if action not in CronAction.values():
            if self.config.reject_unknown_actions:
                raise InvalidActionError(action, CronAction.values())
            logger.warning(f"Unknown cron action '{action}' - no sub-action selected")
        return action

    def resolve_base_url(self, origin: Optional[str] = None) -> str:
        """Configured base URL, falling back to the trigger's origin."""
        base_url = self.config.base_url or origin
        if not base_url:
            raise OrchestratorFailure("No base URL configured and no request origin available")
        return base_url.rstrip("/")

    def selected_sub_actions(self, action: str) -> List[SubAction]:
        return [s for s in SUB_ACTIONS if s.selected_by(action)]

    async def handle(self, trigger: TriggerRequest) -> CronResponse:
        """
        Process one cron trigger.

        Returns:
            CronResponse: 200 with the aggregated report once authorized,
            401 for bad credentials, 400 for unknown actions (strict mode),
            500 for failures outside the sub-action guards
        """
        metric_action = trigger.resolved_action
        if metric_action not in CronAction.values():
            metric_action = "unknown"

        try:
            verify_cron_secret(trigger.authorization, self.config.cron_secret, production=self.production)
            action = self.resolve_action(trigger.action)
            report = await self.run(action, origin=trigger.origin)

        except (UnauthorizedError, InvalidActionError) as e:
            metrics.record_cron_run(metric_action, "unauthorized" if e.status_code == 401 else "invalid")
            return CronResponse(e.status_code, e.to_body())

        except Exception as e:
            logger.error(f"Cron error: {e}")
            metrics.record_cron_run(metric_action, "failed")
            return CronResponse(500, OrchestratorFailure(_error_message(e)).to_body())

        metrics.record_cron_run(metric_action, "ok")
        return CronResponse(200, report.model_dump())

    async def run(self, action: str = DEFAULT_ACTION, origin: Optional[str] = None) -> AggregatedReport:
        """
        Run the sub-actions selected by ``action`` and aggregate their results.

        No authorization is performed here; the scheduler and the CLI call
        this directly.

        Args:
            action: Resolved action selector
            origin: Request origin, used when no base URL is configured

        Returns:
            AggregatedReport with one entry per selected sub-action
        """
        selected = self.selected_sub_actions(action)
        logger.info(
            f"Starting cron pass: action={action}, "
            f"sub_actions={[s.key for s in selected]}"
        )

        results: List[SubActionResult] = []
        if selected:
            base_url = self.resolve_base_url(origin)
            async with self._client_factory(base_url) as client:
                for sub_action in selected:
                    results.append(await self._run_sub_action(client, sub_action))

        report = AggregatedReport.from_results(action, results)

        failed = [r.key for r in results if not r.ok]
        logger.info(
            f"Cron pass complete: {len(results) - len(failed)}/{len(results)} sub-actions succeeded"
            + (f", failed: {failed}" if failed else ""),
            extra={"action": action, "failed": failed},
        )
        return report

    async def _run_sub_action(self, client: FootballSyncClient, sub_action: SubAction) -> SubActionResult:
        """Run one sub-action, converting any failure into a result."""
        started = time.perf_counter()

        with span("cron.sub_action", {"cron.sub_action": sub_action.key,
                                      "cron.remote_action": sub_action.remote_action}):
            try:
                payload = await client.invoke(sub_action.remote_action)
            except Exception as e:
                failure = SubActionFailure(sub_action.key, _error_message(e))
                record_exception(e, {"cron.sub_action": sub_action.key})
                logger.error(f"❌ Sub-action '{sub_action.key}' failed: {failure}")
                result = SubActionResult.failure(sub_action.key, str(failure))
            else:
                logger.info(f"✅ Sub-action '{sub_action.key}' completed")
                result = SubActionResult.success(sub_action.key, payload)

        metrics.record_sub_action(sub_action.key, result.ok, time.perf_counter() - started)
        return result
