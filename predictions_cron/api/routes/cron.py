"""Cron API routes.

GET /api/cron/predictions is called periodically by Vercel Cron or any
external cron service:

- ?action=sync-fixtures  sync upcoming fixtures (daily)
- ?action=sync-live      update live match scores (every 2-5 minutes on match days)
- ?action=settle         settle finished matches (after the live sync)
- ?action=all (default)  all three, in that order
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from predictions_cron.core.config import CronConfig, settings
from predictions_cron.core.exceptions import ConfigurationError, OrchestratorFailure
from predictions_cron.schemas.cron import AggregatedReport, ErrorBody, TriggerRequest
from predictions_cron.services.cron.orchestrator import CronOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])

_cron_config: Optional[CronConfig] = None


def get_cron_config() -> CronConfig:
    """Validated cron config, built once from settings."""
    global _cron_config
    if _cron_config is None:
        _cron_config = CronConfig.from_settings(settings)
    return _cron_config


def get_orchestrator() -> CronOrchestrator:
    """
    Dependency to get a cron orchestrator instance.

    Raises:
        OrchestratorFailure: If the cron config cannot be built from settings
    """
    try:
        config = get_cron_config()
    except ConfigurationError as e:
        logger.error(f"Invalid cron configuration: {e}")
        raise OrchestratorFailure(str(e)) from e
    return CronOrchestrator(config, production=settings.is_production())


def request_origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


@router.get(
    "/predictions",
    response_model=AggregatedReport,
    responses={400: {"model": ErrorBody}, 401: {"model": ErrorBody}, 500: {"model": ErrorBody}},
)
async def run_predictions_cron(
    request: Request,
    action: Optional[str] = Query(None, description="all, sync-fixtures, sync-live or settle"),
    authorization: Optional[str] = Header(None),
    orchestrator: CronOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """
    Run the prediction market sync jobs.

    Requires ``Authorization: Bearer <CRON_SECRET>`` when CRON_SECRET is
    set. Returns 200 with per-sub-action results once authorized, even if
    some sub-actions failed.
    """
    trigger = TriggerRequest(
        authorization=authorization,
        action=action,
        origin=request_origin(request),
    )

    status_code, body = await orchestrator.handle(trigger)
    return JSONResponse(status_code=status_code, content=body)
