"""
Prometheus metrics for the cron service.

Metrics exposed (besides the HTTP metrics from the instrumentator):
- cron_runs_total: orchestration passes by action and outcome
- cron_sub_action_total: sub-action outcomes by sub-action
- cron_sub_action_duration_seconds: collaborator call latency
- scheduler_running / scheduler_jobs_total: in-process scheduler status
"""
from prometheus_client import Counter, Gauge, Histogram

cron_runs_total = Counter(
    "cron_runs_total",
    "Total cron orchestration passes",
    ["action", "status"]
)

cron_sub_action_total = Counter(
    "cron_sub_action_total",
    "Total sub-action executions",
    ["sub_action", "outcome"]
)

cron_sub_action_duration_seconds = Histogram(
    "cron_sub_action_duration_seconds",
    "Sub-action collaborator call latency in seconds",
    ["sub_action"]
)

scheduler_running = Gauge(
    "scheduler_running",
    "Whether the cron scheduler is running (1=running, 0=stopped)"
)

scheduler_jobs_total = Gauge(
    "scheduler_jobs_total",
    "Total number of scheduled cron jobs"
)


def record_cron_run(action: str, status: str) -> None:
    """Record one orchestration pass (status: ok, unauthorized, invalid, failed)."""
    cron_runs_total.labels(action=action, status=status).inc()


def record_sub_action(sub_action: str, ok: bool, duration_seconds: float) -> None:
    """Record the outcome and latency of one sub-action."""
    cron_sub_action_total.labels(
        sub_action=sub_action,
        outcome="success" if ok else "error"
    ).inc()
    cron_sub_action_duration_seconds.labels(sub_action=sub_action).observe(duration_seconds)


def update_scheduler_metrics():
    """Refresh the scheduler gauges from the global scheduler."""
    from predictions_cron.core.scheduler import get_scheduler

    scheduler = get_scheduler()
    if scheduler and scheduler.running:
        scheduler_running.set(1)
        if scheduler.scheduler:
            scheduler_jobs_total.set(len(scheduler.scheduler.get_jobs()))
    else:
        scheduler_running.set(0)
        scheduler_jobs_total.set(0)
