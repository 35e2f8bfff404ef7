"""
Distributed tracing using OpenTelemetry.

Instruments:
- FastAPI endpoints (the inbound cron trigger)
- httpx requests (the outbound football sync API calls)
- one custom span per sub-action (see ``span``)

Exports to the console in development and to an OTLP endpoint
(Jaeger, Tempo, ...) when one is configured.
"""
import logging
from contextlib import contextmanager
from typing import Optional

from fastapi import FastAPI
from opentelemetry import trace, propagate
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.trace import Status, StatusCode
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

logger = logging.getLogger(__name__)

_tracing_initialized = False


def init_tracing(
    app: FastAPI,
    service_name: str,
    environment: str = "development",
    service_version: str = "1.0.0",
    otlp_endpoint: Optional[str] = None,
    console_export: bool = False,
    sampling_ratio: float = 1.0,
) -> None:
    """
    Initialize OpenTelemetry tracing and auto-instrumentation.

    Args:
        app: FastAPI application to instrument
        service_name: Name of this service in traces
        environment: Deployment environment
        service_version: Version reported on the resource
        otlp_endpoint: OTLP gRPC endpoint, e.g. http://jaeger:4317
        console_export: Also print spans to stdout
        sampling_ratio: Fraction of traces to sample (0.0 to 1.0)
    """
    global _tracing_initialized

    if _tracing_initialized:
        logger.warning("Tracing already initialized, skipping")
        return

    resource = Resource.create({
        SERVICE_NAME: service_name,
        "deployment.environment": environment,
        "service.version": service_version,
    })
    tracer_provider = TracerProvider(resource=resource, sampler=TraceIdRatioBased(sampling_ratio))

    exporters_added = 0

    if console_export:
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        exporters_added += 1

    if otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
        exporters_added += 1
        logger.info(f"Added OTLP span exporter: {otlp_endpoint}")

    if exporters_added == 0:
        logger.warning("No span exporters configured, traces will not be exported")

    trace.set_tracer_provider(tracer_provider)
    propagate.set_global_textmap(TraceContextTextMapPropagator())

    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=tracer_provider,
        excluded_urls="health,metrics,docs,openapi.json",
    )
    HTTPXClientInstrumentor().instrument(tracer_provider=tracer_provider)

    _tracing_initialized = True
    logger.info(f"OpenTelemetry tracing initialized: service={service_name}, env={environment}")


@contextmanager
def span(name: str, attributes: Optional[dict] = None):
    """
    Create a custom span around a block.

    Example:
        with span("cron.sub_action", {"cron.sub_action": "fixtures"}):
            payload = await client.invoke("sync-fixtures")
    """
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(name, attributes=attributes) as s:
        yield s


def record_exception(exception: Exception, attributes: Optional[dict] = None) -> None:
    """Record an exception on the current span and mark it as an error."""
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        current_span.record_exception(exception)
        current_span.set_status(Status(StatusCode.ERROR, str(exception)))
        if attributes:
            current_span.set_attributes(attributes)
