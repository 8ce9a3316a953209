"""
Logging, tracing and metrics bootstrap for the storefront app.

Log lines are JSON with ``trace_id`` / ``span_id`` when a span is active, so an
aborted order can be followed from its ``order_aborted`` line to the request
trace.
"""
import logging

import structlog
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from shared.config.settings import LOG_LEVEL, OTEL_TRACING_ENABLED, OTLP_ENDPOINT

# Probes and scrapes would drown the request metrics
UNINSTRUMENTED_PATHS = ["/health", "/metrics"]


def add_otel_ids(logger, log_method, event_dict):
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = trace.format_trace_id(ctx.trace_id)
        event_dict["span_id"] = trace.format_span_id(ctx.span_id)
    return event_dict


def configure_logging(level: str = LOG_LEVEL):
    threshold = logging.getLevelName(level.upper())
    if not isinstance(threshold, int):
        threshold = logging.INFO

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            add_otel_ids,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_tracing(app: FastAPI, service_name: str):
    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=OTLP_ENDPOINT, insecure=True)))
    trace.set_tracer_provider(provider)

    # One server span per request; order stages show up as log events inside it
    FastAPIInstrumentor.instrument_app(app, excluded_urls=",".join(UNINSTRUMENTED_PATHS))


def configure_metrics(app: FastAPI):
    # HTTP latency and status codes per route, plus the ecomm_* business counters, at /metrics
    Instrumentator(excluded_handlers=UNINSTRUMENTED_PATHS).instrument(app).expose(app, include_in_schema=False)


def setup_observability(app: FastAPI, service_name: str):
    """
    Call once on the root app. Tracing is skipped when OTEL_TRACING_ENABLED is
    false (local runs, tests); logging and metrics are always on.
    """
    configure_logging()
    if OTEL_TRACING_ENABLED:
        configure_tracing(app, service_name)
    configure_metrics(app)
