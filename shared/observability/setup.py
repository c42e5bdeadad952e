import os
import logging
import structlog
from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

# OpenTelemetry
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

APP_ENV = os.getenv("APP_ENV", "development")

# Probes hit these constantly; keep them out of request metrics and traces
UNMEASURED_PATHS = ["/health", "/metrics"]


def add_otel_ids(logger, log_method, event_dict):
    span = trace.get_current_span()
    if span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = trace.format_trace_id(ctx.trace_id)
        event_dict["span_id"] = trace.format_span_id(ctx.span_id)
    return event_dict


def service_stamper(service_name: str):
    """Processor stamping every line with the service and environment."""
    def stamp(logger, log_method, event_dict):
        event_dict.setdefault("service", service_name)
        event_dict.setdefault("env", APP_ENV)
        return event_dict
    return stamp


def configure_logging(service_name: str):
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO").upper())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            service_stamper(service_name),
            add_otel_ids,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_tracing(app: FastAPI, service_name: str):
    resource = Resource.create({SERVICE_NAME: service_name, "deployment.environment": APP_ENV})
    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)

    # Spans are only shipped when a collector is configured
    otlp_endpoint = os.getenv("OTLP_ENDPOINT")
    if otlp_endpoint:
        exporter = OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))

    FastAPIInstrumentor.instrument_app(app, excluded_urls=",".join(UNMEASURED_PATHS))


def configure_metrics(app: FastAPI):
    # HTTP latency and status codes per route template, exposed at /metrics
    Instrumentator(
        should_group_status_codes=False,
        excluded_handlers=UNMEASURED_PATHS,
    ).instrument(app).expose(app, include_in_schema=False)


def setup_observability(app: FastAPI, service_name: str):
    """
    Bootstraps Logging, Tracing, and Metrics for the storefront app.
    Call this once in main.py before the routers are included.
    """
    configure_logging(service_name)
    configure_tracing(app, service_name)
    configure_metrics(app)
