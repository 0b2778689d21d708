"""
OpenTelemetry tracing bootstrap.
Spans are exported over OTLP only when OTEL_EXPORTER_OTLP_ENDPOINT is set;
otherwise the provider is installed without exporters and tracing stays local.
"""
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from app.core.config import Settings
from app.core.logger import get_logger

logger = get_logger("telemetry")

TRACER_NAME = "hello_service"


def build_resource(settings: Settings) -> Resource:
    return Resource.create(
        {
            "service.name": settings.OTEL_SERVICE_NAME or settings.APP_NAME,
            "service.namespace": settings.SERVICE_NAMESPACE,
            "service.version": settings.APP_VERSION,
            "deployment.environment": settings.NODE_ENV,
        }
    )


def configure_tracing(settings: Settings) -> TracerProvider:
    """Installs the global tracer provider. Exporter failures disable export, never startup."""
    current = trace.get_tracer_provider()
    if isinstance(current, TracerProvider):
        # The global provider can only be set once per process
        return current

    provider = TracerProvider(resource=build_resource(settings))

    endpoint = settings.OTEL_EXPORTER_OTLP_ENDPOINT
    if endpoint:
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

            provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
            logger.info("Exporting traces to %s", endpoint)
        except Exception:
            logger.warning("Failed to initialize OTLP trace exporter, traces will not be exported", exc_info=True)

    trace.set_tracer_provider(provider)
    return provider


def get_tracer() -> trace.Tracer:
    return trace.get_tracer(TRACER_NAME)
