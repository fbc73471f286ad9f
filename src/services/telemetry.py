"""OpenTelemetry logging and tracing service for source synchronization"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from opentelemetry import trace
from opentelemetry._logs import SeverityNumber, set_logger_provider
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk._logs import LoggerProvider
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from src.config import config
from src.models.fetch_result import FetchResult

logger = logging.getLogger(__name__)


class TelemetryService:
    """Handle OpenTelemetry logging and tracing for source synchronization"""

    def __init__(self):
        self.logging_enabled = config.otel_logging_enabled
        self.tracing_enabled = config.otel_tracing_enabled
        self.logger_provider = None
        self.tracer_provider = None
        self.otel_logger = None
        self.tracer = None

        # Initialize logging if enabled
        if self.logging_enabled:
            try:
                self._initialize_logging()
            except Exception as e:
                logger.warning(f"Failed to initialize OTel logging: {e}. Logging disabled.")
                self.logging_enabled = False

        # Initialize tracing if enabled
        if self.tracing_enabled:
            try:
                self._initialize_tracing()
            except Exception as e:
                logger.warning(f"Failed to initialize OTel tracing: {e}. Tracing disabled.")
                self.tracing_enabled = False

    def _resource(self) -> Resource:
        return Resource(
            attributes={
                SERVICE_NAME: config.otel_service_name,
                SERVICE_VERSION: config.otel_service_version,
            }
        )

    def _initialize_logging(self) -> None:
        """Initialize OpenTelemetry logging with OTLP log exporter"""
        self.logger_provider = LoggerProvider(resource=self._resource())

        log_endpoint = config.otel_endpoint
        if not log_endpoint.endswith("/v1/logs"):
            log_endpoint = f"{log_endpoint.rstrip('/')}/v1/logs"

        self.logger_provider.add_log_record_processor(
            BatchLogRecordProcessor(OTLPLogExporter(endpoint=log_endpoint))
        )
        set_logger_provider(self.logger_provider)
        self.otel_logger = self.logger_provider.get_logger(__name__)

        logger.info(f"OpenTelemetry logging initialized with endpoint: {log_endpoint}")

    def _initialize_tracing(self) -> None:
        """Initialize OpenTelemetry tracing with OTLP trace exporter"""
        self.tracer_provider = TracerProvider(resource=self._resource())

        trace_endpoint = config.otel_endpoint
        if not trace_endpoint.endswith("/v1/traces"):
            trace_endpoint = f"{trace_endpoint.rstrip('/')}/v1/traces"

        self.tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=trace_endpoint))
        )
        trace.set_tracer_provider(self.tracer_provider)
        self.tracer = self.tracer_provider.get_tracer(__name__)

        logger.info(f"OpenTelemetry tracing initialized with endpoint: {trace_endpoint}")

    @contextmanager
    def span(self, name: str, attributes: dict[str, str]) -> Iterator[None]:
        """Trace a block as one span, or do nothing when tracing is disabled"""
        if not self.tracing_enabled or not self.tracer:
            yield
            return
        with self.tracer.start_as_current_span(name, attributes=attributes):
            yield

    def log_sync(
        self,
        kind: str,
        name: str,
        remote_url: str,
        result: FetchResult | None = None,
        error: Exception | None = None,
        duration_ms: float = 0.0,
    ) -> None:
        """
        Log the outcome of one source synchronization to OpenTelemetry

        Args:
            kind: Source kind (project, software, spec, parent_hub)
            name: Item or project name
            remote_url: Remote repository URL
            result: Fetch result (if the sync returned)
            error: The error (if the sync raised)
            duration_ms: Time spent synchronizing
        """
        if not self.logging_enabled or not self.otel_logger:
            return

        try:
            # Low cardinality attributes only; names and URLs go in the body
            attributes: dict[str, str | int | float | bool] = {
                "sync.kind": kind,
                "sync.success": bool(result and result.success),
                "sync.duration_ms": float(duration_ms),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            if result is not None:
                attributes["sync.reason"] = result.reason.value
                attributes["sync.newly_initialized"] = result.newly_initialized
            if error is not None:
                attributes["error.type"] = type(error).__name__
                error_message = str(error)
                if len(error_message) > 500:
                    error_message = error_message[:500] + "..."
                attributes["error.message"] = error_message

            status = "FAILED" if error else (result.reason.value if result else "UNKNOWN")
            log_body = f"[{kind}] {name} {status} remote={remote_url}"

            severity = logging.ERROR if error else logging.INFO
            self.otel_logger.emit(
                body=log_body,
                severity_number=SeverityNumber(self._severity_to_number(severity)),
                attributes=attributes,
                timestamp=int(datetime.now(timezone.utc).timestamp() * 1e9),
            )

        except Exception as e:
            # Don't let telemetry errors break the build
            logger.warning(f"Failed to log telemetry: {e}")

    def _severity_to_number(self, level: int) -> int:
        """Convert Python logging level to OpenTelemetry severity number"""
        if level >= logging.CRITICAL:
            return 21  # FATAL
        elif level >= logging.ERROR:
            return 17  # ERROR
        elif level >= logging.WARNING:
            return 13  # WARN
        elif level >= logging.INFO:
            return 9  # INFO
        else:
            return 5  # DEBUG

    def shutdown(self) -> None:
        """Flush and stop exporters"""
        if self.logger_provider:
            self.logger_provider.shutdown()
        if self.tracer_provider:
            self.tracer_provider.shutdown()


# Global telemetry service instance
_telemetry_service: TelemetryService | None = None


def get_telemetry_service() -> TelemetryService:
    """Get or create the global telemetry service instance"""
    global _telemetry_service
    if _telemetry_service is None:
        _telemetry_service = TelemetryService()
    return _telemetry_service
