"""OpenTelemetry tracing for the lfsstore server.

Tracing is off unless LFSSTORE_OTEL_ENABLED is truthy. When on, one
TracerProvider is installed per process; its resource names the service and
describes the content store being served (backend, realm, repository path),
so spans from several LFS servers can be told apart in one collector.

Environment Variables:
    LFSSTORE_OTEL_ENABLED: "1" turns tracing on
    LFSSTORE_OTEL_SERVICE_NAME: service.name resource attribute (default "lfsstore")
    LFSSTORE_OTEL_EXPORTER: "otlp" (default) or "console"
    LFSSTORE_OTEL_EXPORTER_OTLP_ENDPOINT: collector endpoint for the OTLP exporter
    LFSSTORE_OTEL_TEST_CAPTURE: "1" keeps spans in memory for tests

Authorization headers, passwords and storage keys never reach a span.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan, TracerProvider

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes"})
_FALSE_VALUES = frozenset({"0", "false", "no"})
_EXPORTERS = ("otlp", "console")

_provider_installed = False
_test_exporter: Any = None


def get_env_bool(key: str, default: bool = False) -> bool:
    """Read a boolean flag; unrecognized values give the default."""
    val = os.environ.get(key, "").strip().lower()
    if val in _TRUE_VALUES:
        return True
    if val in _FALSE_VALUES:
        return False
    return default


@dataclass(frozen=True)
class TracingOptions:
    """Tracing switches read from LFSSTORE_OTEL_* variables."""

    enabled: bool = False
    test_capture: bool = False
    service_name: str = "lfsstore"
    exporter: str = "otlp"
    endpoint: str | None = None

    @classmethod
    def from_env(cls) -> TracingOptions:
        exporter = os.environ.get("LFSSTORE_OTEL_EXPORTER", "otlp").strip().lower() or "otlp"
        if exporter not in _EXPORTERS:
            logger.warning("Unknown LFSSTORE_OTEL_EXPORTER=%s, using otlp", exporter)
            exporter = "otlp"
        return cls(
            enabled=get_env_bool("LFSSTORE_OTEL_ENABLED"),
            test_capture=get_env_bool("LFSSTORE_OTEL_TEST_CAPTURE"),
            service_name=os.environ.get("LFSSTORE_OTEL_SERVICE_NAME", "").strip() or "lfsstore",
            exporter=exporter,
            endpoint=os.environ.get("LFSSTORE_OTEL_EXPORTER_OTLP_ENDPOINT", "").strip() or None,
        )


def store_resource_attributes(
    backend: str | None, realm: str | None, repo_path: str = ""
) -> dict[str, str]:
    """Describe the served content store as resource attributes."""
    attributes = {"lfs.repo_path": repo_path or "/"}
    if backend:
        attributes["lfs.storage.backend"] = backend
    if realm:
        attributes["lfs.realm"] = realm
    return attributes


def _span_processor(options: TracingOptions) -> Any:
    global _test_exporter

    from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor

    if options.test_capture:
        from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
            InMemorySpanExporter,
        )

        _test_exporter = InMemorySpanExporter()
        return SimpleSpanProcessor(_test_exporter)

    if options.exporter == "console":
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter

        return SimpleSpanProcessor(ConsoleSpanExporter())

    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

    if options.endpoint:
        return BatchSpanProcessor(OTLPSpanExporter(endpoint=options.endpoint))
    return BatchSpanProcessor(OTLPSpanExporter())


def build_tracer_provider(
    options: TracingOptions, resource_attributes: Mapping[str, str] | None = None
) -> TracerProvider:
    """Create a provider for options without installing it."""
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider

    attributes = {"service.name": options.service_name}
    attributes.update(resource_attributes or {})

    provider = TracerProvider(resource=Resource.create(attributes))
    provider.add_span_processor(_span_processor(options))
    return provider


def configure_tracing(
    resource_attributes: Mapping[str, str] | None = None,
    options: TracingOptions | None = None,
) -> bool:
    """Install the process TracerProvider if tracing is enabled.

    Only the first successful call installs a provider; later calls report
    whether tracing is on without touching it.

    Args:
        resource_attributes: Extra resource attributes, usually from
            store_resource_attributes.
        options: Tracing switches; read from the environment when omitted.

    Returns:
        True if spans are being recorded.
    """
    global _provider_installed

    options = options or TracingOptions.from_env()
    if not options.enabled:
        logger.debug("Tracing disabled (LFSSTORE_OTEL_ENABLED not set)")
        return False
    if _provider_installed:
        return True

    from opentelemetry import trace

    try:
        provider = build_tracer_provider(options, resource_attributes)
    except Exception as e:
        logger.error("Failed to configure OpenTelemetry tracing: %s", e)
        return False

    trace.set_tracer_provider(provider)
    _provider_installed = True
    logger.info(
        "Tracing configured: service=%s exporter=%s backend=%s",
        options.service_name,
        "in-memory" if options.test_capture else options.exporter,
        (resource_attributes or {}).get("lfs.storage.backend", "unknown"),
    )
    return True


def instrument_fastapi(app: Any) -> None:
    """Add server spans to every LFS route; /health stays untraced."""
    if not get_env_bool("LFSSTORE_OTEL_ENABLED"):
        return

    try:
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

        FastAPIInstrumentor.instrument_app(app, excluded_urls="health")
    except Exception as e:
        logger.warning("Failed to instrument FastAPI: %s", e)


def get_current_trace_id() -> str | None:
    """Return the active trace id as 32 hex digits, or None outside a span."""
    from opentelemetry import trace

    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return None
    return format(ctx.trace_id, "032x")


def get_test_spans() -> list[ReadableSpan]:
    """Spans captured with LFSSTORE_OTEL_TEST_CAPTURE=1."""
    if _test_exporter is None:
        return []
    return list(_test_exporter.get_finished_spans())


def clear_test_spans() -> None:
    if _test_exporter is not None:
        _test_exporter.clear()


def reset_tracing() -> None:
    """Drop captured spans.

    The global TracerProvider cannot be replaced once set, so the provider
    and its in-memory exporter survive.
    """
    clear_test_spans()
