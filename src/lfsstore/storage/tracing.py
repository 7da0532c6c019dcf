"""lfsstore content store OpenTelemetry tracing integration.

Provides the tracing decorator applied to every backend operation.

Security:
    - Never export absolute filesystem paths or bucket credentials
    - Only object ids, sizes and the backend name in attributes
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar, cast

from lfsstore.observability.tracing import get_env_bool

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def _is_otel_enabled() -> bool:
    """Check if OpenTelemetry tracing is enabled."""
    return get_env_bool("LFSSTORE_OTEL_ENABLED", False)


def _resolve_oid(owner: Any, args: tuple[Any, ...]) -> str | None:
    """Find the object id an operation is working on.

    Store methods take the oid (or an ObjectMeta) as first argument;
    accessors bound to a single object carry it as ``oid``.
    """
    from lfsstore.storage.models import ObjectMeta

    if args:
        first = args[0]
        if isinstance(first, str):
            return first
        if isinstance(first, ObjectMeta):
            return first.oid
    oid = getattr(owner, "oid", None)
    return oid if isinstance(oid, str) else None


def traced_storage_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace content store operations with OpenTelemetry.

    Args:
        operation: Operation name (e.g., "metadata", "open", "upload").

    Returns:
        Decorated function that emits OTel spans when tracing is enabled.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            if not _is_otel_enabled():
                return func(self, *args, **kwargs)

            try:
                from opentelemetry import trace
            except ImportError:
                return func(self, *args, **kwargs)

            tracer = trace.get_tracer("lfsstore.content_store")
            span_name = f"lfsstore.content_store.{operation}"

            with tracer.start_as_current_span(span_name) as span:
                span.set_attribute("storage.backend", getattr(self, "backend_name", "unknown"))
                oid = _resolve_oid(self, args)
                if oid is not None:
                    span.set_attribute("lfsstore.object_oid", oid)

                try:
                    result = func(self, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

                _add_result_attributes(span, args, result, operation)
                return result

        return cast(F, wrapper)

    return decorator


def _add_result_attributes(span: Any, args: tuple[Any, ...], result: Any, operation: str) -> None:
    """Add result-based attributes to span safely."""
    try:
        from lfsstore.storage.models import ObjectMeta

        if operation == "metadata":
            span.set_attribute("lfsstore.object_exists", result is not None)
        if isinstance(result, ObjectMeta):
            span.set_attribute("lfsstore.object_size", result.size)
        elif args and isinstance(args[0], ObjectMeta):
            span.set_attribute("lfsstore.object_size", args[0].size)
    except Exception as e:
        logger.debug("Failed to add result attributes to span: %s", e)
