"""
Structured logging utility for the Stock Watch availability checker.
Every check is traceable end to end through a per-context trace ID.
"""
import logging
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

from stockwatch.config import config

# Trace ID of the check (or bulk sweep) running in the current context
trace_id_var: ContextVar[str] = ContextVar("trace_id", default="")


def _new_trace_id() -> str:
    return uuid.uuid4().hex[:8]


def get_trace_id() -> str:
    """Get current trace ID, creating one on first use."""
    trace_id = trace_id_var.get()
    if not trace_id:
        trace_id = set_trace_id()
    return trace_id


def set_trace_id(trace_id: Optional[str] = None) -> str:
    """Start a new trace in the current context."""
    new_trace_id = trace_id or _new_trace_id()
    trace_id_var.set(new_trace_id)
    return new_trace_id


def add_trace_id(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Processor stamping the current trace ID on every event."""
    event_dict.setdefault("trace_id", get_trace_id())
    return event_dict


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None):
    """
    Configure structlog.

    Args:
        level: Minimum level name; defaults to LOG_LEVEL
        fmt: "json" or "console"; defaults to LOG_FORMAT
    """
    level = (level or config.LOG_LEVEL).upper()
    fmt = fmt or config.LOG_FORMAT

    renderer = (
        structlog.dev.ConsoleRenderer(colors=True)
        if fmt == "console"
        else structlog.processors.JSONRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_id,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level, logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance with the given name."""
    return structlog.get_logger(name)


class LayerLogger:
    """
    Logger bound to one component (fetch, extraction, an adapter...).
    Keeps event names identical across components so a check can be followed
    from the first HTTP request to the final result.
    """

    def __init__(self, layer_name: str):
        self.layer_name = layer_name
        self.logger = get_logger(layer_name).bind(layer=layer_name)

    def log_decision(self, decision: str, reason: str, url: Optional[str] = None, **extra):
        """A branch taken, e.g. extractor chosen or challenge detected."""
        self.logger.info("decision_made", decision=decision, reason=reason, url=url, **extra)

    def log_action(self, action: str, status: str = "started", **extra):
        """Lifecycle of an action: action_started, action_completed..."""
        self.logger.info(f"action_{status}", action=action, **extra)

    def log_fallback(self, from_source: str, to_source: str, reason: str, **extra):
        """Moving from one extractor or fetch tier to the next."""
        self.logger.warning(
            "fallback_triggered",
            from_source=from_source,
            to_source=to_source,
            reason=reason,
            **extra
        )

    def log_warning(self, event: str, **extra):
        self.logger.warning(event, **extra)

    def log_debug(self, event: str, **extra):
        self.logger.debug(event, **extra)

    def log_error(self, error: str, error_type: str = "unknown", **extra):
        self.logger.error("error_occurred", error=error, error_type=error_type, **extra)

    def log_http_probe(
        self,
        url: str,
        endpoint: str,
        status_code: Optional[int],
        result: str,
        **extra
    ):
        """Outcome of one outbound request (page fetch or storefront API)."""
        self.logger.info(
            "http_probe",
            url=url,
            endpoint=endpoint,
            status_code=status_code,
            result=result,
            **extra
        )

    def log_extraction(
        self,
        source: str,
        status: str,
        price_minor_units: Optional[int],
        price_currency: Optional[str],
        **extra
    ):
        """Availability and price found by an extractor."""
        self.logger.info(
            "availability_extracted",
            source=source,
            status=status,
            price_minor_units=price_minor_units,
            price_currency=price_currency,
            **extra
        )


# Initialize logging on module import
configure_logging()
