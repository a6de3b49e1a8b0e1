"""Observability for the Monetaris API and ops tools.

JSON logs with trace and user context, /health probes and the in-process
counters exposed on /ops/metrics.
"""
import uuid

from . import logging as logging_module
from . import metrics


def generate_trace_id() -> str:
    """Trace id for a request or tool run."""
    return str(uuid.uuid4())


def init_observability(enable_metrics: bool = True) -> None:
    """Set up logging and, unless disabled, the metrics store."""
    logging_module.init_logging()
    if enable_metrics:
        metrics.init_metrics()


__all__ = [
    "logging_module",
    "metrics",
    "generate_trace_id",
    "init_observability",
]
