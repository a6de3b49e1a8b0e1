"""In-process metrics counters and histograms."""

import time
from collections import defaultdict
from typing import Any

from monetaris.core.config import settings

# Global metrics storage
_metrics = defaultdict(lambda: {"count": 0, "sum": 0.0, "values": [], "buckets": defaultdict(int)})


def init_metrics() -> None:
    """Initialize metrics if enabled."""
    if not settings.enable_metrics:
        return


def _key(name: str, labels: dict[str, str] | None) -> str:
    if not labels:
        return name
    return name + "{" + ",".join(f"{k}={v}" for k, v in sorted(labels.items())) + "}"


def increment_counter(name: str, labels: dict[str, str] | None = None, value: float = 1.0) -> None:
    """Increment a counter metric."""
    if not settings.enable_metrics:
        return
    _metrics[_key(name, labels)]["count"] += value


def record_histogram(name: str, value: float, labels: dict[str, str] | None = None) -> None:
    """Record a histogram measurement."""
    if not settings.enable_metrics:
        return

    metrics = _metrics[_key(name, labels)]
    metrics["count"] += 1
    metrics["sum"] += value
    metrics["values"].append(value)

    if value < 0.1:
        metrics["buckets"]["<0.1"] += 1
    elif value < 1:
        metrics["buckets"]["0.1-1.0"] += 1
    elif value < 10:
        metrics["buckets"]["1.0-10.0"] += 1
    elif value < 100:
        metrics["buckets"]["10.0-100.0"] += 1
    elif value < 1000:
        metrics["buckets"]["100.0-1000.0"] += 1
    else:
        metrics["buckets"][">=1000.0"] += 1


def observe_duration(start_time: float, name: str, labels: dict[str, str] | None = None) -> None:
    """Observe a duration measurement in milliseconds."""
    duration_ms = (time.time() - start_time) * 1000
    record_histogram(name, duration_ms, labels)


def get_metrics() -> dict[str, Any]:
    """Get current metrics snapshot."""
    if not settings.enable_metrics:
        return {"note": "metrics disabled"}

    result = {}
    for key, data in _metrics.items():
        metric_result = {"count": data["count"], "sum": data["sum"]}
        if data["values"]:
            values = data["values"]
            metric_result.update(
                {
                    "min": min(values),
                    "max": max(values),
                    "avg": data["sum"] / len(values),
                    "buckets": dict(data["buckets"]),
                }
            )
        result[key] = metric_result
    return result


def reset_metrics() -> None:
    """Reset all metrics (useful for testing)."""
    _metrics.clear()


# Workflow metrics
def increment_workflow_transition(from_status: str, to_status: str) -> None:
    increment_counter("workflow_transitions_total", labels={"from": from_status, "to": to_status})


def increment_workflow_rejected(from_status: str, to_status: str) -> None:
    increment_counter(
        "workflow_transitions_rejected_total", labels={"from": from_status, "to": to_status}
    )


def increment_case_closed(status: str) -> None:
    increment_counter("cases_closed_total", labels={"status": status})


# Case lifecycle metrics
def increment_cases_created() -> None:
    increment_counter("cases_created_total")


def increment_cases_deleted() -> None:
    increment_counter("cases_deleted_total")


# Documents
def increment_documents_uploaded() -> None:
    increment_counter("documents_uploaded_total")


def add_document_bytes(n: int) -> None:
    increment_counter("document_bytes_total", value=float(n))


# Templates
def record_render_duration(duration_ms: float) -> None:
    record_histogram("template_render_duration_ms", duration_ms)


# Access control
def increment_access_denied(resource: str) -> None:
    increment_counter("access_denied_total", labels={"resource": resource})


def increment_auth_failure(reason: str) -> None:
    increment_counter("auth_failures_total", labels={"reason": reason})


# API latency
def record_request_duration(duration_ms: float, route: str) -> None:
    record_histogram("request_duration_ms", duration_ms, labels={"route": route})
