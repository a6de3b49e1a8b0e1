"""Transactional outbox for domain events."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping
from uuid import uuid4

import sqlalchemy as sa
from sqlalchemy import Column, DateTime, Index, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Connection

from monetaris.core.observability.logging import logger
from monetaris.core.tables import metadata as _METADATA

SCHEMA_VERSION = "1"


def get_outbox_events_table(metadata: MetaData) -> Table:
    """Return the event_outbox table definition for the given metadata."""
    return Table(
        "event_outbox",
        metadata,
        Column("id", String(36), primary_key=True),
        Column("tenant_id", String(36)),
        Column("topic", String(100), nullable=False),
        Column("schema_version", String(16), nullable=False),
        Column("trace_id", String(64)),
        Column("payload_json", Text, nullable=False),
        Column("status", String(16), nullable=False, default="pending"),
        Column("attempt_count", Integer, nullable=False, default=0),
        Column("next_attempt_at", DateTime(timezone=True), nullable=False),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("published_at", DateTime(timezone=True)),
        Index("ix_event_outbox_status_next_attempt_at", "status", "next_attempt_at"),
        extend_existing=True,
    )


EVENTS = get_outbox_events_table(_METADATA)


def enqueue_event(
    conn: Connection,
    topic: str,
    payload: Mapping[str, Any],
    *,
    tenant_id: str | None = None,
    trace_id: str | None = None,
    delay_s: int = 0,
) -> str:
    """Persist an event in the caller's transaction and return its id."""
    if not isinstance(topic, str) or not topic.strip():
        raise ValueError("topic must be a non-empty string")
    if delay_s < 0:
        raise ValueError("delay_s must be >= 0")
    if not isinstance(payload, Mapping):
        raise ValueError("payload must be a mapping")

    try:
        payload_json = json.dumps(dict(payload), sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise ValueError("payload must be JSON serializable") from exc

    event_id = str(uuid4())
    now = datetime.now(timezone.utc)
    conn.execute(
        sa.insert(EVENTS).values(
            id=event_id,
            tenant_id=tenant_id,
            topic=topic,
            schema_version=SCHEMA_VERSION,
            trace_id=trace_id,
            payload_json=payload_json,
            status="pending",
            attempt_count=0,
            next_attempt_at=now + timedelta(seconds=delay_s),
            created_at=now,
        )
    )

    logger.info(
        "outbox_event_enqueued",
        extra={"event_id": event_id, "topic": topic, "delay_s": delay_s},
    )
    return event_id


def fetch_pending(conn: Connection, limit: int = 50) -> list[dict[str, Any]]:
    """Return pending events in creation order."""
    rows = conn.execute(
        sa.select(EVENTS)
        .where(EVENTS.c.status == "pending")
        .order_by(EVENTS.c.created_at, EVENTS.c.id)
        .limit(limit)
    ).mappings()
    return [
        {
            "id": r["id"],
            "tenant_id": r["tenant_id"],
            "topic": r["topic"],
            "schema_version": r["schema_version"],
            "trace_id": r["trace_id"],
            "payload": json.loads(r["payload_json"]),
        }
        for r in rows
    ]


def mark_published(conn: Connection, event_ids: list[str]) -> int:
    if not event_ids:
        return 0
    result = conn.execute(
        sa.update(EVENTS)
        .where(EVENTS.c.id.in_(event_ids))
        .values(
            status="published",
            attempt_count=EVENTS.c.attempt_count + 1,
            published_at=datetime.now(timezone.utc),
        )
    )
    return result.rowcount


__all__ = ["EVENTS", "enqueue_event", "fetch_pending", "get_outbox_events_table", "mark_published"]
