#!/usr/bin/env python3
"""Drain pending outbox events to stdout as JSON lines.

Each printed event is marked published in the same transaction, so a
downstream pipe sees every event once.
"""

from __future__ import annotations

import argparse
import json
import sys

import sqlalchemy as sa

from monetaris.core.config import settings
from monetaris.core.observability.logging import get_logger, init_logging
from monetaris.core.outbox import fetch_pending, mark_published

init_logging()
logger = get_logger("tools.outbox_drain")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print and publish pending outbox events")
    parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL")
    parser.add_argument("--limit", type=int, default=100)
    parser.add_argument("--topic", default=None, help="Only drain events of this topic")
    parser.add_argument("--dry-run", action="store_true", help="Print without marking published")
    return parser.parse_args(argv)


def drain(engine: sa.engine.Engine, limit: int, topic: str | None = None, dry_run: bool = False, out=None) -> int:
    out = out or sys.stdout
    with engine.begin() as conn:
        events = fetch_pending(conn, limit)
        if topic:
            events = [e for e in events if e["topic"] == topic]
        for event in events:
            out.write(json.dumps(event, sort_keys=True) + "\n")
        if not dry_run:
            mark_published(conn, [e["id"] for e in events])
    logger.info("outbox_drained", extra={"count": len(events), "dry_run": dry_run})
    return len(events)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    engine = sa.create_engine(args.database_url or settings.database_url, future=True)
    drain(engine, args.limit, args.topic, args.dry_run)
    return 0


if __name__ == "__main__":
    sys.exit(main())
