#!/usr/bin/env python3
"""List cases whose workflow next-action deadline has passed.

Output is JSON by default or a Markdown table with ``--format md``.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import sqlalchemy as sa

from monetaris.apps.cases.models import DueActionItem
from monetaris.apps.cases.service import CaseService
from monetaris.core.auth.context import CurrentUser
from monetaris.core.config import settings
from monetaris.core.enums import UserRole
from monetaris.core.observability.logging import get_logger, init_logging

init_logging()
logger = get_logger("tools.workflow_due_report")

SYSTEM_USER = CurrentUser(
    id="system", name="Workflow Report", email="system@localhost", role=UserRole.ADMIN
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Report overdue workflow actions")
    parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL")
    parser.add_argument("--kreditor-id", default=None, help="Restrict to one Kreditor")
    parser.add_argument("--as-of", default=None, help="ISO timestamp, defaults to now (UTC)")
    parser.add_argument("--limit", type=int, default=500)
    parser.add_argument("--format", choices=("json", "md"), default="json")
    parser.add_argument("--output", default=None, help="Write to file instead of stdout")
    return parser.parse_args(argv)


def _as_of(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def render_markdown(items: list[DueActionItem], as_of: datetime) -> str:
    lines = [
        f"# Workflow actions due ({as_of.date().isoformat()})",
        "",
        f"{len(items)} case(s) overdue.",
        "",
    ]
    if not items:
        return "\n".join(lines) + "\n"
    lines.append("| Invoice | Debtor | Status | Due since | Days overdue | Total |")
    lines.append("|---|---|---|---|---|---|")
    for item in items:
        lines.append(
            f"| {item.invoice_number} | {item.debtor_name} | {item.status.value} | "
            f"{item.next_action_date.date().isoformat()} | {item.days_overdue} | {item.total_amount} |"
        )
    return "\n".join(lines) + "\n"


def render_json(items: list[DueActionItem], as_of: datetime) -> str:
    report = {
        "as_of": as_of.isoformat(),
        "count": len(items),
        "items": [item.model_dump(mode="json") for item in items],
    }
    return json.dumps(report, indent=2)


def collect(engine: sa.engine.Engine, as_of: datetime, limit: int, kreditor_id: str | None = None) -> list[DueActionItem]:
    user = SYSTEM_USER
    if kreditor_id:
        # scope the query like an agent assigned to that one Kreditor
        user = replace(SYSTEM_USER, role=UserRole.AGENT, assigned_kreditor_ids=frozenset([kreditor_id]))
    return CaseService(engine).list_due_actions(user, now=as_of, limit=limit)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        as_of = _as_of(args.as_of)
    except ValueError:
        print(f"Invalid --as-of timestamp: {args.as_of}", file=sys.stderr)
        return 2

    engine = sa.create_engine(args.database_url or settings.database_url, future=True)
    items = collect(engine, as_of, args.limit, args.kreditor_id)
    text = render_markdown(items, as_of) if args.format == "md" else render_json(items, as_of)

    if args.output:
        path = Path(args.output)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    else:
        print(text)
    logger.info("workflow_due_report", extra={"count": len(items), "format": args.format})
    return 0


if __name__ == "__main__":
    sys.exit(main())
