#!/usr/bin/env python3
"""Create the Monetaris schema on an empty database.

Production databases are migrated with alembic (ops/alembic); this tool is
for local and test setups.
"""

from __future__ import annotations

import argparse
import sys

import sqlalchemy as sa

from monetaris.core.config import settings
from monetaris.core.database import create_schema
from monetaris.core.observability.logging import get_logger, init_logging

init_logging()
logger = get_logger("tools.init_db")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create all Monetaris tables")
    parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    url = args.database_url or settings.database_url
    engine = sa.create_engine(url, future=True)
    create_schema(engine)
    tables = sorted(sa.inspect(engine).get_table_names())
    logger.info("schema_created", extra={"tables": len(tables)})
    print(f"Created {len(tables)} tables: {', '.join(tables)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
