"""Engine access and small persistence helpers."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from monetaris.core.config import settings
from monetaris.core.tables import metadata

CENT = Decimal("0.01")


@lru_cache(maxsize=1)
def _get_engine() -> Engine:
    """Create (and cache) the SQLAlchemy engine for the configured database."""
    return sa.create_engine(settings.database_url, future=True)


def get_engine() -> Engine:
    """FastAPI dependency returning the application engine.

    Tests override this dependency with an engine bound to a scratch database.
    """
    return _get_engine()


def create_schema(engine: Engine) -> None:
    """Create all tables (used by tests and the init_db tool)."""
    # registers event_outbox on the shared metadata
    from monetaris.core.outbox import publisher  # noqa: F401

    metadata.create_all(engine)


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps read back from drivers without tz support."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_cents(amount: Decimal | int | float | None) -> int:
    if amount is None:
        return 0
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int | None) -> Decimal:
    return (Decimal(cents or 0) / 100).quantize(CENT)


def to_basis_points(rate: Decimal | None) -> int | None:
    if rate is None:
        return None
    return int((Decimal(str(rate)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_basis_points(bp: int | None) -> Decimal | None:
    if bp is None:
        return None
    return (Decimal(bp) / 100).quantize(CENT)


__all__ = [
    "as_utc",
    "create_schema",
    "from_basis_points",
    "from_cents",
    "get_engine",
    "new_id",
    "to_basis_points",
    "to_cents",
    "utcnow",
]
