"""Health, readiness and ops metrics endpoints."""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.engine import Engine

from monetaris import __version__
from monetaris.core.auth.context import CurrentUser, require_roles
from monetaris.core.database import get_engine
from monetaris.core.enums import UserRole
from monetaris.core.observability.logging import logger
from monetaris.core.observability.metrics import get_metrics

router = APIRouter()


def check_database(engine: Engine) -> str:
    """Check database connectivity with light query."""
    try:
        with engine.connect() as conn:
            row = conn.execute(text("SELECT 1 AS health_check")).first()
        return "OK" if row and row.health_check == 1 else "FAIL"
    except Exception as exc:
        logger.warning("health_db_check_failed", extra={"error": str(exc)})
        return "FAIL"


@router.get("/health/ready")
def readiness_check(engine: Engine = Depends(get_engine)) -> dict[str, Any]:
    """Readiness endpoint for load balancers."""
    db_status = check_database(engine)
    return {
        "status": "OK" if db_status == "OK" else "DEGRADED",
        "version": __version__,
        "db": db_status,
    }


@router.get("/health/live")
def liveness_check() -> dict[str, str]:
    """Liveness endpoint - always OK if service is running."""
    return {"status": "OK"}


@router.get("/ops/metrics")
def metrics_snapshot(user: CurrentUser = Depends(require_roles(UserRole.ADMIN))) -> dict[str, Any]:
    return get_metrics()
