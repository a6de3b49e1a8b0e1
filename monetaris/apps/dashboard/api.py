from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.engine import Engine

from monetaris.core.auth.context import CurrentUser, require_user
from monetaris.core.database import get_engine

from .models import DashboardStats, FinancialChart, SearchResult
from .service import DashboardService

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


def _service(engine: Engine = Depends(get_engine)) -> DashboardService:
    return DashboardService(engine)


@router.get("/stats", response_model=DashboardStats)
def get_stats(user: CurrentUser = Depends(require_user), svc: DashboardService = Depends(_service)):
    return svc.get_stats(user)


@router.get("/financial", response_model=FinancialChart)
def get_financial_chart(user: CurrentUser = Depends(require_user), svc: DashboardService = Depends(_service)):
    return svc.get_financial_chart(user)


@router.get("/search", response_model=list[SearchResult])
def search(
    q: str = Query("", max_length=200),
    user: CurrentUser = Depends(require_user),
    svc: DashboardService = Depends(_service),
):
    return svc.search(q, user)
