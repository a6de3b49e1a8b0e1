from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.engine import Engine

from monetaris.core.auth.context import CurrentUser, require_user
from monetaris.core.database import get_engine
from monetaris.core.enums import RiskScore
from monetaris.core.pagination import Page

from .models import CreateDebtorRequest, DebtorFilter, DebtorOut, DebtorSearchItem, UpdateDebtorRequest
from .service import DebtorService

router = APIRouter(prefix="/api/v1/debtors", tags=["debtors"])


def _service(engine: Engine = Depends(get_engine)) -> DebtorService:
    return DebtorService(engine)


@router.get("", response_model=Page[DebtorOut])
def list_debtors(
    kreditor_id: str | None = Query(None),
    agent_id: str | None = Query(None),
    risk_score: RiskScore | None = Query(None),
    search_query: str | None = Query(None, alias="q"),
    email: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    user: CurrentUser = Depends(require_user),
    svc: DebtorService = Depends(_service),
):
    flt = DebtorFilter(
        kreditor_id=kreditor_id,
        agent_id=agent_id,
        risk_score=risk_score,
        search_query=search_query,
        email=email,
        page=page,
        page_size=page_size,
    )
    return svc.list_debtors(flt, user)


@router.get("/search", response_model=list[DebtorSearchItem])
def search_debtors(
    q: str = Query(""),
    user: CurrentUser = Depends(require_user),
    svc: DebtorService = Depends(_service),
):
    return svc.search_debtors(q, user)


@router.get("/{debtor_id}", response_model=DebtorOut)
def get_debtor(debtor_id: str, user: CurrentUser = Depends(require_user), svc: DebtorService = Depends(_service)):
    return svc.get_debtor(debtor_id, user)


@router.post("", response_model=DebtorOut, status_code=status.HTTP_201_CREATED)
def create_debtor(
    body: CreateDebtorRequest,
    user: CurrentUser = Depends(require_user),
    svc: DebtorService = Depends(_service),
):
    return svc.create_debtor(body, user)


@router.put("/{debtor_id}", response_model=DebtorOut)
def update_debtor(
    debtor_id: str,
    body: UpdateDebtorRequest,
    user: CurrentUser = Depends(require_user),
    svc: DebtorService = Depends(_service),
):
    return svc.update_debtor(debtor_id, body, user)


@router.delete("/{debtor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_debtor(debtor_id: str, user: CurrentUser = Depends(require_user), svc: DebtorService = Depends(_service)):
    svc.delete_debtor(debtor_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
