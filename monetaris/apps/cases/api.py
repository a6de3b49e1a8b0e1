from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.engine import Engine

from monetaris.core.auth.context import CurrentUser, require_user
from monetaris.core.database import get_engine
from monetaris.core.pagination import Page
from monetaris.workflow import AdvanceWorkflowRequest, CaseStatus

from .models import (
    AllowedTransitionsOut,
    CaseDetail,
    CaseFilter,
    CaseHistoryOut,
    CaseListItem,
    CreateCaseRequest,
    DueActionItem,
    UpdateCaseRequest,
)
from .service import CaseService

router = APIRouter(prefix="/api/v1/cases", tags=["cases"])


def _service(engine: Engine = Depends(get_engine)) -> CaseService:
    return CaseService(engine)


@router.get("", response_model=Page[CaseListItem])
def list_cases(
    kreditor_id: str | None = Query(None),
    debtor_id: str | None = Query(None),
    agent_id: str | None = Query(None),
    case_status: CaseStatus | None = Query(None, alias="status"),
    min_amount: Decimal | None = Query(None, ge=0),
    max_amount: Decimal | None = Query(None, ge=0),
    search_query: str | None = Query(None, alias="q"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    user: CurrentUser = Depends(require_user),
    svc: CaseService = Depends(_service),
):
    flt = CaseFilter(
        kreditor_id=kreditor_id,
        debtor_id=debtor_id,
        agent_id=agent_id,
        status=case_status,
        min_amount=min_amount,
        max_amount=max_amount,
        search_query=search_query,
        page=page,
        page_size=page_size,
    )
    return svc.list_cases(flt, user)


@router.get("/due", response_model=list[DueActionItem])
def list_due_actions(
    limit: int = Query(100, ge=1, le=500),
    user: CurrentUser = Depends(require_user),
    svc: CaseService = Depends(_service),
):
    return svc.list_due_actions(user, limit=limit)


@router.get("/{case_id}", response_model=CaseDetail)
def get_case(case_id: str, user: CurrentUser = Depends(require_user), svc: CaseService = Depends(_service)):
    return svc.get_case(case_id, user)


@router.post("", response_model=CaseDetail, status_code=status.HTTP_201_CREATED)
def create_case(
    body: CreateCaseRequest,
    user: CurrentUser = Depends(require_user),
    svc: CaseService = Depends(_service),
):
    return svc.create_case(body, user)


@router.put("/{case_id}", response_model=CaseDetail)
def update_case(
    case_id: str,
    body: UpdateCaseRequest,
    user: CurrentUser = Depends(require_user),
    svc: CaseService = Depends(_service),
):
    return svc.update_case(case_id, body, user)


@router.delete("/{case_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_case(case_id: str, user: CurrentUser = Depends(require_user), svc: CaseService = Depends(_service)):
    svc.delete_case(case_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{case_id}/advance", response_model=CaseDetail)
def advance_workflow(
    case_id: str,
    body: AdvanceWorkflowRequest,
    user: CurrentUser = Depends(require_user),
    svc: CaseService = Depends(_service),
):
    return svc.advance_workflow(case_id, body, user)


@router.get("/{case_id}/history", response_model=list[CaseHistoryOut])
def get_history(case_id: str, user: CurrentUser = Depends(require_user), svc: CaseService = Depends(_service)):
    return svc.get_history(case_id, user)


@router.get("/{case_id}/transitions", response_model=AllowedTransitionsOut)
def get_allowed_transitions(
    case_id: str,
    user: CurrentUser = Depends(require_user),
    svc: CaseService = Depends(_service),
):
    return svc.get_allowed_transitions(case_id, user)
