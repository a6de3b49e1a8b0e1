from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.engine import Engine

from monetaris.core.auth.context import CurrentUser, require_user
from monetaris.core.database import get_engine

from .models import KreditorOut, KreditorRequest
from .service import KreditorService

router = APIRouter(prefix="/api/v1/kreditoren", tags=["kreditoren"])


def _service(engine: Engine = Depends(get_engine)) -> KreditorService:
    return KreditorService(engine)


@router.get("", response_model=list[KreditorOut])
def list_kreditoren(user: CurrentUser = Depends(require_user), svc: KreditorService = Depends(_service)):
    return svc.list_kreditoren(user)


@router.get("/{kreditor_id}", response_model=KreditorOut)
def get_kreditor(
    kreditor_id: str,
    user: CurrentUser = Depends(require_user),
    svc: KreditorService = Depends(_service),
):
    return svc.get_kreditor(kreditor_id, user)


@router.post("", response_model=KreditorOut, status_code=status.HTTP_201_CREATED)
def create_kreditor(
    body: KreditorRequest,
    user: CurrentUser = Depends(require_user),
    svc: KreditorService = Depends(_service),
):
    return svc.create_kreditor(body, user)


@router.put("/{kreditor_id}", response_model=KreditorOut)
def update_kreditor(
    kreditor_id: str,
    body: KreditorRequest,
    user: CurrentUser = Depends(require_user),
    svc: KreditorService = Depends(_service),
):
    return svc.update_kreditor(kreditor_id, body, user)


@router.delete("/{kreditor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_kreditor(
    kreditor_id: str,
    user: CurrentUser = Depends(require_user),
    svc: KreditorService = Depends(_service),
):
    svc.delete_kreditor(kreditor_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
