from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.engine import Engine

from monetaris.core.auth.context import CurrentUser, require_user
from monetaris.core.database import get_engine
from monetaris.core.enums import TemplateCategory, TemplateType

from .models import (
    CreateTemplateRequest,
    RenderTemplateRequest,
    RenderTemplateResponse,
    TemplateOut,
    UpdateTemplateRequest,
)
from .service import TemplateService

router = APIRouter(prefix="/api/v1/templates", tags=["templates"])


def _service(engine: Engine = Depends(get_engine)) -> TemplateService:
    return TemplateService(engine)


@router.get("", response_model=list[TemplateOut])
def list_templates(
    template_type: TemplateType | None = Query(None, alias="type"),
    category: TemplateCategory | None = Query(None),
    user: CurrentUser = Depends(require_user),
    svc: TemplateService = Depends(_service),
):
    return svc.list_templates(user, template_type, category)


@router.get("/{template_id}", response_model=TemplateOut)
def get_template(
    template_id: str, user: CurrentUser = Depends(require_user), svc: TemplateService = Depends(_service)
):
    return svc.get_template(template_id, user)


@router.post("", response_model=TemplateOut, status_code=status.HTTP_201_CREATED)
def create_template(
    body: CreateTemplateRequest,
    user: CurrentUser = Depends(require_user),
    svc: TemplateService = Depends(_service),
):
    return svc.create_template(body, user)


@router.put("/{template_id}", response_model=TemplateOut)
def update_template(
    template_id: str,
    body: UpdateTemplateRequest,
    user: CurrentUser = Depends(require_user),
    svc: TemplateService = Depends(_service),
):
    return svc.update_template(template_id, body, user)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: str, user: CurrentUser = Depends(require_user), svc: TemplateService = Depends(_service)
):
    svc.delete_template(template_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{template_id}/render", response_model=RenderTemplateResponse)
def render_template(
    template_id: str,
    body: RenderTemplateRequest,
    user: CurrentUser = Depends(require_user),
    svc: TemplateService = Depends(_service),
):
    return svc.render_template(template_id, body, user)


@router.post("/{template_id}/render-payment", response_model=RenderTemplateResponse)
def render_payment_template(
    template_id: str,
    body: RenderTemplateRequest,
    user: CurrentUser = Depends(require_user),
    svc: TemplateService = Depends(_service),
):
    return svc.render_payment_template(template_id, body, user)
