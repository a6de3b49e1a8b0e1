from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.engine import Engine

from monetaris.core.auth.context import CurrentUser, require_user
from monetaris.core.database import get_engine
from monetaris.core.enums import InquiryStatus

from .models import CreateInquiryRequest, InquiryOut, ResolveInquiryRequest
from .service import InquiryService

router = APIRouter(prefix="/api/v1/inquiries", tags=["inquiries"])


def _service(engine: Engine = Depends(get_engine)) -> InquiryService:
    return InquiryService(engine)


@router.get("", response_model=list[InquiryOut])
def list_inquiries(
    inquiry_status: InquiryStatus | None = Query(None, alias="status"),
    case_id: str | None = Query(None),
    user: CurrentUser = Depends(require_user),
    svc: InquiryService = Depends(_service),
):
    return svc.list_inquiries(user, inquiry_status, case_id)


@router.post("", response_model=InquiryOut, status_code=status.HTTP_201_CREATED)
def create_inquiry(
    body: CreateInquiryRequest,
    user: CurrentUser = Depends(require_user),
    svc: InquiryService = Depends(_service),
):
    return svc.create_inquiry(body, user)


@router.post("/{inquiry_id}/resolve", response_model=InquiryOut)
def resolve_inquiry(
    inquiry_id: str,
    body: ResolveInquiryRequest,
    user: CurrentUser = Depends(require_user),
    svc: InquiryService = Depends(_service),
):
    return svc.resolve_inquiry(inquiry_id, body, user)
