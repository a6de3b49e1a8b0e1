from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from sqlalchemy.engine import Engine

from monetaris.core.auth.context import CurrentUser, require_user
from monetaris.core.database import get_engine

from .models import DocumentOut
from .service import DocumentService, max_upload_bytes

router = APIRouter(prefix="/api/v1/documents", tags=["documents"])


def _service(engine: Engine = Depends(get_engine)) -> DocumentService:
    return DocumentService(engine)


@router.get("", response_model=list[DocumentOut])
def list_documents(
    debtor_id: str | None = Query(None),
    user: CurrentUser = Depends(require_user),
    svc: DocumentService = Depends(_service),
):
    return svc.list_documents(user, debtor_id)


@router.get("/{document_id}", response_model=DocumentOut)
def get_document(
    document_id: str, user: CurrentUser = Depends(require_user), svc: DocumentService = Depends(_service)
):
    return svc.get_document(document_id, user)


@router.post("/debtor/{debtor_id}", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
def upload_document(
    debtor_id: str,
    file: UploadFile = File(...),
    user: CurrentUser = Depends(require_user),
    svc: DocumentService = Depends(_service),
):
    # one byte over the limit is enough to reject
    data = file.file.read(max_upload_bytes() + 1)
    return svc.upload_document(debtor_id, file.filename or "", data, user)


@router.get("/{document_id}/download")
def download_document(
    document_id: str, user: CurrentUser = Depends(require_user), svc: DocumentService = Depends(_service)
):
    doc = svc.download_document(document_id, user)
    return Response(
        content=doc.content,
        media_type=doc.content_type,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(doc.file_name)}"},
    )


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: str, user: CurrentUser = Depends(require_user), svc: DocumentService = Depends(_service)
):
    svc.delete_document(document_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
