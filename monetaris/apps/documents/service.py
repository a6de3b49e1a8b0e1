from __future__ import annotations

import os

from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Connection, Engine

from monetaris.core.auth.context import CurrentUser
from monetaris.core.auth.scope import KreditorScope
from monetaris.core.config import settings
from monetaris.core.database import as_utc, new_id, utcnow
from monetaris.core.enums import DocumentType
from monetaris.core.errors import NotFoundError, ValidationFailedError
from monetaris.core.observability.logging import logger
from monetaris.core.observability.metrics import add_document_bytes, increment_documents_uploaded
from monetaris.core.tables import debtors, documents

from . import storage
from .models import DocumentDownload, DocumentOut

EXTENSION_TYPES = {
    ".pdf": DocumentType.PDF,
    ".jpg": DocumentType.IMAGE,
    ".jpeg": DocumentType.IMAGE,
    ".png": DocumentType.IMAGE,
    ".doc": DocumentType.WORD,
    ".docx": DocumentType.WORD,
    ".xls": DocumentType.EXCEL,
    ".xlsx": DocumentType.EXCEL,
}

CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xls": "application/vnd.ms-excel",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def allowed_extensions() -> set[str]:
    return {e.strip().lower() for e in settings.UPLOAD_EXTENSIONS.split(",") if e.strip()}


def max_upload_bytes() -> int:
    return settings.MAX_UPLOAD_MB * 1024 * 1024


def document_type_for(file_name: str) -> DocumentType:
    ext = os.path.splitext(file_name)[1].lower()
    return EXTENSION_TYPES.get(ext, DocumentType.PDF)


def _to_out(row) -> DocumentOut:
    return DocumentOut(
        id=row.id,
        debtor_id=row.debtor_id,
        name=row.name,
        type=DocumentType(row.type),
        size_bytes=row.size_bytes,
        preview_url=row.preview_url,
        uploaded_at=as_utc(row.uploaded_at),
    )


def _select():
    return select(documents, debtors.c.kreditor_id).join(debtors, debtors.c.id == documents.c.debtor_id)


def delete_debtor_documents(conn: Connection, debtor_id: str) -> list[str]:
    """Delete a debtor's document rows; returns the file paths for removal after commit."""
    paths = list(
        conn.execute(select(documents.c.file_path).where(documents.c.debtor_id == debtor_id)).scalars()
    )
    conn.execute(delete(documents).where(documents.c.debtor_id == debtor_id))
    return paths


class DocumentService:
    """Documents attached to debtors, stored on the local file system."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def list_documents(self, user: CurrentUser, debtor_id: str | None = None) -> list[DocumentOut]:
        scope = KreditorScope.for_user(user, "documents")
        stmt = scope.apply(_select(), debtors.c.kreditor_id)
        with self.engine.connect() as conn:
            if debtor_id:
                self._load_debtor(conn, debtor_id, scope)
                stmt = stmt.where(documents.c.debtor_id == debtor_id)
            rows = conn.execute(stmt.order_by(documents.c.uploaded_at.desc())).all()
        return [_to_out(r) for r in rows]

    def get_document(self, document_id: str, user: CurrentUser) -> DocumentOut:
        scope = KreditorScope.for_user(user, "documents")
        with self.engine.connect() as conn:
            row = self._load(conn, document_id, scope)
        return _to_out(row)

    def upload_document(
        self, debtor_id: str, file_name: str, data: bytes, user: CurrentUser
    ) -> DocumentOut:
        scope = KreditorScope.for_user(user, "documents")
        file_name = os.path.basename(file_name or "").strip()
        ext = os.path.splitext(file_name)[1].lower()

        with self.engine.connect() as conn:
            self._load_debtor(conn, debtor_id, scope)

        if not file_name or not data:
            raise ValidationFailedError("No file provided", code="file_missing")
        if len(data) > max_upload_bytes():
            raise ValidationFailedError(
                f"File size exceeds maximum allowed size of {settings.MAX_UPLOAD_MB} MB",
                code="file_too_large",
            )
        if ext not in allowed_extensions():
            raise ValidationFailedError(f"File type '{ext}' is not allowed", code="file_type")

        path = storage.put_bytes(debtor_id, data, ext)
        document_id = new_id()
        now = utcnow()
        try:
            with self.engine.begin() as conn:
                conn.execute(
                    insert(documents).values(
                        id=document_id,
                        debtor_id=debtor_id,
                        name=file_name,
                        type=document_type_for(file_name).value,
                        size_bytes=len(data),
                        file_path=path,
                        uploaded_at=now,
                        created_at=now,
                        updated_at=now,
                    )
                )
                row = self._load(conn, document_id, scope)
        except Exception:
            storage.delete_file(path)
            raise

        increment_documents_uploaded()
        add_document_bytes(len(data))
        logger.info(
            "document_uploaded",
            extra={"document_id": document_id, "debtor_id": debtor_id, "size_bytes": len(data)},
        )
        return _to_out(row)

    def download_document(self, document_id: str, user: CurrentUser) -> DocumentDownload:
        scope = KreditorScope.for_user(user, "documents")
        with self.engine.connect() as conn:
            row = self._load(conn, document_id, scope)
        try:
            content = storage.read_bytes(row.file_path)
        except storage.StorageError as exc:
            logger.warning("document_file_missing", extra={"document_id": document_id})
            raise NotFoundError("Document file not found on disk") from exc
        ext = os.path.splitext(row.name)[1].lower()
        return DocumentDownload(
            content=content,
            content_type=CONTENT_TYPES.get(ext, "application/octet-stream"),
            file_name=row.name,
        )

    def delete_document(self, document_id: str, user: CurrentUser) -> None:
        scope = KreditorScope.for_user(user, "documents")
        with self.engine.begin() as conn:
            row = self._load(conn, document_id, scope)
            conn.execute(delete(documents).where(documents.c.id == document_id))
        if not storage.delete_file(row.file_path):
            logger.warning("document_file_missing", extra={"document_id": document_id})

        logger.info("document_deleted", extra={"document_id": document_id})

    @staticmethod
    def _load_debtor(conn: Connection, debtor_id: str, scope: KreditorScope) -> None:
        kreditor_id = conn.execute(
            select(debtors.c.kreditor_id).where(debtors.c.id == debtor_id)
        ).scalar()
        if kreditor_id is None:
            raise NotFoundError("Debtor not found")
        scope.ensure(kreditor_id, "debtor")

    @staticmethod
    def _load(conn: Connection, document_id: str, scope: KreditorScope):
        row = conn.execute(_select().where(documents.c.id == document_id)).first()
        if row is None:
            raise NotFoundError("Document not found")
        scope.ensure(row.kreditor_id, "document")
        return row
