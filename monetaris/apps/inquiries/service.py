from __future__ import annotations

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Connection, Engine

from monetaris.core.auth.context import CurrentUser
from monetaris.core.auth.scope import KreditorScope
from monetaris.core.database import as_utc, new_id, utcnow
from monetaris.core.enums import InquiryStatus
from monetaris.core.errors import NotFoundError, ValidationFailedError
from monetaris.core.observability.logging import logger
from monetaris.core.tables import cases, inquiries, users

from .models import CreateInquiryRequest, InquiryOut, ResolveInquiryRequest


def _select():
    return (
        select(
            inquiries,
            cases.c.kreditor_id,
            cases.c.invoice_number.label("case_invoice_number"),
            users.c.name.label("created_by_name"),
        )
        .join(cases, cases.c.id == inquiries.c.case_id)
        .join(users, users.c.id == inquiries.c.created_by, isouter=True)
    )


def _to_out(row) -> InquiryOut:
    return InquiryOut(
        id=row.id,
        case_id=row.case_id,
        case_invoice_number=row.case_invoice_number,
        question=row.question,
        answer=row.answer,
        status=InquiryStatus(row.status),
        created_by=row.created_by,
        created_by_name=row.created_by_name,
        created_at=as_utc(row.created_at),
        resolved_at=as_utc(row.resolved_at),
    )


class InquiryService:
    """Questions raised on a case and their answers."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def list_inquiries(
        self, user: CurrentUser, status: InquiryStatus | None = None, case_id: str | None = None
    ) -> list[InquiryOut]:
        scope = KreditorScope.for_user(user, "inquiries")
        stmt = scope.apply(_select(), cases.c.kreditor_id)
        if status is not None:
            stmt = stmt.where(inquiries.c.status == status.value)
        if case_id:
            stmt = stmt.where(inquiries.c.case_id == case_id)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt.order_by(inquiries.c.created_at.desc())).all()
        return [_to_out(r) for r in rows]

    def create_inquiry(self, body: CreateInquiryRequest, user: CurrentUser) -> InquiryOut:
        scope = KreditorScope.for_user(user, "inquiries")
        inquiry_id = new_id()
        now = utcnow()
        with self.engine.begin() as conn:
            case_row = conn.execute(
                select(cases.c.id, cases.c.kreditor_id).where(cases.c.id == body.case_id)
            ).first()
            if case_row is None:
                raise NotFoundError("Case not found")
            scope.ensure(case_row.kreditor_id, "case")
            conn.execute(
                insert(inquiries).values(
                    id=inquiry_id,
                    case_id=body.case_id,
                    question=body.question,
                    status=InquiryStatus.OPEN.value,
                    created_by=user.id,
                    created_at=now,
                    updated_at=now,
                )
            )
            out = _to_out(self._load(conn, inquiry_id))

        logger.info("inquiry_created", extra={"inquiry_id": inquiry_id, "case_id": body.case_id})
        return out

    def resolve_inquiry(self, inquiry_id: str, body: ResolveInquiryRequest, user: CurrentUser) -> InquiryOut:
        scope = KreditorScope.for_user(user, "inquiries")
        now = utcnow()
        with self.engine.begin() as conn:
            row = self._load(conn, inquiry_id)
            scope.ensure(row.kreditor_id, "inquiry")
            if row.status == InquiryStatus.RESOLVED.value:
                raise ValidationFailedError("Inquiry is already resolved", code="already_resolved")
            conn.execute(
                update(inquiries)
                .where(inquiries.c.id == inquiry_id)
                .values(
                    answer=body.answer,
                    status=InquiryStatus.RESOLVED.value,
                    resolved_at=now,
                    updated_at=now,
                )
            )
            out = _to_out(self._load(conn, inquiry_id))

        logger.info("inquiry_resolved", extra={"inquiry_id": inquiry_id})
        return out

    @staticmethod
    def _load(conn: Connection, inquiry_id: str):
        row = conn.execute(_select().where(inquiries.c.id == inquiry_id)).first()
        if row is None:
            raise NotFoundError("Inquiry not found")
        return row
