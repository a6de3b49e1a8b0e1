from __future__ import annotations

from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.engine import Connection, Engine

from monetaris.apps.documents import storage
from monetaris.apps.documents.service import delete_debtor_documents
from monetaris.core.auth.context import CurrentUser
from monetaris.core.auth.scope import KreditorScope
from monetaris.core.config import settings
from monetaris.core.database import as_utc, from_cents, new_id, utcnow
from monetaris.core.enums import UserRole
from monetaris.core.errors import ConflictError, NotFoundError, ValidationFailedError
from monetaris.core.observability.logging import logger
from monetaris.core.pagination import Page, normalize_paging
from monetaris.core.party import display_name, enum_values
from monetaris.core.tables import cases, debtors, kreditoren, users

from .models import (
    CreateDebtorRequest,
    DebtorFields,
    DebtorFilter,
    DebtorOut,
    DebtorSearchItem,
    UpdateDebtorRequest,
)

_FIELDS = tuple(DebtorFields.model_fields)
SEARCH_LIMIT = 10


def debtor_display_name(row) -> str:
    return display_name(row.entity_type, row.company_name, row.first_name, row.last_name)


def search_condition(query: str):
    """Case-insensitive substring match over names, email and city."""
    needle = query.strip().lower()
    return or_(
        *(
            func.lower(col).contains(needle, autoescape=True)
            for col in (
                debtors.c.company_name,
                debtors.c.first_name,
                debtors.c.last_name,
                debtors.c.email,
                debtors.c.city,
            )
        )
    )


def apply_debtor_delta(conn: Connection, debtor_id: str, open_cases: int = 0, total_debt_cents: int = 0) -> None:
    """Adjust a debtor's aggregate statistics, never going below zero."""
    if not open_cases and not total_debt_cents:
        return
    row = conn.execute(
        select(debtors.c.open_cases, debtors.c.total_debt_cents).where(debtors.c.id == debtor_id)
    ).first()
    if row is None:
        return
    conn.execute(
        update(debtors)
        .where(debtors.c.id == debtor_id)
        .values(
            open_cases=max(0, (row.open_cases or 0) + open_cases),
            total_debt_cents=max(0, (row.total_debt_cents or 0) + total_debt_cents),
            updated_at=utcnow(),
        )
    )


def ensure_agent(conn: Connection, agent_id: str | None) -> None:
    if agent_id is None:
        return
    role = conn.execute(select(users.c.role).where(users.c.id == agent_id)).scalar()
    if role is None:
        raise NotFoundError("Agent not found")
    if role != UserRole.AGENT.value:
        raise ValidationFailedError("Assigned user must have role AGENT")


def _to_out(row, kreditor_name: str | None = None) -> DebtorOut:
    data = {k: getattr(row, k) for k in _FIELDS}
    data["address_last_checked"] = as_utc(row.address_last_checked)
    return DebtorOut(
        id=row.id,
        kreditor_id=row.kreditor_id,
        kreditor_name=kreditor_name,
        display_name=debtor_display_name(row),
        total_debt=from_cents(row.total_debt_cents),
        open_cases=row.open_cases or 0,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
        **data,
    )


class DebtorService:
    """Debtor management scoped by the acting user's Kreditoren."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def list_debtors(self, flt: DebtorFilter, user: CurrentUser) -> Page[DebtorOut]:
        scope = KreditorScope.for_user(user, "debtors")
        page, size = normalize_paging(flt.page, flt.page_size)

        conditions = []
        cond = scope.condition(debtors.c.kreditor_id)
        if cond is not None:
            conditions.append(cond)
        if flt.kreditor_id:
            conditions.append(debtors.c.kreditor_id == flt.kreditor_id)
        if flt.agent_id:
            conditions.append(debtors.c.agent_id == flt.agent_id)
        if flt.risk_score:
            conditions.append(debtors.c.risk_score == flt.risk_score.value)
        if flt.email:
            conditions.append(func.lower(debtors.c.email) == flt.email.strip().lower())
        if flt.search_query and flt.search_query.strip():
            conditions.append(search_condition(flt.search_query))

        with self.engine.connect() as conn:
            total = conn.execute(
                select(func.count()).select_from(debtors).where(*conditions)
            ).scalar_one()
            rows = conn.execute(
                select(debtors, kreditoren.c.name.label("kreditor_name"))
                .join(kreditoren, kreditoren.c.id == debtors.c.kreditor_id)
                .where(*conditions)
                .order_by(debtors.c.created_at.desc(), debtors.c.id)
                .offset((page - 1) * size)
                .limit(size)
            ).all()
        return Page[DebtorOut].build([_to_out(r, r.kreditor_name) for r in rows], total, page, size)

    def get_debtor(self, debtor_id: str, user: CurrentUser) -> DebtorOut:
        scope = KreditorScope.for_user(user, "debtors")
        with self.engine.connect() as conn:
            row = self._load(conn, debtor_id)
            scope.ensure(row.kreditor_id, "debtor")
        return _to_out(row, row.kreditor_name)

    def create_debtor(self, body: CreateDebtorRequest, user: CurrentUser) -> DebtorOut:
        scope = KreditorScope.for_user(user, "debtors")
        debtor_id = new_id()
        now = utcnow()
        with self.engine.begin() as conn:
            exists = conn.execute(
                select(kreditoren.c.id).where(kreditoren.c.id == body.kreditor_id)
            ).first()
            if exists is None:
                raise NotFoundError("Kreditor not found")
            scope.ensure(body.kreditor_id, "kreditor")
            ensure_agent(conn, body.agent_id)
            conn.execute(
                insert(debtors).values(
                    id=debtor_id,
                    kreditor_id=body.kreditor_id,
                    total_debt_cents=0,
                    open_cases=0,
                    created_at=now,
                    updated_at=now,
                    **enum_values(body.model_dump(include=set(_FIELDS))),
                )
            )
            row = self._load(conn, debtor_id)

        logger.info("debtor_created", extra={"debtor_id": debtor_id, "kreditor_id": body.kreditor_id})
        return _to_out(row, row.kreditor_name)

    def update_debtor(self, debtor_id: str, body: UpdateDebtorRequest, user: CurrentUser) -> DebtorOut:
        scope = KreditorScope.for_user(user, "debtors")
        with self.engine.begin() as conn:
            row = self._load(conn, debtor_id)
            scope.ensure(row.kreditor_id, "debtor")
            ensure_agent(conn, body.agent_id)
            conn.execute(
                update(debtors)
                .where(debtors.c.id == debtor_id)
                .values(updated_at=utcnow(), **enum_values(body.model_dump(include=set(_FIELDS))))
            )
            row = self._load(conn, debtor_id)

        logger.info("debtor_updated", extra={"debtor_id": debtor_id})
        return _to_out(row, row.kreditor_name)

    def delete_debtor(self, debtor_id: str, user: CurrentUser) -> None:
        """Delete a debtor without cases; documents are removed with it."""
        scope = KreditorScope.for_user(user, "debtors")
        with self.engine.begin() as conn:
            row = self._load(conn, debtor_id)
            scope.ensure(row.kreditor_id, "debtor")
            n_cases = conn.execute(
                select(func.count()).select_from(cases).where(cases.c.debtor_id == debtor_id)
            ).scalar_one()
            if n_cases:
                raise ConflictError(
                    f"Cannot delete debtor with {n_cases} existing cases", code="debtor_in_use"
                )
            file_paths = delete_debtor_documents(conn, debtor_id)
            conn.execute(delete(debtors).where(debtors.c.id == debtor_id))

        for path in file_paths:
            storage.delete_file(path)
        storage.delete_debtor_dir(debtor_id)
        logger.info("debtor_deleted", extra={"debtor_id": debtor_id})

    def search_debtors(self, query: str, user: CurrentUser) -> list[DebtorSearchItem]:
        """Quick search for autocomplete; short queries return nothing."""
        scope = KreditorScope.for_user(user, "debtors")
        if not query or len(query.strip()) < settings.SEARCH_MIN_CHARS:
            return []
        stmt = scope.apply(
            select(debtors).where(search_condition(query)), debtors.c.kreditor_id
        ).order_by(debtors.c.last_name, debtors.c.company_name).limit(SEARCH_LIMIT)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).all()
        return [
            DebtorSearchItem(
                id=r.id,
                kreditor_id=r.kreditor_id,
                display_name=debtor_display_name(r),
                email=r.email,
                city=r.city,
                open_cases=r.open_cases or 0,
                total_debt=from_cents(r.total_debt_cents),
            )
            for r in rows
        ]

    @staticmethod
    def _load(conn: Connection, debtor_id: str):
        row = conn.execute(
            select(debtors, kreditoren.c.name.label("kreditor_name"))
            .join(kreditoren, kreditoren.c.id == debtors.c.kreditor_id)
            .where(debtors.c.id == debtor_id)
        ).first()
        if row is None:
            raise NotFoundError("Debtor not found")
        return row
