from __future__ import annotations

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from monetaris.core.auth.context import CurrentUser
from monetaris.core.auth.scope import KreditorScope
from monetaris.core.database import as_utc, from_cents, new_id, utcnow
from monetaris.core.errors import AccessDeniedError, ConflictError, NotFoundError
from monetaris.core.masking import can_view_full_iban, mask_iban
from monetaris.core.observability.logging import logger
from monetaris.core.party import PARTY_COLUMNS, enum_values
from monetaris.core.tables import CASE_TOTAL_CENTS, cases, debtors, kreditoren

from .models import KreditorOut, KreditorRequest

_FIELDS = (*PARTY_COLUMNS, "name", "registration_number", "contact_email", "bank_account_iban")


def _stats(conn: Connection, ids: list[str] | None) -> dict[str, tuple[int, int, int]]:
    """(debtors, cases, volume cents) per Kreditor id."""
    debtor_q = select(debtors.c.kreditor_id, func.count()).group_by(debtors.c.kreditor_id)
    case_q = select(
        cases.c.kreditor_id, func.count(), func.coalesce(func.sum(CASE_TOTAL_CENTS), 0)
    ).group_by(cases.c.kreditor_id)
    if ids is not None:
        debtor_q = debtor_q.where(debtors.c.kreditor_id.in_(ids))
        case_q = case_q.where(cases.c.kreditor_id.in_(ids))

    result: dict[str, list[int]] = {}
    for kid, n in conn.execute(debtor_q):
        result.setdefault(kid, [0, 0, 0])[0] = n
    for kid, n, volume in conn.execute(case_q):
        entry = result.setdefault(kid, [0, 0, 0])
        entry[1] = n
        entry[2] = int(volume or 0)
    return {k: tuple(v) for k, v in result.items()}


def _to_out(row, stats: tuple[int, int, int], user: CurrentUser) -> KreditorOut:
    data = {k: getattr(row, k) for k in _FIELDS}
    if not can_view_full_iban(user.role):
        data["bank_account_iban"] = mask_iban(row.bank_account_iban)
    return KreditorOut(
        id=row.id,
        **data,
        total_debtors=stats[0],
        total_cases=stats[1],
        total_volume=from_cents(stats[2]),
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def _require_admin(user: CurrentUser, action: str) -> None:
    if not user.is_admin:
        raise AccessDeniedError(f"Access denied: only administrators can {action} kreditoren")


class KreditorService:
    """Creditor (tenant) management."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def list_kreditoren(self, user: CurrentUser) -> list[KreditorOut]:
        scope = KreditorScope.for_user(user, "kreditoren")
        with self.engine.connect() as conn:
            stmt = scope.apply(select(kreditoren), kreditoren.c.id).order_by(kreditoren.c.name)
            rows = conn.execute(stmt).all()
            stats = _stats(conn, None if scope.unrestricted else [r.id for r in rows])
        return [_to_out(r, stats.get(r.id, (0, 0, 0)), user) for r in rows]

    def get_kreditor(self, kreditor_id: str, user: CurrentUser) -> KreditorOut:
        scope = KreditorScope.for_user(user, "kreditoren")
        with self.engine.connect() as conn:
            row = conn.execute(select(kreditoren).where(kreditoren.c.id == kreditor_id)).first()
            if row is None:
                raise NotFoundError("Kreditor not found")
            scope.ensure(row.id, "kreditor")
            stats = _stats(conn, [row.id]).get(row.id, (0, 0, 0))
        return _to_out(row, stats, user)

    def create_kreditor(self, body: KreditorRequest, user: CurrentUser) -> KreditorOut:
        _require_admin(user, "create")
        kreditor_id = new_id()
        now = utcnow()
        values = enum_values(body.model_dump(include=set(_FIELDS)))
        with self.engine.begin() as conn:
            self._ensure_unique_registration(conn, body.registration_number)
            try:
                conn.execute(
                    insert(kreditoren).values(id=kreditor_id, created_at=now, updated_at=now, **values)
                )
            except IntegrityError as exc:
                raise ConflictError(
                    "Registration number already exists", code="duplicate_registration"
                ) from exc
            row = conn.execute(select(kreditoren).where(kreditoren.c.id == kreditor_id)).one()

        logger.info("kreditor_created", extra={"kreditor_id": kreditor_id})
        return _to_out(row, (0, 0, 0), user)

    def update_kreditor(self, kreditor_id: str, body: KreditorRequest, user: CurrentUser) -> KreditorOut:
        _require_admin(user, "update")
        values = enum_values(body.model_dump(include=set(_FIELDS)))
        with self.engine.begin() as conn:
            row = conn.execute(select(kreditoren).where(kreditoren.c.id == kreditor_id)).first()
            if row is None:
                raise NotFoundError("Kreditor not found")
            if body.registration_number != row.registration_number:
                self._ensure_unique_registration(conn, body.registration_number)
            conn.execute(
                update(kreditoren)
                .where(kreditoren.c.id == kreditor_id)
                .values(updated_at=utcnow(), **values)
            )
            row = conn.execute(select(kreditoren).where(kreditoren.c.id == kreditor_id)).one()
            stats = _stats(conn, [kreditor_id]).get(kreditor_id, (0, 0, 0))

        logger.info("kreditor_updated", extra={"kreditor_id": kreditor_id})
        return _to_out(row, stats, user)

    def delete_kreditor(self, kreditor_id: str, user: CurrentUser) -> None:
        """Delete a Kreditor that has no debtors and no cases."""
        _require_admin(user, "delete")
        with self.engine.begin() as conn:
            row = conn.execute(select(kreditoren.c.id).where(kreditoren.c.id == kreditor_id)).first()
            if row is None:
                raise NotFoundError("Kreditor not found")
            stats = _stats(conn, [kreditor_id]).get(kreditor_id, (0, 0, 0))
            if stats[0] or stats[1]:
                raise ConflictError(
                    f"Cannot delete kreditor with {stats[0]} debtors and {stats[1]} cases",
                    code="kreditor_in_use",
                )
            conn.execute(delete(kreditoren).where(kreditoren.c.id == kreditor_id))

        logger.info("kreditor_deleted", extra={"kreditor_id": kreditor_id})

    @staticmethod
    def _ensure_unique_registration(conn: Connection, registration_number: str) -> None:
        exists = conn.execute(
            select(kreditoren.c.id).where(kreditoren.c.registration_number == registration_number)
        ).first()
        if exists:
            raise ConflictError("Registration number already exists", code="duplicate_registration")
