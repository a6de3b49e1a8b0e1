from __future__ import annotations

from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from monetaris.core.auth.context import CurrentUser
from monetaris.core.database import as_utc, new_id, utcnow
from monetaris.core.enums import UserRole
from monetaris.core.errors import ConflictError, NotFoundError, ValidationFailedError
from monetaris.core.observability.logging import logger
from monetaris.core.tables import kreditoren, user_kreditor_assignments, users

from .models import CreateUserRequest, UserOut


def get_initials(name: str | None) -> str:
    """Avatar initials: first letters of first and last word, or two letters of a single word."""
    if not name or not name.strip():
        return "?"
    parts = name.split()
    if len(parts) >= 2:
        return (parts[0][0] + parts[-1][0]).upper()
    return parts[0][:2].upper()


def _assignments(conn: Connection, user_id: str) -> list[str]:
    return sorted(
        conn.execute(
            select(user_kreditor_assignments.c.kreditor_id).where(
                user_kreditor_assignments.c.user_id == user_id
            )
        ).scalars()
    )


def _to_out(conn: Connection, row) -> UserOut:
    return UserOut(
        id=row.id,
        name=row.name,
        email=row.email,
        role=UserRole(row.role),
        kreditor_id=row.kreditor_id,
        assigned_kreditor_ids=_assignments(conn, row.id),
        avatar_initials=row.avatar_initials,
        is_active=bool(row.is_active),
        created_at=as_utc(row.created_at),
    )


def _kreditor_exists(conn: Connection, kreditor_id: str) -> bool:
    return conn.execute(select(kreditoren.c.id).where(kreditoren.c.id == kreditor_id)).first() is not None


class UserService:
    """User administration. Authentication itself happens upstream."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def create_user(self, body: CreateUserRequest) -> UserOut:
        if body.role == UserRole.CLIENT and not body.kreditor_id:
            raise ValidationFailedError("Client users require a kreditor_id")
        if body.role != UserRole.CLIENT and body.kreditor_id:
            raise ValidationFailedError("Only client users are linked to a kreditor")

        user_id = new_id()
        now = utcnow()
        with self.engine.begin() as conn:
            if body.kreditor_id and not _kreditor_exists(conn, body.kreditor_id):
                raise NotFoundError("Kreditor not found")
            if conn.execute(select(users.c.id).where(users.c.email == body.email)).first():
                raise ConflictError("A user with this email already exists", code="duplicate_email")
            try:
                conn.execute(
                    insert(users).values(
                        id=user_id,
                        name=body.name.strip(),
                        email=body.email,
                        role=body.role.value,
                        kreditor_id=body.kreditor_id,
                        avatar_initials=get_initials(body.name),
                        is_active=True,
                        created_at=now,
                        updated_at=now,
                    )
                )
            except IntegrityError as exc:
                raise ConflictError("A user with this email already exists", code="duplicate_email") from exc
            row = conn.execute(select(users).where(users.c.id == user_id)).one()
            out = _to_out(conn, row)

        logger.info("user_created", extra={"user_id": user_id, "role": body.role.value})
        return out

    def list_users(self) -> list[UserOut]:
        with self.engine.connect() as conn:
            rows = conn.execute(select(users).order_by(users.c.name)).all()
            return [_to_out(conn, r) for r in rows]

    def get_user(self, user_id: str) -> UserOut:
        with self.engine.connect() as conn:
            row = conn.execute(select(users).where(users.c.id == user_id)).first()
            if row is None:
                raise NotFoundError("User not found")
            return _to_out(conn, row)

    def me(self, current: CurrentUser) -> UserOut:
        return self.get_user(current.id)

    def assign_kreditor(self, user_id: str, kreditor_id: str) -> UserOut:
        """Give an agent access to a Kreditor; assigning twice is a no-op."""
        with self.engine.begin() as conn:
            row = conn.execute(select(users).where(users.c.id == user_id)).first()
            if row is None:
                raise NotFoundError("User not found")
            if row.role != UserRole.AGENT.value:
                raise ValidationFailedError("Only agents can be assigned to kreditoren")
            if not _kreditor_exists(conn, kreditor_id):
                raise NotFoundError("Kreditor not found")
            existing = conn.execute(
                select(user_kreditor_assignments.c.user_id)
                .where(user_kreditor_assignments.c.user_id == user_id)
                .where(user_kreditor_assignments.c.kreditor_id == kreditor_id)
            ).first()
            if existing is None:
                conn.execute(
                    insert(user_kreditor_assignments).values(
                        user_id=user_id, kreditor_id=kreditor_id, assigned_at=utcnow()
                    )
                )
                logger.info(
                    "agent_assigned", extra={"user_id": user_id, "kreditor_id": kreditor_id}
                )
            return _to_out(conn, row)

    def unassign_kreditor(self, user_id: str, kreditor_id: str) -> UserOut:
        with self.engine.begin() as conn:
            row = conn.execute(select(users).where(users.c.id == user_id)).first()
            if row is None:
                raise NotFoundError("User not found")
            conn.execute(
                delete(user_kreditor_assignments)
                .where(user_kreditor_assignments.c.user_id == user_id)
                .where(user_kreditor_assignments.c.kreditor_id == kreditor_id)
            )
            return _to_out(conn, row)
