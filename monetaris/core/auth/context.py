from __future__ import annotations

from dataclasses import dataclass, field

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.engine import Connection, Engine

from monetaris.core.auth.validator import validate_identity_header
from monetaris.core.database import get_engine
from monetaris.core.enums import UserRole
from monetaris.core.observability.logging import set_tenant_id, set_trace_id, set_user_id
from monetaris.core.observability.metrics import increment_auth_failure
from monetaris.core.tables import user_kreditor_assignments, users

_FAILURES = {
    "missing": (status.HTTP_401_UNAUTHORIZED, "user_missing"),
    "malformed": (status.HTTP_401_UNAUTHORIZED, "user_malformed"),
    "unknown": (status.HTTP_401_UNAUTHORIZED, "user_unknown"),
    "inactive": (status.HTTP_403_FORBIDDEN, "user_inactive"),
}


@dataclass
class CurrentUser:
    """The authenticated actor of a request."""

    id: str
    name: str
    email: str
    role: UserRole
    kreditor_id: str | None = None
    assigned_kreditor_ids: frozenset[str] = field(default_factory=frozenset)
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def load_user(conn: Connection, user_id: str) -> CurrentUser | None:
    """Load a user with its kreditor assignments, or None if it does not exist."""
    row = conn.execute(select(users).where(users.c.id == user_id)).first()
    if row is None:
        return None
    assigned = conn.execute(
        select(user_kreditor_assignments.c.kreditor_id).where(
            user_kreditor_assignments.c.user_id == user_id
        )
    ).scalars()
    return CurrentUser(
        id=row.id,
        name=row.name,
        email=row.email,
        role=UserRole(row.role),
        kreditor_id=row.kreditor_id,
        assigned_kreditor_ids=frozenset(assigned),
        is_active=bool(row.is_active),
    )


def _fail(reason: str) -> None:
    increment_auth_failure(reason)
    code = _FAILURES[reason]
    raise HTTPException(status_code=code[0], detail={"error": code[1], "detail": reason})


def require_user(
    request: Request,
    user_header: str | None = Header(None, alias="X-User-ID", convert_underscores=False),
    engine: Engine = Depends(get_engine),
) -> CurrentUser:
    """FastAPI dependency resolving the acting user from the X-User-ID header.

    Token issuance happens upstream; this service trusts the gateway to set
    the header for authenticated sessions.
    """
    set_trace_id(getattr(request.state, "trace_id", None))
    res = validate_identity_header(user_header)
    if not res.ok:
        _fail(res.reason)
    with engine.connect() as conn:
        user = load_user(conn, user_header.strip().lower())
    if user is None:
        _fail("unknown")
    if not user.is_active:
        _fail("inactive")
    set_user_id(user.id)
    set_tenant_id(user.kreditor_id or "all")
    return user


def require_roles(*roles: UserRole):
    """Dependency factory admitting only the given roles."""
    allowed = frozenset(roles)

    def _dependency(user: CurrentUser = Depends(require_user)) -> CurrentUser:
        if user.role not in allowed:
            increment_auth_failure("role")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"error": "access_denied", "detail": f"Role {user.role.value} not permitted"},
            )
        return user

    return _dependency
