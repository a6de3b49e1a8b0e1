"""Role based Kreditor scoping shared by all services."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from monetaris.core.auth.context import CurrentUser
from monetaris.core.enums import UserRole
from monetaris.core.errors import AccessDeniedError
from monetaris.core.observability.metrics import increment_access_denied


@dataclass(frozen=True)
class KreditorScope:
    """Set of Kreditor ids a user may see; ``kreditor_ids is None`` means all.

    - ADMIN: unrestricted
    - CLIENT: its own Kreditor, or nothing when none is linked
    - AGENT: Kreditoren assigned via user_kreditor_assignments
    - DEBTOR: no access to back-office data
    """

    kreditor_ids: frozenset[str] | None

    @classmethod
    def for_user(cls, user: CurrentUser, resource: str = "data") -> "KreditorScope":
        if user.role == UserRole.ADMIN:
            return cls(None)
        if user.role == UserRole.CLIENT:
            return cls(frozenset([user.kreditor_id]) if user.kreditor_id else frozenset())
        if user.role == UserRole.AGENT:
            return cls(user.assigned_kreditor_ids)
        increment_access_denied(resource)
        raise AccessDeniedError(f"Access denied: role {user.role.value} cannot access {resource}")

    @property
    def unrestricted(self) -> bool:
        return self.kreditor_ids is None

    def allows(self, kreditor_id: str | None) -> bool:
        if self.kreditor_ids is None:
            return True
        return kreditor_id is not None and kreditor_id in self.kreditor_ids

    def ensure(self, kreditor_id: str | None, resource: str = "data") -> None:
        if not self.allows(kreditor_id):
            increment_access_denied(resource)
            raise AccessDeniedError(f"Access denied to this {resource}")

    def condition(self, column: ColumnElement) -> ColumnElement | None:
        if self.kreditor_ids is None:
            return None
        return column.in_(sorted(self.kreditor_ids))

    def apply(self, stmt: Select, column: ColumnElement) -> Select:
        cond = self.condition(column)
        return stmt if cond is None else stmt.where(cond)
