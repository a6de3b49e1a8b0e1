from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from monetaris.core.enums import UserRole

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def check_email(value: str | None) -> str | None:
    """Shared email format check for request models; blank becomes None."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if len(value) > 200 or not EMAIL_RE.match(value):
        raise ValueError("Invalid email format")
    return value


class CreateUserRequest(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    email: str
    role: UserRole
    kreditor_id: str | None = None

    @field_validator("email")
    @classmethod
    def _valid_email(cls, v: str) -> str:
        checked = check_email(v)
        if checked is None:
            raise ValueError("Email is required")
        return checked.lower()


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole
    kreditor_id: str | None = None
    assigned_kreditor_ids: list[str] = []
    avatar_initials: str | None = None
    is_active: bool
    created_at: datetime | None = None
