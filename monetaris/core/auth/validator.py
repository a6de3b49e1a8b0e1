from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

Reason = Literal["missing", "malformed", "unknown", "inactive", "ok"]


UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


@dataclass
class IdentityValidationResult:
    ok: bool
    reason: Reason


def validate_identity_header(value: str | None) -> IdentityValidationResult:
    """Check the shape of an identity header before touching the database."""
    if value is None or not value.strip():
        return IdentityValidationResult(False, "missing")
    if not UUID_RE.match(value.strip()):
        return IdentityValidationResult(False, "malformed")
    return IdentityValidationResult(True, "ok")


def is_uuid(value: str | None) -> bool:
    return bool(value) and bool(UUID_RE.match(value))
