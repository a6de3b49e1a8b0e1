"""Masking helpers for bank and contact data shown to restricted roles."""

from __future__ import annotations

from monetaris.core.enums import UserRole

# Shortest valid IBAN (Norway) has 15 characters
MIN_IBAN_LENGTH = 15


def mask_iban(iban: str | None) -> str:
    """Mask an IBAN keeping the country code and the last five characters.

    >>> mask_iban("DE89 3704 0044 0532 0130 00")
    'DE** **** **** **13000'
    """
    if iban is None or not iban.strip():
        return ""
    clean = iban.replace(" ", "").strip()
    if len(clean) < MIN_IBAN_LENGTH:
        return "****"
    return f"{clean[:2]}** **** **** **{clean[-5:]}"


def mask_email(email: str | None) -> str:
    if email is None or not email.strip():
        return ""
    parts = email.split("@")
    if len(parts) != 2:
        return "****@****"
    local, domain = parts
    masked_local = local[:2] + "***" if len(local) > 2 else "***"
    return f"{masked_local}@{domain}"


def can_view_full_iban(role: UserRole) -> bool:
    return role == UserRole.ADMIN
