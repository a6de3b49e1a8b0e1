from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import Field, field_validator

from monetaris.apps.users.models import check_email
from monetaris.core.enums import EntityType
from monetaris.core.party import PartyFields, normalize_iban


class KreditorRequest(PartyFields):
    """Body for create and update; updates replace all fields."""

    name: str = Field(min_length=2, max_length=200)
    registration_number: str = Field(min_length=1, max_length=100)
    contact_email: str
    bank_account_iban: str
    entity_type: EntityType = EntityType.LEGAL_ENTITY

    @field_validator("contact_email")
    @classmethod
    def _valid_email(cls, v: str) -> str:
        checked = check_email(v)
        if checked is None:
            raise ValueError("Contact email is required")
        return checked

    @field_validator("bank_account_iban")
    @classmethod
    def _valid_iban(cls, v: str) -> str:
        iban = normalize_iban(v)
        if iban is None:
            raise ValueError("Bank account IBAN is required")
        return iban

    @field_validator("name", "registration_number")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class KreditorOut(PartyFields):
    id: str
    name: str
    registration_number: str
    contact_email: str
    bank_account_iban: str
    total_debtors: int = 0
    total_cases: int = 0
    total_volume: Decimal = Decimal("0.00")
    created_at: datetime | None = None
    updated_at: datetime | None = None
