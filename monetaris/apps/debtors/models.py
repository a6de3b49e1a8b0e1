from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from monetaris.apps.users.models import check_email
from monetaris.core.enums import AddressStatus, EntityType, RiskScore
from monetaris.core.party import PartyFields, normalize_iban


class DebtorFields(PartyFields):
    agent_id: str | None = None
    entity_type: EntityType = EntityType.NATURAL_PERSON
    company_name: str | None = Field(default=None, max_length=200)
    email: str | None = None
    address_status: AddressStatus = AddressStatus.UNKNOWN
    address_last_checked: datetime | None = None
    bank_iban: str | None = None
    register_number: str | None = Field(default=None, max_length=100)
    risk_score: RiskScore = RiskScore.C
    notes: str | None = None

    @field_validator("email")
    @classmethod
    def _valid_email(cls, v: str | None) -> str | None:
        return check_email(v)

    @field_validator("bank_iban")
    @classmethod
    def _valid_iban(cls, v: str | None) -> str | None:
        return normalize_iban(v)

    @model_validator(mode="after")
    def _names_match_entity_type(self):
        if self.entity_type == EntityType.NATURAL_PERSON:
            if not (self.first_name and self.first_name.strip()):
                raise ValueError("First name is required for natural persons")
            if not (self.last_name and self.last_name.strip()):
                raise ValueError("Last name is required for natural persons")
        elif not (self.company_name and self.company_name.strip()):
            raise ValueError("Company name is required for legal entities and partnerships")
        return self


class CreateDebtorRequest(DebtorFields):
    kreditor_id: str


class UpdateDebtorRequest(DebtorFields):
    pass


class DebtorOut(PartyFields):
    id: str
    kreditor_id: str
    kreditor_name: str | None = None
    agent_id: str | None = None
    display_name: str
    company_name: str | None = None
    email: str | None = None
    address_status: AddressStatus
    address_last_checked: datetime | None = None
    bank_iban: str | None = None
    register_number: str | None = None
    risk_score: RiskScore
    total_debt: Decimal
    open_cases: int
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DebtorSearchItem(BaseModel):
    id: str
    kreditor_id: str
    display_name: str
    email: str | None = None
    city: str | None = None
    open_cases: int
    total_debt: Decimal


class DebtorFilter(BaseModel):
    kreditor_id: str | None = None
    agent_id: str | None = None
    risk_score: RiskScore | None = None
    search_query: str | None = None
    email: str | None = None
    page: int = 1
    page_size: int | None = None
