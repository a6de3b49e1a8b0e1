"""Field groups shared by Kreditor and Debtor models."""

from __future__ import annotations

import re
from datetime import date

from pydantic import BaseModel, Field, field_validator

from monetaris.core.enums import DoorPosition, EntityType, Gender

IBAN_RE = re.compile(r"^[A-Z]{2}\d{2}[A-Z0-9]{11,30}$")


def normalize_iban(value: str | None) -> str | None:
    """Strip spaces and upper-case; raise ValueError for malformed IBANs."""
    if value is None:
        return None
    clean = value.replace(" ", "").strip().upper()
    if not clean:
        return None
    if not IBAN_RE.match(clean):
        raise ValueError("Invalid IBAN format")
    return clean


class PersonFields(BaseModel):
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    birth_name: str | None = Field(default=None, max_length=100)
    gender: Gender | None = None
    date_of_birth: date | None = None
    birth_place: str | None = Field(default=None, max_length=100)
    birth_country: str | None = Field(default=None, max_length=100)


class AddressFields(BaseModel):
    street: str | None = Field(default=None, max_length=200)
    house_number: str | None = Field(default=None, max_length=20)
    zip_code: str | None = Field(default=None, max_length=20)
    city: str | None = Field(default=None, max_length=100)
    city_district: str | None = Field(default=None, max_length=100)
    floor: str | None = Field(default=None, max_length=50)
    door_position: DoorPosition | None = None
    additional_address_info: str | None = Field(default=None, max_length=500)
    po_box: str | None = Field(default=None, max_length=50)
    po_box_zip_code: str | None = Field(default=None, max_length=20)
    country: str = Field(default="Deutschland", max_length=100)

    @field_validator("country")
    @classmethod
    def _country_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Country is required")
        return v.strip()


class ContactFields(BaseModel):
    represented_by: str | None = Field(default=None, max_length=200)
    is_deceased: bool = False
    place_of_death: str | None = Field(default=None, max_length=100)
    phone_landline: str | None = Field(default=None, max_length=50)
    phone_mobile: str | None = Field(default=None, max_length=50)
    fax: str | None = Field(default=None, max_length=50)
    ebo_address: str | None = Field(default=None, max_length=200)
    bank_bic: str | None = Field(default=None, max_length=11)
    bank_name: str | None = Field(default=None, max_length=200)
    register_court: str | None = Field(default=None, max_length=200)
    vat_id: str | None = Field(default=None, max_length=50)
    partners: str | None = None
    file_reference: str | None = Field(default=None, max_length=100)


class PartyFields(PersonFields, AddressFields, ContactFields):
    entity_type: EntityType


PARTY_COLUMNS = tuple(PartyFields.model_fields)


def enum_values(data: dict) -> dict:
    """Replace Enum members by their values for insertion into String columns."""
    return {k: (v.value if hasattr(v, "value") else v) for k, v in data.items()}


def display_name(entity_type: str | EntityType, company_name: str | None,
                 first_name: str | None, last_name: str | None) -> str:
    """Company name for organisations, "First Last" for natural persons."""
    kind = EntityType(entity_type)
    if kind != EntityType.NATURAL_PERSON:
        return company_name or "Unknown"
    name = " ".join(p for p in (first_name, last_name) if p)
    return name or "Unknown"
