"""SQLAlchemy Core table definitions.

All monetary amounts are stored as integer cents; interest rates as basis
points (1 % == 100). Enumerations are stored by name.
"""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)

naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=naming_convention)


def _timestamps() -> list[Column]:
    return [
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("updated_at", DateTime(timezone=True), nullable=False),
    ]


def _address_columns() -> list[Column]:
    return [
        Column("street", String(200)),
        Column("house_number", String(20)),
        Column("zip_code", String(20)),
        Column("city", String(100)),
        Column("city_district", String(100)),
        Column("floor", String(50)),
        Column("door_position", String(16)),
        Column("additional_address_info", String(500)),
        Column("po_box", String(50)),
        Column("po_box_zip_code", String(20)),
        Column("country", String(100), nullable=False, default="Deutschland"),
    ]


def _person_columns() -> list[Column]:
    return [
        Column("first_name", String(100)),
        Column("last_name", String(100)),
        Column("birth_name", String(100)),
        Column("gender", String(16)),
        Column("date_of_birth", Date),
        Column("birth_place", String(100)),
        Column("birth_country", String(100)),
    ]


def _contact_columns() -> list[Column]:
    return [
        Column("represented_by", String(200)),
        Column("is_deceased", Boolean, nullable=False, default=False),
        Column("place_of_death", String(100)),
        Column("phone_landline", String(50)),
        Column("phone_mobile", String(50)),
        Column("fax", String(50)),
        Column("ebo_address", String(200)),
        Column("bank_bic", String(11)),
        Column("bank_name", String(200)),
        Column("register_court", String(200)),
        Column("vat_id", String(50)),
        Column("partners", Text),
        Column("file_reference", String(100)),
    ]


kreditoren = Table(
    "kreditoren",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(200), nullable=False),
    Column("registration_number", String(100), nullable=False, unique=True),
    Column("contact_email", String(200), nullable=False),
    Column("bank_account_iban", String(34), nullable=False),
    Column("entity_type", String(32), nullable=False, default="LEGAL_ENTITY"),
    *_person_columns(),
    *_address_columns(),
    *_contact_columns(),
    *_timestamps(),
)

users = Table(
    "users",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(200), nullable=False),
    Column("email", String(200), nullable=False, unique=True),
    Column("role", String(16), nullable=False),
    Column("kreditor_id", String(36), ForeignKey("kreditoren.id", ondelete="SET NULL")),
    Column("avatar_initials", String(4)),
    Column("is_active", Boolean, nullable=False, default=True),
    *_timestamps(),
)

user_kreditor_assignments = Table(
    "user_kreditor_assignments",
    metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "kreditor_id", String(36), ForeignKey("kreditoren.id", ondelete="CASCADE"), primary_key=True
    ),
    Column("assigned_at", DateTime(timezone=True), nullable=False),
)

debtors = Table(
    "debtors",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("kreditor_id", String(36), ForeignKey("kreditoren.id"), nullable=False),
    Column("agent_id", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    Column("entity_type", String(32), nullable=False, default="NATURAL_PERSON"),
    Column("company_name", String(200)),
    *_person_columns(),
    Column("email", String(200)),
    *_address_columns(),
    Column("address_status", String(32), nullable=False, default="UNKNOWN"),
    Column("address_last_checked", DateTime(timezone=True)),
    *_contact_columns(),
    Column("bank_iban", String(34)),
    Column("register_number", String(100)),
    Column("risk_score", String(1), nullable=False, default="C"),
    Column("total_debt_cents", BigInteger, nullable=False, default=0),
    Column("open_cases", Integer, nullable=False, default=0),
    Column("notes", Text),
    *_timestamps(),
    Index("ix_debtors_kreditor_id", "kreditor_id"),
)

cases = Table(
    "cases",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("kreditor_id", String(36), ForeignKey("kreditoren.id"), nullable=False),
    Column("debtor_id", String(36), ForeignKey("debtors.id"), nullable=False),
    Column("agent_id", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    Column("principal_cents", BigInteger, nullable=False),
    Column("costs_cents", BigInteger, nullable=False, default=0),
    Column("interest_cents", BigInteger, nullable=False, default=0),
    Column("currency", String(3), nullable=False, default="EUR"),
    Column("invoice_number", String(100), nullable=False),
    Column("invoice_date", Date, nullable=False),
    Column("due_date", Date, nullable=False),
    Column("status", String(32), nullable=False),
    Column("next_action_date", DateTime(timezone=True)),
    Column("competent_court", String(200), nullable=False),
    Column("court_file_number", String(100)),
    Column("ai_analysis", Text),
    Column("date_of_origin", Date),
    Column("claim_description", Text),
    Column("interest_start_date", Date),
    Column("interest_rate_bp", Integer),
    Column("is_variable_interest", Boolean, nullable=False, default=False),
    Column("interest_end_date", Date),
    Column("additional_costs_cents", BigInteger, nullable=False, default=0),
    Column("procedure_costs_cents", BigInteger, nullable=False, default=0),
    Column("interest_on_costs", Boolean, nullable=False, default=False),
    Column("statute_of_limitations_date", Date),
    Column("payment_allocation_notes", Text),
    *_timestamps(),
    UniqueConstraint("kreditor_id", "invoice_number", name="uq_cases_kreditor_invoice"),
    Index("ix_cases_status_next_action_date", "status", "next_action_date"),
)

case_history = Table(
    "case_history",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("case_id", String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
    Column("action", String(32), nullable=False),
    Column("details", Text, nullable=False),
    Column("actor", String(200), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_case_history_case_id", "case_id"),
)

inquiries = Table(
    "inquiries",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("case_id", String(36), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
    Column("question", Text, nullable=False),
    Column("answer", Text),
    Column("status", String(16), nullable=False, default="OPEN"),
    Column("created_by", String(36), ForeignKey("users.id"), nullable=False),
    Column("resolved_at", DateTime(timezone=True)),
    *_timestamps(),
)

templates = Table(
    "templates",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("kreditor_id", String(36), ForeignKey("kreditoren.id", ondelete="CASCADE")),
    Column("name", String(200), nullable=False),
    Column("type", String(16), nullable=False),
    Column("category", String(16), nullable=False),
    Column("subject", String(500)),
    Column("content", Text, nullable=False),
    Column("last_modified", DateTime(timezone=True), nullable=False),
    *_timestamps(),
)

documents = Table(
    "documents",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("debtor_id", String(36), ForeignKey("debtors.id", ondelete="CASCADE"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("type", String(16), nullable=False),
    Column("size_bytes", BigInteger, nullable=False),
    Column("file_path", Text, nullable=False),
    Column("preview_url", Text),
    Column("uploaded_at", DateTime(timezone=True), nullable=False),
    *_timestamps(),
)

# principal + costs + interest
CASE_TOTAL_CENTS = cases.c.principal_cents + cases.c.costs_cents + cases.c.interest_cents
