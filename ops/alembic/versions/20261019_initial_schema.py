"""Initial Monetaris schema

Revision ID: 20261019_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _person() -> list[sa.Column]:
    return [
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("birth_name", sa.String(100)),
        sa.Column("gender", sa.String(16)),
        sa.Column("date_of_birth", sa.Date()),
        sa.Column("birth_place", sa.String(100)),
        sa.Column("birth_country", sa.String(100)),
    ]


def _address() -> list[sa.Column]:
    return [
        sa.Column("street", sa.String(200)),
        sa.Column("house_number", sa.String(20)),
        sa.Column("zip_code", sa.String(20)),
        sa.Column("city", sa.String(100)),
        sa.Column("city_district", sa.String(100)),
        sa.Column("floor", sa.String(50)),
        sa.Column("door_position", sa.String(16)),
        sa.Column("additional_address_info", sa.String(500)),
        sa.Column("po_box", sa.String(50)),
        sa.Column("po_box_zip_code", sa.String(20)),
        sa.Column("country", sa.String(100), nullable=False, server_default="Deutschland"),
    ]


def _contact() -> list[sa.Column]:
    return [
        sa.Column("represented_by", sa.String(200)),
        sa.Column("is_deceased", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("place_of_death", sa.String(100)),
        sa.Column("phone_landline", sa.String(50)),
        sa.Column("phone_mobile", sa.String(50)),
        sa.Column("fax", sa.String(50)),
        sa.Column("ebo_address", sa.String(200)),
        sa.Column("bank_bic", sa.String(11)),
        sa.Column("bank_name", sa.String(200)),
        sa.Column("register_court", sa.String(200)),
        sa.Column("vat_id", sa.String(50)),
        sa.Column("partners", sa.Text()),
        sa.Column("file_reference", sa.String(100)),
    ]


def upgrade() -> None:
    op.create_table(
        "kreditoren",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("registration_number", sa.String(100), nullable=False),
        sa.Column("contact_email", sa.String(200), nullable=False),
        sa.Column("bank_account_iban", sa.String(34), nullable=False),
        sa.Column("entity_type", sa.String(32), nullable=False),
        *_person(),
        *_address(),
        *_contact(),
        *_timestamps(),
        sa.UniqueConstraint("registration_number", name="uq_kreditoren_registration_number"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(200), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("kreditor_id", sa.String(36), sa.ForeignKey("kreditoren.id", ondelete="SET NULL")),
        sa.Column("avatar_initials", sa.String(4)),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "user_kreditor_assignments",
        sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column(
            "kreditor_id", sa.String(36), sa.ForeignKey("kreditoren.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "debtors",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("kreditor_id", sa.String(36), sa.ForeignKey("kreditoren.id"), nullable=False),
        sa.Column("agent_id", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("entity_type", sa.String(32), nullable=False),
        sa.Column("company_name", sa.String(200)),
        *_person(),
        sa.Column("email", sa.String(200)),
        *_address(),
        sa.Column("address_status", sa.String(32), nullable=False, server_default="UNKNOWN"),
        sa.Column("address_last_checked", sa.DateTime(timezone=True)),
        *_contact(),
        sa.Column("bank_iban", sa.String(34)),
        sa.Column("register_number", sa.String(100)),
        sa.Column("risk_score", sa.String(1), nullable=False, server_default="C"),
        sa.Column("total_debt_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("open_cases", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_debtors_kreditor_id", "debtors", ["kreditor_id"])

    op.create_table(
        "cases",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("kreditor_id", sa.String(36), sa.ForeignKey("kreditoren.id"), nullable=False),
        sa.Column("debtor_id", sa.String(36), sa.ForeignKey("debtors.id"), nullable=False),
        sa.Column("agent_id", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("principal_cents", sa.BigInteger(), nullable=False),
        sa.Column("costs_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("interest_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("currency", sa.String(3), nullable=False, server_default="EUR"),
        sa.Column("invoice_number", sa.String(100), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("next_action_date", sa.DateTime(timezone=True)),
        sa.Column("competent_court", sa.String(200), nullable=False),
        sa.Column("court_file_number", sa.String(100)),
        sa.Column("ai_analysis", sa.Text()),
        sa.Column("date_of_origin", sa.Date()),
        sa.Column("claim_description", sa.Text()),
        sa.Column("interest_start_date", sa.Date()),
        sa.Column("interest_rate_bp", sa.Integer()),
        sa.Column("is_variable_interest", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("interest_end_date", sa.Date()),
        sa.Column("additional_costs_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("procedure_costs_cents", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("interest_on_costs", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("statute_of_limitations_date", sa.Date()),
        sa.Column("payment_allocation_notes", sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint("kreditor_id", "invoice_number", name="uq_cases_kreditor_invoice"),
    )
    op.create_index("ix_cases_status_next_action_date", "cases", ["status", "next_action_date"])

    op.create_table(
        "case_history",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("case_id", sa.String(36), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("action", sa.String(32), nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("actor", sa.String(200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_case_history_case_id", "case_history", ["case_id"])

    op.create_table(
        "inquiries",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("case_id", sa.String(36), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text()),
        sa.Column("status", sa.String(16), nullable=False, server_default="OPEN"),
        sa.Column("created_by", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    op.create_table(
        "templates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("kreditor_id", sa.String(36), sa.ForeignKey("kreditoren.id", ondelete="CASCADE")),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("category", sa.String(16), nullable=False),
        sa.Column("subject", sa.String(500)),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "documents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("debtor_id", sa.String(36), sa.ForeignKey("debtors.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("size_bytes", sa.BigInteger(), nullable=False),
        sa.Column("file_path", sa.Text(), nullable=False),
        sa.Column("preview_url", sa.Text()),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "event_outbox",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("tenant_id", sa.String(36)),
        sa.Column("topic", sa.String(100), nullable=False),
        sa.Column("schema_version", sa.String(16), nullable=False),
        sa.Column("trace_id", sa.String(64)),
        sa.Column("payload_json", sa.Text(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("next_attempt_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_event_outbox_status_next_attempt_at", "event_outbox", ["status", "next_attempt_at"])


def downgrade() -> None:
    op.drop_index("ix_event_outbox_status_next_attempt_at", table_name="event_outbox")
    op.drop_table("event_outbox")
    op.drop_table("documents")
    op.drop_table("templates")
    op.drop_table("inquiries")
    op.drop_index("ix_case_history_case_id", table_name="case_history")
    op.drop_table("case_history")
    op.drop_index("ix_cases_status_next_action_date", table_name="cases")
    op.drop_table("cases")
    op.drop_index("ix_debtors_kreditor_id", table_name="debtors")
    op.drop_table("debtors")
    op.drop_table("user_kreditor_assignments")
    op.drop_table("users")
    op.drop_table("kreditoren")
