from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from monetaris.core.config import settings
from monetaris.workflow import CasePhase, CaseStatus

CENT = Decimal("0.01")


class ClaimDetails(BaseModel):
    """Details of the underlying claim (Forderung)."""

    date_of_origin: date | None = None
    claim_description: str | None = Field(default=None, max_length=2000)
    interest_start_date: date | None = None
    interest_rate: Decimal | None = Field(default=None, ge=0, le=100)
    is_variable_interest: bool = False
    interest_end_date: date | None = None
    additional_costs: Decimal = Field(default=Decimal("0"), ge=0)
    procedure_costs: Decimal = Field(default=Decimal("0"), ge=0)
    interest_on_costs: bool = False
    statute_of_limitations_date: date | None = None
    payment_allocation_notes: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def _interest_period(self):
        if (
            self.interest_start_date
            and self.interest_end_date
            and self.interest_end_date < self.interest_start_date
        ):
            raise ValueError("Interest end date must not be before interest start date")
        return self


class _Amounts(BaseModel):
    principal_amount: Decimal = Field(gt=0)
    costs: Decimal = Field(default=Decimal("0"), ge=0)
    interest: Decimal = Field(default=Decimal("0"), ge=0)
    invoice_date: date
    due_date: date
    court_file_number: str | None = Field(default=None, max_length=100)
    agent_id: str | None = None

    @field_validator("principal_amount", "costs", "interest")
    @classmethod
    def _two_decimals(cls, v: Decimal) -> Decimal:
        if v != v.quantize(CENT):
            raise ValueError("Amounts must have at most two decimal places")
        return v

    @field_validator("invoice_date")
    @classmethod
    def _not_in_future(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("Invoice date cannot be in the future")
        return v

    @model_validator(mode="after")
    def _due_after_invoice(self):
        if self.due_date < self.invoice_date:
            raise ValueError("Due date must be on or after the invoice date")
        return self


class CreateCaseRequest(_Amounts, ClaimDetails):
    kreditor_id: str
    debtor_id: str
    invoice_number: str = Field(min_length=1, max_length=100)
    currency: str = Field(default=settings.DEFAULT_CURRENCY, min_length=3, max_length=3)
    competent_court: str | None = Field(default=None, max_length=200)
    # Cases created as drafts stay out of the workflow until released to NEW
    draft: bool = False

    @field_validator("invoice_number")
    @classmethod
    def _strip_invoice(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Invoice number is required")
        return v

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        return v.upper()


class UpdateCaseRequest(_Amounts, ClaimDetails):
    competent_court: str = Field(min_length=1, max_length=200)
    ai_analysis: str | None = None
    # Optional workflow move (e.g. from a board view); validated like advance
    status: CaseStatus | None = None
    note: str | None = Field(default=None, max_length=1000)

    @field_validator("competent_court")
    @classmethod
    def _court_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Competent court is required")
        return v


class CaseHistoryOut(BaseModel):
    id: str
    action: str
    details: str
    actor: str
    created_at: datetime


class CaseListItem(BaseModel):
    id: str
    kreditor_id: str
    kreditor_name: str | None = None
    debtor_id: str
    debtor_name: str
    agent_id: str | None = None
    invoice_number: str
    principal_amount: Decimal
    total_amount: Decimal
    currency: str
    status: CaseStatus
    phase: CasePhase
    due_date: date
    next_action_date: datetime | None = None
    created_at: datetime


class CaseDetail(CaseListItem, ClaimDetails):
    costs: Decimal
    interest: Decimal
    invoice_date: date
    competent_court: str
    court_file_number: str | None = None
    ai_analysis: str | None = None
    updated_at: datetime
    allowed_transitions: list[CaseStatus] = []
    history: list[CaseHistoryOut] = []


class CaseFilter(BaseModel):
    kreditor_id: str | None = None
    debtor_id: str | None = None
    agent_id: str | None = None
    status: CaseStatus | None = None
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    search_query: str | None = None
    page: int = 1
    page_size: int | None = None


class AllowedTransitionsOut(BaseModel):
    case_id: str
    current_status: CaseStatus
    allowed: list[CaseStatus]


class DueActionItem(BaseModel):
    id: str
    kreditor_id: str
    debtor_id: str
    debtor_name: str
    invoice_number: str
    status: CaseStatus
    next_action_date: datetime
    days_overdue: int
    total_amount: Decimal
