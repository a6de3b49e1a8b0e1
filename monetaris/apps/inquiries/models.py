from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from monetaris.core.enums import InquiryStatus


def _stripped(v: str) -> str:
    v = v.strip()
    if len(v) < 10:
        raise ValueError("must be at least 10 characters")
    return v


class CreateInquiryRequest(BaseModel):
    case_id: str
    question: str = Field(min_length=10, max_length=2000)

    @field_validator("question")
    @classmethod
    def _question(cls, v: str) -> str:
        return _stripped(v)


class ResolveInquiryRequest(BaseModel):
    answer: str = Field(min_length=10, max_length=2000)

    @field_validator("answer")
    @classmethod
    def _answer(cls, v: str) -> str:
        return _stripped(v)


class InquiryOut(BaseModel):
    id: str
    case_id: str
    case_invoice_number: str
    question: str
    answer: str | None = None
    status: InquiryStatus
    created_by: str
    created_by_name: str | None = None
    created_at: datetime
    resolved_at: datetime | None = None
