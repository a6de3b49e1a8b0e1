from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from monetaris.core.enums import TemplateCategory, TemplateType


class TemplateFields(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    type: TemplateType
    category: TemplateCategory
    subject: str | None = Field(default=None, max_length=500)
    content: str = Field(min_length=10)

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Template name is required")
        return v

    @field_validator("subject")
    @classmethod
    def _blank_subject(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v


class CreateTemplateRequest(TemplateFields):
    kreditor_id: str | None = None


class UpdateTemplateRequest(TemplateFields):
    pass


class TemplateOut(TemplateFields):
    id: str
    kreditor_id: str | None = None
    last_modified: datetime
    created_at: datetime


class RenderTemplateRequest(BaseModel):
    case_id: str | None = None
    debtor_id: str | None = None


class RenderTemplateResponse(BaseModel):
    rendered_subject: str | None = None
    rendered_content: str
