from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class DashboardStats(BaseModel):
    total_volume: Decimal
    active_cases: int
    legal_cases: int
    success_rate: float
    projected_recovery: Decimal
    total_debtors: int
    total_kreditoren: int


class MonthlyDataPoint(BaseModel):
    month: str
    revenue: Decimal
    cases_resolved: int


class FinancialChart(BaseModel):
    monthly_revenue: list[MonthlyDataPoint] = Field(default_factory=list)


class SearchResult(BaseModel):
    type: str
    id: str
    title: str
    subtitle: str
    additional_info: str | None = None
