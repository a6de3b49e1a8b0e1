"""Dashboard aggregates and global search."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.engine import Engine

from monetaris.core.auth.context import CurrentUser
from monetaris.core.auth.scope import KreditorScope
from monetaris.core.config import settings
from monetaris.core.database import CENT, as_utc, from_cents, utcnow
from monetaris.core.observability.logging import logger
from monetaris.core.party import display_name
from monetaris.core.tables import CASE_TOTAL_CENTS, cases, debtors, kreditoren
from monetaris.workflow import CLOSED_STATUSES, LEGAL_STATUSES, RECOVERED_STATUSES, CaseStatus

from .models import DashboardStats, FinancialChart, MonthlyDataPoint, SearchResult

SEARCH_LIMIT = 5


def months_ago(now: datetime, months: int) -> datetime:
    """Same day ``months`` calendar months earlier, clamped to the month's end."""
    year, month = divmod(now.year * 12 + now.month - 1 - months, 12)
    month += 1
    day = now.day
    while day > 28:
        try:
            return now.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1
    return now.replace(year=year, month=month, day=day)


def success_rate(recovered: int, closed: int) -> float:
    if closed <= 0:
        return 0.0
    return round(recovered / closed * 100, 2)


def _contains(columns, query: str):
    needle = query.strip().lower()
    return or_(*(func.lower(col).contains(needle, autoescape=True) for col in columns))


class DashboardService:
    def __init__(self, engine: Engine):
        self.engine = engine

    def get_stats(self, user: CurrentUser) -> DashboardStats:
        scope = KreditorScope.for_user(user, "dashboard")
        by_status = scope.apply(
            select(cases.c.status, func.count(), func.coalesce(func.sum(CASE_TOTAL_CENTS), 0)).group_by(
                cases.c.status
            ),
            cases.c.kreditor_id,
        )
        n_debtors = scope.apply(select(func.count()).select_from(debtors), debtors.c.kreditor_id)
        n_kreditoren = scope.apply(select(func.count()).select_from(kreditoren), kreditoren.c.id)

        with self.engine.connect() as conn:
            rows = conn.execute(by_status).all()
            total_debtors = conn.execute(n_debtors).scalar_one()
            total_kreditoren = conn.execute(n_kreditoren).scalar_one()

        active = legal = closed = recovered = 0
        volume_cents = 0
        for status_name, count, total in rows:
            status = CaseStatus(status_name)
            if status in CLOSED_STATUSES:
                closed += count
                if status in RECOVERED_STATUSES:
                    recovered += count
            else:
                active += count
                volume_cents += int(total or 0)
            if status in LEGAL_STATUSES:
                legal += count

        rate = success_rate(recovered, closed)
        volume = from_cents(volume_cents)
        # unrounded ratio; only the displayed rate is rounded
        ratio = Decimal(recovered) / closed if closed else Decimal(0)
        projected = (volume * ratio).quantize(CENT, rounding=ROUND_HALF_UP)

        logger.info("dashboard_stats", extra={"active_cases": active})
        return DashboardStats(
            total_volume=volume,
            active_cases=active,
            legal_cases=legal,
            success_rate=rate,
            projected_recovery=projected,
            total_debtors=total_debtors,
            total_kreditoren=total_kreditoren,
        )

    def get_financial_chart(self, user: CurrentUser, now: datetime | None = None) -> FinancialChart:
        """Revenue of PAID and SETTLED cases per month over the last twelve months."""
        scope = KreditorScope.for_user(user, "dashboard")
        since = months_ago(as_utc(now) if now else utcnow(), 12)
        stmt = scope.apply(
            select(cases.c.updated_at, CASE_TOTAL_CENTS.label("total_cents")).where(
                cases.c.status.in_([s.value for s in RECOVERED_STATUSES]),
                cases.c.updated_at >= since,
            ),
            cases.c.kreditor_id,
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).all()

        revenue: dict[str, int] = defaultdict(int)
        resolved: dict[str, int] = defaultdict(int)
        for row in rows:
            month = as_utc(row.updated_at).strftime("%Y-%m")
            revenue[month] += int(row.total_cents or 0)
            resolved[month] += 1

        return FinancialChart(
            monthly_revenue=[
                MonthlyDataPoint(month=m, revenue=from_cents(revenue[m]), cases_resolved=resolved[m])
                for m in sorted(revenue)
            ]
        )

    def search(self, query: str, user: CurrentUser) -> list[SearchResult]:
        scope = KreditorScope.for_user(user, "search")
        if not query or len(query.strip()) < settings.SEARCH_MIN_CHARS:
            return []

        case_stmt = scope.apply(
            select(
                cases.c.id,
                cases.c.invoice_number,
                cases.c.status,
                cases.c.currency,
                CASE_TOTAL_CENTS.label("total_cents"),
                debtors.c.entity_type,
                debtors.c.company_name,
                debtors.c.first_name,
                debtors.c.last_name,
            )
            .join(debtors, debtors.c.id == cases.c.debtor_id)
            .where(_contains((cases.c.invoice_number, cases.c.court_file_number), query)),
            cases.c.kreditor_id,
        ).order_by(cases.c.created_at.desc()).limit(SEARCH_LIMIT)

        debtor_stmt = scope.apply(
            select(debtors).where(
                _contains(
                    (debtors.c.company_name, debtors.c.first_name, debtors.c.last_name, debtors.c.email),
                    query,
                )
            ),
            debtors.c.kreditor_id,
        ).order_by(debtors.c.last_name, debtors.c.company_name).limit(SEARCH_LIMIT)

        results: list[SearchResult] = []
        with self.engine.connect() as conn:
            for r in conn.execute(case_stmt):
                results.append(
                    SearchResult(
                        type="case",
                        id=r.id,
                        title=f"Case {r.invoice_number}",
                        subtitle=display_name(r.entity_type, r.company_name, r.first_name, r.last_name),
                        additional_info=f"Status: {r.status}, Amount: {from_cents(r.total_cents)} {r.currency}",
                    )
                )
            for r in conn.execute(debtor_stmt):
                results.append(
                    SearchResult(
                        type="debtor",
                        id=r.id,
                        title=display_name(r.entity_type, r.company_name, r.first_name, r.last_name),
                        subtitle=r.email or "No email",
                        additional_info=(
                            f"Open Cases: {r.open_cases or 0}, Debt: {from_cents(r.total_debt_cents)} "
                            f"{settings.DEFAULT_CURRENCY}"
                        ),
                    )
                )
            if user.is_admin:
                kreditor_stmt = (
                    select(kreditoren)
                    .where(
                        _contains(
                            (kreditoren.c.name, kreditoren.c.registration_number, kreditoren.c.contact_email),
                            query,
                        )
                    )
                    .order_by(kreditoren.c.name)
                    .limit(SEARCH_LIMIT)
                )
                for r in conn.execute(kreditor_stmt):
                    results.append(
                        SearchResult(
                            type="kreditor",
                            id=r.id,
                            title=r.name,
                            subtitle=r.contact_email,
                            additional_info=f"Reg. No.: {r.registration_number}",
                        )
                    )

        logger.info("global_search", extra={"results": len(results)})
        return results
