"""Case management and workflow orchestration.

Every write runs in one ``engine.begin()`` transaction covering the case,
the debtor statistics, the audit history and the outbox event.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.engine import Connection, Engine

from monetaris.apps.debtors.service import apply_debtor_delta, ensure_agent
from monetaris.core.auth.context import CurrentUser
from monetaris.core.auth.scope import KreditorScope
from monetaris.core.config import settings
from monetaris.core.database import (
    as_utc,
    from_basis_points,
    from_cents,
    new_id,
    to_basis_points,
    to_cents,
    utcnow,
)
from monetaris.core.errors import (
    ConflictError,
    NotFoundError,
    ValidationFailedError,
    WorkflowTransitionError,
)
from monetaris.core.observability.logging import hash_actor_token, logger
from monetaris.core.observability.metrics import (
    increment_case_closed,
    increment_cases_created,
    increment_cases_deleted,
    increment_workflow_rejected,
    increment_workflow_transition,
)
from monetaris.core.outbox import enqueue_event
from monetaris.core.pagination import Page, normalize_paging
from monetaris.core.party import display_name
from monetaris.core.tables import (
    CASE_TOTAL_CENTS,
    case_history,
    cases,
    debtors,
    inquiries,
    kreditoren,
)
from monetaris.workflow import (
    CLOSED_STATUSES,
    DELETABLE_STATUSES,
    RECOVERED_STATUSES,
    AdvanceWorkflowRequest,
    CaseStatus,
    TransitionPlan,
    WorkflowConfig,
    WorkflowEngine,
    phase_of,
)

from .models import (
    AllowedTransitionsOut,
    CaseDetail,
    CaseFilter,
    CaseHistoryOut,
    CaseListItem,
    CreateCaseRequest,
    DueActionItem,
    UpdateCaseRequest,
)

ACTION_CREATED = "CREATED"
ACTION_UPDATED = "UPDATED"
ACTION_STATUS_CHANGE = "STATUS_CHANGE"

TOPIC_CASE_CREATED = "case.created"
TOPIC_STATUS_CHANGED = "case.status_changed"

_CLAIM_FIELDS = (
    "date_of_origin",
    "claim_description",
    "interest_start_date",
    "is_variable_interest",
    "interest_end_date",
    "interest_on_costs",
    "statute_of_limitations_date",
    "payment_allocation_notes",
)


def _claim_values(body) -> dict:
    values = {k: getattr(body, k) for k in _CLAIM_FIELDS}
    values["interest_rate_bp"] = to_basis_points(body.interest_rate)
    values["additional_costs_cents"] = to_cents(body.additional_costs)
    values["procedure_costs_cents"] = to_cents(body.procedure_costs)
    return values


def _total_cents(row) -> int:
    return (row.principal_cents or 0) + (row.costs_cents or 0) + (row.interest_cents or 0)


def _case_select():
    return (
        select(
            cases,
            kreditoren.c.name.label("kreditor_name"),
            debtors.c.entity_type.label("debtor_entity_type"),
            debtors.c.company_name.label("debtor_company_name"),
            debtors.c.first_name.label("debtor_first_name"),
            debtors.c.last_name.label("debtor_last_name"),
        )
        .join(debtors, debtors.c.id == cases.c.debtor_id)
        .join(kreditoren, kreditoren.c.id == cases.c.kreditor_id)
    )


def _debtor_name(row) -> str:
    return display_name(
        row.debtor_entity_type, row.debtor_company_name, row.debtor_first_name, row.debtor_last_name
    )


def _to_list_item(row) -> CaseListItem:
    status = CaseStatus(row.status)
    return CaseListItem(
        id=row.id,
        kreditor_id=row.kreditor_id,
        kreditor_name=row.kreditor_name,
        debtor_id=row.debtor_id,
        debtor_name=_debtor_name(row),
        agent_id=row.agent_id,
        invoice_number=row.invoice_number,
        principal_amount=from_cents(row.principal_cents),
        total_amount=from_cents(_total_cents(row)),
        currency=row.currency,
        status=status,
        phase=phase_of(status),
        due_date=row.due_date,
        next_action_date=as_utc(row.next_action_date),
        created_at=as_utc(row.created_at),
    )


def _history(conn: Connection, case_id: str) -> list[CaseHistoryOut]:
    rows = conn.execute(
        select(case_history)
        .where(case_history.c.case_id == case_id)
        .order_by(case_history.c.created_at.desc())
    ).all()
    return [
        CaseHistoryOut(
            id=r.id,
            action=r.action,
            details=r.details,
            actor=r.actor,
            created_at=as_utc(r.created_at),
        )
        for r in rows
    ]


def _add_history(conn: Connection, case_id: str, action: str, details: str, actor: str) -> None:
    conn.execute(
        insert(case_history).values(
            id=new_id(),
            case_id=case_id,
            action=action,
            details=details,
            actor=actor,
            created_at=utcnow(),
        )
    )


def _search_condition(query: str):
    needle = query.strip().lower()
    return or_(
        *(
            func.lower(col).contains(needle, autoescape=True)
            for col in (
                cases.c.invoice_number,
                cases.c.court_file_number,
                debtors.c.company_name,
                debtors.c.first_name,
                debtors.c.last_name,
            )
        )
    )


class CaseService:
    """Cases (claims) and their progress through the collection workflow."""

    def __init__(self, engine: Engine, deadlines_path: Optional[str] = None):
        self.engine = engine
        self.deadlines_path = deadlines_path

    def workflow_for(self, kreditor_id: Optional[str]) -> WorkflowEngine:
        return WorkflowEngine(WorkflowConfig.from_kreditor(kreditor_id, self.deadlines_path))

    # Queries

    def list_cases(self, flt: CaseFilter, user: CurrentUser) -> Page[CaseListItem]:
        scope = KreditorScope.for_user(user, "cases")
        page, size = normalize_paging(flt.page, flt.page_size)

        conditions = []
        cond = scope.condition(cases.c.kreditor_id)
        if cond is not None:
            conditions.append(cond)
        if flt.kreditor_id:
            conditions.append(cases.c.kreditor_id == flt.kreditor_id)
        if flt.debtor_id:
            conditions.append(cases.c.debtor_id == flt.debtor_id)
        if flt.agent_id:
            conditions.append(cases.c.agent_id == flt.agent_id)
        if flt.status:
            conditions.append(cases.c.status == flt.status.value)
        if flt.min_amount is not None:
            conditions.append(CASE_TOTAL_CENTS >= to_cents(flt.min_amount))
        if flt.max_amount is not None:
            conditions.append(CASE_TOTAL_CENTS <= to_cents(flt.max_amount))
        if flt.search_query and flt.search_query.strip():
            conditions.append(_search_condition(flt.search_query))

        with self.engine.connect() as conn:
            total = conn.execute(
                select(func.count())
                .select_from(cases.join(debtors, debtors.c.id == cases.c.debtor_id))
                .where(*conditions)
            ).scalar_one()
            rows = conn.execute(
                _case_select()
                .where(*conditions)
                .order_by(cases.c.created_at.desc(), cases.c.id)
                .offset((page - 1) * size)
                .limit(size)
            ).all()
        return Page[CaseListItem].build([_to_list_item(r) for r in rows], total, page, size)

    def get_case(self, case_id: str, user: CurrentUser) -> CaseDetail:
        scope = KreditorScope.for_user(user, "cases")
        with self.engine.connect() as conn:
            row = self._load(conn, case_id)
            scope.ensure(row.kreditor_id, "case")
            return self._detail(conn, row)

    def get_history(self, case_id: str, user: CurrentUser) -> list[CaseHistoryOut]:
        scope = KreditorScope.for_user(user, "cases")
        with self.engine.connect() as conn:
            row = self._load(conn, case_id)
            scope.ensure(row.kreditor_id, "case")
            return _history(conn, case_id)

    def get_allowed_transitions(self, case_id: str, user: CurrentUser) -> AllowedTransitionsOut:
        scope = KreditorScope.for_user(user, "cases")
        with self.engine.connect() as conn:
            row = self._load(conn, case_id)
            scope.ensure(row.kreditor_id, "case")
        current = CaseStatus(row.status)
        return AllowedTransitionsOut(
            case_id=case_id,
            current_status=current,
            allowed=self.workflow_for(row.kreditor_id).allowed_transitions(current),
        )

    def list_due_actions(
        self, user: CurrentUser, now: Optional[datetime] = None, limit: int = 100
    ) -> list[DueActionItem]:
        """Open cases whose next-action deadline has passed, oldest first."""
        scope = KreditorScope.for_user(user, "cases")
        now = as_utc(now) if now else utcnow()
        stmt = (
            _case_select()
            .where(cases.c.status.notin_([s.value for s in CLOSED_STATUSES]))
            .where(cases.c.next_action_date.is_not(None))
            .where(cases.c.next_action_date <= now)
            .order_by(cases.c.next_action_date, cases.c.id)
            .limit(limit)
        )
        stmt = scope.apply(stmt, cases.c.kreditor_id)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).all()

        items = []
        for r in rows:
            deadline = as_utc(r.next_action_date)
            items.append(
                DueActionItem(
                    id=r.id,
                    kreditor_id=r.kreditor_id,
                    debtor_id=r.debtor_id,
                    debtor_name=_debtor_name(r),
                    invoice_number=r.invoice_number,
                    status=CaseStatus(r.status),
                    next_action_date=deadline,
                    days_overdue=max(0, (now - deadline).days),
                    total_amount=from_cents(_total_cents(r)),
                )
            )
        return items

    # Commands

    def create_case(
        self, body: CreateCaseRequest, user: CurrentUser, now: Optional[datetime] = None
    ) -> CaseDetail:
        scope = KreditorScope.for_user(user, "cases")
        now = as_utc(now) if now else utcnow()
        case_id = new_id()
        status = CaseStatus.DRAFT if body.draft else CaseStatus.NEW
        total = to_cents(body.principal_amount) + to_cents(body.costs) + to_cents(body.interest)

        with self.engine.begin() as conn:
            if conn.execute(select(kreditoren.c.id).where(kreditoren.c.id == body.kreditor_id)).first() is None:
                raise NotFoundError("Kreditor not found")
            scope.ensure(body.kreditor_id, "kreditor")

            debtor = conn.execute(
                select(debtors.c.id, debtors.c.kreditor_id).where(debtors.c.id == body.debtor_id)
            ).first()
            if debtor is None:
                raise NotFoundError("Debtor not found")
            if debtor.kreditor_id != body.kreditor_id:
                raise ValidationFailedError("Debtor does not belong to the specified kreditor")
            ensure_agent(conn, body.agent_id)
            self._ensure_unique_invoice(conn, body.kreditor_id, body.invoice_number)

            next_action = self.workflow_for(body.kreditor_id).calculate_next_action_date(status, now)
            conn.execute(
                insert(cases).values(
                    id=case_id,
                    kreditor_id=body.kreditor_id,
                    debtor_id=body.debtor_id,
                    agent_id=body.agent_id,
                    principal_cents=to_cents(body.principal_amount),
                    costs_cents=to_cents(body.costs),
                    interest_cents=to_cents(body.interest),
                    currency=body.currency,
                    invoice_number=body.invoice_number,
                    invoice_date=body.invoice_date,
                    due_date=body.due_date,
                    status=status.value,
                    next_action_date=next_action,
                    competent_court=(body.competent_court or "").strip()
                    or settings.DEFAULT_COMPETENT_COURT,
                    court_file_number=body.court_file_number,
                    created_at=now,
                    updated_at=now,
                    **_claim_values(body),
                )
            )
            _add_history(
                conn,
                case_id,
                ACTION_CREATED,
                f"Case created with invoice number {body.invoice_number}",
                user.name,
            )
            apply_debtor_delta(conn, body.debtor_id, open_cases=1, total_debt_cents=total)
            enqueue_event(
                conn,
                TOPIC_CASE_CREATED,
                {
                    "case_id": case_id,
                    "kreditor_id": body.kreditor_id,
                    "debtor_id": body.debtor_id,
                    "status": status.value,
                    "total_cents": total,
                },
                tenant_id=body.kreditor_id,
            )
            detail = self._detail(conn, self._load(conn, case_id))

        increment_cases_created()
        logger.info(
            "case_created",
            extra={"case_id": case_id, "kreditor_id": body.kreditor_id, "status": status.value},
        )
        return detail

    def update_case(
        self, case_id: str, body: UpdateCaseRequest, user: CurrentUser, now: Optional[datetime] = None
    ) -> CaseDetail:
        scope = KreditorScope.for_user(user, "cases")
        now = as_utc(now) if now else utcnow()
        with self.engine.begin() as conn:
            row = self._load(conn, case_id)
            scope.ensure(row.kreditor_id, "case")
            ensure_agent(conn, body.agent_id)

            values = {
                "agent_id": body.agent_id,
                "principal_cents": to_cents(body.principal_amount),
                "costs_cents": to_cents(body.costs),
                "interest_cents": to_cents(body.interest),
                "invoice_date": body.invoice_date,
                "due_date": body.due_date,
                "competent_court": body.competent_court,
                "court_file_number": body.court_file_number,
                "ai_analysis": body.ai_analysis,
                **_claim_values(body),
            }
            changed = sorted(k for k, v in values.items() if getattr(row, k) != v)
            conn.execute(update(cases).where(cases.c.id == case_id).values(updated_at=now, **values))

            old_total = _total_cents(row)
            new_total = values["principal_cents"] + values["costs_cents"] + values["interest_cents"]
            # Recovered claims already left the debtor's total debt
            if new_total != old_total and CaseStatus(row.status) not in RECOVERED_STATUSES:
                apply_debtor_delta(conn, row.debtor_id, total_debt_cents=new_total - old_total)

            details = "Case updated"
            if changed:
                details += ": " + ", ".join(changed)
            _add_history(conn, case_id, ACTION_UPDATED, details, user.name)

            plan = None
            if body.status is not None and body.status != CaseStatus(row.status):
                plan = self._apply_transition(
                    conn, self._load(conn, case_id), body.status, body.note, user, now
                )
            detail = self._detail(conn, self._load(conn, case_id))

        logger.info("case_updated", extra={"case_id": case_id, "fields": changed})
        if plan is not None:
            self._after_transition(plan)
        return detail

    def delete_case(self, case_id: str, user: CurrentUser) -> None:
        """Delete a case that has not entered the workflow beyond NEW."""
        scope = KreditorScope.for_user(user, "cases")
        with self.engine.begin() as conn:
            row = self._load(conn, case_id)
            scope.ensure(row.kreditor_id, "case")
            if CaseStatus(row.status) not in DELETABLE_STATUSES:
                raise ValidationFailedError(
                    "Only cases in DRAFT or NEW status can be deleted", code="case_not_deletable"
                )
            conn.execute(delete(inquiries).where(inquiries.c.case_id == case_id))
            conn.execute(delete(case_history).where(case_history.c.case_id == case_id))
            conn.execute(delete(cases).where(cases.c.id == case_id))
            apply_debtor_delta(
                conn, row.debtor_id, open_cases=-1, total_debt_cents=-_total_cents(row)
            )

        increment_cases_deleted()
        logger.info("case_deleted", extra={"case_id": case_id})

    def advance_workflow(
        self,
        case_id: str,
        body: AdvanceWorkflowRequest,
        user: CurrentUser,
        now: Optional[datetime] = None,
    ) -> CaseDetail:
        """Move a case to ``body.new_status`` if the transition is legal."""
        scope = KreditorScope.for_user(user, "cases")
        now = as_utc(now) if now else utcnow()
        with self.engine.begin() as conn:
            row = self._load(conn, case_id)
            scope.ensure(row.kreditor_id, "case")
            plan = self._apply_transition(conn, row, body.new_status, body.note, user, now)
            detail = self._detail(conn, self._load(conn, case_id))

        self._after_transition(plan)
        return detail

    # Internals

    def _apply_transition(
        self,
        conn: Connection,
        row,
        target: CaseStatus,
        note: Optional[str],
        user: CurrentUser,
        now: datetime,
    ) -> TransitionPlan:
        current = CaseStatus(row.status)
        engine = self.workflow_for(row.kreditor_id)
        try:
            plan = engine.plan_transition(row.id, current, target, _total_cents(row), note, now)
        except ValueError as exc:
            increment_workflow_rejected(current.value, target.value)
            logger.warning(
                "workflow_transition_rejected",
                extra={"case_id": row.id, "from_status": current.value, "to_status": target.value},
            )
            raise WorkflowTransitionError(str(exc)) from exc

        conn.execute(
            update(cases)
            .where(cases.c.id == row.id)
            .values(status=target.value, next_action_date=plan.next_action_date, updated_at=now)
        )
        delta = plan.debtor_delta
        apply_debtor_delta(
            conn, row.debtor_id, open_cases=delta.open_cases, total_debt_cents=delta.total_debt_cents
        )
        _add_history(conn, row.id, ACTION_STATUS_CHANGE, plan.history_details, user.name)
        if not plan.is_noop:
            enqueue_event(
                conn,
                TOPIC_STATUS_CHANGED,
                plan.to_event_payload(row.kreditor_id, row.debtor_id, hash_actor_token(user.id)),
                tenant_id=row.kreditor_id,
            )
        return plan

    @staticmethod
    def _after_transition(plan: TransitionPlan) -> None:
        increment_workflow_transition(plan.from_status.value, plan.to_status.value)
        if plan.closed and plan.from_status not in CLOSED_STATUSES:
            increment_case_closed(plan.to_status.value)
        logger.info(
            "workflow_advanced",
            extra={
                "case_id": plan.case_id,
                "from_status": plan.from_status.value,
                "to_status": plan.to_status.value,
                "next_action_date": plan.next_action_date.isoformat() if plan.next_action_date else None,
            },
        )

    def _detail(self, conn: Connection, row) -> CaseDetail:
        item = _to_list_item(row)
        return CaseDetail(
            **item.model_dump(),
            costs=from_cents(row.costs_cents),
            interest=from_cents(row.interest_cents),
            invoice_date=row.invoice_date,
            competent_court=row.competent_court,
            court_file_number=row.court_file_number,
            ai_analysis=row.ai_analysis,
            updated_at=as_utc(row.updated_at),
            date_of_origin=row.date_of_origin,
            claim_description=row.claim_description,
            interest_start_date=row.interest_start_date,
            interest_rate=from_basis_points(row.interest_rate_bp),
            is_variable_interest=bool(row.is_variable_interest),
            interest_end_date=row.interest_end_date,
            additional_costs=from_cents(row.additional_costs_cents),
            procedure_costs=from_cents(row.procedure_costs_cents),
            interest_on_costs=bool(row.interest_on_costs),
            statute_of_limitations_date=row.statute_of_limitations_date,
            payment_allocation_notes=row.payment_allocation_notes,
            allowed_transitions=self.workflow_for(row.kreditor_id).allowed_transitions(
                CaseStatus(row.status)
            ),
            history=_history(conn, row.id),
        )

    @staticmethod
    def _load(conn: Connection, case_id: str):
        row = conn.execute(_case_select().where(cases.c.id == case_id)).first()
        if row is None:
            raise NotFoundError("Case not found")
        return row

    @staticmethod
    def _ensure_unique_invoice(conn: Connection, kreditor_id: str, invoice_number: str) -> None:
        exists = conn.execute(
            select(cases.c.id)
            .where(cases.c.kreditor_id == kreditor_id)
            .where(cases.c.invoice_number == invoice_number)
        ).first()
        if exists:
            raise ConflictError(
                f"Invoice number {invoice_number} already exists for this kreditor",
                code="duplicate_invoice",
            )
