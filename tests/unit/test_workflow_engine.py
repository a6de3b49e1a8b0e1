from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from monetaris.workflow import (
    CLOSED_STATUSES,
    TRANSITIONS,
    AdvanceWorkflowRequest,
    CasePhase,
    CaseStatus,
    DebtorStatsDelta,
    WorkflowEngine,
    is_closed,
    is_legal,
    phase_of,
)

NOW = datetime(2024, 3, 1, 9, 30, tzinfo=UTC)

ALLOWED = [(src, dst) for src, targets in TRANSITIONS.items() for dst in targets]


@pytest.fixture
def wf() -> WorkflowEngine:
    return WorkflowEngine()


@pytest.mark.parametrize("current,target", ALLOWED)
def test_listed_transitions_are_allowed(wf: WorkflowEngine, current, target) -> None:
    assert wf.can_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (CaseStatus.NEW, CaseStatus.MB_ISSUED),
        (CaseStatus.DRAFT, CaseStatus.REMINDER_1),
        (CaseStatus.REMINDER_1, CaseStatus.NEW),
        (CaseStatus.PREPARE_MB, CaseStatus.UNCOLLECTIBLE),
        (CaseStatus.MB_ISSUED, CaseStatus.VB_REQUESTED),
        (CaseStatus.VB_ISSUED, CaseStatus.GV_MANDATED),
        (CaseStatus.PAID, CaseStatus.NEW),
        (CaseStatus.UNCOLLECTIBLE, CaseStatus.PAID),
    ],
)
def test_unlisted_transitions_are_rejected(wf: WorkflowEngine, current, target) -> None:
    ok, reason = wf.validate_transition(current, target)
    assert not ok
    assert reason == f"Invalid workflow transition from {current.value} to {target.value}"


@pytest.mark.parametrize("status", list(CaseStatus))
def test_staying_in_place_is_allowed(wf: WorkflowEngine, status: CaseStatus) -> None:
    assert wf.can_transition(status, status)


@pytest.mark.parametrize("status", sorted(CLOSED_STATUSES, key=lambda s: s.position))
def test_closed_statuses_are_terminal(wf: WorkflowEngine, status: CaseStatus) -> None:
    assert wf.allowed_transitions(status) == []


def test_allowed_transitions_follow_process_order(wf: WorkflowEngine) -> None:
    assert wf.allowed_transitions(CaseStatus.NEW) == [
        CaseStatus.REMINDER_1,
        CaseStatus.ADDRESS_RESEARCH,
        CaseStatus.PAID,
        CaseStatus.SETTLED,
    ]
    assert wf.allowed_transitions(CaseStatus.ADDRESS_RESEARCH) == [
        CaseStatus.REMINDER_1,
        CaseStatus.REMINDER_2,
        CaseStatus.PREPARE_MB,
        CaseStatus.UNCOLLECTIBLE,
    ]


def test_every_status_has_a_transition_entry() -> None:
    assert set(TRANSITIONS) == set(CaseStatus)


@pytest.mark.parametrize(
    "status,days",
    [
        (CaseStatus.NEW, 7),
        (CaseStatus.REMINDER_1, 14),
        (CaseStatus.ADDRESS_RESEARCH, 30),
        (CaseStatus.PREPARE_MB, 3),
        (CaseStatus.MB_ISSUED, 14),
        (CaseStatus.MB_OBJECTION, 7),
        (CaseStatus.DRAFT, 7),
        (CaseStatus.EV_TAKEN, 60),
    ],
)
def test_next_action_date_uses_deadline_days(wf: WorkflowEngine, status, days) -> None:
    assert wf.calculate_next_action_date(status, NOW) == NOW + timedelta(days=days)


@pytest.mark.parametrize("status", sorted(CLOSED_STATUSES, key=lambda s: s.position))
def test_closed_statuses_have_no_next_action(wf: WorkflowEngine, status: CaseStatus) -> None:
    assert wf.calculate_next_action_date(status, NOW) is None


def test_closure_effect_for_recovered_claim(wf: WorkflowEngine) -> None:
    delta = wf.closure_effect(CaseStatus.NEW, CaseStatus.PAID, 11550)
    assert delta == DebtorStatsDelta(open_cases=-1, total_debt_cents=-11550)


def test_closure_effect_keeps_debt_for_unrecovered_closure(wf: WorkflowEngine) -> None:
    delta = wf.closure_effect(CaseStatus.ADDRESS_RESEARCH, CaseStatus.UNCOLLECTIBLE, 11550)
    assert delta == DebtorStatsDelta(open_cases=-1, total_debt_cents=0)


def test_closure_effect_only_on_first_entry(wf: WorkflowEngine) -> None:
    assert wf.closure_effect(CaseStatus.PAID, CaseStatus.PAID, 11550).is_empty
    assert wf.closure_effect(CaseStatus.NEW, CaseStatus.REMINDER_1, 11550).is_empty


def test_plan_transition_collects_side_effects(wf: WorkflowEngine) -> None:
    plan = wf.plan_transition("c-1", CaseStatus.MB_ISSUED, CaseStatus.SETTLED, 5000, "Vergleich", NOW)
    assert plan.closed
    assert plan.next_action_date is None
    assert plan.debtor_delta == DebtorStatsDelta(open_cases=-1, total_debt_cents=-5000)
    assert plan.history_details == "Status changed from MB_ISSUED to SETTLED. Note: Vergleich"
    assert not plan.is_noop


def test_plan_transition_rejects_illegal_move(wf: WorkflowEngine) -> None:
    with pytest.raises(ValueError, match="Invalid workflow transition from NEW to VB_ISSUED"):
        wf.plan_transition("c-1", CaseStatus.NEW, CaseStatus.VB_ISSUED, 100)


def test_noop_plan_refreshes_deadline(wf: WorkflowEngine) -> None:
    plan = wf.plan_transition("c-1", CaseStatus.REMINDER_1, CaseStatus.REMINDER_1, 100, None, NOW)
    assert plan.is_noop
    assert plan.next_action_date == NOW + timedelta(days=14)
    assert plan.history_details == "Status changed from REMINDER_1 to REMINDER_1"


def test_event_payload_shape(wf: WorkflowEngine) -> None:
    plan = wf.plan_transition("c-1", CaseStatus.NEW, CaseStatus.REMINDER_1, 100, None, NOW)
    payload = plan.to_event_payload("k-1", "d-1", "hash")
    assert payload == {
        "case_id": "c-1",
        "kreditor_id": "k-1",
        "debtor_id": "d-1",
        "from_status": "NEW",
        "to_status": "REMINDER_1",
        "next_action_date": (NOW + timedelta(days=14)).isoformat(),
        "closed": False,
        "actor": "hash",
    }


def test_is_action_due(wf: WorkflowEngine) -> None:
    assert wf.is_action_due(CaseStatus.NEW, NOW - timedelta(seconds=1), NOW)
    assert wf.is_action_due(CaseStatus.NEW, NOW, NOW)
    assert not wf.is_action_due(CaseStatus.NEW, NOW + timedelta(days=1), NOW)
    assert not wf.is_action_due(CaseStatus.PAID, NOW - timedelta(days=1), NOW)
    assert not wf.is_action_due(CaseStatus.NEW, None, NOW)


def test_phases_and_classification() -> None:
    assert phase_of(CaseStatus.DRAFT) is CasePhase.PRE_COURT
    assert phase_of(CaseStatus.MB_OBJECTION) is CasePhase.COURT_DUNNING
    assert phase_of(CaseStatus.VB_ISSUED) is CasePhase.ENFORCEMENT_ORDER
    assert phase_of(CaseStatus.GV_MANDATED) is CasePhase.ENFORCEMENT
    assert phase_of(CaseStatus.INSOLVENCY) is CasePhase.CLOSED
    assert is_closed(CaseStatus.SETTLED)
    assert not is_closed(CaseStatus.EV_TAKEN)
    assert is_legal(CaseStatus.MB_REQUESTED)
    assert not is_legal(CaseStatus.PREPARE_MB)
    assert not is_legal(CaseStatus.PAID)


def test_advance_request_blank_note_is_none() -> None:
    body = AdvanceWorkflowRequest(new_status=CaseStatus.REMINDER_1, note="   ")
    assert body.note is None
    body = AdvanceWorkflowRequest(new_status="PAID", note="  Zahlung eingegangen ")
    assert body.new_status is CaseStatus.PAID
    assert body.note == "Zahlung eingegangen"
