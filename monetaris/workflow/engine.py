"""Workflow engine for the legal collection process.

All methods are pure functions of their inputs so the rules can be tested
without a database; callers pass ``now`` to get deterministic deadlines.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Optional

from .config import WorkflowConfig
from .dto import DebtorStatsDelta, TransitionPlan
from .status import CLOSED_STATUSES, RECOVERED_STATUSES, TRANSITIONS, CaseStatus


def transition_error_message(current: CaseStatus, target: CaseStatus) -> str:
    return f"Invalid workflow transition from {current.value} to {target.value}"


class WorkflowEngine:
    """Transition rules, deadlines and side effects of status changes."""

    def __init__(self, config: Optional[WorkflowConfig] = None):
        self.config = config or WorkflowConfig()

    def can_transition(self, current: CaseStatus, target: CaseStatus) -> bool:
        """Check whether ``current -> target`` is a legal move.

        Staying in the same status is always allowed and treated as a no-op.
        """
        if current == target:
            return True
        return target in TRANSITIONS.get(current, ())

    def allowed_transitions(self, current: CaseStatus) -> list[CaseStatus]:
        """Targets reachable from ``current``, in process order."""
        return sorted(TRANSITIONS.get(current, ()), key=lambda s: s.position)

    def validate_transition(self, current: CaseStatus, target: CaseStatus) -> tuple[bool, str]:
        if self.can_transition(current, target):
            return True, "ok"
        return False, transition_error_message(current, target)

    def calculate_next_action_date(
        self, status: CaseStatus, now: Optional[datetime] = None
    ) -> Optional[datetime]:
        """Deadline for the next action after entering ``status``.

        Closure statuses have no follow-up and return None.
        """
        days = self.config.days_for(status)
        if days is None:
            return None
        if now is None:
            now = datetime.now(UTC)
        return now + timedelta(days=days)

    def closure_effect(
        self, current: CaseStatus, target: CaseStatus, total_cents: int
    ) -> DebtorStatsDelta:
        """Debtor statistic changes caused by the transition.

        Only the first entry into a closure status changes the statistics:
        the case stops counting as open, and recovered claims (PAID,
        SETTLED) leave the debtor's total debt.
        """
        if target not in CLOSED_STATUSES or current in CLOSED_STATUSES:
            return DebtorStatsDelta()
        debt = -total_cents if target in RECOVERED_STATUSES else 0
        return DebtorStatsDelta(open_cases=-1, total_debt_cents=debt)

    @staticmethod
    def history_details(current: CaseStatus, target: CaseStatus, note: Optional[str]) -> str:
        details = f"Status changed from {current.value} to {target.value}"
        if note:
            details += f". Note: {note}"
        return details

    def plan_transition(
        self,
        case_id: str,
        current: CaseStatus,
        target: CaseStatus,
        total_cents: int,
        note: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TransitionPlan:
        """Validate a transition and compute everything that has to change.

        Raises:
            ValueError: if the transition is not allowed
        """
        ok, reason = self.validate_transition(current, target)
        if not ok:
            raise ValueError(reason)
        return TransitionPlan(
            case_id=case_id,
            from_status=current,
            to_status=target,
            next_action_date=self.calculate_next_action_date(target, now),
            debtor_delta=self.closure_effect(current, target, total_cents),
            history_details=self.history_details(current, target, note),
            closed=target in CLOSED_STATUSES,
        )

    def is_action_due(
        self,
        status: CaseStatus,
        next_action_date: Optional[datetime],
        now: Optional[datetime] = None,
    ) -> bool:
        """True when an open case has reached its next-action deadline."""
        if status in CLOSED_STATUSES or next_action_date is None:
            return False
        if now is None:
            now = datetime.now(UTC)
        return next_action_date <= now
