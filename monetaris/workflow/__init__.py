"""Case workflow: status model, transition rules and legal deadlines."""

from .config import WorkflowConfig
from .dto import AdvanceWorkflowRequest, DebtorStatsDelta, TransitionPlan
from .engine import WorkflowEngine, transition_error_message
from .status import (
    CLOSED_STATUSES,
    DELETABLE_STATUSES,
    LEGAL_STATUSES,
    RECOVERED_STATUSES,
    TRANSITIONS,
    CasePhase,
    CaseStatus,
    is_closed,
    is_legal,
    phase_of,
)

__all__ = [
    "AdvanceWorkflowRequest",
    "CLOSED_STATUSES",
    "CasePhase",
    "CaseStatus",
    "DELETABLE_STATUSES",
    "DebtorStatsDelta",
    "LEGAL_STATUSES",
    "RECOVERED_STATUSES",
    "TRANSITIONS",
    "TransitionPlan",
    "WorkflowConfig",
    "WorkflowEngine",
    "is_closed",
    "is_legal",
    "phase_of",
    "transition_error_message",
]
