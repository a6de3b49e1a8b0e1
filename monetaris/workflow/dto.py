"""Data transfer objects for the case workflow."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .status import CaseStatus


class AdvanceWorkflowRequest(BaseModel):
    """Request to move a case to another workflow status."""

    new_status: CaseStatus
    note: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("note")
    @classmethod
    def _blank_note_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


@dataclass(frozen=True)
class DebtorStatsDelta:
    """Changes to apply to the debtor's aggregate statistics."""

    open_cases: int = 0
    total_debt_cents: int = 0

    @property
    def is_empty(self) -> bool:
        return self.open_cases == 0 and self.total_debt_cents == 0


@dataclass(frozen=True)
class TransitionPlan:
    """Outcome of a validated transition, ready to be persisted."""

    case_id: str
    from_status: CaseStatus
    to_status: CaseStatus
    next_action_date: Optional[datetime]
    debtor_delta: DebtorStatsDelta
    history_details: str
    closed: bool

    @property
    def is_noop(self) -> bool:
        return self.from_status == self.to_status

    def to_event_payload(self, kreditor_id: str, debtor_id: str, actor_hash: str) -> dict[str, Any]:
        """Payload for the case.status_changed outbox event."""
        return {
            "case_id": self.case_id,
            "kreditor_id": kreditor_id,
            "debtor_id": debtor_id,
            "from_status": self.from_status.value,
            "to_status": self.to_status.value,
            "next_action_date": self.next_action_date.isoformat() if self.next_action_date else None,
            "closed": self.closed,
            "actor": actor_hash,
        }
