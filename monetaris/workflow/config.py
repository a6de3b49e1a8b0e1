"""Configuration for the case workflow.

Provides per-Kreditor deadline offsets with legal defaults and
file/environment based overrides.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from monetaris.core.config import settings

from .status import CLOSED_STATUSES, CaseStatus

logger = logging.getLogger(__name__)

# Days until the next action is due after entering a status
DEFAULT_DEADLINE_DAYS: dict[CaseStatus, int] = {
    CaseStatus.NEW: 7,
    CaseStatus.REMINDER_1: 14,
    CaseStatus.REMINDER_2: 14,
    CaseStatus.ADDRESS_RESEARCH: 30,
    CaseStatus.PREPARE_MB: 3,
    CaseStatus.MB_REQUESTED: 21,
    # Objection period against the Mahnbescheid, §692 ZPO
    CaseStatus.MB_ISSUED: 14,
    CaseStatus.PREPARE_VB: 3,
    CaseStatus.VB_REQUESTED: 14,
    CaseStatus.VB_ISSUED: 7,
    CaseStatus.TITLE_OBTAINED: 7,
    CaseStatus.ENFORCEMENT_PREP: 7,
    CaseStatus.GV_MANDATED: 30,
    CaseStatus.EV_TAKEN: 60,
}

FALLBACK_DEADLINE_DAYS = 7


def _env_key(kreditor_id: str, status: CaseStatus) -> str:
    return f"WORKFLOW_{kreditor_id.upper().replace('-', '_')}_{status.value}_DAYS"


def _parse_offsets(raw: object, source: str) -> dict[CaseStatus, int]:
    offsets: dict[CaseStatus, int] = {}
    if not isinstance(raw, dict):
        return offsets
    for key, value in raw.items():
        try:
            status = CaseStatus(str(key).upper())
            days = int(value)
        except (ValueError, TypeError):
            logger.warning("workflow_deadline_override_ignored", extra={"key": str(key), "source": source})
            continue
        if status in CLOSED_STATUSES or days < 0:
            logger.warning("workflow_deadline_override_ignored", extra={"key": str(key), "source": source})
            continue
        offsets[status] = days
    return offsets


def load_deadline_file(path: str | Path) -> dict:
    """Load a deadline override file.

    Layout::

        default:
          NEW: 10
        kreditoren:
          <kreditor-uuid>:
            MB_ISSUED: 21
    """
    p = Path(path)
    if not p.exists():
        logger.warning("workflow_deadline_file_missing", extra={"path": str(p)})
        return {}
    with open(p, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        logger.warning("workflow_deadline_file_invalid", extra={"path": str(p)})
        return {}
    return data


@dataclass
class WorkflowConfig:
    """Deadline configuration for one Kreditor (or the global default)."""

    kreditor_id: Optional[str] = None
    deadline_days: dict[CaseStatus, int] = field(
        default_factory=lambda: dict(DEFAULT_DEADLINE_DAYS)
    )
    fallback_days: int = FALLBACK_DEADLINE_DAYS

    @classmethod
    def from_kreditor(
        cls, kreditor_id: Optional[str], deadlines_path: Optional[str] = None
    ) -> "WorkflowConfig":
        """Create configuration for a Kreditor.

        Precedence (lowest first): legal defaults, ``default`` section of the
        deadline file, the Kreditor's section of the file, environment
        variables ``WORKFLOW_<KREDITOR_ID>_<STATUS>_DAYS``.
        """
        config = cls(kreditor_id=kreditor_id)

        path = deadlines_path if deadlines_path is not None else settings.WORKFLOW_DEADLINES_PATH
        if path:
            data = load_deadline_file(path)
            config.deadline_days.update(_parse_offsets(data.get("default"), "file:default"))
            if kreditor_id:
                per_kreditor = (data.get("kreditoren") or {}).get(kreditor_id)
                config.deadline_days.update(_parse_offsets(per_kreditor, "file:kreditor"))

        if kreditor_id:
            for status in CaseStatus:
                if status in CLOSED_STATUSES:
                    continue
                raw = os.getenv(_env_key(kreditor_id, status))
                if raw is None:
                    continue
                config.deadline_days.update(_parse_offsets({status.value: raw}, "env"))

        return config

    def days_for(self, status: CaseStatus) -> Optional[int]:
        """Deadline offset in days, or None for closure statuses."""
        if status in CLOSED_STATUSES:
            return None
        return self.deadline_days.get(status, self.fallback_days)
