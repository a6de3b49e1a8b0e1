"""Case status model of the German collection process.

Declaration order is the process order: pre-court reminders, court dunning
order (Mahnbescheid), enforcement order (Vollstreckungsbescheid),
enforcement, closure.
"""

from __future__ import annotations

from enum import Enum


class CaseStatus(str, Enum):
    # Pre-court
    DRAFT = "DRAFT"
    NEW = "NEW"
    REMINDER_1 = "REMINDER_1"
    REMINDER_2 = "REMINDER_2"
    ADDRESS_RESEARCH = "ADDRESS_RESEARCH"
    # Court dunning procedure (MB)
    PREPARE_MB = "PREPARE_MB"
    MB_REQUESTED = "MB_REQUESTED"
    MB_ISSUED = "MB_ISSUED"
    MB_OBJECTION = "MB_OBJECTION"
    # Enforcement order (VB)
    PREPARE_VB = "PREPARE_VB"
    VB_REQUESTED = "VB_REQUESTED"
    VB_ISSUED = "VB_ISSUED"
    # Enforcement
    TITLE_OBTAINED = "TITLE_OBTAINED"
    ENFORCEMENT_PREP = "ENFORCEMENT_PREP"
    GV_MANDATED = "GV_MANDATED"
    EV_TAKEN = "EV_TAKEN"
    # Closed
    PAID = "PAID"
    SETTLED = "SETTLED"
    INSOLVENCY = "INSOLVENCY"
    UNCOLLECTIBLE = "UNCOLLECTIBLE"

    @property
    def position(self) -> int:
        return _ORDER[self]


_ORDER = {status: index for index, status in enumerate(CaseStatus)}


class CasePhase(str, Enum):
    PRE_COURT = "PRE_COURT"
    COURT_DUNNING = "COURT_DUNNING"
    ENFORCEMENT_ORDER = "ENFORCEMENT_ORDER"
    ENFORCEMENT = "ENFORCEMENT"
    CLOSED = "CLOSED"


_PHASES: dict[CasePhase, tuple[CaseStatus, ...]] = {
    CasePhase.PRE_COURT: (
        CaseStatus.DRAFT,
        CaseStatus.NEW,
        CaseStatus.REMINDER_1,
        CaseStatus.REMINDER_2,
        CaseStatus.ADDRESS_RESEARCH,
    ),
    CasePhase.COURT_DUNNING: (
        CaseStatus.PREPARE_MB,
        CaseStatus.MB_REQUESTED,
        CaseStatus.MB_ISSUED,
        CaseStatus.MB_OBJECTION,
    ),
    CasePhase.ENFORCEMENT_ORDER: (
        CaseStatus.PREPARE_VB,
        CaseStatus.VB_REQUESTED,
        CaseStatus.VB_ISSUED,
    ),
    CasePhase.ENFORCEMENT: (
        CaseStatus.TITLE_OBTAINED,
        CaseStatus.ENFORCEMENT_PREP,
        CaseStatus.GV_MANDATED,
        CaseStatus.EV_TAKEN,
    ),
    CasePhase.CLOSED: (
        CaseStatus.PAID,
        CaseStatus.SETTLED,
        CaseStatus.INSOLVENCY,
        CaseStatus.UNCOLLECTIBLE,
    ),
}

_PHASE_BY_STATUS = {status: phase for phase, members in _PHASES.items() for status in members}

CLOSED_STATUSES = frozenset(_PHASES[CasePhase.CLOSED])
# Closures that mean the claim was recovered
RECOVERED_STATUSES = frozenset((CaseStatus.PAID, CaseStatus.SETTLED))
# Cases pending at a court or bailiff; preparation steps are still in-house
LEGAL_STATUSES = frozenset(
    (
        CaseStatus.MB_REQUESTED,
        CaseStatus.MB_ISSUED,
        CaseStatus.MB_OBJECTION,
        CaseStatus.VB_REQUESTED,
        CaseStatus.VB_ISSUED,
        CaseStatus.TITLE_OBTAINED,
        CaseStatus.ENFORCEMENT_PREP,
        CaseStatus.GV_MANDATED,
        CaseStatus.EV_TAKEN,
    )
)
# Only cases that never left intake may be deleted
DELETABLE_STATUSES = frozenset((CaseStatus.DRAFT, CaseStatus.NEW))

_EXITS = (CaseStatus.PAID, CaseStatus.SETTLED)

TRANSITIONS: dict[CaseStatus, tuple[CaseStatus, ...]] = {
    CaseStatus.DRAFT: (CaseStatus.NEW,),
    CaseStatus.NEW: (CaseStatus.REMINDER_1, CaseStatus.ADDRESS_RESEARCH, *_EXITS),
    CaseStatus.REMINDER_1: (CaseStatus.REMINDER_2, CaseStatus.ADDRESS_RESEARCH, *_EXITS),
    CaseStatus.REMINDER_2: (CaseStatus.PREPARE_MB, CaseStatus.ADDRESS_RESEARCH, *_EXITS),
    CaseStatus.ADDRESS_RESEARCH: (
        CaseStatus.REMINDER_1,
        CaseStatus.REMINDER_2,
        CaseStatus.PREPARE_MB,
        CaseStatus.UNCOLLECTIBLE,
    ),
    CaseStatus.PREPARE_MB: (CaseStatus.MB_REQUESTED, *_EXITS),
    CaseStatus.MB_REQUESTED: (CaseStatus.MB_ISSUED, *_EXITS),
    CaseStatus.MB_ISSUED: (CaseStatus.MB_OBJECTION, CaseStatus.PREPARE_VB, *_EXITS),
    CaseStatus.MB_OBJECTION: (CaseStatus.PREPARE_VB, *_EXITS, CaseStatus.UNCOLLECTIBLE),
    CaseStatus.PREPARE_VB: (CaseStatus.VB_REQUESTED, *_EXITS),
    CaseStatus.VB_REQUESTED: (CaseStatus.VB_ISSUED, *_EXITS),
    CaseStatus.VB_ISSUED: (CaseStatus.TITLE_OBTAINED, *_EXITS),
    CaseStatus.TITLE_OBTAINED: (CaseStatus.ENFORCEMENT_PREP, *_EXITS),
    CaseStatus.ENFORCEMENT_PREP: (CaseStatus.GV_MANDATED, *_EXITS, CaseStatus.INSOLVENCY),
    CaseStatus.GV_MANDATED: (
        CaseStatus.EV_TAKEN,
        *_EXITS,
        CaseStatus.INSOLVENCY,
        CaseStatus.UNCOLLECTIBLE,
    ),
    CaseStatus.EV_TAKEN: (*_EXITS, CaseStatus.INSOLVENCY, CaseStatus.UNCOLLECTIBLE),
    CaseStatus.PAID: (),
    CaseStatus.SETTLED: (),
    CaseStatus.INSOLVENCY: (),
    CaseStatus.UNCOLLECTIBLE: (),
}


def phase_of(status: CaseStatus) -> CasePhase:
    return _PHASE_BY_STATUS[status]


def is_closed(status: CaseStatus) -> bool:
    return status in CLOSED_STATUSES


def is_legal(status: CaseStatus) -> bool:
    return status in LEGAL_STATUSES
