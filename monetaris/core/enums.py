"""Shared enumerations."""

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    AGENT = "AGENT"
    CLIENT = "CLIENT"
    DEBTOR = "DEBTOR"


class EntityType(str, Enum):
    NATURAL_PERSON = "NATURAL_PERSON"
    LEGAL_ENTITY = "LEGAL_ENTITY"
    PARTNERSHIP = "PARTNERSHIP"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    DIVERSE = "DIVERSE"


class DoorPosition(str, Enum):
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    MIDDLE = "MIDDLE"


class AddressStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    RESEARCH_PENDING = "RESEARCH_PENDING"
    CONFIRMED = "CONFIRMED"
    MOVED = "MOVED"
    DECEASED = "DECEASED"


class RiskScore(str, Enum):
    """Debtor risk class, A = lowest risk."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"


class InquiryStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"


class DocumentType(str, Enum):
    PDF = "PDF"
    IMAGE = "IMAGE"
    WORD = "WORD"
    EXCEL = "EXCEL"


class TemplateType(str, Enum):
    EMAIL = "EMAIL"
    LETTER = "LETTER"
    SMS = "SMS"


class TemplateCategory(str, Enum):
    REMINDER = "REMINDER"
    LEGAL = "LEGAL"
    PAYMENT = "PAYMENT"
    GENERAL = "GENERAL"
