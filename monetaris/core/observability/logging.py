"""JSON structured logging with mandatory fields and PII redaction."""
import hmac
import json
import logging
import re
import sys
import threading
from datetime import datetime, timezone
from hashlib import sha256
from typing import Optional

from monetaris.core.config import settings

# Thread-local storage for context
_context = threading.local()

_RESERVED = frozenset(
    (
        'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
        'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
        'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
        'processName', 'process', 'message', 'taskName',
    )
)


class JSONFormatter(logging.Formatter):
    """JSON formatter with mandatory fields and PII redaction."""

    def __init__(self):
        super().__init__()
        # PII patterns
        self.iban_pattern = re.compile(r'\b([A-Z]{2}\d{2}[A-Z0-9]{11,30})\b')
        self.email_pattern = re.compile(r'(\b\S+@\S+\.\S+\b)')
        self.phone_pattern = re.compile(r'(\+?\d[\d \-/]{6,})')

    def _redact_pii(self, text: str) -> str:
        """Redact PII from text."""
        if not isinstance(text, str):
            return text
        text = self.iban_pattern.sub(self._mask_iban, text)
        text = self.email_pattern.sub(self._mask_email, text)
        text = self.phone_pattern.sub(self._mask_phone, text)
        return text

    def _mask_iban(self, match) -> str:
        """Mask IBAN: show country code, mask the rest."""
        iban = match.group(1)
        return iban[:2] + "*" * (len(iban) - 2)

    def _mask_email(self, match) -> str:
        """Mask email: show first char of user, keep domain."""
        email = match.group(1)
        if "@" not in email:
            return email
        user, domain = email.split("@", 1)
        masked_user = "*" if len(user) <= 1 else user[0] + "*" * (len(user) - 1)
        return f"{masked_user}@{domain}"

    def _mask_phone(self, match) -> str:
        phone = match.group(1)
        if len(phone) <= 2:
            return "*" * len(phone)
        return phone[:2] + "*" * (len(phone) - 2)

    def format(self, record):
        """Format log record as JSON with mandatory fields and PII redaction."""
        log_entry = {
            'trace_id': getattr(_context, 'trace_id', None) or 'unknown',
            'tenant_id': getattr(_context, 'tenant_id', None) or 'unknown',
            'level': record.levelname.lower(),
            'logger': record.name,
            'msg': self._redact_pii(record.getMessage()),
            'ts_utc': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        }

        user_id = getattr(_context, 'user_id', None)
        if user_id:
            log_entry['user_id'] = user_id

        if record.exc_info:
            log_entry['exc_info'] = self.formatException(record.exc_info)

        # Extra fields; identifiers (*_id) are passed through unredacted
        for key, value in record.__dict__.items():
            if key in _RESERVED:
                continue
            if isinstance(value, str) and not key.endswith('_id'):
                value = self._redact_pii(value)
            log_entry[key] = value

        return json.dumps(log_entry, default=str)


def set_trace_id(trace_id: Optional[str]) -> None:
    """Set trace ID for current thread context."""
    _context.trace_id = trace_id


def set_tenant_id(tenant_id: Optional[str]) -> None:
    """Set tenant (Kreditor) ID for current thread context."""
    _context.tenant_id = tenant_id


def set_user_id(user_id: Optional[str]) -> None:
    _context.user_id = user_id


def init_logging() -> None:
    """Initialize JSON logging on the root logger."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get logger with JSON formatting."""
    return logging.getLogger(name)


# Convenience logger
logger = get_logger("monetaris")


def hash_actor_token(token: str) -> str:
    """Return an HMAC-SHA256 hash of an actor identifier using AUDIT_HMAC_KEY.

    Audit events reference actors by this stable hash so raw identifiers
    never reach log storage.
    """
    key = settings.AUDIT_HMAC_KEY.encode()
    return hmac.new(key, token.encode(), sha256).hexdigest()
