import inspect
import itertools
import json
import socket
import warnings
from datetime import date
from decimal import Decimal
from pathlib import Path

import httpx
import pytest
import sqlalchemy as sa
from fastapi.testclient import TestClient

from monetaris.apps.cases.models import CreateCaseRequest
from monetaris.apps.cases.service import CaseService
from monetaris.apps.debtors.models import CreateDebtorRequest
from monetaris.apps.debtors.service import DebtorService
from monetaris.apps.kreditoren.models import KreditorRequest
from monetaris.apps.kreditoren.service import KreditorService
from monetaris.apps.users.models import CreateUserRequest
from monetaris.apps.users.service import UserService
from monetaris.core.auth.context import load_user
from monetaris.core.config import settings
from monetaris.core.database import create_schema, get_engine
from monetaris.core.enums import EntityType, UserRole
from monetaris.core.observability.metrics import reset_metrics

VIOLATIONS = []
ARTIFACTS_DIR = Path("artifacts")
ARTIFACTS_DIR.mkdir(parents=True, exist_ok=True)
REPORT = ARTIFACTS_DIR / "egress-violations.json"

warnings.filterwarnings(
    "ignore",
    message="Please use `import python_multipart` instead.",
    category=PendingDeprecationWarning,
)

VALID_IBAN = "DE89370400440532013000"


def _is_allowed_callstack(allowed_paths: list[str]) -> bool:
    for frame in inspect.stack():
        filename = (frame.filename or "").replace("\\", "/")
        for ap in allowed_paths:
            if ap in filename:
                return True
    return False


@pytest.fixture(autouse=True, scope="session")
def egress_guard():
    """Block real network access; TestClient traffic stays in-process."""
    allowed_client_paths = ["/tests/"]

    real_getaddrinfo = socket.getaddrinfo
    real_create_connection = socket.create_connection
    real_httpx_init = httpx.Client.__init__

    def guard_getaddrinfo(host, *args, **kwargs):
        VIOLATIONS.append({"fn": "getaddrinfo", "host": str(host)})
        raise RuntimeError("Egress blocked: getaddrinfo disallowed")

    def guard_create_connection(address, *args, **kwargs):
        VIOLATIONS.append({"fn": "create_connection", "address": str(address)})
        raise RuntimeError("Egress blocked: create_connection disallowed")

    def guard_httpx_init(self, *args, **kwargs):
        if not _is_allowed_callstack(allowed_client_paths):
            VIOLATIONS.append({"fn": "httpx.Client.__init__"})
            raise RuntimeError("Egress blocked: httpx.Client not allowed from this callsite")
        return real_httpx_init(self, *args, **kwargs)

    socket.getaddrinfo = guard_getaddrinfo  # type: ignore[assignment]
    socket.create_connection = guard_create_connection  # type: ignore[assignment]
    httpx.Client.__init__ = guard_httpx_init  # type: ignore[assignment]

    yield

    # Restore
    socket.getaddrinfo = real_getaddrinfo  # type: ignore[assignment]
    socket.create_connection = real_create_connection  # type: ignore[assignment]
    httpx.Client.__init__ = real_httpx_init  # type: ignore[assignment]

    REPORT.write_text(json.dumps(VIOLATIONS, indent=2))


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_ROOT", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "WORKFLOW_DEADLINES_PATH", "")
    monkeypatch.setattr(settings, "enable_metrics", True)
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'monetaris.db'}"


@pytest.fixture
def engine(db_url):
    eng = sa.create_engine(db_url, future=True)
    create_schema(eng)
    yield eng
    eng.dispose()


def current(engine, user_id):
    with engine.connect() as conn:
        return load_user(conn, user_id)


def make_user(engine, name, email, role, kreditor_id=None):
    out = UserService(engine).create_user(
        CreateUserRequest(name=name, email=email, role=role, kreditor_id=kreditor_id)
    )
    return current(engine, out.id)


def kreditor_request(**overrides) -> KreditorRequest:
    data = {
        "name": "Stadtwerke Musterstadt GmbH",
        "registration_number": "HRB 12345",
        "contact_email": "inkasso@stadtwerke.example",
        "bank_account_iban": VALID_IBAN,
        "entity_type": EntityType.LEGAL_ENTITY,
        "city": "Musterstadt",
    }
    data.update(overrides)
    return KreditorRequest(**data)


def debtor_request(kreditor_id, **overrides) -> CreateDebtorRequest:
    data = {
        "kreditor_id": kreditor_id,
        "entity_type": EntityType.NATURAL_PERSON,
        "first_name": "Max",
        "last_name": "Mustermann",
        "email": "max.mustermann@example.org",
        "street": "Hauptstrasse",
        "house_number": "5",
        "zip_code": "10115",
        "city": "Berlin",
    }
    data.update(overrides)
    return CreateDebtorRequest(**data)


def case_request(kreditor_id, debtor_id, **overrides) -> CreateCaseRequest:
    data = {
        "kreditor_id": kreditor_id,
        "debtor_id": debtor_id,
        "invoice_number": "RE-2024-001",
        "principal_amount": Decimal("100.00"),
        "costs": Decimal("10.00"),
        "interest": Decimal("5.50"),
        "invoice_date": date(2024, 1, 10),
        "due_date": date(2024, 2, 10),
    }
    data.update(overrides)
    return CreateCaseRequest(**data)


@pytest.fixture
def user_factory(engine):
    def _make(name, email, role, kreditor_id=None):
        return make_user(engine, name, email, role, kreditor_id)

    return _make


@pytest.fixture
def reload_user(engine):
    """Re-read a user after assignments changed."""

    def _reload(user):
        return current(engine, user.id)

    return _reload


@pytest.fixture
def admin(user_factory):
    return user_factory("Anna Admin", "admin@monetaris.example", UserRole.ADMIN)


@pytest.fixture
def kreditor(engine, admin):
    return KreditorService(engine).create_kreditor(kreditor_request(), admin)


@pytest.fixture
def other_kreditor(engine, admin):
    return KreditorService(engine).create_kreditor(
        kreditor_request(
            name="Wohnbau Nord AG",
            registration_number="HRB 99999",
            contact_email="forderungen@wohnbau.example",
        ),
        admin,
    )


@pytest.fixture
def client_user(user_factory, kreditor):
    return user_factory("Clara Client", "clara@stadtwerke.example", UserRole.CLIENT, kreditor.id)


@pytest.fixture
def agent(engine, user_factory, kreditor):
    user = user_factory("Alex Agent", "alex@monetaris.example", UserRole.AGENT)
    UserService(engine).assign_kreditor(user.id, kreditor.id)
    return current(engine, user.id)


@pytest.fixture
def debtor_user(user_factory):
    return user_factory("Doris Debtor", "doris@example.org", UserRole.DEBTOR)


@pytest.fixture
def debtor(engine, admin, kreditor):
    return DebtorService(engine).create_debtor(debtor_request(kreditor.id), admin)


@pytest.fixture
def other_debtor(engine, admin, other_kreditor):
    return DebtorService(engine).create_debtor(
        debtor_request(
            other_kreditor.id,
            entity_type=EntityType.LEGAL_ENTITY,
            first_name=None,
            last_name=None,
            company_name="Baufirma Schmidt KG",
            email="buchhaltung@schmidt.example",
            city="Hamburg",
        ),
        admin,
    )


@pytest.fixture
def case_service(engine):
    return CaseService(engine)


@pytest.fixture
def create_case(case_service, admin, kreditor, debtor):
    """Create a case for ``debtor``; invoice numbers are numbered per test."""
    numbers = itertools.count(1)

    def _create(user=None, now=None, **overrides):
        overrides.setdefault("invoice_number", f"RE-2024-{next(numbers):03d}")
        kreditor_id = overrides.pop("kreditor_id", kreditor.id)
        debtor_id = overrides.pop("debtor_id", debtor.id)
        body = case_request(kreditor_id, debtor_id, **overrides)
        return case_service.create_case(body, user or admin, now=now)

    return _create


@pytest.fixture
def api(engine):
    from monetaris.app import app

    app.dependency_overrides[get_engine] = lambda: engine
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
