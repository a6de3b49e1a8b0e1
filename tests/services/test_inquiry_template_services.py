from __future__ import annotations

import pytest
import sqlalchemy as sa
from pydantic import ValidationError

from monetaris.apps.inquiries.models import CreateInquiryRequest, ResolveInquiryRequest
from monetaris.apps.inquiries.service import InquiryService
from monetaris.apps.templates.models import CreateTemplateRequest, RenderTemplateRequest, UpdateTemplateRequest
from monetaris.apps.templates.service import TemplateService
from monetaris.core.enums import InquiryStatus, TemplateCategory, TemplateType
from monetaris.core.errors import AccessDeniedError, NotFoundError, ValidationFailedError
from monetaris.core.observability.metrics import get_metrics
from monetaris.core.tables import debtors

REMINDER = (
    "{{ debtor.salutation }},\n"
    "die Rechnung {{ case.invoice_number }} vom {{ case.invoice_date }} ist offen.\n"
    "Bitte ueberweisen Sie {{ case.totalAmount }} {{ case.currency }} auf {{ kreditor.bank_account_iban }}.\n"
    "{{ case.unbekannt }}"
)


def _template(kreditor_id=None, **overrides) -> CreateTemplateRequest:
    data = {
        "name": "Erste Mahnung",
        "type": TemplateType.LETTER,
        "category": TemplateCategory.REMINDER,
        "subject": "Mahnung {{ case.invoice_number }}",
        "content": REMINDER,
        "kreditor_id": kreditor_id,
    }
    data.update(overrides)
    return CreateTemplateRequest(**data)


# Inquiries


def test_inquiry_lifecycle(engine, agent, client_user, create_case) -> None:
    case = create_case()
    svc = InquiryService(engine)
    created = svc.create_inquiry(
        CreateInquiryRequest(case_id=case.id, question="  Wurde die Zahlung bereits angemahnt?  "), client_user
    )
    assert created.status is InquiryStatus.OPEN
    assert created.question == "Wurde die Zahlung bereits angemahnt?"
    assert created.case_invoice_number == case.invoice_number
    assert created.created_by_name == "Clara Client"
    assert created.answer is None and created.resolved_at is None

    resolved = svc.resolve_inquiry(
        created.id, ResolveInquiryRequest(answer="Ja, am 14.02.2024 per Brief."), agent
    )
    assert resolved.status is InquiryStatus.RESOLVED
    assert resolved.answer == "Ja, am 14.02.2024 per Brief."
    assert resolved.resolved_at is not None

    with pytest.raises(ValidationFailedError, match="Inquiry is already resolved") as exc:
        svc.resolve_inquiry(created.id, ResolveInquiryRequest(answer="Noch einmal beantwortet."), agent)
    assert exc.value.code == "already_resolved"


def test_inquiry_filters(engine, admin, create_case) -> None:
    first, second = create_case(), create_case()
    svc = InquiryService(engine)
    one = svc.create_inquiry(CreateInquiryRequest(case_id=first.id, question="Frage zum ersten Fall"), admin)
    svc.create_inquiry(CreateInquiryRequest(case_id=second.id, question="Frage zum zweiten Fall"), admin)
    svc.resolve_inquiry(one.id, ResolveInquiryRequest(answer="Antwort auf die erste Frage"), admin)

    assert len(svc.list_inquiries(admin)) == 2
    assert [i.id for i in svc.list_inquiries(admin, status=InquiryStatus.RESOLVED)] == [one.id]
    assert [i.case_id for i in svc.list_inquiries(admin, case_id=second.id)] == [second.id]


def test_inquiry_scope(engine, admin, user_factory, other_kreditor, create_case) -> None:
    case = create_case()
    foreign = user_factory("Olaf Other", "olaf@wohnbau.example", "CLIENT", other_kreditor.id)
    svc = InquiryService(engine)
    with pytest.raises(AccessDeniedError):
        svc.create_inquiry(CreateInquiryRequest(case_id=case.id, question="Darf ich das sehen?"), foreign)
    svc.create_inquiry(CreateInquiryRequest(case_id=case.id, question="Interne Rueckfrage"), admin)
    assert svc.list_inquiries(foreign) == []


def test_inquiry_validation(engine, admin) -> None:
    with pytest.raises(ValidationError):
        CreateInquiryRequest(case_id="x", question="zu kurz")
    with pytest.raises(ValidationError):
        ResolveInquiryRequest(answer="    kurz    ")
    with pytest.raises(NotFoundError, match="Case not found"):
        InquiryService(engine).create_inquiry(
            CreateInquiryRequest(case_id="missing", question="Gibt es diesen Fall?"), admin
        )


# Templates


def test_render_with_case_masks_iban(engine, agent, create_case) -> None:
    case = create_case()
    svc = TemplateService(engine)
    tpl = svc.create_template(_template(case.kreditor_id), agent)
    out = svc.render_template(tpl.id, RenderTemplateRequest(case_id=case.id), agent)

    assert out.rendered_subject == f"Mahnung {case.invoice_number}"
    assert out.rendered_content == (
        "Sehr geehrte/r Frau/Herr Mustermann,\n"
        f"die Rechnung {case.invoice_number} vom 10.01.2024 ist offen.\n"
        "Bitte ueberweisen Sie 115.50 EUR auf DE** **** **** **13000.\n"
        "{{ case.unbekannt }}"
    )
    assert get_metrics()["template_render_duration_ms"]["count"] == 1


def test_render_payment_template_needs_admin(engine, admin, agent, create_case) -> None:
    case = create_case()
    svc = TemplateService(engine)
    tpl = svc.create_template(_template(category=TemplateCategory.PAYMENT), admin)
    body = RenderTemplateRequest(case_id=case.id)

    out = svc.render_payment_template(tpl.id, body, admin)
    assert "DE89370400440532013000" in out.rendered_content

    with pytest.raises(AccessDeniedError, match="Only administrators can render payment templates"):
        svc.render_payment_template(tpl.id, body, agent)


def test_render_acronym_placeholders(engine, admin, debtor, create_case) -> None:
    with engine.begin() as conn:
        conn.execute(
            sa.update(debtors)
            .where(debtors.c.id == debtor.id)
            .values(bank_iban="DE02120300000000202051", bank_bic="BYLADEM1001")
        )
    case = create_case()
    svc = TemplateService(engine)
    tpl = svc.create_template(
        _template(
            category=TemplateCategory.PAYMENT,
            subject=None,
            content="{{kreditor.bankAccountIBAN}} / {{ debtor.bankIBAN }} {{ debtor.bankBIC }}",
        ),
        admin,
    )
    out = svc.render_payment_template(tpl.id, RenderTemplateRequest(case_id=case.id), admin)
    assert out.rendered_content == "DE89370400440532013000 / DE02120300000000202051 BYLADEM1001"


def test_render_for_company_debtor(engine, admin, other_debtor) -> None:
    svc = TemplateService(engine)
    tpl = svc.create_template(
        _template(subject=None, content="{{ debtor.salutation }}, {{ debtor.name }} in {{ debtor.city }}"), admin
    )
    out = svc.render_template(tpl.id, RenderTemplateRequest(debtor_id=other_debtor.id), admin)
    assert out.rendered_subject is None
    assert out.rendered_content == "Sehr geehrte Damen und Herren, Baufirma Schmidt KG in Hamburg"


def test_render_without_data_keeps_placeholders(engine, admin) -> None:
    svc = TemplateService(engine)
    tpl = svc.create_template(_template(subject=None, content="Hallo {{ debtor.name }}!"), admin)
    out = svc.render_template(tpl.id, RenderTemplateRequest(), admin)
    assert out.rendered_content == "Hallo {{ debtor.name }}!"


def test_render_error_is_reported(engine, admin, create_case) -> None:
    case = create_case()
    svc = TemplateService(engine)
    tpl = svc.create_template(_template(content="Betrag: {{ case.total_amount | gibtsnicht }}"), admin)
    with pytest.raises(ValidationFailedError) as exc:
        svc.render_template(tpl.id, RenderTemplateRequest(case_id=case.id), admin)
    assert exc.value.code == "template_error"
    assert exc.value.errors


def test_syntax_errors_are_rejected(engine, admin) -> None:
    svc = TemplateService(engine)
    with pytest.raises(ValidationFailedError) as exc:
        svc.create_template(_template(content="Hallo {% if %} kaputt und offen"), admin)
    assert exc.value.code == "template_syntax"
    with pytest.raises(ValidationFailedError):
        svc.create_template(_template(subject="{% for x in %}"), admin)


def test_template_permissions(engine, admin, agent, client_user, kreditor) -> None:
    svc = TemplateService(engine)
    with pytest.raises(AccessDeniedError):
        svc.create_template(_template(kreditor.id), client_user)
    with pytest.raises(AccessDeniedError, match="Only administrators can create global templates"):
        svc.create_template(_template(), agent)

    global_tpl = svc.create_template(_template(), admin)
    body = UpdateTemplateRequest(**_template().model_dump(exclude={"kreditor_id"}))
    with pytest.raises(AccessDeniedError, match="Only administrators can update global templates"):
        svc.update_template(global_tpl.id, body, agent)
    with pytest.raises(AccessDeniedError, match="Only administrators can delete templates"):
        svc.delete_template(global_tpl.id, agent)


def test_template_visibility(engine, admin, client_user, kreditor, other_kreditor) -> None:
    svc = TemplateService(engine)
    svc.create_template(_template(name="Global"), admin)
    own = svc.create_template(_template(kreditor.id, name="Eigene", type=TemplateType.EMAIL), admin)
    foreign = svc.create_template(_template(other_kreditor.id, name="Fremd"), admin)

    assert sorted(t.name for t in svc.list_templates(client_user)) == ["Eigene", "Global"]
    assert len(svc.list_templates(admin)) == 3
    assert [t.id for t in svc.list_templates(admin, type_=TemplateType.EMAIL)] == [own.id]
    assert svc.list_templates(admin, category=TemplateCategory.LEGAL) == []
    with pytest.raises(AccessDeniedError):
        svc.get_template(foreign.id, client_user)


def test_update_and_delete_template(engine, admin, agent, kreditor) -> None:
    svc = TemplateService(engine)
    tpl = svc.create_template(_template(kreditor.id), agent)
    body = UpdateTemplateRequest(
        name="Zweite Mahnung",
        type=TemplateType.EMAIL,
        category=TemplateCategory.REMINDER,
        subject="  ",
        content="Letzte Erinnerung an {{ case.invoice_number }}",
    )
    out = svc.update_template(tpl.id, body, agent)
    assert out.name == "Zweite Mahnung"
    assert out.subject is None
    assert out.kreditor_id == kreditor.id
    assert out.last_modified >= tpl.last_modified

    svc.delete_template(tpl.id, admin)
    with pytest.raises(NotFoundError, match="Template not found"):
        svc.get_template(tpl.id, admin)
