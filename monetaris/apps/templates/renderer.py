"""Sandboxed Jinja2 rendering of communication templates.

Templates reference ``{{ case.* }}``, ``{{ debtor.* }}`` and ``{{ kreditor.* }}``
variables. Every variable is pre-formatted to a string: dates as dd.MM.yyyy,
amounts with two decimals and missing optional values as ``N/A``. Placeholders
that do not resolve to a known variable are emitted unchanged.
"""

from __future__ import annotations

import re
import time
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping

from jinja2 import StrictUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from monetaris.core.database import from_basis_points, from_cents
from monetaris.core.enums import EntityType
from monetaris.core.masking import mask_iban
from monetaris.core.observability.metrics import record_render_duration

NA = "N/A"

_PLACEHOLDER_RE = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
_PATH_RE = re.compile(r"^\s*([A-Za-z_]\w*)\.([A-Za-z_]\w*)")


class TemplateRenderError(Exception):
    pass


def format_date(value: date | datetime | None) -> str:
    if value is None:
        return NA
    return value.strftime("%d.%m.%Y")


def format_amount(value: Decimal | int | float | None) -> str:
    if value is None:
        return NA
    return f"{Decimal(str(value)):.2f}"


def _text(value: Any) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return NA
    if hasattr(value, "value"):
        return str(value.value)
    return str(value)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


# camelCase spellings that keep acronyms upper-case
_ACRONYM_ALIASES = {
    "bank_account_iban": "bankAccountIBAN",
    "bank_iban": "bankIBAN",
    "bank_bic": "bankBIC",
}


def _with_aliases(values: dict[str, str]) -> dict[str, str]:
    """Expose every snake_case key under its camelCase spelling too."""
    out = dict(values)
    for key, val in values.items():
        out.setdefault(_camel(key), val)
        if key in _ACRONYM_ALIASES:
            out.setdefault(_ACRONYM_ALIASES[key], val)
    return out


def case_variables(row) -> dict[str, str]:
    """Variables for a cases row (amounts in cents, rate in basis points)."""
    total = row.principal_cents + row.costs_cents + row.interest_cents
    rate = from_basis_points(row.interest_rate_bp)
    return _with_aliases(
        {
            "invoice_number": row.invoice_number,
            "invoice_date": format_date(row.invoice_date),
            "due_date": format_date(row.due_date),
            "principal_amount": format_amount(from_cents(row.principal_cents)),
            "costs": format_amount(from_cents(row.costs_cents)),
            "interest": format_amount(from_cents(row.interest_cents)),
            "total_amount": format_amount(from_cents(total)),
            "currency": row.currency,
            "status": row.status,
            "competent_court": row.competent_court,
            "court_file_number": _text(row.court_file_number),
            "next_action_date": format_date(row.next_action_date),
            "date_of_origin": format_date(row.date_of_origin),
            "claim_description": _text(row.claim_description),
            "interest_start_date": format_date(row.interest_start_date),
            "interest_rate": format_amount(rate),
            "is_variable_interest": str(bool(row.is_variable_interest)),
            "interest_end_date": format_date(row.interest_end_date),
            "additional_costs": format_amount(from_cents(row.additional_costs_cents)),
            "procedure_costs": format_amount(from_cents(row.procedure_costs_cents)),
            "interest_on_costs": str(bool(row.interest_on_costs)),
            "statute_of_limitations_date": format_date(row.statute_of_limitations_date),
            "payment_allocation_notes": _text(row.payment_allocation_notes),
        }
    )


_DEBTOR_TEXT_FIELDS = (
    "email",
    "phone_landline",
    "phone_mobile",
    "street",
    "house_number",
    "zip_code",
    "city",
    "city_district",
    "birth_name",
    "gender",
    "birth_place",
    "birth_country",
    "floor",
    "door_position",
    "additional_address_info",
    "po_box",
    "po_box_zip_code",
    "represented_by",
    "place_of_death",
    "fax",
    "ebo_address",
    "bank_iban",
    "bank_bic",
    "bank_name",
    "register_court",
    "register_number",
    "vat_id",
    "partners",
    "file_reference",
)


def debtor_variables(row) -> dict[str, str]:
    is_company = EntityType(row.entity_type) != EntityType.NATURAL_PERSON
    values = {name: _text(getattr(row, name)) for name in _DEBTOR_TEXT_FIELDS}
    if is_company:
        values["name"] = _text(row.company_name)
        values["company_name"] = _text(row.company_name)
        values["salutation"] = "Sehr geehrte Damen und Herren"
    else:
        values["first_name"] = _text(row.first_name)
        values["last_name"] = _text(row.last_name)
        values["name"] = " ".join(p for p in (row.first_name, row.last_name) if p) or NA
        values["salutation"] = f"Sehr geehrte/r Frau/Herr {row.last_name or ''}".rstrip()
    values.update(
        {
            "phone": _text(row.phone_landline or row.phone_mobile),
            "country": row.country,
            "address": f"{row.street or ''} {row.house_number or ''}, {row.zip_code or ''} {row.city or ''}".strip(),
            "total_debt": format_amount(from_cents(row.total_debt_cents)),
            "open_cases": str(row.open_cases or 0),
            "entity_type": row.entity_type,
            "is_company": str(is_company),
            "date_of_birth": format_date(row.date_of_birth),
            "is_deceased": str(bool(row.is_deceased)),
        }
    )
    return _with_aliases(values)


def kreditor_variables(row, *, full_iban: bool = False) -> dict[str, str]:
    iban = row.bank_account_iban if full_iban else mask_iban(row.bank_account_iban)
    return _with_aliases(
        {
            "name": row.name,
            "registration_number": row.registration_number,
            "contact_email": row.contact_email,
            "bank_account_iban": iban,
        }
    )


class TemplateRenderer:
    """Render template text against variable groups in a Jinja2 sandbox."""

    def __init__(self):
        self.env = SandboxedEnvironment(
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )

    def _protect_unknown(self, source: str, variables: Mapping[str, Mapping[str, str]]) -> str:
        def repl(match: re.Match) -> str:
            path = _PATH_RE.match(match.group(1))
            if path and path.group(2) in variables.get(path.group(1), {}):
                return match.group(0)
            return "{% raw %}" + match.group(0) + "{% endraw %}"

        return _PLACEHOLDER_RE.sub(repl, source)

    def render_text(self, source: str, variables: Mapping[str, Mapping[str, str]]) -> str:
        try:
            template = self.env.from_string(self._protect_unknown(source, variables))
            return template.render(**variables)
        except TemplateError as exc:
            raise TemplateRenderError(str(exc)) from exc

    def check_syntax(self, source: str) -> None:
        """Validate block tags; placeholders are checked at render time."""
        try:
            self.env.parse(self._protect_unknown(source, {}))
        except TemplateError as exc:
            raise TemplateRenderError(str(exc)) from exc

    def render(
        self, subject: str | None, content: str, variables: Mapping[str, Mapping[str, str]]
    ) -> tuple[str | None, str]:
        start = time.time()
        try:
            rendered_subject = self.render_text(subject, variables) if subject is not None else None
            return rendered_subject, self.render_text(content, variables)
        finally:
            record_render_duration((time.time() - start) * 1000)
