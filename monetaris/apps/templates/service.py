from __future__ import annotations

from sqlalchemy import delete, insert, or_, select, update
from sqlalchemy.engine import Connection, Engine

from monetaris.core.auth.context import CurrentUser
from monetaris.core.auth.scope import KreditorScope
from monetaris.core.database import as_utc, new_id, utcnow
from monetaris.core.enums import TemplateCategory, TemplateType, UserRole
from monetaris.core.errors import AccessDeniedError, NotFoundError, ValidationFailedError
from monetaris.core.observability.logging import hash_actor_token, logger
from monetaris.core.party import enum_values
from monetaris.core.tables import cases, debtors, kreditoren, templates

from .models import (
    CreateTemplateRequest,
    RenderTemplateRequest,
    RenderTemplateResponse,
    TemplateFields,
    TemplateOut,
    UpdateTemplateRequest,
)
from .renderer import (
    TemplateRenderer,
    TemplateRenderError,
    case_variables,
    debtor_variables,
    kreditor_variables,
)

_FIELDS = tuple(TemplateFields.model_fields)
_EDITORS = (UserRole.ADMIN, UserRole.AGENT)


def _to_out(row) -> TemplateOut:
    return TemplateOut(
        id=row.id,
        kreditor_id=row.kreditor_id,
        name=row.name,
        type=TemplateType(row.type),
        category=TemplateCategory(row.category),
        subject=row.subject,
        content=row.content,
        last_modified=as_utc(row.last_modified),
        created_at=as_utc(row.created_at),
    )


def _visible(scope: KreditorScope):
    """Global templates plus those of the Kreditoren in scope."""
    cond = scope.condition(templates.c.kreditor_id)
    if cond is None:
        return None
    return or_(templates.c.kreditor_id.is_(None), cond)


class TemplateService:
    """Communication templates and their rendering against case data."""

    def __init__(self, engine: Engine, renderer: TemplateRenderer | None = None):
        self.engine = engine
        self.renderer = renderer or TemplateRenderer()

    def list_templates(
        self,
        user: CurrentUser,
        type_: TemplateType | None = None,
        category: TemplateCategory | None = None,
    ) -> list[TemplateOut]:
        scope = KreditorScope.for_user(user, "templates")
        stmt = select(templates)
        cond = _visible(scope)
        if cond is not None:
            stmt = stmt.where(cond)
        if type_ is not None:
            stmt = stmt.where(templates.c.type == type_.value)
        if category is not None:
            stmt = stmt.where(templates.c.category == category.value)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt.order_by(templates.c.category, templates.c.name)).all()
        return [_to_out(r) for r in rows]

    def get_template(self, template_id: str, user: CurrentUser) -> TemplateOut:
        scope = KreditorScope.for_user(user, "templates")
        with self.engine.connect() as conn:
            row = self._load(conn, template_id, scope)
        return _to_out(row)

    def create_template(self, body: CreateTemplateRequest, user: CurrentUser) -> TemplateOut:
        self._require_editor(user, "create")
        scope = KreditorScope.for_user(user, "templates")
        self._check_syntax(body)
        template_id = new_id()
        now = utcnow()
        with self.engine.begin() as conn:
            if body.kreditor_id is not None:
                exists = conn.execute(
                    select(kreditoren.c.id).where(kreditoren.c.id == body.kreditor_id)
                ).first()
                if exists is None:
                    raise NotFoundError("Kreditor not found")
                scope.ensure(body.kreditor_id, "kreditor")
            elif not user.is_admin:
                raise AccessDeniedError("Only administrators can create global templates")
            conn.execute(
                insert(templates).values(
                    id=template_id,
                    kreditor_id=body.kreditor_id,
                    last_modified=now,
                    created_at=now,
                    updated_at=now,
                    **enum_values(body.model_dump(include=set(_FIELDS))),
                )
            )
            row = conn.execute(select(templates).where(templates.c.id == template_id)).one()

        logger.info("template_created", extra={"template_id": template_id, "kreditor_id": body.kreditor_id})
        return _to_out(row)

    def update_template(self, template_id: str, body: UpdateTemplateRequest, user: CurrentUser) -> TemplateOut:
        self._require_editor(user, "update")
        scope = KreditorScope.for_user(user, "templates")
        self._check_syntax(body)
        now = utcnow()
        with self.engine.begin() as conn:
            row = self._load(conn, template_id, scope)
            if row.kreditor_id is None and not user.is_admin:
                raise AccessDeniedError("Only administrators can update global templates")
            conn.execute(
                update(templates)
                .where(templates.c.id == template_id)
                .values(
                    last_modified=now,
                    updated_at=now,
                    **enum_values(body.model_dump(include=set(_FIELDS))),
                )
            )
            row = conn.execute(select(templates).where(templates.c.id == template_id)).one()

        logger.info("template_updated", extra={"template_id": template_id})
        return _to_out(row)

    def delete_template(self, template_id: str, user: CurrentUser) -> None:
        if not user.is_admin:
            raise AccessDeniedError("Only administrators can delete templates")
        with self.engine.begin() as conn:
            self._load(conn, template_id, KreditorScope(None))
            conn.execute(delete(templates).where(templates.c.id == template_id))

        logger.info("template_deleted", extra={"template_id": template_id})

    def render_template(
        self, template_id: str, body: RenderTemplateRequest, user: CurrentUser
    ) -> RenderTemplateResponse:
        """Render with the Kreditor IBAN masked."""
        return self._render(template_id, body, user, full_iban=False)

    def render_payment_template(
        self, template_id: str, body: RenderTemplateRequest, user: CurrentUser
    ) -> RenderTemplateResponse:
        """Render with the full Kreditor IBAN for payment documents (ADMIN only)."""
        if not user.is_admin:
            logger.warning(
                "payment_template_denied",
                extra={"template_id": template_id, "actor": hash_actor_token(user.id)},
            )
            raise AccessDeniedError("Only administrators can render payment templates with full IBAN")
        return self._render(template_id, body, user, full_iban=True)

    def _render(
        self, template_id: str, body: RenderTemplateRequest, user: CurrentUser, *, full_iban: bool
    ) -> RenderTemplateResponse:
        scope = KreditorScope.for_user(user, "templates")
        with self.engine.connect() as conn:
            tpl = self._load(conn, template_id, scope)
            variables = self._variables(conn, body, scope, full_iban=full_iban)
        try:
            subject, content = self.renderer.render(tpl.subject, tpl.content, variables)
        except TemplateRenderError as exc:
            raise ValidationFailedError(
                "Template could not be rendered", errors=[str(exc)], code="template_error"
            ) from exc

        event = "payment_template_rendered" if full_iban else "template_rendered"
        logger.info(event, extra={"template_id": template_id, "actor": hash_actor_token(user.id)})
        return RenderTemplateResponse(rendered_subject=subject, rendered_content=content)

    @staticmethod
    def _variables(
        conn: Connection, body: RenderTemplateRequest, scope: KreditorScope, *, full_iban: bool
    ) -> dict[str, dict[str, str]]:
        variables: dict[str, dict[str, str]] = {}
        debtor_id = body.debtor_id
        if body.case_id:
            case_row = conn.execute(select(cases).where(cases.c.id == body.case_id)).first()
            if case_row is None:
                raise NotFoundError("Case not found")
            scope.ensure(case_row.kreditor_id, "case")
            variables["case"] = case_variables(case_row)
            debtor_id = case_row.debtor_id
        if debtor_id:
            debtor_row = conn.execute(select(debtors).where(debtors.c.id == debtor_id)).first()
            if debtor_row is None:
                raise NotFoundError("Debtor not found")
            scope.ensure(debtor_row.kreditor_id, "debtor")
            variables["debtor"] = debtor_variables(debtor_row)
            kreditor_row = conn.execute(
                select(kreditoren).where(kreditoren.c.id == debtor_row.kreditor_id)
            ).one()
            variables["kreditor"] = kreditor_variables(kreditor_row, full_iban=full_iban)
        return variables

    def _check_syntax(self, body: TemplateFields) -> None:
        try:
            self.renderer.check_syntax(body.content)
            if body.subject:
                self.renderer.check_syntax(body.subject)
        except TemplateRenderError as exc:
            raise ValidationFailedError(
                "Template syntax error", errors=[str(exc)], code="template_syntax"
            ) from exc

    @staticmethod
    def _require_editor(user: CurrentUser, action: str) -> None:
        if user.role not in _EDITORS:
            raise AccessDeniedError(f"Only administrators and agents can {action} templates")

    @staticmethod
    def _load(conn: Connection, template_id: str, scope: KreditorScope):
        row = conn.execute(select(templates).where(templates.c.id == template_id)).first()
        if row is None:
            raise NotFoundError("Template not found")
        if row.kreditor_id is not None:
            scope.ensure(row.kreditor_id, "template")
        return row
