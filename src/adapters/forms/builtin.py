"""Formularios builtin (store local).

- Un formulario es una fila con su lista de campos en JSON.
- `submit_response` valida obligatorios, emails y opciones antes de guardar.
- La URL pública es `{site_url}/forms/?form_id=<id>`.
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlencode

from sqlalchemy import func, inspect, select
from sqlalchemy.orm import Session

from adapters.embed import render_form_iframe
from adapters.local_store import FormRecord, FormResponseRecord, LocalStore
from core.config import AppSettings
from core.domain.base import Bag, parse_request
from core.domain.common import ConnectionStatus
from core.domain.forms import (
    EmbedOptions,
    Form,
    FormDefinition,
    FormField,
    FormResponse,
    FormStats,
    FormUpdate,
    ResponseQuery,
)
from core.result import Failure, FailureKind, Ok, fail
from core.signatures import constant_time_equals, hmac_digest

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_answers(fields: list[FormField], answers: dict[str, Any]) -> list[str]:
    """Lista de errores legibles; vacía si las respuestas son válidas."""

    errors: list[str] = []
    for item in fields:
        value = answers.get(item.name)
        empty = value is None or (isinstance(value, str) and not value.strip()) or value == []
        if empty:
            if item.required:
                errors.append(f"{item.name}: required")
            continue
        if item.type == "email" and not _EMAIL_RE.match(str(value)):
            errors.append(f"{item.name}: invalid email")
        if item.type in ("select", "radio") and item.options and str(value) not in item.options:
            errors.append(f"{item.name}: not one of the options")
        if item.type == "checkbox" and item.options:
            chosen = value if isinstance(value, list) else [value]
            if any(str(choice) not in item.options for choice in chosen):
                errors.append(f"{item.name}: not one of the options")
    return errors


def _parse_id(value: str) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_response(record: FormResponseRecord) -> FormResponse:
    return FormResponse(
        id=str(record.id),
        form_id=str(record.form_id),
        answers=dict(record.answers or {}),
        submitted_at=record.submitted_at,
        ip_address=record.ip_address,
    )


class BuiltinFormsAdapter:
    provider_id = "builtin"

    def __init__(
        self,
        store: LocalStore,
        *,
        webhook_secret: str | None = None,
        settings: AppSettings | None = None,
    ) -> None:
        self._store = store
        self._webhook_secret = webhook_secret or ""
        self._settings = settings or AppSettings()

    def form_url(self, form_id: str) -> str:
        return f"{self._settings.site_url.rstrip('/')}/forms/?{urlencode({'form_id': form_id})}"

    def _to_form(self, record: FormRecord) -> Form:
        return Form(
            id=str(record.id),
            title=record.title,
            description=record.description,
            fields=[FormField.model_validate(f) for f in record.fields or []],
            status=record.status,
            url=self.form_url(str(record.id)),
            created_at=record.created_at,
        )

    def _missing_form(self, form_id: str) -> Failure:
        return fail(FailureKind.NOT_FOUND, f"Form {form_id} not found")

    def _load(self, session: Session, form_id: str) -> FormRecord | None:
        key = _parse_id(form_id)
        return session.get(FormRecord, key) if key is not None else None

    def create_form(self, form: FormDefinition | Bag) -> Ok[Form] | Failure:
        parsed = parse_request(FormDefinition, form)
        if isinstance(parsed, Failure):
            return parsed
        definition = parsed.value

        def work(session: Session) -> Form:
            record = FormRecord(
                title=definition.title,
                description=definition.description,
                fields=[f.model_dump() for f in definition.fields],
                status=definition.status,
                settings=dict(definition.settings),
            )
            session.add(record)
            session.flush()
            return self._to_form(record)

        return self._store.run("forms.create_form", work)

    def update_form(self, form_id: str, changes: FormUpdate | Bag) -> Ok[Form] | Failure:
        parsed = parse_request(FormUpdate, changes)
        if isinstance(parsed, Failure):
            return parsed
        update = parsed.value

        def work(session: Session) -> Form | Failure:
            record = self._load(session, form_id)
            if record is None:
                return self._missing_form(form_id)
            if update.title is not None:
                record.title = update.title
            if update.description is not None:
                record.description = update.description
            if update.fields is not None:
                record.fields = [f.model_dump() for f in update.fields]
            if update.status is not None:
                record.status = update.status
            if update.settings is not None:
                record.settings = dict(update.settings)
            session.flush()
            return self._to_form(record)

        return self._store.run("forms.update_form", work)

    def delete_form(self, form_id: str) -> Ok[bool] | Failure:
        def work(session: Session) -> bool | Failure:
            record = self._load(session, form_id)
            if record is None:
                return self._missing_form(form_id)
            for response in session.scalars(select(FormResponseRecord).where(FormResponseRecord.form_id == record.id)):
                session.delete(response)
            session.delete(record)
            return True

        return self._store.run("forms.delete_form", work)

    def get_form(self, form_id: str) -> Ok[Form] | Failure:
        def work(session: Session) -> Form | Failure:
            record = self._load(session, form_id)
            if record is None:
                return self._missing_form(form_id)
            return self._to_form(record)

        return self._store.run("forms.get_form", work)

    def list_forms(self, limit: int = 50, offset: int = 0) -> Ok[list[Form]] | Failure:
        def work(session: Session) -> list[Form]:
            stmt = select(FormRecord).order_by(FormRecord.created_at.desc(), FormRecord.id.desc()).limit(limit).offset(offset)
            return [self._to_form(record) for record in session.scalars(stmt)]

        return self._store.run("forms.list_forms", work)

    def get_responses(self, form_id: str, query: ResponseQuery | Bag | None = None) -> Ok[list[FormResponse]] | Failure:
        parsed = parse_request(ResponseQuery, query)
        if isinstance(parsed, Failure):
            return parsed
        q = parsed.value

        def work(session: Session) -> list[FormResponse] | Failure:
            record = self._load(session, form_id)
            if record is None:
                return self._missing_form(form_id)
            stmt = select(FormResponseRecord).where(FormResponseRecord.form_id == record.id)
            if q.submitted_after is not None:
                stmt = stmt.where(FormResponseRecord.submitted_at >= q.submitted_after)
            stmt = stmt.order_by(FormResponseRecord.submitted_at.desc(), FormResponseRecord.id.desc())
            stmt = stmt.limit(q.limit).offset(q.offset)
            return [_to_response(row) for row in session.scalars(stmt)]

        return self._store.run("forms.get_responses", work)

    def get_response(self, form_id: str, response_id: str) -> Ok[FormResponse] | Failure:
        def work(session: Session) -> FormResponse | Failure:
            key = _parse_id(response_id)
            row = session.get(FormResponseRecord, key) if key is not None else None
            if row is None or str(row.form_id) != str(form_id):
                return fail(FailureKind.NOT_FOUND, f"Response {response_id} not found")
            return _to_response(row)

        return self._store.run("forms.get_response", work)

    def submit_response(
        self, form_id: str, answers: dict[str, Any], ip_address: str | None = None
    ) -> Ok[FormResponse] | Failure:
        def work(session: Session) -> FormResponse | Failure:
            record = self._load(session, form_id)
            if record is None:
                return self._missing_form(form_id)
            if record.status != "active":
                return fail(FailureKind.INVALID_REQUEST, f"Form {form_id} is not accepting responses", code="form_closed")
            fields = [FormField.model_validate(f) for f in record.fields or []]
            errors = validate_answers(fields, answers)
            if errors:
                return fail(FailureKind.INVALID_REQUEST, "; ".join(errors), details={"errors": errors})

            known = {f.name for f in fields}
            row = FormResponseRecord(
                form_id=record.id,
                answers={k: v for k, v in answers.items() if not known or k in known},
                ip_address=ip_address,
            )
            session.add(row)
            session.flush()
            return _to_response(row)

        return self._store.run("forms.submit_response", work)

    def get_form_stats(self, form_id: str) -> Ok[FormStats] | Failure:
        def work(session: Session) -> FormStats | Failure:
            record = self._load(session, form_id)
            if record is None:
                return self._missing_form(form_id)
            count, last = session.execute(
                select(func.count(FormResponseRecord.id), func.max(FormResponseRecord.submitted_at)).where(
                    FormResponseRecord.form_id == record.id
                )
            ).one()
            return FormStats(form_id=str(record.id), responses=int(count or 0), last_response_at=last)

        return self._store.run("forms.get_form_stats", work)

    def get_embed_code(self, form_id: str, options: EmbedOptions | Bag | None = None) -> Ok[str] | Failure:
        parsed = parse_request(EmbedOptions, options)
        if isinstance(parsed, Failure):
            return parsed
        opts = parsed.value
        return Ok(render_form_iframe(self.form_url(form_id), title=opts.title, width=opts.width, height=opts.height))

    def validate_webhook_signature(self, payload: bytes | str, signature: str | None) -> bool:
        if not self._webhook_secret:
            return False
        return constant_time_equals(hmac_digest(self._webhook_secret, payload), signature)

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        def work(session: Session) -> ConnectionStatus | Failure:
            inspector = inspect(session.get_bind())
            missing = [t for t in (FormRecord.__tablename__, FormResponseRecord.__tablename__) if not inspector.has_table(t)]
            if missing:
                return fail(FailureKind.NOT_CONFIGURED, f"Missing tables: {', '.join(missing)}; run init-store")
            return ConnectionStatus(provider=self.provider_id, details={"store": "local"})

        return self._store.run("forms.test_connection", work)
