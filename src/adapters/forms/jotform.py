"""Adaptador de formularios: JotForm (API REST, form-encoded).

- Clave en la cabecera `APIKEY`.
- Las respuestas llevan envelope `{"responseCode", "message", "content"}`;
  un `responseCode` distinto de 200 con HTTP 200 es api_error.
- JotForm no firma sus webhooks: se valida un token compartido que el
  receptor añade a la URL del webhook.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

import httpx

from adapters.embed import render_form_iframe
from adapters.http_client import HttpTransport, dig, flatten_params
from core.config import AppSettings
from core.domain.base import Bag, parse_datetime, parse_request
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
from core.result import Failure, FailureKind, Ok, fail, not_configured, not_supported
from core.signatures import constant_time_equals

FIELD_TO_CONTROL: dict[str, str] = {
    "text": "control_textbox",
    "email": "control_email",
    "phone": "control_phone",
    "number": "control_number",
    "textarea": "control_textarea",
    "select": "control_dropdown",
    "radio": "control_radio",
    "checkbox": "control_checkbox",
    "date": "control_datetime",
}
CONTROL_TO_FIELD = {control: field for field, control in FIELD_TO_CONTROL.items()}
LAYOUT_CONTROLS = {"control_head", "control_button", "control_pagebreak", "control_text"}
WITH_OPTIONS = {"select", "radio", "checkbox"}


def form_url(form_id: str) -> str:
    return f"https://form.jotform.com/{form_id}"


def to_question(item: FormField, order: int) -> dict[str, Any]:
    question: dict[str, Any] = {
        "type": FIELD_TO_CONTROL[item.type],
        "text": item.label,
        "name": item.name,
        "order": order,
        "required": "Yes" if item.required else "No",
    }
    if item.type in WITH_OPTIONS and item.options:
        question["options"] = "|".join(item.options)
    return question


def to_fields(questions: Mapping[str, Any]) -> list[FormField]:
    ordered = sorted(questions.items(), key=lambda kv: int(kv[1].get("order") or 0))
    fields = []
    for qid, question in ordered:
        if question.get("type") in LAYOUT_CONTROLS:
            continue
        field_type = CONTROL_TO_FIELD.get(question.get("type") or "", "text")
        options = question.get("options") or ""
        fields.append(
            FormField(
                name=question.get("name") or str(qid),
                label=question.get("text") or str(qid),
                type=field_type,
                required=question.get("required") == "Yes",
                options=options.split("|") if field_type in WITH_OPTIONS and options else [],
            )
        )
    return fields


def to_response(form_id: str, submission: Mapping[str, Any]) -> FormResponse:
    answers: dict[str, Any] = {}
    for qid, answer in (submission.get("answers") or {}).items():
        if not isinstance(answer, Mapping) or "answer" not in answer:
            continue
        answers[answer.get("name") or str(qid)] = answer["answer"]
    return FormResponse(
        id=str(submission.get("id")),
        form_id=str(submission.get("form_id") or form_id),
        answers=answers,
        submitted_at=parse_datetime(submission.get("created_at")),
        ip_address=submission.get("ip") or None,
    )


class JotFormAdapter:
    provider_id = "jotform"
    _base_url = "https://api.jotform.com"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        webhook_token: str | None = None,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._api_key = api_key or ""
        self._webhook_token = webhook_token or ""
        self._http = HttpTransport(
            self.provider_id,
            base_url=self._base_url,
            settings=self._settings,
            headers={"APIKEY": self._api_key},
            transport=transport,
            error_message=lambda body: dig(body, "message"),
            error_code=lambda body: dig(body, "responseCode"),
        )

    def _call(self, method: str, path: str, **kwargs: Any) -> Ok[Any] | Failure:
        if not self._api_key:
            return not_configured("JotForm", "api_key")
        result = self._http.request(method, path, **kwargs)
        if isinstance(result, Failure):
            return result
        body = result.value
        code = dig(body, "responseCode")
        if code is not None and int(code) != 200:
            return fail(
                FailureKind.API_ERROR,
                dig(body, "message") or "JotForm request failed",
                status_code=int(code),
                code=code,
                details={"body": body},
            )
        return Ok(dig(body, "content") if isinstance(body, Mapping) else body)

    def _to_form(self, content: Mapping[str, Any], fields: list[FormField]) -> Form:
        form_id = str(content.get("id"))
        return Form(
            id=form_id,
            title=content.get("title") or "",
            fields=fields,
            status="active" if (content.get("status") or "ENABLED") == "ENABLED" else "inactive",
            url=content.get("url") or form_url(form_id),
            created_at=parse_datetime(content.get("created_at")),
        )

    def _add_questions(self, form_id: str, fields: list[FormField], start: int = 1) -> Ok[Any] | Failure:
        if not fields:
            return Ok(True)
        questions = {str(i): to_question(item, start + i) for i, item in enumerate(fields)}
        return self._call(
            "PUT",
            f"/form/{form_id}/questions",
            content=json.dumps({"questions": questions}),
            headers={"Content-Type": "application/json"},
        )

    def create_form(self, form: FormDefinition | Bag) -> Ok[Form] | Failure:
        parsed = parse_request(FormDefinition, form)
        if isinstance(parsed, Failure):
            return parsed
        definition = parsed.value

        properties: dict[str, Any] = {"title": definition.title}
        if definition.description:
            properties["description"] = definition.description
        created = self._call("POST", "/user/forms", data=flatten_params({"properties": properties}))
        if isinstance(created, Failure):
            return created
        form_id = str(created.value.get("id"))

        added = self._add_questions(form_id, definition.fields)
        if isinstance(added, Failure):
            return added
        return Ok(self._to_form(created.value, definition.fields).model_copy(update={"description": definition.description}))

    def update_form(self, form_id: str, changes: FormUpdate | Bag) -> Ok[Form] | Failure:
        parsed = parse_request(FormUpdate, changes)
        if isinstance(parsed, Failure):
            return parsed
        update = parsed.value

        properties: dict[str, Any] = {}
        if update.title is not None:
            properties["title"] = update.title
        if update.description is not None:
            properties["description"] = update.description
        if update.status is not None:
            properties["status"] = "ENABLED" if update.status == "active" else "DISABLED"
        if properties:
            result = self._call("POST", f"/form/{form_id}/properties", data=flatten_params({"properties": properties}))
            if isinstance(result, Failure):
                return result
        if update.fields is not None:
            added = self._add_questions(form_id, update.fields)
            if isinstance(added, Failure):
                return added
        return self.get_form(form_id)

    def delete_form(self, form_id: str) -> Ok[bool] | Failure:
        result = self._call("DELETE", f"/form/{form_id}")
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def get_form(self, form_id: str) -> Ok[Form] | Failure:
        form = self._call("GET", f"/form/{form_id}")
        if isinstance(form, Failure):
            return form
        questions = self._call("GET", f"/form/{form_id}/questions")
        if isinstance(questions, Failure):
            return questions
        return Ok(self._to_form(form.value, to_fields(questions.value or {})))

    def list_forms(self, limit: int = 50, offset: int = 0) -> Ok[list[Form]] | Failure:
        result = self._call("GET", "/user/forms", params={"limit": limit, "offset": offset})
        if isinstance(result, Failure):
            return result
        return Ok([self._to_form(row, []) for row in result.value or []])

    def get_responses(self, form_id: str, query: ResponseQuery | Bag | None = None) -> Ok[list[FormResponse]] | Failure:
        parsed = parse_request(ResponseQuery, query)
        if isinstance(parsed, Failure):
            return parsed
        q = parsed.value

        params: dict[str, Any] = {"limit": q.limit, "offset": q.offset, "orderby": "created_at"}
        if q.submitted_after is not None:
            params["filter"] = json.dumps({"created_at:gt": q.submitted_after.strftime("%Y-%m-%d %H:%M:%S")})
        result = self._call("GET", f"/form/{form_id}/submissions", params=params)
        if isinstance(result, Failure):
            return result
        return Ok([to_response(form_id, row) for row in result.value or []])

    def get_response(self, form_id: str, response_id: str) -> Ok[FormResponse] | Failure:
        result = self._call("GET", f"/submission/{response_id}")
        if isinstance(result, Failure):
            return result
        return Ok(to_response(form_id, result.value))

    def submit_response(
        self, form_id: str, answers: dict[str, Any], ip_address: str | None = None
    ) -> Ok[FormResponse] | Failure:
        return not_supported("submit_response", "JotForm")

    def get_form_stats(self, form_id: str) -> Ok[FormStats] | Failure:
        result = self._call("GET", f"/form/{form_id}")
        if isinstance(result, Failure):
            return result
        content = result.value
        return Ok(
            FormStats(
                form_id=form_id,
                responses=int(content.get("count") or 0),
                views=int(content["views"]) if content.get("views") is not None else None,
                last_response_at=parse_datetime(content.get("last_submission")),
            )
        )

    def get_embed_code(self, form_id: str, options: EmbedOptions | Bag | None = None) -> Ok[str] | Failure:
        parsed = parse_request(EmbedOptions, options)
        if isinstance(parsed, Failure):
            return parsed
        opts = parsed.value
        return Ok(
            render_form_iframe(
                form_url(form_id),
                title=opts.title,
                width=opts.width,
                height=opts.height,
                allow_transparency=True,
            )
        )

    def validate_webhook_signature(self, payload: bytes | str, signature: str | None) -> bool:
        if not self._webhook_token:
            return False
        return constant_time_equals(self._webhook_token, signature)

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        result = self._call("GET", "/user")
        if isinstance(result, Failure):
            return result
        content = result.value or {}
        return Ok(
            ConnectionStatus(
                provider=self.provider_id,
                account=content.get("username"),
                details={"account_type": content.get("account_type")},
            )
        )
