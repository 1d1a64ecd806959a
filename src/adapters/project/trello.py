"""Adaptador de proyectos: Trello (REST 1).

- `key` y `token` viajan como query params en todas las peticiones.
- Escrituras form-encoded.
- Proyecto = board, task = card (se crea en la primera lista del board).
"""

from __future__ import annotations

from datetime import date
from typing import Any

import httpx

from adapters.http_client import HttpTransport, dig
from core.config import AppSettings
from core.domain.base import Bag, parse_datetime, parse_request
from core.domain.common import ConnectionStatus
from core.domain.projects import Project, ProjectMember, ProjectRequest, ProjectUpdate, Task, TaskRequest, TaskUpdate
from core.result import Failure, FailureKind, Ok, fail, not_configured

API_URL = "https://api.trello.com/1"


def _error_message(body: Any) -> str | None:
    # Trello responde muchos errores como texto plano.
    if isinstance(body, str):
        return body.strip() or None
    return dig(body, "message")


def trello_due(value: date) -> str:
    return f"{value.isoformat()}T00:00:00Z"


def _due_date(value: Any) -> date | None:
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def _to_project(board: dict[str, Any]) -> Project:
    return Project(
        id=str(board["id"]),
        name=board.get("name") or "",
        description=board.get("desc") or None,
        status="archived" if board.get("closed") else "active",
        url=board.get("url"),
    )


def _to_task(card: dict[str, Any]) -> Task:
    completed = bool(card.get("dueComplete"))
    if completed:
        status = "completed"
    elif card.get("due"):
        status = "in_progress"
    else:
        status = "todo"
    members = card.get("idMembers") or []
    return Task(
        id=str(card["id"]),
        title=card.get("name") or "",
        project_id=card.get("idBoard"),
        description=card.get("desc") or None,
        status=status,
        due_date=_due_date(card.get("due")),
        assignee=members[0] if members else None,
        completed=completed,
        url=card.get("url"),
    )


def _to_member(member: dict[str, Any], role: str | None = None) -> ProjectMember:
    return ProjectMember(
        id=str(member["id"]),
        name=member.get("fullName") or member.get("username"),
        email=member.get("email"),
        role=role or member.get("memberType"),
    )


def _flag(value: bool) -> str:
    return "true" if value else "false"


class TrelloAdapter:
    provider_id = "trello"

    def __init__(
        self,
        api_key: str | None = None,
        api_token: str | None = None,
        *,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or ""
        self._api_token = api_token or ""
        self._http = HttpTransport(
            self.provider_id,
            base_url=API_URL,
            settings=settings,
            transport=transport,
            error_message=_error_message,
        )

    def _missing_credentials(self) -> Failure | None:
        missing = [name for name, value in (("api_key", self._api_key), ("api_token", self._api_token)) if not value]
        if missing:
            return not_configured("Trello", *missing)
        return None

    def _call(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Ok[Any] | Failure:
        missing = self._missing_credentials()
        if missing is not None:
            return missing
        query = {"key": self._api_key, "token": self._api_token, **(params or {})}
        return self._http.request(method, path, params=query, data=data)

    def create_project(self, project: ProjectRequest | Bag) -> Ok[Project] | Failure:
        parsed = parse_request(ProjectRequest, project)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value
        result = self._call("POST", "/boards", data={"name": req.name, "desc": req.description or ""})
        if isinstance(result, Failure):
            return result
        return Ok(_to_project(result.value))

    def update_project(self, project_id: str, changes: ProjectUpdate | Bag) -> Ok[Project] | Failure:
        parsed = parse_request(ProjectUpdate, changes)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        data: dict[str, Any] = {}
        if req.name is not None:
            data["name"] = req.name
        if req.description is not None:
            data["desc"] = req.description
        if req.archived is not None:
            data["closed"] = _flag(req.archived)
        result = self._call("PUT", f"/boards/{project_id}", data=data)
        if isinstance(result, Failure):
            return result
        return Ok(_to_project(result.value))

    def delete_project(self, project_id: str) -> Ok[bool] | Failure:
        result = self._call("DELETE", f"/boards/{project_id}")
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def get_project(self, project_id: str) -> Ok[Project] | Failure:
        result = self._call("GET", f"/boards/{project_id}")
        if isinstance(result, Failure):
            return result
        return Ok(_to_project(result.value))

    def get_projects(self, limit: int = 50) -> Ok[list[Project]] | Failure:
        result = self._call("GET", "/members/me/boards")
        if isinstance(result, Failure):
            return result
        return Ok([_to_project(board) for board in (result.value or [])[: max(limit, 1)]])

    def create_task(self, project_id: str, task: TaskRequest | Bag) -> Ok[Task] | Failure:
        parsed = parse_request(TaskRequest, task)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        lists = self._call("GET", f"/boards/{project_id}/lists")
        if isinstance(lists, Failure):
            return lists
        list_id = dig(lists.value, 0, "id")
        if not list_id:
            return fail(FailureKind.INVALID_REQUEST, f"Trello board {project_id} has no lists", code="no_lists")

        data: dict[str, Any] = {"idList": list_id, "name": req.title, "desc": req.description or ""}
        if req.due_date:
            data["due"] = trello_due(req.due_date)
        if req.completed:
            data["dueComplete"] = _flag(True)
        if req.assignee:
            data["idMembers"] = req.assignee
        result = self._call("POST", "/cards", data=data)
        if isinstance(result, Failure):
            return result
        return Ok(_to_task(result.value))

    def update_task(self, task_id: str, changes: TaskUpdate | Bag) -> Ok[Task] | Failure:
        parsed = parse_request(TaskUpdate, changes)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        data: dict[str, Any] = {}
        if req.title is not None:
            data["name"] = req.title
        if req.description is not None:
            data["desc"] = req.description
        if req.due_date is not None:
            data["due"] = trello_due(req.due_date)
        if req.completed is not None:
            data["dueComplete"] = _flag(req.completed)
        if req.assignee is not None:
            data["idMembers"] = req.assignee
        result = self._call("PUT", f"/cards/{task_id}", data=data)
        if isinstance(result, Failure):
            return result
        return Ok(_to_task(result.value))

    def delete_task(self, task_id: str) -> Ok[bool] | Failure:
        result = self._call("DELETE", f"/cards/{task_id}")
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def get_task(self, task_id: str) -> Ok[Task] | Failure:
        result = self._call("GET", f"/cards/{task_id}")
        if isinstance(result, Failure):
            return result
        return Ok(_to_task(result.value))

    def get_tasks(self, project_id: str, limit: int = 100) -> Ok[list[Task]] | Failure:
        result = self._call("GET", f"/boards/{project_id}/cards")
        if isinstance(result, Failure):
            return result
        return Ok([_to_task(card) for card in (result.value or [])[: max(limit, 1)]])

    def add_task_comment(self, task_id: str, comment: str) -> Ok[str] | Failure:
        result = self._call("POST", f"/cards/{task_id}/actions/comments", data={"text": comment})
        if isinstance(result, Failure):
            return result
        return Ok(str(result.value["id"]))

    def add_project_member(self, project_id: str, email: str, role: str = "member") -> Ok[ProjectMember] | Failure:
        member_type = "admin" if role in ("admin", "owner") else "normal"
        result = self._call(
            "PUT",
            f"/boards/{project_id}/members",
            data={"email": email},
            params={"type": member_type},
        )
        if isinstance(result, Failure):
            return result
        wanted = email.strip().lower()
        for member in dig(result.value, "members") or []:
            if (member.get("email") or "").lower() == wanted:
                return Ok(_to_member(member, member_type))
        # Trello no devuelve el email de invitados: se identifica por el email.
        return Ok(ProjectMember(id=email, email=email, role=member_type))

    def remove_project_member(self, project_id: str, member_id: str) -> Ok[bool] | Failure:
        result = self._call("DELETE", f"/boards/{project_id}/members/{member_id}")
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def get_project_members(self, project_id: str) -> Ok[list[ProjectMember]] | Failure:
        result = self._call("GET", f"/boards/{project_id}/members")
        if isinstance(result, Failure):
            return result
        return Ok([_to_member(member) for member in result.value or []])

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        result = self._call("GET", "/members/me")
        if isinstance(result, Failure):
            return result
        return Ok(ConnectionStatus(provider=self.provider_id, account=dig(result.value, "username")))
