"""Adaptador de proyectos: Asana (REST 1.0).

- Bearer token personal o de app.
- Todos los cuerpos van y vuelven dentro de `{"data": ...}`.
- Los listados piden `opt_fields` para evitar una petición por elemento.
"""

from __future__ import annotations

from typing import Any

import httpx

from adapters.http_client import HttpTransport, dig
from core.config import AppSettings
from core.domain.base import Bag, parse_request
from core.domain.common import ConnectionStatus
from core.domain.projects import Project, ProjectMember, ProjectRequest, ProjectUpdate, Task, TaskRequest, TaskUpdate
from core.result import Failure, Ok, not_configured

API_URL = "https://app.asana.com/api/1.0"
PROJECT_FIELDS = "name,notes,due_on,archived,permalink_url"
TASK_FIELDS = "name,notes,due_on,completed,assignee.email,permalink_url,memberships.project.gid"
MEMBER_FIELDS = "user.name,user.email,access_level"

COLOR_MAP = {
    "#e8384f": "dark-red",
    "#fd612c": "dark-orange",
    "#fd9a00": "dark-orange",
    "#fcc30b": "dark-yellow",
    "#6a67ce": "dark-purple",
    "#4573d2": "dark-blue",
    "#00aaf5": "dark-blue",
    "#62d26f": "dark-green",
}


def asana_color(color: str) -> str:
    """Hex -> paleta Asana; los nombres Asana pasan tal cual."""

    if not color.startswith("#"):
        return color
    return COLOR_MAP.get(color.lower(), "dark-blue")


def _to_project(data: dict[str, Any]) -> Project:
    return Project(
        id=str(data["gid"]),
        name=data.get("name") or "",
        description=data.get("notes") or None,
        status="archived" if data.get("archived") else "active",
        url=data.get("permalink_url"),
        due_date=data.get("due_on"),
    )


def _to_task(data: dict[str, Any], project_id: str | None = None) -> Task:
    completed = bool(data.get("completed"))
    return Task(
        id=str(data["gid"]),
        title=data.get("name") or "",
        project_id=project_id or dig(data, "memberships", 0, "project", "gid"),
        description=data.get("notes") or None,
        status="completed" if completed else "todo",
        due_date=data.get("due_on"),
        assignee=dig(data, "assignee", "email"),
        completed=completed,
        url=data.get("permalink_url"),
    )


class AsanaAdapter:
    provider_id = "asana"

    def __init__(
        self,
        access_token: str | None = None,
        *,
        workspace_id: str | None = None,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._token = access_token or ""
        self._workspace_id = workspace_id or ""
        self._http = HttpTransport(
            self.provider_id,
            base_url=API_URL,
            settings=settings,
            headers={"Authorization": f"Bearer {self._token}"},
            transport=transport,
            error_message=lambda body: dig(body, "errors", 0, "message"),
        )

    def _call(
        self,
        method: str,
        path: str,
        *,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Ok[Any] | Failure:
        if not self._token:
            return not_configured("Asana", "access_token")
        result = self._http.request(method, path, json={"data": data} if data is not None else None, params=params)
        if isinstance(result, Failure):
            return result
        if isinstance(result.value, dict) and "data" in result.value:
            return Ok(result.value["data"])
        return result

    def create_project(self, project: ProjectRequest | Bag) -> Ok[Project] | Failure:
        parsed = parse_request(ProjectRequest, project)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value
        if not self._workspace_id:
            return not_configured("Asana", "workspace_id")

        data: dict[str, Any] = {"name": req.name, "notes": req.description or "", "workspace": self._workspace_id}
        if req.due_date:
            data["due_on"] = req.due_date.isoformat()
        if req.color:
            data["color"] = asana_color(req.color)
        result = self._call("POST", "/projects", data=data, params={"opt_fields": PROJECT_FIELDS})
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
            data["notes"] = req.description
        if req.due_date is not None:
            data["due_on"] = req.due_date.isoformat()
        if req.color is not None:
            data["color"] = asana_color(req.color)
        if req.archived is not None:
            data["archived"] = req.archived
        result = self._call("PUT", f"/projects/{project_id}", data=data, params={"opt_fields": PROJECT_FIELDS})
        if isinstance(result, Failure):
            return result
        return Ok(_to_project(result.value))

    def delete_project(self, project_id: str) -> Ok[bool] | Failure:
        result = self._call("DELETE", f"/projects/{project_id}")
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def get_project(self, project_id: str) -> Ok[Project] | Failure:
        result = self._call("GET", f"/projects/{project_id}", params={"opt_fields": PROJECT_FIELDS})
        if isinstance(result, Failure):
            return result
        return Ok(_to_project(result.value))

    def get_projects(self, limit: int = 50) -> Ok[list[Project]] | Failure:
        if not self._workspace_id:
            return not_configured("Asana", "workspace_id")
        params = {"workspace": self._workspace_id, "limit": min(max(limit, 1), 100), "opt_fields": PROJECT_FIELDS}
        result = self._call("GET", "/projects", params=params)
        if isinstance(result, Failure):
            return result
        return Ok([_to_project(item) for item in result.value or []])

    def create_task(self, project_id: str, task: TaskRequest | Bag) -> Ok[Task] | Failure:
        parsed = parse_request(TaskRequest, task)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        data: dict[str, Any] = {
            "name": req.title,
            "notes": req.description or "",
            "projects": [project_id],
            "completed": req.completed,
        }
        if req.due_date:
            data["due_on"] = req.due_date.isoformat()
        if req.assignee:
            # Asana acepta gid o email como identificador de usuario.
            data["assignee"] = req.assignee
        result = self._call("POST", "/tasks", data=data, params={"opt_fields": TASK_FIELDS})
        if isinstance(result, Failure):
            return result
        return Ok(_to_task(result.value, project_id))

    def update_task(self, task_id: str, changes: TaskUpdate | Bag) -> Ok[Task] | Failure:
        parsed = parse_request(TaskUpdate, changes)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        data: dict[str, Any] = {}
        if req.title is not None:
            data["name"] = req.title
        if req.description is not None:
            data["notes"] = req.description
        if req.due_date is not None:
            data["due_on"] = req.due_date.isoformat()
        if req.assignee is not None:
            data["assignee"] = req.assignee
        if req.completed is not None:
            data["completed"] = req.completed
        result = self._call("PUT", f"/tasks/{task_id}", data=data, params={"opt_fields": TASK_FIELDS})
        if isinstance(result, Failure):
            return result
        return Ok(_to_task(result.value, req.project_id))

    def delete_task(self, task_id: str) -> Ok[bool] | Failure:
        result = self._call("DELETE", f"/tasks/{task_id}")
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def get_task(self, task_id: str) -> Ok[Task] | Failure:
        result = self._call("GET", f"/tasks/{task_id}", params={"opt_fields": TASK_FIELDS})
        if isinstance(result, Failure):
            return result
        return Ok(_to_task(result.value))

    def get_tasks(self, project_id: str, limit: int = 100) -> Ok[list[Task]] | Failure:
        params = {"limit": min(max(limit, 1), 100), "opt_fields": TASK_FIELDS}
        result = self._call("GET", f"/projects/{project_id}/tasks", params=params)
        if isinstance(result, Failure):
            return result
        return Ok([_to_task(item, project_id) for item in result.value or []])

    def add_task_comment(self, task_id: str, comment: str) -> Ok[str] | Failure:
        result = self._call("POST", f"/tasks/{task_id}/stories", data={"text": comment})
        if isinstance(result, Failure):
            return result
        return Ok(str(result.value["gid"]))

    def add_project_member(self, project_id: str, email: str, role: str = "member") -> Ok[ProjectMember] | Failure:
        result = self._call(
            "POST",
            f"/projects/{project_id}/addMembers",
            data={"members": email},
            params={"opt_fields": "members.name,members.email"},
        )
        if isinstance(result, Failure):
            return result
        wanted = email.strip().lower()
        for member in dig(result.value, "members") or []:
            if (member.get("email") or "").lower() == wanted:
                return Ok(ProjectMember(id=str(member["gid"]), name=member.get("name"), email=member.get("email"), role=role))
        return Ok(ProjectMember(id=email, email=email, role=role))

    def remove_project_member(self, project_id: str, member_id: str) -> Ok[bool] | Failure:
        result = self._call("POST", f"/projects/{project_id}/removeMembers", data={"members": member_id})
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def get_project_members(self, project_id: str) -> Ok[list[ProjectMember]] | Failure:
        result = self._call("GET", f"/projects/{project_id}/project_memberships", params={"opt_fields": MEMBER_FIELDS})
        if isinstance(result, Failure):
            return result
        members = []
        for item in result.value or []:
            user = item.get("user") or {}
            members.append(
                ProjectMember(
                    id=str(user.get("gid") or item.get("gid")),
                    name=user.get("name"),
                    email=user.get("email"),
                    role=item.get("access_level"),
                )
            )
        return Ok(members)

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        result = self._call("GET", "/users/me")
        if isinstance(result, Failure):
            return result
        return Ok(ConnectionStatus(provider=self.provider_id, account=dig(result.value, "email")))
