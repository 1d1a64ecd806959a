"""Adaptador de proyectos: Monday.com (GraphQL v2).

Mapeo:
- proyecto = board, task = item, miembro = subscriber del board.
- Un 200 con `errors[]` o con `error_code`/`error_message` es un fallo del
  proveedor (api_error), no un éxito.

Por qué `column_ids`:
- Las columnas de Monday tienen ids por board; los defaults cubren la
  plantilla estándar (`status`, `date`, `person`) y se pueden sobrescribir.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

import httpx

from adapters.http_client import HttpTransport, dig
from core.config import AppSettings
from core.domain.base import Bag, parse_request
from core.domain.common import ConnectionStatus
from core.domain.projects import Project, ProjectMember, ProjectRequest, ProjectUpdate, Task, TaskRequest, TaskUpdate
from core.result import Failure, FailureKind, Ok, fail, not_configured

API_URL = "https://api.monday.com/v2"
DEFAULT_COLUMNS = {"status": "status", "due_date": "date", "assignee": "person"}
DONE_LABEL = "Done"

BOARD_FIELDS = "id name description state url"
ITEM_FIELDS = "id name state url board { id } column_values { id text }"

CREATE_BOARD = """
mutation ($name: String!, $kind: BoardKind!, $description: String) {
  create_board (board_name: $name, board_kind: $kind, description: $description) { %s }
}
""" % BOARD_FIELDS
UPDATE_BOARD = """
mutation ($boardId: ID!, $attribute: BoardAttributes!, $value: String!) {
  update_board (board_id: $boardId, board_attribute: $attribute, new_value: $value)
}
"""
ARCHIVE_BOARD = "mutation ($boardId: ID!) { archive_board (board_id: $boardId) { id } }"
DELETE_BOARD = "mutation ($boardId: ID!) { delete_board (board_id: $boardId) { id } }"
GET_BOARDS = "query ($ids: [ID!]) { boards (ids: $ids) { %s } }" % BOARD_FIELDS
LIST_BOARDS = "query ($limit: Int!) { boards (limit: $limit) { %s } }" % BOARD_FIELDS
BOARD_GROUPS = "query ($ids: [ID!]) { boards (ids: $ids) { groups { id } } }"
CREATE_ITEM = """
mutation ($boardId: ID!, $groupId: String!, $name: String!, $values: JSON) {
  create_item (board_id: $boardId, group_id: $groupId, item_name: $name, column_values: $values) { %s }
}
""" % ITEM_FIELDS
CHANGE_COLUMNS = """
mutation ($boardId: ID!, $itemId: ID!, $values: JSON!) {
  change_multiple_column_values (board_id: $boardId, item_id: $itemId, column_values: $values) { id }
}
"""
DELETE_ITEM = "mutation ($itemId: ID!) { delete_item (item_id: $itemId) { id } }"
GET_ITEMS = "query ($ids: [ID!]) { items (ids: $ids) { %s } }" % ITEM_FIELDS
BOARD_ITEMS = "query ($ids: [ID!], $limit: Int!) { boards (ids: $ids) { items_page (limit: $limit) { items { %s } } } }" % ITEM_FIELDS
CREATE_UPDATE = "mutation ($itemId: ID!, $body: String!) { create_update (item_id: $itemId, body: $body) { id } }"
USERS_BY_EMAIL = "query ($emails: [String]) { users (emails: $emails) { id name email } }"
ADD_USERS = """
mutation ($boardId: ID!, $userIds: [ID!]!, $kind: BoardSubscriberKind) {
  add_users_to_board (board_id: $boardId, user_ids: $userIds, kind: $kind) { id name email }
}
"""
REMOVE_USERS = """
mutation ($boardId: ID!, $userIds: [ID!]!) {
  delete_subscribers_from_board (board_id: $boardId, user_ids: $userIds) { id }
}
"""
BOARD_SUBSCRIBERS = "query ($ids: [ID!]) { boards (ids: $ids) { subscribers { id name email } } }"
ME = "query { me { id name email } }"


def _to_project(board: dict[str, Any]) -> Project:
    return Project(
        id=str(board["id"]),
        name=board.get("name") or "",
        description=board.get("description") or None,
        status="archived" if board.get("state") == "archived" else "active",
        url=board.get("url"),
    )


class MondayAdapter:
    provider_id = "monday"

    def __init__(
        self,
        api_token: str | None = None,
        *,
        column_ids: Mapping[str, str] | None = None,
        settings: AppSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._token = api_token or ""
        self._columns = {**DEFAULT_COLUMNS, **dict(column_ids or {})}
        self._http = HttpTransport(
            self.provider_id,
            base_url=API_URL,
            settings=settings,
            headers={"Authorization": self._token, "API-Version": "2024-01"},
            transport=transport,
            error_message=lambda body: dig(body, "error_message") or dig(body, "errors", 0, "message"),
            error_code=lambda body: dig(body, "error_code"),
        )

    def _graphql(self, query: str, variables: dict[str, Any] | None = None) -> Ok[dict[str, Any]] | Failure:
        if not self._token:
            return not_configured("Monday.com", "api_token")
        payload: dict[str, Any] = {"query": query}
        if variables is not None:
            payload["variables"] = variables
        result = self._http.request("POST", "", json=payload)
        if isinstance(result, Failure):
            return result
        body = result.value if isinstance(result.value, dict) else {}
        errors = body.get("errors")
        if errors:
            return fail(
                FailureKind.API_ERROR,
                dig(errors, 0, "message") or "GraphQL query error",
                status_code=200,
                code=dig(errors, 0, "extensions", "code"),
                details={"errors": errors},
            )
        # Errores de complejidad/columnas llegan planos, sin `errors[]`.
        if body.get("error_code") or body.get("error_message"):
            return fail(
                FailureKind.API_ERROR,
                body.get("error_message") or "Monday.com API error",
                status_code=200,
                code=body.get("error_code"),
                details={k: v for k, v in body.items() if k != "data"},
            )
        return Ok(body.get("data") or {})

    def _payload(self, result: Ok[dict[str, Any]], field: str) -> Ok[dict[str, Any]] | Failure:
        node = dig(result.value, field)
        if not isinstance(node, dict) or node.get("id") is None:
            return fail(FailureKind.PARSE_ERROR, f"Monday.com response is missing `{field}`", code="missing_payload")
        return Ok(node)

    def _column_values(self, due_date: Any, assignee: Any, completed: bool | None) -> dict[str, Any]:
        values: dict[str, Any] = {}
        if due_date is not None:
            values[self._columns["due_date"]] = {"date": due_date.isoformat()}
        if assignee:
            values[self._columns["assignee"]] = {"personsAndTeams": [{"id": int(assignee), "kind": "person"}]} if str(assignee).isdigit() else assignee
        if completed is not None:
            values[self._columns["status"]] = {"label": DONE_LABEL} if completed else {"label": ""}
        return values

    def _to_task(self, item: dict[str, Any]) -> Task:
        columns = {col.get("id"): col.get("text") for col in item.get("column_values") or []}
        status_text = columns.get(self._columns["status"]) or None
        completed = item.get("state") == "archived" or (status_text or "").lower() == DONE_LABEL.lower()
        return Task(
            id=str(item["id"]),
            title=item.get("name") or "",
            project_id=dig(item, "board", "id"),
            status="completed" if completed else (status_text or "todo"),
            due_date=columns.get(self._columns["due_date"]) or None,
            assignee=columns.get(self._columns["assignee"]) or None,
            completed=completed,
            url=item.get("url"),
        )

    def create_project(self, project: ProjectRequest | Bag) -> Ok[Project] | Failure:
        parsed = parse_request(ProjectRequest, project)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value
        result = self._graphql(CREATE_BOARD, {"name": req.name, "kind": "public", "description": req.description or ""})
        if isinstance(result, Failure):
            return result
        board = self._payload(result, "create_board")
        if isinstance(board, Failure):
            return board
        return Ok(_to_project(board.value))

    def update_project(self, project_id: str, changes: ProjectUpdate | Bag) -> Ok[Project] | Failure:
        parsed = parse_request(ProjectUpdate, changes)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        # `update_board` cambia un atributo por llamada.
        attributes = (("name", req.name), ("description", req.description))
        for attribute, value in attributes:
            if value is None:
                continue
            result = self._graphql(UPDATE_BOARD, {"boardId": project_id, "attribute": attribute, "value": value})
            if isinstance(result, Failure):
                return result
        if req.archived:
            result = self._graphql(ARCHIVE_BOARD, {"boardId": project_id})
            if isinstance(result, Failure):
                return result
        return self.get_project(project_id)

    def delete_project(self, project_id: str) -> Ok[bool] | Failure:
        result = self._graphql(DELETE_BOARD, {"boardId": project_id})
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def get_project(self, project_id: str) -> Ok[Project] | Failure:
        result = self._graphql(GET_BOARDS, {"ids": [project_id]})
        if isinstance(result, Failure):
            return result
        boards = result.value.get("boards") or []
        if not boards:
            return fail(FailureKind.NOT_FOUND, f"Monday board {project_id} not found")
        return Ok(_to_project(boards[0]))

    def get_projects(self, limit: int = 50) -> Ok[list[Project]] | Failure:
        result = self._graphql(LIST_BOARDS, {"limit": max(limit, 1)})
        if isinstance(result, Failure):
            return result
        return Ok([_to_project(board) for board in result.value.get("boards") or []])

    def create_task(self, project_id: str, task: TaskRequest | Bag) -> Ok[Task] | Failure:
        parsed = parse_request(TaskRequest, task)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value

        groups = self._graphql(BOARD_GROUPS, {"ids": [project_id]})
        if isinstance(groups, Failure):
            return groups
        group_id = dig(groups.value, "boards", 0, "groups", 0, "id")
        if not group_id:
            return fail(FailureKind.INVALID_REQUEST, f"Monday board {project_id} has no groups", code="no_groups")

        values = self._column_values(req.due_date, req.assignee, req.completed or None)
        variables = {
            "boardId": project_id,
            "groupId": group_id,
            "name": req.title,
            "values": json.dumps(values) if values else None,
        }
        result = self._graphql(CREATE_ITEM, variables)
        if isinstance(result, Failure):
            return result
        item = self._payload(result, "create_item")
        if isinstance(item, Failure):
            return item
        created = self._to_task(item.value)
        if req.description:
            comment = self.add_task_comment(created.id, req.description)
            if isinstance(comment, Failure):
                return comment
            created = created.model_copy(update={"description": req.description})
        return Ok(created)

    def update_task(self, task_id: str, changes: TaskUpdate | Bag) -> Ok[Task] | Failure:
        parsed = parse_request(TaskUpdate, changes)
        if isinstance(parsed, Failure):
            return parsed
        req = parsed.value
        if not req.project_id:
            return fail(
                FailureKind.INVALID_REQUEST,
                "Monday needs the board id (project_id) to update item columns",
                code="missing_board_id",
            )

        values = self._column_values(req.due_date, req.assignee, req.completed)
        if req.title is not None:
            values["name"] = req.title
        if values:
            result = self._graphql(CHANGE_COLUMNS, {"boardId": req.project_id, "itemId": task_id, "values": json.dumps(values)})
            if isinstance(result, Failure):
                return result
        if req.description:
            comment = self.add_task_comment(task_id, req.description)
            if isinstance(comment, Failure):
                return comment
        return self.get_task(task_id)

    def delete_task(self, task_id: str) -> Ok[bool] | Failure:
        result = self._graphql(DELETE_ITEM, {"itemId": task_id})
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def get_task(self, task_id: str) -> Ok[Task] | Failure:
        result = self._graphql(GET_ITEMS, {"ids": [task_id]})
        if isinstance(result, Failure):
            return result
        items = result.value.get("items") or []
        if not items:
            return fail(FailureKind.NOT_FOUND, f"Monday item {task_id} not found")
        return Ok(self._to_task(items[0]))

    def get_tasks(self, project_id: str, limit: int = 100) -> Ok[list[Task]] | Failure:
        result = self._graphql(BOARD_ITEMS, {"ids": [project_id], "limit": min(max(limit, 1), 500)})
        if isinstance(result, Failure):
            return result
        items = dig(result.value, "boards", 0, "items_page", "items") or []
        return Ok([self._to_task(item) for item in items])

    def add_task_comment(self, task_id: str, comment: str) -> Ok[str] | Failure:
        result = self._graphql(CREATE_UPDATE, {"itemId": task_id, "body": comment})
        if isinstance(result, Failure):
            return result
        return Ok(str(dig(result.value, "create_update", "id")))

    def add_project_member(self, project_id: str, email: str, role: str = "member") -> Ok[ProjectMember] | Failure:
        users = self._graphql(USERS_BY_EMAIL, {"emails": [email]})
        if isinstance(users, Failure):
            return users
        user = dig(users.value, "users", 0)
        if not isinstance(user, dict) or user.get("id") is None:
            return fail(FailureKind.NOT_FOUND, f"No Monday user with email {email}", code="user_not_found")

        kind = "owner" if role == "owner" else "subscriber"
        result = self._graphql(ADD_USERS, {"boardId": project_id, "userIds": [user["id"]], "kind": kind})
        if isinstance(result, Failure):
            return result
        return Ok(ProjectMember(id=str(user["id"]), name=user.get("name"), email=user.get("email") or email, role=kind))

    def remove_project_member(self, project_id: str, member_id: str) -> Ok[bool] | Failure:
        result = self._graphql(REMOVE_USERS, {"boardId": project_id, "userIds": [member_id]})
        if isinstance(result, Failure):
            return result
        return Ok(True)

    def get_project_members(self, project_id: str) -> Ok[list[ProjectMember]] | Failure:
        result = self._graphql(BOARD_SUBSCRIBERS, {"ids": [project_id]})
        if isinstance(result, Failure):
            return result
        subscribers = dig(result.value, "boards", 0, "subscribers") or []
        return Ok(
            [ProjectMember(id=str(sub["id"]), name=sub.get("name"), email=sub.get("email")) for sub in subscribers]
        )

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        result = self._graphql(ME)
        if isinstance(result, Failure):
            return result
        return Ok(ConnectionStatus(provider=self.provider_id, account=dig(result.value, "me", "email")))
