from __future__ import annotations

import json
from datetime import date

import httpx

from adapters.project.asana import AsanaAdapter, asana_color
from adapters.project.monday import MondayAdapter
from adapters.project.trello import TrelloAdapter, trello_due
from core.result import Failure, FailureKind


def _graphql_router(routes: dict[str, dict]):
    """Responde según el primer fragmento de query que aparezca."""

    def handler(request: httpx.Request) -> httpx.Response:
        query = json.loads(request.content)["query"]
        for fragment, body in routes.items():
            if fragment in query:
                return httpx.Response(200, json=body)
        return httpx.Response(200, json={"data": {}})

    return handler


# Asana


def test_asana_unwraps_data_envelope(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(
            201,
            json={"data": {"gid": "77", "name": "Gala", "notes": "", "archived": False, "permalink_url": "https://app.asana.com/0/77"}},
        )
    )
    adapter = AsanaAdapter("tok", workspace_id="ws1", settings=settings, transport=recorder.transport)

    project = adapter.create_project({"name": "Gala", "color": "green"}).value

    assert project.id == "77"
    assert project.status == "active"
    body = recorder.last_json()
    assert body["data"]["workspace"] == "ws1"
    assert body["data"]["color"] == asana_color("green")
    assert recorder.last.headers["Authorization"] == "Bearer tok"
    assert "opt_fields" in recorder.last.url.params


def test_asana_create_project_without_workspace(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200, json={}))
    adapter = AsanaAdapter("tok", settings=settings, transport=recorder.transport)

    result = adapter.create_project({"name": "Gala"})

    assert isinstance(result, Failure)
    assert result.kind is FailureKind.NOT_CONFIGURED
    assert recorder.requests == []


def test_asana_add_member_matches_email(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(
            200,
            json={"data": {"gid": "77", "members": [{"gid": "u9", "name": "Grace", "email": "Grace@Example.org"}]}},
        )
    )
    adapter = AsanaAdapter("tok", settings=settings, transport=recorder.transport)

    member = adapter.add_project_member("77", "grace@example.org").value

    assert recorder.paths() == ["POST /api/1.0/projects/77/addMembers"]
    assert recorder.last_json() == {"data": {"members": "grace@example.org"}}
    assert member.id == "u9"
    assert member.name == "Grace"


def test_asana_error_message_from_errors_list(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(404, json={"errors": [{"message": "project: Unknown object"}]}))
    adapter = AsanaAdapter("tok", settings=settings, transport=recorder.transport)

    result = adapter.get_project("missing")

    assert result.kind is FailureKind.API_ERROR
    assert result.status_code == 404
    assert result.message == "project: Unknown object"


def test_asana_without_token_is_not_configured(settings) -> None:
    result = AsanaAdapter(settings=settings).test_connection()
    assert result.kind is FailureKind.NOT_CONFIGURED


# Monday


def _monday(settings, recorder, **kwargs) -> MondayAdapter:
    return MondayAdapter("mon-token", settings=settings, transport=recorder.transport, **kwargs)


def test_monday_graphql_errors_on_200_are_api_errors(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(
            200,
            json={"errors": [{"message": "Field 'boardz' doesn't exist", "extensions": {"code": "undefinedField"}}]},
        )
    )

    result = _monday(settings, recorder).get_projects()

    assert isinstance(result, Failure)
    assert result.kind is FailureKind.API_ERROR
    assert result.status_code == 200
    assert result.code == "undefinedField"
    assert recorder.last.headers["Authorization"] == "mon-token"
    assert recorder.last.headers["API-Version"] == "2024-01"


def test_monday_create_task_uses_first_group_and_columns(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        _graphql_router(
            {
                "groups": {"data": {"boards": [{"groups": [{"id": "topics"}]}]}},
                "create_item": {
                    "data": {
                        "create_item": {
                            "id": "501",
                            "name": "Call donors",
                            "state": "active",
                            "board": {"id": "42"},
                            "column_values": [{"id": "date", "text": "2025-05-01"}, {"id": "status", "text": "Working on it"}],
                        }
                    }
                },
                "create_update": {"data": {"create_update": {"id": "u1"}}},
            }
        )
    )

    task = _monday(settings, recorder).create_task(
        "42", {"title": "Call donors", "due_date": "2025-05-01", "description": "Top 20 list"}
    ).value

    assert len(recorder.requests) == 3
    create_vars = json.loads(recorder.requests[1].content)["variables"]
    assert create_vars["groupId"] == "topics"
    assert json.loads(create_vars["values"]) == {"date": {"date": "2025-05-01"}}
    assert task.project_id == "42"
    assert task.due_date == date(2025, 5, 1)
    assert task.status == "Working on it"
    assert task.description == "Top 20 list"


def test_monday_create_task_without_groups(settings, recorder_factory) -> None:
    recorder = recorder_factory(_graphql_router({"groups": {"data": {"boards": [{"groups": []}]}}}))

    result = _monday(settings, recorder).create_task("42", {"title": "Call donors"})

    assert result.code == "no_groups"
    assert len(recorder.requests) == 1


def test_monday_flat_error_on_200_is_api_error(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        _graphql_router(
            {
                "groups": {"data": {"boards": [{"groups": [{"id": "topics"}]}]}},
                "create_item": {"error_code": "ColumnValueException", "status_code": 200, "error_message": "invalid value"},
            }
        )
    )

    result = _monday(settings, recorder).create_task("1", {"title": "Call donors"})

    assert isinstance(result, Failure)
    assert result.kind is FailureKind.API_ERROR
    assert result.status_code == 200
    assert result.code == "ColumnValueException"
    assert result.message == "invalid value"


def test_monday_missing_mutation_payload_is_parse_error(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        _graphql_router(
            {
                "groups": {"data": {"boards": [{"groups": [{"id": "topics"}]}]}},
                "create_item": {"data": {"create_item": None}},
                "create_board": {"data": {}},
            }
        )
    )
    adapter = _monday(settings, recorder)

    task = adapter.create_task("1", {"title": "Call donors"})
    project = adapter.create_project({"name": "Gala"})

    assert task.kind is FailureKind.PARSE_ERROR
    assert project.kind is FailureKind.PARSE_ERROR
    assert project.code == "missing_payload"


def test_monday_update_task_needs_board(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200, json={"data": {}}))

    result = _monday(settings, recorder).update_task("501", {"completed": True})

    assert result.kind is FailureKind.INVALID_REQUEST
    assert result.code == "missing_board_id"
    assert recorder.requests == []


def test_monday_completed_maps_to_done_label_with_custom_column(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        _graphql_router(
            {
                "change_multiple_column_values": {"data": {"change_multiple_column_values": {"id": "501"}}},
                "items (ids": {
                    "data": {
                        "items": [
                            {
                                "id": "501",
                                "name": "Call donors",
                                "state": "active",
                                "board": {"id": "42"},
                                "column_values": [{"id": "status_1", "text": "Done"}],
                            }
                        ]
                    }
                },
            }
        )
    )

    task = _monday(settings, recorder, column_ids={"status": "status_1"}).update_task(
        "501", {"completed": True, "project_id": "42"}
    ).value

    change_vars = json.loads(recorder.requests[0].content)["variables"]
    assert json.loads(change_vars["values"]) == {"status_1": {"label": "Done"}}
    assert task.completed is True
    assert task.status == "completed"


def test_monday_add_member_unknown_email(settings, recorder_factory) -> None:
    recorder = recorder_factory(_graphql_router({"users (emails": {"data": {"users": []}}}))

    result = _monday(settings, recorder).add_project_member("42", "nobody@example.org")

    assert result.kind is FailureKind.NOT_FOUND
    assert result.code == "user_not_found"


def test_monday_add_member_by_email(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        _graphql_router(
            {
                "users (emails": {"data": {"users": [{"id": "7", "name": "Grace", "email": "grace@example.org"}]}},
                "add_users_to_board": {"data": {"add_users_to_board": [{"id": "7"}]}},
            }
        )
    )

    member = _monday(settings, recorder).add_project_member("42", "grace@example.org", role="owner").value

    add_vars = json.loads(recorder.last.content)["variables"]
    assert add_vars == {"boardId": "42", "userIds": ["7"], "kind": "owner"}
    assert member.id == "7"
    assert member.role == "owner"


# Trello


def _trello(settings, recorder) -> TrelloAdapter:
    return TrelloAdapter("key-1", "tok-1", settings=settings, transport=recorder.transport)


def test_trello_sends_key_and_token_as_query(settings, recorder_factory) -> None:
    recorder = recorder_factory(
        lambda r: httpx.Response(200, json={"id": "b1", "name": "Gala", "desc": "", "closed": True, "url": "https://trello.com/b/b1"})
    )

    project = _trello(settings, recorder).update_project("b1", {"archived": True}).value

    params = recorder.last.url.params
    assert params["key"] == "key-1"
    assert params["token"] == "tok-1"
    assert recorder.last_form() == {"closed": "true"}
    assert project.status == "archived"


def test_trello_create_task_in_first_list(settings, recorder_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/lists"):
            return httpx.Response(200, json=[{"id": "l1"}, {"id": "l2"}])
        return httpx.Response(
            200,
            json={"id": "c1", "name": "Call donors", "idBoard": "b1", "due": "2025-05-01T00:00:00.000Z", "dueComplete": False, "idMembers": ["m1"]},
        )

    recorder = recorder_factory(handler)

    task = _trello(settings, recorder).create_task("b1", {"title": "Call donors", "due_date": "2025-05-01"}).value

    assert recorder.paths() == ["GET /1/boards/b1/lists", "POST /1/cards"]
    form = recorder.last_form()
    assert form["idList"] == "l1"
    assert form["due"] == trello_due(date(2025, 5, 1)) == "2025-05-01T00:00:00Z"
    assert task.status == "in_progress"
    assert task.assignee == "m1"
    assert task.due_date == date(2025, 5, 1)


def test_trello_board_without_lists(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200, json=[]))

    result = _trello(settings, recorder).create_task("b1", {"title": "Call donors"})

    assert result.code == "no_lists"
    assert len(recorder.requests) == 1


def test_trello_plain_text_errors(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(401, text="invalid token"))

    result = _trello(settings, recorder).test_connection()

    assert result.kind is FailureKind.API_ERROR
    assert result.message == "invalid token"


def test_trello_add_member_invites_by_email(settings, recorder_factory) -> None:
    recorder = recorder_factory(lambda r: httpx.Response(200, json={"id": "b1", "members": [{"id": "m1", "fullName": "Ada"}]}))

    member = _trello(settings, recorder).add_project_member("b1", "grace@example.org", role="admin").value

    assert recorder.paths() == ["PUT /1/boards/b1/members"]
    assert recorder.last.url.params["type"] == "admin"
    assert recorder.last_form() == {"email": "grace@example.org"}
    assert member.id == "grace@example.org"
    assert member.role == "admin"


def test_trello_requires_key_and_token(settings) -> None:
    result = TrelloAdapter("key-only", settings=settings).get_projects()
    assert result.kind is FailureKind.NOT_CONFIGURED
    assert "api_token" in result.message
