"""Contrato de gestión de proyectos."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.base import Bag
from core.domain.common import ConnectionStatus
from core.domain.projects import Project, ProjectMember, ProjectRequest, ProjectUpdate, Task, TaskRequest, TaskUpdate
from core.result import Failure, Ok


@runtime_checkable
class ProjectAdapter(Protocol):
    provider_id: str

    def create_project(self, project: ProjectRequest | Bag) -> Ok[Project] | Failure:
        ...

    def update_project(self, project_id: str, changes: ProjectUpdate | Bag) -> Ok[Project] | Failure:
        ...

    def delete_project(self, project_id: str) -> Ok[bool] | Failure:
        ...

    def get_project(self, project_id: str) -> Ok[Project] | Failure:
        ...

    def get_projects(self, limit: int = 50) -> Ok[list[Project]] | Failure:
        ...

    def create_task(self, project_id: str, task: TaskRequest | Bag) -> Ok[Task] | Failure:
        ...

    def update_task(self, task_id: str, changes: TaskUpdate | Bag) -> Ok[Task] | Failure:
        ...

    def delete_task(self, task_id: str) -> Ok[bool] | Failure:
        ...

    def get_task(self, task_id: str) -> Ok[Task] | Failure:
        ...

    def get_tasks(self, project_id: str, limit: int = 100) -> Ok[list[Task]] | Failure:
        ...

    def add_task_comment(self, task_id: str, comment: str) -> Ok[str] | Failure:
        ...

    def add_project_member(self, project_id: str, email: str, role: str = "member") -> Ok[ProjectMember] | Failure:
        ...

    def remove_project_member(self, project_id: str, member_id: str) -> Ok[bool] | Failure:
        ...

    def get_project_members(self, project_id: str) -> Ok[list[ProjectMember]] | Failure:
        ...

    def test_connection(self) -> Ok[ConnectionStatus] | Failure:
        ...
