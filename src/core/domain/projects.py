"""Modelos de gestión de proyectos (Asana, Monday, Trello)."""

from __future__ import annotations

from datetime import date

from pydantic import Field

from core.domain.base import DomainModel


class ProjectRequest(DomainModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    color: str | None = None
    due_date: date | None = None
    archived: bool | None = None


class ProjectUpdate(DomainModel):
    name: str | None = None
    description: str | None = None
    color: str | None = None
    due_date: date | None = None
    archived: bool | None = None


class Project(DomainModel):
    id: str
    name: str
    description: str | None = None
    status: str = "active"
    url: str | None = None
    due_date: date | None = None


class TaskRequest(DomainModel):
    title: str = Field(..., min_length=1)
    description: str | None = None
    due_date: date | None = None
    assignee: str | None = None
    completed: bool = False


class TaskUpdate(DomainModel):
    title: str | None = None
    description: str | None = None
    due_date: date | None = None
    assignee: str | None = None
    completed: bool | None = None
    project_id: str | None = Field(
        default=None,
        description="Tablero/proyecto del task (Monday necesita el board para actualizar columnas).",
    )


class Task(DomainModel):
    id: str
    title: str
    project_id: str | None = None
    description: str | None = None
    status: str | None = None
    due_date: date | None = None
    assignee: str | None = None
    completed: bool = False
    url: str | None = None


class ProjectMember(DomainModel):
    id: str
    name: str | None = None
    email: str | None = None
    role: str | None = None
