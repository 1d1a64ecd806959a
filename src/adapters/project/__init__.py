"""Adaptadores de gestión de proyectos (`core.interfaces.project.ProjectAdapter`)."""

from adapters.project.asana import AsanaAdapter
from adapters.project.monday import MondayAdapter
from adapters.project.trello import TrelloAdapter

__all__ = [
	"AsanaAdapter",
	"MondayAdapter",
	"TrelloAdapter",
]
