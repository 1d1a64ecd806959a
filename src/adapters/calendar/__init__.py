"""Adaptadores de calendario."""

from adapters.calendar.builtin import BuiltinCalendarAdapter

__all__ = [
	"BuiltinCalendarAdapter",
]
