"""Adaptadores de formularios (`core.interfaces.forms.FormAdapter`)."""

from adapters.forms.builtin import BuiltinFormsAdapter
from adapters.forms.jotform import JotFormAdapter

__all__ = [
	"BuiltinFormsAdapter",
	"JotFormAdapter",
]
