"""Adaptadores de verificación de antecedentes."""

from adapters.background_check.checkr import CheckrAdapter

__all__ = [
	"CheckrAdapter",
]
