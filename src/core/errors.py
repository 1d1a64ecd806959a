"""Excepciones del Core.

Solo para errores de programación (categoría inexistente, adaptador que no
cumple su Protocol). Los fallos remotos nunca se lanzan: ver `core.result`.
"""

from __future__ import annotations


class IntegrationError(Exception):
    """Base class for integration-layer programming errors."""


class UnknownCategoryError(IntegrationError, KeyError):
    def __init__(self, category: str) -> None:
        super().__init__(category)
        self.category = category

    def __str__(self) -> str:
        return f"Unknown integration category: {self.category!r}"


class UnknownProviderError(IntegrationError, KeyError):
    def __init__(self, category: str, provider_id: str) -> None:
        super().__init__(provider_id)
        self.category = category
        self.provider_id = provider_id

    def __str__(self) -> str:
        return f"Unknown provider {self.provider_id!r} for category {self.category!r}"


class InvalidAdapterError(IntegrationError, TypeError):
    """Raised when a factory builds an object that does not satisfy the category Protocol."""
