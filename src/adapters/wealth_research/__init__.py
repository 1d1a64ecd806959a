"""Adaptadores de investigación de donantes."""

from adapters.wealth_research.wealthengine import WealthEngineAdapter

__all__ = [
	"WealthEngineAdapter",
]
