"""Adaptadores de analítica."""

from adapters.analytics.segment import SegmentAdapter

__all__ = [
	"SegmentAdapter",
]
