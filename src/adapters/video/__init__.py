"""Adaptadores de videoconferencia (`core.interfaces.video.VideoAdapter`)."""

from adapters.video.jitsi import JitsiAdapter
from adapters.video.zoom import ZoomAdapter

__all__ = [
	"JitsiAdapter",
	"ZoomAdapter",
]
