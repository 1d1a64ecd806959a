"""Adaptadores de almacenamiento de ficheros (`core.interfaces.storage.StorageAdapter`)."""

from adapters.storage.local import LocalStorageAdapter

__all__ = [
	"LocalStorageAdapter",
]
