"""Modelos y entidades del dominio.

Por qué:
- Aquí viven las estructuras de request/result de cada capacidad (Pydantic v2).
- El dominio no conoce HTTP, CLI, ni SDKs de proveedores: solo conceptos del problema.
"""
