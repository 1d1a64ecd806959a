"""Entrypoint de módulo.

Permite `python -m main` con `src/` en el path (o tras `pip install -e .`),
además del script `ns-integrations` declarado en pyproject.
"""

from __future__ import annotations

import sys

# Las tablas de rich usan caracteres fuera de cp1252 en consolas Windows.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from cli.main import run

if __name__ == "__main__":
    run()
