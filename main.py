"""Lanzador desde la raíz del repo, sin instalar el paquete.

Uso:
- `python main.py providers sms`

El código vive en `src/`; con `pip install -e .` basta el script
`ns-integrations` y este fichero sobra.
"""

from __future__ import annotations

import sys
from pathlib import Path

SRC = Path(__file__).resolve().parent / "src"


def main() -> None:
    if str(SRC) not in sys.path:
        sys.path.insert(0, str(SRC))

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
