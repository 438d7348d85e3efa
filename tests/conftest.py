"""Global pytest configuration.

Unit tests run from the project root; `scripts/` is imported as a namespace
package (``from scripts.run_replay import main``), so the root must be on
``sys.path``.
"""

from __future__ import annotations

import sys
from pathlib import Path


def pytest_configure() -> None:
    root_dir = Path(__file__).resolve().parents[1]

    raw = str(root_dir)
    if raw not in sys.path:
        sys.path.insert(0, raw)
