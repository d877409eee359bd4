"""Make the checkout importable when pytest runs from an installed script.

Both ``loomnav`` and the shared ``tests.fakes`` helpers are imported from
the working tree rather than from site-packages.
"""

from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = str(Path(__file__).resolve().parents[1])

if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)
