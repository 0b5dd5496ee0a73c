from __future__ import annotations

import glob
import logging
import os
from pathlib import Path
from typing import Iterable

LOG = logging.getLogger("orion.modules")


def multi_glob(patterns: Iterable[str], roots: Iterable[Path | str]) -> list[str]:
    """Glob each pattern beneath each root; patterns are relative to the root."""
    found: list[str] = []
    for root in roots:
        for pattern in patterns:
            matches = glob.glob(os.path.join(str(root), pattern))
            if not matches:
                LOG.debug("files not found in %r", os.path.join(str(root), pattern))
                continue
            found.extend(matches)
    return found


def username_from_path(path: str) -> str:
    parts = Path(path).parts
    for i in range(len(parts) - 1, -1, -1):
        if parts[i] == "Users" and i + 1 < len(parts):
            return parts[i + 1]
    for i in range(len(parts) - 1, 0, -1):
        if parts[i] == "var" and parts[i - 1] == "private" and i + 1 < len(parts):
            return parts[i + 1]
    return "ERROR"
