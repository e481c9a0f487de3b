"""Filesystem helpers."""

from __future__ import annotations

import os
from pathlib import Path


def ensure_private_dir(path: Path) -> Path:
    """Ensure a directory exists and is only accessible by its owner.

    The mode is applied with chmod after creation so the result does not
    depend on the process umask.
    """
    path.mkdir(mode=0o700, parents=True, exist_ok=True)
    os.chmod(path, 0o700)
    return path
