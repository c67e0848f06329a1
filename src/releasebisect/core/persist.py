"""Wholesale rewrites of the small JSON state files."""

import os
from pathlib import Path


def write_atomic(path: Path, text: str) -> None:
    """Replace path with text, leaving the old file intact on failure."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)
