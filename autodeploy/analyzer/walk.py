from __future__ import annotations

import os
from pathlib import Path
from typing import Generator, Iterable, Tuple


IGNORE_DIRS = {
    ".git",
    "node_modules",
    ".venv",
    "venv",
    "__pycache__",
    ".mypy_cache",
    ".next",
    "build",
    "dist",
}


def iter_files(root: str | Path, suffixes: Iterable[str] = (".py",)) -> Generator[Tuple[Path, Path], None, None]:
    """Yield (absolute, relative) paths of files under root with one of the given suffixes."""
    root_path = Path(root).resolve()
    suffixes = tuple(suffixes)
    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORE_DIRS)
        for filename in sorted(filenames):
            if filename.endswith(suffixes):
                p = Path(dirpath) / filename
                yield p, p.relative_to(root_path)


def read_text(path: str | Path, limit_bytes: int = 1_000_000) -> str:
    p = Path(path)
    try:
        if p.stat().st_size > limit_bytes:
            return ""  # too large, skip content
        return p.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return ""


def has(root: str | Path, name: str) -> bool:
    return (Path(root) / name).exists()
