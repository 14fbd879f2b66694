from __future__ import annotations

from pathlib import Path
from typing import Optional

from autodeploy.types import RepoApp
from .walk import has


PREBUILT_DIRS = ("build", "dist", "out", "public")


def find_site_root(app_dir: str) -> Optional[Path]:
    """Directory holding index.html: the app dir itself or a prebuilt output folder."""
    root = Path(app_dir)
    if has(root, "index.html"):
        return root
    for candidate in PREBUILT_DIRS:
        if has(root / candidate, "index.html"):
            return root / candidate
    return None


def detect_static(app_dir: str, rel_path: str = ".") -> Optional[RepoApp]:
    if find_site_root(app_dir) is None:
        return None
    return RepoApp(
        role="web",
        language="static",
        framework="static",
        dockerfile=False,
        build_cmd=None,
        start_cmd=None,
        path=rel_path,
    )
