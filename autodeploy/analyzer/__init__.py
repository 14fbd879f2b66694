"""
Static repository analysis producing RepoFacts.

Never executes user code.
"""

from __future__ import annotations

from pathlib import Path
from typing import List

from autodeploy.types import RepoApp, RepoFacts
from .detect_node import detect_node
from .detect_python import detect_python
from .detect_static import detect_static
from .fetcher import GitClient
from .walk import has

MONOREPO_MARKERS = ("frontend", "backend", "packages", "apps")
APP_DIRS = ("frontend", "client", "web", "backend", "server", "api", "app")
PACKAGE_DIRS = ("packages", "apps")

DETECTORS = (detect_python, detect_node, detect_static)


def analyze_directory(app_dir: Path, rel_path: str) -> List[RepoApp]:
    """First matching detector wins so each path yields at most one app."""
    for detector in DETECTORS:
        app = detector(str(app_dir), rel_path)
        if app is not None:
            return [app]
    return []


def _is_monorepo_layout(root: Path) -> bool:
    # a lone "app" folder is not a monorepo
    return any(has(root, d) for d in MONOREPO_MARKERS) or (has(root, "client") and has(root, "server"))


def analyze_repo(repo_path: str) -> RepoFacts:
    """
    Detect deployable apps in a checked-out repository.

    Monorepo layouts are scanned per conventional folder (frontend, backend, client, server,
    web, api, app) and per package under packages/ or apps/. `monorepo` is true when more than
    one app was found.
    """
    root = Path(repo_path)
    apps: List[RepoApp] = []

    if _is_monorepo_layout(root):
        for name in APP_DIRS:
            if (root / name).is_dir():
                apps.extend(analyze_directory(root / name, name))
        for parent in PACKAGE_DIRS:
            if not (root / parent).is_dir():
                continue
            for pkg in sorted(p for p in (root / parent).iterdir() if p.is_dir()):
                apps.extend(analyze_directory(pkg, f"{parent}/{pkg.name}"))
    elif (root / "app").is_dir() and not analyze_directory(root, "."):
        apps.extend(analyze_directory(root / "app", "app"))
    else:
        apps.extend(analyze_directory(root, "."))

    return RepoFacts(apps=apps, monorepo=len(apps) > 1)


__all__ = ["GitClient", "analyze_directory", "analyze_repo"]
