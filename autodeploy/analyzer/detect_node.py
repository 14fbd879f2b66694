from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional

from autodeploy.types import RepoApp
from .walk import has, read_text


DB_DEPS = ("pg", "pg-promise", "mysql", "mysql2", "mongoose", "prisma", "typeorm")


def _read_package_json(root: Path) -> Optional[dict]:
    if not has(root, "package.json"):
        return None
    try:
        return json.loads(read_text(root / "package.json") or "{}")
    except json.JSONDecodeError:
        return None


def detect_package_manager(root: Path) -> str:
    if has(root, "pnpm-lock.yaml"):
        return "pnpm"
    if has(root, "yarn.lock"):
        return "yarn"
    return "npm"


def detect_node(app_dir: str, rel_path: str = ".") -> Optional[RepoApp]:
    root = Path(app_dir)
    pkg = _read_package_json(root)
    if pkg is None:
        return None

    deps: Dict[str, str] = {**(pkg.get("dependencies") or {}), **(pkg.get("devDependencies") or {})}
    scripts = pkg.get("scripts") or {}

    def has_dep(name: str) -> bool:
        return name in deps

    common = dict(
        language="javascript",
        dockerfile=has(root, "Dockerfile"),
        path=rel_path,
        package_manager=detect_package_manager(root),
    )

    if has_dep("next") or has(root, "next.config.js"):
        return RepoApp(role="web", framework="nextjs", build_cmd="next build", start_cmd="next start -p $PORT",
                       ports=[3000], env_hints=["NEXT_PUBLIC_API_URL", "PORT"], **common)
    if has_dep("react") and (has_dep("vite") or has(root, "vite.config.js") or has(root, "vite.config.ts")):
        # static build, served from the CDN
        return RepoApp(role="web", framework="react-vite", build_cmd="vite build", start_cmd=None,
                       env_hints=["VITE_API_URL"], **common)
    if has_dep("react") and (has_dep("react-scripts") or has(root, "public/index.html")):
        return RepoApp(role="web", framework="create-react-app", build_cmd="react-scripts build", start_cmd=None,
                       env_hints=["REACT_APP_API_URL"], **common)

    needs_db = any(has_dep(name) for name in DB_DEPS)
    if has_dep("express"):
        start = scripts.get("start") or ("node server.js" if has(root, "server.js") else "node index.js")
        return RepoApp(role="api", framework="express", build_cmd=scripts.get("build"), start_cmd=start,
                       ports=[3000, 8080], env_hints=["PORT", "DATABASE_URL"], needs_db=needs_db, **common)
    if any(name.startswith("@nestjs/") for name in deps):
        return RepoApp(role="api", framework="nestjs", build_cmd=scripts.get("build", "nest build"),
                       start_cmd=scripts.get("start", "node dist/main"), ports=[3000],
                       env_hints=["PORT", "DATABASE_URL"], needs_db=needs_db, **common)
    return None
