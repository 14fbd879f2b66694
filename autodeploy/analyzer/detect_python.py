from __future__ import annotations

import re
from pathlib import Path
from typing import Optional

from autodeploy.types import RepoApp
from .walk import has, iter_files, read_text


PY_MANIFESTS = ("requirements.txt", "pyproject.toml", "setup.py", "Pipfile")

PY_PORT_DEFAULTS = {
    "flask": 5000,
    "fastapi": 8000,
    "django": 8000,
}

DB_DEPS_RE = re.compile(r"(sqlalchemy|psycopg2|psycopg|pymysql|mysqlclient|pymongo|tortoise|asyncpg)", re.I)

SOURCE_SIGNATURES = {
    "flask": re.compile(r"from\s+flask\s+import|Flask\("),
    "fastapi": re.compile(r"from\s+fastapi\s+import|FastAPI\("),
}


def _manifest_text(root: Path) -> str:
    return "\n".join(read_text(root / name) for name in PY_MANIFESTS).lower()


def _framework_from_sources(root: Path):
    """Scan .py files for framework imports; returns (framework, first matching file)."""
    for fp, rel in iter_files(root):
        text = read_text(fp)
        if rel.name == "manage.py" or "INSTALLED_APPS" in text:
            return "django", rel
        for framework, pattern in SOURCE_SIGNATURES.items():
            if pattern.search(text):
                return framework, rel
    return None, None


def _django_project(root: Path) -> str:
    manage = read_text(root / "manage.py")
    match = re.search(r"DJANGO_SETTINGS_MODULE['\"]\s*,\s*['\"]([^.'\"]+)", manage)
    return match.group(1) if match else "mysite"


def detect_python(app_dir: str, rel_path: str = ".") -> Optional[RepoApp]:
    """
    Detect a Flask, Django or FastAPI app in app_dir.

    Dependencies in the manifests decide the framework; when they are inconclusive the
    sources are scanned for framework imports. Never executes user code.
    """
    root = Path(app_dir)
    if not any(has(root, name) for name in PY_MANIFESTS):
        return None

    deps = _manifest_text(root)
    source_hit = None
    if "flask" in deps:
        framework = "flask"
    elif "django" in deps:
        framework = "django"
    elif "fastapi" in deps:
        framework = "fastapi"
    else:
        framework, source_hit = _framework_from_sources(root)
        if not framework:
            return None

    needs_db = bool(DB_DEPS_RE.search(deps))
    env_hints = ["PORT"]

    if framework == "flask":
        role = "web"
        start_cmd = "gunicorn -b 0.0.0.0:$PORT app:app"
        env_hints.append("DATABASE_URL")
    elif framework == "django":
        role = "web"
        start_cmd = f"gunicorn -b 0.0.0.0:$PORT {_django_project(root)}.wsgi:application"
        env_hints.extend(["DATABASE_URL", "SECRET_KEY"])
        needs_db = True
    else:
        role = "api"
        if source_hit is None:
            _, source_hit = _framework_from_sources(root)
        module = source_hit.with_suffix("").as_posix().replace("/", ".") if source_hit else "main"
        start_cmd = f"uvicorn {module}:app --host 0.0.0.0 --port $PORT"

    return RepoApp(
        role=role,
        language="python",
        framework=framework,
        dockerfile=has(root, "Dockerfile"),
        build_cmd=None,
        start_cmd=start_cmd,
        ports=[PY_PORT_DEFAULTS[framework]],
        env_hints=env_hints,
        needs_db=needs_db,
        path=rel_path,
        package_manager="pip",
    )
