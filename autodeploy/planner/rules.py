from dataclasses import dataclass, field
from typing import List, Optional

from autodeploy.types import DeploySpec, RepoApp, RepoFacts, Runtime

# Front-end frameworks whose build yields static assets when no start command is set
STATIC_BUILD_FRAMEWORKS = {"react-vite", "create-react-app"}


@dataclass
class AppPartition:
    static: List[RepoApp] = field(default_factory=list)
    http: List[RepoApp] = field(default_factory=list)
    background: List[RepoApp] = field(default_factory=list)


def is_static_app(app: RepoApp) -> bool:
    if app.language == "static":
        return True
    return app.framework in STATIC_BUILD_FRAMEWORKS and app.start_cmd is None


def partition_apps(facts: RepoFacts) -> AppPartition:
    """Split detected apps into disjoint static / http / background sets."""
    part = AppPartition()
    for app in facts.apps:
        if is_static_app(app):
            part.static.append(app)
        elif app.role in ("web", "api"):
            part.http.append(app)
        elif app.role in ("worker", "cron"):
            part.background.append(app)
    return part


def requested_db(spec: DeploySpec, facts: RepoFacts) -> Optional[str]:
    if any(app.needs_db for app in facts.apps) or spec.data.db:
        return spec.data.db or "postgres"
    return None


def base_runtime(part: AppPartition, monorepo: bool) -> Optional[str]:
    if part.static and not part.http and not part.background:
        return Runtime.STATIC_CDN
    if len(part.http) == 1 and not part.background and not monorepo:
        return Runtime.MANAGED_SERVICE
    if part.http or part.background or monorepo:
        return Runtime.CLUSTER
    return None


def apply_cost_hint(runtime: str, cost: str, part: AppPartition) -> str:
    # The single-service option only pays off when nothing else needs the cluster
    if cost == "low" and runtime == Runtime.CLUSTER and len(part.http) == 1 and not part.background:
        return Runtime.MANAGED_SERVICE
    return runtime


def apply_perf_hint(runtime: str, perf: str) -> str:
    if perf == "high" and runtime == Runtime.MANAGED_SERVICE:
        return Runtime.CLUSTER
    return runtime
