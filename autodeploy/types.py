"""
Core data contracts shared by the planner, IaC generator and pipeline.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


REGIONS = ("us-east-1", "us-east-2", "us-west-2", "eu-west-1", "ap-southeast-1")
HINT_LEVELS = ("low", "standard", "high")
SERVICE_TYPES = ("http", "worker", "cron")
APP_ROLES = ("web", "api", "worker", "cron")
LOG_LEVELS = ("debug", "info", "warn", "error")


class Runtime:
    """Runtime families the planner chooses between."""
    MANAGED_SERVICE = "apprunner"
    CLUSTER = "ecs_fargate"
    STATIC_CDN = "s3_cloudfront"
    VM = "ec2"

    ALL = (MANAGED_SERVICE, CLUSTER, STATIC_CDN, VM)


@dataclass
class Hints:
    cost: str = "standard"
    perf: str = "standard"


@dataclass
class Service:
    name: str
    type: str  # "http" | "worker" | "cron"


@dataclass
class DataNeeds:
    db: Optional[str] = None
    cache: Optional[str] = None


@dataclass
class DeploySpec:
    """Normalized deployment intent produced by the parser."""
    app_name: str
    env: str = "prod"
    cloud: str = "aws"
    region: str = "us-east-2"
    hints: Hints = field(default_factory=Hints)
    services: List[Service] = field(default_factory=list)
    data: DataNeeds = field(default_factory=DataNeeds)
    domain: Optional[str] = None

    def __post_init__(self):
        if not self.app_name or not self.app_name.strip():
            raise ValueError("app_name must not be empty")
        if self.region not in REGIONS:
            raise ValueError(f"Unsupported region: {self.region}")
        for name in ("cost", "perf"):
            value = getattr(self.hints, name)
            if value not in HINT_LEVELS:
                raise ValueError(f"Invalid {name} hint: {value}")
        for service in self.services:
            if service.type not in SERVICE_TYPES:
                raise ValueError(f"Invalid service type: {service.type}")


@dataclass
class RepoApp:
    """One deployable unit found in the repository."""
    role: str                   # "web" | "api" | "worker" | "cron"
    language: str
    framework: str
    dockerfile: bool
    build_cmd: Optional[str]
    start_cmd: Optional[str]
    ports: List[int] = field(default_factory=list)
    env_hints: List[str] = field(default_factory=list)
    needs_db: bool = False
    path: str = "."
    package_manager: Optional[str] = None


@dataclass
class RepoFacts:
    apps: List[RepoApp] = field(default_factory=list)
    monorepo: bool = False

    def __post_init__(self):
        seen = set()
        for app in self.apps:
            if app.path in seen:
                raise ValueError(f"Duplicate app path in repo facts: {app.path}")
            seen.add(app.path)

    @property
    def primary(self) -> Optional[RepoApp]:
        return self.apps[0] if self.apps else None


@dataclass
class NetworkConfig:
    https: bool = True
    host: Optional[str] = None


@dataclass
class Plan:
    runtime: str = Runtime.MANAGED_SERVICE
    db: Optional[str] = None
    front: Optional[str] = None
    network: NetworkConfig = field(default_factory=NetworkConfig)


@dataclass
class GeneratedConfig:
    workdir: str
    vars_file: str
    stacks: List[str]
    tfvars: Any = None  # autodeploy.iac.tfvars.TfVars


@dataclass
class RunLog:
    time: str
    run_id: str
    step: str
    level: str
    message: str
    meta: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["meta"] is None:
            del data["meta"]
        return data


@dataclass
class PipelineResult:
    success: bool
    run_id: str
    service_url: Optional[str] = None
    error: Optional[str] = None
    logs: List[RunLog] = field(default_factory=list)
    duration_ms: int = 0


@dataclass
class DeploymentRequest:
    description: str
    repo: str
    branch: Optional[str] = None
    env_overrides: Dict[str, str] = field(default_factory=dict)
    tags: Dict[str, str] = field(default_factory=dict)
