"""
Structured terraform.tfvars.json handling.

The generator produces a TfVars object and writes it to disk. Later pipeline stages apply the
typed patch functions below and save again instead of editing the JSON by hand; every patch
bumps the revision so the log shows which values were late-bound.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from autodeploy.config import Settings
from autodeploy.types import DeploySpec, Plan, Runtime
from . import stacks as st

DEFAULT_PORT = 8080
DEFAULT_HEALTH_PATH = "/"
DEFAULT_DESIRED_COUNT = 1

# perf hint -> (cpu, memory) for the managed container service
MANAGED_SIZING = {
    "low": ("0.25 vCPU", "0.5 GB"),
    "standard": ("0.25 vCPU", "0.5 GB"),
    "high": ("1 vCPU", "2 GB"),
}

# perf hint -> (cpu units, memory MB) for Fargate tasks
CLUSTER_SIZING = {
    "low": ("256", "512"),
    "standard": ("512", "1024"),
    "high": ("1024", "2048"),
}

VM_SIZING = {
    "low": "t3.micro",
    "standard": "t3.small",
    "high": "t3.medium",
}

DB_INSTANCE_CLASS = {
    "low": "db.t3.micro",
}
DB_DEFAULT_INSTANCE_CLASS = "db.t3.small"


class TfVars:
    """Terraform input values plus a revision counter and patch history."""

    def __init__(self, values: Optional[Dict[str, Any]] = None, revision: int = 1):
        self.values: Dict[str, Any] = dict(values or {})
        self.revision = revision
        self.history: List[str] = []

    def __getitem__(self, key: str) -> Any:
        return self.values[key]

    def __contains__(self, key: str) -> bool:
        return key in self.values

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def env_vars(self) -> Dict[str, str]:
        return self.values.setdefault("env_vars", {})

    def mark(self, patch_name: str) -> None:
        self.revision += 1
        self.history.append(patch_name)

    def to_json(self) -> str:
        return json.dumps(self.values, indent=2, sort_keys=True) + "\n"

    def save(self, path) -> None:
        Path(path).write_text(self.to_json())

    @classmethod
    def load(cls, path) -> "TfVars":
        with open(path, "r") as f:
            return cls(json.load(f))


def managed_sizing(perf: str):
    return MANAGED_SIZING.get(perf, MANAGED_SIZING["standard"])


def cluster_sizing(perf: str):
    return CLUSTER_SIZING.get(perf, CLUSTER_SIZING["standard"])


def default_image_uri(spec: DeploySpec, settings: Settings) -> str:
    registry = settings.registry_url or (
        f"{settings.account_id or '123456789012'}.dkr.ecr.{spec.region}.amazonaws.com/{spec.app_name}"
    )
    # overridden later in the pipeline with the run-specific tag
    return f"{registry}:latest"


def build_tfvars(spec: DeploySpec, plan: Plan, stacks: List[str], settings: Settings,
                 tags: Dict[str, str]) -> TfVars:
    """
    Compute default values for every variable the selected stacks declare.

    Args:
        spec: Deployment spec
        plan: Deployment plan
        stacks: Selected stack names
        settings: Execution settings (registry, account)
        tags: Resource tags

    Returns:
        TfVars with revision 1
    """
    values: Dict[str, Any] = {
        "aws_region": spec.region,
        "app_name": spec.app_name,
        "tags": dict(tags),
    }
    perf = spec.hints.perf

    if any(s in stacks for s in (st.MANAGED_SERVICE, st.CLUSTER_SERVICE, st.VM_SERVICE)):
        values["image_uri"] = default_image_uri(spec, settings)
        values["app_port"] = DEFAULT_PORT
        values["env_vars"] = {"PORT": str(DEFAULT_PORT)}

    if st.MANAGED_SERVICE in stacks:
        values["cpu"], values["memory"] = managed_sizing(perf)
        values["health_check_path"] = DEFAULT_HEALTH_PATH

    if st.CLUSTER_SERVICE in stacks:
        values["env_vars"]["AWS_DEFAULT_REGION"] = spec.region
        values["fargate_cpu"], values["fargate_memory"] = cluster_sizing(perf)
        values["desired_count"] = DEFAULT_DESIRED_COUNT
        values["health_check_path"] = DEFAULT_HEALTH_PATH

    if st.VM_SERVICE in stacks:
        values["instance_type"] = VM_SIZING.get(perf, VM_SIZING["standard"])

    if st.ROUTER in stacks:
        values["route_paths"] = ["/api/*"]

    if st.DATABASE in stacks:
        values["db_engine"] = "mysql" if plan.db == "mysql" else "postgres"
        values["db_name"] = spec.app_name.replace("-", "_")
        values["db_username"] = "dbadmin"
        values["db_instance_class"] = DB_INSTANCE_CLASS.get(spec.hints.cost, DB_DEFAULT_INSTANCE_CLASS)
        values["db_allocated_storage"] = 20
        values["db_backup_retention"] = 7
        # ephemeral demo infrastructure: always allow teardown
        values["db_skip_final_snapshot"] = True
        values["db_deletion_protection"] = False

    return TfVars(values)


def normalize_port(tfvars: TfVars, port: int = DEFAULT_PORT) -> TfVars:
    """Pin the container port, health check path and PORT env var to one standard value."""
    tfvars.values["app_port"] = port
    tfvars.values["health_check_path"] = DEFAULT_HEALTH_PATH
    tfvars.env_vars()["PORT"] = str(port)
    tfvars.mark("normalize_port")
    return tfvars


def set_image(tfvars: TfVars, image_uri: str) -> TfVars:
    tfvars.values["image_uri"] = image_uri
    tfvars.mark("set_image")
    return tfvars


def apply_runtime_values(tfvars: TfVars, runtime: str, region: str, perf: str,
                         port: Optional[int] = None, image_uri: Optional[str] = None,
                         env_overrides: Optional[Dict[str, str]] = None) -> TfVars:
    """
    Inject values only known after build: image, port, health path, region env, sizing.

    The detected port is applied to the cluster service only; the managed service keeps the
    port fixed at generation time (and possibly normalized before the build). Static sites have
    no container variables and are returned unchanged.

    Args:
        tfvars: Variables to patch in place
        runtime: Planned runtime
        region: Target region
        perf: Performance hint used for missing sizing values
        port: Detected application port (defaults to 8080)
        image_uri: Built image reference, if any
        env_overrides: Extra environment variables from the request

    Returns:
        The same TfVars instance
    """
    if runtime == Runtime.STATIC_CDN:
        return tfvars

    if image_uri:
        tfvars.values["image_uri"] = image_uri

    env = tfvars.env_vars()
    if runtime == Runtime.CLUSTER:
        app_port = port or DEFAULT_PORT
        tfvars.values["app_port"] = app_port
        env["PORT"] = str(app_port)
        if not tfvars.get("fargate_cpu") or not tfvars.get("fargate_memory"):
            tfvars.values["fargate_cpu"], tfvars.values["fargate_memory"] = cluster_sizing(perf)
        if not isinstance(tfvars.get("desired_count"), int):
            tfvars.values["desired_count"] = DEFAULT_DESIRED_COUNT

    if runtime in (Runtime.CLUSTER, Runtime.MANAGED_SERVICE):
        tfvars.values["health_check_path"] = tfvars.get("health_check_path") or DEFAULT_HEALTH_PATH
    env["AWS_DEFAULT_REGION"] = region

    if env_overrides:
        env.update({k: str(v) for k, v in env_overrides.items()})

    tfvars.mark("apply_runtime_values")
    return tfvars
