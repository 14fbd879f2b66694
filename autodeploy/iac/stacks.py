"""
Stack catalog and deterministic stack selection.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from autodeploy.types import Plan, Runtime

TEMPLATES_DIR = Path(__file__).parent / "templates" / "aws"

REGISTRY = "ecr"
MANAGED_SERVICE = "apprunner_service"
CLUSTER_SERVICE = "ecs_fargate_service"
VM_SERVICE = "ec2_web"
ROUTER = "alb_path_router"
STATIC_SITE = "cloudfront_s3_static_site"
DATABASE = "rds_database"
SAMPLE_TABLE = "dynamodb_sample"

# Fixed-name demo table provisioned alongside cluster deployments
SAMPLE_TABLE_NAME = "Employee"
SAMPLE_TABLE_ADDRESS = f"module.{SAMPLE_TABLE}.aws_dynamodb_table.this"

RUNTIME_STACKS = {
    Runtime.MANAGED_SERVICE: MANAGED_SERVICE,
    Runtime.CLUSTER: CLUSTER_SERVICE,
    Runtime.VM: VM_SERVICE,
}


@dataclass(frozen=True)
class Variable:
    name: str
    type: str
    description: str
    default: Optional[str] = None  # HCL literal


@dataclass(frozen=True)
class Stack:
    name: str
    variables: Tuple[str, ...] = ()
    outputs: Dict[str, str] = field(default_factory=dict)  # root output -> module output


VARIABLES: Dict[str, Variable] = {v.name: v for v in [
    Variable("aws_region", "string", "AWS region for deployment"),
    Variable("app_name", "string", "Name of the application"),
    Variable("tags", "map(string)", "Tags to apply to all resources", "{}"),
    Variable("image_uri", "string", "URI of the container image"),
    Variable("app_port", "number", "Port the application listens on"),
    Variable("env_vars", "map(string)", "Environment variables for the application", "{}"),
    Variable("health_check_path", "string", "Health check path"),
    Variable("cpu", "string", "CPU allocation for the service"),
    Variable("memory", "string", "Memory allocation for the service"),
    Variable("fargate_cpu", "string", "CPU units for Fargate task"),
    Variable("fargate_memory", "string", "Memory (MB) for Fargate task"),
    Variable("desired_count", "number", "Desired task count"),
    Variable("instance_type", "string", "EC2 instance type"),
    Variable("route_paths", "list(string)", "Path patterns routed to the backend service", '["/api/*"]'),
    Variable("db_engine", "string", "Database engine"),
    Variable("db_name", "string", "Database name"),
    Variable("db_username", "string", "Database username"),
    Variable("db_instance_class", "string", "Database instance class"),
    Variable("db_allocated_storage", "number", "Database allocated storage"),
    Variable("db_backup_retention", "number", "Database backup retention period"),
    Variable("db_skip_final_snapshot", "bool", "Skip final snapshot on database deletion"),
    Variable("db_deletion_protection", "bool", "Enable deletion protection on database"),
]}

BASE_VARIABLES = ("aws_region", "app_name", "tags")

STACKS: Dict[str, Stack] = {s.name: s for s in [
    Stack(REGISTRY),
    Stack(
        MANAGED_SERVICE,
        variables=("image_uri", "app_port", "env_vars", "cpu", "memory", "health_check_path"),
        outputs={"service_url": "service_url"},
    ),
    Stack(
        CLUSTER_SERVICE,
        variables=("image_uri", "app_port", "env_vars", "fargate_cpu", "fargate_memory",
                   "desired_count", "health_check_path"),
        outputs={"alb_dns_name": "alb_dns_name"},
    ),
    Stack(
        VM_SERVICE,
        variables=("image_uri", "app_port", "env_vars", "instance_type"),
        outputs={"service_url": "service_url"},
    ),
    Stack(ROUTER, variables=("route_paths",)),
    Stack(STATIC_SITE, outputs={"cdn_url": "cdn_url"}),
    Stack(
        DATABASE,
        variables=("db_engine", "db_name", "db_username", "db_instance_class", "db_allocated_storage",
                   "db_backup_retention", "db_skip_final_snapshot", "db_deletion_protection"),
    ),
    Stack(SAMPLE_TABLE),
]}


def select_stacks(plan: Plan) -> List[str]:
    """
    Ordered list of stacks required by a plan.

    Deterministic: the same plan always yields the same list in the same order.
    """
    stacks: List[str] = []

    # State backend already exists; the registry is only needed for container images
    if plan.runtime != Runtime.STATIC_CDN:
        stacks.append(REGISTRY)

    runtime_stack = RUNTIME_STACKS.get(plan.runtime)
    if runtime_stack:
        stacks.append(runtime_stack)

    if plan.front and plan.runtime == Runtime.CLUSTER:
        stacks.append(ROUTER)

    if Runtime.STATIC_CDN in (plan.runtime, plan.front):
        stacks.append(STATIC_SITE)

    if plan.db:
        stacks.append(DATABASE)

    if plan.runtime == Runtime.CLUSTER:
        stacks.append(SAMPLE_TABLE)

    return stacks


def template_dir(stack: str, templates_root: Optional[Path] = None) -> Path:
    return (templates_root or TEMPLATES_DIR) / stack


def required_variables(stacks: List[str]) -> List[str]:
    """Union of variables needed by the given stacks, base variables first."""
    names = list(BASE_VARIABLES)
    for stack in stacks:
        for name in STACKS[stack].variables:
            if name not in names:
                names.append(name)
    return names
