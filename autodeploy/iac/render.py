"""
Plain-text rendering of the root Terraform files.
"""

from typing import Dict, List

from autodeploy.config import Settings
from autodeploy.types import DeploySpec, Plan
from . import stacks as st

TERRAFORM_BLOCK = """terraform {
  required_version = ">= 1.5"
  required_providers {
    aws = {
      source  = "hashicorp/aws"
      version = "~> 5.0"
    }
    random = {
      source  = "hashicorp/random"
      version = "~> 3.1"
    }
  }
}

provider "aws" {
  region = var.aws_region
}

"""


def _env_expr(stacks: List[str], extra: Dict[str, str]) -> str:
    entries = dict(extra)
    if st.DATABASE in stacks:
        entries["DATABASE_URL"] = f"module.{st.DATABASE}.database_url"
    if not entries:
        return "var.env_vars"
    inner = ", ".join(f"{k} = {v}" for k, v in entries.items())
    return f"merge(var.env_vars, {{ {inner} }})"


def _module(name: str, args: List[str]) -> str:
    width = max((len(a.split("=", 1)[0].rstrip()) for a in args if "=" in a), default=0)
    lines = [f'module "{name}" {{', f'  source = "./modules/{name}"', ""]
    for arg in args:
        if not arg:
            lines.append("")
            continue
        key, value = arg.split("=", 1)
        lines.append(f"  {key.strip().ljust(width)} = {value.strip()}")
    lines.append("}")
    return "\n".join(lines) + "\n\n"


def render_module_block(stack: str, stacks: List[str]) -> str:
    if stack == st.REGISTRY:
        return _module(stack, [
            "repository_name = var.app_name",
            "enable_image_scanning = true",
            "",
            "tags = var.tags",
        ])
    if stack == st.MANAGED_SERVICE:
        return _module(stack, [
            "service_name = var.app_name",
            "image_uri = var.image_uri",
            "port = var.app_port",
            f"env_vars = {_env_expr(stacks, {})}",
            "cpu = var.cpu",
            "memory = var.memory",
            "health_check_path = var.health_check_path",
            "",
            "tags = var.tags",
        ])
    if stack == st.CLUSTER_SERVICE:
        return _module(stack, [
            "aws_region = var.aws_region",
            "service_name = var.app_name",
            "image_uri = var.image_uri",
            "container_port = var.app_port",
            "health_check_path = var.health_check_path",
            "cpu = var.fargate_cpu",
            "memory = var.fargate_memory",
            "desired_count = var.desired_count",
            f"env_vars = {_env_expr(stacks, {'AWS_REGION': 'var.aws_region'})}",
            "",
            "tags = var.tags",
        ])
    if stack == st.VM_SERVICE:
        return _module(stack, [
            "service_name = var.app_name",
            "image_uri = var.image_uri",
            "port = var.app_port",
            "instance_type = var.instance_type",
            f"env_vars = {_env_expr(stacks, {})}",
            "",
            "tags = var.tags",
        ])
    if stack == st.ROUTER:
        return _module(stack, [
            f"listener_arn = module.{st.CLUSTER_SERVICE}.listener_arn",
            f"target_group_arn = module.{st.CLUSTER_SERVICE}.target_group_arn",
            "path_patterns = var.route_paths",
            "",
            "tags = var.tags",
        ])
    if stack == st.STATIC_SITE:
        return _module(stack, [
            'bucket_name = "${var.app_name}-static-site"',
            "",
            "tags = var.tags",
        ])
    if stack == st.DATABASE:
        return _module(stack, [
            "identifier = var.app_name",
            "engine = var.db_engine",
            "db_name = var.db_name",
            "username = var.db_username",
            "instance_class = var.db_instance_class",
            "allocated_storage = var.db_allocated_storage",
            "backup_retention_period = var.db_backup_retention",
            "skip_final_snapshot = var.db_skip_final_snapshot",
            "deletion_protection = var.db_deletion_protection",
            "",
            "tags = var.tags",
        ])
    if stack == st.SAMPLE_TABLE:
        return _module(stack, [
            f'table_name = "{st.SAMPLE_TABLE_NAME}"',
            "tags = var.tags",
        ])
    raise ValueError(f"Unknown stack: {stack}")


def render_main_tf(stacks: List[str]) -> str:
    body = TERRAFORM_BLOCK
    for stack in stacks:
        body += render_module_block(stack, stacks)
    return body


def render_variables_tf(spec: DeploySpec, stacks: List[str]) -> str:
    out = f"# Input variables for {spec.app_name} deployment\n\n"
    for name in st.required_variables(stacks):
        var = st.VARIABLES[name]
        out += f'variable "{var.name}" {{\n'
        out += f'  description = "{var.description}"\n'
        out += f"  type        = {var.type}\n"
        if var.default is not None:
            out += f"  default     = {var.default}\n"
        out += "}\n\n"
    return out


def render_outputs_tf(stacks: List[str]) -> str:
    out = ""
    for stack in stacks:
        for root_name, module_output in st.STACKS[stack].outputs.items():
            out += f'output "{root_name}" {{\n'
            out += f'  value = module.{stack}.{module_output}\n'
            out += "}\n\n"
    return out


def backend_settings(spec: DeploySpec, settings: Settings) -> Dict[str, str]:
    return {
        "bucket": settings.state_bucket or f"{spec.app_name}-terraform-state",
        "key": settings.state_key or f"{spec.app_name}/terraform.tfstate",
        "region": spec.region,
        "dynamodb_table": settings.lock_table or f"{spec.app_name}-terraform-locks",
    }


def render_backend_tf(spec: DeploySpec, settings: Settings) -> str:
    b = backend_settings(spec, settings)
    return f"""terraform {{
  backend "s3" {{
    bucket         = "{b['bucket']}"
    key            = "{b['key']}"
    region         = "{b['region']}"
    dynamodb_table = "{b['dynamodb_table']}"
    encrypt        = true
  }}
}}
"""


def render_readme(spec: DeploySpec, plan: Plan, stacks: List[str]) -> str:
    lines = [
        f"# Terraform configuration for {spec.app_name}",
        "",
        f"- Cloud: {spec.cloud}",
        f"- Region: {spec.region}",
        f"- Runtime: {plan.runtime}",
        f"- Front: {plan.front or 'None'}",
        f"- Database: {plan.db or 'None'}",
        f"- Host: {plan.network.host or 'None'} (https={str(plan.network.https).lower()})",
        f"- Stacks: {', '.join(stacks)}",
        "",
        "## Commands",
        "",
        "```bash",
        "terraform init",
        "terraform plan -var-file=terraform.tfvars.json -out=tfplan",
        "terraform apply -auto-approve tfplan",
        "terraform destroy -var-file=terraform.tfvars.json -auto-approve",
        "```",
        "",
    ]
    return "\n".join(lines)
