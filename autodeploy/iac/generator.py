"""
Terraform configuration generator.
"""

import logging
import shutil
from pathlib import Path
from typing import Dict, Optional

from autodeploy.config import Settings
from autodeploy.exceptions import GenerationError
from autodeploy.tags import base_tags
from autodeploy.types import DeploySpec, GeneratedConfig, Plan
from . import render
from .stacks import TEMPLATES_DIR, select_stacks, template_dir
from .tfvars import build_tfvars

logger = logging.getLogger(__name__)

VARS_FILE = "terraform.tfvars.json"


def generate_iac(spec: DeploySpec, plan: Plan, workdir: str, settings: Optional[Settings] = None,
                 extra_tags: Optional[Dict[str, str]] = None,
                 templates_root: Optional[Path] = None) -> GeneratedConfig:
    """
    Write a self-contained Terraform configuration for a plan.

    Args:
        spec: Deployment spec
        plan: Deployment plan
        workdir: Run-scoped work directory (created if missing)
        settings: Execution settings (defaults to the environment)
        extra_tags: Extra resource tags from the request
        templates_root: Override for the stack template directory

    Returns:
        GeneratedConfig with the work directory, variables file, stack list and variables

    Raises:
        GenerationError: If a stack template is missing or a file cannot be written
    """
    settings = settings or Settings.from_env()
    stacks = select_stacks(plan)

    # Fail before touching the work directory
    sources = {stack: template_dir(stack, templates_root or TEMPLATES_DIR) for stack in stacks}
    missing = [stack for stack, src in sources.items() if not src.is_dir()]
    if missing:
        raise GenerationError(f"Missing stack template(s): {', '.join(missing)}")

    work = Path(workdir)
    tfvars = build_tfvars(spec, plan, stacks, settings, base_tags(spec.app_name, spec.env, extra_tags))
    vars_file = work / VARS_FILE

    try:
        work.mkdir(parents=True, exist_ok=True)
        for stack, src in sources.items():
            dest = work / "modules" / stack
            if dest.exists():
                shutil.rmtree(dest)
            shutil.copytree(src, dest)

        (work / "main.tf").write_text(render.render_main_tf(stacks))
        (work / "variables.tf").write_text(render.render_variables_tf(spec, stacks))
        tfvars.save(vars_file)
        (work / "backend.tf").write_text(render.render_backend_tf(spec, settings))
        outputs_tf = render.render_outputs_tf(stacks)
        if outputs_tf.strip():
            (work / "outputs.tf").write_text(outputs_tf)
        (work / "README_RUN.md").write_text(render.render_readme(spec, plan, stacks))
    except OSError as e:
        raise GenerationError(f"Failed to write Terraform configuration: {e}") from e

    logger.info("Generated Terraform configuration in %s (stacks: %s)", work, ", ".join(stacks))
    return GeneratedConfig(workdir=str(work), vars_file=str(vars_file), stacks=stacks, tfvars=tfvars)
