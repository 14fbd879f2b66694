from typing import List

from autodeploy.types import DeploySpec, Plan, RepoFacts, Runtime
from .rules import partition_apps

STATIC_WITH_HTTP = "Cannot use S3+CloudFront runtime with HTTP services"
MANAGED_MULTI_HTTP = "App Runner cannot handle multiple HTTP services"
UNNEEDED_DB = "Database specified but no apps require database"


def validate_plan(plan: Plan, spec: DeploySpec, facts: RepoFacts) -> List[str]:
    """
    Check a plan against the detected apps and the request.

    Returns:
        List of violation messages; empty when the plan is valid
    """
    errors: List[str] = []
    part = partition_apps(facts)

    if plan.runtime == Runtime.STATIC_CDN and part.http:
        errors.append(STATIC_WITH_HTTP)

    if plan.runtime == Runtime.MANAGED_SERVICE and len(part.http) > 1:
        errors.append(MANAGED_MULTI_HTTP)

    if plan.db and not any(app.needs_db for app in facts.apps) and not spec.data.db:
        errors.append(UNNEEDED_DB)

    return errors
