from autodeploy.types import DeploySpec, NetworkConfig, Plan, RepoFacts, Runtime
from .rules import apply_cost_hint, apply_perf_hint, base_runtime, partition_apps, requested_db


def create_plan(spec: DeploySpec, facts: RepoFacts) -> Plan:
    """
    Decide the runtime and auxiliary infrastructure for a deployment.

    Pure and deterministic; never raises. Rules are applied in a fixed precedence order:
    database need, runtime by app mix, monorepo front override, cost hint, perf hint, domain.
    Incompatible results are only reported by validate_plan().
    """
    plan = Plan(runtime=Runtime.MANAGED_SERVICE, network=NetworkConfig(https=True))

    plan.db = requested_db(spec, facts)

    part = partition_apps(facts)
    plan.runtime = base_runtime(part, facts.monorepo) or plan.runtime

    if facts.monorepo and part.static:
        plan.front = Runtime.STATIC_CDN
        if part.http:
            # path routing between front and backends needs the shared load balancer
            plan.runtime = Runtime.CLUSTER

    plan.runtime = apply_cost_hint(plan.runtime, spec.hints.cost, part)
    plan.runtime = apply_perf_hint(plan.runtime, spec.hints.perf)

    if spec.domain:
        plan.network.host = spec.domain

    return plan
