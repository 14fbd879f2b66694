"""Main CLI entrypoint for autodeploy."""

import dataclasses
import json
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import click
from dotenv import load_dotenv

from autodeploy import __version__
from autodeploy.analyzer import analyze_repo
from autodeploy.analyzer.fetcher import GitClient
from autodeploy.config import Settings
from autodeploy.events import read_events
from autodeploy.exceptions import AutoDeployError
from autodeploy.iac import select_stacks
from autodeploy.ids import is_valid_run_id
from autodeploy.nlp import extract_with_hits
from autodeploy.pipeline import deploy_application, destroy_run
from autodeploy.planner import create_plan, validate_plan
from autodeploy.state import get_run_dir
from autodeploy.tags import parse_key_values
from autodeploy.types import DeploySpec, DeploymentRequest, RunLog


@click.group()
@click.version_option(__version__, prog_name="autodeploy")
def main():
    """autodeploy - deploy a repository to AWS from a plain-English description."""
    load_dotenv()


def _json_output(data: Dict[str, Any]) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _format_entry(entry: Dict[str, Any]) -> str:
    return f"{entry.get('time', '')} [{entry.get('step', '?')}] {entry.get('level', 'info').upper()}: {entry.get('message', '')}"


def _parse_pairs(values, what: str) -> Dict[str, str]:
    try:
        return parse_key_values(values)
    except ValueError as e:
        click.echo(f"Invalid {what}: {e}", err=True)
        sys.exit(1)


@main.command("deploy")
@click.argument("description")
@click.option("--repo", required=True, help="Repository URL or local path")
@click.option("--branch", help="Branch to deploy (default: main, then the remote default)")
@click.option("--tag", "tags", multiple=True, help="Tags in format 'key=value' (repeatable)")
@click.option("--env", "env_vars", multiple=True, help="Container environment 'KEY=value' (repeatable)")
@click.option("--quiet", is_flag=True, help="Do not stream run logs")
@click.option("--json", "output_json", is_flag=True, help="Output machine-readable JSON")
def deploy_cmd(description: str, repo: str, branch: Optional[str], tags: tuple, env_vars: tuple,
               quiet: bool, output_json: bool):
    """
    Deploy REPO as described by DESCRIPTION.
    """
    request = DeploymentRequest(
        description=description,
        repo=repo,
        branch=branch,
        env_overrides=_parse_pairs(env_vars, "environment variable"),
        tags=_parse_pairs(tags, "tag"),
    )

    def stream(entry: RunLog) -> None:
        if entry.level != "debug":
            click.echo(_format_entry(entry.to_dict()), err=output_json)

    result = deploy_application(request, sink=None if quiet else stream)

    if output_json:
        _json_output({
            "run_id": result.run_id,
            "success": result.success,
            "service_url": result.service_url,
            "error": result.error,
            "duration_ms": result.duration_ms,
        })
    elif result.success:
        click.echo(f"Deployment {result.run_id} succeeded in {result.duration_ms} ms")
        if result.service_url:
            click.echo(f"Service URL: {result.service_url}")
    else:
        click.echo(f"Deployment {result.run_id} failed: {result.error}", err=True)

    sys.exit(0 if result.success else 1)


@main.command("plan")
@click.argument("description")
@click.option("--repo", required=True, help="Repository URL or local path")
@click.option("--branch", help="Branch to analyze")
@click.option("--json", "output_json", is_flag=True, help="Output machine-readable JSON")
def plan_cmd(description: str, repo: str, branch: Optional[str], output_json: bool):
    """
    Show the plan and stacks for a request without deploying anything.
    """
    try:
        fields, hits = extract_with_hits(description)
        spec = DeploySpec(**fields)
        if Path(repo).expanduser().is_dir():
            facts = analyze_repo(str(Path(repo).expanduser()))
        else:
            with tempfile.TemporaryDirectory(prefix="autodeploy-plan-") as tmp:
                dest = str(Path(tmp) / "repo")
                GitClient().clone(repo, dest, branch=branch)
                facts = analyze_repo(dest)
    except (AutoDeployError, ValueError) as e:
        click.echo(f"Planning failed: {e}", err=True)
        sys.exit(1)

    plan = create_plan(spec, facts)
    violations = validate_plan(plan, spec, facts)
    stacks = select_stacks(plan)

    if output_json:
        _json_output({
            "deploy_spec": dataclasses.asdict(spec),
            "rule_hits": hits,
            "repo_facts": dataclasses.asdict(facts),
            "plan": dataclasses.asdict(plan),
            "stacks": stacks,
            "violations": violations,
        })
    else:
        click.echo(f"App: {spec.app_name} ({spec.region}, cost={spec.hints.cost}, perf={spec.hints.perf})")
        for app in facts.apps:
            click.echo(f"  - {app.path}: {app.language}/{app.framework} ({app.role})")
        click.echo(f"Runtime: {plan.runtime}")
        click.echo(f"Front: {plan.front or '-'}")
        click.echo(f"Database: {plan.db or '-'}")
        click.echo(f"Stacks: {', '.join(stacks)}")
        for violation in violations:
            click.echo(f"Violation: {violation}", err=True)

    sys.exit(1 if violations else 0)


@main.command("destroy")
@click.argument("run_id")
def destroy_cmd(run_id: str):
    """
    Destroy the infrastructure created by a run.
    """
    if not is_valid_run_id(run_id):
        click.echo(f"Invalid run ID: {run_id}", err=True)
        sys.exit(1)

    try:
        result = destroy_run(run_id, Settings.from_env(), log=click.echo)
    except AutoDeployError as e:
        click.echo(f"Destroy failed: {e}", err=True)
        sys.exit(1)

    if not result.success:
        click.echo(f"Destroy failed: {result.error}", err=True)
        sys.exit(1)
    click.echo(f"Run {run_id} destroyed")


@main.command("logs")
@click.argument("run_id")
@click.option("--step", help="Only show entries of this step")
@click.option("--json", "output_json", is_flag=True, help="Output raw NDJSON entries")
def logs_cmd(run_id: str, step: Optional[str], output_json: bool):
    """
    Show the log of a run.
    """
    if not is_valid_run_id(run_id):
        click.echo(f"Invalid run ID: {run_id}", err=True)
        sys.exit(1)

    run_dir = get_run_dir(run_id, Settings.from_env().work_root_path)
    if not run_dir.exists():
        click.echo(f"Run {run_id} not found", err=True)
        sys.exit(1)

    for entry in read_events(run_dir):
        if step and entry.get("step") != step:
            continue
        click.echo(json.dumps(entry) if output_json else _format_entry(entry))


@main.command("serve")
@click.option("--host", default="0.0.0.0", help="Bind address")
@click.option("--port", default=3000, type=int, help="Port")
def serve_cmd(host: str, port: int):
    """
    Run the HTTP API.
    """
    from autodeploy.api import serve
    serve(host=host, port=port)


if __name__ == "__main__":
    main()
