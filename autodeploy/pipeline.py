"""
Deployment pipeline: request text and repository in, running deployment (or failure) out.

Stages run strictly in sequence: parse, clone, analyze, plan, iac_generate, build, deploy.
Every stage logs at least one entry before it proceeds; the first failure aborts the run and
is returned as a failed PipelineResult.
"""

import dataclasses
import json
import logging
import shutil
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .analyzer import analyze_repo
from .analyzer.fetcher import GitClient
from .build import BuildConfig, build_application
from .config import Settings
from .events import CallbackSink, LogSink, NdjsonFileSink, RunLogger, StoreSink
from .exceptions import (
    AcquisitionError, AutoDeployError, BuildError, InfrastructureError, PlanValidationError
)
from .iac import VARS_FILE, apply_runtime_values, generate_iac, normalize_port
from .iac.tfvars import DEFAULT_PORT
from .ids import new_run_id
from .nlp import parse_description
from .planner import create_plan, validate_plan
from .planner.rules import is_static_app
from .state import RunStore, get_run_dir
from .terraform import TerraformResult, TerraformRunner
from .types import (
    DeploySpec, DeploymentRequest, GeneratedConfig, PipelineResult, Plan, RepoApp, RepoFacts, Runtime
)

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
FALLBACK_BRANCH = "master"
SUPPORTED_CLOUD = "aws"

# Terraform output keys, in order of preference
URL_OUTPUT_KEYS = ("service_url", "cdn_url")


def placeholder_url(app_name: str, runtime: str) -> str:
    if runtime == Runtime.STATIC_CDN:
        return f"https://{app_name}-static.s3.amazonaws.com/index.html"
    return f"https://{app_name}.amazonaws.com"


def service_url_from_outputs(outputs: Dict[str, Any]) -> Optional[str]:
    for key in URL_OUTPUT_KEYS:
        if outputs.get(key):
            return outputs[key]
    return None


def container_app(facts: RepoFacts) -> Optional[RepoApp]:
    """First app that runs as a container, else the primary app."""
    for app in facts.apps:
        if not is_static_app(app):
            return app
    return facts.primary


class DeploymentPipeline:
    """
    One deployment run.

    Args:
        request: Deployment request
        settings: Execution settings (defaults to the environment)
        run_id: Run id (generated if not provided)
        sink: Extra log sink, or a plain callable receiving each RunLog
        store: Run store whose record for this run is kept up to date
        parse: Description parser
        analyze: Repository analyzer
        git: Git client used for the clone stage
        build: Build entry point
        terraform_factory: Creates the Terraform runner for a work directory
    """

    def __init__(self, request: DeploymentRequest, settings: Optional[Settings] = None,
                 run_id: Optional[str] = None,
                 sink: Optional[Union[LogSink, Callable]] = None,
                 store: Optional[RunStore] = None,
                 parse: Callable[[str], DeploySpec] = parse_description,
                 analyze: Callable[[str], RepoFacts] = analyze_repo,
                 git: Optional[GitClient] = None,
                 build: Callable[..., Any] = build_application,
                 terraform_factory: Callable[..., TerraformRunner] = TerraformRunner):
        self.request = request
        self.settings = settings or Settings.from_env()
        self.run_id = run_id or new_run_id()
        self.store = store
        self.parse = parse
        self.analyze = analyze
        self.git = git or GitClient()
        self.build = build
        self.terraform_factory = terraform_factory
        self.run_dir = get_run_dir(self.run_id, self.settings.work_root_path)

        sinks: List[LogSink] = [NdjsonFileSink(self.run_dir)]
        if store is not None:
            sinks.append(StoreSink(store))
        if sink is not None:
            sinks.append(sink if isinstance(sink, LogSink) else CallbackSink(sink))
        self.logger = RunLogger(self.run_id, sinks)
        self.step = "pipeline"

    def _stage(self, step: str, message: str, meta: Optional[Dict[str, Any]] = None) -> None:
        self.step = step
        self.logger.info(step, message, meta)

    def execute(self) -> PipelineResult:
        """Run every stage. Never raises; failures come back as a failed result."""
        start = time.monotonic()
        if self.store is not None:
            if self.store.get(self.run_id) is None:
                self.store.create(self.run_id)
            self.store.update(self.run_id, status="running")

        try:
            self._stage("pipeline", "Starting deployment pipeline", {
                "repo": self.request.repo,
                "description": self.request.description,
            })
            spec = self._parse()
            repo_path = self._clone()
            facts = self._analyze(repo_path)
            plan = self._plan(spec, facts)
            generated = self._generate(spec, plan)
            self._pre_build_patch(plan, facts, generated)
            image_uri = self._build(spec, plan, facts, repo_path)
            service_url = self._deploy(spec, plan, facts, generated, image_uri)
        except Exception as e:
            duration_ms = int((time.monotonic() - start) * 1000)
            if not isinstance(e, AutoDeployError):
                logger.exception("Unexpected error in run %s during %s", self.run_id, self.step)
            self.logger.error(self.step, str(e))
            self.logger.error("pipeline", f"Deployment pipeline failed: {e}", {
                "error": str(e),
                "duration_ms": duration_ms,
            })
            return self._finish(PipelineResult(success=False, run_id=self.run_id, error=str(e) or type(e).__name__,
                                               logs=list(self.logger.entries), duration_ms=duration_ms))

        duration_ms = int((time.monotonic() - start) * 1000)
        self._stage("pipeline", "Deployment pipeline completed successfully", {
            "service_url": service_url,
            "duration_ms": duration_ms,
        })
        return self._finish(PipelineResult(success=True, run_id=self.run_id, service_url=service_url,
                                           logs=list(self.logger.entries), duration_ms=duration_ms))

    def _finish(self, result: PipelineResult) -> PipelineResult:
        if self.store is not None:
            self.store.update(
                self.run_id,
                status="success" if result.success else "failed",
                service_url=result.service_url,
                error=result.error,
            )
        return result

    def _parse(self) -> DeploySpec:
        self._stage("parse", "Parsing deployment description")
        spec = self.parse(self.request.description)
        if spec.cloud != SUPPORTED_CLOUD:
            raise AutoDeployError(f"Unsupported cloud provider: {spec.cloud} (only {SUPPORTED_CLOUD} is supported)")
        if self.settings.region_override and self.settings.region_override != spec.region:
            self.logger.info("parse", f"Region overridden by environment: {spec.region} -> {self.settings.region_override}")
            spec = dataclasses.replace(spec, region=self.settings.region_override)
        self.logger.info("parse", "Generated DeploySpec", {"deploy_spec": dataclasses.asdict(spec)})
        return spec

    def _clone(self) -> str:
        """
        Acquire the repository: requested branch, then the remote default branch, then bare HEAD.

        Raises:
            AcquisitionError: If all three attempts fail
        """
        self._stage("clone", f"Cloning repository {self.request.repo}")
        dest = self.run_dir / "repo"
        on_line = self.logger.line_logger("clone")

        def attempt(branch: Optional[str]) -> bool:
            label = branch or "default HEAD"
            if dest.exists():
                shutil.rmtree(dest)
            dest.parent.mkdir(parents=True, exist_ok=True)
            self.logger.info("clone", f"Clone attempt: {label}", {"branch": branch})
            try:
                self.git.clone(self.request.repo, str(dest), branch=branch, on_line=on_line)
            except AcquisitionError as e:
                self.logger.warn("clone", f"Clone with {label} failed: {e}", {"branch": branch})
                return False
            self.logger.info("clone", "Repository cloned successfully", {"path": str(dest), "branch": branch})
            return True

        if attempt(self.request.branch or DEFAULT_BRANCH):
            return str(dest)

        detected = self.git.default_branch(self.request.repo)
        if detected:
            self.logger.info("clone", "Detected default branch", {"default_branch": detected})
        else:
            detected = FALLBACK_BRANCH
            self.logger.warn("clone", f"Failed to detect default branch, falling back to '{detected}'")
        if attempt(detected):
            return str(dest)

        if attempt(None):
            return str(dest)
        raise AcquisitionError(f"Failed to clone {self.request.repo}: all clone attempts failed")

    def _analyze(self, repo_path: str) -> RepoFacts:
        self._stage("analyze", "Analyzing repository structure")
        facts = self.analyze(repo_path)
        if not facts.apps:
            self.logger.warn("analyze", "No deployable apps detected")
        self.logger.info("analyze", "Generated RepoFacts", {"repo_facts": dataclasses.asdict(facts)})
        return facts

    def _plan(self, spec: DeploySpec, facts: RepoFacts) -> Plan:
        self._stage("plan", "Creating deployment plan")
        plan = create_plan(spec, facts)
        violations = validate_plan(plan, spec, facts)
        if violations:
            raise PlanValidationError(violations)
        if spec.hints.cost == "low" and spec.hints.perf == "high":
            self.logger.warn("plan", "Both cost=low and perf=high requested; the perf hint was applied last")
        self.logger.info("plan", "Generated deployment plan", {"plan": dataclasses.asdict(plan)})
        return plan

    def _generate(self, spec: DeploySpec, plan: Plan) -> GeneratedConfig:
        self._stage("iac_generate", "Generating Terraform configuration")
        generated = generate_iac(spec, plan, str(self.run_dir / "iac"), settings=self.settings,
                                 extra_tags=self.request.tags)
        self.logger.info("iac_generate", "Generated Terraform files", {
            "stacks": generated.stacks,
            "workdir": generated.workdir,
        })
        return generated

    def _pre_build_patch(self, plan: Plan, facts: RepoFacts, generated: GeneratedConfig) -> None:
        primary = facts.primary
        if plan.runtime != Runtime.MANAGED_SERVICE or primary is None or primary.framework != "flask":
            return
        tfvars = normalize_port(generated.tfvars, DEFAULT_PORT)
        tfvars.save(generated.vars_file)
        self.logger.info("iac_generate", "Adjusted Flask settings", {
            "app_port": tfvars["app_port"],
            "health_check_path": tfvars["health_check_path"],
            "revision": tfvars.revision,
        })

    def _build(self, spec: DeploySpec, plan: Plan, facts: RepoFacts, repo_path: str) -> Optional[str]:
        if plan.runtime == Runtime.STATIC_CDN:
            self._stage("build", "Static site runtime, container build skipped")
            return None

        registry = self.settings.registry_url
        if not (self.settings.real_build and registry):
            self._stage("build", "Building application image (simulated)")
            if self.settings.real_build:
                self.logger.warn("build", "Real build requested but no registry URL configured")
            if not registry:
                self.logger.warn("build", "No registry URL configured, skipping image build")
                return None
            image_uri = f"{registry}:{self.run_id}"
            self.logger.info("build", "Image build completed (simulated)", {"image_uri": image_uri})
            return image_uri

        self._stage("build", "Building and pushing container image")
        app = container_app(facts)
        if app is None:
            raise BuildError("No deployable app detected to build")
        config = BuildConfig(
            repo_path=str(Path(repo_path) / app.path),
            image_name=f"{spec.app_name}:{self.run_id}",
            registry_url=registry,
            tag=self.run_id,
            s3_bucket=self.settings.static_bucket,
            region=spec.region,
            on_line=self.logger.line_logger("build"),
        )
        result = self.build(app, plan, config)
        if not result.success:
            raise BuildError(f"Image build/push failed: {result.error}")
        image_uri = result.image_uri or f"{registry}:{self.run_id}"
        self.logger.info("build", "Image build and push completed", {"image_uri": image_uri})
        return image_uri

    def _deploy(self, spec: DeploySpec, plan: Plan, facts: RepoFacts, generated: GeneratedConfig,
                image_uri: Optional[str]) -> Optional[str]:
        self._stage("deploy", "Deploying infrastructure with Terraform")

        if not self.settings.real_deploy:
            url = placeholder_url(spec.app_name, plan.runtime)
            self.logger.info("deploy", "Infrastructure deployment completed (simulated)", {"service_url": url})
            return url

        app = container_app(facts)
        port = app.ports[0] if app and app.ports else None
        tfvars = apply_runtime_values(generated.tfvars, plan.runtime, spec.region, spec.hints.perf,
                                      port=port, image_uri=image_uri, env_overrides=self.request.env_overrides)
        tfvars.save(generated.vars_file)
        self.logger.info("deploy", "Updated terraform.tfvars.json with runtime values", {
            "revision": tfvars.revision,
            "patches": list(tfvars.history),
        })

        runner = self.terraform_factory(generated.workdir, log=self.logger.line_logger("terraform"))
        result = runner.init()
        if result.success:
            result = runner.apply(generated.vars_file)
        if not result.success:
            raise InfrastructureError(f"Terraform deployment failed: {result.error}", result)

        outputs = result.outputs or {}
        self._write_outputs(outputs)
        self.logger.info("deploy", "Infrastructure deployment completed", {"outputs": sorted(outputs)})

        url = service_url_from_outputs(outputs)
        if url is None:
            self.logger.warn("deploy", "No service URL found in Terraform outputs")
        return url

    def _write_outputs(self, outputs: Dict[str, Any]) -> None:
        with open(self.run_dir / "outputs.json", "w") as f:
            json.dump(outputs, f, indent=2, default=str)


def deploy_application(request: DeploymentRequest, settings: Optional[Settings] = None,
                       sink: Optional[Union[LogSink, Callable]] = None,
                       store: Optional[RunStore] = None, run_id: Optional[str] = None,
                       **collaborators) -> PipelineResult:
    pipeline = DeploymentPipeline(request, settings=settings, run_id=run_id, sink=sink, store=store,
                                  **collaborators)
    return pipeline.execute()


def destroy_run(run_id: str, settings: Optional[Settings] = None,
                log: Optional[Callable[[str], None]] = None,
                terraform_factory: Callable[..., TerraformRunner] = TerraformRunner) -> TerraformResult:
    """
    Destroy the infrastructure of a previous run from its generated configuration.

    Raises:
        AutoDeployError: If the run has no generated configuration
    """
    settings = settings or Settings.from_env()
    workdir = get_run_dir(run_id, settings.work_root_path) / "iac"
    vars_file = workdir / VARS_FILE
    if not vars_file.exists():
        raise AutoDeployError(f"No generated configuration for run {run_id} in {workdir}")

    runner = terraform_factory(str(workdir), log=log)
    result = runner.init()
    if not result.success:
        return result
    return runner.destroy(str(vars_file))
