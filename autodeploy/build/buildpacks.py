"""
Cloud Native Buildpacks backend (`pack` CLI).
"""

from typing import Dict

from autodeploy.exceptions import BuildError
from autodeploy.proc import run_streaming
from autodeploy.types import RepoApp
from .base import BuildConfig, BuildLog, BuildResult, last_line
from .registry import push_image

DEFAULT_BUILDER = "paketobuildpacks/builder-jammy-base"


def pack_available(executor=run_streaming) -> bool:
    return executor(["pack", "version"]).ok


def build_env(app: RepoApp) -> Dict[str, str]:
    env = {}
    if app.framework == "flask":
        env["FLASK_APP"] = "app.py"
    if app.framework == "nextjs":
        env["NODE_ENV"] = "production"
    if app.ports:
        env["PORT"] = str(app.ports[0])
    return env


def build(app: RepoApp, config: BuildConfig) -> BuildResult:
    log = BuildLog(config)

    command = ["pack", "build", config.image_name, "--builder", DEFAULT_BUILDER,
               "--path", config.repo_path, "--platform", "linux/amd64"]
    for key, value in build_env(app).items():
        command += ["--env", f"{key}={value}"]

    log(f"Building {config.image_name} with Cloud Native Buildpacks ({DEFAULT_BUILDER})")
    result = log.run(command)
    if not result.ok:
        return log.fail(f"Buildpack build failed: {last_line(result)}")

    image_uri = config.image_name
    if config.registry_url:
        try:
            image_uri = push_image(config.image_name, config.registry_url, config.tag, log)
        except BuildError as e:
            return log.fail(str(e))

    log("Buildpack build completed successfully")
    return BuildResult(success=True, image_uri=image_uri, logs=list(log.lines))
