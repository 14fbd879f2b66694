"""
Build backends: a closed set of {docker, buildpacks, static}, each exposing
`build(app, config) -> BuildResult`.
"""

import logging
from typing import Callable, Dict, Optional

from autodeploy.planner.rules import is_static_app
from autodeploy.types import Plan, RepoApp, Runtime
from . import buildpacks, docker, static
from .base import BuildConfig, BuildResult
from .buildpacks import pack_available

logger = logging.getLogger(__name__)

DOCKER = "docker"
BUILDPACKS = "buildpacks"
STATIC = "static"

BACKENDS: Dict[str, Callable[[RepoApp, BuildConfig], BuildResult]] = {
    DOCKER: docker.build,
    BUILDPACKS: buildpacks.build,
    STATIC: static.build,
}


def select_backend(app: RepoApp, pack_is_available: bool) -> Optional[str]:
    """
    Pick the backend for an app from its detected facts alone.

    Static apps use the static backend; an existing Dockerfile means docker; otherwise
    buildpacks when `pack` is installed, then docker with a generated Dockerfile where one can
    be generated. None means no backend can build the app.
    """
    if is_static_app(app):
        return STATIC
    if app.dockerfile:
        return DOCKER
    if pack_is_available:
        return BUILDPACKS
    if docker.can_synthesize_dockerfile(app):
        return DOCKER
    return None


def build_application(app: RepoApp, plan: Plan, config: BuildConfig,
                      pack_is_available: Optional[bool] = None) -> BuildResult:
    """
    Build (and push or upload) one app.

    Args:
        app: Detected app
        plan: Deployment plan; a static runtime forces the static backend
        config: Build configuration
        pack_is_available: Whether the `pack` CLI exists (probed when None)

    Returns:
        BuildResult from the selected backend
    """
    if plan.runtime == Runtime.STATIC_CDN or is_static_app(app):
        backend = STATIC
    else:
        if pack_is_available is None and not app.dockerfile:
            pack_is_available = pack_available(config.executor)
        backend = select_backend(app, bool(pack_is_available))

    if backend is None:
        message = ("Cloud Native Buildpacks (pack CLI) is not installed and automatic Dockerfile "
                   "generation is not supported for this app")
        return BuildResult(success=False, error=message, logs=[message])

    logger.info("Building %s (%s) with the %s backend", app.path, app.framework, backend)
    return BACKENDS[backend](app, config)


__all__ = [
    "BACKENDS",
    "BuildConfig",
    "BuildResult",
    "build_application",
    "pack_available",
    "select_backend",
]
