"""
Docker build backend.
"""

from pathlib import Path

from autodeploy.exceptions import BuildError
from autodeploy.types import RepoApp
from .base import BuildConfig, BuildLog, BuildResult, last_line
from .registry import push_image

FLASK_DOCKERFILE = """FROM python:3.11-slim
WORKDIR /app
ENV PYTHONDONTWRITEBYTECODE=1
ENV PYTHONUNBUFFERED=1
COPY . /app
RUN pip install --no-cache-dir --upgrade pip && \\
    if [ -f requirements.txt ]; then pip install --no-cache-dir -r requirements.txt; fi && \\
    pip install --no-cache-dir gunicorn
ENV PORT=8080
EXPOSE 8080
CMD ["sh", "-c", "gunicorn --timeout 120 --keep-alive 2 -b 0.0.0.0:${PORT} app:app"]
"""


def can_synthesize_dockerfile(app: RepoApp) -> bool:
    return app.language == "python" and app.framework == "flask"


def ensure_dockerfile(repo_path: str, app: RepoApp) -> bool:
    """
    Make sure a Dockerfile exists, writing a minimal one for Flask apps.

    Returns:
        False if there is no Dockerfile and none can be generated
    """
    dockerfile = Path(repo_path) / "Dockerfile"
    if dockerfile.exists():
        return True
    if not can_synthesize_dockerfile(app):
        return False
    dockerfile.write_text(FLASK_DOCKERFILE)
    return True


def build(app: RepoApp, config: BuildConfig) -> BuildResult:
    log = BuildLog(config)

    if not ensure_dockerfile(config.repo_path, app):
        return log.fail("No Dockerfile found and automatic Dockerfile generation is not supported for this app")

    log(f"Building Docker image {config.image_name} from {config.repo_path}")
    result = log.run(["docker", "build", "--platform=linux/amd64", "-t", config.image_name, "."], cwd=config.repo_path)
    if not result.ok:
        return log.fail(f"Docker build failed: {last_line(result)}")

    image_uri = config.image_name
    if config.registry_url:
        try:
            image_uri = push_image(config.image_name, config.registry_url, config.tag, log)
        except BuildError as e:
            return log.fail(str(e))

    log("Docker build completed successfully")
    return BuildResult(success=True, image_uri=image_uri, logs=list(log.lines))
