"""
Static site backend: optional JS build, then upload of the output folder to S3.
"""

import mimetypes
import shlex
from pathlib import Path
from typing import Optional

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

from autodeploy.analyzer.detect_static import find_site_root
from autodeploy.types import RepoApp
from .base import BuildConfig, BuildLog, BuildResult, last_line

OUTPUT_DIRS = {
    "react-vite": "dist",
    "create-react-app": "build",
    "nextjs": "out",
}

INSTALL_COMMANDS = {
    "npm": ["npm", "ci"],
    "yarn": ["yarn", "install"],
    "pnpm": ["pnpm", "install"],
}


def output_dir(app: RepoApp, repo_path: str) -> Optional[Path]:
    if app.framework in OUTPUT_DIRS:
        return Path(repo_path) / OUTPUT_DIRS[app.framework]
    return find_site_root(repo_path)


def upload_directory(build_path: Path, bucket: str, region: str, log: BuildLog, s3_client=None) -> int:
    """
    Upload every file under build_path to the bucket root with a guessed content type.

    Returns:
        Number of uploaded files
    """
    client = s3_client or boto3.client('s3', region_name=region)
    count = 0
    for path in sorted(p for p in build_path.rglob("*") if p.is_file()):
        key = path.relative_to(build_path).as_posix()
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        client.upload_file(str(path), bucket, key, ExtraArgs={"ContentType": content_type})
        count += 1
    log(f"Uploaded {count} file(s) to s3://{bucket}")
    return count


def build(app: RepoApp, config: BuildConfig) -> BuildResult:
    log = BuildLog(config)
    log(f"Building static site ({app.framework}) in {config.repo_path}")

    if app.language == "javascript":
        install = INSTALL_COMMANDS.get(app.package_manager or "npm", INSTALL_COMMANDS["npm"])
        result = log.run(install, cwd=config.repo_path)
        if not result.ok:
            return log.fail(f"Dependency installation failed: {last_line(result)}")

        if app.build_cmd:
            result = log.run(["npx"] + shlex.split(app.build_cmd), cwd=config.repo_path)
            if not result.ok:
                return log.fail(f"Static build failed: {last_line(result)}")

    build_path = output_dir(app, config.repo_path)
    if build_path is None or not build_path.is_dir():
        return log.fail(f"Build output directory not found: {build_path or config.repo_path}")
    log(f"Build output: {build_path}")

    static_url = None
    if config.s3_bucket:
        try:
            upload_directory(build_path, config.s3_bucket, config.region, log)
        except (ClientError, BotoCoreError, S3UploadFailedError) as e:
            return log.fail(f"S3 upload failed: {e}")
        static_url = f"https://{config.s3_bucket}.s3.amazonaws.com/index.html"

    return BuildResult(success=True, static_url=static_url, logs=list(log.lines))
