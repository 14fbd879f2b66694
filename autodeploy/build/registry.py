"""
Container registry authentication and image push.
"""

import base64
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from autodeploy.exceptions import BuildError
from .base import BuildLog, last_line

logger = logging.getLogger(__name__)


def is_ecr(registry_url: str) -> bool:
    return ".dkr.ecr." in registry_url


def ecr_region(registry_url: str) -> str:
    """Region of an ECR URL such as 123456789012.dkr.ecr.us-east-2.amazonaws.com/repo."""
    domain = registry_url.split("/")[0]
    parts = domain.split(".")
    if len(parts) < 4:
        raise BuildError(f"Not an ECR registry URL: {registry_url}")
    return parts[3]


def ecr_login(registry_url: str, log: BuildLog, ecr_client=None) -> None:
    """
    Log docker in to an ECR registry with a token from GetAuthorizationToken.

    Raises:
        BuildError: If the token cannot be fetched or docker login fails
    """
    region = ecr_region(registry_url)
    log(f"Authenticating with ECR in {region}...")
    try:
        client = ecr_client or boto3.client('ecr', region_name=region)
        token_response = client.get_authorization_token()
    except (ClientError, BotoCoreError) as e:
        raise BuildError(f"ECR authentication failed: {e}") from e

    auth = token_response['authorizationData'][0]
    username, password = base64.b64decode(auth['authorizationToken']).decode().split(":", 1)
    endpoint = auth['proxyEndpoint']

    result = log.run(["docker", "login", "--username", username, "--password-stdin", endpoint], input_text=password)
    if not result.ok:
        raise BuildError(f"docker login failed: {last_line(result)}")
    log("ECR authentication successful")


def push_image(local_image: str, registry_url: str, tag: str, log: BuildLog, ecr_client=None) -> str:
    """
    Tag a local image for the registry and push it.

    Returns:
        The pushed image reference `<registry>:<tag>`
    """
    full_image = f"{registry_url}:{tag}"
    if is_ecr(registry_url):
        ecr_login(registry_url, log, ecr_client)

    log(f"Tagging image for registry: {full_image}")
    result = log.run(["docker", "tag", local_image, full_image])
    if not result.ok:
        raise BuildError(f"docker tag failed: {last_line(result)}")

    log("Pushing image to registry...")
    result = log.run(["docker", "push", full_image])
    if not result.ok:
        raise BuildError(f"docker push failed: {last_line(result)}")

    logger.info("Pushed %s", full_image)
    return full_image
