"""
Resource tags and `KEY=value` option parsing.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

MANAGED_BY = "autodeploy"


def base_tags(app_name: str, env: str, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """
    Tags applied to every resource of a deployment.

    Args:
        app_name: Application name
        env: Environment name (e.g. "prod")
        extra: Request tags; they win over the defaults

    Returns:
        Tag map
    """
    tags = {
        "Application": app_name,
        "Environment": env,
        "ManagedBy": MANAGED_BY,
        "CreatedAt": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    }
    tags.update(extra or {})
    return tags


def parse_key_values(pairs: Iterable[str]) -> Dict[str, str]:
    """
    Parse repeated `KEY=value` options (tags, environment overrides).

    Raises:
        ValueError: On a missing `=` or an empty key or value
    """
    parsed: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not key or not value:
            raise ValueError(f"Invalid format: {pair!r}, expected KEY=value")
        parsed[key] = value
    return parsed
