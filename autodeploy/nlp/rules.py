"""
Deterministic regex/phrase rules turning a deployment request into a DeploySpec.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from autodeploy.types import REGIONS, DataNeeds, DeploySpec, Hints, Service

DEFAULT_APP_NAME = "autoapp"
DEFAULT_REGION = "us-east-2"


def extract_with_hits(description: str) -> Tuple[Dict[str, Any], List[str]]:
    """
    Apply every rule to the description.

    Args:
        description: Raw request text

    Returns:
        Tuple of (fields, hits) where fields are DeploySpec keyword values and hits name the
        rules that fired
    """
    text = description.lower()
    hits: List[str] = []

    fields: Dict[str, Any] = {
        "app_name": _extract_app_name(text, hits),
        "cloud": _extract_cloud(text, hits),
        "region": _extract_region(text, hits),
        "hints": Hints(cost=_extract_cost(text, hits), perf=_extract_perf(text, hits)),
        "services": _extract_services(text, hits),
        "data": DataNeeds(db=_extract_database(text, hits), cache=_extract_cache(text, hits)),
        "domain": _extract_domain(text, hits),
    }
    return fields, hits


def parse_description(description: str) -> DeploySpec:
    """Parse a natural-language deployment request. Unmatched fields keep their defaults."""
    fields, _ = extract_with_hits(description)
    return DeploySpec(**fields)


def _extract_app_name(text: str, hits: List[str]) -> str:
    match = re.search(r'\b(?:app|application|service|project)\s+(?:called|named)\s+["\']?([a-z0-9][a-z0-9_-]*)', text)
    if match:
        name = match.group(1).replace("_", "-")
        hits.append(f"app_name:{name}")
        return name
    return DEFAULT_APP_NAME


def _extract_cloud(text: str, hits: List[str]) -> str:
    patterns = [
        (r'\bazure\b|\bmicrosoft\b', "azure"),
        (r'\bgcp\b|\bgoogle cloud\b|\bgoogle\b', "gcp"),
        (r'\baws\b|\bamazon\b', "aws"),
    ]
    for pattern, cloud in patterns:
        if re.search(pattern, text):
            hits.append(f"cloud:{cloud}")
            return cloud
    return "aws"


def _extract_region(text: str, hits: List[str]) -> str:
    match = re.search(r'\b(us-[a-z]+-\d+|eu-[a-z]+-\d+|ap-[a-z]+-\d+|ca-[a-z]+-\d+|sa-[a-z]+-\d+)\b', text)
    if match:
        region = match.group(1)
        if region in REGIONS:
            hits.append(f"region:direct:{region}")
            return region
        hits.append(f"region:unsupported:{region}")
        return DEFAULT_REGION

    aliases = {
        'ohio': 'us-east-2',
        'oregon': 'us-west-2',
        'n. virginia': 'us-east-1',
        'northern virginia': 'us-east-1',
        'virginia': 'us-east-1',
        'ireland': 'eu-west-1',
        'singapore': 'ap-southeast-1',
    }
    for alias, canonical in aliases.items():
        if re.search(rf'\b{re.escape(alias)}\b', text):
            hits.append(f"region:alias:{alias}->{canonical}")
            return canonical
    return DEFAULT_REGION


def _extract_cost(text: str, hits: List[str]) -> str:
    if re.search(r'\bcheap\w*\b|\bminimal\b|\blow[- ]cost\b|\bbudget\b', text):
        hits.append("cost:low")
        return "low"
    if re.search(r'\bexpensive\b|\bpremium\b|\bhigh[- ]performance\b', text):
        hits.append("cost:high")
        return "high"
    return "standard"


def _extract_perf(text: str, hits: List[str]) -> str:
    if re.search(r'\bfast\b|\bhigh[- ]performance\b|\boptimi[sz]ed\b', text):
        hits.append("perf:high")
        return "high"
    if re.search(r'\bminimal\b|\bbasic\b', text):
        hits.append("perf:low")
        return "low"
    return "standard"


def _extract_services(text: str, hits: List[str]) -> List[Service]:
    rules = [
        (r'\bweb\b|\bfrontend\b|\bui\b|\breact\b|\bvue\b|\bangular\b|\bstatic\b|\bwebsite\b', Service("web", "http")),
        (r'\bapi\b|\bbackend\b|\bserver\b|\bflask\b|\bdjango\b|\bexpress\b|\bfastapi\b|\bnode\b', Service("api", "http")),
        (r'\bworkers?\b|\bbackground\b|\bjobs?\b|\bqueue\b', Service("worker", "worker")),
        (r'\bcron\b|\bscheduled\b|\bperiodic\b', Service("scheduler", "cron")),
    ]
    services = []
    for pattern, service in rules:
        if re.search(pattern, text):
            hits.append(f"service:{service.name}:{service.type}")
            services.append(service)

    if not services:
        services.append(Service("web", "http"))
    return services


def _extract_database(text: str, hits: List[str]) -> Optional[str]:
    if re.search(r'\bno db\b|\bno database\b|\bwithout (?:a )?database\b', text):
        hits.append("db:none")
        return None
    if re.search(r'\bmysql\b|\bmariadb\b', text):
        hits.append("db:mysql")
        return "mysql"
    if re.search(r'\bpostgres\w*\b|\bdatabase\b|\bdb\b|\bsql\b', text):
        hits.append("db:postgres")
        return "postgres"
    return None


def _extract_cache(text: str, hits: List[str]) -> Optional[str]:
    if re.search(r'\bredis\b|\bcach(?:e|ing)\b|\bmemcache\w*\b', text):
        hits.append("cache:redis")
        return "redis"
    return None


def _extract_domain(text: str, hits: List[str]) -> Optional[str]:
    patterns = [
        r'\b(?:custom )?(?:domain|host|url)\s+(?:of\s+|at\s+)?([a-z0-9.-]+\.[a-z]{2,})\b',
        r'\bat\s+([a-z0-9-]+(?:\.[a-z0-9-]+)*\.(?:com|org|net|io|dev|app))\b',
    ]
    for pattern in patterns:
        match = re.search(pattern, text)
        if match:
            domain = match.group(1)
            hits.append(f"domain:{domain}")
            return domain
    return None
