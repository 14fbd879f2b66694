"""
Runtime planner: picks the infrastructure family for a deployment request and repo shape.
"""

from .rules import AppPartition, partition_apps
from .select import create_plan
from .validate import validate_plan

__all__ = [
    "AppPartition",
    "create_plan",
    "partition_apps",
    "validate_plan",
]
