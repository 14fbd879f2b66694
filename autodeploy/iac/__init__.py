"""
Infrastructure-as-code generation: stack selection, Terraform rendering and tfvars patching.
"""

from .generator import VARS_FILE, generate_iac
from .stacks import select_stacks
from .tfvars import TfVars, apply_runtime_values, normalize_port, set_image

__all__ = [
    "TfVars",
    "VARS_FILE",
    "apply_runtime_values",
    "generate_iac",
    "normalize_port",
    "select_stacks",
    "set_image",
]
