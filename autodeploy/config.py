"""
Execution settings read from the environment.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_WORK_ROOT = "/tmp/auto-deploy-runs"

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = env.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUTHY


def _opt(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name, "").strip()
    return value or None


@dataclass
class Settings:
    """Execution-mode flags and external resource identifiers for one process."""
    real_build: bool = False
    real_deploy: bool = False
    registry_url: Optional[str] = None
    work_root: str = DEFAULT_WORK_ROOT
    state_bucket: Optional[str] = None
    lock_table: Optional[str] = None
    state_key: Optional[str] = None
    region_override: Optional[str] = None
    account_id: Optional[str] = None
    static_bucket: Optional[str] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)

        Returns:
            Settings instance
        """
        env = os.environ if env is None else env
        real_deploy = _flag(env, "USE_REAL_TERRAFORM")
        return cls(
            real_build=_flag(env, "USE_REAL_BUILD", default=real_deploy),
            real_deploy=real_deploy,
            registry_url=_opt(env, "REGISTRY_URL"),
            work_root=_opt(env, "WORK_ROOT") or DEFAULT_WORK_ROOT,
            state_bucket=_opt(env, "TF_BUCKET"),
            lock_table=_opt(env, "TF_DDB_TABLE"),
            state_key=_opt(env, "TF_STATE_KEY"),
            region_override=_opt(env, "AWS_REGION"),
            account_id=_opt(env, "AWS_ACCOUNT_ID"),
            static_bucket=_opt(env, "STATIC_BUCKET"),
        )

    @property
    def work_root_path(self) -> Path:
        return Path(self.work_root).resolve()
