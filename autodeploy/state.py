"""
In-memory run records and run directory layout.
"""

import copy
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .ids import is_valid_run_id
from .types import RunLog

RUN_STATUSES = ("pending", "running", "success", "failed")


@dataclass
class RunInfo:
    id: str
    status: str = "pending"
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    service_url: Optional[str] = None
    error: Optional[str] = None
    logs: List[RunLog] = field(default_factory=list)


class RunStore:
    """
    Run records keyed by run id.

    Each record is written only by its own run; readers get deep copies so a record being
    updated mid-read is never observed half-written.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._runs: Dict[str, RunInfo] = {}

    def create(self, run_id: str) -> RunInfo:
        with self._lock:
            if run_id in self._runs:
                raise ValueError(f"Run already exists: {run_id}")
            info = RunInfo(id=run_id)
            self._runs[run_id] = info
            return copy.deepcopy(info)

    def update(self, run_id: str, **changes) -> RunInfo:
        if "status" in changes and changes["status"] not in RUN_STATUSES:
            raise ValueError(f"Invalid run status: {changes['status']}")
        with self._lock:
            info = self._require(run_id)
            for key, value in changes.items():
                if not hasattr(info, key) or key in ("id", "logs"):
                    raise AttributeError(f"Cannot update run field: {key}")
                setattr(info, key, value)
            return copy.deepcopy(info)

    def append_log(self, run_id: str, entry: RunLog) -> None:
        with self._lock:
            self._require(run_id).logs.append(entry)

    def get(self, run_id: str) -> Optional[RunInfo]:
        with self._lock:
            info = self._runs.get(run_id)
            return copy.deepcopy(info) if info else None

    def get_logs(self, run_id: str, step: Optional[str] = None) -> Optional[List[RunLog]]:
        """Return a copy of the run's logs, optionally filtered by step; None for unknown runs."""
        with self._lock:
            info = self._runs.get(run_id)
            if info is None:
                return None
            logs = [entry for entry in info.logs if step is None or entry.step == step]
            return copy.deepcopy(logs)

    def list(self) -> List[RunInfo]:
        with self._lock:
            runs = sorted(self._runs.values(), key=lambda r: r.created_at, reverse=True)
            return copy.deepcopy(runs)

    def _require(self, run_id: str) -> RunInfo:
        info = self._runs.get(run_id)
        if info is None:
            raise KeyError(f"Unknown run: {run_id}")
        return info


def get_run_dir(run_id: str, work_root) -> Path:
    """
    Get the directory for a run.

    Raises:
        ValueError: If the run id is malformed
    """
    if not is_valid_run_id(run_id):
        raise ValueError(f"Invalid run ID: {run_id}")
    return Path(work_root) / run_id
