from __future__ import annotations

import os
import re
import shutil
from pathlib import Path
from typing import Callable, Optional

from autodeploy.exceptions import AcquisitionError
from autodeploy.proc import CommandResult, run_streaming

MAX_FILES = 50_000
MAX_TOTAL_BYTES = 200 * 1024 * 1024  # 200 MB

# prebuilt site folders (build, dist) are kept
COPY_IGNORE_DIRS = {".git", "node_modules", ".venv", "venv", "__pycache__", ".mypy_cache", ".next"}

SYMREF_RE = re.compile(r"^ref:\s+refs/heads/(\S+)\s+HEAD", re.MULTILINE)


def _safe_copy_tree(src: Path, dst: Path) -> None:
    dst.mkdir(parents=True, exist_ok=True)
    total_files = 0
    total_bytes = 0

    for root, dirs, files in os.walk(src):
        dirs[:] = [d for d in dirs if d not in COPY_IGNORE_DIRS]

        rel = Path(root).relative_to(src)
        (dst / rel).mkdir(parents=True, exist_ok=True)

        for f in files:
            sp = Path(root) / f
            size = sp.stat().st_size
            total_files += 1
            total_bytes += size
            if total_files > MAX_FILES or total_bytes > MAX_TOTAL_BYTES:
                raise AcquisitionError(f"Repository at {src} exceeds copy limits")
            shutil.copy2(sp, dst / rel / f)


def is_local_source(repo: str) -> bool:
    return "://" not in repo and not repo.startswith("git@") and Path(repo).expanduser().exists()


class GitClient:
    """
    Shallow clones and remote default-branch lookup.

    Local directories are copied instead of cloned (build outputs and VCS metadata skipped).
    """

    def __init__(self, executor: Callable[..., CommandResult] = run_streaming, binary: str = "git"):
        self.executor = executor
        self.binary = binary

    def clone(self, repo: str, dest: str, branch: Optional[str] = None,
              on_line: Optional[Callable[[str], None]] = None) -> None:
        """
        Shallow-clone repo into dest, on `branch` or the remote default HEAD.

        Raises:
            AcquisitionError: If the clone or copy fails
        """
        if is_local_source(repo):
            try:
                _safe_copy_tree(Path(repo).expanduser().resolve(), Path(dest))
            except OSError as e:
                raise AcquisitionError(f"Failed to copy {repo}: {e}") from e
            return

        command = [self.binary, "clone", "--depth", "1"]
        if branch:
            command += ["--branch", branch]
        command += [repo, dest]
        result = self.executor(command, on_line=on_line)
        if not result.ok:
            lines = [line for line in result.output.splitlines() if line.strip()]
            reason = lines[-1] if lines else f"exit code {result.returncode}"
            raise AcquisitionError(f"git clone failed: {reason}")

    def default_branch(self, repo: str) -> Optional[str]:
        """Branch the remote HEAD points at, or None if it cannot be determined."""
        if is_local_source(repo):
            return None
        result = self.executor([self.binary, "ls-remote", "--symref", repo, "HEAD"])
        if not result.ok:
            return None
        match = SYMREF_RE.search(result.output)
        return match.group(1) if match else None
