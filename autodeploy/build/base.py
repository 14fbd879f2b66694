"""
Shared build types.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from autodeploy.proc import CommandResult, run_streaming


@dataclass
class BuildConfig:
    repo_path: str               # directory of the app being built
    image_name: str
    registry_url: Optional[str] = None
    tag: str = "latest"
    s3_bucket: Optional[str] = None
    region: str = "us-east-2"
    on_line: Optional[Callable[[str], None]] = None
    executor: Callable[..., CommandResult] = run_streaming


@dataclass
class BuildResult:
    success: bool
    image_uri: Optional[str] = None
    static_url: Optional[str] = None
    error: Optional[str] = None
    logs: List[str] = field(default_factory=list)


class BuildLog:
    """Collects builder messages and tool output, forwarding each line to config.on_line."""

    def __init__(self, config: BuildConfig):
        self.config = config
        self.lines: List[str] = []

    def __call__(self, line: str) -> None:
        self.lines.append(line)
        if self.config.on_line:
            self.config.on_line(line)

    def run(self, command: List[str], cwd: Optional[str] = None, input_text: Optional[str] = None) -> CommandResult:
        self(f"$ {' '.join(command)}")
        if input_text is None:
            return self.config.executor(command, cwd=cwd, on_line=self)
        return self.config.executor(command, cwd=cwd, on_line=self, input_text=input_text)

    def fail(self, message: str) -> BuildResult:
        self(message)
        return BuildResult(success=False, error=message, logs=list(self.lines))


def last_line(result: CommandResult) -> str:
    lines = [line.strip() for line in result.output.splitlines() if line.strip()]
    return lines[-1] if lines else f"exit code {result.returncode}"
