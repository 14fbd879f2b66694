"""
Subprocess helper that streams combined output line by line.
"""

import subprocess
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional


@dataclass
class CommandResult:
    command: List[str]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def run_streaming(command: List[str], cwd: Optional[str] = None,
                  on_line: Optional[Callable[[str], None]] = None,
                  input_text: Optional[str] = None,
                  env: Optional[Dict[str, str]] = None) -> CommandResult:
    """
    Run a command with stdout and stderr merged, forwarding each line as it arrives.

    Args:
        command: Command and arguments
        cwd: Working directory
        on_line: Called with every output line (without trailing newline)
        input_text: Text written to stdin before reading output
        env: Full environment for the child process

    Returns:
        CommandResult; a missing executable yields returncode 127 with the error as output
    """
    try:
        process = subprocess.Popen(
            command,
            cwd=cwd,
            stdin=subprocess.PIPE if input_text is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
            env=env,
        )
    except OSError as e:
        message = f"Failed to run {command[0]}: {e}"
        if on_line:
            on_line(message)
        return CommandResult(command=command, returncode=127, output=message)

    if input_text is not None:
        process.stdin.write(input_text)
        process.stdin.close()

    output_lines = []
    for line in process.stdout:
        line = line.rstrip("\n")
        output_lines.append(line)
        if on_line:
            on_line(line)

    process.wait()
    return CommandResult(command=command, returncode=process.returncode, output="\n".join(output_lines))
