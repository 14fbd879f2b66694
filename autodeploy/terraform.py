"""
Terraform wrapper for one generated working directory.

Init -> Plan -> Apply, plus an independent Destroy. Plan and Apply get exactly one retry per
invocation when the output matches a recoverable signature from autodeploy.recovery.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from . import recovery
from .proc import CommandResult, run_streaming

logger = logging.getLogger(__name__)

PLAN_FILE = "tfplan"
TAIL_LINES = 40


@dataclass
class TerraformResult:
    success: bool
    outputs: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    logs: List[str] = field(default_factory=list)


def flatten_outputs(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Turn `terraform output -json` ({name: {"value": v, ...}}) into {name: v}."""
    flat = {}
    for name, entry in (raw or {}).items():
        if isinstance(entry, dict) and "value" in entry:
            flat[name] = entry["value"]
        else:
            flat[name] = entry
    return flat


def _failure_message(step: str, result: CommandResult) -> str:
    lines = [line for line in result.output.splitlines() if line.strip()]
    errors = [line.strip() for line in lines if line.strip().startswith("Error")]
    detail = errors[0] if errors else (lines[-1].strip() if lines else f"exit code {result.returncode}")
    return f"Terraform {step} failed: {detail}"


class TerraformRunner:
    """
    Runs terraform commands in a working directory and forwards every output line to `log`.

    Args:
        workdir: Directory holding the generated configuration
        log: Callback receiving each output line verbatim
        executor: Command runner, `run_streaming` by default
        binary: Terraform executable
    """

    def __init__(self, workdir: str, log: Optional[Callable[[str], None]] = None,
                 executor: Callable[..., CommandResult] = run_streaming, binary: str = "terraform"):
        self.workdir = Path(workdir)
        self.log = log
        self.executor = executor
        self.binary = binary
        self.logs: List[str] = []

    def _emit(self, line: str) -> None:
        self.logs.append(line)
        if self.log:
            self.log(line)

    def _exec(self, args: List[str]) -> CommandResult:
        command = [self.binary] + args
        self._emit(f"$ {' '.join(command)}")
        return self.executor(command, cwd=str(self.workdir), on_line=self._emit)

    def _result(self, step: str, result: CommandResult, outputs: Optional[Dict[str, Any]] = None) -> TerraformResult:
        if result.ok:
            return TerraformResult(success=True, outputs=outputs or {}, logs=list(self.logs))
        tail = result.output.splitlines()[-TAIL_LINES:]
        logger.error("terraform %s failed in %s:\n%s", step, self.workdir, "\n".join(tail))
        return TerraformResult(success=False, error=_failure_message(step, result), logs=list(self.logs))

    def init(self) -> TerraformResult:
        return self._result("init", self._exec(["init", "-input=false", "-no-color"]))

    def plan(self, vars_file: str, recover: bool = True) -> TerraformResult:
        """
        Write the execution plan to `tfplan`.

        On a state-lock conflict the identified lock is force-released and the plan retried
        once; the retry's result is returned as-is.
        """
        result = self._exec(["plan", "-input=false", "-no-color", f"-var-file={vars_file}", f"-out={PLAN_FILE}"])
        if result.ok or not recover:
            return self._result("plan", result)

        lock_id = recovery.extract_lock_id(result.output)
        if not lock_id:
            return self._result("plan", result)

        self._emit(recovery.STATE_LOCK_CONFLICT.hint)
        self.force_unlock(lock_id)
        return self.plan(vars_file, recover=False)

    def _apply_plan(self) -> CommandResult:
        return self._exec(["apply", "-auto-approve", "-input=false", "-no-color", PLAN_FILE])

    def apply(self, vars_file: str) -> TerraformResult:
        """
        Apply the saved plan (planning first if needed) and return the outputs.

        A failed apply is checked for the table-exists and state-lock signatures
        independently. If either matched, its recovery runs and plan+apply is retried once.
        """
        if not (self.workdir / PLAN_FILE).exists():
            planned = self.plan(vars_file)
            if not planned.success:
                return planned

        result = self._apply_plan()
        if result.ok:
            return self._result("apply", result, self.outputs())

        recovered = False
        if recovery.is_table_conflict(result.output):
            self._emit(recovery.TABLE_ALREADY_EXISTS.hint)
            address, resource_id = recovery.TABLE_IMPORT
            self.import_resource(address, resource_id, vars_file)
            recovered = True

        lock_id = recovery.extract_lock_id(result.output)
        if lock_id:
            self._emit(recovery.STATE_LOCK_CONFLICT.hint)
            self.force_unlock(lock_id)
            recovered = True

        if not recovered:
            return self._result("apply", result)

        planned = self.plan(vars_file, recover=False)
        if not planned.success:
            return planned
        retry = self._apply_plan()
        return self._result("apply", retry, self.outputs() if retry.ok else None)

    def destroy(self, vars_file: str) -> TerraformResult:
        result = self._exec(["destroy", "-auto-approve", "-input=false", "-no-color", f"-var-file={vars_file}"])
        return self._result("destroy", result)

    def outputs(self) -> Dict[str, Any]:
        """
        Read all declared outputs as a flat key->value map.

        Returns an empty dict if the command fails or prints invalid JSON.
        """
        command = [self.binary, "output", "-json"]
        lines: List[str] = []
        result = self.executor(command, cwd=str(self.workdir), on_line=lines.append)
        if not result.ok:
            self._emit(f"Failed to read terraform outputs: {result.output.strip()}")
            return {}
        try:
            return flatten_outputs(json.loads(result.output or "{}"))
        except json.JSONDecodeError as e:
            self._emit(f"Failed to parse terraform outputs: {e}")
            return {}

    def force_unlock(self, lock_id: str) -> bool:
        return self._exec(["force-unlock", "-force", lock_id]).ok

    def import_resource(self, address: str, resource_id: str, vars_file: str) -> bool:
        result = self._exec(["import", "-input=false", "-no-color", f"-var-file={vars_file}", address, resource_id])
        return result.ok


def run_terraform(workdir: str, vars_file: str, log: Optional[Callable[[str], None]] = None,
                  **runner_kwargs) -> TerraformResult:
    """
    Run init then apply in a working directory.

    Args:
        workdir: Generated configuration directory
        vars_file: Variables file passed to plan/import
        log: Line callback

    Returns:
        TerraformResult from init (on failure) or apply
    """
    runner = TerraformRunner(workdir, log=log, **runner_kwargs)
    initialized = runner.init()
    if not initialized.success:
        return initialized
    return runner.apply(vars_file)
