"""
Run log entries and the sinks they are delivered to.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from .types import LOG_LEVELS, RunLog

logger = logging.getLogger(__name__)

LOG_FILE = "logs.ndjson"

_STDLIB_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class LogSink(ABC):
    """Append-only destination for run log entries."""

    @abstractmethod
    def append(self, entry: RunLog) -> None:
        ...


class CallbackSink(LogSink):
    def __init__(self, callback: Callable[[RunLog], None]):
        self.callback = callback

    def append(self, entry: RunLog) -> None:
        self.callback(entry)


class NdjsonFileSink(LogSink):
    """Appends each entry as one JSON line to `<run dir>/logs.ndjson`."""

    def __init__(self, run_dir):
        self.path = Path(run_dir) / LOG_FILE

    def append(self, entry: RunLog) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a") as f:
            f.write(json.dumps(entry.to_dict()) + "\n")
            f.flush()


class StoreSink(LogSink):
    """Forwards entries to the run store record of the entry's run."""

    def __init__(self, store):
        self.store = store

    def append(self, entry: RunLog) -> None:
        self.store.append_log(entry.run_id, entry)


class RunLogger:
    """
    Builds RunLog entries for one run and delivers them to every sink.

    Entries are kept in order in `entries` and mirrored to the stdlib logger. Sinks are called
    synchronously; a sink that raises is reported at warning level and the run continues.
    """

    def __init__(self, run_id: str, sinks: Optional[Iterable[LogSink]] = None):
        self.run_id = run_id
        self.sinks: List[LogSink] = list(sinks or [])
        self.entries: List[RunLog] = []

    def log(self, step: str, level: str, message: str, meta: Optional[Dict[str, Any]] = None) -> RunLog:
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {level}")

        entry = RunLog(
            time=datetime.now(timezone.utc).isoformat(),
            run_id=self.run_id,
            step=step,
            level=level,
            message=message,
            meta=meta,
        )
        self.entries.append(entry)
        logger.log(_STDLIB_LEVELS[level], "[%s] %s: %s", self.run_id, step, message)

        for sink in self.sinks:
            try:
                sink.append(entry)
            except Exception as e:
                logger.warning("Log sink %s failed: %s", type(sink).__name__, e)
        return entry

    def debug(self, step: str, message: str, meta: Optional[Dict[str, Any]] = None) -> RunLog:
        return self.log(step, "debug", message, meta)

    def info(self, step: str, message: str, meta: Optional[Dict[str, Any]] = None) -> RunLog:
        return self.log(step, "info", message, meta)

    def warn(self, step: str, message: str, meta: Optional[Dict[str, Any]] = None) -> RunLog:
        return self.log(step, "warn", message, meta)

    def error(self, step: str, message: str, meta: Optional[Dict[str, Any]] = None) -> RunLog:
        return self.log(step, "error", message, meta)

    def line_logger(self, step: str) -> Callable[[str], None]:
        """Callback that records raw tool output lines under `step`."""
        def _line(line: str) -> None:
            if line.strip():
                self.log(step, "debug", line)
        return _line


def read_events(path) -> List[Dict[str, Any]]:
    """
    Read an NDJSON run log.

    Args:
        path: A logs.ndjson file or the run directory containing it

    Returns:
        List of entry dicts; malformed lines are skipped
    """
    path = Path(path)
    if path.is_dir():
        path = path / LOG_FILE
    if not path.exists():
        return []

    events = []
    with open(path, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                continue
    return events
