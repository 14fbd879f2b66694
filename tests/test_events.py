import json
import logging

import pytest

from autodeploy.events import CallbackSink, NdjsonFileSink, RunLogger, StoreSink, read_events
from autodeploy.state import RunStore

RUN_ID = "r-20240101-120000-abcd"


def test_entries_are_written_as_ndjson(tmp_path):
    run_logger = RunLogger(RUN_ID, [NdjsonFileSink(tmp_path)])
    run_logger.info("parse", "Parsing deployment description")
    run_logger.warn("clone", "Clone with main failed", {"branch": "main"})

    lines = (tmp_path / "logs.ndjson").read_text().splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["run_id"] == RUN_ID
    assert first["step"] == "parse"
    assert first["level"] == "info"
    assert "meta" not in first
    assert json.loads(lines[1])["meta"] == {"branch": "main"}


def test_invalid_level_is_rejected():
    with pytest.raises(ValueError):
        RunLogger(RUN_ID).log("parse", "fatal", "boom")


def test_failing_sink_is_reported_and_skipped(caplog):
    received = []

    def broken(entry):
        raise OSError("disk full")

    run_logger = RunLogger(RUN_ID, [CallbackSink(broken), CallbackSink(received.append)])
    with caplog.at_level(logging.WARNING, logger="autodeploy.events"):
        run_logger.info("build", "Building")

    assert len(received) == 1
    assert len(run_logger.entries) == 1
    assert "Log sink CallbackSink failed" in caplog.text


def test_store_sink():
    store = RunStore()
    store.create(RUN_ID)
    RunLogger(RUN_ID, [StoreSink(store)]).error("deploy", "Terraform failed")
    logs = store.get_logs(RUN_ID)
    assert [(e.step, e.level) for e in logs] == [("deploy", "error")]


def test_line_logger_skips_blank_lines():
    run_logger = RunLogger(RUN_ID)
    line = run_logger.line_logger("terraform")
    line("Initializing the backend...")
    line("   ")
    assert [(e.step, e.level, e.message) for e in run_logger.entries] == [
        ("terraform", "debug", "Initializing the backend...")
    ]


def test_read_events_skips_malformed_lines(tmp_path):
    path = tmp_path / "logs.ndjson"
    path.write_text('{"step": "parse"}\nnot json\n\n{"step": "clone"}\n')
    assert [e["step"] for e in read_events(path)] == ["parse", "clone"]
    assert [e["step"] for e in read_events(tmp_path)] == ["parse", "clone"]


def test_read_events_missing_file(tmp_path):
    assert read_events(tmp_path / "nope") == []
