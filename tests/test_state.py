import pytest

from autodeploy.state import RunStore, get_run_dir
from autodeploy.types import RunLog

RUN_ID = "r-20240101-120000-abcd"


def make_log(step="parse", message="hello"):
    return RunLog(time="2024-01-01T12:00:00+00:00", run_id=RUN_ID, step=step, level="info", message=message)


def test_create_and_get():
    store = RunStore()
    created = store.create(RUN_ID)
    assert created.status == "pending"
    assert store.get(RUN_ID).id == RUN_ID
    assert store.get("r-20240101-120000-zzzz") is None


def test_duplicate_create_is_rejected():
    store = RunStore()
    store.create(RUN_ID)
    with pytest.raises(ValueError):
        store.create(RUN_ID)


def test_update_status_and_url():
    store = RunStore()
    store.create(RUN_ID)
    store.update(RUN_ID, status="success", service_url="https://x.example.com")
    info = store.get(RUN_ID)
    assert info.status == "success"
    assert info.service_url == "https://x.example.com"


def test_update_rejects_bad_values():
    store = RunStore()
    store.create(RUN_ID)
    with pytest.raises(ValueError):
        store.update(RUN_ID, status="exploded")
    with pytest.raises(AttributeError):
        store.update(RUN_ID, logs=[])
    with pytest.raises(KeyError):
        store.update("r-20240101-120000-zzzz", status="running")


def test_logs_filtered_by_step():
    store = RunStore()
    store.create(RUN_ID)
    store.append_log(RUN_ID, make_log("parse"))
    store.append_log(RUN_ID, make_log("clone"))

    assert len(store.get_logs(RUN_ID)) == 2
    assert [e.step for e in store.get_logs(RUN_ID, "clone")] == ["clone"]
    assert store.get_logs("r-20240101-120000-zzzz") is None


def test_snapshots_are_copies():
    store = RunStore()
    store.create(RUN_ID)
    store.append_log(RUN_ID, make_log())
    snapshot = store.get(RUN_ID)
    snapshot.logs.clear()
    snapshot.status = "failed"
    assert store.get(RUN_ID).status == "pending"
    assert len(store.get_logs(RUN_ID)) == 1


def test_list_newest_first():
    store = RunStore()
    store.create("r-20240101-120000-aaaa")
    store.create("r-20240101-120001-bbbb")
    store.update("r-20240101-120000-aaaa", created_at="2024-01-01T12:00:00+00:00")
    store.update("r-20240101-120001-bbbb", created_at="2024-01-01T12:00:01+00:00")
    assert [r.id for r in store.list()] == ["r-20240101-120001-bbbb", "r-20240101-120000-aaaa"]


def test_run_dir(tmp_path):
    assert get_run_dir(RUN_ID, tmp_path) == tmp_path / RUN_ID
    with pytest.raises(ValueError):
        get_run_dir("../etc", tmp_path)
