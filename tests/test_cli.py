import json

from click.testing import CliRunner

from autodeploy.cli import main
from autodeploy.types import RunLog

RUN_ID = "r-20240101-120000-abcd"


def write_log(run_dir, *entries):
    run_dir.mkdir(parents=True, exist_ok=True)
    with open(run_dir / "logs.ndjson", "w") as f:
        for step, message in entries:
            entry = RunLog(time="2024-01-01T12:00:00+00:00", run_id=RUN_ID, step=step, level="info",
                           message=message)
            f.write(json.dumps(entry.to_dict()) + "\n")


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "autodeploy" in result.output


def test_logs_command(tmp_path):
    write_log(tmp_path / RUN_ID, ("parse", "Parsing deployment description"), ("clone", "Cloning repository"))
    runner = CliRunner()

    result = runner.invoke(main, ["logs", RUN_ID], env={"WORK_ROOT": str(tmp_path)})
    assert result.exit_code == 0
    assert "[parse] INFO: Parsing deployment description" in result.output

    result = runner.invoke(main, ["logs", RUN_ID, "--step", "clone", "--json"], env={"WORK_ROOT": str(tmp_path)})
    assert result.exit_code == 0
    lines = [json.loads(line) for line in result.output.splitlines()]
    assert [e["step"] for e in lines] == ["clone"]


def test_logs_unknown_run(tmp_path):
    result = CliRunner().invoke(main, ["logs", RUN_ID], env={"WORK_ROOT": str(tmp_path)})
    assert result.exit_code == 1
    assert "not found" in result.output


def test_invalid_run_id():
    runner = CliRunner()
    for command in ("logs", "destroy"):
        result = runner.invoke(main, [command, "not-a-run"])
        assert result.exit_code == 1
        assert "Invalid run ID" in result.output


def test_destroy_without_config(tmp_path):
    result = CliRunner().invoke(main, ["destroy", RUN_ID], env={"WORK_ROOT": str(tmp_path)})
    assert result.exit_code == 1
    assert "No generated configuration" in result.output


def test_plan_local_flask_repo(tmp_path):
    (tmp_path / "requirements.txt").write_text("flask\npsycopg2-binary\n")
    (tmp_path / "app.py").write_text("from flask import Flask\napp = Flask(__name__)\n")

    result = CliRunner().invoke(main, ["plan", "cheap flask app called shop", "--repo", str(tmp_path), "--json"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["plan"]["runtime"] == "apprunner"
    assert data["plan"]["db"] == "postgres"
    assert data["stacks"] == ["ecr", "apprunner_service", "rds_database"]
    assert data["violations"] == []
    assert "cost:low" in data["rule_hits"]


def test_plan_text_output(tmp_path):
    (tmp_path / "index.html").write_text("<html></html>")
    result = CliRunner().invoke(main, ["plan", "static site", "--repo", str(tmp_path)])
    assert result.exit_code == 0
    assert "Runtime: s3_cloudfront" in result.output
    assert "Stacks: cloudfront_s3_static_site" in result.output


def test_deploy_rejects_bad_tag(tmp_path):
    result = CliRunner().invoke(main, ["deploy", "x", "--repo", str(tmp_path), "--tag", "broken"])
    assert result.exit_code == 1
    assert "Invalid tag" in result.output
