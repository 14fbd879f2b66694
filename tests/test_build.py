import base64
from unittest.mock import MagicMock, patch

from autodeploy.build import BUILDPACKS, DOCKER, STATIC, build_application, select_backend
from autodeploy.build.base import BuildConfig
from autodeploy.build import docker, static
from autodeploy.build.registry import ecr_region, is_ecr
from autodeploy.proc import CommandResult
from autodeploy.types import Plan, RepoApp, Runtime

REGISTRY = "123456789012.dkr.ecr.us-east-2.amazonaws.com/shop"


def make_app(framework="flask", language="python", dockerfile=False, start_cmd="gunicorn app:app", **kwargs):
    return RepoApp(role="web", language=language, framework=framework, dockerfile=dockerfile,
                   build_cmd=kwargs.pop("build_cmd", None), start_cmd=start_cmd, **kwargs)


class FakeExecutor:
    def __init__(self, failures=()):
        self.failures = set(failures)
        self.calls = []

    def __call__(self, command, cwd=None, on_line=None, **kwargs):
        self.calls.append((command, kwargs))
        key = " ".join(command[:2])
        returncode = 1 if key in self.failures else 0
        output = f"{key} failed" if returncode else ""
        return CommandResult(command=command, returncode=returncode, output=output)


def make_config(repo_path, executor, **kwargs):
    return BuildConfig(repo_path=str(repo_path), image_name="shop:r-1", tag="r-1", executor=executor, **kwargs)


def test_backend_selection():
    assert select_backend(make_app(language="static", framework="static", start_cmd=None), True) == STATIC
    assert select_backend(make_app(framework="react-vite", language="javascript", start_cmd=None), True) == STATIC
    assert select_backend(make_app(framework="express", language="javascript", dockerfile=True), True) == DOCKER
    assert select_backend(make_app(framework="express", language="javascript"), True) == BUILDPACKS
    assert select_backend(make_app(), False) == DOCKER
    assert select_backend(make_app(framework="django"), False) is None


def test_unbuildable_app_fails(tmp_path):
    executor = FakeExecutor(failures={"pack version"})
    result = build_application(make_app(framework="django"), Plan(), make_config(tmp_path, executor))
    assert not result.success
    assert "pack CLI" in result.error


def test_docker_build_generates_flask_dockerfile(tmp_path):
    executor = FakeExecutor()
    result = docker.build(make_app(), make_config(tmp_path, executor))

    assert result.success
    assert result.image_uri == "shop:r-1"
    assert (tmp_path / "Dockerfile").read_text() == docker.FLASK_DOCKERFILE
    assert executor.calls[0][0] == ["docker", "build", "--platform=linux/amd64", "-t", "shop:r-1", "."]


def test_docker_build_failure(tmp_path):
    (tmp_path / "Dockerfile").write_text("FROM scratch\n")
    executor = FakeExecutor(failures={"docker build"})
    result = docker.build(make_app(dockerfile=True), make_config(tmp_path, executor))
    assert not result.success
    assert result.error == "Docker build failed: docker build failed"


def test_docker_push_to_ecr(tmp_path):
    executor = FakeExecutor()
    ecr = MagicMock()
    ecr.get_authorization_token.return_value = {
        "authorizationData": [{
            "authorizationToken": base64.b64encode(b"AWS:secret-token").decode(),
            "proxyEndpoint": "https://123456789012.dkr.ecr.us-east-2.amazonaws.com",
        }]
    }
    lines = []
    config = make_config(tmp_path, executor, registry_url=REGISTRY, on_line=lines.append)

    with patch("autodeploy.build.registry.boto3.client", return_value=ecr) as client:
        result = docker.build(make_app(), config)

    assert result.success, result.error
    assert result.image_uri == f"{REGISTRY}:r-1"
    client.assert_called_once_with("ecr", region_name="us-east-2")
    commands = [c[0][:2] for c in executor.calls]
    assert commands == [["docker", "build"], ["docker", "login"], ["docker", "tag"], ["docker", "push"]]
    login_kwargs = executor.calls[1][1]
    assert login_kwargs["input_text"] == "secret-token"
    assert not any("secret-token" in line for line in lines)


def test_ecr_helpers():
    assert is_ecr(REGISTRY)
    assert not is_ecr("ghcr.io/acme/shop")
    assert ecr_region(REGISTRY) == "us-east-2"


def test_static_site_upload(tmp_path):
    (tmp_path / "index.html").write_text("<html></html>")
    (tmp_path / "css").mkdir()
    (tmp_path / "css" / "site.css").write_text("body {}")
    s3 = MagicMock()
    lines = []
    app = make_app(language="static", framework="static", start_cmd=None)

    static.upload_directory(tmp_path, "docs-bucket", "us-east-2", lines.append, s3_client=s3)

    keys = sorted(call.args[2] for call in s3.upload_file.call_args_list)
    assert keys == ["css/site.css", "index.html"]
    assert static.output_dir(app, str(tmp_path)) == tmp_path


def test_static_js_build_runs_install_and_build(tmp_path):
    (tmp_path / "dist").mkdir()
    (tmp_path / "dist" / "index.html").write_text("<html></html>")
    executor = FakeExecutor()
    app = make_app(language="javascript", framework="react-vite", start_cmd=None, build_cmd="vite build",
                   package_manager="yarn")

    result = build_application(app, Plan(runtime=Runtime.STATIC_CDN), make_config(tmp_path, executor))

    assert result.success
    assert [c[0] for c in executor.calls] == [["yarn", "install"], ["npx", "vite", "build"]]
    assert result.static_url is None


def test_static_build_missing_output(tmp_path):
    executor = FakeExecutor()
    app = make_app(language="javascript", framework="create-react-app", start_cmd=None,
                   build_cmd="react-scripts build")
    result = static.build(app, make_config(tmp_path, executor))
    assert not result.success
    assert result.error.startswith("Build output directory not found")
