import json

import pytest

from autodeploy.config import Settings
from autodeploy.exceptions import GenerationError
from autodeploy.iac import VARS_FILE, generate_iac, select_stacks
from autodeploy.iac import stacks as st
from autodeploy.iac.render import backend_settings, render_main_tf, render_outputs_tf
from autodeploy.types import DeploySpec, Plan, Runtime


def make_spec(**kwargs):
    kwargs.setdefault("app_name", "demo")
    return DeploySpec(**kwargs)


def make_settings(**kwargs):
    return Settings(**kwargs)


def test_static_plan_selects_only_static_site():
    assert select_stacks(Plan(runtime=Runtime.STATIC_CDN)) == [st.STATIC_SITE]


def test_managed_service_stacks():
    assert select_stacks(Plan(runtime=Runtime.MANAGED_SERVICE)) == [st.REGISTRY, st.MANAGED_SERVICE]


def test_cluster_with_front_and_db_stacks():
    plan = Plan(runtime=Runtime.CLUSTER, front=Runtime.STATIC_CDN, db="postgres")
    assert select_stacks(plan) == [
        st.REGISTRY, st.CLUSTER_SERVICE, st.ROUTER, st.STATIC_SITE, st.DATABASE, st.SAMPLE_TABLE,
    ]


def test_stack_selection_is_deterministic():
    plan = Plan(runtime=Runtime.CLUSTER, db="mysql")
    assert select_stacks(plan) == select_stacks(plan)


def test_generate_writes_configuration(tmp_path):
    workdir = tmp_path / "iac"
    config = generate_iac(make_spec(), Plan(runtime=Runtime.MANAGED_SERVICE), str(workdir),
                          settings=make_settings())

    assert config.stacks == [st.REGISTRY, st.MANAGED_SERVICE]
    for name in ("main.tf", "variables.tf", "backend.tf", "outputs.tf", "README_RUN.md", VARS_FILE):
        assert (workdir / name).exists(), name
    assert (workdir / "modules" / st.MANAGED_SERVICE / "main.tf").exists()

    values = json.loads((workdir / VARS_FILE).read_text())
    assert values["app_name"] == "demo"
    assert values["app_port"] == 8080
    assert values["env_vars"]["PORT"] == "8080"
    assert values["tags"]["ManagedBy"] == "autodeploy"
    assert config.tfvars.revision == 1


def test_generated_variables_cover_tfvars(tmp_path):
    plan = Plan(runtime=Runtime.CLUSTER, front=Runtime.STATIC_CDN, db="postgres")
    config = generate_iac(make_spec(), plan, str(tmp_path), settings=make_settings())
    variables_tf = (tmp_path / "variables.tf").read_text()
    for name in config.tfvars.values:
        assert f'variable "{name}"' in variables_tf


def test_static_plan_has_no_container_variables(tmp_path):
    config = generate_iac(make_spec(), Plan(runtime=Runtime.STATIC_CDN), str(tmp_path), settings=make_settings())
    assert config.stacks == [st.STATIC_SITE]
    assert "image_uri" not in config.tfvars
    assert 'output "cdn_url"' in (tmp_path / "outputs.tf").read_text()


def test_generation_is_deterministic(tmp_path):
    spec = make_spec()
    plan = Plan(runtime=Runtime.CLUSTER, db="postgres")
    generate_iac(spec, plan, str(tmp_path / "a"), settings=make_settings())
    generate_iac(spec, plan, str(tmp_path / "b"), settings=make_settings())
    for name in ("main.tf", "variables.tf", "backend.tf", "outputs.tf"):
        assert (tmp_path / "a" / name).read_text() == (tmp_path / "b" / name).read_text()


def test_missing_template_raises(tmp_path):
    workdir = tmp_path / "iac"
    with pytest.raises(GenerationError, match="Missing stack template"):
        generate_iac(make_spec(), Plan(), str(workdir), settings=make_settings(),
                     templates_root=tmp_path / "empty")
    assert not workdir.exists()


def test_backend_defaults_from_app_name():
    backend = backend_settings(make_spec(region="us-west-2"), make_settings())
    assert backend == {
        "bucket": "demo-terraform-state",
        "key": "demo/terraform.tfstate",
        "region": "us-west-2",
        "dynamodb_table": "demo-terraform-locks",
    }


def test_backend_uses_configured_state():
    settings = make_settings(state_bucket="shared-state", lock_table="locks", state_key="k/state")
    backend = backend_settings(make_spec(), settings)
    assert backend["bucket"] == "shared-state"
    assert backend["dynamodb_table"] == "locks"
    assert backend["key"] == "k/state"


def test_database_url_is_wired_into_service_env():
    main_tf = render_main_tf([st.REGISTRY, st.MANAGED_SERVICE, st.DATABASE])
    assert f"module.{st.DATABASE}.database_url" in main_tf


def test_outputs_only_for_selected_stacks():
    outputs = render_outputs_tf([st.REGISTRY, st.CLUSTER_SERVICE])
    assert 'output "alb_dns_name"' in outputs
    assert "service_url" not in outputs
