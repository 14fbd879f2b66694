from autodeploy.planner import create_plan, partition_apps, validate_plan
from autodeploy.planner.validate import MANAGED_MULTI_HTTP, STATIC_WITH_HTTP, UNNEEDED_DB
from autodeploy.types import DataNeeds, DeploySpec, Hints, Plan, RepoApp, RepoFacts, Runtime


def make_spec(cost="standard", perf="standard", db=None, domain=None):
    return DeploySpec(app_name="demo", hints=Hints(cost=cost, perf=perf), data=DataNeeds(db=db), domain=domain)


def http_app(path=".", framework="flask", needs_db=False, role="web"):
    return RepoApp(role=role, language="python", framework=framework, dockerfile=False, build_cmd=None,
                   start_cmd="gunicorn app:app", ports=[5000], needs_db=needs_db, path=path)


def static_app(path=".", framework="static"):
    language = "static" if framework == "static" else "javascript"
    return RepoApp(role="web", language=language, framework=framework, dockerfile=False,
                   build_cmd=None, start_cmd=None, path=path)


def worker_app(path="worker"):
    return RepoApp(role="worker", language="python", framework="celery", dockerfile=False, build_cmd=None,
                   start_cmd="celery worker", path=path)


def test_static_only_uses_cdn():
    for facts in (
        RepoFacts(apps=[static_app()]),
        RepoFacts(apps=[static_app(framework="react-vite")]),
        RepoFacts(apps=[static_app("a"), static_app("b", framework="create-react-app")], monorepo=True),
    ):
        assert create_plan(make_spec(), facts).runtime == Runtime.STATIC_CDN


def test_react_with_start_command_is_not_static():
    app = static_app(framework="react-vite")
    app.start_cmd = "vite preview"
    part = partition_apps(RepoFacts(apps=[app]))
    assert part.static == []
    assert part.http == [app]


def test_single_http_app_uses_managed_service():
    plan = create_plan(make_spec(), RepoFacts(apps=[http_app()]))
    assert plan.runtime == Runtime.MANAGED_SERVICE
    assert plan.front is None
    assert plan.db is None


def test_background_app_needs_cluster():
    facts = RepoFacts(apps=[http_app("api"), worker_app()], monorepo=True)
    assert create_plan(make_spec(), facts).runtime == Runtime.CLUSTER


def test_monorepo_static_and_http_gets_front_and_cluster():
    facts = RepoFacts(apps=[static_app("frontend", "react-vite"), http_app("backend")], monorepo=True)
    plan = create_plan(make_spec(), facts)
    assert plan.front == Runtime.STATIC_CDN
    assert plan.runtime == Runtime.CLUSTER


def test_low_cost_downgrades_single_http_cluster():
    # monorepo flag alone forces the cluster, cost=low brings it back
    facts = RepoFacts(apps=[http_app("api")], monorepo=True)
    assert create_plan(make_spec(), facts).runtime == Runtime.CLUSTER
    assert create_plan(make_spec(cost="low"), facts).runtime == Runtime.MANAGED_SERVICE


def test_low_cost_keeps_cluster_with_background_work():
    facts = RepoFacts(apps=[http_app("api"), worker_app()], monorepo=True)
    assert create_plan(make_spec(cost="low"), facts).runtime == Runtime.CLUSTER


def test_high_perf_with_database_upgrades_to_cluster():
    facts = RepoFacts(apps=[http_app(needs_db=True)])
    plan = create_plan(make_spec(perf="high"), facts)
    assert plan.runtime == Runtime.CLUSTER
    assert plan.db == "postgres"


def test_cost_is_applied_before_perf():
    facts = RepoFacts(apps=[http_app("api")], monorepo=True)
    plan = create_plan(make_spec(cost="low", perf="high"), facts)
    assert plan.runtime == Runtime.CLUSTER


def test_flask_app_needing_db_gets_postgres():
    plan = create_plan(make_spec(), RepoFacts(apps=[http_app(needs_db=True)]))
    assert plan.runtime == Runtime.MANAGED_SERVICE
    assert plan.db == "postgres"


def test_explicit_db_engine_is_kept():
    plan = create_plan(make_spec(db="mysql"), RepoFacts(apps=[http_app()]))
    assert plan.db == "mysql"


def test_domain_sets_host_and_https():
    plan = create_plan(make_spec(domain="example.com"), RepoFacts(apps=[http_app()]))
    assert plan.network.host == "example.com"
    assert plan.network.https is True


def test_no_apps_keeps_default_runtime():
    assert create_plan(make_spec(), RepoFacts()).runtime == Runtime.MANAGED_SERVICE


def test_valid_plan_has_no_violations():
    spec = make_spec()
    facts = RepoFacts(apps=[http_app()])
    assert validate_plan(create_plan(spec, facts), spec, facts) == []


def test_static_runtime_with_http_app_is_rejected():
    spec = make_spec()
    facts = RepoFacts(apps=[http_app()])
    violations = validate_plan(Plan(runtime=Runtime.STATIC_CDN), spec, facts)
    assert STATIC_WITH_HTTP in violations


def test_managed_service_with_two_http_apps_is_rejected():
    spec = make_spec()
    facts = RepoFacts(apps=[http_app("a"), http_app("b", framework="fastapi", role="api")], monorepo=True)
    violations = validate_plan(Plan(runtime=Runtime.MANAGED_SERVICE), spec, facts)
    assert violations == [MANAGED_MULTI_HTTP]


def test_unrequested_database_is_rejected():
    spec = make_spec()
    facts = RepoFacts(apps=[http_app()])
    violations = validate_plan(Plan(runtime=Runtime.MANAGED_SERVICE, db="postgres"), spec, facts)
    assert violations == [UNNEEDED_DB]


def test_violation_messages_are_distinct():
    assert len({STATIC_WITH_HTTP, MANAGED_MULTI_HTTP, UNNEEDED_DB}) == 3
