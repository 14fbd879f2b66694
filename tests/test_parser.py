from autodeploy.nlp import extract_with_hits, parse_description
from autodeploy.nlp.rules import DEFAULT_APP_NAME, DEFAULT_REGION


def test_defaults_for_bare_request():
    spec = parse_description("Deploy this please")
    assert spec.app_name == DEFAULT_APP_NAME
    assert spec.cloud == "aws"
    assert spec.region == DEFAULT_REGION
    assert spec.hints.cost == "standard"
    assert spec.hints.perf == "standard"
    assert [(s.name, s.type) for s in spec.services] == [("web", "http")]
    assert spec.data.db is None
    assert spec.domain is None


def test_flask_api_with_name_and_region():
    spec = parse_description("Deploy a Flask app called my_shop on AWS in us-west-2")
    assert spec.app_name == "my-shop"
    assert spec.region == "us-west-2"
    assert [(s.name, s.type) for s in spec.services] == [("api", "http")]


def test_region_alias():
    assert parse_description("host it in Oregon").region == "us-west-2"
    assert parse_description("deploy to northern virginia").region == "us-east-1"


def test_unsupported_region_falls_back():
    fields, hits = extract_with_hits("deploy to eu-central-1")
    assert fields["region"] == DEFAULT_REGION
    assert "region:unsupported:eu-central-1" in hits


def test_cost_and_perf_hints():
    spec = parse_description("a cheap but fast web app")
    assert spec.hints.cost == "low"
    assert spec.hints.perf == "high"
    assert parse_description("premium hosting").hints.cost == "high"
    assert parse_description("basic setup").hints.perf == "low"


def test_databases():
    assert parse_description("flask app with mysql").data.db == "mysql"
    assert parse_description("api backed by a postgres database").data.db == "postgres"
    assert parse_description("needs a database").data.db == "postgres"
    assert parse_description("api with no database").data.db is None


def test_cache():
    assert parse_description("api with redis caching").data.cache == "redis"


def test_background_services():
    spec = parse_description("api with background workers and a cron job")
    types = {s.name: s.type for s in spec.services}
    assert types == {"api": "http", "worker": "worker", "scheduler": "cron"}


def test_domain():
    assert parse_description("serve the website at shop.example.com").domain == "shop.example.com"
    assert parse_description("use custom domain of demo.io").domain == "demo.io"


def test_other_clouds_are_reported():
    assert parse_description("deploy on azure").cloud == "azure"
    assert parse_description("deploy on google cloud").cloud == "gcp"


def test_hits_name_fired_rules():
    _, hits = extract_with_hits("cheap flask app called shop in ohio")
    assert "app_name:shop" in hits
    assert "cost:low" in hits
    assert "region:alias:ohio->us-east-2" in hits
