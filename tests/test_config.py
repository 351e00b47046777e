import json

from imagecatalog.config import Config


def test_defaults_from_packaged_yaml(monkeypatch):
    for name in ("VCAP_SERVICES", "CATALOG_PREFIX", "PORT", "DOMAIN", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    config = Config()

    assert config.prefix == "imagecatalog"
    assert config.default_count == 20
    assert config.max_count == 1000
    assert config.discovery_ttl == 86400
    assert config.redis_options == {"host": "127.0.0.1", "port": 6379, "db": 0}
    assert config.pz_gateway is None


def test_vcap_services_supply_redis_credentials(monkeypatch):
    vcap = {"p-redis": [{"credentials": {"host": "redis.internal", "port": "6380", "password": "s3cret"}}]}
    monkeypatch.setenv("VCAP_SERVICES", json.dumps(vcap))

    options = Config().redis_options

    assert options["host"] == "redis.internal"
    assert options["port"] == 6380
    assert options["password"] == "s3cret"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("CATALOG_PREFIX", "catalog-test")
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("DOMAIN", "geointservices.test")

    config = Config()

    assert config.prefix == "catalog-test"
    assert config.server_port == 9090
    assert config.pz_gateway == "https://pz-gateway.geointservices.test"


def test_custom_config_file(tmp_path, monkeypatch):
    for name in ("VCAP_SERVICES", "CATALOG_PREFIX", "PORT", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        "catalog: {prefix: other}\n"
        "redis: {host: localhost, port: 6379, db: 2}\n"
        "server: {host: 127.0.0.1, port: 8000}\n"
        "logging: {level: DEBUG}\n"
    )

    config = Config(path)

    assert config.prefix == "other"
    assert config.redis_options["db"] == 2
