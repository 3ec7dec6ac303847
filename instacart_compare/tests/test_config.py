import pytest

from instacart_compare.config import OPTIONAL_KEYS, REQUIRED_KEYS, Config


@pytest.fixture
def env(monkeypatch):
    for k in REQUIRED_KEYS + OPTIONAL_KEYS:
        monkeypatch.delenv(k, raising=False)
    monkeypatch.setenv("INSTACART_POSTAL_CODE", "77077")
    monkeypatch.setenv("INSTACART_ZONE_ID", "982")
    monkeypatch.setenv("INSTACART_RETAILERS", "H-E-B, Kroger,,ALDI ")
    return monkeypatch


def test_load_required(env):
    cfg = Config.load_from_env(env_file=None)
    assert cfg.postal_code == "77077"
    assert cfg.zone_id == "982"
    assert cfg.retailers == ("H-E-B", "Kroger", "ALDI")
    assert cfg.cache_path == "data/cache.json"
    assert cfg.service_type == "delivery"
    assert cfg.cookie is None


def test_optional_values(env):
    env.setenv("INSTACART_BASE_URL", "https://example.test/")
    env.setenv("INSTACART_COOKIE", "sid=1")
    env.setenv("INSTACART_CACHE_PATH", "/tmp/c.json")
    cfg = Config.load_from_env(env_file=None)
    assert cfg.base_url == "https://example.test"
    assert cfg.cookie == "sid=1"
    assert cfg.cache_path == "/tmp/c.json"


def test_missing_key(env):
    env.delenv("INSTACART_ZONE_ID")
    with pytest.raises(RuntimeError, match="INSTACART_ZONE_ID"):
        Config.load_from_env(env_file=None)


def test_placeholder_value(env):
    env.setenv("INSTACART_POSTAL_CODE", "PLACEHOLDER")
    with pytest.raises(RuntimeError, match="placeholder"):
        Config.load_from_env(env_file=None)


def test_env_file(env, tmp_path):
    env.delenv("INSTACART_ZONE_ID")
    dotenv = tmp_path / ".env"
    dotenv.write_text("INSTACART_ZONE_ID=555\n")
    assert Config.load_from_env(env_file=dotenv).zone_id == "555"
