"""Tests for kra_connect/config.py"""

import textwrap
from pathlib import Path

import pytest

from kra_connect.config import (
    DEFAULT_BASE_URL,
    ConfigError,
    KraConfig,
    generate_template,
    load,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("KRA_API_KEY", raising=False)
    monkeypatch.delenv("KRA_BASE_URL", raising=False)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def write_config(tmp_path: Path, content: str) -> Path:
    p = tmp_path / "kra-config.yaml"
    p.write_text(textwrap.dedent(content), encoding="utf-8")
    return p


VALID_YAML = """\
    api:
      key: "kra_abc1234567"
      base_url: "https://sandbox.kra.example.com/gavaconnect"
    client:
      timeout: 10
      max_retries: 2
      retry_status_codes: [502, 503]
      headers:
        X-Request-Source: "tests"
    """


# ---------------------------------------------------------------------------
# KraConfig: defaults and validation
# ---------------------------------------------------------------------------

def test_defaults():
    config = KraConfig(api_key="kra_abc1234567")
    assert config.base_url == DEFAULT_BASE_URL
    assert config.timeout == 30.0
    assert config.cache_ttl == 3600.0
    assert config.max_cache_size == 100
    assert config.max_requests_per_second == 10
    assert config.max_retries == 3
    assert config.retry_status_codes == (408, 429, 500, 502, 503, 504)
    assert config.user_agent.startswith("kra-connect-python/")
    config.validate()


@pytest.mark.parametrize("overrides, message", [
    ({"api_key": ""}, "API key"),
    ({"base_url": ""}, "base URL cannot be empty"),
    ({"base_url": "ftp://kra.example.com"}, "http:// or https://"),
    ({"timeout": 0}, "timeout"),
    ({"max_retries": -1}, "negative"),
    ({"max_retries": 11}, "cannot exceed 10"),
    ({"max_requests_per_second": 0}, "max_requests_per_second"),
    ({"max_cache_size": -1}, "max_cache_size"),
    ({"cache_ttl": 0}, "cache_ttl"),
])
def test_validate_rejects_bad_values(overrides, message):
    config = KraConfig(api_key="kra_abc1234567").replace(**overrides)
    with pytest.raises(ConfigError, match=message):
        config.validate()


def test_validate_lists_every_error():
    config = KraConfig(api_key="", timeout=0)
    with pytest.raises(ConfigError) as exc_info:
        config.validate()
    assert "API key" in str(exc_info.value)
    assert "timeout" in str(exc_info.value)


def test_replace_returns_modified_copy():
    config = KraConfig(api_key="kra_abc1234567")
    faster = config.replace(timeout=5, max_retries=0)
    assert faster.timeout == 5
    assert faster.max_retries == 0
    assert config.timeout == 30.0


def test_repr_hides_api_key():
    assert "kra_abc1234567" not in repr(KraConfig(api_key="kra_abc1234567"))


# ---------------------------------------------------------------------------
# KraConfig: dict serialization
# ---------------------------------------------------------------------------

def test_from_dict_reads_wire_keys():
    config = KraConfig.from_dict({
        "api_key": "kra_abc1234567",
        "timeout_ms": 5000,
        "cache_ttl_seconds": 60,
        "retry_delay_ms": 250,
        "max_retry_delay_ms": 2000,
        "retry_status_codes": [503],
        "custom_headers": {"X-Test": "1"},
    })
    assert config.timeout == 5.0
    assert config.cache_ttl == 60
    assert config.retry_delay == 0.25
    assert config.max_retry_delay == 2.0
    assert config.retry_status_codes == (503,)
    assert config.custom_headers == {"X-Test": "1"}
    assert config.enable_cache is True


def test_to_dict_uses_wire_keys():
    data = KraConfig(api_key="kra_abc1234567", timeout=5).to_dict()
    assert data["timeout_ms"] == 5000
    assert data["cache_ttl_seconds"] == 3600
    assert data["retry_delay_ms"] == 1000
    assert data["retry_status_codes"] == [408, 429, 500, 502, 503, 504]
    assert "custom_headers" not in data


def test_summary_has_no_secret():
    summary = KraConfig(api_key="kra_abc1234567").summary()
    assert "api_key" not in summary
    assert summary["base_url"] == DEFAULT_BASE_URL


# ---------------------------------------------------------------------------
# load(): happy path
# ---------------------------------------------------------------------------

def test_load_valid_config(tmp_path):
    config = load(str(write_config(tmp_path, VALID_YAML)))
    assert config.api_key == "kra_abc1234567"
    assert config.base_url == "https://sandbox.kra.example.com/gavaconnect"
    assert config.timeout == 10
    assert config.max_retries == 2
    assert config.retry_status_codes == (502, 503)
    assert config.custom_headers == {"X-Request-Source": "tests"}


def test_load_minimal_config_uses_defaults(tmp_path):
    p = write_config(tmp_path, """\
        api:
          key: "kra_abc1234567"
        """)
    config = load(str(p))
    assert config.base_url == DEFAULT_BASE_URL
    assert config.max_retries == 3


# ---------------------------------------------------------------------------
# load(): errors
# ---------------------------------------------------------------------------

def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load(str(tmp_path / "no-such-file.yaml"))


def test_load_missing_key(tmp_path):
    p = write_config(tmp_path, """\
        api:
          base_url: "https://kra.example.com"
        """)
    with pytest.raises(ConfigError, match="KRA_API_KEY"):
        load(str(p))


def test_load_malformed_yaml(tmp_path):
    p = write_config(tmp_path, "api: [unclosed\n")
    with pytest.raises(ConfigError, match="Failed to parse"):
        load(str(p))


def test_load_rejects_non_mapping(tmp_path):
    p = write_config(tmp_path, "- just\n- a list\n")
    with pytest.raises(ConfigError, match="mapping"):
        load(str(p))


def test_load_rejects_unknown_client_option(tmp_path):
    p = write_config(tmp_path, """\
        api:
          key: "kra_abc1234567"
        client:
          timout: 10
        """)
    with pytest.raises(ConfigError, match="timout"):
        load(str(p))


def test_load_rejects_invalid_values(tmp_path):
    p = write_config(tmp_path, """\
        api:
          key: "kra_abc1234567"
        client:
          max_retries: 20
        """)
    with pytest.raises(ConfigError, match="max_retries"):
        load(str(p))


@pytest.mark.parametrize("option, value", [
    ("timeout", '"fast"'),
    ("max_retries", "2.5"),
    ("max_cache_size", "true"),
])
def test_load_rejects_wrongly_typed_values(tmp_path, option, value):
    p = write_config(tmp_path, f"""\
        api:
          key: "kra_abc1234567"
        client:
          {option}: {value}
        """)
    with pytest.raises(ConfigError, match=option):
        load(str(p))


def test_validate_reports_type_errors():
    config = KraConfig(api_key="kra_abc1234567", timeout="fast")
    with pytest.raises(ConfigError, match="timeout must be a number"):
        config.validate()
    assert "fast" in repr(config)


# ---------------------------------------------------------------------------
# load(): environment variable overrides
# ---------------------------------------------------------------------------

def test_env_api_key_overrides_config(tmp_path, monkeypatch):
    p = write_config(tmp_path, VALID_YAML)
    monkeypatch.setenv("KRA_API_KEY", "kra_override99")
    assert load(str(p)).api_key == "kra_override99"


def test_env_base_url_overrides_config(tmp_path, monkeypatch):
    p = write_config(tmp_path, VALID_YAML)
    monkeypatch.setenv("KRA_BASE_URL", "https://override.example.com")
    assert load(str(p)).base_url == "https://override.example.com"


def test_env_vars_can_supply_everything(tmp_path, monkeypatch):
    """An empty config file is valid when the key comes from the environment."""
    p = write_config(tmp_path, "")
    monkeypatch.setenv("KRA_API_KEY", "kra_from_env1")
    config = load(str(p))
    assert config.api_key == "kra_from_env1"
    assert config.base_url == DEFAULT_BASE_URL


# ---------------------------------------------------------------------------
# generate_template()
# ---------------------------------------------------------------------------

def test_generate_template_creates_loadable_file(tmp_path):
    out = tmp_path / "kra-config.yaml"
    generate_template(str(out))
    content = out.read_text()
    assert "api:" in content
    assert "client:" in content
    assert load(str(out)).max_requests_per_second == 10


def test_generate_template_refuses_to_overwrite(tmp_path):
    out = tmp_path / "kra-config.yaml"
    out.write_text("existing content")
    with pytest.raises(ConfigError, match="already exists"):
        generate_template(str(out))
