"""Tests for kra_connect/cli.py"""

import json
import textwrap

import pytest
from click.testing import CliRunner

from kra_connect import __version__
from kra_connect.cli import cli

BASE = "https://kra.example.com/gavaconnect"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("KRA_API_KEY", raising=False)
    monkeypatch.delenv("KRA_BASE_URL", raising=False)


@pytest.fixture
def config_file(tmp_path) -> str:
    p = tmp_path / "kra-config.yaml"
    p.write_text(textwrap.dedent(f"""\
        api:
          key: "test-api-key-123"
          base_url: "{BASE}"
        client:
          max_retries: 0
        """), encoding="utf-8")
    return str(p)


def _run(config_file: str, *args: str):
    return CliRunner().invoke(cli, ["--config", config_file, *args])


# ---------------------------------------------------------------------------
# init / stats / --version
# ---------------------------------------------------------------------------

def test_init_writes_template(tmp_path):
    out = tmp_path / "kra-config.yaml"
    result = CliRunner().invoke(cli, ["init", "--output", str(out)])
    assert result.exit_code == 0
    assert "Template written" in result.output
    assert out.exists()


def test_init_refuses_to_overwrite(tmp_path):
    out = tmp_path / "kra-config.yaml"
    out.write_text("api: {}\n")
    result = CliRunner().invoke(cli, ["init", "--output", str(out)])
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_stats(config_file):
    result = _run(config_file, "stats")
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["version"] == __version__
    assert data["config"]["base_url"] == BASE
    assert "test-api-key-123" not in result.output


def test_missing_config_file(tmp_path):
    result = _run(str(tmp_path / "missing.yaml"), "verify-pin", "P051234567A")
    assert result.exit_code == 1
    assert "Configuration error" in result.output


# ---------------------------------------------------------------------------
# verify-pin / verify-tcc / validate-eslip
# ---------------------------------------------------------------------------

def test_verify_pin(config_file, requests_mock):
    requests_mock.get(f"{BASE}/verify-pin", json={
        "pin_number": "P051234567A", "is_valid": True, "status": "active",
    })
    result = _run(config_file, "verify-pin", "P051234567A")
    assert result.exit_code == 0
    report = json.loads(result.output)
    assert report["report_type"] == "pin_verification"
    assert report["summary"]["active"] == 1


def test_verify_pin_batch(config_file, requests_mock):
    adapter = requests_mock.post(f"{BASE}/verify-pin-batch", json={"results": [
        {"pin_number": "P051234567A", "is_valid": True},
        {"pin_number": "P059876543B", "is_valid": False},
    ]})
    result = _run(config_file, "verify-pin", "P051234567A", "P059876543B")
    assert result.exit_code == 0
    assert adapter.call_count == 1
    assert json.loads(result.output)["summary"]["invalid"] == 1


def test_verify_pin_requires_argument(config_file):
    result = _run(config_file, "verify-pin")
    assert result.exit_code != 0


def test_verify_pin_invalid_input(config_file):
    result = _run(config_file, "verify-pin", "INVALID")
    assert result.exit_code == 1
    assert "Invalid input" in result.output


def test_verify_pin_authentication_error(config_file, requests_mock):
    requests_mock.get(f"{BASE}/verify-pin", status_code=401, json={"message": "Invalid API key"})
    result = _run(config_file, "verify-pin", "P051234567A")
    assert result.exit_code == 1
    assert "Authentication error" in result.output


def test_verify_pin_server_error(config_file, requests_mock):
    requests_mock.get(f"{BASE}/verify-pin", status_code=500, json={"message": "down"})
    result = _run(config_file, "verify-pin", "P051234567A")
    assert result.exit_code == 1
    assert "KRA API error" in result.output


def test_verify_pin_empty_response(config_file, requests_mock):
    requests_mock.get(f"{BASE}/verify-pin", text="")
    result = _run(config_file, "verify-pin", "P051234567A")
    assert result.exit_code == 1
    assert "KRA API error" in result.output
    assert "Unexpected response shape" in result.output


def test_verify_tcc(config_file, requests_mock):
    requests_mock.get(f"{BASE}/verify-tcc", json={"tcc_number": "TCC123456", "is_valid": True})
    result = _run(config_file, "verify-tcc", "TCC123456")
    assert result.exit_code == 0
    assert json.loads(result.output)["report_type"] == "tcc_verification"


def test_validate_eslip_to_file(config_file, requests_mock, tmp_path):
    requests_mock.get(f"{BASE}/validate-eslip", json={
        "eslip_number": "ABC1234567", "is_valid": True, "status": "paid",
    })
    out = tmp_path / "report.json"
    result = _run(config_file, "--output", str(out), "validate-eslip", "ABC1234567")
    assert result.exit_code == 0
    assert json.loads(out.read_text())["summary"]["paid"] == 1


# ---------------------------------------------------------------------------
# taxpayer / nil-return
# ---------------------------------------------------------------------------

def test_taxpayer(config_file, requests_mock):
    requests_mock.get(f"{BASE}/taxpayer-details", json={
        "pin_number": "P051234567A",
        "taxpayer_name": "Acme Ltd",
        "taxpayer_type": "company",
        "obligations": [],
    })
    result = _run(config_file, "--pretty", "taxpayer", "P051234567A")
    assert result.exit_code == 0
    report = json.loads(result.output)
    assert report["report_type"] == "compliance"
    assert report["taxpayer"]["name"] == "Acme Ltd"


def test_nil_return(config_file, requests_mock):
    adapter = requests_mock.post(f"{BASE}/file-nil-return", json={
        "pin_number": "P051234567A", "obligation_type": "VAT", "tax_period": "2024-01",
        "is_accepted": True, "status": "accepted", "reference_number": "NIL-001",
    })
    result = _run(
        config_file, "nil-return", "P051234567A",
        "--obligation", "VAT", "--period", "2024-01", "--reason", "No sales", "--yes",
    )
    assert result.exit_code == 0
    assert json.loads(result.output)["reference_number"] == "NIL-001"
    body = json.loads(adapter.last_request.body)
    assert body["declaration"] is True
    assert body["reason"] == "No sales"


def test_nil_return_without_declaration(config_file, requests_mock):
    adapter = requests_mock.post(f"{BASE}/file-nil-return", json={})
    result = _run(
        config_file, "nil-return", "P051234567A", "--obligation", "VAT", "--period", "2024-01",
    )
    assert result.exit_code == 1
    assert "declaration" in result.output
    assert adapter.call_count == 0
