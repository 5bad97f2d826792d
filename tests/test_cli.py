from unittest.mock import MagicMock

from typer.testing import CliRunner

from kieapp_operator import cli
from kieapp_operator.cli import app
from kieapp_operator.errors import NotFoundError
from samples import kieapp_body


runner = CliRunner()


def test_top_level_commands_present() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "reconcile" in result.stdout
    assert "status" in result.stdout


def test_reconcile_options() -> None:
    result = runner.invoke(app, ["reconcile", "--help"])
    assert result.exit_code == 0
    for option in ("--environment-file", "--watch", "--settings"):
        assert option in result.stdout


def test_status_prints_conditions(monkeypatch) -> None:
    body = kieapp_body()
    body["status"] = {
        "conditions": [{"type": "Deployed", "status": "True", "lastTransitionTime": "2024-01-01T00:00:00Z"}],
        "consoleHost": "https://console.example.com",
        "deployments": {"ready": ["myapp-rhpamcentr"]},
    }
    api = MagicMock()
    api.get.return_value = body
    monkeypatch.setattr(cli, "_create_api", lambda settings: api)

    result = runner.invoke(app, ["status", "demo", "myapp"])

    assert result.exit_code == 0
    assert "Deployed" in result.stdout
    assert "https://console.example.com" in result.stdout
    assert "Deployments ready: 1" in result.stdout


def test_status_reports_missing_instance(monkeypatch) -> None:
    api = MagicMock()
    api.get.side_effect = NotFoundError("KieApp demo/absent not found", status=404)
    monkeypatch.setattr(cli, "_create_api", lambda settings: api)

    result = runner.invoke(app, ["status", "demo", "absent"])

    assert result.exit_code == 1
    assert "Unable to read KieApp" in result.stdout
