from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import pytest
import typer
from typer.testing import CliRunner

from cli.app import app
from cli.client import ApiClient
from cli.config import CLIConfig, load_config


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.sent: List[str] = []
        self.history_limits: List[int] = []
        self.latest: Optional[Dict[str, Any]] = {
            "channels": {"temperature": 21.5, "humidity": None},
            "fan_on": True,
            "motion": False,
            "timestamp": "2024-01-01T00:00:00Z",
        }
        self.closed = False

    def get_status(self) -> Dict[str, Any]:
        return {
            "device": {"active": True, "last_ping": "2024-01-01T00:00:05Z"},
            "states": {"led1": False, "led2": True, "led3": False},
        }

    def send_command(self, action: str) -> None:
        self.sent.append(action)

    def get_latest(self) -> Optional[Dict[str, Any]]:
        return self.latest

    def get_history(self, limit: int) -> List[Dict[str, Any]]:
        self.history_limits.append(limit)
        return [self.latest] if self.latest else []

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def stub(monkeypatch) -> StubClient:
    stub = StubClient(config=None)

    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return stub


def test_status_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["status"])

    assert result.exit_code == 0
    assert "status: active" in result.stdout
    assert "led2: on" in result.stdout
    assert "led1: off" in result.stdout
    assert stub.closed is True


def test_send_command(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["--base-url", "http://device-hub:9000/", "send", "led3_on"])

    assert result.exit_code == 0
    assert "Command queued. action=led3_on" in result.stdout
    assert stub.sent == ["led3_on"]
    assert stub.config.base_url == "http://device-hub:9000"


def test_latest_command_shows_missing_channels(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["latest"])

    assert result.exit_code == 0
    assert "temperature: 21.5" in result.stdout
    assert "humidity: n/a" in result.stdout


def test_latest_command_without_data(runner: CliRunner, stub: StubClient) -> None:
    stub.latest = None

    result = runner.invoke(app, ["latest"])

    assert result.exit_code == 0
    assert "No sensor data stored." in result.stdout


def test_history_command_passes_limit(runner: CliRunner, stub: StubClient) -> None:
    result = runner.invoke(app, ["history", "--limit", "5"])

    assert result.exit_code == 0
    assert stub.history_limits == [5]
    assert "temperature=21.5" in result.stdout


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://example.test/")
    monkeypatch.setenv("CLI_TIMEOUT", "-4")

    config = load_config()

    assert config == CLIConfig(base_url="http://example.test", timeout=10.0)


def test_api_client_reports_http_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"detail": "Missing action."})

    client = ApiClient(CLIConfig(base_url="http://testserver"))
    client.close()
    client._client = httpx.Client(
        base_url="http://testserver", transport=httpx.MockTransport(handler)
    )

    with pytest.raises(typer.Exit):
        client.send_command("")
    client.close()


def test_api_client_latest_returns_none_on_404() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/sensor-data/latest"
        return httpx.Response(404, json={"detail": "No sensor data found."})

    client = ApiClient(CLIConfig(base_url="http://testserver"))
    client.close()
    client._client = httpx.Client(
        base_url="http://testserver", transport=httpx.MockTransport(handler)
    )

    assert client.get_latest() is None
    client.close()
