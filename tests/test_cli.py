"""Tests for the delegate-client CLI commands."""

from __future__ import annotations

import allure
import httpx
import pytest
from click.testing import CliRunner

from delegate_client import __version__
from delegate_client.client import DelegateClient
from delegate_client.main import delegate_client

pytestmark = [
    allure.epic("Manager Protocol"),
    allure.feature("CLI"),
]


@pytest.fixture()
def manager_env(monkeypatch):
    monkeypatch.setenv("DELEGATE_MANAGER_ENDPOINT", "https://manager.test")
    monkeypatch.setenv("DELEGATE_ACCOUNT_ID", "acct-1")
    monkeypatch.setenv("DELEGATE_TOKEN", "secret")
    monkeypatch.setenv("DELEGATE_SKIP_VERIFY", "false")


def _route_manager(monkeypatch, handler) -> list[httpx.Request]:
    seen: list[httpx.Request] = []

    def _recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    original = DelegateClient.from_settings.__func__

    def _from_settings(cls, settings, **kwargs):
        kwargs["http_client"] = httpx.Client(transport=httpx.MockTransport(_recording))
        return original(cls, settings, **kwargs)

    monkeypatch.setattr(DelegateClient, "from_settings", classmethod(_from_settings))
    return seen


def test_version():
    assert __version__


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(delegate_client, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_missing_configuration_is_reported(monkeypatch) -> None:
    monkeypatch.delenv("DELEGATE_MANAGER_ENDPOINT", raising=False)

    result = CliRunner().invoke(delegate_client, ["task-events", "del-1"])

    assert result.exit_code == 1
    assert "DELEGATE_MANAGER_ENDPOINT" in result.output


def test_task_events_lists_pending_tasks(monkeypatch, manager_env) -> None:
    seen = _route_manager(
        monkeypatch,
        lambda request: httpx.Response(
            200,
            json={"delegateTaskEvents": [{"accountId": "acct-1", "delegateTaskId": "t-1"}]},
        ),
    )

    result = CliRunner().invoke(delegate_client, ["task-events", "del-1"])

    assert result.exit_code == 0, result.output
    assert "task_id=t-1" in result.output
    assert seen[0].headers["Authorization"] == "Delegate secret"


def test_register_prints_assigned_id(monkeypatch, manager_env) -> None:
    seen = _route_manager(monkeypatch, lambda request: httpx.Response(200, json={"id": "42"}))

    result = CliRunner().invoke(
        delegate_client,
        ["register", "--name", "runner-1", "--tag", "linux"],
    )

    assert result.exit_code == 0, result.output
    assert "delegate_id=42" in result.output
    assert b'"delegateName": "runner-1"' in seen[0].content


def test_manager_error_becomes_cli_error(monkeypatch, manager_env) -> None:
    _route_manager(monkeypatch, lambda request: httpx.Response(404, text="no such task"))

    result = CliRunner().invoke(delegate_client, ["acquire", "del-1", "t-404"])

    assert result.exit_code == 1
    assert "no such task" in result.output


def test_send_status_requires_json_data(monkeypatch, manager_env) -> None:
    seen = _route_manager(monkeypatch, lambda request: httpx.Response(204))

    result = CliRunner().invoke(
        delegate_client,
        ["send-status", "del-1", "t-1", "--data", "{not json"],
    )

    assert result.exit_code == 1
    assert "--data must be valid JSON" in result.output
    assert seen == []


def test_send_status_posts_result(monkeypatch, manager_env) -> None:
    seen = _route_manager(monkeypatch, lambda request: httpx.Response(204))

    result = CliRunner().invoke(
        delegate_client,
        ["send-status", "del-1", "t-1", "--data", '{"exitCode": 0}', "--type", "SHELL"],
    )

    assert result.exit_code == 0, result.output
    assert "Status sent for task t-1." in result.output
    assert seen[0].url.path == "/api/agent/v2/tasks/t-1/delegates/del-1"
