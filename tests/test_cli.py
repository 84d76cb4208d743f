"""
CLI commands, driven through click's CliRunner against the fake server.
"""

import json

import httpx
import pytest
from click.testing import CliRunner

from mlflowkit.cli.main import cli
from mlflowkit.client import Client
from mlflowkit.core.errors import ExitCode


@pytest.fixture
def invoke(http_client):
    runner = CliRunner()

    def factory(config):
        return Client(config.tracking_uri, http_client)

    def _invoke(*args):
        return runner.invoke(cli, ["experiment", *args], obj=factory)

    return _invoke


def _last_json(output: str):
    return json.loads(output.strip().splitlines()[-1])


def test_create_and_get(invoke, server):
    result = invoke("--json", "create", "cli-exp", "--tag", "owner=alice")
    assert result.exit_code == 0, result.output
    created = _last_json(result.output)
    assert created["name"] == "cli-exp"

    result = invoke("--json", "get", created["experiment_id"])
    assert result.exit_code == 0, result.output
    fetched = _last_json(result.output)
    assert fetched == created
    assert {"key": "owner", "value": "alice"} in fetched["tags"]


def test_namespace_option(invoke, server):
    result = invoke("--namespace", "team-a", "create", "scoped")
    assert result.exit_code == 0, result.output
    assert "scoped" in result.output
    assert [e["name"] for e in server.experiments.values()] == ["team-a/scoped"]


def test_get_by_name(invoke):
    invoke("create", "named")
    result = invoke("--json", "get", "--by-name", "named")
    assert result.exit_code == 0, result.output
    assert _last_json(result.output)["name"] == "named"


def test_list(invoke):
    invoke("create", "one")
    invoke("create", "two")

    result = invoke("--json", "list")
    assert result.exit_code == 0, result.output
    assert sorted(e["name"] for e in _last_json(result.output)) == ["one", "two"]


def test_update_rename(invoke, server):
    invoke("create", "old-name")
    experiment_id = next(iter(server.experiments))

    result = invoke("--json", "update", experiment_id, "--name", "new-name")
    assert result.exit_code == 0, result.output
    assert _last_json(result.output)["name"] == "new-name"


def test_delete_missing_exit_code(invoke):
    result = invoke("delete", "404404", "--yes")
    assert result.exit_code == int(ExitCode.PROTOCOL_ERROR)

    result = invoke("delete", "404404", "--yes", "--ignore-missing")
    assert result.exit_code == 0, result.output


def test_reserved_tag_is_rejected(invoke, server):
    result = invoke("create", "bad-tag", "--tag", "metadata.namespace=other")
    assert result.exit_code == int(ExitCode.VALIDATION_ERROR)
    assert server.requests == []


def test_config_file(tmp_path, http_client, server):
    config_path = tmp_path / "mlflowkit.yaml"
    config_path.write_text("version: 1\ntracking_uri: http://configured.test\nnamespace: from-file\n")

    seen = []

    def factory(config):
        seen.append(config)
        return Client(config.tracking_uri, http_client)

    result = CliRunner().invoke(
        cli, ["experiment", "--config", str(config_path), "create", "cfg"], obj=factory
    )
    assert result.exit_code == 0, result.output
    assert seen[0].namespace == "from-file"
    assert server.requests[0].url.host == "configured.test"


def test_transport_failure_exit_code():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    http = httpx.Client(transport=httpx.MockTransport(handler))

    result = CliRunner().invoke(
        cli,
        ["experiment", "get", "1"],
        obj=lambda config: Client(config.tracking_uri, http),
    )
    http.close()
    assert result.exit_code == int(ExitCode.TRANSPORT_ERROR)


def test_unexpected_error_is_wrapped_as_internal_error():
    def factory(config):
        raise RuntimeError("factory exploded")

    result = CliRunner().invoke(cli, ["experiment", "--json", "get", "1"], obj=factory)

    assert result.exit_code == int(ExitCode.INTERNAL_ERROR)
    error = _last_json(result.output)["error"]
    assert error["code"] == "E9001"
    assert "RuntimeError: factory exploded" in error["message"]


def test_bad_config_value_exits_with_config_error(tmp_path, http_client):
    config_path = tmp_path / "mlflowkit.yaml"
    config_path.write_text("version: 1\ntracking_uri: 123\n")

    result = CliRunner().invoke(
        cli,
        ["experiment", "--config", str(config_path), "get", "1"],
        obj=lambda config: Client(config.tracking_uri, http_client),
    )
    assert result.exit_code == int(ExitCode.CONFIG_ERROR)
