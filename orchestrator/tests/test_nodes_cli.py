import json
import logging

import pytest
from fastapi.testclient import TestClient
from typer.testing import CliRunner

from connectors.mock_vcloud_connector import MockVCloudSession
from mock_vcloud.cli import seed_inventory
from mock_vcloud.daemon import app as daemon_app
from mock_vcloud.daemon import store
from orchestrator import cli
from orchestrator.cli import name_predicate
from orchestrator.models import ComputeMetadata

runner = CliRunner()


@pytest.fixture(autouse=True)
def logging_setups(monkeypatch):
    """Keep invocations from reconfiguring the root logger of the test run."""
    calls = []
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: calls.append(kwargs))
    return calls


@pytest.fixture
def api(monkeypatch):
    store.clear()
    requested = []
    with TestClient(daemon_app) as client:
        seed_inventory(client)

        def fake_get_session(hypervisor_type, host_URL, user, password, timeout=10.0):
            requested.append((hypervisor_type, host_URL, user))
            return MockVCloudSession(host_URL, user, password, client=client)

        monkeypatch.setattr(cli, "get_session", fake_get_session)
        yield requested
    store.clear()


@pytest.fixture
def base_args(tmp_path):
    return ["--endpoint", "http://testserver", "--user", "admin", "--log-file", str(tmp_path / "log.txt")]


def test_help():
    result = runner.invoke(cli.app, ["--help"])
    assert result.exit_code == 0
    assert "list" in result.output and "details" in result.output


def test_list_json(api, base_args):
    result = runner.invoke(cli.app, base_args + ["list", "--json"])
    assert result.exit_code == 0, result.output
    nodes = json.loads(result.output)
    assert [n["name"] for n in nodes] == ["build", "web1", "web2"]
    assert all(n["id"] == n["provider_id"] for n in nodes)
    assert api == [("mock_vcloud", "http://testserver", "admin")]


def test_list_respects_blacklist_option(api, base_args):
    result = runner.invoke(cli.app, base_args + ["--blacklist", "web1,build", "list", "--json"])
    assert result.exit_code == 0, result.output
    assert [n["name"] for n in json.loads(result.output)] == ["web2"]


def test_list_respects_config_file(api, base_args, tmp_path):
    config = tmp_path / "vcloud.yaml"
    config.write_text("blacklist-nodes: web2\n")
    result = runner.invoke(cli.app, base_args + ["--config", str(config), "list", "--json"])
    assert result.exit_code == 0, result.output
    assert [n["name"] for n in json.loads(result.output)] == ["build", "web1"]


def test_list_table(api, base_args):
    result = runner.invoke(cli.app, base_args + ["list"])
    assert result.exit_code == 0, result.output
    assert "web1" in result.output
    assert "3 node(s)" in result.output


def test_details_by_name(api, base_args):
    result = runner.invoke(cli.app, base_args + ["details", "--name", "build", "--json"])
    assert result.exit_code == 0, result.output
    nodes = json.loads(result.output)
    assert [n["name"] for n in nodes] == ["build"]
    assert nodes[0]["state"] == "SUSPENDED"
    assert nodes[0]["location"]["description"] == "acme-dev"


def test_details_by_pattern(api, base_args):
    result = runner.invoke(cli.app, base_args + ["details", "--pattern", "^web", "--json"])
    assert result.exit_code == 0, result.output
    assert [n["name"] for n in json.loads(result.output)] == ["web1", "web2"]


def test_details_invalid_pattern(api, base_args):
    result = runner.invoke(cli.app, base_args + ["details", "--pattern", "(", "--json"])
    assert result.exit_code == 2


def test_unreachable_endpoint(base_args, monkeypatch):
    def refuse(*args, **kwargs):
        raise ConnectionError("Cannot connect to vCloud at http://testserver")

    monkeypatch.setattr(cli, "get_session", refuse)
    result = runner.invoke(cli.app, base_args + ["list"])
    assert result.exit_code == 1
    assert "Listing nodes failed" in result.output


def summary(name):
    return ComputeMetadata(provider_id=f"h/{name}", id=f"h/{name}", name=name)


def test_name_predicate():
    assert name_predicate([], None)(summary("anything"))
    by_name = name_predicate(["web1"], None)
    assert by_name(summary("web1")) and not by_name(summary("web10"))
    by_pattern = name_predicate([], r"\d$")
    assert by_pattern(summary("web1")) and not by_pattern(summary("build"))
    both = name_predicate(["build"], "^web")
    assert both(summary("build")) and both(summary("web2")) and not both(summary("db"))


@pytest.mark.parametrize("command", [["list"], ["details", "--json"]])
def test_unsupported_hypervisor_type_is_reported(base_args, tmp_path, command):
    config = tmp_path / "vcloud.yaml"
    config.write_text("hypervisor-type: vsphere\n")
    result = runner.invoke(cli.app, base_args + ["--config", str(config)] + command)
    assert result.exit_code == 1
    assert "Unsupported hypervisor type: vsphere" in result.output
    assert not isinstance(result.exception, ValueError)


def test_blank_blacklist_in_config_file(api, base_args, tmp_path):
    config = tmp_path / "vcloud.yaml"
    config.write_text("blacklist-nodes:\n")
    result = runner.invoke(cli.app, base_args + ["--config", str(config), "list", "--json"])
    assert result.exit_code == 0, result.output
    assert [n["name"] for n in json.loads(result.output)] == ["build", "web1", "web2"]


def test_sessions_are_closed_after_each_command(api, base_args, monkeypatch):
    closed = []
    monkeypatch.setattr(cli, "close_sessions", lambda: closed.append(True))
    assert runner.invoke(cli.app, base_args + ["list", "--json"]).exit_code == 0
    assert runner.invoke(cli.app, base_args + ["details", "--name", "web1", "--json"]).exit_code == 0
    assert closed == [True, True]


def test_verbose_logs_to_the_given_file(api, base_args, tmp_path, logging_setups):
    assert runner.invoke(cli.app, base_args + ["-v", "list", "--json"]).exit_code == 0
    assert logging_setups == [{"app_name": "vcloud_nodes", "loglevel": logging.DEBUG, "logfile": str(tmp_path / "log.txt")}]
