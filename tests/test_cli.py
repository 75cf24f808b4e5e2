"""Unit tests for CLI module."""

import argparse
from unittest.mock import MagicMock, patch

import pytest
import yaml
from kubernetes.client.rest import ApiException

from kubeinventory.classify import ProbeStatus
from kubeinventory.cli import (
    cmd_scan,
    display_inventory,
    display_warnings,
    main,
    resolve_settings,
)
from kubeinventory.errors import ConfigError, DiscoveryError, InventoryCancelled
from kubeinventory.inventory import InventoryResult
from kubeinventory.output import OutputManager, Verbosity, set_output
from kubeinventory.probe import ProbeOutcome
from tests.helpers import make_candidate


def scan_args(**overrides):
    values = {
        "kubeconfig": None,
        "context": None,
        "namespace": None,
        "workers": None,
        "limit": None,
        "timeout": None,
        "sort_by": None,
        "output": "table",
        "keep_partial": False,
        "strict": False,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


def inventory(**overrides):
    values = {
        "namespace": "team-a",
        "resources": (
            make_candidate("ConfigMap", "configmaps"),
            make_candidate("Deployment", "deployments", group="apps"),
        ),
    }
    values.update(overrides)
    return InventoryResult(**values)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in (
        "KUBECONFIG",
        "KUBEINVENTORY_CONTEXT",
        "KUBEINVENTORY_NAMESPACE",
        "KUBEINVENTORY_WORKERS",
        "KUBEINVENTORY_PROBE_LIMIT",
        "KUBEINVENTORY_REQUEST_TIMEOUT",
        "KUBEINVENTORY_SORT_BY",
        "KUBEINVENTORY_KEEP_PARTIAL",
    ):
        monkeypatch.delenv(key, raising=False)


class TestResolveSettings:
    """Test cases for resolve_settings."""

    def test_defaults(self):
        settings = resolve_settings(scan_args())

        assert settings.kubeconfig is None
        assert settings.workers == 1
        assert settings.limit == 1
        assert settings.timeout == 30
        assert settings.sort_by == "kind"
        assert settings.keep_partial is False

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("KUBEINVENTORY_WORKERS", "8")
        monkeypatch.setenv("KUBEINVENTORY_SORT_BY", "group")
        monkeypatch.setenv("KUBEINVENTORY_NAMESPACE", "team-b")
        monkeypatch.setenv("KUBEINVENTORY_KEEP_PARTIAL", "yes")

        settings = resolve_settings(scan_args())

        assert settings.workers == 8
        assert settings.sort_by == "group"
        assert settings.namespace == "team-b"
        assert settings.keep_partial is True

    def test_flags_override_environment(self, monkeypatch):
        monkeypatch.setenv("KUBEINVENTORY_WORKERS", "8")
        monkeypatch.setenv("KUBEINVENTORY_NAMESPACE", "team-b")

        settings = resolve_settings(scan_args(workers=2, namespace="team-c", sort_by="name"))

        assert settings.workers == 2
        assert settings.namespace == "team-c"
        assert settings.sort_by == "name"

    def test_invalid_flag(self):
        with pytest.raises(ValueError, match="--workers must be at least 1"):
            resolve_settings(scan_args(workers=0))


class TestDisplay:
    """Test cases for display_inventory and display_warnings."""

    def test_table(self, capsys):
        display_inventory(inventory())

        output = capsys.readouterr()
        assert "GVKs to be backed up" in output.out
        assert "ConfigMap" in output.out
        assert "deployments" in output.out
        assert "apps/v1" in output.out

    def test_table_empty(self, capsys):
        display_inventory(inventory(resources=()))

        output = capsys.readouterr()
        assert "No namespaced resources with objects found in namespace team-a" in output.out

    def test_name(self, capsys):
        display_inventory(inventory(), "name")

        assert capsys.readouterr().out.splitlines() == ["v1/ConfigMap", "apps/v1/Deployment"]

    def test_name_in_quiet_mode(self, capsys):
        set_output(OutputManager(verbosity=Verbosity.QUIET))

        display_inventory(inventory(), "name")

        assert capsys.readouterr().out.splitlines() == ["v1/ConfigMap", "apps/v1/Deployment"]

    def test_yaml(self, capsys):
        display_inventory(inventory(), "yaml")

        document = yaml.safe_load(capsys.readouterr().out)
        assert document["namespace"] == "team-a"
        assert document["resources"] == [
            {"group": "", "version": "v1", "kind": "ConfigMap", "resource": "configmaps"},
            {"group": "apps", "version": "v1", "kind": "Deployment", "resource": "deployments"},
        ]
        assert document["warnings"] == []

    def test_warnings_after_inventory(self, capsys):
        outcome = ProbeOutcome(
            candidate=make_candidate("Event", "events"),
            status=ProbeStatus.TRANSIENT_ERROR,
            error=ApiException(status=500, reason="Internal Server Error"),
        )
        result = inventory(
            warnings=[outcome],
            discovery_errors=[DiscoveryError("unable to retrieve the resources of metrics.k8s.io/v1beta1")],
        )

        display_warnings(result)

        output = capsys.readouterr()
        assert "error listing objects for v1/Event" in output.err
        assert "Discovery incomplete" in output.err
        assert "2 failure(s) occurred" in output.err

    def test_no_warnings(self, capsys):
        display_warnings(inventory())

        assert capsys.readouterr().err == ""


@patch("kubeinventory.cli.run_inventory")
@patch("kubeinventory.cli.connect")
@patch("kubeinventory.cli.NamespaceResolver")
class TestCmdScan:
    """Test cases for cmd_scan."""

    def test_successful_scan(self, mock_resolver, mock_connect, mock_run, capsys):
        mock_resolver.return_value.resolve.return_value = "team-a"
        clients = MagicMock()
        mock_connect.return_value = clients
        mock_run.return_value = inventory()

        cmd_scan(scan_args(workers=4))

        mock_connect.assert_called_once_with(kubeconfig=None, context=None, request_timeout=30, workers=4)
        args, kwargs = mock_run.call_args
        assert args == ("team-a", clients.discovery, clients.lister)
        assert kwargs["workers"] == 4
        assert kwargs["limit"] == 1
        assert kwargs["sort_by"] == "kind"
        assert kwargs["keep_partial"] is False

        output = capsys.readouterr()
        assert "namespace of current context is: team-a" in output.out
        assert "GVKs to be backed up" in output.out

    def test_config_error_stops_before_probing(self, mock_resolver, mock_connect, mock_run, capsys):
        mock_resolver.return_value.resolve.side_effect = ConfigError("current context is empty")

        with pytest.raises(SystemExit) as exc_info:
            cmd_scan(scan_args())

        assert exc_info.value.code == 1
        mock_connect.assert_not_called()
        mock_run.assert_not_called()
        assert "Error: current context is empty" in capsys.readouterr().err

    def test_discovery_errors_still_print_inventory(self, mock_resolver, mock_connect, mock_run, capsys):
        mock_resolver.return_value.resolve.return_value = "team-a"
        error = DiscoveryError("unable to retrieve the server API groups from /api: connection refused")
        mock_run.return_value = inventory(resources=(), discovery_errors=[error])

        cmd_scan(scan_args(output="name"))

        output = capsys.readouterr()
        assert output.out == ""
        assert "Discovery incomplete: unable to retrieve the server API groups" in output.err

    def test_discovery_errors_with_strict(self, mock_resolver, mock_connect, mock_run):
        mock_resolver.return_value.resolve.return_value = "team-a"
        error = DiscoveryError("unable to retrieve the resources of metrics.k8s.io/v1beta1")
        mock_run.return_value = inventory(discovery_errors=[error])

        with pytest.raises(SystemExit) as exc_info:
            cmd_scan(scan_args(strict=True))

        assert exc_info.value.code == 2

    def test_cancelled(self, mock_resolver, mock_connect, mock_run, capsys):
        mock_resolver.return_value.resolve.return_value = "team-a"
        mock_run.side_effect = InventoryCancelled("inventory of namespace team-a was cancelled")

        with pytest.raises(SystemExit) as exc_info:
            cmd_scan(scan_args())

        assert exc_info.value.code == 130
        assert "was cancelled" in capsys.readouterr().err

    def test_partial_result_on_cancel(self, mock_resolver, mock_connect, mock_run, capsys):
        mock_resolver.return_value.resolve.return_value = "team-a"
        mock_run.return_value = inventory(cancelled=True)

        with pytest.raises(SystemExit) as exc_info:
            cmd_scan(scan_args(keep_partial=True, output="name"))

        assert exc_info.value.code == 130
        output = capsys.readouterr()
        assert output.out.splitlines() == ["v1/ConfigMap", "apps/v1/Deployment"]
        assert "inventory above is partial" in output.err

    def test_warnings_do_not_fail_by_default(self, mock_resolver, mock_connect, mock_run):
        mock_resolver.return_value.resolve.return_value = "team-a"
        outcome = ProbeOutcome(
            candidate=make_candidate("Event", "events"),
            status=ProbeStatus.TRANSIENT_ERROR,
            error=TimeoutError("read timed out"),
        )
        mock_run.return_value = inventory(warnings=[outcome])

        cmd_scan(scan_args())

    def test_strict_with_warnings(self, mock_resolver, mock_connect, mock_run):
        mock_resolver.return_value.resolve.return_value = "team-a"
        outcome = ProbeOutcome(
            candidate=make_candidate("Event", "events"),
            status=ProbeStatus.TRANSIENT_ERROR,
            error=TimeoutError("read timed out"),
        )
        mock_run.return_value = inventory(warnings=[outcome])

        with pytest.raises(SystemExit) as exc_info:
            cmd_scan(scan_args(strict=True))

        assert exc_info.value.code == 2

    def test_invalid_environment(self, mock_resolver, mock_connect, mock_run, monkeypatch, capsys):
        monkeypatch.setenv("KUBEINVENTORY_WORKERS", "many")

        with pytest.raises(SystemExit) as exc_info:
            cmd_scan(scan_args())

        assert exc_info.value.code == 1
        assert "KUBEINVENTORY_WORKERS must be an integer" in capsys.readouterr().err
        mock_resolver.assert_not_called()

    def test_yaml_output_is_clean(self, mock_resolver, mock_connect, mock_run, capsys):
        mock_resolver.return_value.resolve.return_value = "team-a"
        mock_run.return_value = inventory()

        cmd_scan(scan_args(output="yaml"))

        document = yaml.safe_load(capsys.readouterr().out)
        assert [r["kind"] for r in document["resources"]] == ["ConfigMap", "Deployment"]


@patch("kubeinventory.cli.configure_logging")
class TestMain:
    """Test cases for main function."""

    @patch("kubeinventory.cli.cmd_scan")
    @patch("sys.argv", ["kubeinventory", "scan", "--namespace", "team-a", "--workers", "4"])
    def test_main_scan_command(self, mock_cmd_scan, mock_logging):
        main()
        mock_cmd_scan.assert_called_once()
        args = mock_cmd_scan.call_args[0][0]
        assert args.namespace == "team-a"
        assert args.workers == 4
        assert args.output == "table"
        assert args.sort_by is None

    @patch("kubeinventory.cli.cmd_scan")
    @patch("sys.argv", ["kubeinventory", "scan", "-o", "name", "--sort-by", "group", "--verbose"])
    def test_main_options(self, mock_cmd_scan, mock_logging):
        main()
        args = mock_cmd_scan.call_args[0][0]
        assert args.output == "name"
        assert args.sort_by == "group"
        mock_logging.assert_called_once_with(Verbosity.VERBOSE)

    @patch("sys.argv", ["kubeinventory", "scan", "--sort-by", "size"])
    def test_main_rejects_unknown_sort(self, mock_logging):
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 2

    @patch("sys.argv", ["kubeinventory", "--help"])
    def test_main_help(self, mock_logging, capsys):
        """Test main function help output."""
        with pytest.raises(SystemExit):
            main()
        output = capsys.readouterr()
        assert "kubeinventory" in output.out.lower()
