"""
Tests for the node-lease command-line interface
"""

import json
import signal
from unittest.mock import patch

import pytest

from node_lease.cli.main import EXIT_ERROR, EXIT_OK, EXIT_USAGE, main
from node_lease.cli.parser import build_parser, parse_arguments
from node_lease.core.version import __version__
from node_lease.store.file import FileLeaseStore


@pytest.fixture(autouse=True)
def isolated_cli(restore_root_logging, monkeypatch, tmp_path):
    """Keep env overrides and .env files from leaking into CLI runs"""
    for name in (
        "LOG_LEVEL",
        "NODE_LEASE_DURATION_SECONDS",
        "NODE_STATUS_UPDATE_FREQUENCY",
        "NODE_LEASE_MAX_UPDATE_RETRIES",
        "NODE_LEASE_BACKOFF_BASE_DELAY",
        "NODE_LEASE_BACKOFF_MAX_DELAY",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def store_dir(tmp_path):
    return str(tmp_path / "store")


class TestParser:
    """Test argument parsing"""

    def test_run_defaults(self):
        args = parse_arguments(["run", "node-a", "--store-dir", "/tmp/x"])

        assert args.command == "run"
        assert args.holder_identity == "node-a"
        assert args.namespace == "kube-node-lease"
        assert args.lease_duration == 40
        assert args.node_status_update_frequency == 10.0
        assert args.max_update_retries == 5
        assert args.backoff_base_delay == 0.2
        assert args.backoff_max_delay == 7.0
        assert args.once is False
        assert args.log_format == "text"

    def test_command_required(self):
        with pytest.raises(SystemExit) as exc_info:
            parse_arguments([])

        assert exc_info.value.code == 2

    @pytest.mark.parametrize(
        "argv",
        [
            ["run", "node-a", "--store-dir", "s", "--lease-duration", "0"],
            ["run", "node-a", "--store-dir", "s", "--node-status-update-frequency", "-1"],
            ["run", "node-a", "--store-dir", "s", "--max-update-retries", "many"],
            ["run", "node-a", "--store-dir", "s", "--backoff-base-delay", "-0.5"],
            ["run", "node-a", "--store-dir", "s", "--backoff-base-delay", "0"],
            ["run", "node-a", "--store-dir", "s", "--backoff-max-delay", "0"],
            ["run", "node-a"],
        ],
    )
    def test_invalid_arguments_exit_with_usage(self, argv):
        with pytest.raises(SystemExit) as exc_info:
            parse_arguments(argv)

        assert exc_info.value.code == 2

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--version"])

        assert __version__ in capsys.readouterr().out


class TestRegisterAndRun:
    """Test register-node, run --once and show together"""

    def test_register_node(self, store_dir, capsys):
        assert main(["register-node", "node-a", "--store-dir", store_dir, "--uid", "uid-1"]) == EXIT_OK

        assert "Registered node node-a (uid uid-1)" in capsys.readouterr().out

    def test_run_once_creates_lease_with_owner(self, store_dir):
        main(["register-node", "node-a", "--store-dir", store_dir, "--uid", "uid-1"])

        assert main(["run", "node-a", "--store-dir", store_dir, "--once", "--lease-duration", "30"]) == EXIT_OK

        lease = FileLeaseStore(store_dir).get("kube-node-lease", "node-a")
        assert lease.lease_duration_seconds == 30
        assert lease.owner_references[0].uid == "uid-1"

    def test_run_once_twice_renews(self, store_dir):
        main(["run", "node-a", "--store-dir", store_dir, "--once"])
        first = FileLeaseStore(store_dir).get("kube-node-lease", "node-a")

        main(["run", "node-a", "--store-dir", store_dir, "--once"])
        second = FileLeaseStore(store_dir).get("kube-node-lease", "node-a")

        assert int(second.resource_version) == int(first.resource_version) + 1
        assert second.renew_time >= first.renew_time

    def test_env_override_applies(self, store_dir, monkeypatch):
        monkeypatch.setenv("NODE_LEASE_DURATION_SECONDS", "55")

        main(["run", "node-a", "--store-dir", store_dir, "--once"])

        assert FileLeaseStore(store_dir).get("kube-node-lease", "node-a").lease_duration_seconds == 55

    def test_json_logs(self, store_dir, capsys):
        main(["run", "node-a", "--store-dir", store_dir, "--once", "--log-format", "json"])

        lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.startswith("{")]
        created = [line for line in lines if line["message"].startswith("Created node lease")]
        assert created
        assert created[0]["holder_identity"] == "node-a"
        assert created[0]["namespace"] == "kube-node-lease"

    def test_run_loop_stops_on_signal(self, store_dir):
        """The installed SIGTERM handler ends the loop after the current cycle"""
        installed = {}

        def fake_signal(signum, handler):
            installed[signum] = handler

        def fake_run(self, stop_event):
            installed[signal.SIGTERM](signal.SIGTERM, None)
            assert stop_event.is_set()

        with (
            patch("node_lease.cli.main.signal.signal", side_effect=fake_signal),
            patch("node_lease.cli.main.LeaseController.run", fake_run),
        ):
            assert main(["run", "node-a", "--store-dir", store_dir]) == EXIT_OK

        assert set(installed) == {signal.SIGINT, signal.SIGTERM}

    def test_invalid_holder_is_usage_error(self, store_dir, tmp_path, capsys):
        assert main(["run", "Node_A", "--store-dir", store_dir, "--once"]) == EXIT_USAGE

        err = capsys.readouterr().err
        assert "Configuration error" in err
        assert "Holder identity must be a lowercase RFC 1123 subdomain" in err
        assert not (tmp_path / "store" / "leases").exists()

    def test_invalid_backoff_window_is_configuration_error(self, store_dir, capsys):
        argv = ["run", "node-a", "--store-dir", store_dir, "--once"]
        argv += ["--backoff-base-delay", "5", "--backoff-max-delay", "1"]

        assert main(argv) == EXIT_USAGE

        assert "Configuration error" in capsys.readouterr().err


class TestShow:
    """Test the show command"""

    def test_show_missing_lease(self, store_dir, capsys):
        assert main(["show", "node-a", "--store-dir", store_dir]) == EXIT_ERROR

        assert "No lease found for kube-node-lease/node-a" in capsys.readouterr().err

    def test_show_json(self, store_dir, capsys):
        main(["register-node", "node-a", "--store-dir", store_dir, "--uid", "uid-1"])
        main(["run", "node-a", "--store-dir", store_dir, "--once"])
        capsys.readouterr()

        assert main(["show", "node-a", "--store-dir", store_dir, "--format", "json"]) == EXIT_OK

        document = json.loads(capsys.readouterr().out)
        assert document["kind"] == "Lease"
        assert document["spec"]["holderIdentity"] == "node-a"
        assert document["metadata"]["ownerReferences"][0]["uid"] == "uid-1"

    def test_show_text(self, store_dir, capsys):
        main(["run", "node-a", "--store-dir", store_dir, "--once"])
        capsys.readouterr()

        assert main(["show", "node-a", "--store-dir", store_dir]) == EXIT_OK

        out = capsys.readouterr().out
        assert "Lease:            kube-node-lease/node-a" in out
        assert "Duration:         40s" in out
        assert "Owner:            -" in out

    def test_show_unreadable_lease_is_error(self, store_dir, tmp_path, capsys):
        main(["run", "node-a", "--store-dir", store_dir, "--once"])
        (tmp_path / "store" / "leases" / "kube-node-lease" / "node-a.json").write_text("{", encoding="utf-8")
        capsys.readouterr()

        assert main(["show", "node-a", "--store-dir", store_dir]) == EXIT_ERROR

        assert "unreadable lease document" in capsys.readouterr().err


class TestSummarize:
    """Test the summarize command"""

    @pytest.fixture
    def inputs(self, tmp_path):
        pods = {
            "items": [
                {
                    "metadata": {"name": "web", "annotations": {"netsys.io/network-bandwidth": "10M"}},
                    "spec": {"nodeName": "node-a"},
                },
                {"metadata": {"name": "db"}, "spec": {"nodeName": "node-b"}},
            ]
        }
        nodes = [{"metadata": {"name": "node-a", "uid": "uid-a"}}]
        pods_path = tmp_path / "pods.json"
        nodes_path = tmp_path / "nodes.json"
        pods_path.write_text(json.dumps(pods), encoding="utf-8")
        nodes_path.write_text(json.dumps(nodes), encoding="utf-8")
        return str(pods_path), str(nodes_path)

    def test_json_output(self, inputs, capsys):
        pods, nodes = inputs

        assert main(["summarize", "--pods", pods, "--nodes", nodes, "--format", "json"]) == EXIT_OK

        rows = json.loads(capsys.readouterr().out)
        assert rows == [
            {"node": "node-a", "uid": "uid-a", "pods": 1, "network_request": 10000000},
            {"node": "node-b", "uid": "", "pods": 1, "network_request": 0},
        ]

    def test_csv_output(self, inputs, capsys):
        pods, nodes = inputs

        main(["summarize", "--pods", pods, "--nodes", nodes, "--format", "csv"])

        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "node,uid,pods,network_request"
        assert lines[1] == "node-a,uid-a,1,10000000"

    def test_table_output(self, inputs, capsys):
        pods, nodes = inputs

        main(["summarize", "--pods", pods, "--nodes", nodes])

        out = capsys.readouterr().out
        assert "node-a" in out
        assert "10000000" in out

    def test_empty_inputs(self, tmp_path, capsys):
        empty = tmp_path / "empty.json"
        empty.write_text("[]", encoding="utf-8")

        main(["summarize", "--pods", str(empty), "--nodes", str(empty)])

        assert "No pods or nodes." in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        missing = str(tmp_path / "missing.json")

        assert main(["summarize", "--pods", missing, "--nodes", missing]) == EXIT_USAGE

        assert "cannot read pod/node lists" in capsys.readouterr().err

    def test_malformed_json(self, tmp_path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text("{", encoding="utf-8")

        assert main(["summarize", "--pods", str(bad), "--nodes", str(bad)]) == EXIT_USAGE

    def test_non_mapping_annotations_are_usage_error(self, tmp_path, capsys):
        pods = tmp_path / "pods.json"
        nodes = tmp_path / "nodes.json"
        pods.write_text(json.dumps([{"metadata": {"name": "web", "annotations": "bw=10M"}}]), encoding="utf-8")
        nodes.write_text("[]", encoding="utf-8")

        assert main(["summarize", "--pods", str(pods), "--nodes", str(nodes)]) == EXIT_USAGE

        assert "non-mapping annotations" in capsys.readouterr().err
