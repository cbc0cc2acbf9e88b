"""Tests for the command line entry point."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from graphindex import cli
from graphindex.shared.config import Config
from graphindex.shared.exceptions import BackendError, ConfigurationError


class TestParser:
    def test_build_arguments(self):
        args = cli.build_parser().parse_args(
            ["build", "--limit", "10", "--update", "--workspace", "live", "--postfix", "v2"]
        )
        assert args.command == "build"
        assert args.limit == 10
        assert args.update is True
        assert args.workspace == "live"
        assert args.postfix == "v2"

    def test_build_defaults(self):
        args = cli.build_parser().parse_args(["build"])
        assert args.limit is None
        assert args.update is False
        assert args.postfix is None

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestMain:
    def test_configuration_error_exits_1(self, monkeypatch):
        def fail():
            raise ConfigurationError("Configuration file not found: config/prod.yaml")

        monkeypatch.setattr(cli, "init_config", fail)
        assert cli.main(["build"]) == 1

    def test_backend_error_exits_1(self, monkeypatch):
        def fail(args):
            raise BackendError("index creation failed", status=403, reason="forbidden")

        monkeypatch.setattr(cli, "run", fail)
        assert cli.main(["cleanup"]) == 1

    def _patch_run(self, monkeypatch, tmp_path, orchestrator):
        config = Config(graph={"source": "file", "path": str(tmp_path / "graph.yaml")})
        settings = SimpleNamespace(env="test", log_level="INFO")
        monkeypatch.setattr(cli, "init_config", lambda: (config, settings))
        monkeypatch.setattr(cli, "setup_logging", MagicMock())
        monkeypatch.setattr(cli, "setup_metrics", MagicMock())
        monkeypatch.setattr(cli.NodeTypeManager, "from_file", MagicMock())
        monkeypatch.setattr(cli, "ConnectionManager", MagicMock())
        monkeypatch.setattr(cli, "ElasticsearchBackend", MagicMock())
        load_graph = MagicMock()
        monkeypatch.setattr(cli, "load_graph_file", load_graph)
        monkeypatch.setattr(cli, "IndexingOrchestrator", MagicMock(return_value=orchestrator))
        return load_graph

    def test_build_runs_orchestrator(self, monkeypatch, tmp_path):
        orchestrator = MagicMock()
        orchestrator.build.return_value = SimpleNamespace(
            nodes_indexed=3, documents=4, duration_seconds=0.1, error_count=0
        )
        load_graph = self._patch_run(monkeypatch, tmp_path, orchestrator)

        assert cli.main(["build", "--postfix", "9", "--limit", "5"]) == 0
        orchestrator.build.assert_called_once_with(
            postfix="9", update=False, workspace=None, limit=5
        )
        load_graph.assert_called_once()

    def test_cleanup_does_not_load_graph(self, monkeypatch, tmp_path):
        orchestrator = MagicMock()
        orchestrator.cleanup.return_value = {"content-abc": ["content-abc-1"]}
        load_graph = self._patch_run(monkeypatch, tmp_path, orchestrator)

        assert cli.main(["cleanup"]) == 0
        orchestrator.cleanup.assert_called_once_with()
        load_graph.assert_not_called()

    def test_metrics_file_written(self, monkeypatch, tmp_path):
        orchestrator = MagicMock()
        orchestrator.cleanup.return_value = {}
        self._patch_run(monkeypatch, tmp_path, orchestrator)
        metrics_file = tmp_path / "graphindex.prom"

        assert cli.main(["--metrics-file", str(metrics_file), "cleanup"]) == 0
        assert "graphindex_generations_created_total" in metrics_file.read_text()

    def test_file_source_requires_path(self, monkeypatch):
        config = Config()
        with pytest.raises(ConfigurationError):
            cli.load_content_graph(config, MagicMock(), MagicMock())
