"""Tests for the command line front end."""

import logging
from unittest.mock import patch

import pytest

from jetstream_sync import cli
from jetstream_sync.pipelines.embedding_sync_orchestrator import EmbeddingSyncOrchestrator
from conftest import FakeEmbedder, FakeStore, SleepRecorder, sample_tables


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestParser:
    def test_help_exits_zero(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--help"])

        assert exc_info.value.code == 0
        assert "--continuous" in capsys.readouterr().out

    def test_defaults(self) -> None:
        args = cli.build_parser().parse_args([])

        assert args.continuous is False
        assert args.interval is None
        assert args.batch_size is None
        assert args.only == "all"
        assert args.target == "store"

    def test_limit_is_an_alias_for_batch_size(self) -> None:
        args = cli.build_parser().parse_args(["--limit=20"])

        assert args.batch_size == 20

    def test_unknown_type_is_rejected(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.build_parser().parse_args(["--only=hangars"])

        assert exc_info.value.code == 2

    def test_every_record_type_is_selectable(self) -> None:
        assert cli.ONLY_CHOICES == ["all", "offers", "flights", "crews", "users", "simulations", "airports", "aircraft"]

    def test_non_positive_batch_size_is_rejected(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--batch-size=0"])

    def test_continuous_requires_store_target(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--continuous", "--target=index"])

        assert exc_info.value.code == 2

    def test_continuous_rejects_dry_run(self, capsys) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--continuous", "--dry-run"])

        assert exc_info.value.code == 2
        assert "--dry-run" in capsys.readouterr().err


class TestMain:
    def test_only_offers_touches_only_offers(self, tmp_path, settings) -> None:
        store = FakeStore(sample_tables())
        orchestrator = EmbeddingSyncOrchestrator(
            store=store, embedder=FakeEmbedder(), settings=settings, sleep=SleepRecorder(),
        )

        with patch("jetstream_sync.cli.build_orchestrator", return_value=orchestrator) as build:
            exit_code = cli.main(["--only=offers", "--dry-run", f"--log-dir={tmp_path}"])

        assert exit_code == 0
        assert build.call_args.kwargs == {"target": "store", "dry_run": True}
        assert store.selected_tables() == ["jetshare_offers"]
        assert list(tmp_path.glob("embeddings-*.log"))

    def test_fatal_error_exits_one_and_reports_error_log(self, tmp_path, caplog) -> None:
        caplog.set_level(logging.INFO)

        with patch("jetstream_sync.cli.build_orchestrator", side_effect=ValueError("COHERE_API_KEY must be set")):
            exit_code = cli.main([f"--log-dir={tmp_path}"])

        assert exit_code == 1
        error_logs = list(tmp_path.glob("embeddings-errors-*.log"))
        assert len(error_logs) == 1
        assert "COHERE_API_KEY must be set" in error_logs[0].read_text()
        assert "Errors were logged to" in caplog.text

    def test_clean_run_leaves_no_error_log(self, tmp_path, settings) -> None:
        store = FakeStore({"flights": []}, rpcs={"archive_old_jetshare_offers": 0})
        orchestrator = EmbeddingSyncOrchestrator(
            store=store, embedder=FakeEmbedder(), settings=settings, sleep=SleepRecorder(),
        )

        with patch("jetstream_sync.cli.build_orchestrator", return_value=orchestrator):
            exit_code = cli.main(["--only=flights", f"--log-dir={tmp_path}"])

        assert exit_code == 0
        assert not list(tmp_path.glob("embeddings-errors-*.log"))
