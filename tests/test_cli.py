"""Tests for CLI commands - status, pending, replay, reinit, watch."""

import json
import logging
from collections.abc import Generator
from pathlib import Path
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from pytest_httpx import HTTPXMock

from hyperoffline.client.cli import cli
from hyperoffline.client.resource import CacheEntry, PendingRequest
from hyperoffline.client.store import LocalStore


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def config_dir(tmp_path: Path) -> Generator[Path, None, None]:
    """Point the CLI at a temporary config directory."""
    config = tmp_path / ".hyperoffline"
    config.mkdir()
    with patch("hyperoffline.client.cli.config.get_config_dir", return_value=config):
        yield config
    logger = logging.getLogger("hyperoffline")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def store_path(config_dir: Path) -> Path:
    """Store with two queued requests and one offline-only draft."""
    path = config_dir / "offline.db"
    store = LocalStore(path)
    store.open()
    store.enqueue(PendingRequest("put", "http://x/1", data={"a": 1}))
    store.enqueue(PendingRequest("post", "http://x/2", data={"b": 2}))
    store.put("local:draft-1", CacheEntry("local:draft-1", {"title": "Draft"}, {}))
    store.close()
    return path


class TestStatusCommand:
    """Tests for 'hyperoffline status' command."""

    def test_empty_store(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--store", str(tmp_path / "empty.db"), "status"])
        assert result.exit_code == 0
        assert "Pending requests: 0" in result.output
        assert "Cached resources: 0 (0 offline-only)" in result.output

    def test_uses_default_store(self, runner: CliRunner, store_path: Path) -> None:
        """Without --store the store lives in the config directory."""
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert f"Store: {store_path}" in result.output
        assert "Pending requests: 2" in result.output
        assert "Cached resources: 1 (1 offline-only)" in result.output

    def test_store_from_config_file(
        self, runner: CliRunner, config_dir: Path, tmp_path: Path
    ) -> None:
        custom = tmp_path / "custom.db"
        (config_dir / "config.json").write_text(json.dumps({"store_path": str(custom)}))
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert f"Store: {custom}" in result.output

    def test_unopenable_store(self, runner: CliRunner, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        result = runner.invoke(cli, ["--store", str(blocker / "offline.db"), "status"])
        assert result.exit_code == 1
        assert "cannot open offline store" in result.output


class TestPendingCommand:
    """Tests for 'hyperoffline pending' command."""

    def test_lists_in_order(self, runner: CliRunner, store_path: Path) -> None:
        result = runner.invoke(cli, ["pending"])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert "PUT" in lines[0] and "http://x/1" in lines[0]
        assert "POST" in lines[1] and "http://x/2" in lines[1]

    def test_filters_posts_by_url(self, runner: CliRunner, store_path: Path) -> None:
        result = runner.invoke(cli, ["pending", "--url", "http://x/1", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output) == []

        result = runner.invoke(cli, ["pending", "--url", "http://x/2", "--json"])
        [request] = json.loads(result.output)
        assert request["method"] == "post"
        assert request["data"] == {"b": 2}

    def test_empty(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--store", str(tmp_path / "empty.db"), "pending"])
        assert result.exit_code == 0
        assert "No pending requests." in result.output


class TestReplayCommand:
    """Tests for 'hyperoffline replay' command."""

    def test_replays_queue(
        self, runner: CliRunner, store_path: Path, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(method="PUT", url="http://x/1", status_code=204)
        httpx_mock.add_response(method="POST", url="http://x/2", status_code=201)

        result = runner.invoke(cli, ["replay"])

        assert result.exit_code == 0
        assert "Replayed 2 requests." in result.output
        assert [r.method for r in httpx_mock.get_requests()] == ["PUT", "POST"]

        result = runner.invoke(cli, ["pending"])
        assert "No pending requests." in result.output

    def test_failure_exits_nonzero(
        self, runner: CliRunner, store_path: Path, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(method="PUT", url="http://x/1", status_code=500)

        result = runner.invoke(cli, ["replay"])

        assert result.exit_code == 1
        assert "replay failed after 0 requests" in result.output


class TestReinitCommand:
    """Tests for 'hyperoffline reinit' command."""

    def test_discards_store(self, runner: CliRunner, store_path: Path) -> None:
        result = runner.invoke(cli, ["reinit", "--yes"])
        assert result.exit_code == 0
        assert "Offline store reinitialized" in result.output

        result = runner.invoke(cli, ["status"])
        assert "Pending requests: 0" in result.output
        assert "Cached resources: 0" in result.output

    def test_aborts_without_confirmation(self, runner: CliRunner, store_path: Path) -> None:
        result = runner.invoke(cli, ["reinit"], input="n\n")
        assert result.exit_code != 0

        result = runner.invoke(cli, ["status"])
        assert "Pending requests: 2" in result.output


class TestWatchCommand:
    """Tests for 'hyperoffline watch' command."""

    def test_requires_probe_url(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--store", str(tmp_path / "offline.db"), "watch"])
        assert result.exit_code == 1
        assert "no probe URL" in result.output

