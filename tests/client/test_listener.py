"""Tests for replay on reconnection."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from hyperoffline.client.netstatus import Netstatus
from hyperoffline.client.store import TransactionAbort
from hyperoffline.client.sync import ReplayError, ReplayOnReconnect
from hyperoffline.core.types import ConnectivityStatus


@pytest.fixture
def mock_sync() -> MagicMock:
    sync = MagicMock()
    sync.netstatus = Netstatus(ConnectivityStatus.OFFLINE)
    return sync


class TestReplayOnReconnect:
    """Tests for ReplayOnReconnect."""

    def test_replays_when_online(self, mock_sync: MagicMock) -> None:
        listener = ReplayOnReconnect(mock_sync)
        listener.start()

        mock_sync.netstatus.set_status(ConnectivityStatus.ONLINE)

        mock_sync.replay.assert_called_once_with()

    def test_ignores_going_offline(self, mock_sync: MagicMock) -> None:
        mock_sync.netstatus = Netstatus(ConnectivityStatus.ONLINE)
        listener = ReplayOnReconnect(mock_sync)
        listener.start()

        mock_sync.netstatus.set_status(ConnectivityStatus.OFFLINE)

        mock_sync.replay.assert_not_called()

    def test_replays_on_every_reconnection(self, mock_sync: MagicMock) -> None:
        listener = ReplayOnReconnect(mock_sync)
        listener.start()

        for status in ("online", "offline", "online"):
            mock_sync.netstatus.set_status(status)

        assert mock_sync.replay.call_count == 2

    def test_start_is_idempotent(self, mock_sync: MagicMock) -> None:
        listener = ReplayOnReconnect(mock_sync)
        listener.start()
        listener.start()

        mock_sync.netstatus.set_status(ConnectivityStatus.ONLINE)

        mock_sync.replay.assert_called_once()

    def test_stop(self, mock_sync: MagicMock) -> None:
        listener = ReplayOnReconnect(mock_sync)
        listener.start()
        assert listener.listening

        listener.stop()
        mock_sync.netstatus.set_status(ConnectivityStatus.ONLINE)

        assert not listener.listening
        mock_sync.replay.assert_not_called()

    @pytest.mark.parametrize(
        "error",
        [ReplayError("server down", replayed=2), TransactionAbort("Store is not open")],
    )
    def test_failures_are_logged(self, mock_sync: MagicMock, error: Exception) -> None:
        mock_sync.replay.side_effect = error
        listener = ReplayOnReconnect(mock_sync)

        with patch("hyperoffline.client.sync.listener.logger") as mock_logger:
            listener.on_status(ConnectivityStatus.ONLINE)

        mock_logger.warning.assert_called_once()
