"""Tests for notification system."""

import subprocess
from unittest.mock import MagicMock, patch

from addrsync.client.notifications import (
    COLLECTION_UPDATED,
    Broadcaster,
    CollectionUpdate,
    Notification,
    NotificationType,
    desktop_subscriber,
    notify_error,
    send_notification,
)
from addrsync.core.types import Record


class TestNotification:
    """Tests for Notification dataclass."""

    def test_notification_creation(self) -> None:
        """Should create notification with all fields."""
        notif = Notification(
            title="Test Title",
            message="Test message",
            type=NotificationType.WARNING,
        )
        assert notif.title == "Test Title"
        assert notif.message == "Test message"
        assert notif.type == NotificationType.WARNING

    def test_notification_default_type(self) -> None:
        """Should default to INFO type."""
        notif = Notification(title="Title", message="Message")
        assert notif.type == NotificationType.INFO


class TestBroadcaster:
    """Tests for Broadcaster."""

    def test_delivers_update(self) -> None:
        """Should deliver the collection to every subscriber."""
        broadcaster = Broadcaster()
        received: list[CollectionUpdate] = []
        broadcaster.subscribe(received.append)
        records = [Record(value="a", timestamp=1)]

        delivered = broadcaster.collection_updated(records, owner="alice")

        assert delivered == 1
        assert received == [CollectionUpdate(records=records, owner="alice")]
        assert received[0].action == COLLECTION_UPDATED == "syncAddressesUpdated"

    def test_no_subscribers(self) -> None:
        assert Broadcaster().collection_updated([]) == 0

    def test_failing_subscriber_does_not_block_others(self) -> None:
        """Should log a failing subscriber and keep delivering."""
        broadcaster = Broadcaster()
        received: list[CollectionUpdate] = []

        def broken(update: CollectionUpdate) -> None:
            raise RuntimeError("receiver gone")

        broadcaster.subscribe(broken)
        broadcaster.subscribe(received.append)

        assert broadcaster.collection_updated([]) == 1
        assert len(received) == 1

    def test_unsubscribe(self) -> None:
        broadcaster = Broadcaster()
        received: list[CollectionUpdate] = []
        broadcaster.subscribe(received.append)
        broadcaster.unsubscribe(received.append)
        broadcaster.unsubscribe(received.append)

        broadcaster.collection_updated([])

        assert received == []


class TestNotificationHelpers:
    """Tests for notification helper functions."""

    @patch("addrsync.client.notifications.send_notification")
    def test_desktop_subscriber(self, mock_send: MagicMock) -> None:
        """Should announce merged remote changes."""
        desktop_subscriber(CollectionUpdate(records=[Record(value="a", timestamp=1)]))

        mock_send.assert_called_once()
        call_args = mock_send.call_args[0][0]
        assert "Addresses Updated" in call_args.title
        assert "1 addresses" in call_args.message

    @patch("addrsync.client.notifications.send_notification")
    def test_notify_error(self, mock_send: MagicMock) -> None:
        """Should send error notification."""
        mock_send.return_value = True

        result = notify_error("Sync quota exceeded. Sync has been disabled.")

        assert result is True
        call_args = mock_send.call_args[0][0]
        assert "Error" in call_args.title
        assert "quota" in call_args.message
        assert call_args.type == NotificationType.ERROR


class TestSendNotification:
    """Tests for platform dispatch."""

    @patch("addrsync.client.notifications.subprocess.run")
    @patch("addrsync.client.notifications.platform.system", return_value="Linux")
    def test_linux(self, mock_system: MagicMock, mock_run: MagicMock) -> None:
        """Should call notify-send on Linux."""
        assert send_notification(Notification(title="T", message="M")) is True
        args = mock_run.call_args[0][0]
        assert args[0] == "notify-send"
        assert "normal" in args

    @patch("addrsync.client.notifications.subprocess.run", side_effect=FileNotFoundError)
    @patch("addrsync.client.notifications.platform.system", return_value="Linux")
    def test_linux_missing_notify_send(
        self, mock_system: MagicMock, mock_run: MagicMock
    ) -> None:
        assert send_notification(Notification(title="T", message="M")) is False

    @patch("addrsync.client.notifications.subprocess.run")
    @patch("addrsync.client.notifications.platform.system", return_value="Darwin")
    def test_macos(self, mock_system: MagicMock, mock_run: MagicMock) -> None:
        """Should call osascript on macOS and escape quotes."""
        assert send_notification(Notification(title='Say "hi"', message="M")) is True
        args = mock_run.call_args[0][0]
        assert args[0] == "osascript"
        assert '\\"hi\\"' in args[2]

    @patch(
        "addrsync.client.notifications.subprocess.run",
        side_effect=subprocess.CalledProcessError(1, "osascript"),
    )
    @patch("addrsync.client.notifications.platform.system", return_value="Darwin")
    def test_macos_failure(self, mock_system: MagicMock, mock_run: MagicMock) -> None:
        assert send_notification(Notification(title="T", message="M")) is False

    @patch("addrsync.client.notifications.platform.system", return_value="Windows")
    def test_unsupported_platform(self, mock_system: MagicMock) -> None:
        assert send_notification(Notification(title="T", message="M")) is False
