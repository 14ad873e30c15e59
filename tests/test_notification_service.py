from unittest.mock import MagicMock, patch

import pytest

from services import notification_service, settings_service


@pytest.fixture
def provider():
    provider = MagicMock()
    provider.send_message.return_value = (True, "E-mail sent.")
    with patch.object(notification_service, "get_email_provider", return_value=provider):
        yield provider


def test_send_email_without_api_key_is_skipped(provider):
    accepted, msg = notification_service.send_email("user@pci.test", "Hello", "<p>Hi</p>")

    assert accepted is False
    assert "not configured" in msg
    provider.send_message.assert_not_called()


def test_send_email_inline(provider, monkeypatch):
    monkeypatch.setenv("BREVO_API_KEY", "fake_key")
    monkeypatch.setenv("MAIL_SENDER", "hello@pci.test")

    result = notification_service.send_email("user@pci.test", "Hello", "<p>Hi</p>", background=False)

    assert result == (True, "E-mail sent.")
    provider.send_message.assert_called_once_with(
        "fake_key", {"email": "hello@pci.test", "name": "PCI Plastic Collection"},
        "user@pci.test", "Hello", "<p>Hi</p>",
    )


@patch("services.notification_service.threading.Thread")
def test_send_email_background_uses_daemon_thread(mock_thread, provider, monkeypatch):
    monkeypatch.setenv("BREVO_API_KEY", "fake_key")

    accepted, msg = notification_service.send_email("user@pci.test", "Hello", "<p>Hi</p>")

    assert accepted is True
    assert msg == "E-mail queued."
    assert mock_thread.call_args.kwargs["daemon"] is True
    mock_thread.return_value.start.assert_called_once()

    mock_thread.call_args.kwargs["target"]()
    provider.send_message.assert_called_once()


@patch("services.notification_service.send_email")
def test_password_reset_link_carries_token(mock_send, monkeypatch):
    monkeypatch.setenv("APP_BASE_URL", "https://pci.example")

    notification_service.send_password_reset("user@pci.test", "tok-123")

    to_email, subject, html = mock_send.call_args.args
    assert to_email == "user@pci.test"
    assert "https://pci.example/?page=/login&reset_token=tok-123" in html


@patch("services.notification_service.send_email")
def test_agent_approved_respects_notifications_toggle(mock_send, make_user):
    admin = make_user("admin@pci.test", role="admin")

    notification_service.send_agent_approved("agent@pci.test", "Green Haulers")
    assert "Green Haulers" in mock_send.call_args.args[2]

    mock_send.reset_mock()
    settings_service.update_setting(settings_service.EMAIL_NOTIFICATIONS, "off", admin)
    accepted, _ = notification_service.send_agent_approved("agent@pci.test", "Green Haulers")

    assert accepted is False
    mock_send.assert_not_called()
