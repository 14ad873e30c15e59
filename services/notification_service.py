import logging
import threading

import config
from infrastructure.messaging.email_provider import BrevoEmailProvider
from services import settings_service

log = logging.getLogger(__name__)

_email_provider = None


def get_email_provider() -> BrevoEmailProvider:
    global _email_provider
    if _email_provider is None:
        _email_provider = BrevoEmailProvider()
    return _email_provider


def _sender() -> dict:
    return {
        "email": config.get_secret("MAIL_SENDER", "noreply@pci.local"),
        "name": "PCI Plastic Collection",
    }


def send_email(to_email, subject, html, background=True):
    """
    Sends an e-mail, by default on a daemon thread so the UI never waits on it.
    Returns (accepted, message) where accepted means "handed to the provider".
    """
    api_key = config.get_secret("BREVO_API_KEY")
    if not api_key:
        log.warning(f"BREVO_API_KEY not configured; skipping e-mail '{subject}'")
        return False, "E-mail delivery is not configured."

    if not background:
        return get_email_provider().send_message(api_key, _sender(), to_email, subject, html)

    def background_send():
        get_email_provider().send_message(api_key, _sender(), to_email, subject, html)

    t = threading.Thread(target=background_send, daemon=True)
    t.start()
    return True, "E-mail queued."


def send_password_reset(to_email, token):
    base_url = config.get_secret("APP_BASE_URL", "http://localhost:8501")
    link = f"{base_url}/?page=/login&reset_token={token}"
    html = (
        "<p>We received a request to reset your PCI password.</p>"
        f"<p><a href=\"{link}\">Choose a new password</a>. "
        f"The link expires in {config.PASSWORD_RESET_TTL_MINUTES} minutes.</p>"
        "<p>If you did not ask for this, you can ignore this e-mail.</p>"
    )
    # Password resets are account security mail and ignore the notifications toggle.
    return send_email(to_email, "Reset your PCI password", html)


def send_agent_approved(to_email, display_name):
    if not settings_service.get_email_notifications():
        return False, "E-mail notifications are disabled."
    html = (
        f"<p>Hello {display_name},</p>"
        "<p>Your collection agent account has been approved. "
        "You can now sign in and start reviewing waste reports.</p>"
    )
    return send_email(to_email, "Your PCI agent account is approved", html)
