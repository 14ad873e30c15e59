import logging

import requests

log = logging.getLogger(__name__)

BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"
API_TIMEOUT = 10


class BrevoEmailProvider:
    def send_message(self, api_key: str, sender: dict, to_email: str, subject: str, html: str) -> tuple[bool, str]:
        """
        Sends a transactional e-mail through the Brevo API.
        Returns a tuple of (success_boolean, status_message).
        """
        if not api_key or not to_email:
            return False, "Missing API key or recipient."

        headers = {
            "api-key": api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        payload = {
            "sender": sender,
            "to": [{"email": to_email}],
            "subject": subject,
            "htmlContent": html,
        }

        try:
            response = requests.post(BREVO_API_URL, json=payload, headers=headers, timeout=API_TIMEOUT)
            if response.status_code in (200, 201, 202):
                return True, "E-mail sent."
            log.error(f"Brevo rejected e-mail to {to_email}: {response.status_code} {response.text}")
            return False, f"Brevo error: {response.text}"
        except Exception as e:
            log.error(f"Network error while sending e-mail to {to_email}: {e}")
            return False, f"Network error: {str(e)}"
