# ========================
# src/utils/alerting.py
# ========================

"""
Alert Delivery

Best-effort email alerts for run success and failure. Delivery happens on a
detached thread: the caller never waits for it and never sees its errors.
"""

import logging
import smtplib
import threading
from email.message import EmailMessage
from typing import Optional

from .config import Config

logger = logging.getLogger(__name__)


class AlertNotifier:
    """Sends pipeline alerts by email, fire-and-forget."""

    def __init__(self, config: Config):
        self.config = config

    def send_alert(self, subject: str, body: str) -> Optional[threading.Thread]:
        """
        Dispatch an alert without blocking.

        Args:
            subject (str): Email subject
            body (str): Email body

        Returns:
            Thread or None: The delivery thread, or None when alerts are disabled
        """
        if not self.config.alerts_enabled():
            logger.info("Skipping email alert: SMTP host or recipient not configured.")
            return None

        thread = threading.Thread(
            target=self._deliver,
            args=(subject, body),
            name=f"alert-{subject}",
        )
        thread.start()
        return thread

    def _deliver(self, subject: str, body: str) -> None:
        message = EmailMessage()
        message['Subject'] = subject
        message['From'] = self.config.ALERT_SENDER
        message['To'] = self.config.ALERT_EMAIL
        message.set_content(body)

        try:
            with smtplib.SMTP(self.config.SMTP_HOST,
                              self.config.SMTP_PORT,
                              timeout=self.config.SMTP_TIMEOUT) as smtp:
                smtp.send_message(message)
            logger.info(f"Alert email sent: {subject}")
        except (smtplib.SMTPException, OSError) as e:
            # Delivery failure never changes the run's outcome
            logger.warning(f"Alert email '{subject}' could not be sent: {e}")
