"""
Alert Delivery Channels
Log, e-mail (SMTP) and Slack webhook notifiers. Delivery failures are logged
and reported on the returned Alert, never raised.
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import Any, Callable, Dict, Optional

import httpx

from ..core.config import NotificationConfig
from .messages import AlertMessage, AlertSeverity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Alert:
    """Record of one delivery attempt"""
    channel: str
    subject: str
    message: str
    severity: AlertSeverity
    timestamp: datetime
    recipient: Optional[str] = None
    delivered: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.channel,
            "to": self.recipient,
            "subject": self.subject,
            "message": self.message,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "delivered": self.delivered,
            "error": self.error,
        }


class Notifier(ABC):
    """Abstract base class for alert channels"""

    channel: str = "base"

    @abstractmethod
    def send(self, message: AlertMessage, recipient: Optional[str] = None) -> Alert:
        """Deliver a message and return the delivery record"""
        pass

    def _record(self, message: AlertMessage, recipient: Optional[str], delivered: bool,
                error: Optional[str] = None) -> Alert:
        return Alert(
            channel=self.channel,
            subject=message.subject,
            message=message.body,
            severity=message.severity,
            timestamp=datetime.now(timezone.utc),
            recipient=recipient,
            delivered=delivered,
            error=error,
        )


class LogNotifier(Notifier):
    """Writes alerts to the application log"""

    channel = "log"

    def send(self, message: AlertMessage, recipient: Optional[str] = None) -> Alert:
        level = logging.WARNING if message.severity in (AlertSeverity.WARNING, AlertSeverity.ERROR) else logging.INFO
        logger.log(level, f"{message.subject} (to: {recipient or 'log'})\n{message.body}")
        return self._record(message, recipient, delivered=True)


class EmailNotifier(Notifier):
    """Sends alerts over SMTP; only logs them when no SMTP host is configured"""

    channel = "email"

    def __init__(self, config: NotificationConfig, smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP):
        self.config = config
        self.smtp_factory = smtp_factory

    @property
    def configured(self) -> bool:
        return bool(self.config.smtp_host)

    def send(self, message: AlertMessage, recipient: Optional[str] = None) -> Alert:
        logger.info(f"Sending email alert to {recipient}: {message.subject}")

        if not self.configured:
            logger.info("SMTP not configured, email alert logged only")
            logger.debug(message.body)
            return self._record(message, recipient, delivered=False, error="smtp not configured")

        email = EmailMessage()
        email["Subject"] = message.subject
        email["From"] = self.config.from_email
        email["To"] = recipient
        email.set_content(message.body)

        try:
            with self.smtp_factory(self.config.smtp_host, self.config.smtp_port, timeout=30) as smtp:
                if self.config.smtp_tls:
                    smtp.starttls()
                if self.config.smtp_user and self.config.smtp_password:
                    smtp.login(self.config.smtp_user, self.config.smtp_password.get_secret_value())
                smtp.send_message(email)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email alert to {recipient}: {e}")
            return self._record(message, recipient, delivered=False, error=str(e))

        return self._record(message, recipient, delivered=True)


class SlackNotifier(Notifier):
    """Posts alerts to a Slack incoming webhook"""

    channel = "slack"

    COLORS = {
        AlertSeverity.INFO: "#36a64f",
        AlertSeverity.WARNING: "#ff9800",
        AlertSeverity.ERROR: "#f44336",
        AlertSeverity.SUCCESS: "#4caf50",
    }

    ICONS = {
        AlertSeverity.INFO: ":information_source:",
        AlertSeverity.WARNING: ":warning:",
        AlertSeverity.ERROR: ":x:",
        AlertSeverity.SUCCESS: ":white_check_mark:",
    }

    def __init__(self, webhook_url: Optional[str] = None, timeout: float = 10.0,
                 client: Optional[httpx.Client] = None):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.client = client

    def build_payload(self, message: AlertMessage) -> Dict[str, Any]:
        return {
            "attachments": [
                {
                    "color": self.COLORS[message.severity],
                    "author_name": "cloudspend",
                    "title": f"{self.ICONS[message.severity]} Cloud Cost Alert",
                    "text": message.body,
                    "footer": "cloudspend",
                    "ts": int(datetime.now(timezone.utc).timestamp()),
                }
            ]
        }

    def send(self, message: AlertMessage, recipient: Optional[str] = None) -> Alert:
        if not self.webhook_url:
            logger.warning("Slack webhook not configured")
            logger.info(f"Message: {message.subject}")
            return self._record(message, recipient, delivered=False, error="webhook not configured")

        try:
            if self.client is not None:
                response = self.client.post(self.webhook_url, json=self.build_payload(message),
                                            timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(self.webhook_url, json=self.build_payload(message))
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send Slack alert: {e}")
            return self._record(message, recipient, delivered=False, error=str(e))

        logger.info("Slack alert sent")
        return self._record(message, recipient, delivered=True)
