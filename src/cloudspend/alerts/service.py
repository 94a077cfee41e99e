"""Alert dispatch: renders messages and fans them out to the configured channels"""

import logging
from typing import List, Optional, Sequence, Tuple

from ..core.config import NotificationConfig
from ..core.monitoring import MetricsCollector
from .messages import AlertMessage, render_budget_alert, render_spike_alert, render_summary_alert
from .notifiers import Alert, EmailNotifier, LogNotifier, Notifier, SlackNotifier

logger = logging.getLogger(__name__)


class AlertService:
    """
    Sends budget, spike and summary alerts.

    Budget and spike alerts go to every recipient by e-mail plus one Slack
    message; summaries are e-mail only.
    """

    def __init__(self, email: Optional[Notifier] = None, slack: Optional[Notifier] = None,
                 default_recipients: Sequence[str] = ("admin@company.com",),
                 metrics: Optional[MetricsCollector] = None):
        self.email = email or LogNotifier()
        self.slack = slack
        self.default_recipients = list(default_recipients)
        self.metrics = metrics

    @classmethod
    def from_config(cls, config: NotificationConfig,
                    metrics: Optional[MetricsCollector] = None) -> "AlertService":
        """Build the service from notification settings"""
        email: Notifier = EmailNotifier(config) if config.email_enabled else LogNotifier()
        webhook = config.slack_webhook.get_secret_value() if config.slack_webhook else None
        return cls(
            email=email,
            slack=SlackNotifier(webhook, timeout=config.slack_timeout),
            default_recipients=config.default_recipients,
            metrics=metrics,
        )

    def send_budget_alert(self, budget_name: str, budget_amount: float, current_spend: float,
                          percentage_used: float, threshold: float,
                          recipients: Optional[Sequence[str]] = None,
                          cloud_provider: Optional[str] = None) -> List[Alert]:
        message = render_budget_alert(budget_name, budget_amount, current_spend,
                                      percentage_used, threshold, cloud_provider)
        return self._dispatch(message, recipients, include_slack=True)

    def send_spike_alert(self, service_name: str, cloud_provider: Optional[str], current_cost: float,
                         average_cost: float, spike_percentage: float,
                         recipients: Optional[Sequence[str]] = None) -> List[Alert]:
        message = render_spike_alert(service_name, cloud_provider, current_cost,
                                     average_cost, spike_percentage)
        return self._dispatch(message, recipients, include_slack=True)

    def send_summary_alert(self, period: str, total_spend: float, budget_amount: float,
                           top_services: Sequence[Tuple[str, float]], recommendations: int = 0,
                           recipients: Optional[Sequence[str]] = None) -> List[Alert]:
        message = render_summary_alert(period, total_spend, budget_amount, top_services, recommendations)
        return self._dispatch(message, recipients, include_slack=False)

    def _dispatch(self, message: AlertMessage, recipients: Optional[Sequence[str]],
                  include_slack: bool) -> List[Alert]:
        alerts = []
        for recipient in (recipients or self.default_recipients):
            alerts.append(self.email.send(message, recipient))

        if include_slack and self.slack is not None:
            alerts.append(self.slack.send(message))

        if self.metrics:
            for alert in alerts:
                self.metrics.increment_counter("alerts.sent", tags={
                    "channel": alert.channel,
                    "delivered": str(alert.delivered).lower(),
                })

        return alerts
