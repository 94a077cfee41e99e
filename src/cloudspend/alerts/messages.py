"""
Alert Message Templates
Renders budget, spike and summary notifications with Jinja2.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from jinja2 import Template


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


@dataclass(frozen=True)
class AlertMessage:
    """A rendered notification ready for delivery"""
    subject: str
    body: str
    severity: AlertSeverity = AlertSeverity.INFO


BUDGET_TEMPLATE = Template("""*Budget Alert Notification*

*Budget:* {{ budget_name }}
*Cloud Provider:* {{ provider }}
*Budget Amount:* ${{ '%.2f' | format(budget_amount) }}
*Current Spend:* ${{ '%.2f' | format(current_spend) }}
*Usage:* {{ '%.1f' | format(percentage_used) }}%
*Threshold:* {{ threshold }}%

Your cloud spending has crossed the {{ threshold }}% threshold!

*Recommended Actions:*
{% for action in actions %}- {{ action }}
{% endfor %}
_This is an automated alert from cloudspend_""")

SPIKE_TEMPLATE = Template("""*Cost Spike Alert*

*Sudden increase in cloud costs detected!*

*Service:* {{ service_name }}
*Cloud Provider:* {{ provider }}
*Current Cost:* ${{ '%.2f' | format(current_cost) }}
*Average Cost:* ${{ '%.2f' | format(average_cost) }}
*Increase:* {{ '%.1f' | format(spike_percentage) }}%

*Possible Causes:*
{% for cause in causes %}- {{ cause }}
{% endfor %}
*Recommended Actions:*
{% for action in actions %}- {{ action }}
{% endfor %}
_This is an automated alert from cloudspend_""")

SUMMARY_TEMPLATE = Template("""*Cloud Cost Summary - {{ period }}*

*Total Spend:* ${{ '%.2f' | format(total_spend) }}
*Budget:* ${{ '%.2f' | format(budget_amount) }}
*Remaining:* ${{ '%.2f' | format(budget_amount - total_spend) }}
*Usage:* {{ '%.1f' | format(usage) }}%

*Top Spending Services:*
{% for name, cost in top_services %}{{ loop.index }}. {{ name }}: ${{ '%.2f' | format(cost) }}
{% endfor %}
*Active Recommendations:* {{ recommendations }}

_This is an automated summary from cloudspend_""")

BUDGET_ACTIONS = [
    "Review recent resource deployments",
    "Check for unused or idle resources",
    "Consider rightsizing underutilized instances",
    "Review the recommendations report for optimization opportunities",
]

SPIKE_CAUSES = [
    "New resources deployed",
    "Traffic spike",
    "Misconfigured auto-scaling",
    "Runaway processes",
    "Data transfer charges",
]

SPIKE_ACTIONS = [
    "Investigate recent changes to this service",
    "Check provider monitoring metrics",
    "Review resource utilization",
    "Verify no unintended deployments",
]


def _provider_label(provider: Optional[str]) -> str:
    if not provider or provider == "all":
        return "All"
    return provider.upper()


def render_budget_alert(budget_name: str, budget_amount: float, current_spend: float,
                        percentage_used: float, threshold: float,
                        cloud_provider: Optional[str] = None) -> AlertMessage:
    body = BUDGET_TEMPLATE.render(
        budget_name=budget_name,
        provider=_provider_label(cloud_provider),
        budget_amount=budget_amount,
        current_spend=current_spend,
        percentage_used=percentage_used,
        threshold=f"{threshold:g}",
        actions=BUDGET_ACTIONS,
    )
    return AlertMessage(
        subject=f"Budget Alert: {budget_name} - {percentage_used:.1f}% Used",
        body=body,
        severity=AlertSeverity.ERROR if percentage_used >= 100 else AlertSeverity.WARNING,
    )


def render_spike_alert(service_name: str, cloud_provider: Optional[str], current_cost: float,
                       average_cost: float, spike_percentage: float) -> AlertMessage:
    body = SPIKE_TEMPLATE.render(
        service_name=service_name,
        provider=_provider_label(cloud_provider),
        current_cost=current_cost,
        average_cost=average_cost,
        spike_percentage=spike_percentage,
        causes=SPIKE_CAUSES,
        actions=SPIKE_ACTIONS,
    )
    return AlertMessage(
        subject=f"Cost Spike Detected: {service_name} ({_provider_label(cloud_provider)})",
        body=body,
        severity=AlertSeverity.ERROR,
    )


def render_summary_alert(period: str, total_spend: float, budget_amount: float,
                         top_services: Sequence[Tuple[str, float]],
                         recommendations: int = 0) -> AlertMessage:
    usage = total_spend / budget_amount * 100 if budget_amount > 0 else 0.0
    body = SUMMARY_TEMPLATE.render(
        period=period,
        total_spend=total_spend,
        budget_amount=budget_amount,
        usage=usage,
        top_services=list(top_services)[:5],
        recommendations=recommendations,
    )
    return AlertMessage(subject=f"Cloud Cost Summary - {period}", body=body)
