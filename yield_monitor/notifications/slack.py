"""
Slack Notification Module - send yield alerts to a Slack webhook.

Features:
- Single alert as a colored attachment
- Several alerts as one block digest
- Failures are logged, never raised to the caller
"""

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

import requests

from ..config.settings import ALERT_CONFIG
from ..core.models import Alert

logger = logging.getLogger(__name__)

# Severity colors for Slack
SEVERITY_COLORS = {
    "critical": "#FF0000",  # Red
    "high": "#FF6600",      # Dark orange
    "medium": "#FFA500",    # Orange
    "low": "#0000FF",       # Blue
}

SEVERITY_EMOJIS = {
    "critical": ":rotating_light:",
    "high": ":warning:",
    "medium": ":large_orange_diamond:",
    "low": ":information_source:",
}

DIGEST_LIMIT = 10


def format_single_alert(alert: Alert) -> Dict:
    """
    Format a single alert as a Slack attachment.

    Args:
        alert: Triggered alert

    Returns:
        Slack attachment dict
    """
    data = alert.to_dict()
    severity = data["severity"]
    emoji = SEVERITY_EMOJIS.get(severity, ":bell:")

    fields = [
        {"title": "Pool", "value": data["pool_id"], "short": False},
        {"title": "Type", "value": data["alert_type"], "short": True},
        {"title": "Change", "value": f"{data['change_percent']:.4f}%", "short": True},
        {"title": "Threshold", "value": f"{data['threshold_breached']}%", "short": True},
        {"title": "Block", "value": str(data["block_number"]), "short": True},
    ]

    return {
        "color": SEVERITY_COLORS.get(severity, "#808080"),
        "title": f"{emoji} {severity.upper()} Alert",
        "text": data["message"],
        "fields": fields,
        "footer": "Yield Monitor",
        "ts": int(datetime.now(timezone.utc).timestamp()),
    }


def format_batch_digest(alerts: List[Alert]) -> Dict:
    """
    Format multiple alerts as a digest message.

    Args:
        alerts: Triggered alerts

    Returns:
        Slack message payload
    """
    counts: Dict[str, int] = {}
    for alert in alerts:
        counts[alert.severity.value] = counts.get(alert.severity.value, 0) + 1

    summary = " | ".join(
        f"{SEVERITY_EMOJIS[severity]} {counts[severity]} {severity.capitalize()}"
        for severity in SEVERITY_COLORS
        if counts.get(severity)
    )

    blocks = [
        {
            "type": "header",
            "text": {
                "type": "plain_text",
                "text": f"Yield Alert Digest ({len(alerts)} alerts)",
                "emoji": True
            }
        },
        {"type": "section", "text": {"type": "mrkdwn", "text": summary}},
        {"type": "divider"},
    ]

    for alert in alerts[:DIGEST_LIMIT]:
        emoji = SEVERITY_EMOJIS.get(alert.severity.value, ":bell:")
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f"{emoji} *{alert.pool_id}* - {alert.alert_type.value}\n{alert.message}"
            }
        })

    if len(alerts) > DIGEST_LIMIT:
        blocks.append({
            "type": "context",
            "elements": [
                {"type": "mrkdwn", "text": f"_...and {len(alerts) - DIGEST_LIMIT} more alerts_"}
            ]
        })

    return {"blocks": blocks}


def send_slack_message(payload: Dict, webhook_url: Optional[str] = None) -> bool:
    """
    Post a payload to the Slack webhook.

    Returns:
        True if Slack accepted the message
    """
    webhook_url = webhook_url or ALERT_CONFIG.get("slack_webhook")
    if not webhook_url:
        logger.warning("SLACK_WEBHOOK_URL not configured")
        return False

    try:
        response = requests.post(
            webhook_url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=10
        )
        response.raise_for_status()
        return True
    except requests.exceptions.RequestException as e:
        logger.error(f"Slack send error: {e}")
        return False


def send_slack_alert(alert: Alert, webhook_url: Optional[str] = None) -> bool:
    """Send one alert as an attachment."""
    return send_slack_message({"attachments": [format_single_alert(alert)]}, webhook_url)


def send_slack_batch(alerts: Iterable[Alert], webhook_url: Optional[str] = None) -> bool:
    """
    Send alerts to Slack, one attachment for a single alert, a digest otherwise.

    Returns:
        True if successful (also for an empty batch)
    """
    alerts = list(alerts)
    if not alerts:
        return True

    if len(alerts) == 1:
        return send_slack_alert(alerts[0], webhook_url)

    return send_slack_message(format_batch_digest(alerts), webhook_url)
