"""Notification modules for alerting."""

from .slack import (
    format_batch_digest,
    format_single_alert,
    send_slack_alert,
    send_slack_batch,
    send_slack_message,
)

__all__ = [
    "format_batch_digest",
    "format_single_alert",
    "send_slack_alert",
    "send_slack_batch",
    "send_slack_message",
]
