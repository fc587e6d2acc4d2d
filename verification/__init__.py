"""
Data verification: sampled comparison of stored records with gomafia.pro
and admin alerting when accuracy drops.
"""

from verification.alerts import (
    AlertSink,
    CompositeAlertSink,
    LoggingAlertSink,
    NotificationAlertSink,
    WebhookAlertSink,
    build_alert_sink,
)
from verification.service import DataVerificationService

__all__ = [
    "AlertSink",
    "CompositeAlertSink",
    "LoggingAlertSink",
    "NotificationAlertSink",
    "WebhookAlertSink",
    "build_alert_sink",
    "DataVerificationService",
]
