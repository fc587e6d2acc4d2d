"""
Admin alert sinks.

send_alert() is fire-and-forget from the caller's point of view: the
verification service logs a failed delivery and carries on. Sinks raise
AlertDeliveryError so the failure is visible in that log line.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.exceptions import AlertDeliveryError
from models.notification import Notification

logger = logging.getLogger(__name__)


class AlertSink(ABC):
    @abstractmethod
    async def send_alert(
        self,
        kind: str,
        title: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        pass


class LoggingAlertSink(AlertSink):
    """Writes the alert to the application log. Used when nothing else is configured."""

    async def send_alert(self, kind, title, message, details=None):
        logger.warning(f"[{kind}] {title}: {message}", extra={"alert_details": details or {}})


class NotificationAlertSink(AlertSink):
    """Stores the alert as a Notification row for admin users."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def send_alert(self, kind, title, message, details=None):
        try:
            self.db.add(Notification(
                kind=kind,
                title=title,
                message=message,
                details=details,
                read=False,
                created_at=datetime.utcnow(),
            ))
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            raise AlertDeliveryError(
                "Failed to store notification",
                context={"kind": kind, "title": title},
                original_exception=e
            )


class WebhookAlertSink(AlertSink):
    """POSTs the alert as JSON to a webhook URL."""

    def __init__(self, url: str, http_client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self.url = url
        self.http_client = http_client
        self.timeout = timeout

    async def send_alert(self, kind, title, message, details=None):
        payload = {
            "kind": kind,
            "title": title,
            "message": message,
            "details": details or {},
            "timestamp": datetime.utcnow().isoformat(),
        }
        try:
            if self.http_client is not None:
                response = await self.http_client.post(self.url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise AlertDeliveryError(
                f"Webhook delivery failed: {e}",
                context={"url": self.url, "kind": kind},
                original_exception=e
            )


class CompositeAlertSink(AlertSink):
    """
    Fan an alert out to several sinks.

    Every sink is tried; if any of them failed, one AlertDeliveryError
    listing the failures is raised afterwards.
    """

    def __init__(self, sinks: List[AlertSink]):
        self.sinks = sinks

    async def send_alert(self, kind, title, message, details=None):
        failures = []
        for sink in self.sinks:
            try:
                await sink.send_alert(kind, title, message, details)
            except AlertDeliveryError as e:
                logger.error(f"{type(sink).__name__} failed: {e.message}")
                failures.append(f"{type(sink).__name__}: {e.message}")

        if failures:
            raise AlertDeliveryError(
                f"{len(failures)} of {len(self.sinks)} alert sinks failed",
                context={"failures": failures}
            )


def build_alert_sink(db_session: AsyncSession) -> AlertSink:
    """Notification rows always; the webhook too when ALERT_WEBHOOK_URL is set."""
    sinks: List[AlertSink] = [NotificationAlertSink(db_session)]
    if settings.ALERT_WEBHOOK_URL:
        sinks.append(WebhookAlertSink(settings.ALERT_WEBHOOK_URL))
    return CompositeAlertSink(sinks)
