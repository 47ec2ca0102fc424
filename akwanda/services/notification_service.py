"""Notification emission.

Delivery (email, push, SMS, in-app) belongs to the notification service;
this engine only hands events to a sink. Services queue events on the
database session; they are sent once that session commits and dropped if it
rolls back. Emission is best-effort: a failing sink is logged and never
propagates to the caller.
"""

import logging
from typing import Any, Protocol

import httpx
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession

from akwanda.config import settings

logger = logging.getLogger(__name__)

OUTBOX_KEY = "pending_notifications"


class NotificationSink(Protocol):
    """Anything that can deliver a notification event."""

    async def send(self, kind: str, recipient: str, payload: dict[str, Any]) -> None: ...


class LoggingNotificationSink:
    """Sink used when no webhook is configured."""

    async def send(self, kind: str, recipient: str, payload: dict[str, Any]) -> None:
        logger.info("Notification %s for %s: %s", kind, recipient, payload)


class WebhookNotificationSink:
    """POST each event as JSON to the notification service."""

    def __init__(self, url: str, timeout: float = 5.0) -> None:
        self.url = url
        self.timeout = timeout
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def send(self, kind: str, recipient: str, payload: dict[str, Any]) -> None:
        response = await self.http_client.post(
            self.url,
            json={"kind": kind, "recipient": recipient, "payload": jsonable_encoder(payload)},
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None


class NotificationService:
    """Fire-and-forget notification fan-out."""

    # Notification kinds
    BOOKING_CREATED = "booking_created"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_CANCELLED = "booking_cancelled"
    PAYMENT_RECEIVED = "payment_received"
    COMMISSION_DUE = "commission_due"
    DUES_CLEARED = "dues_cleared"
    DUES_PARTIAL = "dues_partial"
    DUES_REMINDER = "dues_reminder"
    REVIEW_REMINDER = "review_reminder"
    ACCOUNT_BLOCKED = "account_blocked"
    ACCOUNT_REACTIVATED = "account_reactivated"

    def __init__(self, sink: NotificationSink | None = None) -> None:
        self._sink = sink

    @property
    def sink(self) -> NotificationSink:
        """Lazy-build the sink from settings."""
        if self._sink is None:
            if settings.notification_webhook_url:
                self._sink = WebhookNotificationSink(
                    settings.notification_webhook_url,
                    timeout=settings.notification_timeout_seconds,
                )
            else:
                self._sink = LoggingNotificationSink()
        return self._sink

    def use_sink(self, sink: NotificationSink | None) -> None:
        """Replace the sink; ``None`` rebuilds it from settings on next use."""
        self._sink = sink

    async def notify(
        self,
        kind: str,
        recipient: Any,
        payload: dict[str, Any] | None = None,
    ) -> bool:
        """Emit one event.

        Args:
            kind: Notification kind (one of the class constants)
            recipient: User ID or address of the recipient
            payload: Event data

        Returns:
            bool: False if the sink failed (the failure is logged)
        """
        try:
            await self.sink.send(kind, str(recipient), payload or {})
        except Exception:
            logger.warning("Failed to emit %s notification to %s", kind, recipient, exc_info=True)
            return False
        return True

    # ==================== TRANSACTIONAL OUTBOX ====================

    def queue(
        self,
        db: AsyncSession,
        kind: str,
        recipient: Any,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Hold an event on the session until its transaction commits."""
        db.info.setdefault(OUTBOX_KEY, []).append((kind, str(recipient), payload or {}))

    def queue_platform(
        self, db: AsyncSession, kind: str, payload: dict[str, Any] | None = None
    ) -> None:
        """Queue an event addressed to the platform finance admins."""
        self.queue(db, kind, settings.platform_admin_email, payload)

    def pending(self, db: AsyncSession) -> list[tuple[str, str, dict[str, Any]]]:
        return list(db.info.get(OUTBOX_KEY, []))

    async def dispatch(self, db: AsyncSession) -> int:
        """Send the events queued on a committed session.

        Returns:
            int: Number of events the sink accepted
        """
        sent = 0
        for kind, recipient, payload in db.info.pop(OUTBOX_KEY, []):
            if await self.notify(kind, recipient, payload):
                sent += 1
        return sent

    def discard(self, db: AsyncSession) -> int:
        """Drop the events of a rolled-back session."""
        dropped = db.info.pop(OUTBOX_KEY, [])
        if dropped:
            logger.info("Dropped %d notifications from a rolled-back transaction", len(dropped))
        return len(dropped)

    async def close(self) -> None:
        close = getattr(self._sink, "close", None)
        if close is not None:
            await close()


# Singleton instance
notification_service = NotificationService()
