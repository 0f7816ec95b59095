# Overview: Customer notification port for online order status changes.

"""
Order notifications are sent after the order change has been committed.
A failed send is logged and otherwise ignored; it never changes order
state.

NOTIFIER config selects the implementation:
- "log" (default): LoggingNotifier, writes the message to the app log
- "webhook": WebhookNotifier, POSTs JSON to NOTIFICATION_WEBHOOK_URL
"""

from __future__ import annotations

import httpx
from flask import current_app

from agripos.time_utils import to_utc_z


TYPE_CONFIRMATION = "confirmation"
TYPE_CANCELLATION = "cancellation"
TYPE_READY = "ready"
TYPE_REMINDER = "reminder"


class Notifier:
    """Port for sending a message about an order to its customer."""

    def send_order_notification(
        self,
        *,
        order_id: int,
        notification_type: str,
        message: str,
        recipient_phone: str | None,
        channel: str,
        actor_id: int | None,
    ) -> bool:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    def send_order_notification(self, *, order_id, notification_type, message, recipient_phone, channel, actor_id):
        current_app.logger.info(
            "Order %s %s notification via %s to %s: %s",
            order_id,
            notification_type,
            channel,
            recipient_phone or "-",
            message,
        )
        return True


class WebhookNotifier(Notifier):
    """POST each notification as JSON to an HTTP endpoint."""

    def __init__(self, url: str, *, timeout: float = 5.0, transport: httpx.BaseTransport | None = None):
        if not url:
            raise ValueError("NOTIFICATION_WEBHOOK_URL is required for the webhook notifier")
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def send_order_notification(self, *, order_id, notification_type, message, recipient_phone, channel, actor_id):
        payload = {
            "order_id": order_id,
            "type": notification_type,
            "message": message,
            "recipient_phone": recipient_phone,
            "channel": channel,
            "sent_by": actor_id,
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(self.url, json=payload)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            current_app.logger.warning(
                "Order %s %s notification failed: %s", order_id, notification_type, exc
            )
            return False
        return True


def build_notification_message(order, notification_type: str) -> str:
    number = order.order_number
    if notification_type == TYPE_CONFIRMATION:
        msg = f"Your order {number} has been confirmed and is being prepared."
        ready = to_utc_z(order.estimated_ready_time)
        if ready:
            msg += f" Estimated ready time: {ready}."
        return msg
    if notification_type == TYPE_CANCELLATION:
        msg = f"Your order {number} has been cancelled."
        if order.cancellation_reason:
            msg += f" Reason: {order.cancellation_reason}."
        return msg
    if notification_type == TYPE_READY:
        if order.order_type == "delivery":
            return f"Your order {number} is packed and will be dispatched shortly."
        return f"Your order {number} is ready for pickup."
    if notification_type == TYPE_REMINDER:
        return f"Reminder: your order {number} is waiting for you."
    raise ValueError(f"Unknown notification type: {notification_type}")


def create_notifier(config) -> Notifier:
    kind = (config.get("NOTIFIER") or "log").lower()
    if kind == "webhook":
        return WebhookNotifier(
            config.get("NOTIFICATION_WEBHOOK_URL"),
            timeout=float(config.get("NOTIFICATION_TIMEOUT_SECONDS", 5)),
        )
    if kind == "log":
        return LoggingNotifier()
    raise ValueError(f"Unknown NOTIFIER: {kind}")


def get_notifier() -> Notifier:
    notifier = current_app.extensions.get("agripos.notifier")
    if notifier is None:
        notifier = create_notifier(current_app.config)
        current_app.extensions["agripos.notifier"] = notifier
    return notifier


def notify_order(order, notification_type: str, actor_id: int | None = None) -> bool:
    """Send a notification for an order; failures are logged, never raised."""
    try:
        return get_notifier().send_order_notification(
            order_id=order.id,
            notification_type=notification_type,
            message=build_notification_message(order, notification_type),
            recipient_phone=order.customer_phone,
            channel=current_app.config.get("NOTIFICATION_CHANNEL", "sms"),
            actor_id=actor_id,
        )
    except Exception:  # noqa: BLE001
        current_app.logger.exception("Order %s %s notification failed", order.id, notification_type)
        return False
