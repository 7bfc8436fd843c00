"""
Клиент внешнего сервиса уведомлений.

Доставка уведомлений (push, SMS) - не наша забота: мы только отправляем событие.
Ошибка отправки никогда не отменяет операцию, которая её вызвала.
"""
import logging
from typing import Iterable, Optional

import httpx

from ..db.orders import Order
from ..db.people import Role

logger = logging.getLogger(__name__)

# Получатель без id - вся группа (например, все админы)
ADMINS = [{"role": Role.ADMIN.value}]


def _recipients(role: Role, ids: Iterable[int]) -> list[dict]:
    return [{"role": role.value, "id": rid} for rid in ids]


class Notifier:
    def __init__(self, base_url: Optional[str], timeout: float = 5.0, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport

    def _send(self, event_type: str, recipients: list[dict], payload: dict) -> bool:
        if not recipients:
            return False
        if not self.base_url:
            logger.debug(f"Notification service not configured, skipping {event_type}")
            return False
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
                r = client.post(
                    "/v1/notifications",
                    json={"event_type": event_type, "recipients": recipients, "data": payload},
                )
                r.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.warning(f"Failed to send {event_type} notification: {e}")
            return False

    def new_delivery_order(self, order: Order, staff_ids: Iterable[int]) -> bool:
        return self._send("delivery.order_available", _recipients(Role.DELIVERY, staff_ids), _order_payload(order))

    def order_taken(self, order_id: int, staff_id: int) -> bool:
        return self._send("delivery.order_taken", _recipients(Role.DELIVERY, [staff_id]), {"order_id": order_id})

    def delivery_escalated(self, order: Order, staff_ids: Iterable[int]) -> bool:
        recipients = _recipients(Role.DELIVERY, staff_ids) + ADMINS
        return self._send("delivery.order_escalated", recipients, _order_payload(order))

    def new_cook_order(self, order: Order, cook_ids: Iterable[int]) -> bool:
        return self._send("cook.order_assigned", _recipients(Role.COOK, cook_ids), _order_payload(order))

    def cook_auto_rejected(self, order: Order, cook_id: int) -> bool:
        payload = {**_order_payload(order), "cook_id": cook_id}
        return self._send("cook.assignment_auto_rejected", ADMINS, payload)


def _order_payload(order: Order) -> dict:
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "service_type": order.service_type.value,
        "panchayat_id": order.panchayat_id,
        "ward_number": order.ward_number,
    }
