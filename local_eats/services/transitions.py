"""
Таблицы переходов для трёх независимых осей статуса заказа.

Переход разрешён только на ровно следующий статус по таблице.
Исключения: отмена заказа (из любого статуса до `delivered`)
и отказ повара (только из `pending`).
"""
from typing import Optional, TypeVar

from ..db.orders import CookStatus, DeliveryStatus, OrderStatus
from .errors import InvalidTransition

S = TypeVar("S")

OVERALL_FLOW = {
    OrderStatus.PENDING: OrderStatus.CONFIRMED,
    OrderStatus.CONFIRMED: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.READY,
    OrderStatus.READY: OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.OUT_FOR_DELIVERY: OrderStatus.DELIVERED,
}

COOK_FLOW = {
    CookStatus.PENDING: CookStatus.ACCEPTED,
    CookStatus.ACCEPTED: CookStatus.PREPARING,
    CookStatus.PREPARING: CookStatus.COOKED,
    CookStatus.COOKED: CookStatus.READY,
}

DELIVERY_FLOW = {
    DeliveryStatus.PENDING: DeliveryStatus.ASSIGNED,
    DeliveryStatus.ASSIGNED: DeliveryStatus.PICKED_UP,
    DeliveryStatus.PICKED_UP: DeliveryStatus.DELIVERED,
}

COOK_REJECTIONS = (CookStatus.REJECTED, CookStatus.AUTO_REJECTED)

# Порядок продвижения, нужен для агрегатов и синхронизации общего статуса
OVERALL_ORDER = [OrderStatus.PENDING, *OVERALL_FLOW.values()]
COOK_ORDER = [CookStatus.PENDING, *COOK_FLOW.values()]


def next_status(flow: dict, current: S) -> Optional[S]:
    return flow.get(current)


def check_overall_transition(current: OrderStatus, new: OrderStatus) -> None:
    if new == OrderStatus.CANCELLED:
        if current in (OrderStatus.DELIVERED, OrderStatus.CANCELLED):
            raise InvalidTransition(f"Order cannot be cancelled from '{current.value}'", field="status")
        return
    _check_successor(OVERALL_FLOW, current, new, "status")


def check_cook_transition(current: CookStatus, new: CookStatus) -> None:
    if new in COOK_REJECTIONS:
        if current != CookStatus.PENDING:
            raise InvalidTransition(f"Cook can only reject a pending assignment, not '{current.value}'", field="cook_status")
        return
    _check_successor(COOK_FLOW, current, new, "cook_status")


def check_delivery_transition(current: DeliveryStatus, new: DeliveryStatus) -> None:
    _check_successor(DELIVERY_FLOW, current, new, "delivery_status")


def _check_successor(flow: dict, current, new, field: str) -> None:
    expected = flow.get(current)
    if expected is None:
        raise InvalidTransition(f"'{current.value}' is a final status", field=field)
    if new != expected:
        raise InvalidTransition(
            f"Cannot move from '{current.value}' to '{new.value}', expected '{expected.value}'",
            field=field,
        )


def overall_at_least(current: OrderStatus, target: OrderStatus) -> bool:
    if current == OrderStatus.CANCELLED:
        return False
    return OVERALL_ORDER.index(current) >= OVERALL_ORDER.index(target)


def overall_path(current: OrderStatus, target: OrderStatus) -> list[OrderStatus]:
    """Шаги, по которым общий статус продвигается от current до target (без current)."""
    if current == OrderStatus.CANCELLED or overall_at_least(current, target):
        return []
    start = OVERALL_ORDER.index(current)
    end = OVERALL_ORDER.index(target)
    return OVERALL_ORDER[start + 1:end + 1]


def aggregate_cook_status(statuses: list[CookStatus]) -> CookStatus:
    """Статус кухни по заказу: наименее продвинутый среди активных назначений."""
    active = [s for s in statuses if s not in COOK_REJECTIONS]
    if not active:
        return CookStatus.PENDING
    return min(active, key=COOK_ORDER.index)
