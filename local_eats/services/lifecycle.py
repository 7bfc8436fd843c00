"""
Общие шаги жизненного цикла заказа, которыми пользуются все координаторы.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select

from ..db.orders import CookStatus, DeliveryStatus, Order, OrderStatus
from ..db.people import DeliveryStaff
from .errors import DuplicateCredit, InvalidTransition, NotFound
from .transitions import overall_path
from .wallet import credit_delivery

logger = logging.getLogger(__name__)


def get_order(session: Session, order_id: int) -> Order:
    order = session.get(Order, order_id)
    if not order:
        raise NotFound(f"Order {order_id} not found")
    return order


def lock_order(session: Session, order_id: int) -> Order:
    """Перечитывает заказ с блокировкой строки до конца транзакции."""
    order = session.exec(
        select(Order)
        .where(Order.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()
    if not order:
        raise NotFound(f"Order {order_id} not found")
    return order


def stamp_overall(order: Order, status: OrderStatus, now: datetime) -> None:
    order.status = status
    setattr(order, f"{status.value}_at", now)
    order.updated_at = now


def advance_overall(order: Order, target: OrderStatus, now: datetime) -> list[OrderStatus]:
    """Системное продвижение общего статуса вперёд (никогда не назад)."""
    steps = overall_path(order.status, target)
    for step in steps:
        stamp_overall(order, step, now)
    if steps:
        logger.info(f"Order {order.id} overall status advanced to {target.value}")
    return steps


def complete_delivery(
    session: Session,
    order: Order,
    from_delivery_status: DeliveryStatus,
    now: Optional[datetime] = None,
) -> Order:
    """
    Переводит заказ в `delivered` и зачисляет деньги в кошелёк доставщика.

    Условный UPDATE гарантирует, что переход (а значит и зачисление)
    произойдёт ровно один раз, даже при повторных или параллельных вызовах.
    Не коммитит: вызывающий коммитит всё вместе.
    """
    now = now or datetime.now()
    result = session.exec(
        update(Order)
        .where(
            Order.id == order.id,
            Order.status == OrderStatus.OUT_FOR_DELIVERY,
            Order.delivery_status == from_delivery_status,
            Order.cook_status == CookStatus.READY,
        )
        .values(
            status=OrderStatus.DELIVERED,
            delivery_status=DeliveryStatus.DELIVERED,
            delivered_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.refresh(order)
        if order.status == OrderStatus.DELIVERED:
            raise DuplicateCredit(f"Order {order.id} is already delivered")
        raise InvalidTransition(
            f"Order {order.id} cannot be delivered from status '{order.status.value}', "
            f"delivery '{order.delivery_status.value}', kitchen '{order.cook_status.value}'",
            field="status",
        )

    session.refresh(order)
    if order.assigned_delivery_id is not None:
        credit_delivery(session, order, now)
        session.exec(
            update(DeliveryStaff)
            .where(DeliveryStaff.id == order.assigned_delivery_id)
            .values(total_deliveries=DeliveryStaff.total_deliveries + 1)
            .execution_options(synchronize_session=False)
        )
    logger.info(f"Order {order.id} delivered")
    return order
