"""
Назначение поваров на позиции заказа.

Заказ может делиться между несколькими поварами: у каждого своё назначение
со своим статусом, и назначения друг на друга не влияют. Статус кухни на
уровне заказа - агрегат по активным назначениям.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select

from ..db.cooking import CookAssignment
from ..db.orders import (
    CookAssignmentStatus,
    CookStatus,
    DeliveryStatus,
    Order,
    OrderItem,
    OrderStatus,
    POOL_DELIVERY_SERVICES,
)
from ..db.people import Cook, Role
from .access import Actor, require_role
from .delivery_claim import publish_order
from .errors import InvalidTransition, NotFound, PermissionDenied, ValidationFailed
from .lifecycle import advance_overall, get_order, lock_order
from .notifications import Notifier
from .transitions import COOK_REJECTIONS, aggregate_cook_status, check_cook_transition

logger = logging.getLogger(__name__)

# Какой общий статус следует из статуса кухни
OVERALL_FOR_COOK = {
    CookStatus.ACCEPTED: OrderStatus.CONFIRMED,
    CookStatus.PREPARING: OrderStatus.PREPARING,
    CookStatus.COOKED: OrderStatus.PREPARING,
    CookStatus.READY: OrderStatus.READY,
}

RESPONSE_STATUSES = (CookStatus.ACCEPTED, *COOK_REJECTIONS)


def order_assignments(session: Session, order_id: int) -> list[CookAssignment]:
    return list(session.exec(
        select(CookAssignment)
        .where(CookAssignment.order_id == order_id)
        .order_by(CookAssignment.id)
        .execution_options(populate_existing=True)
    ))


def refresh_cook_aggregate(session: Session, order: Order, now: datetime) -> bool:
    """
    Пересчитывает cook_status / cook_assignment_status заказа и продвигает общий статус.

    Возвращает True, если заказ только что стал готов к доставке из пула
    (тогда после коммита нужно разослать уведомления доставщикам).
    """
    assignments = {a.id: a for a in order_assignments(session, order.id)}
    items = session.exec(
        select(OrderItem).where(OrderItem.order_id == order.id).execution_options(populate_existing=True)
    ).all()

    active = [a for a in assignments.values() if a.cook_status not in COOK_REJECTIONS]
    uncovered = [
        item for item in items
        if item.assignment_id is None or assignments[item.assignment_id].cook_status in COOK_REJECTIONS
    ]
    rejected_uncovered = [
        assignments[item.assignment_id] for item in uncovered if item.assignment_id is not None
    ]

    if uncovered or not active:
        order.cook_status = CookStatus.PENDING
    else:
        order.cook_status = aggregate_cook_status([a.cook_status for a in active])

    if rejected_uncovered:
        latest = max(rejected_uncovered, key=lambda a: (a.responded_at or a.updated_at, a.id))
        order.cook_assignment_status = CookAssignmentStatus(latest.cook_status.value)
    elif uncovered or not active or any(a.cook_status == CookStatus.PENDING for a in active):
        order.cook_assignment_status = CookAssignmentStatus.PENDING
    else:
        order.cook_assignment_status = CookAssignmentStatus.ACCEPTED

    order.assigned_cook_id = active[0].cook_id if len(active) == 1 else None
    order.updated_at = now

    if order.status != OrderStatus.CANCELLED and order.cook_status in OVERALL_FOR_COOK:
        advance_overall(order, OVERALL_FOR_COOK[order.cook_status], now)

    newly_ready = (
        order.cook_status == CookStatus.READY
        and order.status != OrderStatus.CANCELLED
        and order.service_type in POOL_DELIVERY_SERVICES
        and order.delivery_status == DeliveryStatus.PENDING
        and order.assigned_delivery_id is None
        and order.delivery_offered_at is None
    )
    if newly_ready:
        order.delivery_offered_at = now
    session.add(order)
    return newly_ready


def create_assignments(session: Session, order: Order, allocations: dict[int, list[int]], now: datetime) -> list[CookAssignment]:
    """Создаёт по одному назначению на повара и привязывает к нему позиции. Без коммита."""
    if not allocations:
        raise ValidationFailed("At least one cook must be assigned", field="assignments")

    items = {item.id: item for item in session.exec(select(OrderItem).where(OrderItem.order_id == order.id))}
    existing = {a.id: a for a in order_assignments(session, order.id)}
    seen = set()
    for cook_id, item_ids in allocations.items():
        cook = session.get(Cook, cook_id)
        if not cook or not cook.is_active:
            raise ValidationFailed(f"Cook {cook_id} is not available", field="cook_id")
        if not item_ids:
            raise ValidationFailed(f"No items given for cook {cook_id}", field="order_item_ids")
        if any(a.cook_id == cook_id and a.cook_status not in COOK_REJECTIONS for a in existing.values()):
            raise ValidationFailed(f"Cook {cook_id} already has an active assignment on this order", field="cook_id")
        for item_id in item_ids:
            item = items.get(item_id)
            if item is None:
                raise ValidationFailed(f"Item {item_id} does not belong to order {order.id}", field="order_item_ids")
            if item_id in seen:
                raise ValidationFailed(f"Item {item_id} is assigned twice", field="order_item_ids")
            current = existing.get(item.assignment_id)
            if current is not None and current.cook_status not in COOK_REJECTIONS:
                raise ValidationFailed(f"Item {item_id} is already assigned to cook {current.cook_id}", field="order_item_ids")
            seen.add(item_id)

    created = []
    for cook_id, item_ids in allocations.items():
        assignment = CookAssignment(order_id=order.id, cook_id=cook_id, assigned_at=now, updated_at=now)
        session.add(assignment)
        session.flush()
        for item_id in item_ids:
            items[item_id].assignment_id = assignment.id
            session.add(items[item_id])
        created.append(assignment)
    session.flush()
    return created


def assign_cooks(
    session: Session,
    order_id: int,
    allocations: dict[int, list[int]],
    actor: Actor,
    notifier: Optional[Notifier] = None,
) -> Order:
    require_role(actor, Role.ADMIN)
    now = datetime.now()
    order = lock_order(session, order_id)
    if order.status in (OrderStatus.CANCELLED, OrderStatus.DELIVERED):
        raise InvalidTransition(f"Cannot assign cooks to a {order.status.value} order", field="status")
    try:
        created = create_assignments(session, order, allocations, now)
        refresh_cook_aggregate(session, order, now)
    except Exception:
        session.rollback()
        raise
    session.commit()
    session.refresh(order)

    cook_ids = [a.cook_id for a in created]
    logger.info(f"Order {order_id} assigned to cooks {cook_ids} by admin {actor.user_id}")
    if notifier:
        notifier.new_cook_order(order, cook_ids)
    return order


def update_cook_status(
    session: Session,
    assignment_id: int,
    new_status: CookStatus,
    actor: Actor,
    notifier: Optional[Notifier] = None,
) -> CookAssignment:
    require_role(actor, Role.COOK)
    assignment = session.get(CookAssignment, assignment_id)
    if not assignment:
        raise NotFound(f"Cook assignment {assignment_id} not found")
    if assignment.cook_id != actor.user_id:
        raise PermissionDenied("This assignment belongs to another cook")
    order = get_order(session, assignment.order_id)
    if order.status == OrderStatus.CANCELLED:
        raise InvalidTransition(f"Order {order.id} is cancelled", field="cook_status")
    check_cook_transition(assignment.cook_status, new_status)

    now = datetime.now()
    values = {"cook_status": new_status, "updated_at": now}
    if new_status in RESPONSE_STATUSES:
        values["responded_at"] = now
    result = session.exec(
        update(CookAssignment)
        .where(CookAssignment.id == assignment_id, CookAssignment.cook_status == assignment.cook_status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.rollback()
        raise InvalidTransition(f"Assignment {assignment_id} status changed concurrently", field="cook_status")

    order = lock_order(session, assignment.order_id)
    publish = refresh_cook_aggregate(session, order, now)
    session.commit()
    session.refresh(assignment)
    logger.info(f"Cook {actor.user_id} moved assignment {assignment_id} of order {order.id} to {new_status.value}")

    if publish:
        session.refresh(order)
        publish_order(session, order, notifier)
    return assignment


def auto_reject_expired(
    session: Session,
    cutoff_seconds: int,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> list[CookAssignment]:
    """Назначения, на которые повар не ответил за cutoff_seconds, получают auto_rejected."""
    now = now or datetime.now()
    deadline = now - timedelta(seconds=cutoff_seconds)
    expired = session.exec(
        select(CookAssignment)
        .join(Order, Order.id == CookAssignment.order_id)
        .where(
            CookAssignment.cook_status == CookStatus.PENDING,
            CookAssignment.assigned_at <= deadline,
            Order.status != OrderStatus.CANCELLED,
        )
    ).all()

    rejected = []
    for assignment in expired:
        result = session.exec(
            update(CookAssignment)
            .where(CookAssignment.id == assignment.id, CookAssignment.cook_status == CookStatus.PENDING)
            .values(cook_status=CookStatus.AUTO_REJECTED, responded_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            continue
        order = lock_order(session, assignment.order_id)
        refresh_cook_aggregate(session, order, now)
        session.commit()
        session.refresh(assignment)
        rejected.append(assignment)
        logger.warning(f"Assignment {assignment.id} of order {order.id} auto-rejected: cook {assignment.cook_id} did not respond")
        if notifier:
            notifier.cook_auto_rejected(order, assignment.cook_id)
    return rejected
