"""
Координатор доставки.

Готовый заказ без доставщика публикуется всем доставщикам, чья зона
покрывает заказ. Кто первый успел - тот и забрал: захват делается одним
условным UPDATE на стороне БД, а не проверкой "свободен ли заказ" на клиенте.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select, desc

from ..db.orders import (
    CookStatus,
    DeliveryStatus,
    Order,
    OrderStatus,
    POOL_DELIVERY_SERVICES,
)
from ..db.people import DeliveryStaff, DeliveryStaffType, Role
from .access import Actor, require_role
from .errors import (
    ClaimConflict,
    DuplicateCredit,
    InvalidTransition,
    NotEligible,
    NotFound,
    PermissionDenied,
    ValidationFailed,
)
from .lifecycle import advance_overall, complete_delivery, get_order, lock_order
from .notifications import Notifier
from .transitions import check_delivery_transition

logger = logging.getLogger(__name__)


def staff_panchayats(staff: DeliveryStaff) -> list[int]:
    ids = [staff.panchayat_id] if staff.panchayat_id is not None else []
    return ids + list(staff.assigned_panchayat_ids or [])


def covers_area(order: Order, staff: DeliveryStaff) -> bool:
    if order.panchayat_id not in staff_panchayats(staff):
        return False
    if staff.staff_type == DeliveryStaffType.FIXED_SALARY:
        return True
    return order.ward_number in (staff.assigned_wards or [])


def is_open_for_claim(order: Order) -> bool:
    return (
        order.cook_status == CookStatus.READY
        and order.delivery_status == DeliveryStatus.PENDING
        and order.assigned_delivery_id is None
        and order.status != OrderStatus.CANCELLED
        and order.service_type in POOL_DELIVERY_SERVICES
    )


def is_eligible(order: Order, staff: DeliveryStaff) -> bool:
    return staff.is_active and staff.is_approved and is_open_for_claim(order) and covers_area(order, staff)


def get_staff(session: Session, staff_id: int) -> DeliveryStaff:
    staff = session.get(DeliveryStaff, staff_id)
    if not staff:
        raise NotFound(f"Delivery staff {staff_id} not found")
    return staff


def _open_orders_query():
    return select(Order).where(
        Order.cook_status == CookStatus.READY,
        Order.delivery_status == DeliveryStatus.PENDING,
        Order.assigned_delivery_id.is_(None),
        Order.status != OrderStatus.CANCELLED,
        Order.service_type.in_(POOL_DELIVERY_SERVICES),
    )


def available_orders(session: Session, staff: DeliveryStaff) -> list[Order]:
    if not (staff.is_active and staff.is_approved):
        return []
    panchayats = staff_panchayats(staff)
    if not panchayats:
        return []
    orders = session.exec(
        _open_orders_query()
        .where(Order.panchayat_id.in_(panchayats))
        .order_by(desc(Order.created_at))
    ).all()
    # Палаты хранятся в JSON, поэтому фильтруем уже в Python
    return [order for order in orders if covers_area(order, staff)]


def eligible_staff(session: Session, order: Order, fixed_salary_only: bool = False) -> list[DeliveryStaff]:
    query = select(DeliveryStaff).where(
        DeliveryStaff.is_active == True,  # noqa: E712
        DeliveryStaff.is_approved == True,  # noqa: E712
    )
    if fixed_salary_only:
        query = query.where(DeliveryStaff.staff_type == DeliveryStaffType.FIXED_SALARY)
    return [staff for staff in session.exec(query) if covers_area(order, staff)]


def publish_order(session: Session, order: Order, notifier: Optional[Notifier]) -> list[int]:
    """Уведомляет всех подходящих доставщиков о новом заказе. Вызывать после коммита."""
    staff_ids = [staff.id for staff in eligible_staff(session, order)]
    logger.info(f"Order {order.id} offered to {len(staff_ids)} delivery partners")
    if notifier and staff_ids:
        notifier.new_delivery_order(order, staff_ids)
    return staff_ids


def _claim(session: Session, order_id: int, staff_id: int, now: datetime) -> bool:
    result = session.exec(
        update(Order)
        .where(
            Order.id == order_id,
            Order.assigned_delivery_id.is_(None),
            Order.delivery_status == DeliveryStatus.PENDING,
            Order.cook_status == CookStatus.READY,
            Order.status != OrderStatus.CANCELLED,
            Order.service_type.in_(POOL_DELIVERY_SERVICES),
        )
        .values(
            assigned_delivery_id=staff_id,
            delivery_status=DeliveryStatus.ASSIGNED,
            delivery_assigned_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def accept_delivery(
    session: Session,
    order_id: int,
    staff_id: int,
    actor: Actor,
    notifier: Optional[Notifier] = None,
) -> Order:
    require_role(actor, Role.DELIVERY)
    if actor.user_id != staff_id:
        raise PermissionDenied("Delivery partners can only accept orders for themselves")

    staff = get_staff(session, staff_id)
    order = get_order(session, order_id)
    if not (staff.is_active and staff.is_approved):
        raise NotEligible("Delivery partner is not active or not approved")
    if order.service_type not in POOL_DELIVERY_SERVICES:
        raise NotEligible(f"Orders of type '{order.service_type.value}' are not delivered from the pool")
    if not covers_area(order, staff):
        raise NotEligible("Order is outside your service area")

    if not _claim(session, order_id, staff_id, datetime.now()):
        session.rollback()
        order = get_order(session, order_id)
        logger.warning(f"Delivery claim by staff {staff_id} on order {order_id} lost: already taken")
        if notifier:
            notifier.order_taken(order_id, staff_id)
        if order.assigned_delivery_id is not None:
            raise ClaimConflict("Order already taken by another delivery partner")
        raise ClaimConflict("Order is no longer available for delivery")

    session.commit()
    session.refresh(order)
    logger.info(f"Order {order_id} claimed by delivery staff {staff_id}")
    return order


def admin_assign_delivery(session: Session, order_id: int, staff_id: int, actor: Actor) -> Order:
    """Админ ставит доставщика на заказ (обычно после эскалации). Тот же условный захват."""
    require_role(actor, Role.ADMIN)
    staff = get_staff(session, staff_id)
    order = get_order(session, order_id)
    if not (staff.is_active and staff.is_approved):
        raise NotEligible("Delivery partner is not active or not approved")
    if not covers_area(order, staff):
        logger.info(f"Admin {actor.user_id} assigns staff {staff_id} outside their area to order {order_id}")

    if not _claim(session, order_id, staff_id, datetime.now()):
        session.rollback()
        raise ClaimConflict("Order already taken or not ready for delivery")

    session.commit()
    session.refresh(order)
    logger.info(f"Order {order_id} assigned to delivery staff {staff_id} by admin {actor.user_id}")
    return order


def _check_amounts(order: Order, order_amount: Optional[Decimal], delivery_charge: Optional[Decimal]) -> None:
    if order_amount is not None:
        if order_amount < 0:
            raise ValidationFailed("Order amount cannot be negative", field="order_amount")
        if order_amount != order.total_amount:
            raise ValidationFailed(
                f"Order amount {order_amount} does not match order total {order.total_amount}",
                field="order_amount",
            )
    if delivery_charge is not None:
        if delivery_charge < 0:
            raise ValidationFailed("Delivery charge cannot be negative", field="delivery_charge")
        if order.delivery_amount is not None and delivery_charge != order.delivery_amount:
            raise ValidationFailed(
                f"Delivery charge {delivery_charge} does not match recorded charge {order.delivery_amount}",
                field="delivery_charge",
            )


def update_delivery_status(
    session: Session,
    order_id: int,
    new_status: DeliveryStatus,
    actor: Actor,
    order_amount: Optional[Decimal] = None,
    delivery_charge: Optional[Decimal] = None,
) -> Order:
    require_role(actor, Role.DELIVERY)
    order = get_order(session, order_id)
    if order.assigned_delivery_id != actor.user_id:
        raise NotEligible("Order is not assigned to you")

    if new_status == DeliveryStatus.DELIVERED and order.delivery_status == DeliveryStatus.DELIVERED:
        logger.warning(f"Order {order_id} already delivered, ignoring repeated delivered update")
        return order
    if new_status == DeliveryStatus.ASSIGNED:
        raise InvalidTransition("Orders are assigned by accepting them", field="delivery_status")
    if order.status == OrderStatus.CANCELLED:
        raise InvalidTransition(f"Order {order_id} is cancelled", field="delivery_status")
    check_delivery_transition(order.delivery_status, new_status)
    _check_amounts(order, order_amount, delivery_charge)

    now = datetime.now()
    if new_status == DeliveryStatus.PICKED_UP:
        result = session.exec(
            update(Order)
            .where(
                Order.id == order_id,
                Order.assigned_delivery_id == actor.user_id,
                Order.delivery_status == DeliveryStatus.ASSIGNED,
            )
            .values(delivery_status=DeliveryStatus.PICKED_UP, picked_up_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            session.rollback()
            raise InvalidTransition(f"Order {order_id} delivery status changed concurrently", field="delivery_status")
        order = lock_order(session, order_id)
        advance_overall(order, OrderStatus.OUT_FOR_DELIVERY, now)
        session.add(order)
        session.commit()
        session.refresh(order)
        logger.info(f"Order {order_id} picked up by delivery staff {actor.user_id}")
        return order

    # DELIVERED
    order = lock_order(session, order_id)
    if delivery_charge is not None and order.delivery_amount is None:
        order.delivery_amount = delivery_charge
    advance_overall(order, OrderStatus.OUT_FOR_DELIVERY, now)
    session.add(order)
    session.flush()
    try:
        complete_delivery(session, order, DeliveryStatus.PICKED_UP, now)
    except DuplicateCredit as e:
        session.rollback()
        logger.warning(f"{e.message}, wallet not credited again")
        return get_order(session, order_id)
    except Exception:
        session.rollback()
        raise
    session.commit()
    session.refresh(order)
    return order


def escalate_unclaimed(
    session: Session,
    cutoff_seconds: int,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> list[Order]:
    """Помечает заказы, которые никто не взял за cutoff_seconds, и зовёт штатных доставщиков и админов."""
    now = now or datetime.now()
    deadline = now - timedelta(seconds=cutoff_seconds)
    candidates = session.exec(
        _open_orders_query().where(
            Order.delivery_offered_at.is_not(None),
            Order.delivery_offered_at <= deadline,
            Order.delivery_escalated_at.is_(None),
        )
    ).all()

    escalated = []
    for order in candidates:
        result = session.exec(
            update(Order)
            .where(Order.id == order.id, Order.delivery_escalated_at.is_(None), Order.assigned_delivery_id.is_(None))
            .values(delivery_escalated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            escalated.append(order.id)
    session.commit()

    orders = [get_order(session, order_id) for order_id in escalated]
    for order in orders:
        staff_ids = [staff.id for staff in eligible_staff(session, order, fixed_salary_only=True)]
        logger.warning(f"Order {order.id} unclaimed for {cutoff_seconds}s, escalated to {len(staff_ids)} salaried staff and admins")
        if notifier:
            notifier.delivery_escalated(order, staff_ids)
    return orders


def list_escalated(session: Session) -> list[Order]:
    return list(session.exec(
        _open_orders_query()
        .where(Order.delivery_escalated_at.is_not(None))
        .order_by(Order.delivery_escalated_at)
    ))
