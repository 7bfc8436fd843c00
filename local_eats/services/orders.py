"""
Заказ: создание клиентом, общий статус (действие админа) и выборки.
"""
import logging
import secrets
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import update
from sqlmodel import Session, select, desc

from ..db.catalog import CookDish, FoodItem
from ..db.cooking import CookAssignment
from ..db.orders import (
    CookStatus,
    DeliveryStatus,
    Order,
    OrderItem,
    OrderStatus,
    POOL_DELIVERY_SERVICES,
)
from ..db.people import Cook, Role
from ..schemas.orders import OrderCreate
from .access import Actor, require_role
from .cook_assignment import create_assignments, refresh_cook_aggregate
from .errors import DuplicateCredit, InvalidTransition, PermissionDenied, ValidationFailed
from .lifecycle import complete_delivery, get_order, lock_order
from .notifications import Notifier
from .pricing import deferred_choice_price, platform_margin, selected_cook_price
from .referral import create_referral
from .transitions import check_overall_transition

logger = logging.getLogger(__name__)


def generate_order_number(now: datetime) -> str:
    return f"PC{now:%y%m%d%H%M%S}{secrets.token_hex(4).upper()}"


def cook_offers(session: Session, food_item_id: int) -> list[CookDish]:
    """Активные предложения блюда от доступных поваров."""
    return list(session.exec(
        select(CookDish)
        .join(Cook, Cook.id == CookDish.cook_id)
        .where(
            CookDish.food_item_id == food_item_id,
            CookDish.is_active == True,  # noqa: E712
            Cook.is_active == True,  # noqa: E712
            Cook.is_available == True,  # noqa: E712
        )
        .order_by(CookDish.cook_id)
    ))


def price_line(session: Session, food: FoodItem, cook_id: Optional[int], field: str) -> tuple[Decimal, Decimal, Optional[int]]:
    """
    Базовая цена, цена для клиента и выбранный повар для позиции.

    Если повар не выбран и вариантов несколько - цена по самому дешёвому повару,
    а выбор откладывается до назначения админом. Единственный повар выбирается сразу.
    """
    offers = cook_offers(session, food.id)
    margin_type, margin_value = food.platform_margin_type, food.platform_margin_value

    if cook_id is not None:
        offer = next((o for o in offers if o.cook_id == cook_id), None)
        if offer is None:
            raise ValidationFailed(f"Cook {cook_id} does not offer '{food.name}'", field=field)
        base = offer.custom_price if offer.custom_price is not None else food.price
        return base, selected_cook_price(food.price, offer.custom_price, margin_type, margin_value), cook_id

    if len(offers) == 1:
        offer = offers[0]
        base = offer.custom_price if offer.custom_price is not None else food.price
        return base, selected_cook_price(food.price, offer.custom_price, margin_type, margin_value), offer.cook_id

    prices = [o.custom_price for o in offers]
    price = deferred_choice_price(food.price, prices, margin_type, margin_value)
    bases = [p if p is not None else food.price for p in prices] or [food.price]
    return min(bases), price, None


def create_order(
    session: Session,
    payload: OrderCreate,
    actor: Actor,
    referral_percent: Decimal,
    notifier: Optional[Notifier] = None,
) -> Order:
    require_role(actor, Role.CUSTOMER)
    if not payload.items:
        raise ValidationFailed("Order must contain at least one item", field="items")
    if payload.delivery_amount < 0:
        raise ValidationFailed("Delivery amount cannot be negative", field="delivery_amount")
    if payload.service_type in POOL_DELIVERY_SERVICES and not (payload.delivery_address or "").strip():
        raise ValidationFailed("Please enter your delivery address", field="delivery_address")

    now = datetime.now()
    lines = []
    for i, item in enumerate(payload.items):
        if item.quantity <= 0:
            raise ValidationFailed("Quantity must be positive", field=f"items[{i}].quantity")
        food = session.get(FoodItem, item.food_item_id)
        if not food or not food.is_available:
            raise ValidationFailed(f"Food item {item.food_item_id} is not available", field=f"items[{i}].food_item_id")
        base, unit, cook_id = price_line(session, food, item.cook_id, f"items[{i}].cook_id")
        lines.append((item, food, base, unit, cook_id))

    try:
        order = Order(
            order_number=generate_order_number(now),
            customer_id=actor.user_id,
            service_type=payload.service_type,
            panchayat_id=payload.panchayat_id,
            ward_number=payload.ward_number,
            delivery_address=payload.delivery_address,
            delivery_instructions=payload.delivery_instructions,
            delivery_amount=payload.delivery_amount,
            created_at=now,
            updated_at=now,
        )
        session.add(order)
        session.flush()

        subtotal = Decimal("0")
        allocations = defaultdict(list)
        for item, food, base, unit, cook_id in lines:
            line = OrderItem(
                order_id=order.id,
                food_item_id=food.id,
                quantity=item.quantity,
                base_price=base,
                platform_margin=platform_margin(base, food.platform_margin_type, food.platform_margin_value),
                unit_price=unit,
                total_price=unit * item.quantity,
                special_instructions=item.special_instructions,
                selected_cook_id=cook_id,
            )
            session.add(line)
            session.flush()
            subtotal += line.total_price
            if cook_id is not None:
                allocations[cook_id].append(line.id)

        order.total_amount = subtotal + payload.delivery_amount
        session.add(order)
        session.flush()

        if allocations:
            create_assignments(session, order, dict(allocations), now)
        refresh_cook_aggregate(session, order, now)

        if payload.referrer_id is not None:
            create_referral(session, order, payload.referrer_id, referral_percent)
    except Exception:
        session.rollback()
        raise

    session.commit()
    session.refresh(order)
    logger.info(f"Order {order.id} ({order.order_number}) created by customer {actor.user_id}, total {order.total_amount}")
    if notifier and allocations:
        notifier.new_cook_order(order, list(allocations))
    return order


def update_overall_status(
    session: Session,
    order_id: int,
    new_status: OrderStatus,
    actor: Actor,
) -> Order:
    require_role(actor, Role.ADMIN)
    order = get_order(session, order_id)

    if new_status == OrderStatus.DELIVERED and order.status == OrderStatus.DELIVERED:
        logger.warning(f"Order {order_id} already delivered, ignoring repeated delivered update")
        return order
    check_overall_transition(order.status, new_status)
    _check_partner_handover(order, new_status)

    now = datetime.now()
    if new_status == OrderStatus.DELIVERED:
        return _deliver_by_admin(session, order, now)

    if new_status == OrderStatus.CANCELLED:
        values = {"status": OrderStatus.CANCELLED, "cancelled_at": now, "updated_at": now}
    else:
        values = {"status": new_status, f"{new_status.value}_at": now, "updated_at": now}
    result = session.exec(
        update(Order)
        .where(Order.id == order_id, Order.status == order.status)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.rollback()
        raise InvalidTransition(f"Order {order_id} status changed concurrently", field="status")
    session.commit()
    session.refresh(order)
    logger.info(f"Order {order_id} status set to {new_status.value} by admin {actor.user_id}")
    return order


def _check_partner_handover(order: Order, new_status: OrderStatus) -> None:
    """Заказ из общего пула уходит в доставку только после того, как доставщик его забрал."""
    if order.service_type not in POOL_DELIVERY_SERVICES:
        return
    if new_status not in (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED):
        return
    if order.assigned_delivery_id is None or order.delivery_status != DeliveryStatus.PICKED_UP:
        raise InvalidTransition(
            f"Order {order.id} must be picked up by a delivery partner first",
            field="delivery_status",
        )


def _deliver_by_admin(session: Session, order: Order, now: datetime) -> Order:
    """
    Админ закрывает заказ. Если есть доставщик, он должен был забрать заказ;
    без доставщика (мероприятия, самовывоз) доставка закрывается вместе с заказом.
    """
    if order.cook_status != CookStatus.READY:
        raise InvalidTransition(f"Order {order.id} kitchen is not ready", field="status")
    if order.assigned_delivery_id is not None:
        expected = DeliveryStatus.PICKED_UP
    else:
        expected = DeliveryStatus.PENDING
    if order.delivery_status != expected:
        raise InvalidTransition(
            f"Order {order.id} delivery is '{order.delivery_status.value}', expected '{expected.value}'",
            field="delivery_status",
        )
    order = lock_order(session, order.id)
    try:
        complete_delivery(session, order, expected, now)
    except DuplicateCredit as e:
        session.rollback()
        logger.warning(f"{e.message}, wallet not credited again")
        return get_order(session, order.id)
    except Exception:
        session.rollback()
        raise
    session.commit()
    session.refresh(order)
    return order


def cancel_order(session: Session, order_id: int, actor: Actor) -> Order:
    """Клиент может отменить свой заказ, пока повар его не принял."""
    require_role(actor, Role.CUSTOMER)
    order = get_order(session, order_id)
    if order.customer_id != actor.user_id:
        raise PermissionDenied("Order belongs to another customer")
    if order.status != OrderStatus.PENDING:
        raise InvalidTransition(f"Order {order_id} can no longer be cancelled by the customer", field="status")
    now = datetime.now()
    result = session.exec(
        update(Order)
        .where(Order.id == order_id, Order.status == OrderStatus.PENDING)
        .values(status=OrderStatus.CANCELLED, cancelled_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.rollback()
        raise InvalidTransition(f"Order {order_id} status changed concurrently", field="status")
    session.commit()
    session.refresh(order)
    logger.info(f"Order {order_id} cancelled by customer {actor.user_id}")
    return order


def list_orders(
    session: Session,
    customer_id: Optional[int] = None,
    cook_id: Optional[int] = None,
    delivery_id: Optional[int] = None,
    statuses: Optional[Iterable[OrderStatus]] = None,
    limit: int = 100,
) -> list[Order]:
    query = select(Order)
    if customer_id is not None:
        query = query.where(Order.customer_id == customer_id)
    if cook_id is not None:
        query = query.where(
            Order.id.in_(select(CookAssignment.order_id).where(CookAssignment.cook_id == cook_id))
        )
    if delivery_id is not None:
        query = query.where(Order.assigned_delivery_id == delivery_id)
    if statuses:
        query = query.where(Order.status.in_(list(statuses)))
    return list(session.exec(query.order_by(desc(Order.created_at), desc(Order.id)).limit(limit)))
