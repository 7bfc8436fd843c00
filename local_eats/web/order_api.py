"""
API для работы с заказами.

Содержит endpoints для:
- Создания заказа клиентом и его отмены
- Просмотра заказов (клиент видит свои, повар - назначенные ему, доставщик - взятые)
- Смены общего статуса заказа админом
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Query

from local_eats.db.orders import OrderStatus
from local_eats.db.people import Role
from local_eats.dependencies import ActorDep, NotifierDep, SessionDep, SettingsDep
from local_eats.schemas.orders import OrderCreate, OrderOut, OverallStatusUpdate
from local_eats.services import orders as order_service
from local_eats.services.cook_assignment import order_assignments
from local_eats.services.errors import PermissionDenied
from local_eats.services.lifecycle import get_order

from .views import order_out

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/orders", response_model=OrderOut, status_code=201)
def create_order(payload: OrderCreate, session: SessionDep, settings: SettingsDep, actor: ActorDep, notifier: NotifierDep):
    order = order_service.create_order(session, payload, actor, settings.referral_commission_percent, notifier)
    return order_out(session, order)


@router.get("/orders", response_model=list[OrderOut])
def list_orders(
    session: SessionDep,
    actor: ActorDep,
    customer_id: Optional[int] = None,
    cook_id: Optional[int] = None,
    delivery_id: Optional[int] = None,
    status: Optional[List[OrderStatus]] = Query(default=None),
    limit: int = Query(default=100, gt=0, le=500),
):
    # Фильтры по участникам доступны админу, остальные видят только свои заказы
    filters = {"customer_id": customer_id, "cook_id": cook_id, "delivery_id": delivery_id}
    if actor.role == Role.CUSTOMER:
        filters["customer_id"] = actor.user_id
    elif actor.role == Role.COOK:
        filters["cook_id"] = actor.user_id
    elif actor.role == Role.DELIVERY:
        filters["delivery_id"] = actor.user_id
    orders = order_service.list_orders(session, statuses=status, limit=limit, **filters)
    return [order_out(session, order) for order in orders]


@router.get("/orders/{order_id}", response_model=OrderOut)
def read_order(order_id: int, session: SessionDep, actor: ActorDep):
    order = get_order(session, order_id)
    if actor.role == Role.CUSTOMER and order.customer_id != actor.user_id:
        raise PermissionDenied("Order belongs to another customer")
    if actor.role == Role.DELIVERY and order.assigned_delivery_id != actor.user_id:
        raise PermissionDenied("Order is not assigned to you")
    if actor.role == Role.COOK and all(a.cook_id != actor.user_id for a in order_assignments(session, order_id)):
        raise PermissionDenied("Order is not assigned to you")
    return order_out(session, order)


@router.patch("/orders/{order_id}/status", response_model=OrderOut)
def update_order_status(order_id: int, payload: OverallStatusUpdate, session: SessionDep, actor: ActorDep):
    order = order_service.update_overall_status(session, order_id, payload.status, actor)
    return order_out(session, order)


@router.post("/orders/{order_id}/cancel", response_model=OrderOut)
def cancel_order(order_id: int, session: SessionDep, actor: ActorDep):
    order = order_service.cancel_order(session, order_id, actor)
    return order_out(session, order)
