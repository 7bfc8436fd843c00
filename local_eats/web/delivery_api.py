"""
API доставки.

Содержит endpoints для:
- Просмотра заказов, доступных доставщику в его зоне
- Принятия заказа (первый успевший забирает, остальные получают 409)
- Назначения доставщика админом и списка эскалированных заказов
- Смены статуса доставки (забрал, доставил)
"""
import logging

from fastapi import APIRouter

from local_eats.db.people import Role
from local_eats.dependencies import ActorDep, NotifierDep, SessionDep, SettingsDep
from local_eats.schemas.delivery import DeliveryAssign, DeliveryOrderOut, DeliveryStatusUpdate
from local_eats.schemas.orders import OrderOut
from local_eats.services import delivery_claim
from local_eats.services.access import require_role

from .views import delivery_order_out, order_out

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/delivery")


@router.get("/available", response_model=list[DeliveryOrderOut])
def list_available_orders(session: SessionDep, settings: SettingsDep, actor: ActorDep):
    require_role(actor, Role.DELIVERY)
    staff = delivery_claim.get_staff(session, actor.user_id)
    orders = delivery_claim.available_orders(session, staff)
    return [delivery_order_out(session, order, settings.delivery_claim_cutoff_seconds) for order in orders]


@router.post("/orders/{order_id}/accept", response_model=DeliveryOrderOut)
def accept_order(order_id: int, session: SessionDep, actor: ActorDep, notifier: NotifierDep):
    order = delivery_claim.accept_delivery(session, order_id, actor.user_id, actor, notifier)
    return delivery_order_out(session, order)


@router.post("/orders/{order_id}/assign", response_model=OrderOut)
def assign_order(order_id: int, payload: DeliveryAssign, session: SessionDep, actor: ActorDep):
    order = delivery_claim.admin_assign_delivery(session, order_id, payload.staff_id, actor)
    return order_out(session, order)


@router.patch("/orders/{order_id}/status", response_model=DeliveryOrderOut)
def update_delivery_status(order_id: int, payload: DeliveryStatusUpdate, session: SessionDep, actor: ActorDep):
    order = delivery_claim.update_delivery_status(
        session,
        order_id,
        payload.status,
        actor,
        order_amount=payload.order_amount,
        delivery_charge=payload.delivery_charge,
    )
    return delivery_order_out(session, order)


@router.get("/escalated", response_model=list[OrderOut])
def list_escalated_orders(session: SessionDep, actor: ActorDep):
    require_role(actor, Role.ADMIN)
    return [order_out(session, order) for order in delivery_claim.list_escalated(session)]
