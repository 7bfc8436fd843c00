"""
Сборка ответов: заказ вместе с профилями клиента, поваров и доставщика.

Каждая операция записи возвращает актуальное состояние, собранное здесь,
и клиент обновляет экран по нему.
"""
from datetime import timedelta
from typing import Optional

from sqlmodel import Session, select

from local_eats.db.catalog import FoodItem
from local_eats.db.cooking import CookAssignment
from local_eats.db.orders import Order, OrderItem
from local_eats.db.people import Cook, DeliveryStaff, Profile
from local_eats.db.wallet import DeliveryWallet
from local_eats.schemas.delivery import DeliveryOrderOut
from local_eats.schemas.orders import CookAssignmentOut, OrderItemOut, OrderOut, ProfileOut
from local_eats.schemas.wallet import WalletOut


def customer_profile(session: Session, customer_id: int) -> Optional[ProfileOut]:
    profile = session.get(Profile, customer_id)
    if not profile:
        return None
    return ProfileOut(name=profile.name, mobile_number=profile.mobile_number)


def delivery_profile(session: Session, staff_id: Optional[int]) -> Optional[ProfileOut]:
    if staff_id is None:
        return None
    staff = session.get(DeliveryStaff, staff_id)
    if not staff:
        return None
    return ProfileOut(name=staff.name, mobile_number=staff.mobile_number)


def assignment_out(session: Session, assignment: CookAssignment) -> CookAssignmentOut:
    cook = session.get(Cook, assignment.cook_id)
    item_ids = session.exec(
        select(OrderItem.id).where(OrderItem.assignment_id == assignment.id).order_by(OrderItem.id)
    ).all()
    return CookAssignmentOut(
        id=assignment.id,
        order_id=assignment.order_id,
        cook_id=assignment.cook_id,
        kitchen_name=cook.kitchen_name if cook else None,
        cook_status=assignment.cook_status,
        assigned_at=assignment.assigned_at,
        responded_at=assignment.responded_at,
        order_item_ids=list(item_ids),
    )


def order_out(session: Session, order: Order) -> OrderOut:
    items = session.exec(select(OrderItem).where(OrderItem.order_id == order.id).order_by(OrderItem.id)).all()
    assignments = session.exec(
        select(CookAssignment).where(CookAssignment.order_id == order.id).order_by(CookAssignment.id)
    ).all()

    items_with_details = []
    for item in items:
        food = session.get(FoodItem, item.food_item_id)
        items_with_details.append(OrderItemOut(
            id=item.id,
            food_item_id=item.food_item_id,
            name=food.name if food else None,
            quantity=item.quantity,
            base_price=item.base_price,
            platform_margin=item.platform_margin,
            unit_price=item.unit_price,
            total_price=item.total_price,
            selected_cook_id=item.selected_cook_id,
            assignment_id=item.assignment_id,
        ))

    # после коммита атрибуты истекшие, getattr подгружает их заново
    columns = {name: getattr(order, name) for name in Order.model_fields}
    return OrderOut(
        **columns,
        customer=customer_profile(session, order.customer_id),
        delivery=delivery_profile(session, order.assigned_delivery_id),
        items=items_with_details,
        cook_assignments=[assignment_out(session, a) for a in assignments],
    )


def delivery_order_out(session: Session, order: Order, claim_cutoff_seconds: Optional[int] = None) -> DeliveryOrderOut:
    deadline = None
    if claim_cutoff_seconds is not None and order.delivery_offered_at is not None and order.assigned_delivery_id is None:
        deadline = order.delivery_offered_at + timedelta(seconds=claim_cutoff_seconds)
    return DeliveryOrderOut(
        id=order.id,
        order_number=order.order_number,
        service_type=order.service_type,
        total_amount=order.total_amount,
        delivery_amount=order.delivery_amount,
        delivery_status=order.delivery_status,
        delivery_address=order.delivery_address,
        delivery_instructions=order.delivery_instructions,
        panchayat_id=order.panchayat_id,
        ward_number=order.ward_number,
        created_at=order.created_at,
        delivered_at=order.delivered_at,
        claim_deadline_at=deadline,
        customer=customer_profile(session, order.customer_id),
    )


def wallet_out(staff_id: int, wallet: Optional[DeliveryWallet]) -> WalletOut:
    if wallet is None:
        wallet = DeliveryWallet(delivery_staff_id=staff_id)
    return WalletOut(
        delivery_staff_id=staff_id,
        collected_amount=wallet.collected_amount,
        job_earnings=wallet.job_earnings,
        total_settled=wallet.total_settled,
        pending_settlement=wallet.unsettled_collection,
    )
