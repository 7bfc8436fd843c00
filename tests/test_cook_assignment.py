from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlmodel import select

from local_eats.db.cooking import CookAssignment
from local_eats.db.orders import (
    CookAssignmentStatus,
    CookStatus,
    OrderItem,
    OrderStatus,
    ServiceType,
)
from local_eats.schemas.orders import OrderCreate, OrderItemCreate
from local_eats.services.cook_assignment import assign_cooks, auto_reject_expired, update_cook_status
from local_eats.services.errors import InvalidTransition, PermissionDenied, ValidationFailed
from local_eats.services.lifecycle import get_order
from local_eats.services.orders import create_order, update_overall_status


@pytest.fixture
def split_order(session, world, as_actor):
    """Заказ из двух позиций без выбранных поваров: назначает админ."""
    payload = OrderCreate(
        service_type=ServiceType.HOMEMADE,
        panchayat_id=1,
        ward_number=3,
        delivery_address="12 Temple Road",
        delivery_amount=Decimal("30"),
        items=[
            OrderItemCreate(food_item_id=world.biryani.id, quantity=1),
            OrderItemCreate(food_item_id=world.biryani.id, quantity=2),
        ],
    )
    order = create_order(session, payload, as_actor(world.customer), Decimal("5"))
    items = session.exec(select(OrderItem).where(OrderItem.order_id == order.id).order_by(OrderItem.id)).all()
    return order, [item.id for item in items]


def assignment_of(session, order_id, cook_id):
    return session.exec(
        select(CookAssignment).where(CookAssignment.order_id == order_id, CookAssignment.cook_id == cook_id)
    ).one()


def walk(session, assignment_id, actor, *statuses, notifier=None):
    for status in statuses:
        update_cook_status(session, assignment_id, status, actor, notifier)


def test_single_cook_sets_assigned_cook(session, world, split_order, admin, notifier):
    order, item_ids = split_order
    order = assign_cooks(session, order.id, {world.cook_a.id: item_ids}, admin, notifier)

    assert order.assigned_cook_id == world.cook_a.id
    assert order.cook_assignment_status == CookAssignmentStatus.PENDING
    [(recipients, _)] = notifier.events("cook.order_assigned")
    assert recipients == [{"role": "cook", "id": world.cook_a.id}]


def test_two_cooks_progress_independently(session, world, split_order, admin, as_actor, notifier):
    order, (first, second) = split_order
    assign_cooks(session, order.id, {world.cook_a.id: [first], world.cook_b.id: [second]}, admin)
    a = assignment_of(session, order.id, world.cook_a.id)
    b = assignment_of(session, order.id, world.cook_b.id)

    walk(session, a.id, as_actor(world.cook_a), CookStatus.ACCEPTED)
    order = get_order(session, order.id)
    assert order.assigned_cook_id is None
    assert order.cook_status == CookStatus.PENDING
    assert order.cook_assignment_status == CookAssignmentStatus.PENDING

    walk(session, b.id, as_actor(world.cook_b), CookStatus.ACCEPTED)
    order = get_order(session, order.id)
    assert order.cook_status == CookStatus.ACCEPTED
    assert order.cook_assignment_status == CookAssignmentStatus.ACCEPTED
    assert order.status == OrderStatus.CONFIRMED

    walk(session, a.id, as_actor(world.cook_a), CookStatus.PREPARING, CookStatus.COOKED, CookStatus.READY, notifier=notifier)
    session.refresh(b)
    assert b.cook_status == CookStatus.ACCEPTED
    order = get_order(session, order.id)
    assert order.cook_status == CookStatus.ACCEPTED
    assert order.status == OrderStatus.CONFIRMED
    assert notifier.events("delivery.order_available") == []

    walk(session, b.id, as_actor(world.cook_b), CookStatus.PREPARING, CookStatus.COOKED, CookStatus.READY, notifier=notifier)
    order = get_order(session, order.id)
    assert order.cook_status == CookStatus.READY
    assert order.status == OrderStatus.READY
    assert order.ready_at is not None
    assert order.delivery_offered_at is not None

    [(recipients, payload)] = notifier.events("delivery.order_available")
    assert {r["id"] for r in recipients} == {world.partner.id, world.rival.id, world.salaried.id}
    assert payload["order_id"] == order.id


def test_rejection_leaves_item_open_for_reassignment(session, world, split_order, admin, as_actor):
    order, (first, second) = split_order
    assign_cooks(session, order.id, {world.cook_a.id: [first], world.cook_b.id: [second]}, admin)
    b = assignment_of(session, order.id, world.cook_b.id)

    walk(session, b.id, as_actor(world.cook_b), CookStatus.REJECTED)
    order = get_order(session, order.id)
    assert order.cook_assignment_status == CookAssignmentStatus.REJECTED
    assert order.cook_status == CookStatus.PENDING
    assert order.assigned_cook_id == world.cook_a.id

    # Позиция отказавшегося повара переназначается другому
    with pytest.raises(ValidationFailed):
        assign_cooks(session, order.id, {world.cook_b.id: [first]}, admin)
    order = assign_cooks(session, order.id, {world.cook_b.id: [second]}, admin)
    assert order.cook_assignment_status == CookAssignmentStatus.PENDING
    assert order.assigned_cook_id is None


def test_only_the_assigned_cook_responds(session, world, split_order, admin, as_actor):
    order, item_ids = split_order
    assign_cooks(session, order.id, {world.cook_a.id: item_ids}, admin)
    a = assignment_of(session, order.id, world.cook_a.id)

    with pytest.raises(PermissionDenied):
        update_cook_status(session, a.id, CookStatus.ACCEPTED, as_actor(world.cook_b))
    with pytest.raises(PermissionDenied):
        assign_cooks(session, order.id, {world.cook_b.id: item_ids}, as_actor(world.cook_b))


def test_cook_cannot_skip_or_reject_after_accepting(session, world, split_order, admin, as_actor):
    order, item_ids = split_order
    assign_cooks(session, order.id, {world.cook_a.id: item_ids}, admin)
    a = assignment_of(session, order.id, world.cook_a.id)

    with pytest.raises(InvalidTransition):
        update_cook_status(session, a.id, CookStatus.READY, as_actor(world.cook_a))
    walk(session, a.id, as_actor(world.cook_a), CookStatus.ACCEPTED)
    with pytest.raises(InvalidTransition):
        update_cook_status(session, a.id, CookStatus.REJECTED, as_actor(world.cook_a))

    session.refresh(a)
    assert a.cook_status == CookStatus.ACCEPTED
    assert a.responded_at is not None


def test_unknown_item_is_rejected(session, world, split_order, admin):
    order, _ = split_order
    with pytest.raises(ValidationFailed) as exc:
        assign_cooks(session, order.id, {world.cook_a.id: [9999]}, admin)
    assert exc.value.field == "order_item_ids"


def test_auto_reject_after_cutoff(session, world, split_order, admin, as_actor, notifier):
    order, (first, second) = split_order
    assign_cooks(session, order.id, {world.cook_a.id: [first], world.cook_b.id: [second]}, admin)
    walk(session, assignment_of(session, order.id, world.cook_a.id).id, as_actor(world.cook_a), CookStatus.ACCEPTED)

    later = datetime.now() + timedelta(seconds=301)
    assert auto_reject_expired(session, 300, notifier, datetime.now()) == []

    rejected = auto_reject_expired(session, 300, notifier, later)
    assert [a.cook_id for a in rejected] == [world.cook_b.id]
    assert rejected[0].cook_status == CookStatus.AUTO_REJECTED

    order = get_order(session, order.id)
    assert order.cook_assignment_status == CookAssignmentStatus.AUTO_REJECTED
    [(recipients, payload)] = notifier.events("cook.assignment_auto_rejected")
    assert recipients == [{"role": "admin"}]
    assert payload["cook_id"] == world.cook_b.id


def test_cancelled_orders_are_not_auto_rejected(session, world, split_order, admin, notifier):
    order, (first, second) = split_order
    assign_cooks(session, order.id, {world.cook_a.id: [first, second]}, admin)
    update_overall_status(session, order.id, OrderStatus.CANCELLED, admin)

    later = datetime.now() + timedelta(seconds=301)
    assert auto_reject_expired(session, 300, notifier, later) == []
    assert assignment_of(session, order.id, world.cook_a.id).cook_status == CookStatus.PENDING
    assert notifier.events("cook.assignment_auto_rejected") == []
