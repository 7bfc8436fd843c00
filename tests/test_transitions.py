import pytest

from local_eats.db.orders import CookStatus, DeliveryStatus, OrderStatus
from local_eats.services.errors import InvalidTransition
from local_eats.services.transitions import (
    aggregate_cook_status,
    check_cook_transition,
    check_delivery_transition,
    check_overall_transition,
    overall_path,
)


def test_overall_moves_only_to_next_status():
    check_overall_transition(OrderStatus.PENDING, OrderStatus.CONFIRMED)
    check_overall_transition(OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED)
    with pytest.raises(InvalidTransition) as exc:
        check_overall_transition(OrderStatus.PENDING, OrderStatus.READY)
    assert exc.value.field == "status"


def test_overall_never_goes_back():
    with pytest.raises(InvalidTransition):
        check_overall_transition(OrderStatus.PREPARING, OrderStatus.CONFIRMED)


@pytest.mark.parametrize("current", [
    OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.READY, OrderStatus.OUT_FOR_DELIVERY,
])
def test_cancel_from_any_open_status(current):
    check_overall_transition(current, OrderStatus.CANCELLED)


@pytest.mark.parametrize("current", [OrderStatus.DELIVERED, OrderStatus.CANCELLED])
def test_final_statuses_are_final(current):
    with pytest.raises(InvalidTransition):
        check_overall_transition(current, OrderStatus.CANCELLED)
    with pytest.raises(InvalidTransition):
        check_overall_transition(current, OrderStatus.PENDING)


def test_cook_can_only_reject_pending():
    check_cook_transition(CookStatus.PENDING, CookStatus.REJECTED)
    check_cook_transition(CookStatus.PENDING, CookStatus.AUTO_REJECTED)
    with pytest.raises(InvalidTransition):
        check_cook_transition(CookStatus.ACCEPTED, CookStatus.REJECTED)


def test_cook_cannot_skip_steps():
    check_cook_transition(CookStatus.COOKED, CookStatus.READY)
    with pytest.raises(InvalidTransition) as exc:
        check_cook_transition(CookStatus.ACCEPTED, CookStatus.READY)
    assert exc.value.field == "cook_status"


def test_delivery_flow():
    check_delivery_transition(DeliveryStatus.PENDING, DeliveryStatus.ASSIGNED)
    check_delivery_transition(DeliveryStatus.ASSIGNED, DeliveryStatus.PICKED_UP)
    with pytest.raises(InvalidTransition):
        check_delivery_transition(DeliveryStatus.ASSIGNED, DeliveryStatus.DELIVERED)
    with pytest.raises(InvalidTransition):
        check_delivery_transition(DeliveryStatus.DELIVERED, DeliveryStatus.DELIVERED)


def test_aggregate_is_least_advanced_active_status():
    assert aggregate_cook_status([CookStatus.READY, CookStatus.PREPARING]) == CookStatus.PREPARING
    assert aggregate_cook_status([CookStatus.READY, CookStatus.REJECTED]) == CookStatus.READY
    assert aggregate_cook_status([CookStatus.AUTO_REJECTED]) == CookStatus.PENDING


def test_overall_path_skips_forward_only():
    assert overall_path(OrderStatus.PENDING, OrderStatus.PREPARING) == [OrderStatus.CONFIRMED, OrderStatus.PREPARING]
    assert overall_path(OrderStatus.READY, OrderStatus.CONFIRMED) == []
    assert overall_path(OrderStatus.CANCELLED, OrderStatus.READY) == []
