from decimal import Decimal

import pytest

from local_eats.db.orders import DeliveryStatus
from local_eats.db.people import Role
from local_eats.db.wallet import SettlementStatus, TransactionStatus, TransactionType
from local_eats.services.delivery_claim import accept_delivery, update_delivery_status
from local_eats.services.errors import InvalidTransition, PermissionDenied, ValidationFailed
from local_eats.services.settlement import approve_settlement, create_settlement, list_settlements
from local_eats.services.wallet import get_wallet, list_transactions


@pytest.fixture
def delivered(session, world, ready_order, as_actor):
    def run(total_amount, delivery_amount=Decimal("40")):
        order = ready_order(total_amount=total_amount, delivery_amount=delivery_amount)
        actor = as_actor(world.partner)
        accept_delivery(session, order.id, world.partner.id, actor)
        update_delivery_status(session, order.id, DeliveryStatus.PICKED_UP, actor)
        return update_delivery_status(session, order.id, DeliveryStatus.DELIVERED, actor)

    return run


def collections(session, staff_id):
    return {
        tx.order_id: tx.status
        for tx in list_transactions(session, staff_id)
        if tx.transaction_type == TransactionType.COLLECTION
    }


def test_approval_settles_collection(session, world, delivered, admin):
    order = delivered(Decimal("500"))
    settlement = create_settlement(session, world.partner.id, Role.DELIVERY, Decimal("500"), admin, order_id=order.id)
    assert settlement.status == SettlementStatus.PENDING
    assert settlement.panchayat_id == 1

    settlement = approve_settlement(session, settlement.id, admin)
    assert settlement.status == SettlementStatus.APPROVED
    assert settlement.approved_by == admin.user_id
    assert settlement.approved_at is not None

    wallet = get_wallet(session, world.partner.id)
    # Накопительные суммы не уменьшаются, растёт только погашенная часть
    assert wallet.collected_amount == Decimal("500")
    assert wallet.job_earnings == Decimal("40")
    assert wallet.total_settled == Decimal("500")
    assert wallet.unsettled_collection == Decimal("0")
    assert collections(session, world.partner.id) == {order.id: TransactionStatus.APPROVED}

    settlement_txs = [
        tx for tx in list_transactions(session, world.partner.id)
        if tx.transaction_type == TransactionType.SETTLEMENT
    ]
    assert [tx.amount for tx in settlement_txs] == [Decimal("500")]
    assert settlement_txs[0].settlement_id == settlement.id


def test_settlement_is_approved_only_once(session, world, delivered, admin):
    delivered(Decimal("500"))
    settlement = create_settlement(session, world.partner.id, Role.DELIVERY, Decimal("200"), admin)
    approve_settlement(session, settlement.id, admin)

    with pytest.raises(InvalidTransition):
        approve_settlement(session, settlement.id, admin)
    assert get_wallet(session, world.partner.id).total_settled == Decimal("200")


def test_partial_settlement_covers_oldest_collections_that_fit(session, world, delivered, admin):
    first = delivered(Decimal("100"))
    second = delivered(Decimal("300"))

    settlement = create_settlement(session, world.partner.id, Role.DELIVERY, Decimal("250"), admin)
    approve_settlement(session, settlement.id, admin)

    assert collections(session, world.partner.id) == {
        first.id: TransactionStatus.APPROVED,
        second.id: TransactionStatus.PENDING,
    }
    assert get_wallet(session, world.partner.id).unsettled_collection == Decimal("150")


def test_amount_cannot_exceed_unsettled_collection(session, world, delivered, admin):
    delivered(Decimal("500"))
    create_settlement(session, world.partner.id, Role.DELIVERY, Decimal("300"), admin)

    # 300 уже ждут подтверждения
    with pytest.raises(ValidationFailed) as exc:
        create_settlement(session, world.partner.id, Role.DELIVERY, Decimal("250"), admin)
    assert exc.value.field == "amount"


def test_staff_without_wallet_has_nothing_to_settle(session, world, admin):
    with pytest.raises(ValidationFailed):
        create_settlement(session, world.rival.id, Role.DELIVERY, Decimal("10"), admin)


def test_cook_settlement_is_a_plain_record(session, world, admin):
    settlement = create_settlement(session, world.cook_a.id, Role.COOK, Decimal("1200"), admin, notes="Weekly payout")
    settlement = approve_settlement(session, settlement.id, admin)

    assert settlement.status == SettlementStatus.APPROVED
    assert settlement.user_role == Role.COOK
    assert get_wallet(session, world.cook_a.id) is None


def test_settlement_validation_and_roles(session, world, admin, as_actor):
    with pytest.raises(ValidationFailed):
        create_settlement(session, world.cook_a.id, Role.COOK, Decimal("0"), admin)
    with pytest.raises(ValidationFailed) as exc:
        create_settlement(session, world.customer.user_id, Role.CUSTOMER, Decimal("10"), admin)
    assert exc.value.field == "user_role"
    with pytest.raises(PermissionDenied):
        create_settlement(session, world.partner.id, Role.DELIVERY, Decimal("10"), as_actor(world.partner))


def test_list_settlements_by_status(session, world, admin):
    pending = create_settlement(session, world.cook_a.id, Role.COOK, Decimal("100"), admin)
    approved = create_settlement(session, world.cook_b.id, Role.COOK, Decimal("200"), admin)
    approve_settlement(session, approved.id, admin)

    assert [s.id for s in list_settlements(session, SettlementStatus.PENDING)] == [pending.id]
    assert {s.id for s in list_settlements(session)} == {pending.id, approved.id}
