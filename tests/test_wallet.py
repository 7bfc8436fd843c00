from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from local_eats.db.orders import DeliveryStatus, OrderStatus
from local_eats.db.people import DeliveryStaff
from local_eats.db.wallet import TransactionStatus, TransactionType, WalletTransaction
from local_eats.services.delivery_claim import accept_delivery, update_delivery_status
from local_eats.services.errors import DuplicateCredit
from local_eats.services.lifecycle import complete_delivery, get_order
from local_eats.services.wallet import get_wallet, list_transactions


@pytest.fixture
def deliver(session, world, ready_order, as_actor):
    def run(**order_kwargs):
        order = ready_order(**order_kwargs)
        actor = as_actor(world.partner)
        accept_delivery(session, order.id, world.partner.id, actor)
        update_delivery_status(session, order.id, DeliveryStatus.PICKED_UP, actor)
        return update_delivery_status(session, order.id, DeliveryStatus.DELIVERED, actor)

    return run


def test_delivery_credits_collection_and_earning(session, world, deliver):
    order = deliver(total_amount=Decimal("500"), delivery_amount=Decimal("40"))

    wallet = get_wallet(session, world.partner.id)
    assert wallet.collected_amount == Decimal("500")
    assert wallet.job_earnings == Decimal("40")
    assert wallet.unsettled_collection == Decimal("500")

    transactions = list_transactions(session, world.partner.id)
    by_type = {tx.transaction_type: tx for tx in transactions}
    assert set(by_type) == {TransactionType.COLLECTION, TransactionType.EARNING}
    assert by_type[TransactionType.COLLECTION].amount == Decimal("500")
    assert by_type[TransactionType.COLLECTION].status == TransactionStatus.PENDING
    assert by_type[TransactionType.EARNING].amount == Decimal("40")
    assert by_type[TransactionType.EARNING].status == TransactionStatus.APPROVED
    assert all(tx.order_id == order.id for tx in transactions)


def test_repeated_delivered_update_does_not_credit_twice(session, world, deliver, as_actor):
    order = deliver()

    again = update_delivery_status(session, order.id, DeliveryStatus.DELIVERED, as_actor(world.partner))
    assert again.delivery_status == DeliveryStatus.DELIVERED

    wallet = get_wallet(session, world.partner.id)
    assert wallet.collected_amount == Decimal("500")
    assert wallet.job_earnings == Decimal("40")
    assert len(list_transactions(session, world.partner.id)) == 2


def test_second_completion_is_a_duplicate_credit(session, world, deliver):
    order = deliver()

    with pytest.raises(DuplicateCredit):
        complete_delivery(session, get_order(session, order.id), DeliveryStatus.PICKED_UP)
    session.rollback()

    assert get_wallet(session, world.partner.id).collected_amount == Decimal("500")


def test_zero_delivery_charge_records_no_earning(session, world, deliver):
    deliver(total_amount=Decimal("250"), delivery_amount=Decimal("0"))

    wallet = get_wallet(session, world.partner.id)
    assert wallet.collected_amount == Decimal("250")
    assert wallet.job_earnings == Decimal("0")
    types = [tx.transaction_type for tx in list_transactions(session, world.partner.id)]
    assert types == [TransactionType.COLLECTION]


def test_wallet_accumulates_across_orders(session, world, deliver):
    deliver(total_amount=Decimal("500"), delivery_amount=Decimal("40"))
    deliver(total_amount=Decimal("120.50"), delivery_amount=Decimal("25"))

    wallet = get_wallet(session, world.partner.id)
    assert wallet.collected_amount == Decimal("620.50")
    assert wallet.job_earnings == Decimal("65")
    count = len(session.exec(
        select(WalletTransaction).where(WalletTransaction.delivery_staff_id == world.partner.id)
    ).all())
    assert count == 4


def test_failed_credit_leaves_order_and_wallet_untouched(session, world, ready_order, as_actor):
    order = ready_order()
    actor = as_actor(world.partner)
    accept_delivery(session, order.id, world.partner.id, actor)
    update_delivery_status(session, order.id, DeliveryStatus.PICKED_UP, actor)

    # Чужая запись о заработке по этому заказу: вставка при зачислении упадёт
    session.add(WalletTransaction(
        delivery_staff_id=world.rival.id,
        order_id=order.id,
        transaction_type=TransactionType.EARNING,
        amount=Decimal("1"),
    ))
    session.commit()

    with pytest.raises(IntegrityError):
        update_delivery_status(session, order.id, DeliveryStatus.DELIVERED, actor)

    order = get_order(session, order.id)
    assert order.status == OrderStatus.OUT_FOR_DELIVERY
    assert order.delivery_status == DeliveryStatus.PICKED_UP
    assert order.delivered_at is None
    assert get_wallet(session, world.partner.id) is None
    assert session.get(DeliveryStaff, world.partner.id).total_deliveries == 0
    transactions = session.exec(select(WalletTransaction).where(WalletTransaction.order_id == order.id)).all()
    assert [tx.delivery_staff_id for tx in transactions] == [world.rival.id]
