"""
Кошелёк доставщика.

Зачисление делается только из перехода заказа в `delivered` и не коммитит
само: кошелёк и журнал транзакций сохраняются в той же транзакции, что и заказ.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import update
from sqlmodel import Session, select, desc

from ..db.orders import Order
from ..db.wallet import DeliveryWallet, TransactionStatus, TransactionType, WalletTransaction

logger = logging.getLogger(__name__)


def get_wallet(session: Session, staff_id: int) -> Optional[DeliveryWallet]:
    return session.exec(
        select(DeliveryWallet).where(DeliveryWallet.delivery_staff_id == staff_id)
    ).first()


def get_or_create_wallet(session: Session, staff_id: int) -> DeliveryWallet:
    wallet = get_wallet(session, staff_id)
    if wallet is None:
        wallet = DeliveryWallet(delivery_staff_id=staff_id)
        session.add(wallet)
        session.flush()
        logger.info(f"Created wallet for delivery staff {staff_id}")
    return wallet


def credit_delivery(session: Session, order: Order, now: Optional[datetime] = None) -> DeliveryWallet:
    now = now or datetime.now()
    staff_id = order.assigned_delivery_id
    collected = order.total_amount or Decimal("0")
    earned = order.delivery_amount or Decimal("0")

    wallet = get_or_create_wallet(session, staff_id)
    # Инкремент выражением на стороне БД, а не read-modify-write
    session.exec(
        update(DeliveryWallet)
        .where(DeliveryWallet.id == wallet.id)
        .values(
            collected_amount=DeliveryWallet.collected_amount + collected,
            job_earnings=DeliveryWallet.job_earnings + earned,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )

    if collected > 0:
        session.add(WalletTransaction(
            delivery_staff_id=staff_id,
            order_id=order.id,
            transaction_type=TransactionType.COLLECTION,
            amount=collected,
            description="Order amount collected",
            status=TransactionStatus.PENDING,
            created_at=now,
        ))
    if earned > 0:
        session.add(WalletTransaction(
            delivery_staff_id=staff_id,
            order_id=order.id,
            transaction_type=TransactionType.EARNING,
            amount=earned,
            description="Delivery charge earned",
            status=TransactionStatus.APPROVED,
            created_at=now,
        ))
    session.flush()
    session.refresh(wallet)

    logger.info(f"Wallet of staff {staff_id} credited for order {order.id}: collected +{collected}, earnings +{earned}")
    return wallet


def list_transactions(session: Session, staff_id: int, limit: int = 50) -> list[WalletTransaction]:
    return list(session.exec(
        select(WalletTransaction)
        .where(WalletTransaction.delivery_staff_id == staff_id)
        .order_by(desc(WalletTransaction.created_at), desc(WalletTransaction.id))
        .limit(limit)
    ))
