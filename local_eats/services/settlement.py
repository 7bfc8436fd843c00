"""
Расчёты с доставщиками и поварами.

Собранные суммы и заработок в кошельке накопительные и не уменьшаются:
погашение отражается ростом total_settled, остаток к сдаче =
collected_amount - total_settled. Подтверждённый расчёт неизменяем.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, update
from sqlmodel import Session, select, desc

from ..db.orders import Order
from ..db.people import Cook, DeliveryStaff, Role
from ..db.wallet import (
    DeliveryWallet,
    Settlement,
    SettlementStatus,
    TransactionStatus,
    TransactionType,
    WalletTransaction,
)
from .access import Actor, require_role
from .errors import InvalidTransition, NotFound, ValidationFailed
from .wallet import get_wallet

logger = logging.getLogger(__name__)

SETTLEMENT_PARTIES = (Role.DELIVERY, Role.COOK)


def get_settlement(session: Session, settlement_id: int) -> Settlement:
    settlement = session.get(Settlement, settlement_id)
    if not settlement:
        raise NotFound(f"Settlement {settlement_id} not found")
    return settlement


def pending_settlement_total(session: Session, user_id: int, user_role: Role) -> Decimal:
    total = session.exec(
        select(func.coalesce(func.sum(Settlement.amount), 0)).where(
            Settlement.user_id == user_id,
            Settlement.user_role == user_role,
            Settlement.status == SettlementStatus.PENDING,
        )
    ).one()
    return Decimal(str(total))


def create_settlement(
    session: Session,
    user_id: int,
    user_role: Role,
    amount: Decimal,
    actor: Actor,
    order_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> Settlement:
    require_role(actor, Role.ADMIN)
    if amount is None or amount <= 0:
        raise ValidationFailed("Settlement amount must be positive", field="amount")
    if user_role not in SETTLEMENT_PARTIES:
        raise ValidationFailed(f"Settlements are made with cooks or delivery staff, not '{user_role.value}'", field="user_role")

    order = None
    if order_id is not None:
        order = session.get(Order, order_id)
        if not order:
            raise ValidationFailed(f"Order {order_id} not found", field="order_id")

    if user_role == Role.DELIVERY:
        if not session.get(DeliveryStaff, user_id):
            raise ValidationFailed(f"Delivery staff {user_id} not found", field="user_id")
        wallet = get_wallet(session, user_id)
        available = wallet.unsettled_collection if wallet else Decimal("0")
        available -= pending_settlement_total(session, user_id, user_role)
        if amount > available:
            raise ValidationFailed(f"Amount {amount} exceeds unsettled collection {available}", field="amount")
    elif not session.get(Cook, user_id):
        raise ValidationFailed(f"Cook {user_id} not found", field="user_id")

    settlement = Settlement(
        user_id=user_id,
        user_role=user_role,
        order_id=order_id,
        amount=amount,
        notes=notes,
        panchayat_id=order.panchayat_id if order else None,
        ward_number=order.ward_number if order else None,
        created_by=actor.user_id,
    )
    session.add(settlement)
    session.commit()
    session.refresh(settlement)
    logger.info(f"Settlement {settlement.id} of {amount} created for {user_role.value} {user_id}")
    return settlement


def _covered_collections(session: Session, settlement: Settlement) -> list[WalletTransaction]:
    """Какие ожидающие сборы закрывает расчёт: по заказу, иначе самые старые, пока влезают."""
    query = select(WalletTransaction).where(
        WalletTransaction.delivery_staff_id == settlement.user_id,
        WalletTransaction.transaction_type == TransactionType.COLLECTION,
        WalletTransaction.status == TransactionStatus.PENDING,
    )
    if settlement.order_id is not None:
        return list(session.exec(query.where(WalletTransaction.order_id == settlement.order_id)))

    covered = []
    remaining = settlement.amount
    for tx in session.exec(query.order_by(WalletTransaction.created_at, WalletTransaction.id)):
        if tx.amount > remaining:
            break
        covered.append(tx)
        remaining -= tx.amount
    return covered


def approve_settlement(session: Session, settlement_id: int, actor: Actor) -> Settlement:
    require_role(actor, Role.ADMIN)
    settlement = get_settlement(session, settlement_id)
    now = datetime.now()

    result = session.exec(
        update(Settlement)
        .where(Settlement.id == settlement_id, Settlement.status == SettlementStatus.PENDING)
        .values(status=SettlementStatus.APPROVED, approved_by=actor.user_id, approved_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.rollback()
        raise InvalidTransition(f"Settlement {settlement_id} is already approved", field="status")

    try:
        session.refresh(settlement)
        if settlement.user_role == Role.DELIVERY:
            _settle_wallet(session, settlement, actor, now)
    except Exception:
        session.rollback()
        raise
    session.commit()
    session.refresh(settlement)
    logger.info(f"Settlement {settlement_id} of {settlement.amount} approved by admin {actor.user_id}")
    return settlement


def _settle_wallet(session: Session, settlement: Settlement, actor: Actor, now: datetime) -> None:
    wallet = get_wallet(session, settlement.user_id)
    if wallet is None or settlement.amount > wallet.unsettled_collection:
        available = wallet.unsettled_collection if wallet else Decimal("0")
        raise ValidationFailed(f"Amount {settlement.amount} exceeds unsettled collection {available}", field="amount")

    session.exec(
        update(DeliveryWallet)
        .where(DeliveryWallet.id == wallet.id)
        .values(total_settled=DeliveryWallet.total_settled + settlement.amount, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    session.add(WalletTransaction(
        delivery_staff_id=settlement.user_id,
        settlement_id=settlement.id,
        transaction_type=TransactionType.SETTLEMENT,
        amount=settlement.amount,
        description=f"Settlement #{settlement.id}",
        status=TransactionStatus.APPROVED,
        approved_by=actor.user_id,
        approved_at=now,
        created_at=now,
    ))
    for tx in _covered_collections(session, settlement):
        tx.status = TransactionStatus.APPROVED
        tx.approved_by = actor.user_id
        tx.approved_at = now
        session.add(tx)
    session.flush()


def list_settlements(session: Session, status: Optional[SettlementStatus] = None) -> list[Settlement]:
    query = select(Settlement).order_by(desc(Settlement.created_at))
    if status is not None:
        query = query.where(Settlement.status == status)
    return list(session.exec(query))
