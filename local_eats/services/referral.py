import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import update
from sqlmodel import Session

from ..db.orders import Order
from ..db.people import Role
from ..db.referrals import Referral, ReferralStatus
from .access import Actor, require_role
from .errors import InvalidTransition, NotFound, ValidationFailed

logger = logging.getLogger(__name__)


def commission_amount(total_amount: Decimal, commission_percent: Decimal) -> Decimal:
    return Decimal(total_amount) * Decimal(commission_percent) / Decimal(100)


def create_referral(session: Session, order: Order, referrer_id: int, commission_percent: Decimal) -> Referral:
    """Процент берётся на момент создания и дальше не меняется. Без коммита."""
    if referrer_id == order.customer_id:
        raise ValidationFailed("Customers cannot refer their own orders", field="referrer_id")
    if commission_percent < 0 or commission_percent > 100:
        raise ValidationFailed(f"Invalid commission percent {commission_percent}", field="commission_percent")
    referral = Referral(
        referrer_id=referrer_id,
        order_id=order.id,
        commission_percent=commission_percent,
        commission_amount=commission_amount(order.total_amount, commission_percent),
    )
    session.add(referral)
    session.flush()
    logger.info(f"Referral {referral.id} created for order {order.id}: {commission_percent}% = {referral.commission_amount}")
    return referral


def get_referral(session: Session, referral_id: int) -> Referral:
    referral = session.get(Referral, referral_id)
    if not referral:
        raise NotFound(f"Referral {referral_id} not found")
    return referral


def _move(session: Session, referral_id: int, expected: ReferralStatus, values: dict) -> Referral:
    referral = get_referral(session, referral_id)
    result = session.exec(
        update(Referral)
        .where(Referral.id == referral_id, Referral.status == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        session.rollback()
        referral = get_referral(session, referral_id)
        raise InvalidTransition(
            f"Referral {referral_id} is '{referral.status.value}', expected '{expected.value}'",
            field="status",
        )
    session.commit()
    session.refresh(referral)
    return referral


def approve_referral(session: Session, referral_id: int, actor: Actor) -> Referral:
    require_role(actor, Role.ADMIN)
    now = datetime.now()
    referral = _move(session, referral_id, ReferralStatus.PENDING, {
        "status": ReferralStatus.APPROVED,
        "approved_by": actor.user_id,
        "approved_at": now,
        "updated_at": now,
    })
    logger.info(f"Referral {referral_id} approved by admin {actor.user_id}")
    return referral


def mark_referral_paid(session: Session, referral_id: int, actor: Actor) -> Referral:
    require_role(actor, Role.ADMIN)
    now = datetime.now()
    referral = _move(session, referral_id, ReferralStatus.APPROVED, {
        "status": ReferralStatus.PAID,
        "paid_at": now,
        "updated_at": now,
    })
    logger.info(f"Referral {referral_id} paid out: {referral.commission_amount}")
    return referral
