from typing import Optional

from fastapi import APIRouter
from sqlmodel import select, desc

from local_eats.db.people import Role
from local_eats.db.referrals import Referral, ReferralStatus
from local_eats.dependencies import ActorDep, SessionDep
from local_eats.schemas.referral import ReferralOut
from local_eats.services.referral import approve_referral, mark_referral_paid

router = APIRouter(prefix="/referrals")


@router.get("", response_model=list[ReferralOut])
def list_referrals(session: SessionDep, actor: ActorDep, status: Optional[ReferralStatus] = None):
    """Админ видит все рефералы, остальные - только свои"""
    query = select(Referral)
    if actor.role != Role.ADMIN:
        query = query.where(Referral.referrer_id == actor.user_id)
    if status is not None:
        query = query.where(Referral.status == status)
    return session.exec(query.order_by(desc(Referral.created_at), desc(Referral.id))).all()


@router.post("/{referral_id}/approve", response_model=ReferralOut)
def approve(referral_id: int, session: SessionDep, actor: ActorDep):
    return approve_referral(session, referral_id, actor)


@router.post("/{referral_id}/pay", response_model=ReferralOut)
def pay(referral_id: int, session: SessionDep, actor: ActorDep):
    return mark_referral_paid(session, referral_id, actor)
