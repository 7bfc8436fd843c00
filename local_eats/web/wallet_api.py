"""
API кошельков доставщиков и расчётов.
"""
from typing import Optional

from fastapi import APIRouter, Query

from local_eats.db.people import Role
from local_eats.db.wallet import SettlementStatus
from local_eats.dependencies import ActorDep, SessionDep
from local_eats.schemas.wallet import SettlementCreate, SettlementOut, WalletOut, WalletTransactionOut
from local_eats.services import settlement as settlement_service
from local_eats.services.access import Actor, require_role
from local_eats.services.delivery_claim import get_staff
from local_eats.services.errors import PermissionDenied
from local_eats.services.wallet import get_wallet, list_transactions

from .views import wallet_out

router = APIRouter()


def _check_wallet_access(actor: Actor, staff_id: int):
    """Кошелёк видит сам доставщик и админ"""
    require_role(actor, Role.DELIVERY, Role.ADMIN)
    if actor.role == Role.DELIVERY and actor.user_id != staff_id:
        raise PermissionDenied("You can only view your own wallet")


@router.get("/wallets/{staff_id}", response_model=WalletOut)
def read_wallet(staff_id: int, session: SessionDep, actor: ActorDep):
    _check_wallet_access(actor, staff_id)
    get_staff(session, staff_id)
    return wallet_out(staff_id, get_wallet(session, staff_id))


@router.get("/wallets/{staff_id}/transactions", response_model=list[WalletTransactionOut])
def read_wallet_transactions(
    staff_id: int,
    session: SessionDep,
    actor: ActorDep,
    limit: int = Query(default=50, gt=0, le=500),
):
    _check_wallet_access(actor, staff_id)
    get_staff(session, staff_id)
    return list_transactions(session, staff_id, limit)


@router.post("/settlements", response_model=SettlementOut, status_code=201)
def create_settlement(payload: SettlementCreate, session: SessionDep, actor: ActorDep):
    return settlement_service.create_settlement(
        session,
        payload.user_id,
        payload.user_role,
        payload.amount,
        actor,
        order_id=payload.order_id,
        notes=payload.notes,
    )


@router.get("/settlements", response_model=list[SettlementOut])
def list_settlements(session: SessionDep, actor: ActorDep, status: Optional[SettlementStatus] = None):
    require_role(actor, Role.ADMIN)
    return settlement_service.list_settlements(session, status)


@router.post("/settlements/{settlement_id}/approve", response_model=SettlementOut)
def approve_settlement(settlement_id: int, session: SessionDep, actor: ActorDep):
    return settlement_service.approve_settlement(session, settlement_id, actor)
