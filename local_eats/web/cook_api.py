"""
API кухни: назначение поваров админом и ответы поваров по своим назначениям.
"""
from typing import Optional

from fastapi import APIRouter
from sqlmodel import select, desc

from local_eats.db.cooking import CookAssignment
from local_eats.db.orders import CookStatus
from local_eats.db.people import Role
from local_eats.dependencies import ActorDep, NotifierDep, SessionDep
from local_eats.schemas.orders import CookAssignmentOut, CookAssignmentRequest, CookStatusUpdate, OrderOut
from local_eats.services.access import require_role
from local_eats.services.cook_assignment import assign_cooks, update_cook_status
from local_eats.services.errors import ValidationFailed

from .views import assignment_out, order_out

router = APIRouter()


@router.post("/orders/{order_id}/cook-assignments", response_model=OrderOut)
def create_cook_assignments(
    order_id: int,
    payload: CookAssignmentRequest,
    session: SessionDep,
    actor: ActorDep,
    notifier: NotifierDep,
):
    allocations = {}
    for allocation in payload.assignments:
        if allocation.cook_id in allocations:
            raise ValidationFailed(f"Cook {allocation.cook_id} is listed twice", field="cook_id")
        allocations[allocation.cook_id] = allocation.order_item_ids
    order = assign_cooks(session, order_id, allocations, actor, notifier)
    return order_out(session, order)


@router.get("/cook-assignments", response_model=list[CookAssignmentOut])
def list_my_assignments(session: SessionDep, actor: ActorDep, cook_status: Optional[CookStatus] = None):
    """Назначения текущего повара, новые сверху"""
    require_role(actor, Role.COOK)
    query = select(CookAssignment).where(CookAssignment.cook_id == actor.user_id)
    if cook_status is not None:
        query = query.where(CookAssignment.cook_status == cook_status)
    assignments = session.exec(query.order_by(desc(CookAssignment.assigned_at), desc(CookAssignment.id))).all()
    return [assignment_out(session, a) for a in assignments]


@router.patch("/cook-assignments/{assignment_id}", response_model=CookAssignmentOut)
def respond_to_assignment(
    assignment_id: int,
    payload: CookStatusUpdate,
    session: SessionDep,
    actor: ActorDep,
    notifier: NotifierDep,
):
    assignment = update_cook_status(session, assignment_id, payload.cook_status, actor, notifier)
    return assignment_out(session, assignment)
