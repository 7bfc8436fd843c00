from pydantic import BaseModel

from ..db.people import Role
from .errors import PermissionDenied


class Actor(BaseModel):
    """Кто выполняет действие. Передаётся явно в каждую операцию."""
    user_id: int
    role: Role


def require_role(actor: Actor, *roles: Role) -> None:
    if actor.role not in roles:
        allowed = ", ".join(r.value for r in roles)
        raise PermissionDenied(f"Action requires role {allowed}, got '{actor.role.value}'")
