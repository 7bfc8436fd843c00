from datetime import datetime
from typing import Optional
from sqlmodel import Field, SQLModel, Relationship

from .orders import CookStatus, Order


class CookAssignment(SQLModel, table=True):
    """Повар, назначенный на часть позиций заказа. У каждого свой статус."""
    __tablename__ = "cook_assignments"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    cook_id: int = Field(foreign_key="cooks.id", index=True)
    cook_status: CookStatus = Field(default=CookStatus.PENDING)
    assigned_at: datetime = Field(default_factory=datetime.now)
    responded_at: Optional[datetime] = Field(default=None)
    updated_at: datetime = Field(default_factory=datetime.now)
    notes: Optional[str] = Field(default=None)

    order: Optional[Order] = Relationship(back_populates="cook_assignments")
