from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, Column
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.sqlite import VARCHAR
from sqlmodel import Field, SQLModel

# JSONB в Postgres, обычный JSON в остальных диалектах (тесты на SQLite)
JsonList = JSON().with_variant(JSONB(), "postgresql")


class Role(str, Enum):
    CUSTOMER = "customer"
    COOK = "cook"
    DELIVERY = "delivery_staff"
    ADMIN = "admin"


class DeliveryStaffType(str, Enum):
    FIXED_SALARY = "fixed_salary"
    REGISTERED_PARTNER = "registered_partner"


class Profile(SQLModel, table=True):
    """Профиль клиента, нужен только для отображения в заказах."""
    user_id: int = Field(primary_key=True)
    name: str = Field(sa_column=Column(VARCHAR(255)))
    mobile_number: str = Field(sa_column=Column(VARCHAR(32)))

    __tablename__ = "profiles"


class Cook(SQLModel, table=True):
    id: int | None = Field(primary_key=True, default=None)
    kitchen_name: str = Field(sa_column=Column(VARCHAR(255)))
    mobile_number: str = Field(sa_column=Column(VARCHAR(32)))
    panchayat_id: Optional[int] = Field(default=None)
    is_active: bool = Field(default=True)
    is_available: bool = Field(default=True)
    rating: Optional[float] = Field(default=None)
    total_orders: int = Field(default=0)

    __tablename__ = "cooks"


class DeliveryStaff(SQLModel, table=True):
    id: int | None = Field(primary_key=True, default=None)
    name: str = Field(sa_column=Column(VARCHAR(255)))
    mobile_number: str = Field(sa_column=Column(VARCHAR(32)))
    vehicle_type: str = Field(default="bike")
    vehicle_number: Optional[str] = Field(default=None)
    panchayat_id: Optional[int] = Field(default=None)
    assigned_panchayat_ids: list[int] = Field(default_factory=list, sa_column=Column(JsonList, nullable=False))
    assigned_wards: list[int] = Field(default_factory=list, sa_column=Column(JsonList, nullable=False))
    staff_type: DeliveryStaffType = Field(default=DeliveryStaffType.REGISTERED_PARTNER)
    is_active: bool = Field(default=True)
    is_available: bool = Field(default=True)
    is_approved: bool = Field(default=False)
    total_deliveries: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.now)

    __tablename__ = "delivery_staff"
