from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Column, Numeric
from sqlmodel import Field, SQLModel

from .orders import money_column


class ReferralStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"


class Referral(SQLModel, table=True):
    __tablename__ = "referrals"

    id: Optional[int] = Field(default=None, primary_key=True)
    referrer_id: int = Field(index=True)
    order_id: int = Field(foreign_key="orders.id", unique=True)
    # Процент фиксируется при создании и больше не пересчитывается
    commission_percent: Decimal = Field(sa_column=Column(Numeric(5, 2), nullable=False))
    commission_amount: Decimal = Field(sa_column=money_column())
    status: ReferralStatus = Field(default=ReferralStatus.PENDING)
    approved_by: Optional[int] = Field(default=None)
    approved_at: Optional[datetime] = Field(default=None)
    paid_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
