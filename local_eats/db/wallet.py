from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from .orders import money_column
from .people import Role


class TransactionType(str, Enum):
    COLLECTION = "collection"  # наличные, полученные от клиента (долг перед платформой)
    EARNING = "earning"        # плата за доставку (долг платформы перед доставщиком)
    SETTLEMENT = "settlement"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SettlementStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


class DeliveryWallet(SQLModel, table=True):
    __tablename__ = "delivery_wallets"

    id: Optional[int] = Field(default=None, primary_key=True)
    delivery_staff_id: int = Field(foreign_key="delivery_staff.id", unique=True)
    collected_amount: Decimal = Field(default=Decimal("0"), sa_column=money_column())
    job_earnings: Decimal = Field(default=Decimal("0"), sa_column=money_column())
    total_settled: Decimal = Field(default=Decimal("0"), sa_column=money_column())
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @property
    def unsettled_collection(self) -> Decimal:
        return self.collected_amount - self.total_settled


class WalletTransaction(SQLModel, table=True):
    __tablename__ = "wallet_transactions"

    id: Optional[int] = Field(default=None, primary_key=True)
    delivery_staff_id: int = Field(foreign_key="delivery_staff.id", index=True)
    order_id: Optional[int] = Field(default=None, foreign_key="orders.id")
    settlement_id: Optional[int] = Field(default=None, foreign_key="settlements.id")
    transaction_type: TransactionType = Field()
    amount: Decimal = Field(sa_column=money_column())
    description: Optional[str] = Field(default=None)
    status: TransactionStatus = Field(default=TransactionStatus.PENDING)
    approved_by: Optional[int] = Field(default=None)
    approved_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)

    # Одна запись каждого типа на заказ: защита от двойного зачисления на уровне БД
    __table_args__ = (UniqueConstraint("order_id", "transaction_type"),)


class Settlement(SQLModel, table=True):
    __tablename__ = "settlements"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True)
    user_role: Role = Field()
    order_id: Optional[int] = Field(default=None, foreign_key="orders.id")
    amount: Decimal = Field(sa_column=money_column())
    status: SettlementStatus = Field(default=SettlementStatus.PENDING)
    notes: Optional[str] = Field(default=None)
    panchayat_id: Optional[int] = Field(default=None)
    ward_number: Optional[int] = Field(default=None)
    created_by: Optional[int] = Field(default=None)
    approved_by: Optional[int] = Field(default=None)
    approved_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
