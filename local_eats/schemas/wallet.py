from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from ..db.people import Role
from ..db.wallet import SettlementStatus, TransactionStatus, TransactionType


class WalletOut(BaseModel):
    delivery_staff_id: int
    collected_amount: Decimal
    job_earnings: Decimal
    total_settled: Decimal
    pending_settlement: Decimal


class WalletTransactionOut(BaseModel):
    id: int
    order_id: Optional[int] = None
    settlement_id: Optional[int] = None
    transaction_type: TransactionType
    amount: Decimal
    description: Optional[str] = None
    status: TransactionStatus
    approved_at: Optional[datetime] = None
    created_at: datetime


class SettlementCreate(BaseModel):
    user_id: int
    user_role: Role
    amount: Decimal = Field(gt=0)
    order_id: Optional[int] = None
    notes: Optional[str] = None


class SettlementOut(BaseModel):
    id: int
    user_id: int
    user_role: Role
    order_id: Optional[int] = None
    amount: Decimal
    status: SettlementStatus
    notes: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
