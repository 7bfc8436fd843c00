from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal
from ..db.referrals import ReferralStatus


class ReferralOut(BaseModel):
    id: int
    referrer_id: int
    order_id: int
    commission_percent: Decimal
    commission_amount: Decimal
    status: ReferralStatus
    approved_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
