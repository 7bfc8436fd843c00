from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from ..db.orders import DeliveryStatus, ServiceType
from .orders import ProfileOut


class DeliveryStatusUpdate(BaseModel):
    status: DeliveryStatus
    order_amount: Optional[Decimal] = Field(default=None, ge=0)
    delivery_charge: Optional[Decimal] = Field(default=None, ge=0)


class DeliveryAssign(BaseModel):
    staff_id: int


class DeliveryOrderOut(BaseModel):
    """Заказ глазами доставщика: без состава и цен позиций."""
    id: int
    order_number: str
    service_type: ServiceType
    total_amount: Decimal
    delivery_amount: Optional[Decimal] = None
    delivery_status: DeliveryStatus
    delivery_address: Optional[str] = None
    delivery_instructions: Optional[str] = None
    panchayat_id: int
    ward_number: int
    created_at: datetime
    delivered_at: Optional[datetime] = None
    claim_deadline_at: Optional[datetime] = None
    customer: Optional[ProfileOut] = None
