from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from ..db.orders import (
    CookAssignmentStatus,
    CookStatus,
    DeliveryStatus,
    OrderStatus,
    ServiceType,
)


class OrderItemCreate(BaseModel):
    food_item_id: int
    quantity: int = Field(default=1, gt=0)
    cook_id: Optional[int] = None  # выбранный клиентом повар
    special_instructions: Optional[str] = None


class OrderCreate(BaseModel):
    service_type: ServiceType
    panchayat_id: int
    ward_number: int
    delivery_address: Optional[str] = None
    delivery_instructions: Optional[str] = None
    delivery_amount: Decimal = Field(default=Decimal("0"), ge=0)
    referrer_id: Optional[int] = None
    items: List[OrderItemCreate]


class OverallStatusUpdate(BaseModel):
    status: OrderStatus


class CookAllocation(BaseModel):
    cook_id: int
    order_item_ids: List[int]


class CookAssignmentRequest(BaseModel):
    assignments: List[CookAllocation]


class CookStatusUpdate(BaseModel):
    cook_status: CookStatus


class ProfileOut(BaseModel):
    name: str
    mobile_number: str


class OrderItemOut(BaseModel):
    id: int
    food_item_id: int
    name: Optional[str] = None
    quantity: int
    base_price: Decimal
    platform_margin: Decimal
    unit_price: Decimal
    total_price: Decimal
    selected_cook_id: Optional[int] = None
    assignment_id: Optional[int] = None


class CookAssignmentOut(BaseModel):
    id: int
    order_id: int
    cook_id: int
    kitchen_name: Optional[str] = None
    cook_status: CookStatus
    assigned_at: datetime
    responded_at: Optional[datetime] = None
    order_item_ids: List[int] = []


class OrderOut(BaseModel):
    id: int
    order_number: str
    customer_id: int
    service_type: ServiceType
    status: OrderStatus
    cook_assignment_status: CookAssignmentStatus
    cook_status: CookStatus
    delivery_status: DeliveryStatus
    total_amount: Decimal
    delivery_amount: Optional[Decimal] = None
    panchayat_id: int
    ward_number: int
    delivery_address: Optional[str] = None
    delivery_instructions: Optional[str] = None
    assigned_cook_id: Optional[int] = None
    assigned_delivery_id: Optional[int] = None
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    delivery_escalated_at: Optional[datetime] = None
    customer: Optional[ProfileOut] = None
    delivery: Optional[ProfileOut] = None
    items: List[OrderItemOut]
    cook_assignments: List[CookAssignmentOut]
