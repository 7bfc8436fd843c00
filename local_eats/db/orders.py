from sqlmodel import Field, SQLModel, Relationship
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List
from sqlalchemy import Column, Numeric, String
from sqlalchemy.sql.schema import Index


class ServiceType(str, Enum):
    INDOOR_EVENTS = "indoor_events"
    CLOUD_KITCHEN = "cloud_kitchen"
    HOMEMADE = "homemade"


# Эти типы заказов развозят доставщики из общего пула
POOL_DELIVERY_SERVICES = (ServiceType.CLOUD_KITCHEN, ServiceType.HOMEMADE)


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class CookStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    PREPARING = "preparing"
    COOKED = "cooked"
    READY = "ready"
    REJECTED = "rejected"
    AUTO_REJECTED = "auto_rejected"


class CookAssignmentStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    AUTO_REJECTED = "auto_rejected"


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"


def money_column(nullable: bool = False) -> Column:
    return Column(Numeric(12, 2), nullable=nullable)


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    food_item_id: int = Field(foreign_key="food_items.id")
    quantity: int = Field(default=1)
    # Цена повара, наценка платформы и итоговая цена для клиента на момент заказа
    base_price: Decimal = Field(default=Decimal("0"), sa_column=money_column())
    platform_margin: Decimal = Field(default=Decimal("0"), sa_column=money_column())
    unit_price: Decimal = Field(default=Decimal("0"), sa_column=money_column())
    total_price: Decimal = Field(default=Decimal("0"), sa_column=money_column())
    special_instructions: Optional[str] = Field(default=None)
    selected_cook_id: Optional[int] = Field(default=None, foreign_key="cooks.id")
    assignment_id: Optional[int] = Field(default=None, foreign_key="cook_assignments.id")

    order: Optional["Order"] = Relationship(back_populates="items")


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    order_number: str = Field(sa_column=Column(String(32), unique=True, nullable=False))
    customer_id: int = Field(index=True)
    service_type: ServiceType = Field(default=ServiceType.HOMEMADE)

    status: OrderStatus = Field(default=OrderStatus.PENDING)
    cook_assignment_status: CookAssignmentStatus = Field(default=CookAssignmentStatus.PENDING)
    cook_status: CookStatus = Field(default=CookStatus.PENDING)
    delivery_status: DeliveryStatus = Field(default=DeliveryStatus.PENDING)

    total_amount: Decimal = Field(default=Decimal("0"), sa_column=money_column())
    delivery_amount: Optional[Decimal] = Field(default=None, sa_column=money_column(nullable=True))

    panchayat_id: int = Field()
    ward_number: int = Field()
    delivery_address: Optional[str] = Field(default=None)
    delivery_instructions: Optional[str] = Field(default=None)

    assigned_cook_id: Optional[int] = Field(default=None, foreign_key="cooks.id")
    assigned_delivery_id: Optional[int] = Field(default=None, foreign_key="delivery_staff.id")

    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    confirmed_at: Optional[datetime] = Field(default=None)
    preparing_at: Optional[datetime] = Field(default=None)
    ready_at: Optional[datetime] = Field(default=None)
    out_for_delivery_at: Optional[datetime] = Field(default=None)
    delivered_at: Optional[datetime] = Field(default=None)
    cancelled_at: Optional[datetime] = Field(default=None)

    delivery_offered_at: Optional[datetime] = Field(default=None)
    delivery_escalated_at: Optional[datetime] = Field(default=None)
    delivery_assigned_at: Optional[datetime] = Field(default=None)
    picked_up_at: Optional[datetime] = Field(default=None)

    items: List[OrderItem] = Relationship(back_populates="order")
    cook_assignments: List["CookAssignment"] = Relationship(back_populates="order")

    __table_args__ = (
        Index("orders_delivery_pool_idx", "panchayat_id", "delivery_status", "cook_status"),
    )
