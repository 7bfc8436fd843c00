from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Column, Numeric, UniqueConstraint
from sqlalchemy.dialects.sqlite import VARCHAR
from sqlmodel import Field, SQLModel

from .orders import ServiceType


class MarginType(str, Enum):
    PERCENT = "percent"
    FIXED = "fixed"


class FoodItem(SQLModel, table=True):
    id: int | None = Field(primary_key=True, default=None)
    name: str = Field(sa_column=Column(VARCHAR(255)))
    # Базовая цена (цена повара по умолчанию)
    price: Decimal = Field(sa_column=Column(Numeric(12, 2), nullable=False))
    platform_margin_type: Optional[MarginType] = Field(default=MarginType.PERCENT)
    platform_margin_value: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(12, 2)))
    service_type: ServiceType = Field(default=ServiceType.HOMEMADE)
    is_available: bool = Field(default=True)

    __tablename__ = "food_items"


class CookDish(SQLModel, table=True):
    """Блюдо, которое готовит конкретный повар, с его собственной ценой."""
    id: int | None = Field(primary_key=True, default=None)
    cook_id: int = Field(foreign_key="cooks.id", index=True)
    food_item_id: int = Field(foreign_key="food_items.id", index=True)
    custom_price: Optional[Decimal] = Field(default=None, sa_column=Column(Numeric(12, 2)))
    is_active: bool = Field(default=True)

    __tablename__ = "cook_dishes"
    __table_args__ = (UniqueConstraint("cook_id", "food_item_id"),)
