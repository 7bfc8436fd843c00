"""
Цена для клиента = базовая цена повара + наценка платформы.

Внутри всё считается в Decimal без округления, округляем только для показа.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

from ..db.catalog import MarginType

Number = Union[Decimal, int, str]

CENT = Decimal("0.01")


def _to_decimal(value: Optional[Number]) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, float):
        # float сюда попадать не должен, но если попал - через str, без двоичного мусора
        return Decimal(str(value))
    return Decimal(value)


def platform_margin(base_price: Number, margin_type: Optional[Union[MarginType, str]], margin_value: Optional[Number]) -> Decimal:
    base = _to_decimal(base_price)
    value = _to_decimal(margin_value)
    kind = MarginType(margin_type) if margin_type is not None else MarginType.PERCENT
    if kind == MarginType.FIXED:
        return value
    return base * value / Decimal(100)


def customer_price(base_price: Number, margin_type: Optional[Union[MarginType, str]], margin_value: Optional[Number]) -> Decimal:
    price = _to_decimal(base_price) + platform_margin(base_price, margin_type, margin_value)
    return max(price, Decimal("0"))


def display_price(price: Number) -> Decimal:
    return _to_decimal(price).quantize(CENT, rounding=ROUND_HALF_UP)


def selected_cook_price(default_base: Number, cook_price: Optional[Number], margin_type, margin_value) -> Decimal:
    """Цена, когда повар выбран: его собственная цена или цена блюда по умолчанию."""
    base = cook_price if cook_price is not None else default_base
    return customer_price(base, margin_type, margin_value)


def deferred_choice_price(default_base: Number, cook_prices: Iterable[Optional[Number]], margin_type, margin_value) -> Decimal:
    """Цена, пока повар не выбран: считаем от самой низкой базовой цены среди поваров."""
    bases = [_to_decimal(p if p is not None else default_base) for p in cook_prices]
    if not bases:
        bases = [_to_decimal(default_base)]
    return customer_price(min(bases), margin_type, margin_value)
