"""
Cálculo financeiro do pedido.

Todos os valores são inteiros na menor unidade da moeda (ex.: satang).
Nada de float: desconto percentual usa divisão inteira (trunca, não arredonda).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from app.api.orders.models.model_order import DiscountType
from app.api.orders.models.model_order_item import OrderItemStatus


class CalculationItem(Protocol):
    price_per_unit: int
    quantity: int
    status: str


@dataclass(frozen=True)
class OrderTotals:
    subtotal: int
    discount: int
    grand_total: int


def _status_value(status) -> str:
    return status.value if isinstance(status, OrderItemStatus) else str(status)


def item_total(price_per_unit: int, quantity: int) -> int:
    return int(price_per_unit) * int(quantity)


def subtotal(items: Iterable[CalculationItem]) -> int:
    """Soma apenas itens ACTIVE; itens VOIDED contribuem com zero."""
    return sum(
        (
            item_total(item.price_per_unit, item.quantity)
            for item in items
            if _status_value(item.status) == OrderItemStatus.ACTIVE.value
        ),
        0,
    )


def discount(subtotal_value: int, discount_type: Optional[str], discount_value: Optional[int]) -> int:
    """
    - sem tipo ou sem valor: 0
    - PERCENT: floor(subtotal * valor / 100)  (ex.: 9999 a 15% -> 1499)
    - FIXED: o próprio valor, na menor unidade
    """
    if not discount_type or discount_value is None:
        return 0

    kind = discount_type.value if isinstance(discount_type, DiscountType) else str(discount_type)
    if kind == DiscountType.PERCENT.value:
        return (int(subtotal_value) * int(discount_value)) // 100
    if kind == DiscountType.FIXED.value:
        return int(discount_value)
    raise ValueError(f"Tipo de desconto desconhecido: {discount_type}")


def grand_total(subtotal_value: int, discount_value: int) -> int:
    return max(0, int(subtotal_value) - int(discount_value))


def recalculate(
    items: Iterable[CalculationItem],
    discount_type: Optional[str],
    discount_value: Optional[int],
) -> OrderTotals:
    """Recalcula subtotal, desconto e total juntos a partir do estado atual dos itens."""
    sub = subtotal(items)
    disc = discount(sub, discount_type, discount_value)
    return OrderTotals(subtotal=sub, discount=disc, grand_total=grand_total(sub, disc))


def to_money_string(value: Optional[int]) -> Optional[str]:
    """Serializa um valor em menor unidade como string decimal (ex.: 2198 -> "2198")."""
    if value is None:
        return None
    return str(int(value))
