"""
Snapshots imutáveis de pedido.

Usados em dois pontos:
- pelo OrderLockCoordinator, que entrega ao callback o estado do pedido
  lido no momento em que o lock foi obtido;
- como agregado (pedido + itens) devolvido pelas operações do OrderService.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Tuple

from app.api.orders.models.model_order import OrderModel
from app.api.orders.models.model_order_item import OrderItemModel, OrderItemStatus
from app.api.orders.services.service_calculation import item_total


def _value(raw):
    """Enum ou string crua -> string (o ORM pode devolver qualquer um dos dois)."""
    if raw is None:
        return None
    return raw.value if hasattr(raw, "value") else str(raw)


@dataclass(frozen=True)
class OrderItemSnapshot:
    id: int
    order_id: int
    product_id: int
    product_name: str
    price_per_unit: int
    quantity: int
    batch_sequence: int
    status: str
    void_reason: Optional[str]
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == OrderItemStatus.ACTIVE.value

    @property
    def item_total(self) -> int:
        return item_total(self.price_per_unit, self.quantity)

    @classmethod
    def from_model(cls, item: OrderItemModel) -> "OrderItemSnapshot":
        return cls(
            id=item.id,
            order_id=item.order_id,
            product_id=item.product_id,
            product_name=item.product_name,
            price_per_unit=int(item.price_per_unit),
            quantity=int(item.quantity),
            batch_sequence=int(item.batch_sequence),
            status=_value(item.status),
            void_reason=item.void_reason,
            created_at=item.created_at,
        )


@dataclass(frozen=True)
class OrderSnapshot:
    id: int
    table_number: int
    status: str
    subtotal: int
    discount_type: Optional[str]
    discount_value: Optional[int]
    grand_total: int
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    items: Tuple[OrderItemSnapshot, ...] = field(default_factory=tuple)

    @property
    def active_items(self) -> Tuple[OrderItemSnapshot, ...]:
        return tuple(item for item in self.items if item.is_active)

    def find_item(self, item_id: int) -> Optional[OrderItemSnapshot]:
        return next((item for item in self.items if item.id == item_id), None)

    @classmethod
    def from_model(
        cls,
        order: OrderModel,
        items: Optional[Iterable[OrderItemModel]] = None,
    ) -> "OrderSnapshot":
        source = order.items if items is None else items
        ordered = sorted(source, key=lambda i: (i.batch_sequence, i.id))
        return cls(
            id=order.id,
            table_number=int(order.table_number),
            status=_value(order.status),
            subtotal=int(order.subtotal or 0),
            discount_type=_value(order.discount_type),
            discount_value=int(order.discount_value) if order.discount_value is not None else None,
            grand_total=int(order.grand_total or 0),
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=tuple(OrderItemSnapshot.from_model(i) for i in ordered),
        )
