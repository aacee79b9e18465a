from __future__ import annotations

from typing import Dict, Iterable, Optional

from app.api.orders.contracts.order_snapshot import OrderItemSnapshot, OrderSnapshot
from app.api.orders.models.model_order import OrderModel
from app.api.orders.models.model_order_log import OrderLogModel
from app.api.orders.schemas.schema_order import (
    OrderDetailResponse,
    OrderItemResponse,
    OrderLogResponse,
    OrderResponse,
    OrderSummaryResponse,
)
from app.api.orders.services.service_calculation import discount, to_money_string


class OrderResponseBuilder:
    """Converte snapshots/modelos de pedido nos responses da API."""

    @staticmethod
    def item_to_response(item: OrderItemSnapshot) -> OrderItemResponse:
        return OrderItemResponse(
            id=item.id,
            order_id=item.order_id,
            product_id=item.product_id,
            product_name=item.product_name,
            price_per_unit=to_money_string(item.price_per_unit),
            quantity=item.quantity,
            item_total=to_money_string(item.item_total),
            batch_sequence=item.batch_sequence,
            status=item.status,
            void_reason=item.void_reason,
            created_at=item.created_at,
        )

    @staticmethod
    def _order_fields(order: OrderSnapshot) -> dict:
        return dict(
            id=order.id,
            table_number=order.table_number,
            status=order.status,
            subtotal=to_money_string(order.subtotal),
            discount_type=order.discount_type,
            discount_value=to_money_string(order.discount_value),
            discount_amount=to_money_string(
                discount(order.subtotal, order.discount_type, order.discount_value)
            ),
            grand_total=to_money_string(order.grand_total),
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=[OrderResponseBuilder.item_to_response(i) for i in order.items],
        )

    @staticmethod
    def order_to_response(order: OrderSnapshot) -> OrderResponse:
        return OrderResponse(**OrderResponseBuilder._order_fields(order))

    @staticmethod
    def order_to_detail(order: OrderModel, logs: Optional[Iterable[OrderLogModel]] = None) -> OrderDetailResponse:
        snapshot = OrderSnapshot.from_model(order)
        source = order.logs if logs is None else logs
        return OrderDetailResponse(
            **OrderResponseBuilder._order_fields(snapshot),
            logs=[OrderLogResponse.model_validate(log) for log in source],
        )

    @staticmethod
    def order_to_summary(order: OrderModel, active_counts: Dict[int, int]) -> OrderSummaryResponse:
        return OrderSummaryResponse(
            id=order.id,
            table_number=order.table_number,
            status=order.status,
            subtotal=to_money_string(order.subtotal),
            grand_total=to_money_string(order.grand_total),
            active_item_count=active_counts.get(order.id, 0),
            created_at=order.created_at,
            updated_at=order.updated_at,
        )
