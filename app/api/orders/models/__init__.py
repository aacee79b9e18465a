"""
Models do bounded context de Pedidos.
"""
from .model_order import (
    OrderModel,
    OrderStatus,
    DiscountType,
    ACTIVE_ORDER_STATUSES,
    OrderStatusEnum,
    DiscountTypeEnum,
)
from .model_order_item import OrderItemModel, OrderItemStatus, OrderItemStatusEnum
from .model_order_log import OrderLogModel, OrderAction

__all__ = [
    "OrderModel",
    "OrderItemModel",
    "OrderLogModel",
    # Enums e tipos
    "OrderStatus",
    "OrderItemStatus",
    "DiscountType",
    "OrderAction",
    "ACTIVE_ORDER_STATUSES",
    "OrderStatusEnum",
    "OrderItemStatusEnum",
    "DiscountTypeEnum",
]
