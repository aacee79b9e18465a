"""
Schemas de Pedidos.

Valores monetários saem como string com o inteiro na menor unidade
(ex.: "2198" = 21,98). Limites de negócio (quantidade, mesa, desconto)
são validados no OrderService, então aqui só entra o formato.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.api.orders.models.model_order import OrderStatus


# ------ Requests ------
class OrderItemInput(BaseModel):
    product_id: int
    quantity: int


class CreateOrderRequest(BaseModel):
    table_number: int
    items: List[OrderItemInput] = Field(default_factory=list)


class AddItemsRequest(BaseModel):
    items: List[OrderItemInput] = Field(default_factory=list)


class UpdateItemQuantityRequest(BaseModel):
    quantity: int


class VoidItemRequest(BaseModel):
    reason: str = ""


class CheckoutRequest(BaseModel):
    discount_type: Optional[str] = None  # PERCENT | FIXED
    # int ou decimal: valores fracionados chegam ao service e são rejeitados lá
    discount_value: Optional[Union[int, Decimal]] = None


# ------ Responses ------
class OrderItemResponse(BaseModel):
    id: int
    order_id: int
    product_id: int
    product_name: str
    price_per_unit: str
    quantity: int
    item_total: str
    batch_sequence: int
    status: str
    void_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    id: int
    table_number: int
    status: OrderStatus
    subtotal: str
    discount_type: Optional[str] = None
    discount_value: Optional[str] = None
    discount_amount: str
    grand_total: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class OrderLogResponse(BaseModel):
    id: int
    order_id: int
    action: str
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderDetailResponse(OrderResponse):
    logs: List[OrderLogResponse] = Field(default_factory=list)


class OrderSummaryResponse(BaseModel):
    id: int
    table_number: int
    status: OrderStatus
    subtotal: str
    grand_total: str
    active_item_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class OrderListResponse(BaseModel):
    data: List[OrderSummaryResponse]
    pagination: PaginationMeta
