# app/api/orders/router/router_orders.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status

from app.api.orders.models.model_order import OrderStatus
from app.api.orders.schemas.schema_order import (
    AddItemsRequest,
    CheckoutRequest,
    CreateOrderRequest,
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
    UpdateItemQuantityRequest,
    VoidItemRequest,
)
from app.api.orders.services.dependencies import get_order_query_service, get_order_service
from app.api.orders.services.service_order import OrderService
from app.api.orders.services.service_order_query import OrderQueryService
from app.api.orders.services.service_order_responses import OrderResponseBuilder
from app.config.settings import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.utils.logger import logger

router = APIRouter(prefix="/api/orders", tags=["Pedidos"])


# ---------- Consultas ----------
@router.get("", response_model=OrderListResponse, summary="Lista pedidos")
def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    table_number: Optional[int] = Query(None, ge=1),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    svc: OrderQueryService = Depends(get_order_query_service),
):
    return svc.list_orders(
        status=status_filter,
        table_number=table_number,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )


@router.get("/tables/{table_number}/active", response_model=Optional[OrderResponse], summary="Pedido ativo da mesa")
def get_active_order_for_table(
    table_number: int = Path(..., description="Número da mesa"),
    svc: OrderQueryService = Depends(get_order_query_service),
):
    return svc.get_active_order_for_table(table_number)


@router.get("/{order_id}", response_model=OrderDetailResponse, summary="Detalhe do pedido com itens e histórico")
def get_order(
    order_id: int = Path(..., description="ID do pedido"),
    svc: OrderQueryService = Depends(get_order_query_service),
):
    return svc.get_order(order_id)


# ---------- Mutações (sempre sob lock do pedido) ----------
@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED, summary="Abre pedido para a mesa")
def create_order(
    payload: CreateOrderRequest = Body(...),
    svc: OrderService = Depends(get_order_service),
):
    logger.info(f"[Pedidos] POST criar - mesa={payload.table_number} itens={len(payload.items)}")
    order = svc.create_order(payload.table_number, payload.items)
    return OrderResponseBuilder.order_to_response(order)


@router.post("/{order_id}/items", response_model=OrderResponse, summary="Adiciona um lote de itens")
def add_items(
    order_id: int = Path(...),
    payload: AddItemsRequest = Body(...),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.add_items(order_id, payload.items)
    return OrderResponseBuilder.order_to_response(order)


@router.patch("/{order_id}/items/{item_id}", response_model=OrderResponse, summary="Altera a quantidade de um item")
def update_item_quantity(
    order_id: int = Path(...),
    item_id: int = Path(...),
    payload: UpdateItemQuantityRequest = Body(...),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.update_item_quantity(order_id, item_id, payload.quantity)
    return OrderResponseBuilder.order_to_response(order)


@router.post("/{order_id}/items/{item_id}/void", response_model=OrderResponse, summary="Estorna um item")
def void_item(
    order_id: int = Path(...),
    item_id: int = Path(...),
    payload: VoidItemRequest = Body(...),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.void_item(order_id, item_id, payload.reason)
    return OrderResponseBuilder.order_to_response(order)


@router.post("/{order_id}/confirm", response_model=OrderResponse, summary="Confirma o pedido (envia para a cozinha)")
def confirm_order(
    order_id: int = Path(...),
    svc: OrderService = Depends(get_order_service),
):
    return OrderResponseBuilder.order_to_response(svc.confirm_order(order_id))


@router.post("/{order_id}/checkout", response_model=OrderResponse, summary="Finaliza e paga o pedido")
def checkout(
    order_id: int = Path(...),
    payload: Optional[CheckoutRequest] = Body(None),
    svc: OrderService = Depends(get_order_service),
):
    payload = payload or CheckoutRequest()
    order = svc.checkout(order_id, payload.discount_type, payload.discount_value)
    return OrderResponseBuilder.order_to_response(order)


@router.post("/{order_id}/cancel", response_model=OrderResponse, summary="Cancela o pedido")
def cancel_order(
    order_id: int = Path(...),
    svc: OrderService = Depends(get_order_service),
):
    return OrderResponseBuilder.order_to_response(svc.cancel_order(order_id))
