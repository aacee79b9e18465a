"""
Router principal do bounded context de Pedidos.
"""
from fastapi import APIRouter

from app.api.orders.router.router_orders import router as router_orders

api_orders = APIRouter()

api_orders.include_router(router_orders)
