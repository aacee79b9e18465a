from functools import lru_cache

from fastapi import Depends

from app.api.orders.services.service_order import OrderService
from app.api.orders.services.service_order_query import OrderQueryService
from app.database.db_connection import SessionLocal
from app.database.order_lock import OrderLockCoordinator


@lru_cache(maxsize=1)
def get_order_lock_coordinator() -> OrderLockCoordinator:
    # Um coordenador por processo (o mutex por pedido é compartilhado)
    return OrderLockCoordinator(SessionLocal)


def get_order_service(
    coordinator: OrderLockCoordinator = Depends(get_order_lock_coordinator),
) -> OrderService:
    return OrderService(coordinator)


def get_order_query_service(
    coordinator: OrderLockCoordinator = Depends(get_order_lock_coordinator),
) -> OrderQueryService:
    return OrderQueryService(coordinator)
