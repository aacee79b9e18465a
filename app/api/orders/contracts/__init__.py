"""
Contracts do bounded context de Pedidos.
"""

from .order_snapshot import OrderSnapshot, OrderItemSnapshot

__all__ = [
    "OrderSnapshot",
    "OrderItemSnapshot",
]
