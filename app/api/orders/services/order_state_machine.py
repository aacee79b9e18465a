"""
Máquina de estados do pedido.

Funções puras (sem I/O). O grafo de transições é acíclico:

    OPEN -> CONFIRMED -> PAID
      \\         \\
       +-> CANCELLED <-+
"""
from __future__ import annotations

from typing import Iterable, Mapping, FrozenSet

from app.api.orders.models.model_order import OrderStatus


TRANSITIONS: Mapping[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.OPEN: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset(),  # terminal
    OrderStatus.CANCELLED: frozenset(),  # terminal
}


def _as_status(status) -> OrderStatus:
    return status if isinstance(status, OrderStatus) else OrderStatus(status)


def can_transition(current, target) -> bool:
    return _as_status(target) in TRANSITIONS[_as_status(current)]


def is_terminal(status) -> bool:
    return not TRANSITIONS[_as_status(status)]


def can_add_items(status) -> bool:
    """OPEN ou CONFIRMED (pedido confirmado recebe um novo lote)."""
    return _as_status(status) in (OrderStatus.OPEN, OrderStatus.CONFIRMED)


def can_modify_items(status) -> bool:
    """Alterar quantidade só com o pedido OPEN."""
    return _as_status(status) == OrderStatus.OPEN


def can_void_item(status) -> bool:
    """Estorno só com o pedido CONFIRMED; em OPEN a correção é editar a quantidade."""
    return _as_status(status) == OrderStatus.CONFIRMED


def can_checkout(status) -> bool:
    return _as_status(status) == OrderStatus.CONFIRMED


def can_cancel(status) -> bool:
    return _as_status(status) in (OrderStatus.OPEN, OrderStatus.CONFIRMED)


def next_batch_sequence(items: Iterable) -> int:
    """1 para pedido sem itens, senão o maior batch_sequence + 1."""
    return max((int(item.batch_sequence) for item in items), default=0) + 1
