from types import SimpleNamespace

import pytest

from app.api.orders.models.model_order import OrderStatus
from app.api.orders.services import order_state_machine as states

OPEN, CONFIRMED, PAID, CANCELLED = (
    OrderStatus.OPEN,
    OrderStatus.CONFIRMED,
    OrderStatus.PAID,
    OrderStatus.CANCELLED,
)


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (OPEN, CONFIRMED, True),
        (OPEN, CANCELLED, True),
        (OPEN, PAID, False),
        (CONFIRMED, PAID, True),
        (CONFIRMED, CANCELLED, True),
        (CONFIRMED, OPEN, False),
        (CONFIRMED, CONFIRMED, False),
        (PAID, CANCELLED, False),
        (PAID, OPEN, False),
        (CANCELLED, OPEN, False),
        (CANCELLED, PAID, False),
    ],
)
def test_can_transition(current, target, allowed):
    assert states.can_transition(current, target) is allowed


def test_accepts_raw_strings():
    assert states.can_transition("OPEN", "CONFIRMED")
    assert not states.can_checkout("OPEN")


def test_terminal_states():
    assert states.is_terminal(PAID)
    assert states.is_terminal(CANCELLED)
    assert not states.is_terminal(OPEN)
    assert not states.is_terminal(CONFIRMED)


# Tabela de ações por status
ACTIONS = {
    OPEN: dict(add=True, modify=True, void=False, checkout=False, cancel=True),
    CONFIRMED: dict(add=True, modify=False, void=True, checkout=True, cancel=True),
    PAID: dict(add=False, modify=False, void=False, checkout=False, cancel=False),
    CANCELLED: dict(add=False, modify=False, void=False, checkout=False, cancel=False),
}


@pytest.mark.parametrize("status", list(ACTIONS))
def test_action_table(status):
    expected = ACTIONS[status]
    assert states.can_add_items(status) is expected["add"]
    assert states.can_modify_items(status) is expected["modify"]
    assert states.can_void_item(status) is expected["void"]
    assert states.can_checkout(status) is expected["checkout"]
    assert states.can_cancel(status) is expected["cancel"]


def test_next_batch_sequence():
    assert states.next_batch_sequence([]) == 1
    items = [SimpleNamespace(batch_sequence=1), SimpleNamespace(batch_sequence=3), SimpleNamespace(batch_sequence=2)]
    assert states.next_batch_sequence(items) == 4
