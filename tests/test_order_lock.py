import dataclasses
import sqlite3
import threading

import pytest
from sqlalchemy.exc import DBAPIError, OperationalError

from app.api.orders.models.model_order import OrderModel
from app.core.exceptions import (
    InternalError,
    LockTimeoutError,
    NotFoundError,
    TransactionConflictError,
    ValidationError,
)
from app.database.order_lock import (
    LOCK_UNAVAILABLE,
    KeyedMutex,
    LockUnavailableError,
    OrderLockCoordinator,
)


@pytest.fixture
def new_order(order_service, pad_thai):
    counter = {"table": 0}

    def _new():
        counter["table"] += 1
        return order_service.create_order(counter["table"], [{"product_id": pad_thai, "quantity": 1}])

    return _new


def _hold_lock(coordinator, order_id):
    """Segura o lock do pedido numa thread até `release` ser sinalizado."""
    acquired = threading.Event()
    release = threading.Event()

    def _body(session, snapshot):
        acquired.set()
        release.wait(5)

    worker = threading.Thread(target=coordinator.with_order_lock, args=(order_id, _body))
    worker.start()
    assert acquired.wait(5)
    return worker, release


# ---------------- with_order_lock ----------------
def test_not_found_before_callback(coordinator):
    called = []
    with pytest.raises(NotFoundError) as exc:
        coordinator.with_order_lock(999, lambda session, snap: called.append(snap))
    assert called == []
    assert exc.value.resource_id == 999


def test_callback_receives_frozen_snapshot(coordinator, new_order):
    order = new_order()

    def _body(session, snapshot):
        assert snapshot.id == order.id
        assert snapshot.status == "OPEN"
        assert len(snapshot.items) == 1
        with pytest.raises(dataclasses.FrozenInstanceError):
            snapshot.status = "PAID"
        return "ok"

    assert coordinator.with_order_lock(order.id, _body) == "ok"


def test_commit_on_return(coordinator, session_factory, new_order):
    order = new_order()

    def _body(session, snapshot):
        session.get(OrderModel, snapshot.id).subtotal = 1234

    coordinator.with_order_lock(order.id, _body)
    with session_factory() as session:
        assert session.get(OrderModel, order.id).subtotal == 1234


def test_rollback_on_error(coordinator, session_factory, new_order):
    order = new_order()

    def _body(session, snapshot):
        session.get(OrderModel, snapshot.id).subtotal = 1
        session.flush()
        raise ValidationError("falhou no meio")

    with pytest.raises(ValidationError):
        coordinator.with_order_lock(order.id, _body)
    with session_factory() as session:
        assert session.get(OrderModel, order.id).subtotal == order.subtotal


def test_mutex_released_after_error(coordinator, mutex, new_order):
    order = new_order()

    def _boom(session, snapshot):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        coordinator.with_order_lock(order.id, _boom)
    assert mutex.held_keys() == 0
    assert coordinator.with_order_lock(order.id, lambda s, snap: snap.id) == order.id


def test_lock_timeout(session_factory, coordinator, mutex, new_order):
    order = new_order()
    impatient = OrderLockCoordinator(session_factory, strategy="mutex", lock_timeout=0.2, mutex=mutex)
    worker, release = _hold_lock(coordinator, order.id)
    try:
        with pytest.raises(LockTimeoutError) as exc:
            impatient.with_order_lock(order.id, lambda s, snap: None)
        assert exc.value.retryable is True
    finally:
        release.set()
        worker.join(5)


def test_waiter_sees_committed_state(coordinator, session_factory, new_order):
    order = new_order()
    acquired = threading.Event()
    release = threading.Event()

    def _writer(session, snapshot):
        acquired.set()
        release.wait(5)
        session.get(OrderModel, snapshot.id).subtotal = 777

    worker = threading.Thread(target=coordinator.with_order_lock, args=(order.id, _writer))
    worker.start()
    assert acquired.wait(5)

    seen = []
    reader = threading.Thread(
        target=coordinator.with_order_lock, args=(order.id, lambda s, snap: seen.append(snap.subtotal))
    )
    reader.start()
    release.set()
    worker.join(5)
    reader.join(5)
    assert seen == [777]


# ---------------- try_order_lock ----------------
def test_try_lock_free(coordinator, new_order):
    order = new_order()
    assert coordinator.try_order_lock(order.id, lambda s, snap: snap.table_number) == order.table_number


def test_try_lock_unavailable(coordinator, new_order):
    order = new_order()
    worker, release = _hold_lock(coordinator, order.id)
    try:
        called = []
        result = coordinator.try_order_lock(order.id, lambda s, snap: called.append(1))
        assert result is LOCK_UNAVAILABLE
        assert not result
        assert called == []
    finally:
        release.set()
        worker.join(5)


def test_try_lock_not_found(coordinator):
    with pytest.raises(NotFoundError):
        coordinator.try_order_lock(4242, lambda s, snap: None)


# ---------------- with_multiple_order_lock ----------------
def test_multi_lock_sorted_and_deduplicated(coordinator, new_order):
    first, second = new_order(), new_order()
    ids = coordinator.with_multiple_order_lock(
        [second.id, first.id, second.id], lambda s, snaps: tuple(snap.id for snap in snaps)
    )
    assert ids == (first.id, second.id)


def test_multi_lock_missing_id(coordinator, new_order):
    order = new_order()
    with pytest.raises(NotFoundError) as exc:
        coordinator.with_multiple_order_lock([order.id, 9001, 9000], lambda s, snaps: None)
    assert exc.value.resource_id == 9000


def test_multi_lock_empty(coordinator):
    with pytest.raises(ValueError):
        coordinator.with_multiple_order_lock([], lambda s, snaps: None)


# ---------------- transações sem lock de pedido ----------------
def test_run_in_transaction_rolls_back(coordinator, session_factory, new_order):
    order = new_order()

    def _body(session):
        session.get(OrderModel, order.id).table_number = 99
        session.flush()
        raise ValidationError("desfaz")

    with pytest.raises(ValidationError):
        coordinator.run_in_transaction(_body)
    assert coordinator.run_read_only(lambda s: s.get(OrderModel, order.id).table_number) == order.table_number


def test_table_lock_serializes_callers(coordinator, mutex):
    inside = []

    def _body(session):
        inside.append(mutex.held_keys())
        return "ok"

    assert coordinator.with_table_lock(3, _body) == "ok"
    assert inside == [1]
    assert mutex.held_keys() == 0


# ---------------- estratégia ----------------
def test_auto_strategy_on_sqlite(session_factory):
    assert OrderLockCoordinator(session_factory, strategy="auto").strategy == "mutex"


@pytest.mark.parametrize("strategy", ["row", "optimistic"])
def test_invalid_strategy(session_factory, strategy):
    with pytest.raises(ValueError):
        OrderLockCoordinator(session_factory, strategy=strategy)


# ---------------- tradução de erros do banco ----------------
class _PgError(Exception):
    def __init__(self, pgcode):
        super().__init__(f"pg error {pgcode}")
        self.pgcode = pgcode


@pytest.mark.parametrize(
    "pgcode, statement, expected",
    [
        ("55P03", "SELECT ... FOR UPDATE NOWAIT", LockUnavailableError),
        ("55P03", "SELECT ... FOR UPDATE", LockTimeoutError),
        ("57014", "SELECT 1", LockTimeoutError),
        ("40001", "UPDATE orders", TransactionConflictError),
        ("40P01", "UPDATE orders", TransactionConflictError),
    ],
)
def test_translate_postgres_errors(coordinator, pgcode, statement, expected):
    error = coordinator._translate_db_error(DBAPIError(statement, {}, _PgError(pgcode)))
    assert type(error) is expected
    assert error.retryable is True


def test_translate_sqlite_busy(coordinator):
    exc = OperationalError("BEGIN IMMEDIATE", {}, sqlite3.OperationalError("database is locked"))
    assert isinstance(coordinator._translate_db_error(exc), LockTimeoutError)


def test_unknown_db_error_becomes_internal(coordinator, new_order):
    order = new_order()

    def _body(session, snapshot):
        raise DBAPIError("SELECT 1", {}, _PgError("XX000"))

    with pytest.raises(InternalError):
        coordinator.with_order_lock(order.id, _body)


# ---------------- KeyedMutex ----------------
def test_keyed_mutex_releases_entries():
    mutex = KeyedMutex()
    with mutex.hold([("order", 2), ("order", 1)], timeout=1):
        assert mutex.held_keys() == 2
    assert mutex.held_keys() == 0


def test_keyed_mutex_nowait():
    mutex = KeyedMutex()
    inside = threading.Event()
    release = threading.Event()

    def _holder():
        with mutex.hold([("order", 1)], timeout=1):
            inside.set()
            release.wait(5)

    worker = threading.Thread(target=_holder)
    worker.start()
    assert inside.wait(5)
    try:
        with pytest.raises(LockUnavailableError):
            with mutex.hold([("order", 1)], timeout=1, nowait=True):
                pass
        with pytest.raises(LockTimeoutError):
            with mutex.hold([("order", 1)], timeout=0.1):
                pass
        # chave livre não é afetada
        with mutex.hold([("order", 2)], timeout=0.1):
            pass
    finally:
        release.set()
        worker.join(5)
    assert mutex.held_keys() == 0
